import re
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from packaging.version import InvalidVersion, Version

from colored_logger import get_colored_logger
from .exceptions import (
    IndexCreateError,
    IndexDeleteError,
    IndexOpenError,
    IndexUpdateError,
    QueryError,
)
from .models import Scroll
from .query_translator import Occurrence, QueryClause

logger = get_colored_logger(__name__)

INDEX_FILENAME = "scrolls.db"
INDEX_FORMAT_VERSION = "1.0"

# Fields analysed with the English (porter stemming) tokenizer
TEXT_FIELDS = ("content", "source", "tags", "hidden", "other")

_SCHEMA = """
    -- Stored scroll records, list fields as JSON arrays
    CREATE TABLE IF NOT EXISTS scrolls (
        doc_id INTEGER PRIMARY KEY AUTOINCREMENT,
        id TEXT UNIQUE NOT NULL,
        content TEXT NOT NULL DEFAULT '',
        type TEXT NOT NULL DEFAULT '',
        source TEXT NOT NULL DEFAULT '[]',
        tags TEXT NOT NULL DEFAULT '[]',
        hidden TEXT NOT NULL DEFAULT '[]',
        other TEXT NOT NULL DEFAULT '[]',
        indexed_time REAL DEFAULT (strftime('%s', 'now'))
    );

    -- Free-text fields, English analyzer
    CREATE VIRTUAL TABLE IF NOT EXISTS scrolls_text USING fts5(
        content,
        source,
        tags,
        hidden,
        other,
        tokenize='porter unicode61 remove_diacritics 1'
    );

    -- Identifiers, tokenized but not stemmed
    CREATE VIRTUAL TABLE IF NOT EXISTS scrolls_ids USING fts5(
        id,
        tokenize='unicode61 remove_diacritics 1'
    );

    -- Type is matched as a single keyword
    CREATE INDEX IF NOT EXISTS idx_scrolls_type ON scrolls(type);

    CREATE TABLE IF NOT EXISTS index_meta (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    );
"""


class IndexBatch:
    """
    Staged index mutations, applied atomically by ``ScrollIndex.batch``.

    Operations are keyed by scroll ID; staging the same ID twice keeps the
    last operation.
    """

    def __init__(self):
        self._operations: Dict[str, Optional[Scroll]] = {}

    def index(self, scroll_id: str, scroll: Scroll) -> None:
        """Stage an insert or update of ``scroll`` under ``scroll_id``."""
        self._operations[scroll_id] = scroll

    def delete(self, scroll_id: str) -> None:
        """Stage the removal of ``scroll_id``."""
        self._operations[scroll_id] = None

    def operations(self) -> Iterator[Tuple[str, Optional[Scroll]]]:
        return iter(list(self._operations.items()))

    def reset(self) -> None:
        self._operations.clear()

    def __len__(self) -> int:
        return len(self._operations)


class ScrollIndex:
    """
    Persistent full-text index of scrolls backed by SQLite FTS5.

    Use as a context manager so the connection is closed on every exit path::

        with open_existing_index(path) as index:
            index.doc_count()
    """

    def __init__(self, connection: sqlite3.Connection, path: Path):
        self._conn = connection
        self._conn.row_factory = sqlite3.Row
        self.path = path

    def __enter__(self) -> "ScrollIndex":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug("Closed index at %s", self.path)

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise IndexOpenError(f"index at {self.path} is closed")
        return self._conn

    def new_batch(self) -> IndexBatch:
        return IndexBatch()

    def batch(self, batch: IndexBatch) -> None:
        """
        Apply all staged operations in one transaction.

        Raises:
            IndexUpdateError: If any operation fails; nothing is applied then
        """
        conn = self.connection
        try:
            with conn:
                for scroll_id, scroll in batch.operations():
                    if scroll is None:
                        self._delete(conn, scroll_id)
                    else:
                        self._upsert(conn, scroll_id, scroll)
        except sqlite3.Error as e:
            raise IndexUpdateError(f"commit batch of {len(batch)} operations: {e}") from e

        logger.debug("Committed batch of %d operations", len(batch))

    def index(self, scroll_id: str, scroll: Scroll) -> None:
        """Insert or update a single scroll."""
        batch = self.new_batch()
        batch.index(scroll_id, scroll)
        self.batch(batch)

    def delete(self, scroll_id: str) -> bool:
        """
        Remove a scroll from the index.

        Returns:
            True if a record was removed, False if the ID was not indexed
        """
        conn = self.connection
        try:
            with conn:
                deleted = self._delete(conn, scroll_id)
        except sqlite3.Error as e:
            raise IndexDeleteError(f"delete {scroll_id!r}: {e}") from e

        if deleted:
            logger.debug("Deleted scroll %s from index", scroll_id)
        return deleted

    def doc_count(self) -> int:
        cursor = self.connection.execute("SELECT COUNT(*) FROM scrolls")
        return cursor.fetchone()[0]

    def ids(self) -> List[str]:
        cursor = self.connection.execute("SELECT id FROM scrolls ORDER BY id")
        return [row[0] for row in cursor.fetchall()]

    def document(self, scroll_id: str) -> Optional[Scroll]:
        """Return the stored record for ``scroll_id``, or None."""
        cursor = self.connection.execute(
            "SELECT * FROM scrolls WHERE id = ?", (scroll_id,)
        )
        row = cursor.fetchone()
        return Scroll.from_row(dict(row)) if row else None

    def search(
        self, clauses: List[QueryClause], limit: int
    ) -> Tuple[int, List[Tuple[str, float]]]:
        """
        Run a boolean query.

        Every MUST clause has to match and no MUST_NOT clause may match. SHOULD
        clauses are required only when there is no MUST clause; otherwise they
        only contribute to ranking. A query of MUST_NOT clauses alone matches
        every scroll that none of them matches.

        Returns:
            (total number of matches, [(scroll id, score), ...] capped at limit)
        """
        must = [c for c in clauses if c.occurrence is Occurrence.MUST]
        must_not = [c for c in clauses if c.occurrence is Occurrence.MUST_NOT]
        should = [c for c in clauses if c.occurrence is Occurrence.SHOULD]

        if not clauses:
            return 0, []

        conditions: List[str] = []
        where_params: List[Any] = []

        for clause in must:
            predicate, params = _clause_predicate(clause)
            conditions.append(predicate)
            where_params.extend(params)

        if not must and should:
            alternatives = []
            for clause in should:
                predicate, params = _clause_predicate(clause)
                alternatives.append(predicate)
                where_params.extend(params)
            conditions.append("(" + " OR ".join(alternatives) + ")")

        for clause in must_not:
            predicate, params = _clause_predicate(clause)
            conditions.append("NOT " + predicate)
            where_params.extend(params)

        where_sql = " AND ".join(conditions)

        rank_terms = [
            match
            for match in (_text_match(c) for c in must + should)
            if match is not None
        ]

        # LIMIT -1 keeps the ranking subquery from being flattened into the join
        select_params: List[Any] = []
        if rank_terms:
            from_sql = """
                FROM scrolls s
                LEFT JOIN (
                    SELECT rowid, bm25(scrolls_text) AS score
                    FROM scrolls_text
                    WHERE scrolls_text MATCH ?
                    LIMIT -1
                ) r ON r.rowid = s.doc_id
            """
            score_sql = "COALESCE(-r.score, 0.0)"
            select_params.append(" OR ".join(f"({term})" for term in rank_terms))
        else:
            from_sql = "FROM scrolls s"
            score_sql = "0.0"

        try:
            total = self.connection.execute(
                f"SELECT COUNT(*) FROM scrolls s WHERE {where_sql}", where_params
            ).fetchone()[0]

            cursor = self.connection.execute(
                f"""
                SELECT s.id AS id, {score_sql} AS score
                {from_sql}
                WHERE {where_sql}
                ORDER BY score DESC, s.id ASC
                LIMIT ?
                """,
                select_params + where_params + [limit],
            )
            hits = [(row["id"], row["score"]) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise QueryError(f"search failed: {e}") from e

        logger.debug("Query matched %d scrolls, returning %d", total, len(hits))
        return total, hits

    def _upsert(self, conn: sqlite3.Connection, scroll_id: str, scroll: Scroll) -> None:
        row = scroll.to_row()
        row["id"] = scroll_id
        fts_row = scroll.to_fts_row()

        existing = conn.execute(
            "SELECT doc_id FROM scrolls WHERE id = ?", (scroll_id,)
        ).fetchone()

        if existing is not None:
            doc_id = existing[0]
            conn.execute(
                """
                UPDATE scrolls SET
                    content = ?, type = ?, source = ?, tags = ?, hidden = ?,
                    other = ?, indexed_time = strftime('%s', 'now')
                WHERE doc_id = ?
                """,
                (
                    row["content"],
                    row["type"],
                    row["source"],
                    row["tags"],
                    row["hidden"],
                    row["other"],
                    doc_id,
                ),
            )
            conn.execute("DELETE FROM scrolls_text WHERE rowid = ?", (doc_id,))
            conn.execute("DELETE FROM scrolls_ids WHERE rowid = ?", (doc_id,))
        else:
            cursor = conn.execute(
                """
                INSERT INTO scrolls (id, content, type, source, tags, hidden, other)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    row["id"],
                    row["content"],
                    row["type"],
                    row["source"],
                    row["tags"],
                    row["hidden"],
                    row["other"],
                ),
            )
            doc_id = cursor.lastrowid

        conn.execute(
            """
            INSERT INTO scrolls_text (rowid, content, source, tags, hidden, other)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                doc_id,
                fts_row["content"],
                fts_row["source"],
                fts_row["tags"],
                fts_row["hidden"],
                fts_row["other"],
            ),
        )
        conn.execute(
            "INSERT INTO scrolls_ids (rowid, id) VALUES (?, ?)", (doc_id, scroll_id)
        )

    def _delete(self, conn: sqlite3.Connection, scroll_id: str) -> bool:
        existing = conn.execute(
            "SELECT doc_id FROM scrolls WHERE id = ?", (scroll_id,)
        ).fetchone()
        if existing is None:
            return False

        doc_id = existing[0]
        conn.execute("DELETE FROM scrolls_text WHERE rowid = ?", (doc_id,))
        conn.execute("DELETE FROM scrolls_ids WHERE rowid = ?", (doc_id,))
        conn.execute("DELETE FROM scrolls WHERE doc_id = ?", (doc_id,))
        return True


def _fts_phrase(clause: QueryClause) -> Optional[str]:
    """Quote a term as an FTS5 phrase; None if it has nothing to tokenize."""
    if not re.search(r"\w", clause.term):
        return None
    phrase = '"' + clause.term.replace('"', '""') + '"'
    if clause.prefix:
        phrase += "*"
    return phrase


def _text_match(clause: QueryClause) -> Optional[str]:
    """FTS5 expression for the English-analysed fields, if the clause targets them."""
    if clause.field is not None and clause.field not in TEXT_FIELDS:
        return None
    phrase = _fts_phrase(clause)
    if phrase is None:
        return None
    if clause.field is None:
        return phrase
    return f"{clause.field} : {phrase}"


def _clause_predicate(clause: QueryClause) -> Tuple[str, List[Any]]:
    """SQL predicate over ``scrolls s`` that is true when the clause matches."""
    predicates = []
    params: List[Any] = []

    text_match = _text_match(clause)
    if text_match is not None:
        predicates.append(
            "s.doc_id IN (SELECT rowid FROM scrolls_text WHERE scrolls_text MATCH ?)"
        )
        params.append(text_match)

    if clause.field in (None, "id"):
        phrase = _fts_phrase(clause)
        if phrase is not None:
            predicates.append(
                "s.doc_id IN (SELECT rowid FROM scrolls_ids WHERE scrolls_ids MATCH ?)"
            )
            params.append(phrase)

    if clause.field in (None, "type"):
        if clause.prefix:
            predicates.append("instr(s.type, ?) = 1")
        else:
            predicates.append("s.type = ?")
        params.append(clause.term)

    if not predicates:
        return "0", []
    return "(" + " OR ".join(predicates) + ")", params


def _index_file(index_directory: str) -> Path:
    return Path(index_directory).expanduser() / INDEX_FILENAME


def open_existing_index(index_directory: str) -> ScrollIndex:
    """
    Open the index stored in ``index_directory``.

    Raises:
        IndexOpenError: If there is no usable, compatible index
    """
    db_path = _index_file(index_directory)
    if not db_path.is_file():
        raise IndexOpenError(f"no index at {db_path}")

    conn = None
    try:
        conn = sqlite3.connect(db_path.resolve().as_uri() + "?mode=rw", uri=True)
        row = conn.execute(
            "SELECT value FROM index_meta WHERE key = 'format_version'"
        ).fetchone()
        for table in ("scrolls", "scrolls_text", "scrolls_ids"):
            conn.execute(f"SELECT * FROM {table} LIMIT 0")
    except sqlite3.Error as e:
        if conn is not None:
            conn.close()
        raise IndexOpenError(f"open index {db_path}: {e}") from e

    try:
        if row is None:
            raise IndexOpenError(f"index {db_path} has no format version")
        try:
            stored = Version(row[0])
        except InvalidVersion as e:
            raise IndexOpenError(f"index {db_path} has invalid version {row[0]!r}") from e
        if stored.major != Version(INDEX_FORMAT_VERSION).major:
            raise IndexOpenError(
                f"index {db_path} has format {stored}, expected {INDEX_FORMAT_VERSION}"
            )
    except IndexOpenError:
        conn.close()
        raise

    logger.debug("Opened index at %s", db_path)
    return ScrollIndex(conn, db_path)


def create_new_index(index_directory: str) -> ScrollIndex:
    """
    Create an empty index in ``index_directory``, replacing any unusable
    index file left there.

    Raises:
        IndexCreateError: If the index cannot be created
    """
    db_path = _index_file(index_directory)
    conn = None
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        for stale in (db_path, db_path.with_name(db_path.name + "-journal")):
            if stale.exists():
                logger.warning("Removing unusable index file %s", stale)
                stale.unlink()

        conn = sqlite3.connect(str(db_path))
        conn.executescript(_SCHEMA)
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO index_meta (key, value) VALUES ('format_version', ?)",
                (INDEX_FORMAT_VERSION,),
            )
    except (OSError, sqlite3.Error) as e:
        if conn is not None:
            conn.close()
        raise IndexCreateError(f"create index {db_path}: {e}") from e

    logger.info("Created new index at %s", db_path)
    return ScrollIndex(conn, db_path)


def open_or_create_index(index_directory: str) -> Tuple[ScrollIndex, bool]:
    """
    Open the index in ``index_directory`` or create it if that fails.

    Returns:
        (index, was_created)
    """
    try:
        return open_existing_index(index_directory), False
    except IndexOpenError as e:
        logger.info("Could not open existing index, creating a new one: %s", e)
    return create_new_index(index_directory), True
