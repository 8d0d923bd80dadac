from dataclasses import dataclass
from typing import TYPE_CHECKING, List

from colored_logger import get_colored_logger
from .exceptions import QueryError
from .query_translator import parse_query, translate_query
from .scroll_index import ScrollIndex, open_existing_index

if TYPE_CHECKING:
    from settings import Settings

logger = get_colored_logger(__name__)


@dataclass
class SearchHit:
    """A matching scroll and its relevance score (higher is better)."""

    id: str
    score: float = 0.0


@dataclass
class SearchResults:
    """
    Ranked matches for a query. ``total`` counts every match and may exceed
    the number of hits returned.
    """

    query: str
    total: int
    hits: List[SearchHit] = None

    def __post_init__(self):
        if self.hits is None:
            self.hits = []

    @property
    def ids(self) -> List[str]:
        return [hit.id for hit in self.hits]


def search(index: ScrollIndex, translated_query: str, max_results: int) -> SearchResults:
    """
    Execute an engine-syntax query against an open index.

    Raises:
        QueryError: If the query cannot be executed or max_results is below 1
    """
    if max_results < 1:
        raise QueryError(f"max_results must be at least 1, got {max_results}")
    clauses = parse_query(translated_query)
    total, rows = index.search(clauses, max_results)
    return SearchResults(
        query=translated_query,
        total=total,
        hits=[SearchHit(id=scroll_id, score=score) for scroll_id, score in rows],
    )


class SearchEngine:
    """
    Finds scrolls for user queries.

    Each query opens the existing index, runs and closes it again.
    """

    def __init__(self, settings: "Settings"):
        self.settings = settings

    def find_scrolls(self, raw_query: str, max_results: int = None) -> SearchResults:
        """
        Translate a user query and run it.

        Args:
            raw_query: Space separated words, optionally prefixed with +, - or ~
            max_results: Overrides the configured result cap

        Raises:
            IndexOpenError: If there is no index yet
            QueryError: If the query cannot be executed
        """
        translated = translate_query(raw_query)
        limit = self.settings.max_results if max_results is None else max_results
        logger.debug("Translated query %r to %r", raw_query, translated)

        with open_existing_index(self.settings.index_directory) as index:
            results = search(index, translated, limit)

        logger.info(
            "Query %r matched %d scrolls (showing %d)",
            raw_query,
            results.total,
            len(results.hits),
        )
        return results

    def get_scroll(self, scroll_id: str):
        """Return the indexed record for ``scroll_id``, or None."""
        with open_existing_index(self.settings.index_directory) as index:
            return index.document(scroll_id)
