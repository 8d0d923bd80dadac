import time
from typing import TYPE_CHECKING, Any, Dict

from colored_logger import get_colored_logger
from .document_store import DocumentStore, ScrollFile
from .exceptions import StoreError
from .metadata_parser import parse
from .scroll_index import IndexBatch, open_existing_index, open_or_create_index
from .watermark import Watermark

if TYPE_CHECKING:
    from settings import Settings

logger = get_colored_logger(__name__)


class ScrollIndexer:
    """
    Keeps the search index in sync with the knowledge directory.

    Features:
    - Incremental updates: scrolls older than the watermark are skipped
    - Full rebuild whenever the index did not exist before
    - One atomic batch commit per update pass
    - Explicit removal, since update passes never notice deleted files
    """

    def __init__(
        self,
        settings: "Settings",
        store: DocumentStore = None,
        watermark: Watermark = None,
    ):
        """
        Args:
            settings: Locations of the knowledge directory, index and marker file
            store: DocumentStore instance. If None, one is built from settings.
            watermark: Watermark instance. If None, one is built from settings.
        """
        self.settings = settings
        self.store = store or DocumentStore(
            settings.knowledge_directory, settings.scroll_extensions
        )
        self.watermark = watermark or Watermark(settings.watermark_file)
        self.stats = self._new_stats()

    def update_index(self, force: bool = False) -> Dict[str, Any]:
        """
        Index every scroll created or modified since the last update.

        The cutoff for the next pass is the time this pass started, and it is
        only recorded once the batch has been committed.

        Args:
            force: Reprocess every scroll even if the index already existed

        Returns:
            Dictionary containing update statistics

        Raises:
            IndexCreateError: If no index could be opened or created
            StoreError: If the knowledge directory cannot be listed
            IndexUpdateError: If the batch commit fails
        """
        self.stats = self._new_stats()
        self.stats["start_time"] = time.time()

        index, created = open_or_create_index(self.settings.index_directory)
        with index:
            self.stats["index_created"] = created
            if created:
                # An empty index is rebuilt in full on every pass until one commits
                self.watermark.reset()
            last_update = self.watermark.read()
            scan_started = time.time()

            scroll_files = self.store.list_scrolls()
            logger.info(
                "Examining %d scrolls in %s",
                len(scroll_files),
                self.settings.knowledge_directory,
            )

            batch = index.new_batch()
            for scroll_file in scroll_files:
                self.stats["files_examined"] += 1
                if not (created or force) and scroll_file.modified_time < last_update:
                    self.stats["files_skipped"] += 1
                    continue
                self._stage(batch, scroll_file)

            index.batch(batch)

        self.watermark.advance(scan_started)
        return self._finalize_stats()

    def remove_from_index(self, scroll_id: str) -> bool:
        """
        Remove a scroll from the index.

        update_index has no way of knowing that a scroll was deleted, so callers
        must remove deleted scrolls explicitly.

        Returns:
            True if the scroll was indexed and has been removed

        Raises:
            IndexOpenError: If there is no existing index
            IndexDeleteError: If the deletion fails
        """
        with open_existing_index(self.settings.index_directory) as index:
            removed = index.delete(scroll_id)

        if removed:
            logger.info("Removed scroll %s from index", scroll_id)
        else:
            logger.warning("Scroll %s was not in the index", scroll_id)
        return removed

    def remove_missing(self) -> int:
        """
        Remove every indexed scroll whose file no longer exists.

        Returns:
            Number of scrolls removed
        """
        present = {scroll_file.id for scroll_file in self.store.list_scrolls()}
        with open_existing_index(self.settings.index_directory) as index:
            batch = index.new_batch()
            for scroll_id in index.ids():
                if scroll_id not in present:
                    batch.delete(scroll_id)
            index.batch(batch)

        if len(batch):
            logger.info("Removed %d deleted scrolls from index", len(batch))
        return len(batch)

    def _stage(self, batch: IndexBatch, scroll_file: ScrollFile) -> None:
        """Parse one scroll into the batch; failures are logged and skipped."""
        try:
            text = self.store.load(scroll_file)
            scroll = parse(scroll_file.id, text)
        except StoreError as e:
            logger.error("Failed to load scroll %s: %s", scroll_file.id, e)
            self.stats["files_failed"] += 1
            return
        except Exception as e:
            logger.error("Failed to parse scroll %s: %s", scroll_file.id, e)
            self.stats["files_failed"] += 1
            return

        batch.index(scroll_file.id, scroll)
        self.stats["files_indexed"] += 1
        logger.debug("Staged scroll %s", scroll_file.id)

    @staticmethod
    def _new_stats() -> Dict[str, Any]:
        return {
            "files_examined": 0,
            "files_indexed": 0,
            "files_skipped": 0,
            "files_failed": 0,
            "index_created": False,
            "start_time": 0,
            "end_time": 0,
            "elapsed_time": 0,
        }

    def _finalize_stats(self) -> Dict[str, Any]:
        """Finalize and return update statistics."""
        self.stats["end_time"] = time.time()
        self.stats["elapsed_time"] = self.stats["end_time"] - self.stats["start_time"]

        summary = "Index update complete. Examined: %d, Indexed: %d, Skipped: %d, Failed: %d"
        args = (
            self.stats["files_examined"],
            self.stats["files_indexed"],
            self.stats["files_skipped"],
            self.stats["files_failed"],
        )
        if self.stats["files_failed"]:
            logger.warning(summary, *args)
        else:
            logger.success(summary, *args)

        return self.stats.copy()
