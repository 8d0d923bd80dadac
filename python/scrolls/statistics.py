import sqlite3
from typing import TYPE_CHECKING

from colored_logger import get_colored_logger
from .document_store import DocumentStore
from .exceptions import ScrollIndexError, StatisticsError, StoreError
from .models import Statistics
from .scroll_index import open_existing_index

if TYPE_CHECKING:
    from settings import Settings

logger = get_colored_logger(__name__)


def compute_statistics(settings: "Settings", store: DocumentStore = None) -> Statistics:
    """
    Count the scrolls in the index and compute the combined size of the
    knowledge directory.

    Raises:
        StatisticsError: If the index cannot be opened or the directory walked
    """
    store = store or DocumentStore(
        settings.knowledge_directory, settings.scroll_extensions
    )

    try:
        index = open_existing_index(settings.index_directory)
    except ScrollIndexError as e:
        raise StatisticsError(f"open existing index: {e}") from e

    with index:
        try:
            size = store.total_size()
        except StoreError as e:
            raise StatisticsError(f"get size of library directory: {e}") from e

        try:
            num = index.doc_count()
        except (sqlite3.Error, ScrollIndexError) as e:
            raise StatisticsError(f"get number of scrolls in the index: {e}") from e

    stats = Statistics(num_scrolls=num, total_size=size)
    logger.debug("Library statistics: %d scrolls, %d bytes", num, size)
    return stats
