"""
Exceptions raised by the scroll indexing and query core.

Every I/O boundary raises one of these with the underlying error chained,
so callers see both the failing operation and its cause.
"""


class ScrollkeeperError(Exception):
    """Base exception for all scrollkeeper errors."""
    pass


class ConfigurationError(ScrollkeeperError):
    """Raised when settings are missing or invalid."""
    pass


class StoreError(ScrollkeeperError):
    """Raised when the knowledge directory cannot be listed or walked."""
    pass


class ScrollNotFoundError(StoreError):
    """Raised when no file exists for a scroll ID."""
    pass


class ScrollReadError(StoreError):
    """Raised when a scroll file exists but cannot be read or decoded."""
    pass


class ScrollIndexError(ScrollkeeperError):
    """Base exception for search index operations."""
    pass


class IndexOpenError(ScrollIndexError):
    """Raised when an existing index is missing, corrupt or incompatible."""
    pass


class IndexCreateError(ScrollIndexError):
    """Raised when a new index cannot be created."""
    pass


class IndexUpdateError(ScrollIndexError):
    """Raised when a batch cannot be committed."""
    pass


class IndexDeleteError(ScrollIndexError):
    """Raised when a scroll cannot be removed from the index."""
    pass


class QueryError(ScrollkeeperError):
    """Raised when a query cannot be parsed or executed."""
    pass


class StatisticsError(ScrollkeeperError):
    """Raised when library statistics cannot be computed."""
    pass
