import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from colored_logger import get_colored_logger
from .exceptions import ScrollNotFoundError, ScrollReadError, StoreError

logger = get_colored_logger(__name__)


@dataclass(frozen=True)
class ScrollFile:
    """A scroll file found in the knowledge directory."""

    id: str
    path: Path
    modified_time: float
    size: int


class DocumentStore:
    """
    Read access to the flat knowledge directory holding ``<id>.<ext>`` files.
    """

    def __init__(self, knowledge_directory: str, extensions: Optional[Iterable[str]] = None):
        """
        Args:
            knowledge_directory: Directory containing the scroll files
            extensions: Accepted file suffixes (e.g. [".tex"]). Empty or None
                accepts every file.
        """
        self.knowledge_directory = Path(knowledge_directory)
        self.extensions = list(extensions or [])

    def list_scrolls(self) -> List[ScrollFile]:
        """
        List the scroll files in the knowledge directory, sorted by ID.

        Raises:
            StoreError: If the directory cannot be read
        """
        scroll_files = []
        try:
            with os.scandir(self.knowledge_directory) as entries:
                for entry in entries:
                    if entry.name.startswith(".") or not entry.is_file():
                        continue
                    path = Path(entry.path)
                    if not self._accepts(path):
                        continue
                    stat = entry.stat()
                    scroll_files.append(
                        ScrollFile(
                            id=path.stem,
                            path=path,
                            modified_time=stat.st_mtime,
                            size=stat.st_size,
                        )
                    )
        except OSError as e:
            raise StoreError(
                f"read knowledge directory {self.knowledge_directory}: {e}"
            ) from e

        scroll_files.sort(key=lambda f: (f.id, f.path.name))
        logger.debug(
            "Found %d scroll files in %s", len(scroll_files), self.knowledge_directory
        )
        return scroll_files

    def read(self, scroll_id: str) -> str:
        """
        Read the text of a scroll by its ID.

        Raises:
            ScrollNotFoundError: If no file exists for the ID
            ScrollReadError: If the file cannot be read or decoded
        """
        path = self.path_for(scroll_id)
        if path is None:
            raise ScrollNotFoundError(f"no scroll with id {scroll_id!r}")
        return self._read_path(path)

    def load(self, scroll_file: ScrollFile) -> str:
        """Read the text of a listed scroll file."""
        if not scroll_file.path.is_file():
            raise ScrollNotFoundError(f"scroll file vanished: {scroll_file.path}")
        return self._read_path(scroll_file.path)

    def path_for(self, scroll_id: str) -> Optional[Path]:
        """Return the path of the file holding ``scroll_id``, if any."""
        if self.extensions:
            for ext in self.extensions:
                candidate = self.knowledge_directory / f"{scroll_id}{ext}"
                if candidate.is_file():
                    return candidate
            return None

        for candidate in sorted(self.knowledge_directory.glob(f"{scroll_id}.*")):
            if candidate.is_file() and candidate.stem == scroll_id:
                return candidate
        return None

    def total_size(self) -> int:
        """
        Sum the sizes of all files below the knowledge directory.

        Raises:
            StoreError: If any part of the directory cannot be walked
        """

        def _raise(error: OSError) -> None:
            raise error

        total = 0
        try:
            for root, _dirs, files in os.walk(self.knowledge_directory, onerror=_raise):
                for name in files:
                    total += os.path.getsize(os.path.join(root, name))
        except OSError as e:
            raise StoreError(
                f"get size of library directory {self.knowledge_directory}: {e}"
            ) from e
        return total

    def _accepts(self, path: Path) -> bool:
        return not self.extensions or path.suffix in self.extensions

    def _read_path(self, path: Path) -> str:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except UnicodeDecodeError as e:
            raise ScrollReadError(f"decode {path}: {e}") from e
        except OSError as e:
            raise ScrollReadError(f"read {path}: {e}") from e
