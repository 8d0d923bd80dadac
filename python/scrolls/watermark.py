import os
import time
from pathlib import Path
from typing import Optional

from colored_logger import get_colored_logger

logger = get_colored_logger(__name__)


class Watermark:
    """
    Timestamp of the last index update, stored as the modification time of an
    empty marker file.

    The marker only serves to skip unchanged scrolls, so failing to read or
    write it costs redundant work at worst and is never raised.
    """

    def __init__(self, marker_file: str):
        self.marker_file = Path(marker_file)

    def read(self) -> float:
        """Return the recorded time, or 0.0 (the epoch) if it cannot be read."""
        try:
            return os.stat(self.marker_file).st_mtime
        except OSError as e:
            logger.warning("Could not read index watermark %s: %s", self.marker_file, e)
            return 0.0

    def advance(self, timestamp: Optional[float] = None) -> bool:
        """
        Set the recorded time, creating the marker file if needed.

        Returns:
            True if the marker was updated
        """
        if timestamp is None:
            timestamp = time.time()
        try:
            self.marker_file.parent.mkdir(parents=True, exist_ok=True)
            self.marker_file.touch(exist_ok=True)
            os.utime(self.marker_file, (timestamp, timestamp))
        except OSError as e:
            logger.error("Could not update index watermark %s: %s", self.marker_file, e)
            return False
        logger.debug("Index watermark set to %.3f", timestamp)
        return True

    def reset(self) -> bool:
        """
        Forget the recorded time so the next read returns the epoch.

        Returns:
            True if no marker file remains
        """
        try:
            self.marker_file.unlink()
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.error("Could not reset index watermark %s: %s", self.marker_file, e)
            return False
        logger.debug("Index watermark reset")
        return True
