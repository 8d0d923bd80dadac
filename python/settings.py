import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from scrolls.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = "settings.json"
ENV_PREFIX = "SCROLLKEEPER_"


def _load_env_file(env_path: str) -> None:
    """
    Simple .env file parser that doesn't require external dependencies.
    Loads key=value pairs from .env file into os.environ.
    """
    if not os.path.isfile(env_path):
        return

    try:
        with open(env_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()

                # Skip empty lines and comments
                if not line or line.startswith("#"):
                    continue

                if "=" in line:
                    key, value = line.split("=", 1)  # Split on first = only
                    key = key.strip()
                    value = value.strip()

                    if (value.startswith('"') and value.endswith('"')) or (
                        value.startswith("'") and value.endswith("'")
                    ):
                        value = value[1:-1]

                    if key:
                        os.environ[key] = value

        logger.debug(".env file loaded from %s", env_path)

    except OSError as e:
        logger.warning("Failed to load .env file: %s", e)


@dataclass
class Settings:
    """
    Locations and limits used by the indexing and query core.

    A Settings value is passed explicitly to every component; nothing reads
    configuration from global state.
    """

    knowledge_directory: str
    alexandria_directory: str
    index_directory: str = ""
    watermark_file: str = ""
    max_results: int = 20
    scroll_extensions: List[str] = None

    def __post_init__(self):
        self.knowledge_directory = os.path.expanduser(self.knowledge_directory)
        self.alexandria_directory = os.path.expanduser(self.alexandria_directory)

        if not self.index_directory:
            self.index_directory = os.path.join(self.alexandria_directory, "index")
        if not self.watermark_file:
            self.watermark_file = os.path.join(
                self.alexandria_directory, "index_updated"
            )
        self.index_directory = os.path.expanduser(self.index_directory)
        self.watermark_file = os.path.expanduser(self.watermark_file)

        if self.scroll_extensions is None:
            self.scroll_extensions = [".tex"]

        if not isinstance(self.max_results, int) or self.max_results < 1:
            raise ConfigurationError(
                f"max_results must be a positive integer, got {self.max_results!r}"
            )

    @classmethod
    def from_file(
        cls, settings_file: str = DEFAULT_SETTINGS_FILE, env_file: Optional[str] = ".env"
    ) -> "Settings":
        """
        Load settings from a JSON file, letting SCROLLKEEPER_* environment
        variables override individual values.

        Raises:
            ConfigurationError: If the file is missing, invalid or incomplete
        """
        if env_file:
            _load_env_file(env_file)

        if not os.path.isfile(settings_file):
            raise ConfigurationError(f"settings file not found at '{settings_file}'")

        raw = cls._load_json(settings_file)
        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"settings file '{settings_file}' is empty or not a JSON object"
            )

        raw = dict(raw)
        raw.update(cls._env_overrides())

        settings = cls.from_dict(raw)
        logger.info("Settings loaded from '%s'.", settings_file)
        return settings

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Settings":
        missing = [
            key
            for key in ("knowledge_directory", "alexandria_directory")
            if not raw.get(key)
        ]
        if missing:
            raise ConfigurationError(f"missing settings: {', '.join(missing)}")

        extensions = raw.get("scroll_extensions")
        if extensions is not None and not isinstance(extensions, list):
            raise ConfigurationError("scroll_extensions must be a list of suffixes")

        return cls(
            knowledge_directory=raw["knowledge_directory"],
            alexandria_directory=raw["alexandria_directory"],
            index_directory=raw.get("index_directory", ""),
            watermark_file=raw.get("watermark_file", ""),
            max_results=raw.get("max_results", 20),
            scroll_extensions=extensions,
        )

    @staticmethod
    def _env_overrides() -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        for key in ("knowledge_directory", "alexandria_directory", "index_directory"):
            value = os.environ.get(ENV_PREFIX + key.upper())
            if value:
                overrides[key] = value

        max_results = os.environ.get(ENV_PREFIX + "MAX_RESULTS")
        if max_results:
            try:
                overrides["max_results"] = int(max_results)
            except ValueError as e:
                raise ConfigurationError(
                    f"{ENV_PREFIX}MAX_RESULTS must be an integer, got {max_results!r}"
                ) from e
        return overrides

    @staticmethod
    def _load_json(path: str) -> Any:
        """
        Loads JSON from the given file path.

        :param path: The path to the JSON file.
        :return: The parsed JSON if valid, otherwise None.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Error loading JSON file '%s': %s", path, e)
            return None
