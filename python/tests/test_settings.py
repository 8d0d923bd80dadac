"""
Settings tests focusing on behavior, not implementation.
"""

import unittest
import tempfile
import os
import json
from unittest.mock import patch

from scrolls.exceptions import ConfigurationError
from settings import Settings


class TestSettingsBehavior(unittest.TestCase):
    """Test settings behavior and configuration outcomes."""

    def _write_settings(self, config):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
            json.dump(config, f)
            temp_path = f.name
        self.addCleanup(os.unlink, temp_path)
        return temp_path

    def test_settings_load_successfully(self):
        """Settings should load from valid JSON file."""
        temp_path = self._write_settings(
            {
                "knowledge_directory": "/library/scrolls",
                "alexandria_directory": "/library/alexandria",
                "max_results": 50,
                "scroll_extensions": [".tex", ".ltx"],
            }
        )

        with patch.dict(os.environ, {}, clear=True):
            settings = Settings.from_file(temp_path, env_file=None)

        self.assertEqual(settings.knowledge_directory, "/library/scrolls")
        self.assertEqual(settings.alexandria_directory, "/library/alexandria")
        self.assertEqual(settings.max_results, 50)
        self.assertEqual(settings.scroll_extensions, [".tex", ".ltx"])

    def test_settings_provide_defaults(self):
        """Index location and marker file derive from the alexandria directory."""
        settings = Settings(
            knowledge_directory="/library/scrolls",
            alexandria_directory="/library/alexandria",
        )

        self.assertEqual(settings.index_directory, "/library/alexandria/index")
        self.assertEqual(settings.watermark_file, "/library/alexandria/index_updated")
        self.assertEqual(settings.max_results, 20)
        self.assertEqual(settings.scroll_extensions, [".tex"])

    def test_home_directory_is_expanded(self):
        settings = Settings(
            knowledge_directory="~/scrolls", alexandria_directory="~/alexandria"
        )
        self.assertFalse(settings.knowledge_directory.startswith("~"))
        self.assertFalse(settings.index_directory.startswith("~"))

    def test_environment_variables_override_file(self):
        """SCROLLKEEPER_* variables take precedence over the JSON values."""
        temp_path = self._write_settings(
            {
                "knowledge_directory": "/library/scrolls",
                "alexandria_directory": "/library/alexandria",
            }
        )
        env = {
            "SCROLLKEEPER_KNOWLEDGE_DIRECTORY": "/elsewhere/scrolls",
            "SCROLLKEEPER_MAX_RESULTS": "5",
        }

        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_file(temp_path, env_file=None)

        self.assertEqual(settings.knowledge_directory, "/elsewhere/scrolls")
        self.assertEqual(settings.alexandria_directory, "/library/alexandria")
        self.assertEqual(settings.max_results, 5)

    def test_env_file_is_loaded(self):
        temp_path = self._write_settings(
            {
                "knowledge_directory": "/library/scrolls",
                "alexandria_directory": "/library/alexandria",
            }
        )
        with tempfile.NamedTemporaryFile(mode="w", suffix=".env", delete=False) as f:
            f.write("# local overrides\n")
            f.write('SCROLLKEEPER_ALEXANDRIA_DIRECTORY="/tmp/alexandria"\n')
            env_path = f.name
        self.addCleanup(os.unlink, env_path)

        with patch.dict(os.environ, {}, clear=True):
            settings = Settings.from_file(temp_path, env_file=env_path)

        self.assertEqual(settings.alexandria_directory, "/tmp/alexandria")

    def test_invalid_max_results_in_environment(self):
        temp_path = self._write_settings(
            {
                "knowledge_directory": "/library/scrolls",
                "alexandria_directory": "/library/alexandria",
            }
        )
        with patch.dict(os.environ, {"SCROLLKEEPER_MAX_RESULTS": "many"}, clear=True):
            with self.assertRaises(ConfigurationError):
                Settings.from_file(temp_path, env_file=None)

    def test_max_results_must_be_positive(self):
        with self.assertRaises(ConfigurationError):
            Settings(
                knowledge_directory="/library/scrolls",
                alexandria_directory="/library/alexandria",
                max_results=0,
            )

    def test_required_directories(self):
        """Both library directories must be configured."""
        with self.assertRaises(ConfigurationError) as ctx:
            Settings.from_dict({"knowledge_directory": "/library/scrolls"})
        self.assertIn("alexandria_directory", str(ctx.exception))

    def test_extensions_must_be_a_list(self):
        with self.assertRaises(ConfigurationError):
            Settings.from_dict(
                {
                    "knowledge_directory": "/library/scrolls",
                    "alexandria_directory": "/library/alexandria",
                    "scroll_extensions": ".tex",
                }
            )

    def test_settings_handle_missing_file(self):
        """Missing settings file should be reported as a configuration error."""
        with self.assertRaises(ConfigurationError):
            Settings.from_file("/nonexistent/path/settings.json", env_file=None)

    def test_settings_handle_invalid_json(self):
        """Invalid JSON should be reported as a configuration error."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
            f.write("invalid json content {")
            temp_path = f.name
        self.addCleanup(os.unlink, temp_path)

        with self.assertRaises(ConfigurationError):
            Settings.from_file(temp_path, env_file=None)

    def test_settings_reject_non_object_json(self):
        temp_path = self._write_settings(["not", "an", "object"])
        with self.assertRaises(ConfigurationError):
            Settings.from_file(temp_path, env_file=None)


if __name__ == "__main__":
    unittest.main()
