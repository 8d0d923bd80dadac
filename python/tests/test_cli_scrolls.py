"""
Integration tests for the scrollkeeper command-line tool.
"""

import io
import json
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from cli_scrolls import ScrollCLI
from settings import Settings


class TestScrollCLIBehavior(unittest.TestCase):
    """Test the scrollkeeper commands end to end on a small library."""

    def setUp(self):
        """Set up a knowledge directory with a few scrolls."""
        self.temp_dir = tempfile.mkdtemp()
        self.knowledge_dir = Path(self.temp_dir) / "knowledge"
        self.knowledge_dir.mkdir()
        self.settings = Settings(
            knowledge_directory=str(self.knowledge_dir),
            alexandria_directory=str(Path(self.temp_dir) / "alexandria"),
        )

        scrolls = {
            "urysohn": "Normal spaces separate closed sets by functions.\n\n"
            "% @type lemma\n% @source Munkres, Topology\n% topology, separation",
            "tychonoff": "Products of compact spaces are compact.\n\n"
            "% @type theorem\n% topology, compactness",
            "sylow": "Sylow subgroups exist for every prime power.\n\n"
            "% @type theorem\n% algebra",
        }
        for scroll_id, text in scrolls.items():
            (self.knowledge_dir / f"{scroll_id}.tex").write_text(text, encoding="utf-8")

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _run(self, *args):
        """Run the CLI and return (exit code, captured stdout)."""
        with patch("sys.stdout", new_callable=io.StringIO) as stdout:
            with patch("cli_scrolls.setup_colored_logging"):
                result = ScrollCLI(self.settings).run(list(args))
        return result, stdout.getvalue()

    def test_index_command(self):
        result, output = self._run("index")

        self.assertEqual(result, 0)
        self.assertIn("Scrolls indexed: 3", output)
        self.assertIn("Scrolls failed: 0", output)

    def test_index_reports_failures(self):
        (self.knowledge_dir / "broken.tex").write_bytes(b"\xff\xfe invalid")

        result, output = self._run("index")

        self.assertEqual(result, 1)
        self.assertIn("1 scrolls failed to index", output)

    def test_search_command_lists_matches(self):
        self._run("index")

        result, output = self._run("search", "topology", "-compactness")

        self.assertEqual(result, 0)
        self.assertIn("Found 1 scroll(s), showing 1:", output)
        self.assertIn("1. urysohn", output)

    def test_search_without_matches(self):
        self._run("index")

        result, output = self._run("search", "galois")

        self.assertEqual(result, 0)
        self.assertIn("No results found.", output)

    def test_search_json_format(self):
        self._run("index")

        result, output = self._run("search", "theorem", "--format", "json")

        self.assertEqual(result, 0)
        data = json.loads(output)
        self.assertEqual(data["translated"], "+theorem")
        self.assertEqual(data["total"], 2)
        self.assertEqual(
            sorted(match["id"] for match in data["matches"]), ["sylow", "tychonoff"]
        )

    def test_search_without_index_fails(self):
        result, _output = self._run("search", "topology")
        self.assertEqual(result, 1)

    def test_show_command(self):
        self._run("index")

        result, output = self._run("show", "urysohn")

        self.assertEqual(result, 0)
        self.assertIn("Type:    lemma", output)
        self.assertIn("Tags:    topology, separation", output)
        self.assertIn("Source:  Munkres, Topology", output)
        self.assertIn("Normal spaces separate closed sets by functions.", output)
        self.assertNotIn("@type", output)

    def test_show_unknown_scroll(self):
        self._run("index")

        result, output = self._run("show", "zorn")

        self.assertEqual(result, 1)
        self.assertIn("not in the index", output)

    def test_remove_command(self):
        self._run("index")

        result, output = self._run("remove", "sylow", "zorn")

        self.assertEqual(result, 0)
        self.assertIn("Removed 1 scroll(s) from the index.", output)
        self.assertIn("Not in the index: zorn", output)
        _result, output = self._run("search", "algebra")
        self.assertIn("No results found.", output)

    def test_prune_command(self):
        self._run("index")
        os.remove(self.knowledge_dir / "tychonoff.tex")

        result, output = self._run("prune")

        self.assertEqual(result, 0)
        self.assertIn("Removed 1 scroll(s) from the index.", output)

    def test_stats_command(self):
        self._run("index")

        result, output = self._run("stats")

        self.assertEqual(result, 0)
        self.assertIn("The library contains 3 scrolls", output)

    def test_search_leading_excluded_term(self):
        self._run("index")

        result, output = self._run("search", "-algebra", "theorem")

        self.assertEqual(result, 0)
        self.assertIn("1. tychonoff", output)

    def test_search_rejects_limit_below_one(self):
        self._run("index")

        for limit in ("0", "-1"):
            with patch("sys.stderr", new_callable=io.StringIO) as stderr:
                with self.assertRaises(SystemExit):
                    self._run("search", "topology", "--limit", limit)
            self.assertIn("must be at least 1", stderr.getvalue())

    def test_search_limit_caps_results(self):
        self._run("index")

        result, output = self._run("search", "topology", "--limit", "1")

        self.assertEqual(result, 0)
        self.assertIn("Found 2 scroll(s), showing 1:", output)

    def test_unknown_option_outside_search(self):
        with patch("sys.stderr", new_callable=io.StringIO):
            with self.assertRaises(SystemExit):
                self._run("stats", "--bogus")

    def test_no_command_prints_help(self):
        result, output = self._run()

        self.assertEqual(result, 1)
        self.assertIn("usage:", output)

    def test_missing_settings_file(self):
        """Without preloaded settings the CLI reads the --settings file."""
        missing = os.path.join(self.temp_dir, "nope.json")
        with patch("sys.stdout", new_callable=io.StringIO):
            with patch("cli_scrolls.setup_colored_logging"):
                result = ScrollCLI().run(["--settings", missing, "stats"])

        self.assertEqual(result, 1)


if __name__ == "__main__":
    unittest.main()
