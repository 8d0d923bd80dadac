import shutil
import tempfile
import unittest
from pathlib import Path

from scrolls.exceptions import StatisticsError
from scrolls.indexer import ScrollIndexer
from scrolls.models import Statistics
from scrolls.scroll_index import create_new_index
from scrolls.statistics import compute_statistics
from settings import Settings


class TestComputeStatistics(unittest.TestCase):
    """Test cases for compute_statistics."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.knowledge_dir = Path(self.temp_dir) / "knowledge"
        self.knowledge_dir.mkdir()
        self.settings = Settings(
            knowledge_directory=str(self.knowledge_dir),
            alexandria_directory=str(Path(self.temp_dir) / "alexandria"),
        )

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_empty_library(self):
        """An empty directory with an empty index has no scrolls and no size."""
        create_new_index(self.settings.index_directory).close()

        stats = compute_statistics(self.settings)

        self.assertEqual(stats, Statistics(num_scrolls=0, total_size=0))

    def test_counts_indexed_scrolls_and_sums_sizes(self):
        (self.knowledge_dir / "a.tex").write_bytes(b"x" * 100)
        (self.knowledge_dir / "b.tex").write_bytes(b"y" * 300)
        ScrollIndexer(self.settings).update_index()

        stats = compute_statistics(self.settings)

        self.assertEqual(stats.num_scrolls, 2)
        self.assertEqual(stats.total_size, 400)

    def test_missing_index_is_an_error(self):
        with self.assertRaises(StatisticsError):
            compute_statistics(self.settings)

    def test_missing_directory_is_an_error(self):
        create_new_index(self.settings.index_directory).close()
        shutil.rmtree(self.knowledge_dir)

        with self.assertRaises(StatisticsError):
            compute_statistics(self.settings)

    def test_describe(self):
        stats = Statistics(num_scrolls=3, total_size=2048)
        self.assertEqual(
            stats.describe(),
            "The library contains 3 scrolls with a total size of 2.0 kiB.",
        )


if __name__ == "__main__":
    unittest.main()
