#!/usr/bin/env python3

import argparse
import json
import sys
from typing import List

from colored_logger import setup_colored_logging, get_colored_logger
from scrolls import ScrollIndexer, SearchEngine, compute_statistics
from scrolls.exceptions import ScrollkeeperError
from settings import DEFAULT_SETTINGS_FILE, Settings

logger = get_colored_logger(__name__)


def _positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from e
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


class ScrollCLI:
    """
    Command-line interface for the scroll library.

    Provides commands for:
    - Updating the search index from the knowledge directory
    - Searching scrolls
    - Showing and removing indexed scrolls
    - Viewing library statistics
    """

    def __init__(self, settings: Settings = None):
        """
        Args:
            settings: Preloaded settings. If None, they are loaded from the
                file named by --settings.
        """
        self.settings = settings

    def run(self, args: List[str] = None) -> int:
        """
        Run the CLI with the given arguments.

        Args:
            args: Command line arguments. If None, uses sys.argv.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        parser = self._create_parser()
        parsed_args, extras = parser.parse_known_args(args)

        # Excluded search terms look like options to argparse
        if extras:
            if getattr(parsed_args, "command", None) != "search":
                parser.error(f"unrecognized arguments: {' '.join(extras)}")
            parsed_args.query.extend(extras)

        setup_colored_logging(level="DEBUG" if parsed_args.verbose else "INFO")

        if not hasattr(parsed_args, "func"):
            parser.print_help()
            return 1

        try:
            if self.settings is None:
                self.settings = Settings.from_file(parsed_args.settings)
            return parsed_args.func(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 1
        except ScrollkeeperError as e:
            logger.error("%s", e)
            return 1

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the argument parser with all subcommands."""
        parser = argparse.ArgumentParser(
            prog="scrollkeeper",
            description="Index and search a library of annotated LaTeX scrolls",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  %(prog)s index                       # Index new and modified scrolls
  %(prog)s index --force               # Reprocess every scroll
  %(prog)s search topology -analysis   # Scrolls about topology but not analysis
  %(prog)s search compact ~hausdorff   # 'hausdorff' is optional
  %(prog)s search -- sets -hilbert     # Use -- when a term clashes with an option
  %(prog)s show weierstrass            # Show the indexed metadata of a scroll
  %(prog)s remove weierstrass          # Drop a deleted scroll from the index
  %(prog)s stats                       # Show library statistics
            """,
        )

        parser.add_argument(
            "-v", "--verbose", action="store_true", help="Enable verbose logging"
        )
        parser.add_argument(
            "--settings",
            default=DEFAULT_SETTINGS_FILE,
            help=f"Path to the settings file (default: {DEFAULT_SETTINGS_FILE})",
        )

        subparsers = parser.add_subparsers(dest="command", help="Available commands")

        index_parser = subparsers.add_parser(
            "index", help="Index new and modified scrolls"
        )
        index_parser.add_argument(
            "--force",
            action="store_true",
            help="Reprocess all scrolls (ignore modification times)",
        )
        index_parser.set_defaults(func=self._cmd_index)

        prune_parser = subparsers.add_parser(
            "prune", help="Remove scrolls whose files were deleted"
        )
        prune_parser.set_defaults(func=self._cmd_prune)

        search_parser = subparsers.add_parser("search", help="Search indexed scrolls")
        search_parser.add_argument(
            "query",
            nargs="*",
            help="Words to search for; prefix with - to exclude, ~ to make optional",
        )
        search_parser.add_argument(
            "--limit",
            type=_positive_int,
            help="Maximum results to show (default: max_results setting)",
        )
        search_parser.add_argument(
            "--format",
            choices=["list", "json"],
            default="list",
            help="Output format (default: list)",
        )
        search_parser.set_defaults(func=self._cmd_search)

        show_parser = subparsers.add_parser("show", help="Show an indexed scroll")
        show_parser.add_argument("scroll_id", help="Scroll ID (file name without extension)")
        show_parser.set_defaults(func=self._cmd_show)

        remove_parser = subparsers.add_parser(
            "remove", help="Remove scrolls from the index"
        )
        remove_parser.add_argument("scroll_ids", nargs="+", help="Scroll IDs to remove")
        remove_parser.set_defaults(func=self._cmd_remove)

        stats_parser = subparsers.add_parser("stats", help="Show library statistics")
        stats_parser.set_defaults(func=self._cmd_stats)

        return parser

    # Command implementations
    def _cmd_index(self, args) -> int:
        stats = ScrollIndexer(self.settings).update_index(force=args.force)

        print("\nIndexing Results:")
        print(f"  Scrolls examined: {stats['files_examined']}")
        print(f"  Scrolls indexed: {stats['files_indexed']}")
        print(f"  Scrolls skipped: {stats['files_skipped']}")
        print(f"  Scrolls failed: {stats['files_failed']}")
        print(f"  Time elapsed: {stats['elapsed_time']:.1f} seconds")

        if stats["files_failed"] > 0:
            print(f"  {stats['files_failed']} scrolls failed to index")
            return 1
        return 0

    def _cmd_prune(self, args) -> int:
        removed = ScrollIndexer(self.settings).remove_missing()
        print(f"Removed {removed} scroll(s) from the index.")
        return 0

    def _cmd_search(self, args) -> int:
        raw_query = " ".join(args.query)
        results = SearchEngine(self.settings).find_scrolls(raw_query, args.limit)

        if args.format == "json":
            output = {
                "query": raw_query,
                "translated": results.query,
                "total": results.total,
                "matches": [
                    {"id": hit.id, "score": round(hit.score, 4)} for hit in results.hits
                ],
            }
            print(json.dumps(output, indent=2))
            return 0

        if not results.hits:
            print("No results found.")
            return 0

        print(f"\nFound {results.total} scroll(s), showing {len(results.hits)}:")
        for i, hit in enumerate(results.hits, 1):
            print(f"{i:>3}. {hit.id}")
        return 0

    def _cmd_show(self, args) -> int:
        scroll = SearchEngine(self.settings).get_scroll(args.scroll_id)
        if scroll is None:
            print(f"Scroll {args.scroll_id} is not in the index.")
            return 1

        print(f"ID:      {scroll.id}")
        print(f"Type:    {scroll.type or '-'}")
        print(f"Tags:    {', '.join(scroll.tags) or '-'}")
        if scroll.hidden:
            print(f"Hidden:  {', '.join(scroll.hidden)}")
        for line in scroll.source_lines:
            print(f"Source:  {line}")
        for line in scroll.other_lines:
            print(f"Other:   {line}")
        print()
        print(scroll.content)
        return 0

    def _cmd_remove(self, args) -> int:
        indexer = ScrollIndexer(self.settings)
        missing = [
            scroll_id
            for scroll_id in args.scroll_ids
            if not indexer.remove_from_index(scroll_id)
        ]
        removed = len(args.scroll_ids) - len(missing)
        print(f"Removed {removed} scroll(s) from the index.")
        if missing:
            print(f"Not in the index: {', '.join(missing)}")
        return 0

    def _cmd_stats(self, args) -> int:
        stats = compute_statistics(self.settings)
        print(stats.describe())
        return 0


def main():
    """Main entry point for the scrollkeeper CLI."""
    cli = ScrollCLI()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
