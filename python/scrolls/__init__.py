"""
Scrollkeeper Indexing Module

Maintains a full-text search index over a directory of annotated LaTeX
snippets ("scrolls") and answers queries against it.

Key Components:
- metadata_parser: Extracts tags, type and sources from trailing comments
- DocumentStore: Lists and reads scroll files in the knowledge directory
- ScrollIndex: SQLite FTS5 index storage with atomic batches
- ScrollIndexer: Incremental index updates driven by a watermark file
- SearchEngine: Query translation and ranked search
- compute_statistics: Scroll count and library size
"""

from .models import Scroll, Directive, DirectiveKind, Statistics
from .metadata_parser import parse, find_metadata_lines, parse_tags, strip_comments
from .document_store import DocumentStore, ScrollFile
from .scroll_index import (
    IndexBatch,
    ScrollIndex,
    create_new_index,
    open_existing_index,
    open_or_create_index,
)
from .watermark import Watermark
from .indexer import ScrollIndexer
from .query_translator import translate_query, parse_query
from .search_engine import SearchEngine, SearchHit, SearchResults, search
from .statistics import compute_statistics

__all__ = [
    "Scroll",
    "Directive",
    "DirectiveKind",
    "Statistics",
    "parse",
    "find_metadata_lines",
    "parse_tags",
    "strip_comments",
    "DocumentStore",
    "ScrollFile",
    "IndexBatch",
    "ScrollIndex",
    "create_new_index",
    "open_existing_index",
    "open_or_create_index",
    "Watermark",
    "ScrollIndexer",
    "translate_query",
    "parse_query",
    "SearchEngine",
    "SearchHit",
    "SearchResults",
    "search",
    "compute_statistics",
]
