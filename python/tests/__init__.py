"""
Test suite for scrollkeeper.

This package contains tests for the scroll library modules, including unit
tests for metadata parsing and query translation and integration tests that
build real indexes in temporary directories.

Test Categories:
- Unit tests: Test individual functions and classes in isolation
- Integration tests: Test indexing, searching and the CLI end to end
- Edge case tests: Test unreadable scrolls, failed commits and missing indexes
"""
