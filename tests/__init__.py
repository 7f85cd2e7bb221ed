"""
lidgraph test suite.

This package contains:
- unit/: Tests for individual components (schema, table, index, engines)
- integration/: Whole-store behaviour across long operation sequences
"""
