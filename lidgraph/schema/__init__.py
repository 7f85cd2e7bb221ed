"""
Schema module for lidgraph.

This module provides the field declarations every store is built from:
- Field definitions (FieldSpec, FieldKind)
- Convenience constructors (scalar, reference, collection)
- The immutable Schema and its construction-time validation

Invariants:
    - A schema is validated once, when the Database is constructed
    - Reference fields are always declared in mirrored pairs
    - The lid field is implicit and cannot be declared

How to change safely:
    - Add new fields freely; existing entities simply lack them
    - Changing a field's reverse requires changing both sides together
"""

from .registry import Schema, build_schema
from .types import (
    LID,
    Comparator,
    FieldKind,
    FieldSpec,
    Validator,
    collection,
    reference,
    scalar,
)

__all__ = [
    # Types
    "LID",
    "FieldSpec",
    "FieldKind",
    "Validator",
    "Comparator",
    "scalar",
    "reference",
    "collection",
    # Registry
    "Schema",
    "build_schema",
]
