"""
Store module for lidgraph.

This module contains the entity store engine:
- EntityTable: authoritative lid -> entity state
- UniqueIndex: (field, value) -> lid for unique scalar fields
- MergeEngine: put()
- ProjectionEngine: get() and lookup() results
- RelationshipEditor: remove() and destroy()
- Database: the public facade over all of the above
"""

from .database import Database
from .editor import RelationshipEditor
from .index import UniqueIndex
from .integrity import check_integrity
from .merge import MergeEngine
from .projection import ProjectionEngine
from .table import Entity, EntityTable

__all__ = [
    "Database",
    "Entity",
    "EntityTable",
    "UniqueIndex",
    "MergeEngine",
    "ProjectionEngine",
    "RelationshipEditor",
    "check_integrity",
]
