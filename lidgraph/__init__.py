"""
lidgraph - in-memory entity graph store.

This package provides a schema-driven, in-process store for application
entities:
- Schema definitions (FieldSpec, scalar, reference, collection)
- Database: put / get / lookup / remove / destroy
- Bidirectional relationship maintenance and cascading deletion

Example:
    >>> from lidgraph import Database, collection, reference, scalar
    >>>
    >>> db = Database({
    ...     "name": scalar(),
    ...     "tickets": collection("owner", destroy=True),
    ...     "owner": reference("tickets"),
    ... })
    >>> db.put({"lid": "user1", "name": "Ada", "tickets": [{"lid": "t1"}]})
    >>> db.get("t1")["owner"]["name"]
    'Ada'
    >>> db.destroy("user1")
    >>> db.get("t1")
    {'lid': 't1'}

Invariants:
    - Every reference is mirrored by its reverse field
    - Returned trees never alias store state
    - Nothing is persisted

Version: 1.0.0
"""

__version__ = "1.0.0"

from .config import Settings, setup_logging
from .errors import (
    ConfigurationError,
    InvalidEntityError,
    LidGraphError,
    SchemaError,
    UniqueConstraintViolation,
    ValidationError,
)
from .schema import (
    LID,
    FieldKind,
    FieldSpec,
    Schema,
    build_schema,
    collection,
    reference,
    scalar,
)
from .store import Database

__all__ = [
    # Version
    "__version__",
    # Schema
    "LID",
    "FieldSpec",
    "FieldKind",
    "Schema",
    "build_schema",
    "scalar",
    "reference",
    "collection",
    # Store
    "Database",
    # Config
    "Settings",
    "setup_logging",
    # Errors
    "LidGraphError",
    "SchemaError",
    "ValidationError",
    "UniqueConstraintViolation",
    "ConfigurationError",
    "InvalidEntityError",
]
