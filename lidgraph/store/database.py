"""
Database facade for lidgraph.

The Database ties the schema, entity table, unique index and the three
engines together behind the public call interface:

    put(tree)                        merge an entity tree
    get(lid)                         denormalized copy, total
    lookup(field, value)             unique index read
    remove(parent_lid, field, lid)   sever one edge
    destroy(lid)                     delete with cascade

Invariants:
    - Referential symmetry holds after every public call returns
    - Nothing returned aliases store state; nothing passed in is retained
    - Instances share no state with each other

Thread-safety:
    - None. Every call runs to completion synchronously; calls from
      multiple threads, or from inside validate/sort callables, are
      unsupported.

Example:
    >>> db = Database({
    ...     "email": scalar(unique=True),
    ...     "tickets": collection("owner", destroy=True),
    ...     "owner": reference("tickets"),
    ... })
    >>> db.put({"lid": "u1", "email": "a@x.com", "tickets": [{"lid": "t1"}]})
    >>> db.get("t1")
    {'lid': 't1', 'owner': {'lid': 'u1', 'email': 'a@x.com', 'tickets': [{'lid': 't1'}]}}
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from ..config import Settings
from ..errors import ConfigurationError, ValidationError
from ..schema import FieldSpec, Schema
from .editor import RelationshipEditor
from .index import UniqueIndex
from .integrity import check_integrity
from .merge import MergeEngine
from .projection import ProjectionEngine
from .table import EntityTable

logger = logging.getLogger(__name__)


class Database:
    """In-memory entity graph store.

    Args:
        schema_config: Mapping of field name to FieldSpec or option dict,
            or an already built Schema
        settings: Store settings, loaded from the environment if omitted
        on_error: Called with every ValidationError raised by a discarded
            field write, after it is logged

    Raises:
        SchemaError: If the schema configuration is malformed
    """

    def __init__(
        self,
        schema_config: Mapping[str, FieldSpec | Mapping[str, Any]] | Schema,
        settings: Settings | None = None,
        on_error: Callable[[ValidationError], None] | None = None,
    ) -> None:
        self._schema = Schema.build(schema_config)
        self._settings = settings or Settings()
        self._on_error = on_error

        self._table = EntityTable()
        self._index = UniqueIndex(self._schema.unique_fields())
        self._editor = RelationshipEditor(self._schema, self._table, self._index)
        self._merge = MergeEngine(
            self._schema,
            self._table,
            self._index,
            self._editor,
            self._settings,
            self._report,
        )
        self._projection = ProjectionEngine(self._schema, self._table)

    @property
    def schema(self) -> Schema:
        """The built schema."""
        return self._schema

    @property
    def settings(self) -> Settings:
        return self._settings

    def put(self, tree: Mapping[str, Any]) -> None:
        """Merge an entity tree into the store.

        Scalars are replaced, collection references are unioned and None
        deletes a field. Rejected field writes are logged and passed to
        on_error; the rest of the tree still applies.

        Raises:
            InvalidEntityError: If tree is not a mapping with a string lid
        """
        self._merge.put(tree)

    def get(self, lid: str) -> dict[str, Any]:
        """Denormalized copy of the entity and everything reachable from it.

        Unknown lids yield {"lid": lid}.
        """
        return self._projection.project(lid)

    def lookup(self, field_name: str, value: Any) -> dict[str, Any] | None:
        """Find the entity holding value in a unique field.

        Returns:
            The same tree get() returns, or None if no entity holds value

        Raises:
            ConfigurationError: If field_name is not declared unique
        """
        if not self._schema.is_unique(field_name):
            raise ConfigurationError(
                f"lookup() requires a unique field, '{field_name}' is not declared unique",
                field_name=field_name,
            )
        if not isinstance(value, str):
            return None

        lid = self._index.holder(field_name, value)
        if lid is None:
            return None
        return self._projection.project(lid)

    def remove(self, parent_lid: str, field_name: str, child_lid: str) -> None:
        """Sever one edge on both sides. No-op if the edge does not exist."""
        self._editor.remove(parent_lid, field_name, child_lid)

    def destroy(self, lid: str) -> None:
        """Delete an entity, cascading along destroy=True fields."""
        self._editor.destroy(lid)

    def check_integrity(self) -> list[str]:
        """Describe every invariant violation; empty when consistent."""
        return check_integrity(self._schema, self._table, self._index)

    def lids(self) -> Iterator[str]:
        """Iterate over the lids of all stored entities."""
        return iter(self._table)

    def clear(self) -> None:
        """Drop every entity and index entry."""
        self._table.clear()
        self._index.clear()
        logger.debug("Cleared all entities")

    def _report(self, error: ValidationError) -> None:
        logger.log(self._settings.error_level, f"Discarded write: {error.message}")
        if self._on_error is not None:
            self._on_error(error)

    def __contains__(self, lid: object) -> bool:
        return lid in self._table

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"Database(entities={len(self._table)}, fields={len(self._schema)})"
