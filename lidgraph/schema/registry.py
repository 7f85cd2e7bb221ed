"""
Schema registry for lidgraph.

The Schema is built once from a configuration mapping and is immutable
afterwards. It provides:
- Field lookup by name
- Reference/unique field listings used by the store engines
- Schema fingerprinting for consistency checks

Invariants:
    - Every reference field names a reverse field that exists, is itself a
      reference field and names the first field as its reverse
    - A field may be its own reverse (symmetric relationship)
    - No partially built schema is ever returned; build() either succeeds
      or raises SchemaError

Example:
    >>> from lidgraph.schema import Schema, collection, reference, scalar
    >>> schema = Schema.build({
    ...     "email": scalar(unique=True),
    ...     "tickets": collection("owner", destroy=True),
    ...     "owner": reference("tickets"),
    ... })
    >>> schema.get_field("owner").reverse
    'tickets'
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterator, Mapping
from dataclasses import replace
from types import MappingProxyType
from typing import Any

from ..errors import SchemaError
from .types import FieldSpec

logger = logging.getLogger(__name__)


class Schema:
    """Immutable set of field definitions shared by every entity in a store.

    Attributes:
        fingerprint: SHA-256 hash of the canonical schema form
    """

    def __init__(self, field_specs: Mapping[str, FieldSpec]) -> None:
        """Wrap already validated field specs. Use Schema.build() instead."""
        self._fields = MappingProxyType(dict(field_specs))
        self._references = tuple(f for f in self._fields.values() if f.is_reference)
        self._unique = frozenset(f.name for f in self._fields.values() if f.unique)
        self._fingerprint = self._compute_fingerprint()

    @classmethod
    def build(cls, config: Mapping[str, FieldSpec | Mapping[str, Any]]) -> Schema:
        """Parse and validate a schema configuration.

        Args:
            config: Mapping of field name to a FieldSpec or a plain dict of
                FieldSpec options

        Returns:
            The built Schema

        Raises:
            SchemaError: On malformed field specs or reverse declarations
        """
        if isinstance(config, Schema):
            return config
        if not isinstance(config, Mapping):
            raise SchemaError(
                f"Schema config must be a mapping, got {type(config).__name__}"
            )

        specs: dict[str, FieldSpec] = {}
        for name, raw in config.items():
            if not isinstance(name, str) or not name:
                raise SchemaError(f"Field names must be non-empty strings, got {name!r}")
            specs[name] = _parse_field(name, raw)

        _check_reverse_pairs(specs)

        schema = cls(specs)
        logger.debug(
            f"Built schema with {len(specs)} fields, fingerprint: {schema.fingerprint}"
        )
        return schema

    @property
    def fingerprint(self) -> str:
        """Schema fingerprint."""
        return self._fingerprint

    def get_field(self, name: str) -> FieldSpec | None:
        """Get a field spec by name, or None if undeclared."""
        return self._fields.get(name)

    def reverse_of(self, spec: FieldSpec) -> FieldSpec:
        """Get the mirrored field of a reference field."""
        return self._fields[spec.reverse]

    def is_unique(self, name: str) -> bool:
        """Whether the field is declared unique."""
        return name in self._unique

    def references(self) -> tuple[FieldSpec, ...]:
        """All reference fields, in declaration order."""
        return self._references

    def unique_fields(self) -> frozenset[str]:
        """Names of all unique fields."""
        return self._unique

    def __iter__(self) -> Iterator[FieldSpec]:
        yield from self._fields.values()

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, fields sorted by name."""
        return {"fields": [self._fields[name].to_dict() for name in sorted(self._fields)]}

    def to_json(self, indent: int | None = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    def _compute_fingerprint(self) -> str:
        canonical = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        hash_bytes = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
        return f"sha256:{hash_bytes}"

    def __repr__(self) -> str:
        return f"Schema(fields={sorted(self._fields)!r})"


def build_schema(config: Mapping[str, FieldSpec | Mapping[str, Any]]) -> Schema:
    """Build a Schema from configuration. See Schema.build()."""
    return Schema.build(config)


def _parse_field(name: str, raw: FieldSpec | Mapping[str, Any]) -> FieldSpec:
    if isinstance(raw, FieldSpec):
        if raw.name and raw.name != name:
            raise SchemaError(
                f"Field declared under '{name}' is named '{raw.name}'", field_name=name
            )
        return replace(raw, name=name)
    if isinstance(raw, Mapping):
        return FieldSpec.from_dict(name, raw)
    raise SchemaError(
        f"Field '{name}' must be a FieldSpec or a mapping, got {type(raw).__name__}",
        field_name=name,
    )


def _check_reverse_pairs(specs: Mapping[str, FieldSpec]) -> None:
    """Every reference field must be mirrored by its reverse."""
    for spec in specs.values():
        if not spec.is_reference:
            continue

        mirror = specs.get(spec.reverse)
        if mirror is None:
            raise SchemaError(
                f"Reverse field '{spec.reverse}' of '{spec.name}' is not declared",
                field_name=spec.name,
            )
        if not mirror.is_reference:
            raise SchemaError(
                f"Reverse field '{mirror.name}' of '{spec.name}' must be a reference field",
                field_name=spec.name,
            )
        if mirror.reverse != spec.name:
            raise SchemaError(
                f"Reverse of '{spec.name}' is '{mirror.name}', but '{mirror.name}' "
                f"declares '{mirror.reverse}' as its reverse",
                field_name=spec.name,
            )
