"""
Field definitions for the lidgraph schema.

A schema is one flat mapping from field name to FieldSpec, shared by every
entity in a store. Each field is either a scalar or a reference to other
entities; reference fields always name a reverse field that mirrors them.

Invariants:
    - kind never changes after a FieldSpec is created
    - unique only applies to scalar fields
    - collection, reverse, sort and destroy only apply to reference fields
    - sort only applies to collection reference fields
    - validate only applies to scalar fields

Example:
    >>> schema_config = {
    ...     "email": scalar(unique=True),
    ...     "tickets": collection("owner", destroy=True),
    ...     "owner": reference("tickets"),
    ... }
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields
from difflib import get_close_matches
from enum import Enum
from typing import Any

from ..errors import SchemaError

LID = "lid"

Validator = Callable[[Any], Any]
Comparator = Callable[[Mapping[str, Any], Mapping[str, Any]], int]


class FieldKind(Enum):
    """Supported field kinds."""

    SCALAR = "scalar"
    REFERENCE = "reference"

    @classmethod
    def from_str(cls, value: str) -> FieldKind:
        """Convert string representation to FieldKind.

        Raises:
            SchemaError: If value is not a valid field kind
        """
        for kind in cls:
            if kind.value == value:
                return kind
        valid = [k.value for k in cls]
        raise SchemaError(f"Invalid field kind '{value}'. Valid kinds: {valid}")


@dataclass(frozen=True)
class FieldSpec:
    """Definition of a single field.

    Attributes:
        name: Field name (filled in from the schema mapping key)
        kind: Scalar or reference
        collection: Reference field holds a set of lids rather than one
        reverse: Name of the mirrored field on the referenced entity
        unique: Scalar values are indexed, at most one entity per value
        validate: Called on every scalar write, returns the value to store
        sort: Comparator defining the order of a collection reference
        destroy: Destroying the owner destroys the referenced entities
        description: Human-readable description
    """

    name: str = ""
    kind: FieldKind = FieldKind.SCALAR
    collection: bool = False
    reverse: str | None = None
    unique: bool = False
    validate: Validator | None = None
    sort: Comparator | None = None
    destroy: bool = False
    description: str = ""

    def __post_init__(self) -> None:
        """Check that capabilities match the field kind."""
        label = self.name or "<unnamed>"
        if self.name == LID:
            raise SchemaError(f"'{LID}' is reserved and cannot be declared", field_name=LID)
        if self.validate is not None and not callable(self.validate):
            raise SchemaError(f"validate for field '{label}' must be callable", field_name=self.name)
        if self.sort is not None and not callable(self.sort):
            raise SchemaError(f"sort for field '{label}' must be callable", field_name=self.name)

        if self.kind == FieldKind.SCALAR:
            for attr in ("collection", "destroy"):
                if getattr(self, attr):
                    raise SchemaError(
                        f"'{attr}' is only valid on reference fields, not scalar '{label}'",
                        field_name=self.name,
                    )
            if self.reverse is not None:
                raise SchemaError(
                    f"'reverse' is only valid on reference fields, not scalar '{label}'",
                    field_name=self.name,
                )
            if self.sort is not None:
                raise SchemaError(
                    f"'sort' is only valid on collection reference fields, not scalar '{label}'",
                    field_name=self.name,
                )
        else:
            if not self.reverse:
                raise SchemaError(
                    f"Reference field '{label}' must declare a reverse field",
                    field_name=self.name,
                )
            if self.unique:
                raise SchemaError(
                    f"'unique' is only valid on scalar fields, not reference '{label}'",
                    field_name=self.name,
                )
            if self.validate is not None:
                raise SchemaError(
                    f"'validate' is only valid on scalar fields, not reference '{label}'",
                    field_name=self.name,
                )
            if self.sort is not None and not self.collection:
                raise SchemaError(
                    f"'sort' requires a collection reference, '{label}' holds a single lid",
                    field_name=self.name,
                )

    @property
    def is_reference(self) -> bool:
        return self.kind == FieldKind.REFERENCE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary. Callables appear only as presence flags."""
        result: dict[str, Any] = {"name": self.name, "kind": self.kind.value}
        if self.collection:
            result["collection"] = True
        if self.reverse is not None:
            result["reverse"] = self.reverse
        if self.unique:
            result["unique"] = True
        if self.validate is not None:
            result["validate"] = True
        if self.sort is not None:
            result["sort"] = True
        if self.destroy:
            result["destroy"] = True
        if self.description:
            result["description"] = self.description
        return result

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> FieldSpec:
        """Create a FieldSpec from a plain configuration mapping.

        Raises:
            SchemaError: If the mapping has unknown keys or invalid values
        """
        known = [f.name for f in fields(cls) if f.name != "name"]
        for key in data:
            if key not in known:
                raise SchemaError(
                    f"Unknown option '{key}' for field '{name}'",
                    field_name=name,
                    suggestions=get_close_matches(key, known, n=3),
                )

        options = dict(data)
        kind = options.pop("kind", FieldKind.SCALAR)
        if isinstance(kind, str):
            kind = FieldKind.from_str(kind)
        return cls(name=name, kind=kind, **options)


def scalar(
    *,
    unique: bool = False,
    validate: Validator | None = None,
    description: str = "",
) -> FieldSpec:
    """Convenience function to declare a scalar field.

    Example:
        >>> email = scalar(unique=True, validate=str.lower)
    """
    return FieldSpec(
        kind=FieldKind.SCALAR,
        unique=unique,
        validate=validate,
        description=description,
    )


def reference(
    reverse: str,
    *,
    destroy: bool = False,
    description: str = "",
) -> FieldSpec:
    """Convenience function to declare a single-valued reference field.

    Example:
        >>> owner = reference("tickets")
    """
    return FieldSpec(
        kind=FieldKind.REFERENCE,
        reverse=reverse,
        destroy=destroy,
        description=description,
    )


def collection(
    reverse: str,
    *,
    sort: Comparator | None = None,
    destroy: bool = False,
    description: str = "",
) -> FieldSpec:
    """Convenience function to declare a collection reference field.

    Args:
        reverse: Name of the mirrored field on referenced entities
        sort: Pure comparator ``(a, b) -> int`` over read-only entity views
        destroy: Cascade destruction to the referenced entities
        description: Documentation

    Example:
        >>> tickets = collection("owner", destroy=True)
    """
    return FieldSpec(
        kind=FieldKind.REFERENCE,
        collection=True,
        reverse=reverse,
        sort=sort,
        destroy=destroy,
        description=description,
    )
