"""
Entity table for lidgraph.

The EntityTable is the exclusive owner of all entity state. Entities are
created implicitly the first time their lid is seen and hold one value per
written field:

    scalar field               -> the (detached) scalar value
    single reference field     -> the related lid (str)
    collection reference field -> list of related lids, in stored order

Invariants:
    - lids are non-empty strings, unique across the whole table
    - Absent fields are never stored as None
    - Collection values are never stored empty and never hold duplicates
    - Entity objects never leave the store package
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from functools import cmp_to_key
from types import MappingProxyType
from typing import Any

from ..schema import LID, FieldSpec

logger = logging.getLogger(__name__)


@dataclass
class Entity:
    """A stored entity.

    Attributes:
        lid: Local identifier
        values: Field values keyed by field name
    """

    lid: str
    values: dict[str, Any] = field(default_factory=dict)

    def targets(self, spec: FieldSpec) -> list[str]:
        """lids linked through a reference field, as a fresh list."""
        value = self.values.get(spec.name)
        if value is None:
            return []
        if spec.collection:
            return list(value)
        return [value]

    def links_to(self, spec: FieldSpec, lid: str) -> bool:
        value = self.values.get(spec.name)
        if value is None:
            return False
        if spec.collection:
            return lid in value
        return value == lid


class EntityTable:
    """Mapping from lid to Entity with one-sided link editing.

    Link methods here change a single side of a relationship only; keeping
    both sides in step is the job of the merge engine and the relationship
    editor.
    """

    def __init__(self) -> None:
        self._entities: dict[str, Entity] = {}

    def get(self, lid: str) -> Entity | None:
        return self._entities.get(lid)

    def ensure(self, lid: str) -> Entity:
        """Get the entity for lid, creating a stub if it does not exist."""
        entity = self._entities.get(lid)
        if entity is None:
            entity = Entity(lid=lid)
            self._entities[lid] = entity
            logger.debug(f"Created entity '{lid}'")
        return entity

    def discard(self, lid: str) -> Entity | None:
        """Remove and return the entity, or None if absent."""
        return self._entities.pop(lid, None)

    def attach(self, owner: Entity, spec: FieldSpec, lid: str) -> bool:
        """Link owner to lid through spec. Returns False if already linked.

        Single fields are overwritten; collection fields keep insertion order,
        or the order of spec.sort when one is declared.
        """
        if owner.links_to(spec, lid):
            return False
        if not spec.collection:
            owner.values[spec.name] = lid
            return True

        members = owner.values.setdefault(spec.name, [])
        if spec.sort is None:
            members.append(lid)
        else:
            members.insert(self._sorted_position(spec, members, lid), lid)
        return True

    def detach(self, owner: Entity, spec: FieldSpec, lid: str) -> bool:
        """Unlink lid from owner's spec field. Returns False if not linked."""
        if not owner.links_to(spec, lid):
            return False
        if spec.collection:
            members = owner.values[spec.name]
            members.remove(lid)
            if not members:
                del owner.values[spec.name]
        else:
            del owner.values[spec.name]
        return True

    def resort(self, owner: Entity, spec: FieldSpec) -> bool:
        """Stable re-sort of a sorted collection. Returns True if the order changed."""
        members = owner.values.get(spec.name)
        if spec.sort is None or not members:
            return False

        key = self.sort_key(spec)
        ordered = sorted(members, key=key)
        if ordered == members:
            return False
        members[:] = ordered
        return True

    def sort_key(self, spec: FieldSpec) -> Callable[[str], Any]:
        """Key function over lids for spec.sort, one view per lid."""
        views: dict[str, Any] = {}

        def key_of(lid: str) -> Any:
            if lid not in views:
                views[lid] = self.view(lid)
            return views[lid]

        compare = cmp_to_key(spec.sort)
        return lambda lid: compare(key_of(lid))

    def view(self, lid: str) -> MappingProxyType:
        """Read-only flat view of an entity (lid plus stored values) for comparators."""
        entity = self._entities.get(lid)
        if entity is None:
            return MappingProxyType({LID: lid})
        return MappingProxyType({**entity.values, LID: lid})

    def _sorted_position(self, spec: FieldSpec, members: list[str], lid: str) -> int:
        key = self.sort_key(spec)
        return bisect_right(members, key(lid), key=key)

    def clear(self) -> None:
        self._entities.clear()

    def entities(self) -> Iterator[Entity]:
        yield from list(self._entities.values())

    def __contains__(self, lid: object) -> bool:
        return lid in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[str]:
        yield from list(self._entities)
