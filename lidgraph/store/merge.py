"""
Merge engine for lidgraph.

Implements put(): a depth-first merge of an entity tree into the table.

Merge rules per field:
    None                   -> delete the field (severing links first)
    scalar                 -> replace, after validate() and unique checks
    single reference       -> replace the link, displacing conflicting
                              single reverse links (last write wins)
    collection reference   -> set-union with the stored members

A node's scalar fields are written before its reference fields, and nested
objects are merged before they are linked, so sort comparators see merged
data. Once the whole tree is merged, every sorted collection holding a
merged entity is re-sorted, so a changed sort key moves its member.

Each lid is merged at most once per put() call; bare {"lid": ...} stubs
only link and never consume that slot.

Invariants:
    - Rejected field writes are reported and discarded, never raised
    - Stored scalars are deep copies; nothing from the input is aliased
    - Referential symmetry holds when put() returns

validate() and sort callables must not call back into the store.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from typing import Any

from ..config import Settings
from ..errors import InvalidEntityError, ValidationError
from ..schema import LID, FieldSpec, Schema
from .editor import RelationshipEditor
from .index import UniqueIndex
from .table import Entity, EntityTable

logger = logging.getLogger(__name__)

Reporter = Callable[[ValidationError], None]


def lid_of(value: Any) -> str | None:
    """lid of a reference value (nested mapping or bare lid string)."""
    if isinstance(value, Mapping):
        value = value.get(LID)
    if isinstance(value, str) and value:
        return value
    return None


class MergeEngine:
    """Applies entity trees to the table."""

    def __init__(
        self,
        schema: Schema,
        table: EntityTable,
        index: UniqueIndex,
        editor: RelationshipEditor,
        settings: Settings,
        report: Reporter,
    ) -> None:
        self._schema = schema
        self._table = table
        self._index = index
        self._editor = editor
        self._settings = settings
        self._report = report

    def put(self, tree: Mapping[str, Any]) -> None:
        """Merge an entity tree into the store.

        Raises:
            InvalidEntityError: If tree is not a mapping with a string lid
        """
        if not isinstance(tree, Mapping):
            raise InvalidEntityError(
                f"put() expects a mapping with a '{LID}', got {type(tree).__name__}"
            )
        if lid_of(tree) is None:
            raise InvalidEntityError(f"put() expects a non-empty string '{LID}'")

        merged: set[str] = set()
        self._merge(tree, merged)
        for lid in merged:
            self._resort_holders(lid)

    def _merge(self, node: Mapping[str, Any], merged: set[str]) -> Entity:
        lid = node[LID]
        entity = self._table.ensure(lid)
        if lid in merged or node.keys() == {LID}:
            return entity
        merged.add(lid)

        # Scalars first, so sorted collections we join see this node's data
        references: list[tuple[FieldSpec, Any]] = []
        for name, value in node.items():
            if name == LID:
                continue

            spec = self._schema.get_field(name)
            if spec is None:
                self._write_unknown(entity, name, value)
            elif not spec.is_reference:
                if value is None:
                    self._clear(entity, spec)
                else:
                    self._write_scalar(entity, spec, value)
            else:
                references.append((spec, value))

        for spec, value in references:
            if value is None:
                self._clear(entity, spec)
            elif spec.collection:
                self._merge_collection(entity, spec, value, merged)
            else:
                self._merge_single(entity, spec, value, merged)
        return entity

    def _resort_holders(self, lid: str) -> None:
        """Restore the order of every sorted collection holding lid."""
        entity = self._table.get(lid)
        if entity is None:
            return
        for spec in self._schema.references():
            mirror = self._schema.reverse_of(spec)
            if mirror.sort is None:
                continue
            for holder_lid in entity.targets(spec):
                holder = self._table.get(holder_lid)
                if holder is not None and self._table.resort(holder, mirror):
                    logger.debug(f"Re-sorted '{holder_lid}'.{mirror.name} after merging '{lid}'")

    def _resolve(
        self,
        entity: Entity,
        spec: FieldSpec,
        value: Any,
        merged: set[str],
    ) -> str | None:
        """Merge a nested reference value and return its lid."""
        lid = lid_of(value)
        if lid is None:
            self._report(
                ValidationError(
                    f"Reference field '{spec.name}' on '{entity.lid}' expects an object "
                    f"with a '{LID}' or a lid string, got {type(value).__name__}",
                    lid=entity.lid,
                    field_name=spec.name,
                )
            )
            return None

        if isinstance(value, Mapping):
            self._merge(value, merged)
        else:
            self._table.ensure(lid)
        return lid

    def _merge_single(
        self,
        entity: Entity,
        spec: FieldSpec,
        value: Any,
        merged: set[str],
    ) -> None:
        if isinstance(value, (list, tuple)):
            self._report(
                ValidationError(
                    f"Reference field '{spec.name}' holds a single lid, got a list",
                    lid=entity.lid,
                    field_name=spec.name,
                )
            )
            return

        target = self._resolve(entity, spec, value, merged)
        if target is None:
            return

        # Read after resolving: merging the nested tree may have relinked us
        current = entity.values.get(spec.name)
        if current == target:
            return
        if current is not None:
            self._editor.remove(entity.lid, spec.name, current)
        self._link(entity, spec, target)

    def _merge_collection(
        self,
        entity: Entity,
        spec: FieldSpec,
        value: Any,
        merged: set[str],
    ) -> None:
        if not isinstance(value, (list, tuple)):
            self._report(
                ValidationError(
                    f"Collection field '{spec.name}' expects a list, got {type(value).__name__}",
                    lid=entity.lid,
                    field_name=spec.name,
                )
            )
            return

        for item in value:
            target = self._resolve(entity, spec, item, merged)
            if target is not None and not entity.links_to(spec, target):
                self._link(entity, spec, target)

    def _link(self, owner: Entity, spec: FieldSpec, target_lid: str) -> None:
        """Create the edge on both sides."""
        target = self._table.ensure(target_lid)
        reverse = self._schema.reverse_of(spec)

        if not reverse.collection:
            prior = target.values.get(reverse.name)
            if prior is not None and prior != owner.lid:
                logger.debug(
                    f"Displacing '{target_lid}'.{reverse.name} -> '{prior}' in favour of '{owner.lid}'"
                )
                self._editor.remove(target_lid, reverse.name, prior)

        self._table.attach(owner, spec, target_lid)
        self._table.attach(target, reverse, owner.lid)

    def _clear(self, entity: Entity, spec: FieldSpec) -> None:
        """Handle a None write: unset the field."""
        if spec.is_reference:
            for target in entity.targets(spec):
                self._editor.remove(entity.lid, spec.name, target)
            return

        previous = entity.values.pop(spec.name, None)
        if spec.unique:
            self._index.release(spec.name, previous, entity.lid)

    def _write_scalar(self, entity: Entity, spec: FieldSpec, value: Any) -> None:
        value = copy.deepcopy(value)
        if spec.validate is not None:
            try:
                value = spec.validate(value)
            except Exception as e:
                self._report(
                    ValidationError(
                        f"Field '{spec.name}' on '{entity.lid}' failed validation: {e}",
                        lid=entity.lid,
                        field_name=spec.name,
                    )
                )
                return
            if value is None:
                self._clear(entity, spec)
                return
            value = copy.deepcopy(value)

        if spec.unique:
            if not isinstance(value, str):
                self._report(
                    ValidationError(
                        f"Unique field '{spec.name}' only indexes strings, got {type(value).__name__}",
                        lid=entity.lid,
                        field_name=spec.name,
                    )
                )
                return
            try:
                self._index.claim(spec.name, value, entity.lid, entity.values.get(spec.name))
            except ValidationError as e:
                self._report(e)
                return

        entity.values[spec.name] = value

    def _write_unknown(self, entity: Entity, name: str, value: Any) -> None:
        policy = self._settings.unknown_fields
        if policy == "allow":
            if value is None:
                entity.values.pop(name, None)
            else:
                entity.values[name] = copy.deepcopy(value)
        elif policy == "ignore":
            logger.debug(f"Ignoring undeclared field '{name}' on '{entity.lid}'")
        else:
            self._report(
                ValidationError(
                    f"Field '{name}' on '{entity.lid}' is not declared in the schema",
                    lid=entity.lid,
                    field_name=name,
                )
            )
