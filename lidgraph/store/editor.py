"""
Relationship editor for lidgraph.

Implements the two removal primitives:
- remove(): sever one edge, on both sides
- destroy(): delete an entity, cascading along destroy=True fields and
  severing every other link so no reverse reference to it survives

Every internal unlink (null writes, single-link displacement, destroy)
goes through remove(), so both sides of an edge always change together.

Invariants:
    - After remove() neither side references the other through the pair
    - After destroy() no entity in the table references a destroyed lid
    - Missing lids, undeclared fields and absent edges are no-ops
"""

from __future__ import annotations

import logging

from ..schema import Schema
from .index import UniqueIndex
from .table import EntityTable

logger = logging.getLogger(__name__)


class RelationshipEditor:
    """Edge removal and cascading destruction."""

    def __init__(self, schema: Schema, table: EntityTable, index: UniqueIndex) -> None:
        self._schema = schema
        self._table = table
        self._index = index

    def remove(self, parent_lid: str, field_name: str, child_lid: str) -> None:
        """Remove child_lid from parent_lid's reference field, and the mirror.

        Single reference fields behave as collections of capacity 1.
        """
        spec = self._schema.get_field(field_name)
        if spec is None or not spec.is_reference:
            return

        parent = self._table.get(parent_lid)
        if parent is None or not self._table.detach(parent, spec, child_lid):
            return

        child = self._table.get(child_lid)
        if child is not None:
            self._table.detach(child, self._schema.reverse_of(spec), parent_lid)
        logger.debug(f"Removed '{parent_lid}'.{field_name} -> '{child_lid}'")

    def destroy(self, lid: str) -> None:
        """Delete an entity and cascade along destroy=True fields.

        Entities are removed from the table before their cascade targets are
        processed, so a cycle of destroy=True fields finds the entity already
        gone and stops.
        """
        pending = [lid]
        while pending:
            current = pending.pop()
            entity = self._table.get(current)
            if entity is None:
                continue

            cascade: list[str] = []
            for spec in self._schema.references():
                for target in entity.targets(spec):
                    self.remove(current, spec.name, target)
                    if spec.destroy:
                        cascade.append(target)

            self._table.discard(current)
            self._index.drop_entity(entity)
            logger.debug(f"Destroyed entity '{current}', cascading to {len(cascade)}")

            # reversed so cascade targets are destroyed in stored order
            pending.extend(reversed(cascade))
