"""
Projection engine for lidgraph.

Builds the denormalized tree returned by get() and lookup(). References
are expanded into nested dicts; a lid already expanded (or queued for
expansion) earlier in the same call is emitted as a bare {"lid": ...}
stub, so cycles and diamonds terminate without dropping edges.

Invariants:
    - The result always contains "lid", even for unknown lids
    - Absent fields and empty collections are omitted, never None or []
    - Every scalar in the result is a deep copy
    - Traversal uses an explicit work list, so depth is not bounded by
      the interpreter recursion limit
"""

from __future__ import annotations

import copy
from typing import Any

from ..schema import LID, Schema
from .table import Entity, EntityTable


class ProjectionEngine:
    """Read side of the store."""

    def __init__(self, schema: Schema, table: EntityTable) -> None:
        self._schema = schema
        self._table = table

    def project(self, lid: str) -> dict[str, Any]:
        """Denormalized, detached copy of the subgraph reachable from lid."""
        root: dict[str, Any] = {LID: lid}
        entity = self._table.get(lid)
        if entity is None:
            return root

        expanded = {lid}
        work: list[tuple[Entity, dict[str, Any]]] = [(entity, root)]
        while work:
            entity, out = work.pop()
            for name, value in entity.values.items():
                spec = self._schema.get_field(name)
                if spec is None or not spec.is_reference:
                    out[name] = copy.deepcopy(value)
                elif spec.collection:
                    if value:
                        out[name] = [self._visit(target, expanded, work) for target in value]
                else:
                    out[name] = self._visit(value, expanded, work)
        return root

    def _visit(
        self,
        lid: str,
        expanded: set[str],
        work: list[tuple[Entity, dict[str, Any]]],
    ) -> dict[str, Any]:
        node: dict[str, Any] = {LID: lid}
        if lid in expanded:
            return node
        expanded.add(lid)

        target = self._table.get(lid)
        if target is not None:
            work.append((target, node))
        return node
