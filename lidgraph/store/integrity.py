"""
Integrity checks for lidgraph.

Walks the whole table and reports every violation of the store's
invariants as a readable message:
- a reference to an lid that is not in the table
- an edge whose mirror is missing on the far side
- a collection holding duplicates, or a single field holding a list
- a unique index entry out of step with the stored value
- a sorted collection whose members are out of comparator order

An empty result means the store is consistent. Runs in time linear in
the number of stored links.
"""

from __future__ import annotations

from ..schema import FieldSpec, Schema
from .index import UniqueIndex
from .table import EntityTable


def check_integrity(schema: Schema, table: EntityTable, index: UniqueIndex) -> list[str]:
    """Return a description of every inconsistency found."""
    problems: list[str] = []

    for entity in table.entities():
        for spec in schema.references():
            value = entity.values.get(spec.name)
            if value is None:
                continue

            if spec.collection:
                if not isinstance(value, list) or not value:
                    problems.append(f"'{entity.lid}'.{spec.name} is not a non-empty list")
                    continue
                if len(set(value)) != len(value):
                    problems.append(f"'{entity.lid}'.{spec.name} holds duplicate lids")
                if spec.sort is not None:
                    problems.extend(_sort_problems(table, entity.lid, spec, value))
            elif not isinstance(value, str):
                problems.append(f"'{entity.lid}'.{spec.name} is not a single lid")
                continue

            reverse = schema.reverse_of(spec)
            for target_lid in entity.targets(spec):
                target = table.get(target_lid)
                if target is None:
                    problems.append(
                        f"'{entity.lid}'.{spec.name} references missing entity '{target_lid}'"
                    )
                elif not target.links_to(reverse, entity.lid):
                    problems.append(
                        f"'{entity.lid}'.{spec.name} -> '{target_lid}' has no mirror "
                        f"'{target_lid}'.{reverse.name} -> '{entity.lid}'"
                    )

        for name in schema.unique_fields():
            value = entity.values.get(name)
            if value is not None and index.holder(name, value) != entity.lid:
                problems.append(f"'{entity.lid}'.{name} = {value!r} is not indexed")

    for name, value, lid in index.items():
        entity = table.get(lid)
        if entity is None or entity.values.get(name) != value:
            problems.append(f"Index entry {name}={value!r} -> '{lid}' is stale")

    return problems


def _sort_problems(table: EntityTable, lid: str, spec: FieldSpec, members: list[str]) -> list[str]:
    problems = []
    views = [table.view(member) for member in members]
    for i in range(1, len(members)):
        if spec.sort(views[i - 1], views[i]) > 0:
            problems.append(
                f"'{lid}'.{spec.name} is not in sort order: "
                f"'{members[i - 1]}' comes before '{members[i]}'"
            )
    return problems
