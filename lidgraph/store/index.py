"""
Unique index for lidgraph.

Secondary mapping from (field, value) to lid for every scalar field the
schema declares unique. It is updated in the same step as the entity
table: claim() either raises without touching anything or moves the
entity's entry from its previous value to the new one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from ..errors import UniqueConstraintViolation
from .table import Entity

logger = logging.getLogger(__name__)


class UniqueIndex:
    """Per-field value -> lid mapping.

    Example:
        >>> index = UniqueIndex(["email"])
        >>> index.claim("email", "a@x.com", "u1")
        >>> index.holder("email", "a@x.com")
        'u1'
    """

    def __init__(self, fields: Iterable[str]) -> None:
        self._entries: dict[str, dict[str, str]] = {name: {} for name in fields}

    def holder(self, field_name: str, value: str) -> str | None:
        """lid holding value for field_name, or None."""
        return self._entries[field_name].get(value)

    def claim(
        self,
        field_name: str,
        value: str,
        lid: str,
        previous: str | None = None,
    ) -> None:
        """Index value for lid, releasing lid's previous value.

        Raises:
            UniqueConstraintViolation: If another entity holds value
        """
        entries = self._entries[field_name]
        holder = entries.get(value)
        if holder is not None and holder != lid:
            raise UniqueConstraintViolation(lid, field_name, value, holder)

        if previous is not None and previous != value:
            self.release(field_name, previous, lid)
        entries[value] = lid

    def release(self, field_name: str, value: object, lid: str) -> None:
        """Drop the entry for value if lid holds it."""
        entries = self._entries[field_name]
        if isinstance(value, str) and entries.get(value) == lid:
            del entries[value]

    def drop_entity(self, entity: Entity) -> None:
        """Drop every entry the entity holds."""
        for field_name in self._entries:
            self.release(field_name, entity.values.get(field_name), entity.lid)

    def items(self) -> Iterator[tuple[str, str, str]]:
        """Yield (field, value, lid) for every entry."""
        for field_name, entries in self._entries.items():
            for value, lid in list(entries.items()):
                yield field_name, value, lid

    def clear(self) -> None:
        for entries in self._entries.values():
            entries.clear()

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._entries.values())
