"""
In-memory local store.

Keeps serialized copies of entities in a dict so callers mutating their own
objects never change the cached state behind the store's back.
"""

from __future__ import annotations

from typing import Any, Generic

from ..protocol import LocalStore, T


class InMemoryLocalStore(LocalStore[T], Generic[T]):
    """Dict-backed local store, lost when the process exits."""

    def __init__(self, entity_type: type[T]):
        self.entity_type = entity_type
        self._rows: dict[str, dict[str, Any]] = {}

    def _restore(self, row: dict[str, Any]) -> T:
        return self.entity_type.from_dict(dict(row))

    async def get_all(self) -> list[T]:
        return [self._restore(row) for row in self._rows.values()]

    async def get(self, entity_id: str) -> T | None:
        row = self._rows.get(entity_id)
        if row is None:
            return None
        return self._restore(row)

    async def insert(self, entity: T) -> None:
        self._rows[entity.id] = entity.to_dict()

    async def insert_many(self, entities: list[T]) -> None:
        for entity in entities:
            self._rows[entity.id] = entity.to_dict()

    async def update(self, entity: T) -> None:
        self._rows[entity.id] = entity.to_dict()

    async def delete(self, entity: T) -> None:
        self._rows.pop(entity.id, None)

    async def clear(self) -> None:
        self._rows.clear()

    async def close(self) -> None:
        """No cleanup needed for memory store."""
        pass

    def __len__(self) -> int:
        return len(self._rows)
