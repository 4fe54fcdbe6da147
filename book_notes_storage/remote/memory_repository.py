"""
In-memory remote repository.

Stands in for a network backend during tests, demos and offline development.
Assigns ids the way the Cosmos repository does.
"""

from __future__ import annotations

import logging
from typing import Any, Generic

from ..exceptions import EntityNotFoundError
from ..id_utils import generate_entity_id, require_entity_id
from ..protocol import RemoteRepository, T

logger = logging.getLogger(__name__)


class InMemoryRemoteRepository(RemoteRepository[T], Generic[T]):
    """Process-local remote repository.

    ``update`` of an unknown id raises EntityNotFoundError, like a server
    answering 404. ``delete`` of an unknown id is treated as already deleted,
    matching the HTTP and Cosmos repositories.
    """

    def __init__(self, entity_type: type[T], seed: list[T] | None = None):
        self.entity_type = entity_type
        self._documents: dict[str, dict[str, Any]] = {}
        for entity in seed or []:
            entity_id = entity.id or generate_entity_id()
            entity.id = entity_id
            self._documents[entity_id] = entity.to_dict()

    def _restore(self, document: dict[str, Any]) -> T:
        return self.entity_type.from_dict(dict(document))

    async def get_all(self) -> list[T]:
        return [self._restore(doc) for doc in self._documents.values()]

    async def get(self, entity_id: str) -> T | None:
        document = self._documents.get(entity_id)
        return self._restore(document) if document is not None else None

    async def insert(self, entity: T) -> str:
        entity_id = generate_entity_id()
        document = entity.to_dict()
        document["id"] = entity_id
        self._documents[entity_id] = document
        logger.debug(f"Inserted {self.entity_type.collection}/{entity_id}")
        return entity_id

    async def insert_many(self, entities: list[T]) -> list[str]:
        return [await self.insert(entity) for entity in entities]

    async def update(self, entity: T) -> None:
        entity_id = require_entity_id(entity, "update")
        if entity_id not in self._documents:
            raise EntityNotFoundError(self.entity_type.collection, entity_id)
        self._documents[entity_id] = entity.to_dict()

    async def delete(self, entity: T) -> None:
        entity_id = require_entity_id(entity, "delete")
        if self._documents.pop(entity_id, None) is None:
            logger.debug(f"{self.entity_type.collection}/{entity_id} already absent")

    def __len__(self) -> int:
        return len(self._documents)
