"""
Cosmos DB remote repository.

Stores each entity collection in its own container, partitioned by owner:

    {
        "id": "{uuid4 hex}",
        "owner_id": "{user_id}",
        ...entity.to_dict() fields...
    }

Ids are assigned here, at insert time, so the caller only learns the id once
the document has been accepted by Cosmos DB.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Generic

from ..exceptions import EntityNotFoundError
from ..id_utils import generate_entity_id, require_entity_id
from ..protocol import RemoteRepository, T
from .cosmos_client import CosmosClientWrapper, CosmosConfig

logger = logging.getLogger(__name__)

# Cosmos system properties stripped before rebuilding entities
_SYSTEM_FIELDS = frozenset({"_rid", "_self", "_etag", "_attachments", "_ts", "owner_id"})


class CosmosRemoteRepository(RemoteRepository[T], Generic[T]):
    """Cosmos DB-backed remote repository for one entity collection.

    Every query is scoped to ``owner_id`` through the partition key, so one
    user never sees another user's books.
    """

    def __init__(
        self,
        entity_type: type[T],
        client: CosmosClientWrapper,
        owner_id: str,
        owns_client: bool = False,
    ):
        """Initialize the repository.

        Args:
            entity_type: Entity class stored in this collection
            client: Client wrapper (may be shared between collections)
            owner_id: Partition key value for every document
            owns_client: Close the client when this repository is closed
        """
        self.entity_type = entity_type
        self.client = client
        self.owner_id = owner_id
        self.owns_client = owns_client

    @classmethod
    async def create(
        cls,
        entity_type: type[T],
        config: CosmosConfig,
        owner_id: str,
    ) -> CosmosRemoteRepository[T]:
        """Create a repository with its own initialized client."""
        client = CosmosClientWrapper(config)
        await client.initialize()
        return cls(entity_type, client, owner_id, owns_client=True)

    @property
    def container_name(self) -> str:
        return self.entity_type.collection

    async def close(self) -> None:
        if self.owns_client:
            await self.client.close()

    def _to_document(self, entity: T, entity_id: str) -> dict[str, Any]:
        doc = entity.to_dict()
        doc["id"] = entity_id
        doc["owner_id"] = self.owner_id
        return doc

    def _from_document(self, doc: dict[str, Any]) -> T:
        data = {k: v for k, v in doc.items() if k not in _SYSTEM_FIELDS}
        return self.entity_type.from_dict(data)

    async def get_all(self) -> list[T]:
        docs = await self.client.query_items(
            self.container_name,
            "SELECT * FROM c WHERE c.owner_id = @owner_id ORDER BY c._ts",
            parameters=[{"name": "@owner_id", "value": self.owner_id}],
            partition_key=self.owner_id,
        )
        return [self._from_document(doc) for doc in docs]

    async def get(self, entity_id: str) -> T | None:
        doc = await self.client.read_item(self.container_name, entity_id, self.owner_id)
        if doc is None:
            return None
        return self._from_document(doc)

    async def insert(self, entity: T) -> str:
        entity_id = generate_entity_id()
        await self.client.create_item(self.container_name, self._to_document(entity, entity_id))
        logger.debug(f"Created {self.container_name}/{entity_id}")
        return entity_id

    async def insert_many(self, entities: list[T]) -> list[str]:
        """Create several documents in parallel.

        Ids are generated up front so their order matches ``entities``
        regardless of completion order. If any create fails, the documents
        that were created are deleted again before the first error is
        raised, so a failed batch leaves nothing behind to be duplicated by
        a retry. A delete that itself fails is logged and left in place.
        """
        ids = [generate_entity_id() for _ in entities]
        results = await asyncio.gather(
            *(
                self.client.create_item(self.container_name, self._to_document(entity, entity_id))
                for entity, entity_id in zip(entities, ids)
            ),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if not errors:
            return ids

        created = [
            entity_id
            for entity_id, result in zip(ids, results)
            if not isinstance(result, BaseException)
        ]
        logger.warning(
            f"Batch insert into {self.container_name} failed for {len(errors)} of "
            f"{len(ids)} documents; removing {len(created)} created documents"
        )
        cleanup = await asyncio.gather(
            *(
                self.client.delete_item(self.container_name, entity_id, self.owner_id)
                for entity_id in created
            ),
            return_exceptions=True,
        )
        for entity_id, outcome in zip(created, cleanup):
            if isinstance(outcome, BaseException):
                logger.warning(f"Could not remove {self.container_name}/{entity_id}: {outcome}")
        raise errors[0]

    async def update(self, entity: T) -> None:
        entity_id = require_entity_id(entity, "update")
        existing = await self.client.read_item(self.container_name, entity_id, self.owner_id)
        if existing is None:
            raise EntityNotFoundError(self.container_name, entity_id)
        await self.client.upsert_item(self.container_name, self._to_document(entity, entity_id))

    async def delete(self, entity: T) -> None:
        entity_id = require_entity_id(entity, "delete")
        deleted = await self.client.delete_item(self.container_name, entity_id, self.owner_id)
        if not deleted:
            logger.debug(f"{self.container_name}/{entity_id} already absent remotely")
