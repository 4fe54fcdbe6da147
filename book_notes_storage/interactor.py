"""
Offline-first cache-aside interactor.

Mediates every entity read and write between a LocalStore (on-device cache)
and a RemoteRepository (source of truth):

- Reads prefer the local store and fall back to remote on a miss; remote
  results are copied into the local store in the background
- Mutations go to remote first; only after remote success is the change
  mirrored into the local store, again in the background
- Mirror writes are never awaited by the caller and their failures never
  surface to the caller

Staleness window:
    Between a successful remote mutation and the completion of its mirror
    write, ``get`` and ``get_all`` may still return the previous local state.
    A non-empty local collection is always served as-is; there is no TTL or
    version check, so remote changes made elsewhere are not picked up until
    the local store is cleared.
"""

from __future__ import annotations

from typing import Any, Generic

from .exceptions import RemoteRepositoryError
from .id_utils import is_cache_hit, require_entity_id, validate_assigned_ids
from .logging_utils import collection_logger
from .mirror import CacheMirror, MirrorErrorCallback, MirrorStats
from .protocol import Book, BookNote, LocalStore, RemoteRepository, Result, T


def _snapshot(entity: T) -> T:
    """Detached copy of an entity as it is right now."""
    return type(entity).from_dict(entity.to_dict())


class CacheAsideInteractor(Generic[T]):
    """Entity CRUD over a local cache and a remote repository.

    Remote is the source of truth for all mutations. The local store is a
    read-acceleration cache populated lazily on read misses and
    opportunistically after remote writes.

    No retries, no conflict detection and no locking: concurrent calls for
    the same id may race and leave the cache transiently stale.

    Mirror writes receive a snapshot taken when they are launched, so edits a
    caller makes afterwards to the objects it holds never reach the cache
    unless a later remote write accepts them.
    """

    collection = "entities"

    def __init__(
        self,
        remote: RemoteRepository[T],
        local: LocalStore[T],
        mirror: CacheMirror | None = None,
        on_mirror_error: MirrorErrorCallback | None = None,
        collection: str | None = None,
    ) -> None:
        """Initialize the interactor.

        Args:
            remote: Remote repository (source of truth)
            local: Local store (cache)
            mirror: Background writer for cache updates (created if not provided)
            on_mirror_error: Diagnostics callback for failed cache writes
            collection: Collection name attached to log records
        """
        if collection:
            self.collection = collection
        self.remote = remote
        self.local = local
        self._mirror = mirror or CacheMirror(
            name=self.collection,
            on_error=on_mirror_error,
        )
        self.log = collection_logger("interactor", collection=self.collection)

    # =========================================================================
    # Reads - local first, remote on miss
    # =========================================================================

    async def get_all(self) -> list[T]:
        """Return the cached collection, or fetch and cache the remote one.

        A non-empty local collection is returned without consulting remote.
        """
        cached = await self.local.get_all()
        if cached:
            self.log.debug(f"get_all served {len(cached)} entities from local store")
            return cached

        entities = await self.remote.get_all()
        self.log.debug(f"get_all fetched {len(entities)} entities from remote")
        if entities:
            self._mirror.launch(
                f"insert_many ({len(entities)})",
                self.local.insert_many([_snapshot(e) for e in entities]),
            )
        return entities

    async def get(self, entity_id: str) -> T | None:
        """Return one entity from the local store, falling back to remote.

        Returns:
            The entity, or None if neither store has it
        """
        if not entity_id:
            return None

        cached = await self.local.get(entity_id)
        if is_cache_hit(cached):
            self.log.debug(f"Cache hit: {entity_id}", extra={"entity_id": entity_id})
            return cached

        self.log.debug(f"Cache miss: {entity_id}", extra={"entity_id": entity_id})
        entity = await self.remote.get(entity_id)
        if entity is None:
            return None

        self._mirror.launch(f"insert {entity_id}", self.local.insert(_snapshot(entity)))
        return entity

    # =========================================================================
    # Writes - remote first, mirrored to local in background
    # =========================================================================

    async def insert(self, entity: T) -> Result[T]:
        """Insert an entity remotely and assign the remote id to it.

        Returns:
            Success wrapping the same entity object, now carrying its id, or
            failure wrapping the remote error (local store untouched)
        """
        try:
            entity_id = await self.remote.insert(entity)
            if not entity_id:
                raise RemoteRepositoryError("insert", cause=ValueError("empty id assigned"))
        except Exception as e:
            self.log.warning(f"Remote insert failed: {e}")
            return Result.failure(e)

        entity.id = entity_id
        self._mirror.launch(f"insert {entity_id}", self.local.insert(_snapshot(entity)))
        return Result.success(entity)

    async def insert_many(self, entities: list[T]) -> Result[list[T]]:
        """Insert a collection remotely in one call.

        Ids are assigned positionally from the remote response. If the call
        fails or returns the wrong number of ids, no entity is modified.
        """
        if not entities:
            return Result.success(entities)

        try:
            ids = await self.remote.insert_many(entities)
            validate_assigned_ids(ids, len(entities))
        except Exception as e:
            self.log.warning(f"Remote batch insert of {len(entities)} entities failed: {e}")
            return Result.failure(e)

        for entity, entity_id in zip(entities, ids):
            entity.id = entity_id
        self._mirror.launch(
            f"insert_many ({len(entities)})",
            self.local.insert_many([_snapshot(e) for e in entities]),
        )
        return Result.success(entities)

    async def update(self, entity: T) -> None:
        """Update an entity remotely, then mirror the change locally.

        Raises:
            EntityValidationError: If the entity has no id
            BookStorageError: If the remote update fails (local untouched)
        """
        entity_id = require_entity_id(entity, "update")
        await self.remote.update(entity)
        self._mirror.launch(f"update {entity_id}", self.local.update(_snapshot(entity)))

    async def delete(self, entity: T) -> None:
        """Delete an entity remotely, then drop it from the local store.

        Raises:
            EntityValidationError: If the entity has no id
            BookStorageError: If the remote delete fails (local row kept)
        """
        entity_id = require_entity_id(entity, "delete")
        await self.remote.delete(entity)
        self._mirror.launch(f"delete {entity_id}", self.local.delete(_snapshot(entity)))

    # =========================================================================
    # Lifecycle and diagnostics
    # =========================================================================

    @property
    def mirror_stats(self) -> MirrorStats:
        return self._mirror.stats

    @property
    def pending_mirrors(self) -> int:
        return self._mirror.pending

    async def wait_for_mirrors(self, timeout: float | None = None) -> None:
        """Wait for background cache writes to finish."""
        await self._mirror.drain(timeout)

    async def close(self) -> None:
        """Finish pending cache writes, then close both stores."""
        try:
            await self._mirror.drain()
        finally:
            await self.remote.close()
            await self.local.close()

    async def __aenter__(self) -> CacheAsideInteractor[T]:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class BooksInteractor(CacheAsideInteractor[Book]):
    """Cache-aside interactor for books."""

    collection = Book.collection


class BookNotesInteractor(CacheAsideInteractor[BookNote]):
    """Cache-aside interactor for book notes."""

    collection = BookNote.collection
