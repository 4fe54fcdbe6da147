"""
Construction helpers.

Builds local stores, remote repositories and interactors from a
StorageConfig so host applications only pick backends in configuration.
"""

from __future__ import annotations

import logging

from .config import LocalBackend, RemoteBackend, StorageConfig
from .interactor import BookNotesInteractor, BooksInteractor
from .local import FileLocalStore, InMemoryLocalStore, SQLiteLocalStore, SQLiteStoreConfig
from .mirror import MirrorErrorCallback
from .protocol import Book, BookNote, LocalStore, RemoteRepository, T
from .remote import (
    CosmosClientWrapper,
    CosmosRemoteRepository,
    HttpRemoteRepository,
    InMemoryRemoteRepository,
)

logger = logging.getLogger(__name__)

SQLITE_FILENAME = "book_notes.db"


async def create_local_store(config: StorageConfig, entity_type: type[T]) -> LocalStore[T]:
    """Create and initialize the configured local store."""
    backend = config.local_backend

    if backend == LocalBackend.MEMORY:
        return InMemoryLocalStore(entity_type)

    if backend == LocalBackend.FILE:
        return FileLocalStore(entity_type, config.local_directory)

    sqlite_config = SQLiteStoreConfig(db_path=config.local_directory / SQLITE_FILENAME)
    return await SQLiteLocalStore.create(entity_type, sqlite_config)


def create_remote_repository(
    config: StorageConfig,
    entity_type: type[T],
    cosmos_client: CosmosClientWrapper | None = None,
) -> RemoteRepository[T]:
    """Create the configured remote repository.

    Args:
        config: Validated storage configuration
        entity_type: Entity class served by the repository
        cosmos_client: Shared Cosmos client; a private one is created if omitted
    """
    backend = config.remote_backend

    if backend == RemoteBackend.MEMORY:
        return InMemoryRemoteRepository(entity_type)

    if backend == RemoteBackend.COSMOS:
        owns_client = cosmos_client is None
        client = cosmos_client or CosmosClientWrapper(config.to_cosmos_config())
        return CosmosRemoteRepository(entity_type, client, config.user_id, owns_client=owns_client)

    assert config.remote_url is not None
    return HttpRemoteRepository(
        entity_type,
        config.remote_url,
        auth_token=config.remote_token,
        timeout=config.request_timeout,
    )


async def create_books_interactor(
    config: StorageConfig | None = None,
    on_mirror_error: MirrorErrorCallback | None = None,
) -> BooksInteractor:
    """Create a books interactor from configuration.

    Args:
        config: Storage configuration (defaults to environment variables)
        on_mirror_error: Diagnostics callback for failed cache writes
    """
    config = (config or StorageConfig.from_environment()).validate()
    local = await create_local_store(config, Book)
    remote = create_remote_repository(config, Book)
    logger.info(
        f"Books interactor: local={config.local_backend.value}, remote={config.remote_backend.value}"
    )
    return BooksInteractor(remote, local, on_mirror_error=on_mirror_error)


async def create_book_notes_interactor(
    config: StorageConfig | None = None,
    on_mirror_error: MirrorErrorCallback | None = None,
) -> BookNotesInteractor:
    """Create a book notes interactor from configuration."""
    config = (config or StorageConfig.from_environment()).validate()
    local = await create_local_store(config, BookNote)
    remote = create_remote_repository(config, BookNote)
    return BookNotesInteractor(remote, local, on_mirror_error=on_mirror_error)
