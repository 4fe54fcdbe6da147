"""
Book Notes Storage

Offline-first storage library for a book-tracking and note-taking client.

Provides:
- Cache-aside reads: local store first, remote repository on a miss
- Write-through mutations: remote first, mirrored to the local cache in the
  background without blocking the caller
- Local stores (in-memory, JSON file, SQLite)
- Remote repositories (in-memory, REST over HTTP, Azure Cosmos DB)

Usage:

    >>> from book_notes_storage import Book, StorageConfig, create_books_interactor
    >>> config = StorageConfig(remote_url="https://api.example.com/v1", user_id="reader-42")
    >>> async with await create_books_interactor(config) as books:
    ...     result = await books.insert(Book(title="Dune", author="Frank Herbert"))
    ...     book = result.get_or_raise()   # book.id now holds the remote id
    ...     library = await books.get_all()

Direct wiring:

    from book_notes_storage import BooksInteractor
    from book_notes_storage.local import SQLiteLocalStore
    from book_notes_storage.remote import HttpRemoteRepository

    interactor = BooksInteractor(
        remote=HttpRemoteRepository(Book, "https://api.example.com/v1"),
        local=await SQLiteLocalStore.create(Book),
    )
"""

from .config import LocalBackend, RemoteBackend, StorageConfig
from .exceptions import (
    AuthenticationError,
    BookStorageError,
    ConfigurationError,
    EntityNotFoundError,
    EntityValidationError,
    RemoteRepositoryError,
    StorageConnectionError,
    StorageIOError,
)
from .factory import (
    create_book_notes_interactor,
    create_books_interactor,
    create_local_store,
    create_remote_repository,
)
from .interactor import BookNotesInteractor, BooksInteractor, CacheAsideInteractor
from .mirror import CacheMirror, MirrorStats
from .protocol import (
    Book,
    BookNote,
    BookNotes,
    Books,
    LocalStore,
    RemoteRepository,
    Result,
    StoredEntity,
)

__all__ = [
    # Entities and results
    "Book",
    "BookNote",
    "Books",
    "BookNotes",
    "Result",
    "StoredEntity",
    # Contracts
    "LocalStore",
    "RemoteRepository",
    # Interactors
    "CacheAsideInteractor",
    "BooksInteractor",
    "BookNotesInteractor",
    "CacheMirror",
    "MirrorStats",
    # Configuration
    "StorageConfig",
    "LocalBackend",
    "RemoteBackend",
    "create_books_interactor",
    "create_book_notes_interactor",
    "create_local_store",
    "create_remote_repository",
    # Exceptions
    "BookStorageError",
    "EntityNotFoundError",
    "EntityValidationError",
    "StorageIOError",
    "RemoteRepositoryError",
    "StorageConnectionError",
    "AuthenticationError",
    "ConfigurationError",
]

__version__ = "0.1.0"
