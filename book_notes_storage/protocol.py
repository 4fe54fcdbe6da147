"""
Core types and abstract base classes for book notes storage.

This module defines the entities, the Result wrapper returned by mutations,
and the two collaborator contracts the interactor mediates between:

- RemoteRepository: the source of truth, assigns ids on insert
- LocalStore: the on-device cache, keyed by entity id

Staleness contract:
    Local store writes that follow a remote mutation are launched in the
    background and never awaited by the caller. Between a successful remote
    mutation and the completion of its local mirror, reads served from the
    local store may return the previous state. Local stores are never
    consulted for the result of a mutation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Generic, Protocol, TypeVar

# =============================================================================
# Entities
# =============================================================================


class StoredEntity(Protocol):
    """Shape shared by every entity the storage layer can cache.

    An empty ``id`` means the entity has not been persisted remotely yet.
    """

    collection: ClassVar[str]
    id: str

    def to_dict(self) -> dict[str, Any]: ...

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Any: ...


T = TypeVar("T", bound=StoredEntity)
V = TypeVar("V")


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class Book:
    """A tracked book.

    Everything except ``id`` is opaque payload to the storage layer.
    """

    collection: ClassVar[str] = "books"

    id: str = ""
    title: str = ""
    author: str | None = None
    description: str | None = None
    cover_url: str | None = None
    page_count: int | None = None
    created: datetime | None = None
    updated: datetime | None = None

    @property
    def is_persisted(self) -> bool:
        """Whether the remote repository has assigned an id."""
        return bool(self.id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "cover_url": self.cover_url,
            "page_count": self.page_count,
            "created": self.created.isoformat() if self.created else None,
            "updated": self.updated.isoformat() if self.updated else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Book:
        """Create from dictionary."""
        return cls(
            id=data.get("id") or "",
            title=data.get("title") or "",
            author=data.get("author"),
            description=data.get("description"),
            cover_url=data.get("cover_url"),
            page_count=data.get("page_count"),
            created=_parse_datetime(data.get("created")),
            updated=_parse_datetime(data.get("updated")),
        )


@dataclass
class BookNote:
    """A note attached to a book."""

    collection: ClassVar[str] = "book_notes"

    id: str = ""
    book_id: str = ""
    content: str = ""
    page: int | None = None
    created: datetime | None = None
    updated: datetime | None = None

    @property
    def is_persisted(self) -> bool:
        return bool(self.id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "book_id": self.book_id,
            "content": self.content,
            "page": self.page,
            "created": self.created.isoformat() if self.created else None,
            "updated": self.updated.isoformat() if self.updated else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BookNote:
        """Create from dictionary."""
        return cls(
            id=data.get("id") or "",
            book_id=data.get("book_id") or "",
            content=data.get("content") or "",
            page=data.get("page"),
            created=_parse_datetime(data.get("created")),
            updated=_parse_datetime(data.get("updated")),
        )


# Ordered collection used for batch inserts; order matches the returned ids
Books = list[Book]
BookNotes = list[BookNote]


# =============================================================================
# Result
# =============================================================================


@dataclass(frozen=True)
class Result(Generic[V]):
    """Success/failure wrapper returned by insert operations.

    Exactly one of ``value`` or ``error`` is meaningful, as indicated by
    ``is_success``.
    """

    value: V | None = None
    error: Exception | None = None
    is_success: bool = field(default=True)

    @classmethod
    def success(cls, value: V) -> Result[V]:
        return cls(value=value, error=None, is_success=True)

    @classmethod
    def failure(cls, error: Exception) -> Result[V]:
        return cls(value=None, error=error, is_success=False)

    @property
    def is_failure(self) -> bool:
        return not self.is_success

    def get_or_none(self) -> V | None:
        """Return the value on success, None on failure."""
        return self.value if self.is_success else None

    def get_or_raise(self) -> V:
        """Return the value on success, re-raise the captured error on failure."""
        if not self.is_success:
            assert self.error is not None
            raise self.error
        return self.value  # type: ignore[return-value]

    def exception_or_none(self) -> Exception | None:
        return self.error


# =============================================================================
# Collaborator contracts
# =============================================================================


class RemoteRepository(ABC, Generic[T]):
    """Abstract interface for the remote source of truth.

    Implementations raise BookStorageError subclasses on failure.
    """

    @abstractmethod
    async def get_all(self) -> list[T]:
        """Fetch the full collection."""
        ...

    @abstractmethod
    async def get(self, entity_id: str) -> T | None:
        """Fetch one entity.

        Returns:
            The entity, or None if the repository has no such id
        """
        ...

    @abstractmethod
    async def insert(self, entity: T) -> str:
        """Persist a new entity.

        Returns:
            The id assigned by the repository
        """
        ...

    @abstractmethod
    async def insert_many(self, entities: list[T]) -> list[str]:
        """Persist several new entities in one call.

        Returns:
            Assigned ids, positionally aligned with ``entities``
        """
        ...

    @abstractmethod
    async def update(self, entity: T) -> None:
        """Replace the stored entity with the same id."""
        ...

    @abstractmethod
    async def delete(self, entity: T) -> None:
        """Delete the stored entity with the same id."""
        ...

    async def close(self) -> None:
        """Release connections. Default is a no-op."""
        return None


class LocalStore(ABC, Generic[T]):
    """Abstract interface for the on-device cache.

    A miss is reported as None, never as an entity with an empty id.
    ``insert`` and ``insert_many`` replace existing rows with the same id.
    """

    @abstractmethod
    async def get_all(self) -> list[T]:
        """Return every cached entity."""
        ...

    @abstractmethod
    async def get(self, entity_id: str) -> T | None:
        """Return the cached entity, or None on a miss."""
        ...

    @abstractmethod
    async def insert(self, entity: T) -> None:
        """Insert or replace one entity."""
        ...

    @abstractmethod
    async def insert_many(self, entities: list[T]) -> None:
        """Insert or replace several entities."""
        ...

    @abstractmethod
    async def update(self, entity: T) -> None:
        """Update one entity. Missing rows are inserted."""
        ...

    @abstractmethod
    async def delete(self, entity: T) -> None:
        """Delete one entity. Missing rows are ignored."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Drop every cached entity."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the store and cleanup resources."""
        ...
