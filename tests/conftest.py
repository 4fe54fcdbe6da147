"""
Shared test configuration and fixtures.

Provides recording collaborators that count calls and can be told to fail,
so interactor tests can assert which store was touched and when.
"""

import tempfile
from collections import Counter
from pathlib import Path

import pytest

from book_notes_storage import Book, BookNote, BooksInteractor
from book_notes_storage.exceptions import StorageConnectionError, StorageIOError
from book_notes_storage.local import InMemoryLocalStore
from book_notes_storage.remote import InMemoryRemoteRepository


class RecordingRemoteRepository(InMemoryRemoteRepository):
    """In-memory remote repository that records calls.

    Set ``fail_on`` to operation names that should raise a connection error,
    or ``assigned_ids`` to a list of ids handed out by insert calls in order.
    """

    def __init__(self, entity_type=Book, seed=None):
        super().__init__(entity_type, seed)
        self.calls: Counter[str] = Counter()
        self.fail_on: set[str] = set()
        self.assigned_ids: list[str] = []
        self.closed = False

    def _record(self, operation: str) -> None:
        self.calls[operation] += 1
        if operation in self.fail_on:
            raise StorageConnectionError("https://books.test", OSError("network unreachable"))

    def _next_id(self) -> str | None:
        return self.assigned_ids.pop(0) if self.assigned_ids else None

    async def get_all(self):
        self._record("get_all")
        return await super().get_all()

    async def get(self, entity_id):
        self._record("get")
        return await super().get(entity_id)

    async def insert(self, entity):
        self._record("insert")
        return await self._insert_one(entity)

    async def _insert_one(self, entity):
        forced_id = self._next_id()
        if forced_id is None:
            return await InMemoryRemoteRepository.insert(self, entity)
        document = entity.to_dict()
        document["id"] = forced_id
        self._documents[forced_id] = document
        return forced_id

    async def insert_many(self, entities):
        self._record("insert_many")
        return [await self._insert_one(entity) for entity in entities]

    async def update(self, entity):
        self._record("update")
        await super().update(entity)

    async def delete(self, entity):
        self._record("delete")
        await super().delete(entity)

    async def close(self):
        self.closed = True

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())


class RecordingLocalStore(InMemoryLocalStore):
    """In-memory local store that records calls and can fail writes."""

    def __init__(self, entity_type=Book):
        super().__init__(entity_type)
        self.calls: Counter[str] = Counter()
        self.fail_writes = False
        self.closed = False

    def _record(self, operation: str, write: bool = False) -> None:
        self.calls[operation] += 1
        if write and self.fail_writes:
            raise StorageIOError(operation, "memory", OSError("disk full"))

    async def get_all(self):
        self._record("get_all")
        return await super().get_all()

    async def get(self, entity_id):
        self._record("get")
        return await super().get(entity_id)

    async def insert(self, entity):
        self._record("insert", write=True)
        await super().insert(entity)

    async def insert_many(self, entities):
        self._record("insert_many", write=True)
        await super().insert_many(entities)

    async def update(self, entity):
        self._record("update", write=True)
        await super().update(entity)

    async def delete(self, entity):
        self._record("delete", write=True)
        await super().delete(entity)

    async def close(self):
        self.closed = True

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def remote() -> RecordingRemoteRepository:
    return RecordingRemoteRepository(Book)


@pytest.fixture
def local() -> RecordingLocalStore:
    return RecordingLocalStore(Book)


@pytest.fixture
async def interactor(remote, local):
    """Books interactor over recording collaborators."""
    books = BooksInteractor(remote, local)
    yield books
    await books.close()


def make_book(title: str = "Dune", book_id: str = "", **kwargs) -> Book:
    """Create a test book."""
    return Book(id=book_id, title=title, author=kwargs.pop("author", "Frank Herbert"), **kwargs)


def make_note(content: str = "Fear is the mind-killer.", book_id: str = "b1") -> BookNote:
    """Create a test note."""
    return BookNote(book_id=book_id, content=content, page=8)
