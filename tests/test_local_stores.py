"""Tests for local store implementations.

Every store is run through the same contract: genuine None on a miss,
upsert semantics, ordered get_all and tolerant deletes.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from pathlib import Path

import pytest

from book_notes_storage import Book, BookNote, StorageIOError
from book_notes_storage.local import (
    FileLocalStore,
    InMemoryLocalStore,
    SQLiteLocalStore,
    SQLiteStoreConfig,
)
from book_notes_storage.protocol import LocalStore


@pytest.fixture(params=["memory", "file", "sqlite"])
async def store(request, temp_dir: Path) -> AsyncIterator[LocalStore[Book]]:
    """Each local store implementation, empty."""
    if request.param == "memory":
        store: LocalStore[Book] = InMemoryLocalStore(Book)
    elif request.param == "file":
        store = FileLocalStore(Book, temp_dir)
    else:
        store = await SQLiteLocalStore.create(Book, SQLiteStoreConfig(temp_dir / "cache.db"))
    yield store
    await store.close()


class TestLocalStoreContract:
    """Behavior shared by all local stores."""

    async def test_empty_store(self, store: LocalStore[Book]) -> None:
        assert await store.get_all() == []

    async def test_miss_is_none(self, store: LocalStore[Book]) -> None:
        """A miss is None, not an empty-id placeholder."""
        assert await store.get("missing") is None

    async def test_insert_and_get(self, store: LocalStore[Book]) -> None:
        created = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
        book = Book(id="b1", title="Dune", author="Frank Herbert", page_count=412, created=created)

        await store.insert(book)
        found = await store.get("b1")

        assert found == book
        assert found is not book

    async def test_insert_many_preserves_order(self, store: LocalStore[Book]) -> None:
        books = [Book(id=f"b{i}", title=f"Book {i}") for i in (3, 1, 2)]

        await store.insert_many(books)

        assert [b.id for b in await store.get_all()] == ["b3", "b1", "b2"]

    async def test_insert_replaces_existing(self, store: LocalStore[Book]) -> None:
        await store.insert(Book(id="b1", title="Old"))
        await store.insert(Book(id="b1", title="New"))

        books = await store.get_all()
        assert len(books) == 1
        assert books[0].title == "New"

    async def test_update(self, store: LocalStore[Book]) -> None:
        await store.insert_many([Book(id="b1", title="One"), Book(id="b2", title="Two")])

        await store.update(Book(id="b1", title="One, revised"))

        assert (await store.get("b1")).title == "One, revised"
        assert [b.id for b in await store.get_all()] == ["b1", "b2"]

    async def test_delete(self, store: LocalStore[Book]) -> None:
        await store.insert(Book(id="b1", title="Dune"))

        await store.delete(Book(id="b1"))

        assert await store.get("b1") is None

    async def test_delete_missing_is_ignored(self, store: LocalStore[Book]) -> None:
        await store.delete(Book(id="never-cached"))
        assert await store.get_all() == []

    async def test_clear(self, store: LocalStore[Book]) -> None:
        await store.insert_many([Book(id="b1"), Book(id="b2")])

        await store.clear()

        assert await store.get_all() == []

    async def test_insert_many_empty_is_noop(self, store: LocalStore[Book]) -> None:
        await store.insert_many([])
        assert await store.get_all() == []


class TestFileLocalStore:
    """File-specific behavior."""

    async def test_persists_across_instances(self, temp_dir: Path) -> None:
        first = FileLocalStore(Book, temp_dir)
        await first.insert(Book(id="b1", title="Dune"))
        await first.close()

        second = FileLocalStore(Book, temp_dir)
        found = await second.get("b1")

        assert found is not None and found.title == "Dune"

    async def test_document_layout(self, temp_dir: Path) -> None:
        store = FileLocalStore(Book, temp_dir)
        await store.insert(Book(id="b1", title="Dune"))

        document = json.loads((temp_dir / "books.json").read_text())

        assert document["version"] == 1
        assert document["entities"]["b1"]["title"] == "Dune"

    async def test_collections_use_separate_files(self, temp_dir: Path) -> None:
        books = FileLocalStore(Book, temp_dir)
        notes = FileLocalStore(BookNote, temp_dir)

        await books.insert(Book(id="b1", title="Dune"))
        await notes.insert(BookNote(id="n1", book_id="b1", content="Spice"))

        assert (temp_dir / "books.json").exists()
        assert (temp_dir / "book_notes.json").exists()
        assert await notes.get("b1") is None

    async def test_corrupt_file_raises_storage_error(self, temp_dir: Path) -> None:
        (temp_dir / "books.json").write_text("{not json")
        store = FileLocalStore(Book, temp_dir)

        with pytest.raises(StorageIOError):
            await store.get_all()

    async def test_unknown_version_raises(self, temp_dir: Path) -> None:
        (temp_dir / "books.json").write_text(json.dumps({"version": 99, "entities": {}}))
        store = FileLocalStore(Book, temp_dir)

        with pytest.raises(StorageIOError):
            await store.get_all()

    async def test_clear_removes_file(self, temp_dir: Path) -> None:
        store = FileLocalStore(Book, temp_dir)
        await store.insert(Book(id="b1"))

        await store.clear()

        assert not (temp_dir / "books.json").exists()
        assert await store.get_all() == []


class TestSQLiteLocalStore:
    """SQLite-specific behavior."""

    async def test_persists_across_connections(self, temp_dir: Path) -> None:
        config = SQLiteStoreConfig(db_path=temp_dir / "cache.db")
        first = await SQLiteLocalStore.create(Book, config)
        await first.insert(Book(id="b1", title="Dune"))
        await first.close()

        second = await SQLiteLocalStore.create(Book, config)
        found = await second.get("b1")
        await second.close()

        assert found is not None and found.title == "Dune"

    async def test_collections_share_one_database(self, temp_dir: Path) -> None:
        config = SQLiteStoreConfig(db_path=temp_dir / "cache.db")
        books = await SQLiteLocalStore.create(Book, config)
        notes = await SQLiteLocalStore.create(BookNote, config)

        await books.insert(Book(id="x", title="Dune"))
        await notes.insert(BookNote(id="x", book_id="x", content="Spice"))

        assert isinstance(await books.get("x"), Book)
        assert isinstance(await notes.get("x"), BookNote)
        await books.close()
        await notes.close()

    async def test_lazy_initialization(self) -> None:
        store = SQLiteLocalStore(Book)

        await store.insert(Book(id="b1", title="Dune"))

        assert (await store.get("b1")).title == "Dune"
        await store.close()

    async def test_creates_parent_directory(self, temp_dir: Path) -> None:
        db_path = temp_dir / "nested" / "dir" / "cache.db"
        store = await SQLiteLocalStore.create(Book, SQLiteStoreConfig(db_path))
        await store.close()

        assert db_path.exists()
