"""
SQLite local store.

Single-file on-device cache using aiosqlite. Each entity collection gets its
own table holding the entity id and its JSON payload; the payload is the
entity's ``to_dict()`` form so the cached shape always matches the remote one.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic

import aiosqlite

from ..exceptions import StorageConnectionError, StorageIOError
from ..protocol import LocalStore, T

logger = logging.getLogger(__name__)


@dataclass
class SQLiteStoreConfig:
    """Configuration for the SQLite local store."""

    db_path: str | Path = ":memory:"

    @classmethod
    def from_env(cls) -> SQLiteStoreConfig:
        """Create config from environment variables."""
        import os

        return cls(db_path=os.environ.get("BOOK_NOTES_SQLITE_PATH", ":memory:"))


class SQLiteLocalStore(LocalStore[T], Generic[T]):
    """
    SQLite-backed local store for one entity collection.

    Table layout:
        {collection} (
            id TEXT PRIMARY KEY,
            data TEXT NOT NULL,        -- JSON entity payload
            cached_at TEXT             -- last write time (UTC)
        )

    Rows keep their first insertion order, so ``get_all`` returns entities in
    the order they were first cached.
    """

    def __init__(self, entity_type: type[T], config: SQLiteStoreConfig | None = None):
        """
        Initialize SQLite store.

        Args:
            entity_type: Entity class stored in this collection
            config: SQLite configuration (defaults to in-memory database)
        """
        self.entity_type = entity_type
        self.config = config or SQLiteStoreConfig()
        self.conn: aiosqlite.Connection | None = None
        self._initialized = False

    @classmethod
    async def create(
        cls,
        entity_type: type[T],
        config: SQLiteStoreConfig | None = None,
    ) -> SQLiteLocalStore[T]:
        """Create and initialize a SQLite store."""
        store = cls(entity_type, config)
        await store.initialize()
        return store

    @property
    def table(self) -> str:
        return self.entity_type.collection

    async def initialize(self) -> None:
        """Open the connection and create the collection table."""
        if self._initialized:
            return

        db_path = str(self.config.db_path)
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self.conn = await aiosqlite.connect(db_path)
            await self.conn.execute("PRAGMA journal_mode = WAL")
            await self.conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    id TEXT NOT NULL PRIMARY KEY,
                    data TEXT NOT NULL,
                    cached_at TEXT DEFAULT (datetime('now'))
                )
            """)
            await self.conn.commit()
        except Exception as e:
            raise StorageConnectionError(f"sqlite:{db_path}", e) from e

        self._initialized = True
        logger.info(f"SQLite store ready: {db_path} ({self.table})")

    async def close(self) -> None:
        """Close SQLite connection."""
        if self.conn:
            await self.conn.close()
            self.conn = None
            self._initialized = False

    async def _connection(self) -> aiosqlite.Connection:
        if not self._initialized:
            await self.initialize()
        assert self.conn is not None
        return self.conn

    def _row_to_entity(self, data: str) -> T:
        return self.entity_type.from_dict(json.loads(data))

    @staticmethod
    def _entity_to_row(entity: Any) -> tuple[str, str]:
        return entity.id, json.dumps(entity.to_dict())

    async def get_all(self) -> list[T]:
        conn = await self._connection()
        try:
            async with conn.execute(f"SELECT data FROM {self.table} ORDER BY rowid") as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageIOError("get_all", self.table, e) from e
        return [self._row_to_entity(row[0]) for row in rows]

    async def get(self, entity_id: str) -> T | None:
        conn = await self._connection()
        try:
            async with conn.execute(
                f"SELECT data FROM {self.table} WHERE id = ?", (entity_id,)
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageIOError("get", self.table, e) from e
        return self._row_to_entity(row[0]) if row else None

    async def insert(self, entity: T) -> None:
        await self.insert_many([entity])

    async def insert_many(self, entities: list[T]) -> None:
        if not entities:
            return
        conn = await self._connection()
        try:
            await conn.executemany(
                f"""
                INSERT INTO {self.table} (id, data, cached_at)
                VALUES (?, ?, datetime('now'))
                ON CONFLICT(id) DO UPDATE SET
                    data = excluded.data,
                    cached_at = excluded.cached_at
                """,
                [self._entity_to_row(entity) for entity in entities],
            )
            await conn.commit()
        except aiosqlite.Error as e:
            raise StorageIOError("insert", self.table, e) from e

    async def update(self, entity: T) -> None:
        await self.insert_many([entity])

    async def delete(self, entity: T) -> None:
        conn = await self._connection()
        try:
            await conn.execute(f"DELETE FROM {self.table} WHERE id = ?", (entity.id,))
            await conn.commit()
        except aiosqlite.Error as e:
            raise StorageIOError("delete", self.table, e) from e

    async def clear(self) -> None:
        conn = await self._connection()
        try:
            await conn.execute(f"DELETE FROM {self.table}")
            await conn.commit()
        except aiosqlite.Error as e:
            raise StorageIOError("clear", self.table, e) from e
