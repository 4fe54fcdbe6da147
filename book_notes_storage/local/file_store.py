"""
Local file-based entity store.

Stores one JSON document per collection:
- Path: {base_path}/{collection}.json
- Layout: {"version": 1, "entities": {"<id>": {...entity dict...}}}
- Atomic writes using temp file + rename

The whole collection is loaded on first access and kept in memory; every
mutation rewrites the document. Suited to the few hundred books a reader
tracks, not to large collections.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Generic

from ..exceptions import StorageIOError
from ..protocol import LocalStore, T
from .file_ops import read_json, remove_file, write_json_atomic

logger = logging.getLogger(__name__)

# Default base path for the on-device cache
DEFAULT_BASE_PATH = Path.home() / ".book_notes" / "cache"

FORMAT_VERSION = 1


class FileLocalStore(LocalStore[T], Generic[T]):
    """File-based local store for one entity collection.

    Writes are serialized with an asyncio lock because background mirror
    writes for the same collection may overlap.
    """

    def __init__(self, entity_type: type[T], base_path: Path | None = None):
        """Initialize file store.

        Args:
            entity_type: Entity class stored in this collection
            base_path: Directory holding the collection documents.
                      Defaults to ~/.book_notes/cache
        """
        self.entity_type = entity_type
        self.base_path = Path(base_path) if base_path else DEFAULT_BASE_PATH
        self._rows: dict[str, dict[str, Any]] | None = None
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        """Location of the collection document."""
        return self.base_path / f"{self.entity_type.collection}.json"

    async def _load(self) -> dict[str, dict[str, Any]]:
        if self._rows is None:
            document = await read_json(self.path) or {}
            version = document.get("version", FORMAT_VERSION)
            if version != FORMAT_VERSION:
                raise StorageIOError(
                    "load_collection",
                    str(self.path),
                    ValueError(f"Unsupported format version: {version}"),
                )
            self._rows = dict(document.get("entities", {}))
            logger.debug(f"Loaded {len(self._rows)} {self.entity_type.collection} from {self.path}")
        return self._rows

    async def _flush(self, rows: dict[str, dict[str, Any]]) -> None:
        await write_json_atomic(self.path, {"version": FORMAT_VERSION, "entities": rows})

    def _restore(self, row: dict[str, Any]) -> T:
        return self.entity_type.from_dict(dict(row))

    async def get_all(self) -> list[T]:
        rows = await self._load()
        return [self._restore(row) for row in rows.values()]

    async def get(self, entity_id: str) -> T | None:
        rows = await self._load()
        row = rows.get(entity_id)
        return self._restore(row) if row is not None else None

    async def insert(self, entity: T) -> None:
        await self.insert_many([entity])

    async def insert_many(self, entities: list[T]) -> None:
        if not entities:
            return
        async with self._lock:
            rows = await self._load()
            for entity in entities:
                rows[entity.id] = entity.to_dict()
            await self._flush(rows)

    async def update(self, entity: T) -> None:
        await self.insert_many([entity])

    async def delete(self, entity: T) -> None:
        async with self._lock:
            rows = await self._load()
            if rows.pop(entity.id, None) is not None:
                await self._flush(rows)

    async def clear(self) -> None:
        async with self._lock:
            self._rows = {}
            await remove_file(self.path)

    async def close(self) -> None:
        """Drop the in-memory copy; the document on disk is always current."""
        self._rows = None
