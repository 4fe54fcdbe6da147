"""
Local store implementations.

Provides the on-device cache the interactor reads first:
- InMemoryLocalStore: dict-backed, for tests and ephemeral use
- FileLocalStore: one JSON document per collection
- SQLiteLocalStore: single-file SQLite database via aiosqlite
"""

from .file_store import FileLocalStore
from .memory_store import InMemoryLocalStore
from .sqlite_store import SQLiteLocalStore, SQLiteStoreConfig

__all__ = [
    "InMemoryLocalStore",
    "FileLocalStore",
    "SQLiteLocalStore",
    "SQLiteStoreConfig",
]
