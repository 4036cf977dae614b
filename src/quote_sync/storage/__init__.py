"""Storage backends and the quote record store."""

from quote_sync.storage.base import LAST_SYNC_KEY, QUOTES_KEY, KeyValueStore
from quote_sync.storage.memory_store import InMemoryKeyValueStore
from quote_sync.storage.record_store import ALL_CATEGORIES, RecordStore
from quote_sync.storage.sqlite_store import SQLiteKeyValueStore

__all__ = [
    "ALL_CATEGORIES",
    "LAST_SYNC_KEY",
    "QUOTES_KEY",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "RecordStore",
    "SQLiteKeyValueStore",
]
