"""SQLite key-value backend for persistent quote state."""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

from quote_sync.errors import StorageError
from quote_sync.storage.base import KeyValueStore
from quote_sync.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


class SQLiteKeyValueStore(KeyValueStore):
    """SQLite-based key-value store.

    Data persists to disk and survives restarts. One connection is
    opened by ``initialize()`` and reused until ``close()``.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path).resolve()
        self._conn: aiosqlite.Connection | None = None

    @property
    def db_path(self) -> Path:
        return self._db_path

    async def initialize(self) -> None:
        """Open the database and create the kv table if needed."""
        if self._conn is not None:
            return
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(self._db_path)
            self._conn.row_factory = aiosqlite.Row
            await self._conn.execute("PRAGMA journal_mode=WAL")
            await self._conn.execute(SCHEMA)
            await self._conn.commit()
        except (aiosqlite.Error, OSError) as e:
            await self.close()
            raise StorageError(f"Cannot open {self._db_path}: {e}") from e

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _ensure_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StorageError("Store not initialized. Call initialize() first.")
        return self._conn

    async def get(self, key: str) -> str | None:
        conn = self._ensure_conn()
        try:
            async with conn.execute("SELECT value FROM kv WHERE key = ?", (key,)) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to read {key!r}: {e}") from e
        return row["value"] if row is not None else None

    async def set(self, key: str, value: str) -> None:
        conn = self._ensure_conn()
        try:
            await conn.execute(
                """INSERT INTO kv (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value,
                       updated_at = excluded.updated_at""",
                (key, value, utcnow().isoformat()),
            )
            await conn.commit()
        except aiosqlite.Error as e:
            logger.warning("SQLite write failed for key %s", key, exc_info=True)
            raise StorageError(f"Failed to write {key!r}: {e}") from e
