"""In-memory key-value store for tests and ephemeral runs."""

from __future__ import annotations

from quote_sync.errors import StorageError
from quote_sync.storage.base import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store. Data is lost when the process exits.

    ``fail_writes`` simulates a full disk or locked database.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self.fail_writes = False

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StorageError(f"Write to {key!r} rejected")
        self._data[key] = value

    def dump(self) -> dict[str, str]:
        """Copy of the raw stored values."""
        return dict(self._data)
