"""Abstract base class for key-value backing stores."""

from __future__ import annotations

from abc import ABC, abstractmethod

QUOTES_KEY = "quotes"
LAST_SYNC_KEY = "last_sync_at"


class KeyValueStore(ABC):
    """
    Abstract interface for the persisted key-value state.

    Values are opaque strings; the RecordStore owns their encoding.
    Implementations raise StorageError on backend failure.
    """

    async def initialize(self) -> None:  # noqa: B027
        """Open connections or create schema. No-op by default."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """
        Read a value.

        Args:
            key: The key to read

        Returns:
            The stored value, or None if the key was never written
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """
        Write a value, replacing any previous one.

        Raises:
            StorageError: If the write fails
        """
        ...

    async def close(self) -> None:  # noqa: B027
        """Release backend resources. No-op by default."""
