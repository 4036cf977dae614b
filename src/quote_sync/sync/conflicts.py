"""Manual override of automatic (remote-wins) merge decisions."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from quote_sync.errors import StorageError
from quote_sync.storage.record_store import RecordStore
from quote_sync.sync.protocol import ConflictRecord

logger = logging.getLogger(__name__)


class ConflictResolver:
    """Holds the pending conflicts of the most recent merge.

    The pending set is replaced wholesale by every cycle, so a conflict
    left unresolved is dropped once the next cycle merges. Actions on an
    id that is not pending (stale or already resolved) are no-ops.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._pending: dict[str, ConflictRecord] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def pending(self) -> list[ConflictRecord]:
        """Current conflicts in detection order."""
        return list(self._pending.values())

    def get(self, quote_id: str) -> ConflictRecord | None:
        return self._pending.get(quote_id)

    def replace(self, conflicts: Iterable[ConflictRecord]) -> None:
        """Swap in the conflicts produced by a new merge."""
        self._pending = {c.id: c for c in conflicts}

    async def restore_local(self, quote_id: str) -> bool:
        """Put the local snapshot back and queue it for the next push.

        Returns:
            True if a pending conflict was resolved, False on a no-op
        """
        conflict = self._pending.pop(quote_id, None)
        if conflict is None:
            logger.debug("restore_local(%s): not pending", quote_id)
            return False

        restored = conflict.local.mark_local()
        self._store.upsert(restored)
        logger.info("Restored local content for %s", quote_id)
        await self._persist()
        return True

    async def keep_remote(self, quote_id: str) -> bool:
        """Acknowledge the remote-wins decision and dismiss the conflict.

        Returns:
            True if a pending conflict was resolved, False on a no-op
        """
        conflict = self._pending.pop(quote_id, None)
        if conflict is None:
            logger.debug("keep_remote(%s): not pending", quote_id)
            return False

        stored = self._store.get(quote_id)
        if stored is None or not stored.same_content(conflict.remote) or not stored.synced:
            self._store.upsert(conflict.remote.adopted())
            await self._persist()
        logger.info("Kept remote content for %s", quote_id)
        return True

    async def _persist(self) -> None:
        try:
            await self._store.persist()
        except StorageError:
            logger.warning("Conflict resolution applied in memory only; save failed")

