"""Single handle through which a UI collaborator drives quote-sync."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from quote_sync.config import QuoteSyncConfig
from quote_sync.core.quote import Quote
from quote_sync.errors import StorageError
from quote_sync.storage.base import KeyValueStore
from quote_sync.storage.record_store import ALL_CATEGORIES, RecordStore
from quote_sync.storage.sqlite_store import SQLiteKeyValueStore
from quote_sync.sync.client import RemoteClient
from quote_sync.sync.conflicts import ConflictResolver
from quote_sync.sync.protocol import ConflictRecord, SyncReport
from quote_sync.sync.scheduler import SyncScheduler
from quote_sync.sync.sync_engine import SyncEngine

logger = logging.getLogger(__name__)


class QuoteSyncService:
    """
    Owns the record store, sync engine, conflict set and scheduler.

    Usage:
        async with await QuoteSyncService.create(config) as service:
            await service.add_quote("Stay hungry.", "Life")
            report = await service.trigger_sync_now()
            for conflict in service.get_current_conflicts():
                await service.resolve_keep_remote(conflict.id)
    """

    def __init__(
        self,
        store: RecordStore,
        engine: SyncEngine,
        scheduler: SyncScheduler,
        *,
        kv: KeyValueStore,
        remote: RemoteClient,
    ) -> None:
        self._store = store
        self._engine = engine
        self._scheduler = scheduler
        self._kv = kv
        self._remote = remote

    @classmethod
    async def create(
        cls,
        config: QuoteSyncConfig,
        *,
        kv: KeyValueStore | None = None,
        remote: RemoteClient | None = None,
    ) -> QuoteSyncService:
        """Build and load a service from configuration.

        Args:
            config: Effective configuration
            kv: Backing store override (defaults to SQLite in data_dir)
            remote: Remote client override (defaults to config.remote)

        Raises:
            StorageError: If the backing store cannot be opened or read
        """
        if kv is None:
            kv = SQLiteKeyValueStore(config.db_path)
        await kv.initialize()

        if remote is None:
            remote = RemoteClient(
                config.remote.base_url,
                timeout=config.remote.timeout,
                remote_category=config.remote.remote_category,
            )

        store = RecordStore(kv)
        try:
            await store.load()
        except StorageError:
            await kv.close()
            raise

        engine = SyncEngine(
            store,
            remote,
            kv,
            resolver=ConflictResolver(store),
            pull_limit=config.remote.pull_limit,
            # Engine bound sits just above the client's own request timeout
            timeout=config.remote.timeout + 5.0,
            max_push_attempts=config.sync.max_push_attempts,
        )
        await engine.load_state()

        service = cls(store, engine, SyncScheduler(engine), kv=kv, remote=remote)
        if config.sync.auto_sync:
            service.set_auto_sync(True, config.sync.interval_ms)
        return service

    async def close(self) -> None:
        """Stop auto-sync, wait for any cycle in flight, release resources."""
        await self._scheduler.shutdown()
        await self._remote.close()
        await self._kv.close()

    async def __aenter__(self) -> QuoteSyncService:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    # ========== Records ==========

    def quotes(self) -> tuple[Quote, ...]:
        """Read-only snapshot of the current collection."""
        return self._store.quotes()

    def categories(self) -> list[str]:
        return self._store.categories()

    def quotes_in(self, category: str = ALL_CATEGORIES) -> list[Quote]:
        return self._store.by_category(category)

    async def add_quote(self, text: str, category: str) -> Quote:
        return await self._store.add(text, category)

    def export_json(self) -> str:
        return self._store.export_json()

    async def import_json(self, payload: str | bytes) -> list[Quote]:
        return await self._store.import_quotes(payload)

    # ========== Conflicts ==========

    def get_current_conflicts(self) -> list[ConflictRecord]:
        return self._engine.conflicts

    async def resolve_restore_local(self, quote_id: str) -> bool:
        return await self._engine.resolver.restore_local(quote_id)

    async def resolve_keep_remote(self, quote_id: str) -> bool:
        return await self._engine.resolver.keep_remote(quote_id)

    # ========== Sync ==========

    async def trigger_sync_now(self) -> SyncReport | None:
        """Run a cycle now; None if one was already in flight."""
        return await self._scheduler.trigger_now()

    def set_auto_sync(self, enabled: bool, interval_ms: int | None = None) -> None:
        """Turn periodic syncing on (with an interval) or off."""
        if not enabled:
            self._scheduler.stop()
            return
        if interval_ms is None:
            raise ValueError("interval_ms is required to enable auto-sync")
        self._scheduler.start(interval_ms)

    @property
    def is_auto_sync(self) -> bool:
        return self._scheduler.is_auto_sync

    @property
    def is_syncing(self) -> bool:
        return self._scheduler.is_running

    @property
    def last_sync_at(self) -> datetime | None:
        return self._engine.last_sync_at

    @property
    def last_report(self) -> SyncReport | None:
        return self._engine.last_report
