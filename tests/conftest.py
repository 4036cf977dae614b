"""Pytest configuration and fixtures."""

from __future__ import annotations

import pytest
import pytest_asyncio

from quote_sync.storage.memory_store import InMemoryKeyValueStore
from quote_sync.storage.record_store import RecordStore
from quote_sync.sync.conflicts import ConflictResolver
from quote_sync.sync.sync_engine import SyncEngine
from tests.fakes import FakeRemote, kv_with


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    """Backing store holding an empty collection."""
    return kv_with()


@pytest_asyncio.fixture
async def store(kv: InMemoryKeyValueStore) -> RecordStore:
    """Loaded record store with no quotes."""
    record_store = RecordStore(kv)
    await record_store.load()
    return record_store


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def engine(store: RecordStore, remote: FakeRemote, kv: InMemoryKeyValueStore) -> SyncEngine:
    return SyncEngine(
        store,
        remote,  # type: ignore[arg-type]
        kv,
        resolver=ConflictResolver(store),
        pull_limit=5,
        timeout=1.0,
        max_push_attempts=3,
    )
