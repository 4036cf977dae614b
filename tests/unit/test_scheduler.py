"""Tests for SyncScheduler triggering and the busy guard."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from quote_sync.storage.record_store import RecordStore
from quote_sync.sync.protocol import SyncStatus
from quote_sync.sync.scheduler import SchedulerState, SyncScheduler
from quote_sync.sync.sync_engine import SyncEngine
from tests.fakes import FakeRemote, make_quote, wait_until


class TestTriggerNow:
    async def test_runs_one_cycle(self, engine: SyncEngine, remote: FakeRemote) -> None:
        scheduler = SyncScheduler(engine)

        report = await scheduler.trigger_now()

        assert report is not None
        assert report.status == SyncStatus.SUCCESS
        assert remote.pull_calls == 1
        assert scheduler.state == SchedulerState.IDLE

    async def test_request_during_cycle_is_dropped(
        self, engine: SyncEngine, store: RecordStore, remote: FakeRemote
    ) -> None:
        store.upsert(make_quote("loc-1", "A"))
        remote.gate = asyncio.Event()
        scheduler = SyncScheduler(engine)

        first = asyncio.create_task(scheduler.trigger_now())
        await wait_until(lambda: bool(remote.pushed))
        assert scheduler.is_running is True

        assert await scheduler.trigger_now() is None

        remote.gate.set()
        report = await first
        assert report is not None
        assert len(remote.pushed) == 1
        assert remote.pull_calls == 1
        assert scheduler.is_running is False

    async def test_engine_exception_yields_error_report(self, engine: SyncEngine) -> None:
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        engine.run_cycle = failing  # type: ignore[method-assign]
        scheduler = SyncScheduler(engine)

        report = await scheduler.trigger_now()

        assert report is not None
        assert report.status == SyncStatus.ERROR
        assert report.pull_error == "boom"
        assert scheduler.state == SchedulerState.IDLE


class TestTimer:
    async def test_start_rejects_non_positive_interval(self, engine: SyncEngine) -> None:
        scheduler = SyncScheduler(engine)
        with pytest.raises(ValueError):
            scheduler.start(0)
        assert scheduler.is_auto_sync is False

    async def test_timer_fires_cycles(self, engine: SyncEngine, remote: FakeRemote) -> None:
        scheduler = SyncScheduler(engine)
        scheduler.start(10)
        assert scheduler.is_auto_sync is True
        assert scheduler.interval_ms == 10

        await wait_until(lambda: remote.pull_calls >= 2)
        await scheduler.shutdown()

        assert scheduler.is_auto_sync is False
        assert scheduler.interval_ms is None

    async def test_first_fire_waits_one_interval(
        self, engine: SyncEngine, remote: FakeRemote
    ) -> None:
        scheduler = SyncScheduler(engine)
        scheduler.start(60_000)
        await asyncio.sleep(0.02)

        assert remote.pull_calls == 0
        scheduler.stop()

    async def test_stop_prevents_future_cycles(
        self, engine: SyncEngine, remote: FakeRemote
    ) -> None:
        scheduler = SyncScheduler(engine)
        scheduler.start(10)
        await wait_until(lambda: remote.pull_calls >= 1)
        scheduler.stop()
        await scheduler.wait_idle()
        calls = remote.pull_calls

        await asyncio.sleep(0.05)

        assert remote.pull_calls == calls

    async def test_stop_does_not_abort_cycle_in_flight(
        self, engine: SyncEngine, store: RecordStore, remote: FakeRemote
    ) -> None:
        store.upsert(make_quote("loc-1", "A"))
        remote.gate = asyncio.Event()
        scheduler = SyncScheduler(engine)
        scheduler.start(10)

        await wait_until(lambda: bool(remote.pushed))
        scheduler.stop()
        remote.gate.set()
        await scheduler.wait_idle()

        assert engine.last_report is not None
        assert "srv-101" in store

    async def test_timer_fire_dropped_while_manual_cycle_runs(
        self, engine: SyncEngine, store: RecordStore, remote: FakeRemote
    ) -> None:
        store.upsert(make_quote("loc-1", "A"))
        remote.gate = asyncio.Event()
        scheduler = SyncScheduler(engine)

        manual = asyncio.create_task(scheduler.trigger_now())
        await wait_until(lambda: bool(remote.pushed))
        scheduler.start(5)
        await asyncio.sleep(0.05)
        scheduler.stop()
        remote.gate.set()
        await manual
        await scheduler.wait_idle()

        assert len(remote.pushed) == 1
        assert remote.pull_calls == 1

    async def test_restart_replaces_timer(self, engine: SyncEngine) -> None:
        scheduler = SyncScheduler(engine)
        scheduler.start(50_000)
        scheduler.start(20_000)

        assert scheduler.interval_ms == 20_000
        await scheduler.shutdown()
