"""Timer and on-demand triggering of sync cycles with a busy guard.

Runs cycles on a fixed interval as a background asyncio loop, and on
demand via ``trigger_now()``. At most one cycle runs at a time: a
request arriving while a cycle is in flight is dropped, not queued.
"""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from quote_sync.sync.protocol import SyncReport, SyncStatus
from quote_sync.utils.timeutils import utcnow

if TYPE_CHECKING:
    from quote_sync.sync.sync_engine import SyncEngine

logger = logging.getLogger(__name__)


class SchedulerState(StrEnum):
    """Busy guard state."""

    IDLE = "idle"
    RUNNING = "running"


class SyncScheduler:
    """Triggers SyncEngine cycles, enforcing mutual exclusion.

    The guard's check-and-set contains no ``await``, so under asyncio it
    cannot interleave with another trigger. Timer fires spawn their cycle
    as a separate task; ``stop()`` cancels only the timer, never a cycle
    in flight.
    """

    def __init__(self, engine: SyncEngine) -> None:
        self._engine = engine
        self._state = SchedulerState.IDLE
        self._timer_task: asyncio.Task[None] | None = None
        self._interval_ms: int | None = None
        self._cycle_tasks: set[asyncio.Task[SyncReport | None]] = set()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        """True while a cycle is in flight."""
        return self._state == SchedulerState.RUNNING

    @property
    def is_auto_sync(self) -> bool:
        """True while the timer is active."""
        return self._timer_task is not None and not self._timer_task.done()

    @property
    def interval_ms(self) -> int | None:
        return self._interval_ms if self.is_auto_sync else None

    def start(self, interval_ms: int) -> None:
        """Start (or restart) the periodic timer.

        The first cycle fires one full interval after start.
        """
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.stop()
        self._interval_ms = interval_ms
        task = asyncio.create_task(self._timer_loop(interval_ms / 1000))
        task.add_done_callback(_log_timer_exception)
        self._timer_task = task
        logger.info("Auto-sync started: every %dms", interval_ms)

    def stop(self) -> None:
        """Cancel future timer fires. A cycle in flight runs to completion."""
        if self._timer_task is not None and not self._timer_task.done():
            self._timer_task.cancel()
            logger.info("Auto-sync stopped")
        self._timer_task = None

    async def trigger_now(self) -> SyncReport | None:
        """Run one cycle now unless one is already in flight.

        Returns:
            The cycle report, or None if the request was dropped
        """
        if self._state == SchedulerState.RUNNING:
            logger.debug("Sync request dropped: cycle already running")
            return None
        self._state = SchedulerState.RUNNING

        started_at = utcnow()
        try:
            return await self._engine.run_cycle()
        except Exception as e:
            logger.error("Sync cycle failed", exc_info=True)
            return SyncReport(
                started_at=started_at,
                finished_at=utcnow(),
                pull_error=str(e),
                persisted=False,
                status=SyncStatus.ERROR,
            )
        finally:
            self._state = SchedulerState.IDLE

    async def wait_idle(self) -> None:
        """Wait for cycles spawned by the timer to finish."""
        if self._cycle_tasks:
            await asyncio.gather(*self._cycle_tasks, return_exceptions=True)

    async def shutdown(self) -> None:
        """Stop the timer and let any in-flight cycle finish."""
        self.stop()
        await self.wait_idle()

    async def _timer_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            self._fire()

    def _fire(self) -> None:
        if self._state == SchedulerState.RUNNING:
            logger.debug("Timer fire dropped: cycle already running")
            return
        task = asyncio.create_task(self.trigger_now())
        self._cycle_tasks.add(task)
        task.add_done_callback(self._cycle_tasks.discard)


def _log_timer_exception(task: asyncio.Task[None]) -> None:
    """Log unhandled exceptions from the timer task."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Auto-sync timer raised unhandled exception: %s", exc)
