"""Sync engine orchestrator: push, pull, merge, persist."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from datetime import datetime
from typing import TYPE_CHECKING, TypeVar

from quote_sync.core.quote import Quote
from quote_sync.errors import NetworkError, ParseError, StorageError
from quote_sync.storage.base import LAST_SYNC_KEY
from quote_sync.sync.conflicts import ConflictResolver
from quote_sync.sync.merge import merge_remote_batch
from quote_sync.sync.protocol import ConflictRecord, PushOutcome, SyncReport, SyncStatus
from quote_sync.utils.timeutils import parse_timestamp, utcnow

if TYPE_CHECKING:
    from quote_sync.storage.base import KeyValueStore
    from quote_sync.storage.record_store import RecordStore
    from quote_sync.sync.client import RemoteClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PULL_LIMIT = 5


class SyncEngine:
    """Top-level orchestrator for one local replica vs. one remote collection.

    A cycle runs to completion in strict phase order:
    1. Push every unsynced local quote (concurrently, failures per item)
    2. Pull one batch from the remote (failure degrades to push-only)
    3. Merge the batch by id, remote wins on conflict
    4. Replace the pending conflict set
    5. Persist quotes and the completion timestamp

    Overlap between cycles is prevented by the SyncScheduler, not here.
    """

    def __init__(
        self,
        store: RecordStore,
        remote: RemoteClient,
        kv: KeyValueStore,
        *,
        resolver: ConflictResolver | None = None,
        pull_limit: int = DEFAULT_PULL_LIMIT,
        timeout: float = 15.0,
        max_push_attempts: int = 5,
    ) -> None:
        self._store = store
        self._remote = remote
        self._kv = kv
        self._resolver = resolver or ConflictResolver(store)
        self._pull_limit = pull_limit
        self._timeout = timeout
        self._max_push_attempts = max_push_attempts
        self._push_failures: dict[tuple[str, str, str], int] = {}
        self._last_sync_at: datetime | None = None
        self._last_report: SyncReport | None = None

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def resolver(self) -> ConflictResolver:
        return self._resolver

    @property
    def conflicts(self) -> list[ConflictRecord]:
        """Pending conflicts from the most recent merge."""
        return self._resolver.pending()

    @property
    def last_sync_at(self) -> datetime | None:
        return self._last_sync_at

    @property
    def last_report(self) -> SyncReport | None:
        return self._last_report

    async def load_state(self) -> None:
        """Restore the last completed cycle timestamp."""
        try:
            raw = await self._kv.get(LAST_SYNC_KEY)
        except StorageError:
            logger.warning("Could not read last sync time", exc_info=True)
            return
        self._last_sync_at = parse_timestamp(raw)

    def reset_push_attempts(self) -> None:
        """Forget push failure counts so capped quotes are retried."""
        self._push_failures.clear()

    async def run_cycle(self) -> SyncReport:
        """Run one full push-pull-merge cycle."""
        started_at = utcnow()
        logger.info("Sync cycle started")

        # 1. Push phase: selection is evaluated fresh every cycle
        candidates = self._store.unsynced()
        self._prune_push_failures(candidates)
        to_push = [q for q in candidates if not self._gave_up(q)]
        push_skipped = len(candidates) - len(to_push)

        outcomes = await asyncio.gather(*(self._push_one(q) for q in to_push))
        pushed, push_failed = self._apply_push_outcomes(to_push, outcomes)

        # 2. Pull phase: only starts once every push has settled
        pull_error: str | None = None
        try:
            remote_quotes = await self._bounded(self._remote.pull(self._pull_limit))
        except (NetworkError, ParseError) as e:
            logger.warning("Pull failed, merging nothing this cycle: %s", e)
            remote_quotes = []
            pull_error = str(e)

        # 3. Merge phase
        current = {q.id: q for q in self._store.quotes()}
        result = merge_remote_batch(current, remote_quotes)
        for quote in result.upserts:
            self._store.upsert(quote)

        # 4. Pending conflicts are replaced, never accumulated
        self._resolver.replace(result.conflicts)

        # 5. Persist
        finished_at = utcnow()
        persisted = await self._persist(finished_at)
        self._last_sync_at = finished_at

        degraded = push_failed or push_skipped or pull_error is not None or not persisted
        report = SyncReport(
            started_at=started_at,
            finished_at=finished_at,
            pushed=pushed,
            push_failed=push_failed,
            push_skipped=push_skipped,
            pulled=len(remote_quotes),
            inserted=result.inserted,
            adopted=result.adopted,
            conflicts=tuple(result.conflicts),
            pull_error=pull_error,
            persisted=persisted,
            status=SyncStatus.PARTIAL if degraded else SyncStatus.SUCCESS,
        )
        self._last_report = report
        logger.info("Sync cycle finished: %s", report.summary())
        return report

    # ── Push ──────────────────────────────────────────────────────────

    async def _push_one(self, quote: Quote) -> PushOutcome:
        try:
            assigned = await self._bounded(self._remote.push(quote))
        except (NetworkError, ParseError) as e:
            logger.warning("Push of %s failed, will retry next cycle: %s", quote.id, e)
            return PushOutcome(local_id=quote.id, error=str(e))
        return PushOutcome(local_id=quote.id, remote_id=assigned)

    def _apply_push_outcomes(
        self,
        sent: list[Quote],
        outcomes: list[PushOutcome],
    ) -> tuple[int, int]:
        """Mark successfully pushed quotes synced under their remote id.

        Returns:
            Tuple of (pushed, failed)
        """
        pushed = 0
        failed = 0

        for quote, outcome in zip(sent, outcomes, strict=True):
            key = _attempt_key(quote)
            if not outcome.ok:
                failed += 1
                attempts = self._push_failures.get(key, 0) + 1
                self._push_failures[key] = attempts
                if self._max_push_attempts and attempts >= self._max_push_attempts:
                    logger.warning(
                        "Giving up on pushing %s after %d attempts", quote.id, attempts
                    )
                continue

            self._push_failures.pop(key, None)
            assert outcome.remote_id is not None

            current = self._store.get(quote.id)
            if current is None or current.synced or not current.same_content(quote):
                # Edited while the push was in flight; the next cycle re-sends it
                logger.debug("Quote %s changed during push, not marking synced", quote.id)
                continue

            new_id = self._unique_id(outcome.remote_id, quote.id)
            self._store.replace(quote.id, current.mark_synced(new_id))
            pushed += 1
            logger.debug("Pushed %s as %s", quote.id, new_id)

        return pushed, failed

    def _unique_id(self, assigned: str, own_id: str) -> str:
        """Disambiguate a remote id that another stored quote already holds."""
        if assigned == own_id or assigned not in self._store:
            return assigned
        n = 2
        while f"{assigned}~{n}" in self._store:
            n += 1
        candidate = f"{assigned}~{n}"
        logger.warning("Remote reused id %s; storing %s as %s", assigned, own_id, candidate)
        return candidate

    def _prune_push_failures(self, candidates: list[Quote]) -> None:
        """Drop failure counts for content that is no longer pending."""
        live = {_attempt_key(q) for q in candidates}
        for key in [k for k in self._push_failures if k not in live]:
            del self._push_failures[key]

    def _gave_up(self, quote: Quote) -> bool:
        if not self._max_push_attempts:
            return False
        return self._push_failures.get(_attempt_key(quote), 0) >= self._max_push_attempts

    # ── Helpers ───────────────────────────────────────────────────────

    async def _bounded(self, call: Awaitable[T]) -> T:
        """Await a remote call, converting a hang into NetworkError."""
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except TimeoutError as e:
            raise NetworkError(f"Remote call timed out after {self._timeout}s") from e

    async def _persist(self, finished_at: datetime) -> bool:
        try:
            await self._store.persist()
            await self._kv.set(LAST_SYNC_KEY, finished_at.isoformat())
        except StorageError:
            logger.warning("Sync results kept in memory only; save failed")
            return False
        return True


def _attempt_key(quote: Quote) -> tuple[str, str, str]:
    """Failure counts follow content, so an edited quote starts fresh."""
    return (quote.id, quote.text, quote.category)
