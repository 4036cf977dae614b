"""Sync protocol data structures for quote synchronization."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from quote_sync.core.quote import Quote
from quote_sync.utils.timeutils import utcnow


class SyncStatus(StrEnum):
    """Sync cycle status."""

    SUCCESS = "success"
    PARTIAL = "partial"  # some pushes failed, or the pull failed
    SKIPPED = "skipped"  # dropped by the busy guard
    ERROR = "error"


@dataclass(frozen=True)
class ConflictRecord:
    """A same-id, differing-content disagreement found during merge.

    Both snapshots are full copies as they stood at merge time.
    """

    id: str
    local: Quote
    remote: Quote
    detected_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class PushOutcome:
    """Result of pushing one quote."""

    local_id: str
    remote_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.remote_id is not None and self.error is None


@dataclass(frozen=True)
class SyncReport:
    """Summary of one completed sync cycle."""

    started_at: datetime
    finished_at: datetime
    pushed: int = 0
    push_failed: int = 0
    push_skipped: int = 0
    pulled: int = 0
    inserted: int = 0
    adopted: int = 0
    conflicts: tuple[ConflictRecord, ...] = ()
    pull_error: str | None = None
    persisted: bool = True
    status: SyncStatus = SyncStatus.SUCCESS

    def summary(self) -> str:
        """One-line human readable summary."""
        parts = [
            f"pushed {self.pushed}",
            f"pulled {self.pulled}",
            f"new {self.inserted}",
            f"conflicts {len(self.conflicts)}",
        ]
        if self.push_failed:
            parts.append(f"push failures {self.push_failed}")
        if self.push_skipped:
            parts.append(f"gave up on {self.push_skipped}")
        if self.pull_error:
            parts.append("pull failed")
        if not self.persisted:
            parts.append("not saved")
        return f"[{self.status.value}] " + ", ".join(parts)
