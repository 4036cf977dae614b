"""Push/pull synchronization with a polling remote collection."""

from quote_sync.sync.client import RemoteClient
from quote_sync.sync.conflicts import ConflictResolver
from quote_sync.sync.merge import MergeResult, merge_remote_batch
from quote_sync.sync.protocol import ConflictRecord, PushOutcome, SyncReport, SyncStatus
from quote_sync.sync.scheduler import SchedulerState, SyncScheduler
from quote_sync.sync.sync_engine import SyncEngine

__all__ = [
    "ConflictRecord",
    "ConflictResolver",
    "MergeResult",
    "PushOutcome",
    "RemoteClient",
    "SchedulerState",
    "SyncEngine",
    "SyncReport",
    "SyncScheduler",
    "SyncStatus",
    "merge_remote_batch",
]
