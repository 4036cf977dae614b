"""quote-sync - a local quote collection kept in sync with a polling remote."""

from quote_sync.config import QuoteSyncConfig, get_config
from quote_sync.core.quote import Quote, Source
from quote_sync.errors import (
    NetworkError,
    ParseError,
    QuoteSyncError,
    StorageError,
    ValidationError,
)
from quote_sync.service import QuoteSyncService
from quote_sync.storage.record_store import RecordStore
from quote_sync.sync.protocol import ConflictRecord, SyncReport, SyncStatus

__version__ = "0.1.0"

__all__ = [
    # Core models
    "Quote",
    "Source",
    "ConflictRecord",
    "SyncReport",
    "SyncStatus",
    # Errors
    "QuoteSyncError",
    "ValidationError",
    "StorageError",
    "NetworkError",
    "ParseError",
    # Entry points
    "QuoteSyncConfig",
    "QuoteSyncService",
    "RecordStore",
    "get_config",
    # Version
    "__version__",
]
