"""Error types raised by quote-sync.

Every failure in the sync subsystem degrades to "skip this item" or
"retry next cycle"; none of these are meant to terminate the process.
"""

from __future__ import annotations


class QuoteSyncError(Exception):
    """Base class for quote-sync errors."""


class ValidationError(QuoteSyncError):
    """A quote field is empty or whitespace-only."""


class StorageError(QuoteSyncError):
    """Writing to or reading from the backing store failed.

    The in-memory mutation that triggered a failed write still stands.
    """


class NetworkError(QuoteSyncError):
    """A push or pull against the remote collection failed.

    Always transient: the work is retried on the next cycle.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(QuoteSyncError):
    """A remote payload or an imported document is malformed."""
