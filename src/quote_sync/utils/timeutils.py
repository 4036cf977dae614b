"""Timestamp helpers.

All timestamps are naive UTC so ISO strings sort lexicographically.
"""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(UTC).replace(tzinfo=None)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 string, normalizing aware values to naive UTC.

    Returns None for empty or unparseable input.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed
