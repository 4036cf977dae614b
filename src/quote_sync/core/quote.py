"""Quote records - the unit of synchronization."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

from quote_sync.errors import ParseError, ValidationError
from quote_sync.utils.timeutils import parse_timestamp, utcnow

LOCAL_ID_PREFIX = "loc-"
REMOTE_ID_PREFIX = "srv-"


class Source(StrEnum):
    """Provenance of a quote's current content (not of its id)."""

    LOCAL = "local"
    REMOTE = "remote"


def local_id() -> str:
    """Generate a fresh identifier in the local namespace."""
    return f"{LOCAL_ID_PREFIX}{uuid4().hex[:12]}"


def remote_id(raw: Any) -> str:
    """Map a remote identifier into the remote namespace.

    Deterministic: the same remote item always maps to the same id.
    """
    return f"{REMOTE_ID_PREFIX}{raw}"


def normalize_field(value: Any, name: str) -> str:
    """Trim a text field, rejecting anything empty."""
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    cleaned = value.strip()
    if not cleaned:
        raise ValidationError(f"{name} must not be empty")
    return cleaned


@dataclass(frozen=True)
class Quote:
    """
    A quote and its sync metadata.

    Quotes are immutable; every mutation produces a new instance that
    the RecordStore swaps in by id.

    Attributes:
        id: Unique within the store (``loc-`` or ``srv-`` namespace)
        text: Trimmed, non-empty quote text
        category: Trimmed, non-empty category
        updated_at: Last local mutation or merge adoption
        synced: True iff the remote holds this exact content under this id
        source: Which side authored the current content
    """

    id: str
    text: str
    category: str
    updated_at: datetime = field(default_factory=utcnow)
    synced: bool = False
    source: Source = Source.LOCAL

    def __post_init__(self) -> None:
        if self.source == Source.REMOTE and not self.synced:
            raise ValueError("Remote quotes must be synced")

    @classmethod
    def create(cls, text: str, category: str, quote_id: str | None = None) -> Quote:
        """Create a new local, unsynced quote from user input."""
        return cls(
            id=quote_id or local_id(),
            text=normalize_field(text, "text"),
            category=normalize_field(category, "category"),
            updated_at=utcnow(),
            synced=False,
            source=Source.LOCAL,
        )

    @classmethod
    def from_remote(cls, raw_id: Any, text: str, category: str) -> Quote:
        """Create a quote as pulled from the remote collection."""
        return cls(
            id=remote_id(raw_id),
            text=normalize_field(text, "text"),
            category=normalize_field(category, "category"),
            updated_at=utcnow(),
            synced=True,
            source=Source.REMOTE,
        )

    def same_content(self, other: Quote) -> bool:
        """Check whether two quotes carry identical text and category."""
        return self.text == other.text and self.category == other.category

    def with_content(self, text: str, category: str) -> Quote:
        """Local edit: new content, unsynced, local provenance."""
        return replace(
            self,
            text=normalize_field(text, "text"),
            category=normalize_field(category, "category"),
            updated_at=utcnow(),
            synced=False,
            source=Source.LOCAL,
        )

    def mark_synced(self, new_id: str) -> Quote:
        """Adopt a remote-assigned id after a successful push."""
        return replace(
            self,
            id=new_id,
            updated_at=utcnow(),
            synced=True,
            source=Source.REMOTE,
        )

    def mark_local(self) -> Quote:
        """Flag this content for re-sending on the next push phase."""
        return replace(self, updated_at=utcnow(), synced=False, source=Source.LOCAL)

    def adopted(self) -> Quote:
        """Copy with a refreshed timestamp, used when a merge adopts this quote."""
        return replace(self, updated_at=utcnow())

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the persisted wire names."""
        return {
            "id": self.id,
            "text": self.text,
            "category": self.category,
            "updatedAt": self.updated_at.isoformat(),
            "synced": self.synced,
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Quote:
        """Deserialize a persisted quote.

        Raises:
            ParseError: If required fields are missing or invalid
        """
        if not isinstance(data, dict):
            raise ParseError(f"Expected an object, got {type(data).__name__}")

        quote_id = data.get("id")
        if not isinstance(quote_id, str) or not quote_id:
            raise ParseError("Quote is missing an id")

        try:
            text = normalize_field(data.get("text"), "text")
            category = normalize_field(data.get("category"), "category")
            source = Source(str(data.get("source", Source.LOCAL.value)).lower())
        except (ValidationError, ValueError) as e:
            raise ParseError(f"Invalid quote {quote_id}: {e}") from e

        synced = data.get("synced", False)
        if not isinstance(synced, bool):
            raise ParseError(f"Invalid quote {quote_id}: synced must be a boolean")
        if source == Source.REMOTE and not synced:
            raise ParseError(f"Invalid quote {quote_id}: remote quote marked unsynced")

        return cls(
            id=quote_id,
            text=text,
            category=category,
            updated_at=parse_timestamp(data.get("updatedAt")) or utcnow(),
            synced=synced,
            source=source,
        )
