"""Record store - the authoritative in-memory quote collection."""

from __future__ import annotations

import json
import logging
from typing import Any

from quote_sync.core.quote import Quote, Source, local_id, normalize_field
from quote_sync.errors import ParseError, StorageError, ValidationError
from quote_sync.storage.base import QUOTES_KEY, KeyValueStore
from quote_sync.storage.defaults import DEFAULT_QUOTES
from quote_sync.transfer import export_quotes, parse_import

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"


class RecordStore:
    """Owns every Quote and its persisted representation.

    In-memory state is the source of truth. ``persist()`` is best-effort:
    a failed write raises StorageError but never rolls back the mutation
    that preceded it.
    """

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv
        self._quotes: dict[str, Quote] = {}

    def __len__(self) -> int:
        return len(self._quotes)

    def __contains__(self, quote_id: object) -> bool:
        return quote_id in self._quotes

    # ========== Loading & persistence ==========

    async def load(self) -> None:
        """Restore quotes from the backing store.

        Seeds the default set when nothing was ever persisted. Malformed
        state is discarded in favor of an empty store.
        """
        raw = await self._kv.get(QUOTES_KEY)

        if raw is None:
            self._quotes = {}
            for text, category in DEFAULT_QUOTES:
                quote = Quote.create(text, category)
                self._quotes[quote.id] = quote
            logger.info("No persisted quotes, seeded %d defaults", len(self._quotes))
            try:
                await self.persist()
            except StorageError:
                logger.warning("Could not persist seeded quotes")
            return

        try:
            self._quotes = _decode(raw)
        except ParseError as e:
            logger.warning("Discarding malformed persisted quotes: %s", e)
            self._quotes = {}
            return

        logger.debug("Loaded %d quotes", len(self._quotes))

    async def persist(self) -> None:
        """Write the full collection to the backing store.

        Raises:
            StorageError: If the write fails (in-memory state is kept)
        """
        payload = json.dumps([q.to_dict() for q in self._quotes.values()])
        try:
            await self._kv.set(QUOTES_KEY, payload)
        except StorageError:
            logger.warning("Failed to persist %d quotes", len(self._quotes))
            raise
        except OSError as e:
            logger.warning("Failed to persist %d quotes", len(self._quotes), exc_info=True)
            raise StorageError(f"Failed to persist quotes: {e}") from e

    # ========== Reads ==========

    def quotes(self) -> tuple[Quote, ...]:
        """Read-only snapshot of the collection, in insertion order."""
        return tuple(self._quotes.values())

    def get(self, quote_id: str) -> Quote | None:
        return self._quotes.get(quote_id)

    def unsynced(self) -> list[Quote]:
        """Quotes the next push phase must send."""
        return [q for q in self._quotes.values() if not q.synced and q.source == Source.LOCAL]

    def categories(self) -> list[str]:
        """Distinct categories in first-seen order."""
        return list(dict.fromkeys(q.category for q in self._quotes.values()))

    def by_category(self, category: str = ALL_CATEGORIES) -> list[Quote]:
        """Quotes in one category, or all quotes for ``"all"``."""
        if category == ALL_CATEGORIES:
            return list(self._quotes.values())
        return [q for q in self._quotes.values() if q.category == category]

    # ========== Mutations ==========

    async def add(self, text: str, category: str) -> Quote:
        """Add a user-authored quote and persist.

        Raises:
            ValidationError: If text or category is empty (store unchanged)
            StorageError: If persisting fails (the quote is still added)
        """
        quote = Quote.create(text, category)
        self._quotes[quote.id] = quote
        logger.debug("Added quote %s", quote.id)
        await self.persist()
        return quote

    def upsert(self, quote: Quote) -> None:
        """Insert or replace by id. Replacements keep their position."""
        self._quotes[quote.id] = quote

    def replace(self, old_id: str, quote: Quote) -> None:
        """Swap the quote stored under ``old_id`` for ``quote``, keeping position.

        ``quote.id`` may differ from ``old_id`` (a push adopting a remote id).

        Raises:
            KeyError: If ``old_id`` is not stored
            ValueError: If ``quote.id`` already belongs to another quote
        """
        if old_id not in self._quotes:
            raise KeyError(old_id)
        if quote.id != old_id and quote.id in self._quotes:
            raise ValueError(f"Quote id {quote.id} already in use")
        if quote.id == old_id:
            self._quotes[old_id] = quote
            return
        self._quotes = {
            (quote.id if key == old_id else key): (quote if key == old_id else value)
            for key, value in self._quotes.items()
        }

    # ========== Import / export ==========

    def export_json(self) -> str:
        """Serialize the full collection for download."""
        return export_quotes(self._quotes.values())

    async def import_quotes(self, payload: str | bytes) -> list[Quote]:
        """Admit every quote of an exported document as new local content.

        Raises:
            ParseError: If the document is malformed (store unchanged)
            StorageError: If persisting fails (the quotes are still added)
        """
        pairs = parse_import(payload)
        imported = [Quote.create(text, category) for text, category in pairs]
        for quote in imported:
            self._quotes[quote.id] = quote
        logger.info("Imported %d quotes", len(imported))
        await self.persist()
        return imported


def _decode(raw: str) -> dict[str, Quote]:
    """Decode the persisted array, accepting legacy id-less entries."""
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(f"Persisted quotes are not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise ParseError("Persisted quotes must be a JSON array")

    quotes: dict[str, Quote] = {}
    for item in data:
        quote = _decode_item(item)
        if quote.id in quotes:
            raise ParseError(f"Duplicate quote id {quote.id}")
        quotes[quote.id] = quote
    return quotes


def _decode_item(item: Any) -> Quote:
    if isinstance(item, dict) and "id" not in item:
        # Entries written before ids existed: plain {text, category}
        try:
            return Quote(
                id=local_id(),
                text=normalize_field(item.get("text"), "text"),
                category=normalize_field(item.get("category"), "category"),
            )
        except ValidationError as e:
            raise ParseError(str(e)) from e
    return Quote.from_dict(item)

