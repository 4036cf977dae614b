"""JSON import/export of quote collections."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from quote_sync.core.quote import Quote, normalize_field
from quote_sync.errors import ParseError, ValidationError


def export_quotes(quotes: Iterable[Quote]) -> str:
    """Serialize quotes as a pretty-printed JSON array."""
    return json.dumps([q.to_dict() for q in quotes], indent=2, ensure_ascii=False)


def parse_import(payload: str | bytes) -> list[tuple[str, str]]:
    """Parse an exported document into ``(text, category)`` pairs.

    Only content is taken from the document; ids, timestamps and sync
    flags are regenerated by the importer. The whole document is
    validated before anything is returned.

    Raises:
        ParseError: If the payload is not a JSON array of valid quotes
    """
    try:
        data: Any = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(f"Import is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise ParseError("Import must be a JSON array of quotes")

    pairs: list[tuple[str, str]] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ParseError(f"Item {index} is not an object")
        try:
            text = normalize_field(item.get("text"), "text")
            category = normalize_field(item.get("category"), "category")
        except ValidationError as e:
            raise ParseError(f"Item {index}: {e}") from e
        pairs.append((text, category))
    return pairs
