"""Core quote data structures."""

from quote_sync.core.quote import Quote, Source, normalize_field

__all__ = ["Quote", "Source", "normalize_field"]
