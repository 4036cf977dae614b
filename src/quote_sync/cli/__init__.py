"""quote-sync CLI.

Usage:
    qsync add "text" "category"   Add a quote
    qsync list                    List quotes
    qsync sync                    Run one sync cycle
    qsync watch                   Sync periodically until interrupted
"""

from quote_sync.cli.main import app, main

__all__ = ["app", "main"]
