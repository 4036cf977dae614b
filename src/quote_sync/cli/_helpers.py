"""Shared CLI helpers for configuration, service lifecycle and output."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

import typer

from quote_sync.config import QuoteSyncConfig
from quote_sync.errors import QuoteSyncError
from quote_sync.service import QuoteSyncService

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_config() -> QuoteSyncConfig:
    """Get CLI configuration."""
    return QuoteSyncConfig.load()


def run_with_service(func: Callable[[QuoteSyncService], Coroutine[Any, Any, T]]) -> T:
    """Run an async command against a freshly loaded service.

    The service (HTTP session, SQLite connection) is always closed before
    the event loop is torn down.
    """

    async def _with_cleanup() -> T:
        try:
            service = await QuoteSyncService.create(get_config())
        except QuoteSyncError as e:
            logger.debug("Service startup failed", exc_info=True)
            output_result({"error": str(e)})
            raise typer.Exit(1) from e
        try:
            return await func(service)
        finally:
            await service.close()
            # Drain aiosqlite worker callbacks before asyncio.run() exits
            await asyncio.sleep(0)

    return asyncio.run(_with_cleanup())


def output_result(data: dict[str, Any], as_json: bool = False) -> None:
    """Output result in appropriate format."""
    if as_json:
        typer.echo(json.dumps(data, indent=2, default=str))
    elif "error" in data:
        typer.secho(f"Error: {data['error']}", fg=typer.colors.RED)
    elif "message" in data:
        typer.echo(data["message"])
