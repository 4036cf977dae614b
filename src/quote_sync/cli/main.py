"""quote-sync CLI main entry point."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from quote_sync.cli._helpers import get_config, output_result, run_with_service
from quote_sync.errors import ParseError, StorageError, ValidationError
from quote_sync.service import QuoteSyncService
from quote_sync.storage.record_store import ALL_CATEGORIES
from quote_sync.sync.protocol import ConflictRecord, SyncReport, SyncStatus

app = typer.Typer(
    name="qsync",
    help="quote-sync - a quote collection kept in sync with a remote",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def _configure(
    debug: Annotated[bool, typer.Option("--debug", help="Enable debug logging")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def add(
    text: Annotated[str, typer.Argument(help="Quote text")],
    category: Annotated[str, typer.Argument(help="Quote category")],
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Add a quote to the local collection."""

    async def _add(service: QuoteSyncService) -> dict[str, object]:
        try:
            quote = await service.add_quote(text, category)
        except ValidationError as e:
            return {"error": str(e)}
        except StorageError as e:
            return {"error": f"Quote added but not saved: {e}"}
        return {"message": f"Added {quote.id}", "quote": quote.to_dict()}

    result = run_with_service(_add)
    output_result(result, json_output)
    if "error" in result:
        raise typer.Exit(1)


@app.command("list")
def list_quotes(
    category: Annotated[
        str, typer.Option("--category", "-c", help="Only show this category")
    ] = ALL_CATEGORIES,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """List quotes with their sync state."""

    async def _list(service: QuoteSyncService) -> list[dict[str, object]]:
        return [q.to_dict() for q in service.quotes_in(category)]

    quotes = run_with_service(_list)
    if json_output:
        output_result({"quotes": quotes, "count": len(quotes)}, as_json=True)
        return

    if not quotes:
        typer.echo("No quotes in this category.")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Category")
    table.add_column("Text")
    table.add_column("Synced")
    for q in quotes:
        table.add_row(
            str(q["id"]),
            str(q["category"]),
            str(q["text"]),
            "yes" if q["synced"] else "[yellow]pending[/yellow]",
        )
    console.print(table)


@app.command()
def categories() -> None:
    """List distinct categories."""

    async def _categories(service: QuoteSyncService) -> list[str]:
        return service.categories()

    for name in run_with_service(_categories):
        typer.echo(name)


@app.command()
def sync(
    resolve: Annotated[
        bool, typer.Option("--resolve", "-r", help="Review each conflict interactively")
    ] = False,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Run one push-pull-merge cycle."""

    async def _sync(service: QuoteSyncService) -> SyncReport | None:
        report = await service.trigger_sync_now()
        if resolve:
            for conflict in service.get_current_conflicts():
                await _review_conflict(service, conflict)
        return report

    report = run_with_service(_sync)
    if report is None:
        output_result({"message": "A sync is already running."}, json_output)
        return
    output_result(
        {
            "message": report.summary(),
            "status": report.status.value,
            "pushed": report.pushed,
            "pulled": report.pulled,
            "conflicts": [
                {"id": c.id, "local": c.local.text, "remote": c.remote.text}
                for c in report.conflicts
            ],
        },
        json_output,
    )
    if report.status == SyncStatus.ERROR:
        raise typer.Exit(1)


async def _review_conflict(service: QuoteSyncService, conflict: ConflictRecord) -> None:
    typer.echo(f"\nConflict on {conflict.id}")
    typer.echo(f"  local : {conflict.local.text} ({conflict.local.category})")
    typer.echo(f"  remote: {conflict.remote.text} ({conflict.remote.category})")
    if typer.confirm("Restore the local version?", default=False):
        await service.resolve_restore_local(conflict.id)
        typer.echo("  -> local restored, will be pushed next sync")
    else:
        await service.resolve_keep_remote(conflict.id)
        typer.echo("  -> kept remote")


@app.command()
def watch(
    interval: Annotated[
        int | None, typer.Option("--interval", "-i", min=1, help="Seconds between cycles")
    ] = None,
) -> None:
    """Sync periodically until interrupted."""
    seconds = interval if interval is not None else get_config().sync.interval_seconds

    async def _watch(service: QuoteSyncService) -> None:
        service.set_auto_sync(True, seconds * 1000)
        typer.echo(f"Syncing every {seconds}s, Ctrl-C to stop")
        report = await service.trigger_sync_now()
        if report is not None:
            typer.echo(report.summary())
        last = service.last_report
        try:
            while True:
                await asyncio.sleep(1)
                if service.last_report is not last:
                    last = service.last_report
                    if last is not None:
                        typer.echo(last.summary())
        finally:
            service.set_auto_sync(False)

    try:
        run_with_service(_watch)
    except KeyboardInterrupt:
        typer.echo("Stopped")


@app.command("export")
def export_quotes(
    path: Annotated[Path, typer.Argument(help="Destination JSON file")],
) -> None:
    """Export all quotes to a JSON file."""

    async def _export(service: QuoteSyncService) -> str:
        return service.export_json()

    payload = run_with_service(_export)
    path.write_text(payload, encoding="utf-8")
    typer.echo(f"Exported to {path}")


@app.command("import")
def import_quotes(
    path: Annotated[Path, typer.Argument(help="JSON file produced by export", exists=True)],
) -> None:
    """Import quotes from a JSON file as new local quotes."""
    payload = path.read_bytes()

    async def _import(service: QuoteSyncService) -> dict[str, object]:
        try:
            imported = await service.import_json(payload)
        except ParseError as e:
            return {"error": str(e)}
        except StorageError as e:
            return {"error": f"Imported but not saved: {e}"}
        return {"message": f"Imported {len(imported)} quotes"}

    result = run_with_service(_import)
    output_result(result)
    if "error" in result:
        raise typer.Exit(1)


@app.command("config")
def show_config() -> None:
    """Show the effective configuration."""
    output_result(get_config().to_dict(), as_json=True)


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
