"""Click-based CLI for coffee-sentinel.

Thin wrapper around library modules. Zero business logic: every operation
delegates to the ingestion pipeline or the store.
"""

from __future__ import annotations

import asyncio
import csv
import io
import json
import logging
import sys
from datetime import datetime

import click
from rich.console import Console
from rich.table import Table

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from coffee_sentinel.core import load_config

        ctx.obj["config"] = load_config(config_path=ctx.obj.get("config_path"))
    return ctx.obj["config"]


async def _create_store_async(config):
    """Create and initialize storage from config."""
    from coffee_sentinel.ingestion import create_store

    return await create_store(config.storage)


def _format_price(price: float) -> str:
    """Colombian style: thousands dot, no decimals (e.g. 2.775.000)."""
    return f"{price:,.0f}".replace(",", ".")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="COFFEE_SENTINEL_CONFIG",
    default=None,
    help="Path to coffee-sentinel.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
@click.version_option(package_name="coffee-sentinel")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """Coffee Sentinel: daily coffee reference price ingestion."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    _configure_logging(verbose)


# ---------------------------------------------------------------------------
# ingest
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--url", type=str, default=None, help="Override the workbook URL.")
@click.option(
    "--json", "as_json", is_flag=True, default=False, help="Print the summary as JSON."
)
@click.pass_context
def ingest(ctx: click.Context, url: str | None, as_json: bool) -> None:
    """Download the price workbook and store new daily prices."""
    from coffee_sentinel.core.exceptions import CoffeeSentinelError

    config = _load_config(ctx)

    async def _run():
        from coffee_sentinel.ingestion import PriceIngestionPipeline

        store = await _create_store_async(config)
        try:
            pipeline = PriceIngestionPipeline(config.source, store)
            return await pipeline.run(url=url)
        finally:
            await store.close()

    try:
        summary = _run_async(_run())
    except CoffeeSentinelError as exc:
        console.print(f"[red]Ingestion failed: {exc}[/red]")
        raise SystemExit(1)

    if as_json:
        from coffee_sentinel.api.schemas import UpdateResponse

        payload = UpdateResponse.from_summary(summary).model_dump(
            mode="json", by_alias=True
        )
        click.echo(json.dumps(payload, indent=2))
        return

    if summary.is_noop:
        console.print(
            f"No new prices: all {summary.total_records_parsed} parsed records "
            "are already stored"
        )
    else:
        console.print(
            f"[green]✓[/green] Parsed {summary.total_records_parsed} records: "
            f"{summary.new_records_inserted} new, "
            f"{summary.existing_records_skipped} already stored"
        )
    if summary.latest_record is not None:
        console.print(
            f"Latest price: [bold]{_format_price(summary.latest_record.price)}[/bold] "
            f"on {summary.latest_record.iso_date}"
        )


# ---------------------------------------------------------------------------
# latest
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def latest(ctx: click.Context) -> None:
    """Show the most recent stored price."""
    config = _load_config(ctx)

    async def _run():
        store = await _create_store_async(config)
        try:
            return await store.get_latest_price()
        finally:
            await store.close()

    record = _run_async(_run())
    if record is None:
        console.print("[yellow]No prices stored. Run 'ingest' first.[/yellow]")
        raise SystemExit(1)

    click.echo(f"{record.iso_date}\t{_format_price(record.price)}")


# ---------------------------------------------------------------------------
# history
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--start",
    "-s",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="First date (YYYY-MM-DD).",
)
@click.option(
    "--end",
    "-e",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Last date (YYYY-MM-DD).",
)
@click.option("--limit", "-n", type=int, default=None, help="Maximum rows.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "csv"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.pass_context
def history(
    ctx: click.Context,
    start: datetime | None,
    end: datetime | None,
    limit: int | None,
    output_format: str,
) -> None:
    """List stored prices in date order."""
    config = _load_config(ctx)

    async def _run():
        store = await _create_store_async(config)
        try:
            return await store.list_prices(
                start_date=start.date() if start else None,
                end_date=end.date() if end else None,
                limit=limit,
            )
        finally:
            await store.close()

    records = _run_async(_run())
    if not records:
        console.print("[yellow]No prices found for that range.[/yellow]")
        raise SystemExit(1)

    if output_format == "json":
        _output_history_json(records)
    elif output_format == "csv":
        _output_history_csv(records)
    else:
        _output_history_table(records)


def _output_history_table(records) -> None:
    table = Table(title="Internal Reference Price")
    table.add_column("Date", style="bold")
    table.add_column("Price (COP)", justify="right")
    for r in records:
        table.add_row(r.iso_date, _format_price(r.price))
    Console().print(table)


def _output_history_json(records) -> None:
    rows = [{"date": r.iso_date, "price": r.price} for r in records]
    click.echo(json.dumps(rows, indent=2))


def _output_history_csv(records) -> None:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["date", "price"])
    for r in records:
        writer.writerow([r.iso_date, r.price])
    click.echo(buf.getvalue(), nl=False)


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", type=str, default="0.0.0.0", help="Bind address.")
@click.option("--port", "-p", type=int, default=8000, help="Port number.")
@click.option("--reload", is_flag=True, default=False, help="Auto-reload on code changes.")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, reload: bool) -> None:
    """Start the REST API server."""
    import uvicorn

    console.print(f"Starting coffee-sentinel API on [bold]{host}:{port}[/bold]")
    console.print(f"API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "coffee_sentinel.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show system status and data coverage."""
    config = _load_config(ctx)

    async def _run():
        store = await _create_store_async(config)
        try:
            return await store.get_statistics()
        finally:
            await store.close()

    stats = _run_async(_run())

    table = Table(title="Coffee Sentinel Status")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Storage backend", config.storage.backend.value)
    table.add_row("Database path", config.storage.sqlite_path)
    table.add_row("Source URL", config.source.url)
    table.add_section()
    table.add_row("Stored prices", str(stats["total_records"]))
    table.add_row(
        "Date range",
        f"{stats['earliest_date']} → {stats['latest_date']}"
        if stats["total_records"] > 0
        else "N/A",
    )

    Console().print(table)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
