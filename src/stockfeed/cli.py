"""Click-based CLI for stockfeed.

Thin wrapper around library modules. Zero business logic: every command
delegates to the acquisition orchestrator, the cache store or the exporter.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime

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


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from stockfeed.core import ConfigError, load_config

        try:
            ctx.obj["config"] = load_config(config_path=ctx.obj.get("config_path"))
        except ConfigError as e:
            raise click.ClickException(f"Invalid configuration: {e}") from e
    return ctx.obj["config"]


def _resolve_instrument(config, ticker: str):
    """Turn a ticker, ISIN or EXCHANGE:CODE string into an Instrument."""
    from stockfeed.feeds import InstrumentRegistry

    try:
        registry = InstrumentRegistry.from_config(config.registry)
        return registry.resolve(ticker)
    except (ValueError, FileNotFoundError) as e:
        raise click.BadParameter(str(e), param_hint="TICKER") from e


def _resolve_window(
    start: datetime | None, end: datetime | None, years: int | None
) -> tuple[date, date]:
    """Requested range from --from/--to/--years. Defaults to the last year."""
    from stockfeed.timeseries import years_before

    end_day = end.date() if end is not None else date.today()
    if start is not None:
        if years is not None:
            raise click.UsageError("--from and --years are mutually exclusive")
        start_day = start.date()
    else:
        start_day = years_before(end_day, years if years is not None else 1)
    if start_day > end_day:
        raise click.UsageError(f"--from ({start_day}) is after --to ({end_day})")
    return start_day, end_day


def _create_orchestrator(config, offline: bool):
    from stockfeed.acquisition import AcquisitionOrchestrator

    if offline:
        config = config.model_copy(
            update={"acquisition": config.acquisition.model_copy(update={"refresh": False})}
        )
    return AcquisitionOrchestrator.from_config(config)


def _window_options(func):
    """Options shared by commands that acquire a series."""
    options = [
        click.option(
            "--from",
            "start",
            type=click.DateTime(formats=["%Y-%m-%d"]),
            default=None,
            help="First day (YYYY-MM-DD).",
        ),
        click.option(
            "--to",
            "end",
            type=click.DateTime(formats=["%Y-%m-%d"]),
            default=None,
            help="Last day (YYYY-MM-DD). Defaults to today.",
        ),
        click.option(
            "--years",
            "-y",
            type=click.IntRange(min=0),
            default=None,
            help="Look back this many years from --to.",
        ),
        click.option(
            "--interpolate",
            is_flag=True,
            default=False,
            help="Fill missing business days.",
        ),
        click.option(
            "--clean/--no-clean",
            default=None,
            help="Drop implausible bars. Defaults to the configured setting.",
        ),
        click.option(
            "--offline",
            is_flag=True,
            default=False,
            help="Serve from the cache only.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


async def _acquire(config, ticker, start, end, years, interpolate, clean, offline):
    instrument = _resolve_instrument(config, ticker)
    start_day, end_day = _resolve_window(start, end, years)
    async with _create_orchestrator(config, offline) as orchestrator:
        series = await orchestrator.acquire(
            instrument, start_day, end_day, interpolate=interpolate, clean=clean
        )
    return instrument, series


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="STOCKFEED_CONFIG",
    default=None,
    help="Path to stockfeed.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
@click.version_option(package_name="stockfeed")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """stockfeed: cached, gap-free daily price series."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["console"] = console
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# fetch
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("ticker")
@_window_options
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "csv"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.pass_context
def fetch(
    ctx: click.Context,
    ticker: str,
    start: datetime | None,
    end: datetime | None,
    years: int | None,
    interpolate: bool,
    clean: bool | None,
    offline: bool,
    output_format: str,
) -> None:
    """Acquire the price series for TICKER and print it."""
    config = _load_config(ctx)
    instrument, series = _run_async(
        _acquire(config, ticker, start, end, years, interpolate, clean, offline)
    )

    if series is None:
        console.print(f"[yellow]No data found for {instrument.key}.[/yellow]")
        ctx.exit(1)

    if output_format == "csv":
        from stockfeed.timeseries import series_to_csv

        click.echo(series_to_csv(series), nl=False)
        return

    _output_series_table(series)


def _output_series_table(series) -> None:
    """Render a series as a rich table."""
    table = Table(title=f"{series.instrument.key} ({len(series)} bars)")
    table.add_column("Date", style="bold")
    table.add_column("Open", justify="right")
    table.add_column("High", justify="right")
    table.add_column("Low", justify="right")
    table.add_column("Close", justify="right")
    table.add_column("Volume", justify="right")
    table.add_column("Source")

    for bar in series.bars:
        table.add_row(
            bar.date.isoformat(),
            f"{bar.open:.2f}",
            f"{bar.high:.2f}",
            f"{bar.low:.2f}",
            f"{bar.close:.2f}",
            str(bar.volume),
            f"[dim]{bar.source}[/dim]" if bar.is_synthetic else bar.source,
        )

    Console().print(table)


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("ticker")
@_window_options
@click.option(
    "--output",
    "-o",
    "output_dir",
    type=click.Path(file_okay=False),
    default=".",
    help="Directory to write <EXCHANGE>_<CODE>.csv into.",
)
@click.option(
    "--no-source",
    is_flag=True,
    default=False,
    help="Omit the trailing provenance column.",
)
@click.pass_context
def export(
    ctx: click.Context,
    ticker: str,
    start: datetime | None,
    end: datetime | None,
    years: int | None,
    interpolate: bool,
    clean: bool | None,
    offline: bool,
    output_dir: str,
    no_source: bool,
) -> None:
    """Acquire the series for TICKER and write it as CSV."""
    from stockfeed.timeseries import write_series_csv

    config = _load_config(ctx)
    instrument, series = _run_async(
        _acquire(config, ticker, start, end, years, interpolate, clean, offline)
    )

    if series is None:
        console.print(f"[yellow]No data found for {instrument.key}.[/yellow]")
        ctx.exit(1)

    path = write_series_csv(series, output_dir, include_source=not no_source)
    console.print(f"[green]Wrote {len(series)} bars to {path}[/green]")


# ---------------------------------------------------------------------------
# import
# ---------------------------------------------------------------------------


@cli.command("import")
@click.argument("ticker")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--date-format",
    default="%d/%m/%Y",
    show_default=True,
    help="Fallback format for non-ISO dates.",
)
@click.pass_context
def import_csv(ctx: click.Context, ticker: str, csv_file: str, date_format: str) -> None:
    """Merge bars from CSV_FILE into the cache for TICKER."""
    from stockfeed.core import StorageError
    from stockfeed.feeds import load_csv_bars

    config = _load_config(ctx)
    instrument = _resolve_instrument(config, ticker)

    try:
        bars = load_csv_bars(csv_file, source="manual", date_format=date_format)
    except ValueError as e:
        raise click.ClickException(f"Cannot read {csv_file}: {e}") from e

    if not bars:
        console.print(f"[yellow]No usable bars in {csv_file}.[/yellow]")
        ctx.exit(1)

    async def _run():
        async with _create_orchestrator(config, offline=True) as orchestrator:
            return await orchestrator.import_bars(instrument, bars)

    try:
        added = _run_async(_run())
    except StorageError as e:
        raise click.ClickException(str(e)) from e

    console.print(
        f"[green]Imported {added} new bars for {instrument.key} "
        f"({len(bars) - added} already cached).[/green]"
    )


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration and cache coverage."""
    from stockfeed.core import StorageError
    from stockfeed.feeds import create_store

    config = _load_config(ctx)

    async def _run():
        return await create_store(config).coverage()

    try:
        coverage = _run_async(_run())
    except StorageError as e:
        raise click.ClickException(str(e)) from e

    table = Table(title="stockfeed Status")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Database path", config.storage.sqlite_path)
    table.add_row("Refresh", "on" if config.acquisition.refresh else "off")
    table.add_row("Providers", ", ".join(config.acquisition.providers) or "none")
    table.add_row("Interpolation", config.acquisition.interpolation)
    table.add_section()
    table.add_row("Cached instruments", str(len(coverage)))
    table.add_row("Cached bars", str(sum(int(c["bars"]) for c in coverage)))

    Console().print(table)

    if coverage:
        detail = Table(title="Cache Coverage")
        detail.add_column("Instrument", style="bold")
        detail.add_column("Bars", justify="right")
        detail.add_column("Range")
        for row in coverage:
            detail.add_row(
                str(row["instrument"]),
                str(row["bars"]),
                f"{row['first']} → {row['last']}",
            )
        Console().print(detail)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
