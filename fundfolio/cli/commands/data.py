"""JSON import/export of holdings and trading records."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from fundfolio.cli.error_handler import handle_cli_errors
from fundfolio.config import config
from fundfolio.core.portfolio.manager import PortfolioManager
from fundfolio.core.portfolio.serialization import holdings_from_json, holdings_to_json

logger = logging.getLogger(__name__)


@click.group()
def data() -> None:
    """
    Import or export the portfolio as JSON.

    \b
    Examples:
        fundfolio data export
        fundfolio data export --output backup.json
        fundfolio data export --stdout
        fundfolio data import backup.json
    """
    pass


@data.command("export")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Output file")
@click.option("--stdout", "to_stdout", is_flag=True, help="Print JSON instead of writing a file")
@click.pass_context
@handle_cli_errors
def data_export(ctx: click.Context, output: Optional[Path], to_stdout: bool) -> None:
    """Export every fund with its base position and records."""
    console: Console = ctx.obj["console"]

    manager = PortfolioManager()
    store = manager.load_store()
    text = holdings_to_json(store.holdings())

    if to_stdout:
        click.echo(text)
        return

    if output is None:
        config.ensure_directories()
        output = config.export_dir / f"fundfolio-{datetime.now():%Y%m%d-%H%M%S}.json"
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")

    console.print(f"[green]Exported {len(store)} fund(s)[/green]")
    console.print(f"[dim]{output}[/dim]")


@data.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
@handle_cli_errors
def data_import(ctx: click.Context, path: Path, yes: bool) -> None:
    """
    Replace the portfolio with the contents of a JSON export.

    Every currently tracked fund is removed first.
    """
    console: Console = ctx.obj["console"]

    holdings = holdings_from_json(path.read_text(encoding="utf-8"))

    manager = PortfolioManager()
    store = manager.load_store()
    if len(store) and not yes and not click.confirm(
        f"Replace {len(store)} tracked fund(s) with {len(holdings)} from {path.name}?", default=False
    ):
        console.print("[dim]Cancelled[/dim]")
        return

    store.replace_all(holdings)
    manager.sync_store(store)

    records = sum(len(h.records) for h in holdings)
    console.print(f"[green]Imported {len(holdings)} fund(s) with {records} record(s)[/green]")
