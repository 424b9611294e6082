"""NAV history commands."""

import json
import logging
from datetime import date
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from fundfolio.cli.error_handler import handle_cli_errors
from fundfolio.cli.formatting import print_empty_state, profit_text
from fundfolio.cli.validators import FUND_CODE, validate_date, validate_positive_float
from fundfolio.core.portfolio.attribution import safe_percent
from fundfolio.core.portfolio.manager import PortfolioManager

logger = logging.getLogger(__name__)


@click.group()
def nav() -> None:
    """
    Store published unit NAVs.

    NAVs value holdings (latest and prior trading day) and confirm pending
    trades (exact trade date).

    \b
    Examples:
        fundfolio nav set 161725 2024-01-02 1.2345
        fundfolio nav import navs.json
        fundfolio nav show 161725
    """
    pass


@nav.command("set")
@click.argument("code", type=FUND_CODE)
@click.argument("nav_date", callback=validate_date)
@click.argument("value", type=float, callback=validate_positive_float("NAV"))
@click.pass_context
@handle_cli_errors
def nav_set(ctx: click.Context, code: str, nav_date: date, value: float) -> None:
    """Store the NAV of CODE on NAV_DATE."""
    console: Console = ctx.obj["console"]

    manager = PortfolioManager()
    manager.record_nav(code, nav_date, value)
    console.print(f"[green]{code} {nav_date}: {value:.4f}[/green]")

    store = manager.load_store()
    if any(r.date == nav_date for h in store.holdings() if h.code == code for r in h.pending_records):
        console.print("[dim]Pending trades can now be confirmed: fundfolio trade confirm[/dim]")


@nav.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
@handle_cli_errors
def nav_import(ctx: click.Context, path: Path) -> None:
    """
    Import NAVs from a JSON file.

    \b
    Format: {"161725": {"2024-01-02": 1.2345, "2024-01-03": 1.25}, ...}
    """
    console: Console = ctx.obj["console"]

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in {path}: {e.msg} (line {e.lineno})[/red]")
        raise SystemExit(1)

    manager = PortfolioManager()
    count = manager.import_navs(payload)
    console.print(f"[green]Imported {count} NAV point(s) for {len(payload)} fund(s)[/green]")


@nav.command("show")
@click.argument("code", type=FUND_CODE)
@click.option("--limit", "-l", type=int, default=10, help="Most recent N points")
@click.pass_context
@handle_cli_errors
def nav_show(ctx: click.Context, code: str, limit: int) -> None:
    """Show stored NAV history for CODE."""
    console: Console = ctx.obj["console"]

    manager = PortfolioManager()
    points = manager.load_nav_series([code]).points(code)
    if not points:
        print_empty_state(console, f"NAVs for {code}", f"fundfolio nav set {code} YYYY-MM-DD NAV")
        return

    table = Table(title=f"{code} NAV")
    table.add_column("Date")
    table.add_column("NAV", justify="right")
    table.add_column("Change", justify="right")

    shown = points[-limit:] if limit > 0 else points
    offset = len(points) - len(shown)
    for i, point in enumerate(shown):
        prev = points[offset + i - 1] if offset + i > 0 else None
        change = safe_percent(point.nav - prev.nav, prev.nav) if prev else None
        table.add_row(point.date.isoformat(), f"{point.nav:.4f}", profit_text(change, percent=True))
    console.print(table)
