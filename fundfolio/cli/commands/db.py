"""Database management commands."""

import logging

import click
from rich.console import Console
from rich.table import Table

from fundfolio.cli.error_handler import handle_cli_errors
from fundfolio.config import config
from fundfolio.core.portfolio.manager import PortfolioManager
from fundfolio.db.database import init_db

logger = logging.getLogger(__name__)


@click.group()
def db() -> None:
    """Database management commands.

    Initialize and inspect the local SQLite record store.
    """
    pass


@db.command()
@click.pass_context
@handle_cli_errors
def init(ctx: click.Context) -> None:
    """
    Initialize the local database.

    Creates the tables for funds, trading records and NAV history.
    Safe to run more than once.

    \b
    Example:
        fundfolio db init
    """
    console: Console = ctx.obj["console"]

    config.validate()
    config.ensure_directories()

    with console.status("[bold blue]Initializing database...[/bold blue]"):
        init_db()

    console.print("[green]Database initialized successfully![/green]")
    console.print(f"[dim]Database path: {config.db_path}[/dim]")


@db.command()
@click.pass_context
@handle_cli_errors
def status(ctx: click.Context) -> None:
    """Show the active configuration and stored row counts."""
    console: Console = ctx.obj["console"]

    counts = PortfolioManager().row_counts()

    table = Table(title="fundfolio status", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Database", str(config.db_path))
    table.add_row("Share decimals", str(config.share_decimals))
    table.add_row("Log level", config.log_level)
    table.add_row("Funds", str(counts["funds"]))
    table.add_row("Confirmed records", str(counts["confirmed"]))
    table.add_row("Pending records", str(counts["pending"]))
    table.add_row("NAV points", str(counts["nav_points"]))
    console.print(table)
