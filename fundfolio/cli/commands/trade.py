"""Trade entry commands: buy, sell, dividends and pending confirmation."""

import logging
from datetime import date

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from fundfolio.cli.error_handler import handle_cli_errors
from fundfolio.cli.formatting import get_status_color, print_empty_state
from fundfolio.cli.validators import FUND_CODE, validate_date
from fundfolio.config import config
from fundfolio.core.portfolio.manager import PortfolioManager
from fundfolio.core.portfolio.records import RecordType
from fundfolio.core.portfolio.trading import (
    STATUS_CONFIRMED,
    STATUS_PENDING,
    TradeOutcome,
    execute_trade,
)

logger = logging.getLogger(__name__)

TARGET_HELP = "Fund code, comma-separated codes, 'all' or 'tag:NAME'"


@click.group()
def trade() -> None:
    """
    Enter trades for one or many funds.

    A trade on a date whose NAV is already stored is confirmed
    immediately. Otherwise it is queued as pending (today or a future
    weekday only) and confirmed later by 'trade confirm'. Entering a trade
    for a date that already has one replaces it.

    \b
    Examples:
        fundfolio trade buy 161725 1000 --date 2024-01-02
        fundfolio trade sell 161725,110011 200
        fundfolio trade sell all 50%
        fundfolio trade dividend 161725 12.5 --cash
        fundfolio trade confirm
    """
    pass


def _run_trade(
    ctx: click.Context, kind: RecordType, target: str, value: str, trade_date: date
) -> None:
    console: Console = ctx.obj["console"]

    manager = PortfolioManager()
    store = manager.load_store()
    series = manager.load_nav_series()

    outcomes = execute_trade(
        store,
        series,
        kind,
        target,
        value,
        trade_date or date.today(),
        share_decimals=config.share_decimals,
    )

    if not outcomes:
        console.print("[yellow]No matching funds found.[/yellow]")
        return

    for outcome in outcomes:
        if outcome.status in (STATUS_CONFIRMED, STATUS_PENDING):
            manager.save_holding(store.get(outcome.code))

    _print_outcomes(console, kind, outcomes, trade_date or date.today())


def _print_outcomes(console: Console, kind: RecordType, outcomes: list[TradeOutcome], trade_date: date) -> None:
    table = Table(title=f"{kind.value.upper()} on {trade_date}")
    table.add_column("Code", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")
    for outcome in outcomes:
        table.add_row(
            outcome.code,
            Text(outcome.status.upper(), style=get_status_color(outcome.status)),
            outcome.message,
        )
    console.print(table)


@trade.command("buy")
@click.argument("target")
@click.argument("amount")
@click.option("--date", "-d", "trade_date", default=None, callback=validate_date, help="Trade date (YYYY-MM-DD, default today)")
@click.pass_context
@handle_cli_errors
def trade_buy(ctx: click.Context, target: str, amount: str, trade_date: date) -> None:
    """Buy AMOUNT (cash) of each TARGET fund."""
    _run_trade(ctx, RecordType.BUY, target, amount, trade_date)


@trade.command("sell")
@click.argument("target")
@click.argument("shares")
@click.option("--date", "-d", "trade_date", default=None, callback=validate_date, help="Trade date (YYYY-MM-DD, default today)")
@click.pass_context
@handle_cli_errors
def trade_sell(ctx: click.Context, target: str, shares: str, trade_date: date) -> None:
    """Sell SHARES (a count, or a percentage like 50%) of each TARGET fund."""
    _run_trade(ctx, RecordType.SELL, target, shares, trade_date)


@trade.command("dividend")
@click.argument("target")
@click.argument("value")
@click.option("--cash/--reinvest", default=True, help="Cash payout (VALUE is cash) or reinvested (VALUE is shares)")
@click.option("--date", "-d", "trade_date", default=None, callback=validate_date, help="Ex-dividend date (YYYY-MM-DD, default today)")
@click.pass_context
@handle_cli_errors
def trade_dividend(ctx: click.Context, target: str, value: str, cash: bool, trade_date: date) -> None:
    """Record a dividend for each TARGET fund."""
    kind = RecordType.DIVIDEND_CASH if cash else RecordType.DIVIDEND_REINVEST
    _run_trade(ctx, kind, target, value, trade_date)


@trade.command("delete")
@click.argument("code", type=FUND_CODE)
@click.argument("record_date", callback=validate_date)
@click.option("--index", "-i", type=int, default=None, help="Only the Nth record of that date (0-based)")
@click.pass_context
@handle_cli_errors
def trade_delete(ctx: click.Context, code: str, record_date: date, index: int) -> None:
    """Delete a fund's record(s) on RECORD_DATE."""
    console: Console = ctx.obj["console"]

    manager = PortfolioManager()
    store = manager.load_store()
    deleted = store.delete_record(code, record_date, index=index)
    manager.save_holding(store.get(code))

    console.print(f"[green]Deleted {deleted} record(s) for {code} on {record_date}[/green]")


@trade.command("pending")
@click.pass_context
@handle_cli_errors
def trade_pending(ctx: click.Context) -> None:
    """List trades waiting for their NAV."""
    console: Console = ctx.obj["console"]

    manager = PortfolioManager()
    store = manager.load_store()

    rows = [(h.code, r) for h in store.holdings() for r in h.pending_records]
    if not rows:
        print_empty_state(console, "pending trades", "fundfolio trade buy CODE AMOUNT")
        return

    table = Table(title=f"Pending Trades ({len(rows)})")
    table.add_column("Code", style="cyan")
    table.add_column("Date")
    table.add_column("Type")
    table.add_column("Value", justify="right")
    for code, record in sorted(rows, key=lambda row: (row[1].date, row[0])):
        unit = "" if record.type.value_is_cash else " sh"
        table.add_row(code, record.date.isoformat(), record.type.value, f"{record.value:,.2f}{unit}")
    console.print(table)


@trade.command("confirm")
@click.pass_context
@handle_cli_errors
def trade_confirm(ctx: click.Context) -> None:
    """Confirm pending trades whose NAV is now stored."""
    console: Console = ctx.obj["console"]

    manager = PortfolioManager()
    store = manager.load_store()
    waiting = store.pending_count()
    if waiting == 0:
        console.print("[dim]No pending trades[/dim]")
        return

    series = manager.load_nav_series()
    confirmed = store.confirm_pending(series, share_decimals=config.share_decimals)
    if confirmed:
        manager.sync_store(store)

    console.print(f"[green]Confirmed {confirmed} of {waiting} pending trade(s)[/green]")
    if confirmed < waiting:
        console.print(
            f"[yellow]{waiting - confirmed} still waiting for NAV. "
            "Add it with 'fundfolio nav set CODE DATE NAV'.[/yellow]"
        )
