"""Reporting commands: snapshots, per-record attribution and tag rollup."""

import json
import logging
from dataclasses import asdict
from datetime import date

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from fundfolio.cli.error_handler import handle_cli_errors
from fundfolio.cli.formatting import (
    BORDER_PRIMARY,
    PANEL_PADDING,
    format_money,
    format_percent,
    print_empty_state,
    print_next_steps,
    profit_text,
)
from fundfolio.cli.validators import validate_date
from fundfolio.core.portfolio.constants import SORT_ORDERS
from fundfolio.core.portfolio.manager import PortfolioManager
from fundfolio.core.portfolio.records import RecordType
from fundfolio.core.portfolio.snapshots import PortfolioSnapshot, find_snapshot, summarize_snapshots
from fundfolio.core.portfolio.tags import TAG_SORT_KEYS, sort_tag_rows

logger = logging.getLogger(__name__)


@click.group()
def report() -> None:
    """
    Analyze trading days and tags.

    All figures value every snapshot at the latest stored NAVs, so the
    difference between snapshots is the effect of the trades alone.

    \b
    Examples:
        fundfolio report snapshots
        fundfolio report inspect 2024-01-03
        fundfolio report tags --sort-by holding_efficiency --order desc
        fundfolio report summary
    """
    pass


def _load(as_of: date = None):
    manager = PortfolioManager()
    store = manager.load_store()
    navs = manager.load_nav_series().context(as_of)
    return store, navs


def _snapshot_dict(snapshot: PortfolioSnapshot) -> dict:
    data = asdict(snapshot)
    data.pop("attributions")
    return data


@report.command("snapshots")
@click.option("--limit", "-l", type=int, default=20, help="Most recent N trading days")
@click.option("--as-of", "as_of", default=None, callback=validate_date, help="Value at NAVs up to this date")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
@handle_cli_errors
def report_snapshots(ctx: click.Context, limit: int, as_of: date, as_json: bool) -> None:
    """Per trading day: operation profit and its effect on daily profit."""
    console: Console = ctx.obj["console"]

    store, navs = _load(as_of)
    snapshots = store.snapshots(navs)
    trading = [s for s in snapshots if not s.is_baseline][:limit]
    baseline = snapshots[-1]

    if as_json:
        console.print(json.dumps([_snapshot_dict(s) for s in trading + [baseline]], indent=2))
        return

    if not trading:
        print_empty_state(console, "trading days", "fundfolio trade buy CODE AMOUNT --date YYYY-MM-DD")
        return

    table = Table(title="Trading-Day Snapshots")
    table.add_column("Date", style="cyan")
    table.add_column("Net Amount", justify="right")
    table.add_column("Op Profit", justify="right")
    table.add_column("Per 100", justify="right")
    table.add_column("Profit Caused", justify="right")
    table.add_column("Effect", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("Total P/L", justify="right")

    for s in trading + [baseline]:
        table.add_row(
            s.snapshot_date,
            format_money(s.net_amount_change, signed=True),
            profit_text(s.operation_profit) if not s.is_baseline else "-",
            format_money(s.profit_per_hundred) if not s.is_baseline else "-",
            profit_text(s.profit_caused) if not s.is_baseline else "-",
            format_percent(s.operation_effect),
            format_money(s.current_market_value),
            profit_text(s.total_profit),
        )
    console.print(table)
    print_next_steps(console, [("Inspect a day", "fundfolio report inspect YYYY-MM-DD")])


@report.command("inspect")
@click.argument("day", required=False, default=None, callback=validate_date)
@click.option("--as-of", "as_of", default=None, callback=validate_date, help="Value at NAVs up to this date")
@click.pass_context
@handle_cli_errors
def report_inspect(ctx: click.Context, day: date, as_of: date) -> None:
    """
    Snapshot of the nearest trading day on or before DAY.

    Falls back to the baseline when no trading day qualifies. Trading days
    also list every record with its attribution.
    """
    console: Console = ctx.obj["console"]

    target = day or date.today()
    store, navs = _load(as_of)
    if len(store) == 0:
        print_empty_state(console, "funds", "fundfolio fund add CODE --shares ... --cost ...")
        return

    snapshots = store.snapshots(navs)
    snapshot = find_snapshot(snapshots, target)

    summary = summarize_snapshots(snapshots)
    console.print("[cyan]Total operation profit:[/cyan]", profit_text(summary.total_operation_profit))
    console.print("[cyan]Total profit caused:[/cyan]", profit_text(summary.total_profit_caused))
    if snapshot.is_baseline:
        console.print(f"[yellow]No trading day on or before {target}; showing the baseline[/yellow]")
    elif snapshot.snapshot_date != target.isoformat():
        console.print(f"[dim]Using nearest snapshot. Requested: {target}[/dim]")

    lines = [
        f"Total cost: {format_money(snapshot.total_cost_basis)}",
        f"Market value: {format_money(snapshot.current_market_value)}",
        f"Cumulative value: {format_money(snapshot.cumulative_value)}",
        f"Total profit: {format_money(snapshot.total_profit, signed=True)} "
        f"({format_percent(snapshot.profit_rate)})",
        f"Daily profit: {format_money(snapshot.daily_profit, signed=True)} "
        f"({format_percent(snapshot.daily_profit_rate)})",
    ]
    if not snapshot.is_baseline:
        lines += [
            "",
            f"Bought: {format_money(snapshot.total_buy_amount)} "
            f"(floating {format_money(snapshot.total_buy_floating_profit, signed=True)})",
            f"Sold: {format_money(snapshot.total_sell_amount)} "
            f"(opportunity {format_money(snapshot.total_sell_opportunity_profit, signed=True)}, "
            f"realized {format_money(snapshot.total_sell_realized_profit, signed=True)})",
            "",
            f"Net amount: {format_money(snapshot.net_amount_change, signed=True)}",
            f"Market value change: {format_money(snapshot.market_value_change, signed=True)}",
            f"Operation profit: {format_money(snapshot.operation_profit, signed=True)} "
            f"({format_money(snapshot.profit_per_hundred)} per 100)",
            f"Profit caused: {format_money(snapshot.profit_caused, signed=True)} "
            f"({format_money(snapshot.profit_caused_per_hundred)} per 100)",
            f"Operation effect: {format_percent(snapshot.operation_effect)}",
        ]

    console.print(
        Panel(
            "\n".join(lines),
            title=f"Snapshot {snapshot.snapshot_date}",
            border_style=BORDER_PRIMARY,
            padding=PANEL_PADDING,
        )
    )

    if snapshot.is_baseline:
        return

    table = Table(title="Records")
    table.add_column("Code", style="cyan")
    table.add_column("Type")
    table.add_column("NAV", justify="right")
    table.add_column("Amount", justify="right")
    table.add_column("Shares", justify="right")
    table.add_column("Floating", justify="right")
    table.add_column("Opportunity", justify="right")
    table.add_column("Realized", justify="right")
    table.add_column("Cost Change", justify="right")

    for code, attributions in snapshot.attributions.items():
        for a in attributions:
            table.add_row(
                code,
                a.kind.value,
                f"{a.record.nav:.4f}",
                format_money(a.amount),
                f"{a.shares_change:+,.2f}",
                profit_text(a.floating_profit) if a.kind is RecordType.BUY else "-",
                profit_text(a.opportunity_profit) if a.kind is RecordType.SELL else "-",
                profit_text(a.realized_profit) if a.realized_profit else "-",
                f"{a.cost_change:+.4f}" if a.cost_change else "-",
            )
    console.print(table)


@report.command("tags")
@click.option(
    "--sort-by",
    type=click.Choice(list(TAG_SORT_KEYS)),
    default="total_market_value",
    help="Sort field",
)
@click.option("--order", type=click.Choice(list(SORT_ORDERS)), default="desc", help="Sort order")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
@handle_cli_errors
def report_tags(ctx: click.Context, sort_by: str, order: str, as_json: bool) -> None:
    """Roll holdings up by tag with profit efficiency."""
    console: Console = ctx.obj["console"]

    store, navs = _load()
    rollup = store.tag_analysis(navs)
    rows = sort_tag_rows(rollup.rows, sort_by, order)

    if as_json:
        console.print(
            json.dumps({"rows": [asdict(r) for r in rows], "totals": asdict(rollup.totals)}, indent=2, ensure_ascii=False)
        )
        return

    if not rows:
        print_empty_state(console, "tags", "fundfolio fund edit CODE --tag NAME")
        return

    table = Table(title="Tag Analysis")
    table.add_column("Tag", style="cyan")
    table.add_column("Funds", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("Holding P/L", justify="right")
    table.add_column("Realized", justify="right")
    table.add_column("Total P/L", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Daily", justify="right")
    table.add_column("Efficiency", justify="right")

    for r in rows:
        table.add_row(
            r.tag,
            str(r.fund_count),
            format_money(r.total_market_value),
            profit_text(r.total_holding_profit),
            profit_text(r.total_realized_profit),
            profit_text(r.grand_total_profit),
            format_percent(r.total_profit_rate),
            profit_text(r.total_daily_profit),
            f"{r.holding_efficiency:.2f}",
        )

    totals = rollup.totals
    table.add_section()
    table.add_row(
        "Portfolio",
        "",
        format_money(totals.total_market_value),
        profit_text(totals.total_holding_profit),
        "",
        profit_text(totals.grand_total_profit),
        format_percent(totals.total_profit_rate),
        profit_text(totals.total_daily_profit),
        "",
    )
    console.print(table)


@report.command("summary")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
@handle_cli_errors
def report_summary(ctx: click.Context, as_json: bool) -> None:
    """Totals across every trading day versus the baseline."""
    console: Console = ctx.obj["console"]

    store, navs = _load()
    summary = summarize_snapshots(store.snapshots(navs))

    if as_json:
        console.print(json.dumps(asdict(summary), indent=2))
        return

    if summary.snapshot_count == 0:
        print_empty_state(console, "trading days", "fundfolio trade buy CODE AMOUNT --date YYYY-MM-DD")
        return

    console.print(Panel.fit("[bold]Operation Summary[/bold]"))
    console.print()
    console.print(f"[cyan]Trading days:[/cyan] {summary.snapshot_count}")
    console.print(f"[cyan]Bought:[/cyan] {format_money(summary.total_buy_amount)}")
    console.print(f"[cyan]Sold:[/cyan] {format_money(summary.total_sell_amount)}")
    console.print(f"[cyan]Net amount:[/cyan] {format_money(summary.total_net_amount_change, signed=True)}")
    console.print()
    console.print("[cyan]Buy floating profit:[/cyan] ", profit_text(summary.total_buy_floating_profit))
    console.print("[cyan]Sell opportunity profit:[/cyan] ", profit_text(summary.total_sell_opportunity_profit))
    console.print("[cyan]Sell realized profit:[/cyan] ", profit_text(summary.total_sell_realized_profit))
    console.print(
        "[cyan]Operation profit:[/cyan] ",
        profit_text(summary.total_operation_profit),
        f" ({format_money(summary.profit_per_hundred)} per 100)",
    )
    console.print()
    console.print("[cyan]Daily profit vs baseline:[/cyan] ", profit_text(summary.daily_profit_change))
    console.print(f"[cyan]Operation effect:[/cyan] {format_percent(summary.operation_effect)}")
