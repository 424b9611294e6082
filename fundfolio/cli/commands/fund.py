"""Fund tracking commands: base positions and tags."""

import json
import logging
from datetime import date

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from fundfolio.cli.error_handler import handle_cli_errors
from fundfolio.cli.formatting import (
    BORDER_PRIMARY,
    MISSING,
    PANEL_PADDING,
    format_money,
    format_percent,
    print_empty_state,
    profit_text,
)
from fundfolio.cli.validators import FUND_CODE, validate_date, validate_non_negative_float
from fundfolio.core.portfolio.attribution import attribute_history, summarize_history
from fundfolio.core.portfolio.manager import PortfolioManager
from fundfolio.core.portfolio.records import Holding, Position, RecordType
from fundfolio.core.portfolio.tags import collect_tags, filter_by_tag, system_tags_for
from fundfolio.core.portfolio.valuation import value_holding

logger = logging.getLogger(__name__)


@click.group()
def fund() -> None:
    """
    Track funds and their base positions.

    The base position (shares, average cost, realized profit) is what
    trading records are replayed on top of.

    \b
    Examples:
        fundfolio fund add 161725 --shares 1000 --cost 1.2 --tag consumer
        fundfolio fund list
        fundfolio fund list --tag profit
        fundfolio fund show 161725 --include-baseline
        fundfolio fund edit 161725 --tag consumer,index
        fundfolio fund remove 161725
    """
    pass


@fund.command("add")
@click.argument("code", type=FUND_CODE)
@click.option("--name", "-n", default="", help="Display name")
@click.option("--shares", "-s", type=float, default=0.0, callback=validate_non_negative_float("Shares"), help="Base shares")
@click.option("--cost", "-c", type=float, default=0.0, callback=validate_non_negative_float("Cost"), help="Base average cost per share")
@click.option("--realized", "-r", type=float, default=0.0, help="Base realized profit")
@click.option("--tag", "-t", default="", help="Comma-separated tags")
@click.pass_context
@handle_cli_errors
def fund_add(
    ctx: click.Context, code: str, name: str, shares: float, cost: float, realized: float, tag: str
) -> None:
    """Start tracking a fund."""
    console: Console = ctx.obj["console"]

    manager = PortfolioManager()
    store = manager.load_store()
    holding = store.add_holding(
        Holding(
            code=code,
            name=name,
            initial_position=Position(shares=shares, average_cost=cost, realized_profit=realized),
            tag=tag,
        )
    )
    manager.save_holding(holding)

    console.print(f"[green]Tracking {code}[/green]")
    if shares > 0:
        console.print(f"  Shares: {shares:,.2f} @ {cost:.4f}")
    if tag:
        console.print(f"  Tags: {', '.join(holding.tags)}")


@fund.command("list")
@click.option("--tag", "-t", default=None, help="Only funds with this tag (system or custom)")
@click.option(
    "--sort-by",
    type=click.Choice(["code", "value", "profit", "daily"]),
    default="value",
    help="Sort field",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
@handle_cli_errors
def fund_list(ctx: click.Context, tag: str, sort_by: str, as_json: bool) -> None:
    """List tracked funds with their current valuation."""
    console: Console = ctx.obj["console"]

    manager = PortfolioManager()
    store = manager.load_store()
    navs = manager.load_nav_series().context()

    holdings = store.holdings()
    if tag:
        holdings = filter_by_tag(holdings, tag, navs)

    if not holdings:
        print_empty_state(console, "funds", "fundfolio fund add CODE --shares ... --cost ...")
        return

    valuations = [value_holding(h, navs) for h in holdings]
    sort_keys = {
        "code": lambda v: v.code,
        "value": lambda v: -v.market_value,
        "profit": lambda v: -v.total_profit,
        "daily": lambda v: -v.daily_profit,
    }
    pairs = sorted(zip(holdings, valuations), key=lambda p: sort_keys[sort_by](p[1]))

    if as_json:
        data = [
            {
                "code": v.code,
                "name": h.name,
                "tags": h.tags,
                "shares": v.shares,
                "average_cost": v.average_cost,
                "latest_nav": v.latest_nav,
                "market_value": v.market_value,
                "holding_profit": v.holding_profit,
                "realized_profit": v.realized_profit,
                "total_profit": v.total_profit,
                "daily_profit": v.daily_profit,
                "pending": len(h.pending_records),
            }
            for h, v in pairs
        ]
        console.print(json.dumps(data, indent=2, ensure_ascii=False))
        return

    table = Table(title="Tracked Funds")
    table.add_column("Code", style="cyan")
    table.add_column("Name", max_width=16)
    table.add_column("Shares", justify="right")
    table.add_column("Avg Cost", justify="right")
    table.add_column("NAV", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("Holding P/L", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Daily", justify="right")
    table.add_column("Tags")

    for h, v in pairs:
        tags = system_tags_for(v) + h.tags
        table.add_row(
            v.code,
            h.name[:16],
            f"{v.shares:,.2f}",
            f"{v.average_cost:.4f}" if v.shares > 0 else "-",
            f"{v.latest_nav:.4f}" if v.latest_nav > 0 else Text("-", style="dim"),
            format_money(v.market_value),
            profit_text(v.holding_profit),
            format_percent(v.holding_profit_rate),
            profit_text(v.daily_profit),
            ", ".join(tags) + (f" [{len(h.pending_records)} pending]" if h.pending_records else ""),
        )

    console.print(table)
    console.print(f"[dim]Tags in use: {', '.join(collect_tags(store.holdings(), navs))}[/dim]")


@fund.command("show")
@click.argument("code", type=FUND_CODE)
@click.option("--include-baseline", "-b", is_flag=True, help="Count the base position in the totals")
@click.option("--through", default=None, callback=validate_date, help="Only records on or before this date")
@click.pass_context
@handle_cli_errors
def fund_show(ctx: click.Context, code: str, include_baseline: bool, through: date) -> None:
    """
    Show one fund's position and trading history.

    Every confirmed record is listed in replay order and judged against the
    latest NAV: buys by floating profit, sells by opportunity and realized
    profit. Totals cover the listed records, plus the base position with
    --include-baseline.
    """
    console: Console = ctx.obj["console"]

    manager = PortfolioManager()
    holding = manager.load_store().get(code)
    navs = manager.load_nav_series([code]).context()
    latest = navs.latest_nav(code)

    v = value_holding(holding, navs, through)
    history = attribute_history(holding, latest, through)
    summary = summarize_history(holding, latest, include_baseline, through)

    lines = [
        f"Shares: {v.shares:,.2f}",
        f"Average cost: {v.average_cost:.4f}",
        f"Actual cost: {v.actual_cost:.4f}",
        f"Latest NAV: {v.latest_nav:.4f}" if v.latest_nav > 0 else f"Latest NAV: {MISSING}",
        f"Market value: {format_money(v.market_value)}",
        f"Holding profit: {format_money(v.holding_profit, signed=True)} ({format_percent(v.holding_profit_rate)})",
        f"Realized profit: {format_money(v.realized_profit, signed=True)}",
        f"Total profit: {format_money(v.total_profit, signed=True)} ({format_percent(v.total_profit_rate)})",
        f"Daily profit: {format_money(v.daily_profit, signed=True)}",
    ]
    title = f"{code} {holding.name}".strip()
    if through is not None:
        title += f" through {through}"
    console.print(Panel("\n".join(lines), title=title, border_style=BORDER_PRIMARY, padding=PANEL_PADDING))

    if not history:
        console.print("[yellow]No confirmed records[/yellow]")
    else:
        table = Table(title="Trading History")
        table.add_column("Date", style="cyan")
        table.add_column("Type")
        table.add_column("NAV", justify="right")
        table.add_column("Amount", justify="right")
        table.add_column("Shares", justify="right")
        table.add_column("Floating", justify="right")
        table.add_column("Opportunity", justify="right")
        table.add_column("Realized", justify="right")
        table.add_column("Cost Change", justify="right")

        for a in history:
            table.add_row(
                a.record.date.isoformat(),
                a.kind.value,
                f"{a.record.nav:.4f}",
                format_money(a.amount),
                f"{a.shares_change:+,.2f}",
                profit_text(a.floating_profit) if a.kind is RecordType.BUY else MISSING,
                profit_text(a.opportunity_profit) if a.kind is RecordType.SELL else MISSING,
                profit_text(a.realized_profit) if a.realized_profit else MISSING,
                f"{a.cost_change:+.4f}" if a.cost_change else MISSING,
            )
        console.print(table)

    scope = "records and base position" if include_baseline else f"{summary.record_count} record(s)"
    console.print(f"[bold]Totals over {scope}[/bold]")
    console.print(f"[cyan]Shares change:[/cyan] {summary.shares_change:+,.2f}")
    console.print(f"[cyan]Amount:[/cyan] {format_money(summary.amount, signed=True)}")
    console.print(
        f"[cyan]Bought:[/cyan] {format_money(summary.buy_amount)} floating",
        profit_text(summary.floating_profit),
        f"({format_percent(summary.floating_profit_rate)})",
    )
    console.print(
        f"[cyan]Sold:[/cyan] {format_money(summary.sell_amount)} opportunity",
        profit_text(summary.opportunity_profit),
        f"({format_percent(summary.opportunity_profit_rate)})",
    )
    console.print(
        "[cyan]Realized:[/cyan]",
        profit_text(summary.realized_profit),
        f"({format_percent(summary.realized_profit_rate)})",
    )
    console.print("[cyan]Operation profit:[/cyan]", profit_text(summary.operation_profit))

    if holding.pending_records:
        console.print(f"[dim]{len(holding.pending_records)} pending record(s) not shown[/dim]")


@fund.command("edit")
@click.argument("code", type=FUND_CODE)
@click.option("--name", "-n", default=None, help="Display name")
@click.option("--shares", "-s", type=float, default=None, callback=validate_non_negative_float("Shares"), help="Base shares (clears records)")
@click.option("--cost", "-c", type=float, default=None, callback=validate_non_negative_float("Cost"), help="Base average cost (clears records)")
@click.option("--realized", "-r", type=float, default=None, help="Base realized profit")
@click.option("--tag", "-t", default=None, help="Comma-separated tags (replaces existing)")
@click.pass_context
@handle_cli_errors
def fund_edit(
    ctx: click.Context, code: str, name: str, shares: float, cost: float, realized: float, tag: str
) -> None:
    """
    Edit a fund's base position, tags or name.

    Changing shares or cost resets the fund's trading records, since the new
    base position replaces their history.
    """
    console: Console = ctx.obj["console"]

    manager = PortfolioManager()
    store = manager.load_store()
    current = store.get(code).initial_position

    position = None
    if shares is not None or cost is not None or realized is not None:
        position = Position(
            shares=current.shares if shares is None else shares,
            average_cost=current.average_cost if cost is None else cost,
            realized_profit=current.realized_profit if realized is None else realized,
        )

    before = len(store.get(code).records)
    holding = store.update_position(code, position=position, tag=tag, name=name)
    manager.save_holding(holding)

    console.print(f"[green]Updated {code}[/green]")
    if before and not holding.records:
        console.print(f"[yellow]Base position changed; {before} record(s) cleared[/yellow]")


@fund.command("remove")
@click.argument("code", type=FUND_CODE)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
@handle_cli_errors
def fund_remove(ctx: click.Context, code: str, yes: bool) -> None:
    """Stop tracking a fund and delete its records."""
    console: Console = ctx.obj["console"]

    manager = PortfolioManager()
    store = manager.load_store()
    holding = store.get(code)

    if not yes and not click.confirm(
        f"Remove {code} and its {len(holding.records)} record(s)?", default=False
    ):
        console.print("[dim]Cancelled[/dim]")
        return

    store.remove_holding(code)
    manager.delete_holding(code)
    console.print(f"[green]Removed {code}[/green]")
