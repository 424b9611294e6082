"""
fundfolio CLI - fund portfolio ledger and profit attribution.

Entry point for the command-line interface. Provides commands for:
- Fund tracking (base positions, tags)
- Trade entry (buy/sell/dividends, pending confirmation)
- NAV history
- Reports (trading-day snapshots, per-record attribution, tag rollup)
- JSON import/export
- Database management

Usage:
    fundfolio --help
    fundfolio db init
    fundfolio fund add 161725 --shares 1000 --cost 1.2 --tag consumer
    fundfolio nav set 161725 2024-01-02 1.25
    fundfolio trade buy 161725 1000 --date 2024-01-02
    fundfolio trade sell all 50% --date 2024-01-03
    fundfolio report snapshots
    fundfolio report inspect 2024-01-03
    fundfolio report tags --sort-by holding_efficiency
    fundfolio data export
"""

import logging
from collections import OrderedDict

import click
from rich.console import Console

from fundfolio import __version__
from fundfolio.cli.commands import data, db, fund, nav, report, trade
from fundfolio.config import config


class OrderedGroup(click.Group):
    """Custom group that displays commands in organized categories."""

    COMMAND_GROUPS: OrderedDict[str, list[str]] = OrderedDict([
        ("Portfolio", ["fund", "trade", "nav"]),
        ("Analysis", ["report"]),
        ("Setup", ["db", "data"]),
    ])

    def format_commands(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Write commands in organized groups."""
        for group_name, cmd_names in self.COMMAND_GROUPS.items():
            commands = []
            for cmd_name in cmd_names:
                cmd = self.get_command(ctx, cmd_name)
                if cmd:
                    help_text = cmd.get_short_help_str(limit=formatter.width)
                    commands.append((cmd_name, help_text))

            if commands:
                with formatter.section(group_name):
                    formatter.write_dl(commands)

# Global console for rich output
console = Console()


@click.group(cls=OrderedGroup)
@click.version_option(version=__version__, prog_name="fundfolio")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """
    fundfolio - fund position ledger and profit attribution.

    Tracks buy / sell / dividend records per fund, replays them into
    weighted-average cost positions and explains each trading day's
    effect on profit.

    \b
    Examples:
        fundfolio fund list                     # Holdings with valuation
        fundfolio trade buy 161725 1000         # Buy 1000 (cash) today
        fundfolio trade sell tag:index 50%      # Sell half of every index fund
        fundfolio trade confirm                 # Confirm pending trades
        fundfolio report snapshots              # Trading-day snapshots
        fundfolio report tags                   # Tag rollup
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level_value,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["console"] = console


# Register command groups
cli.add_command(fund.fund)
cli.add_command(trade.trade)
cli.add_command(nav.nav)
cli.add_command(report.report)
cli.add_command(data.data)
cli.add_command(db.db)


def main() -> None:
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
