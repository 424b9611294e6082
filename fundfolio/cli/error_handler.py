"""Shared CLI error handling decorator.

Catches the domain errors every command can raise in a single decorator.
Commands can still handle command-specific exceptions internally before
the decorator catches the rest.

Usage:
    @click.command()
    @click.pass_context
    @handle_cli_errors
    def my_command(ctx, ...):
        ...
"""

import functools
import logging

import click
from rich.console import Console

from fundfolio.core.exceptions import (
    ConfigurationError,
    DuplicateHoldingError,
    HoldingNotFoundError,
    NavImportError,
    PositionImportError,
    RecordValidationError,
)

logger = logging.getLogger(__name__)


def handle_cli_errors(f):
    """Decorator that catches common CLI exceptions with Rich-formatted output.

    Must be applied AFTER @click.pass_context so the first positional arg
    is the Click context (which provides the console via ctx.obj["console"]).
    """

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        # Get console from Click context if available
        ctx = click.get_current_context(silent=True)
        console = ctx.obj["console"] if ctx and ctx.obj and "console" in ctx.obj else Console()

        try:
            return f(*args, **kwargs)
        except SystemExit:
            raise  # Don't intercept explicit exits
        except HoldingNotFoundError as e:
            console.print(f"[red]Not found:[/red] {e}")
            raise SystemExit(1)
        except DuplicateHoldingError as e:
            console.print(f"[red]Already tracked:[/red] {e}")
            console.print("[dim]Use 'fundfolio fund edit' to change it.[/dim]")
            raise SystemExit(1)
        except RecordValidationError as e:
            console.print(f"[red]Invalid record:[/red] {e}")
            raise SystemExit(1)
        except PositionImportError as e:
            console.print(f"[red]Import failed:[/red] {e}")
            raise SystemExit(1)
        except NavImportError as e:
            console.print(f"[red]NAV import failed:[/red] {e}")
            console.print("[dim]Nothing was written.[/dim]")
            raise SystemExit(1)
        except ConfigurationError as e:
            console.print(f"[red]Configuration error:[/red] {e}")
            console.print("[yellow]Check the FUNDFOLIO_* variables in your environment or .env file.[/yellow]")
            raise SystemExit(1)
        except click.exceptions.Exit:
            raise  # Don't intercept Click exits
        except Exception as e:
            logger.exception("Unexpected error in %s command", f.__name__)
            console.print(f"[red]Unexpected error:[/red] {e}")
            raise SystemExit(1)

    return wrapper
