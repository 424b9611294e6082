"""Centralized formatting utilities for CLI output.

Provides consistent colors and number formatting across all CLI commands.
"""

from typing import Optional

from rich.console import Console
from rich.text import Text


# =============================================================================
# Standard Padding & Borders
# =============================================================================

PANEL_PADDING = (1, 2)

BORDER_PRIMARY = "blue"      # Main content panels

# Missing value indicator
MISSING = "-"


# =============================================================================
# Profit Colors
# =============================================================================


def get_profit_color(value: Optional[float]) -> str:
    """Green for gains, red for losses, dim for zero or missing."""
    if value is None or abs(value) < 0.005:
        return "dim"
    return "green" if value > 0 else "red"


def get_status_color(status: str) -> str:
    """Get Rich color for a trade outcome status."""
    colors = {
        "confirmed": "green",
        "pending": "yellow",
        "skipped": "dim",
        "failed": "red",
    }
    return colors.get(status, "white")


# =============================================================================
# Number Formatting
# =============================================================================


def format_money(value: Optional[float], signed: bool = False) -> str:
    if value is None:
        return MISSING
    return f"{value:+,.2f}" if signed else f"{value:,.2f}"


def format_percent(value: Optional[float], signed: bool = True) -> str:
    if value is None:
        return MISSING
    return f"{value:+.2f}%" if signed else f"{value:.2f}%"


def profit_text(value: Optional[float], percent: bool = False) -> Text:
    """Signed, colored Rich text for a profit figure."""
    label = format_percent(value) if percent else format_money(value, signed=True)
    return Text(label, style=get_profit_color(value))


# =============================================================================
# Helper Functions for Consistent Output
# =============================================================================


def print_next_steps(console: Console, steps: list[tuple[str, str]]) -> None:
    """
    Print standardized next-step hints.

    Args:
        console: Rich console instance
        steps: List of (label, command) tuples
    """
    console.print()
    console.print("[dim]Next steps:[/dim]")
    for label, cmd in steps:
        console.print(f"  [dim]{label}:[/dim]  {cmd}")


def print_empty_state(console: Console, entity: str, hint: str) -> None:
    """
    Print standardized empty state message.

    Args:
        console: Rich console instance
        entity: What's empty (e.g., "funds", "snapshots")
        hint: Command to get started
    """
    console.print(f"[yellow]No {entity} found.[/yellow]")
    console.print(f"[dim]Get started: {hint}[/dim]")
