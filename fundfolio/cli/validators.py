"""
Input validation utilities for CLI commands.

Provides reusable validation callbacks and helper functions for:
- Fund code format validation
- Trade date parsing
- Numeric bounds checking
"""

from datetime import date, datetime
from typing import Optional

import click

from fundfolio.core.portfolio.constants import FUND_CODE_PATTERN

DATE_FORMAT = "%Y-%m-%d"


def _validate_fund_code_format(value: str) -> str:
    """
    Core fund code validation logic.

    Raises:
        ValueError: If the code format is invalid
    """
    if not FUND_CODE_PATTERN.match(value):
        raise ValueError(
            f"Invalid fund code: '{value}'. "
            "Expected 1-12 letters or digits (e.g., 161725)"
        )
    return value


def validate_fund_code(ctx: click.Context, param: click.Parameter, value: str) -> str:
    """
    Validate and normalize a fund code (Click callback).

    Raises:
        click.BadParameter: If the code format is invalid
    """
    if not value:
        raise click.BadParameter("Fund code is required")

    value = value.upper().strip()

    try:
        return _validate_fund_code_format(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


def parse_date(value: Optional[str]) -> date:
    """
    Parse YYYY-MM-DD, defaulting to today.

    Raises:
        ValueError: If the format is invalid
    """
    if not value:
        return date.today()
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValueError(f"Invalid date '{value}'. Use YYYY-MM-DD") from None


def validate_date(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[date]:
    """Click callback wrapping parse_date(); None stays None."""
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


def validate_non_negative_float(name: str):
    """
    Create a validator for values that must be >= 0.

    Returns:
        Click callback function for validation
    """
    def validator(ctx: click.Context, param: click.Parameter, value: Optional[float]) -> Optional[float]:
        if value is None:
            return None
        if value < 0:
            raise click.BadParameter(f"{name} must not be negative")
        return value

    return validator


def validate_positive_float(name: str):
    """
    Create a validator for values that must be > 0.

    Returns:
        Click callback function for validation
    """
    def validator(ctx: click.Context, param: click.Parameter, value: Optional[float]) -> Optional[float]:
        if value is None:
            return None
        if value <= 0:
            raise click.BadParameter(f"{name} must be greater than 0")
        return value

    return validator


class FundCodeType(click.ParamType):
    """Custom Click parameter type for fund codes."""

    name = "fund_code"

    def convert(self, value, param, ctx):
        if not value:
            self.fail("Fund code is required", param, ctx)

        value = value.upper().strip()

        try:
            return _validate_fund_code_format(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


# Singleton instance for reuse
FUND_CODE = FundCodeType()
