"""
Pytest configuration and shared fixtures for fundfolio tests.

This module provides common fixtures used across all test modules,
including record builders, sample holdings, NAV contexts and database
fixtures.
"""

from datetime import date
from pathlib import Path
from typing import Generator

import pytest

from fundfolio.core.portfolio.records import (
    ConfirmedRecord,
    Holding,
    PendingRecord,
    Position,
    RecordType,
)
from fundfolio.core.portfolio.valuation import NavContext, NavSeries

# ==============================================================================
# Autouse Fixtures - Run automatically for all tests
# ==============================================================================


@pytest.fixture(autouse=True)
def set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables for testing."""
    monkeypatch.setenv("FUNDFOLIO_DB_PATH", ":memory:")
    monkeypatch.setenv("FUNDFOLIO_LOG_LEVEL", "WARNING")


# ==============================================================================
# Record Builders
# ==============================================================================


def buy(day: str, nav: float, amount: float, shares: float = None) -> ConfirmedRecord:
    """Confirmed buy of `amount` cash at `nav` (shares default to amount / nav)."""
    return ConfirmedRecord(
        date=date.fromisoformat(day),
        type=RecordType.BUY,
        nav=nav,
        shares_change=amount / nav if shares is None else shares,
        amount=amount,
    )


def sell(day: str, nav: float, shares: float, realized: float = 0.0) -> ConfirmedRecord:
    return ConfirmedRecord(
        date=date.fromisoformat(day),
        type=RecordType.SELL,
        nav=nav,
        shares_change=-shares,
        amount=-(shares * nav),
        realized_profit_change=realized,
    )


def dividend_cash(day: str, nav: float, cash: float) -> ConfirmedRecord:
    return ConfirmedRecord(
        date=date.fromisoformat(day),
        type=RecordType.DIVIDEND_CASH,
        nav=nav,
        shares_change=0.0,
        amount=0.0,
        realized_profit_change=cash,
    )


def reinvest(day: str, nav: float, shares: float) -> ConfirmedRecord:
    return ConfirmedRecord(
        date=date.fromisoformat(day),
        type=RecordType.DIVIDEND_REINVEST,
        nav=nav,
        shares_change=shares,
        amount=0.0,
    )


def pending(day: str, kind: RecordType, value: float) -> PendingRecord:
    return PendingRecord(date=date.fromisoformat(day), type=kind, value=value)


# ==============================================================================
# Portfolio Fixtures
# ==============================================================================


@pytest.fixture
def empty_holding() -> Holding:
    """Fund with no base position and no records."""
    return Holding(code="000001", name="Empty Fund")


@pytest.fixture
def seeded_holding() -> Holding:
    """1000 shares at 1.2 average cost, no records."""
    return Holding(
        code="161725",
        name="Consumer Index",
        initial_position=Position(shares=1000, average_cost=1.2),
        tag="consumer,index",
    )


@pytest.fixture
def two_fund_portfolio() -> list[Holding]:
    """
    Two funds trading on the same day.

    161725: base 1000 @ 1.2, buys 500 cash @ 1.25 on 2024-01-02
    110011: base 0, buys 1000 cash @ 2.0 on 2024-01-02, sells 100 @ 2.2 on 2024-01-05
    """
    return [
        Holding(
            code="161725",
            initial_position=Position(shares=1000, average_cost=1.2),
            tag="consumer",
            records=(buy("2024-01-02", 1.25, 500),),
        ),
        Holding(
            code="110011",
            tag="consumer,growth",
            records=(
                buy("2024-01-02", 2.0, 1000),
                sell("2024-01-05", 2.2, 100, realized=20.0),
            ),
        ),
    ]


@pytest.fixture
def navs() -> NavContext:
    """Latest and prior NAVs for the sample funds."""
    return NavContext(
        latest={"161725": 1.3, "110011": 2.1, "000001": 1.0},
        prior={"161725": 1.28, "110011": 2.15, "000001": 1.0},
    )


@pytest.fixture
def nav_series() -> NavSeries:
    series = NavSeries()
    series.add("161725", date(2024, 1, 2), 1.25)
    series.add("161725", date(2024, 1, 3), 1.28)
    series.add("161725", date(2024, 1, 4), 1.30)
    series.add("110011", date(2024, 1, 2), 2.0)
    series.add("110011", date(2024, 1, 3), 2.1)
    return series


# ==============================================================================
# Database Fixtures
# ==============================================================================


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> Path:
    """Provide a temporary database path."""
    return tmp_path / "test_fundfolio.db"


@pytest.fixture
def tmp_db(tmp_db_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """
    Set up a temporary database for testing.

    Monkeypatches the database path and initializes the schema.
    """
    monkeypatch.setenv("FUNDFOLIO_DB_PATH", str(tmp_db_path))

    # The config singleton reads env at import time
    from fundfolio.config import config

    monkeypatch.setattr(config, "db_path", tmp_db_path)
    monkeypatch.setattr(config, "export_dir", tmp_db_path.parent / "exports")

    # Reset any existing engine to force creation with new path
    from fundfolio.db.database import reset_engine

    reset_engine()

    from fundfolio.db import init_db

    init_db()

    yield tmp_db_path

    # Cleanup
    reset_engine()
    if tmp_db_path.exists():
        tmp_db_path.unlink()
