"""
Tests for trading-day snapshots.

Tests cover:
- Snapshot fields for a two-fund portfolio
- Additivity across holdings
- Determinism and idempotence
- Degenerate denominators (net amount 0, no prior daily profit)
- Baseline, series ordering, summary and lookup
"""

from dataclasses import replace
from datetime import date

import pytest

from conftest import buy, pending, sell
from fundfolio.core.portfolio.constants import BASELINE_DATE
from fundfolio.core.portfolio.records import Holding, Position, RecordType
from fundfolio.core.portfolio.snapshots import (
    build_baseline_snapshot,
    build_snapshot,
    build_snapshot_series,
    find_snapshot,
    snapshot_dates,
    summarize_snapshots,
)
from fundfolio.core.portfolio.valuation import NavContext

SUMMED_FIELDS = [
    "total_buy_amount",
    "total_buy_floating_profit",
    "total_sell_amount",
    "total_sell_opportunity_profit",
    "total_sell_realized_profit",
    "total_dividend_cash",
    "net_amount_change",
    "operation_profit",
    "market_value_change",
    "profit_caused",
    "current_market_value",
    "total_cost_basis",
    "daily_profit",
    "net_cash_deployed",
]


class TestBuildSnapshot:
    """Tests for a single trading-day snapshot."""

    def test_buy_day(self, two_fund_portfolio, navs):
        snapshot = build_snapshot(date(2024, 1, 2), two_fund_portfolio, navs)

        assert snapshot.snapshot_date == "2024-01-02"
        assert snapshot.total_buy_amount == pytest.approx(1500)
        assert snapshot.total_buy_floating_profit == pytest.approx(70)
        assert snapshot.total_sell_amount == 0.0
        assert snapshot.net_amount_change == pytest.approx(1500)
        assert snapshot.operation_profit == pytest.approx(70)
        assert snapshot.profit_per_hundred == pytest.approx(70 / 1500 * 100)

        assert snapshot.current_market_value == pytest.approx(2870)
        assert snapshot.total_cost_basis == pytest.approx(2700)
        assert snapshot.holding_profit == pytest.approx(170)
        assert snapshot.daily_profit == pytest.approx(3)
        assert snapshot.net_cash_deployed == pytest.approx(2700)
        assert snapshot.position_count == 2

        # No-action daily profit was 20 (only the 161725 base position)
        assert snapshot.profit_caused == pytest.approx(-17)
        assert snapshot.operation_effect == pytest.approx(-85)
        assert snapshot.market_value_change == pytest.approx(1570)

    def test_sell_day(self, two_fund_portfolio, navs):
        snapshot = build_snapshot("2024-01-05", two_fund_portfolio, navs)

        assert snapshot.total_sell_amount == pytest.approx(220)
        assert snapshot.total_sell_opportunity_profit == pytest.approx(10)
        assert snapshot.total_sell_realized_profit == pytest.approx(20)
        assert snapshot.net_amount_change == pytest.approx(-220)
        assert snapshot.operation_profit == pytest.approx(10)
        assert snapshot.profit_per_hundred == pytest.approx(10 / 220 * 100)
        assert snapshot.profit_caused == pytest.approx(5)
        assert snapshot.operation_effect == pytest.approx(5 / 3 * 100)
        assert snapshot.total_profit == pytest.approx(180)
        assert snapshot.cumulative_value == pytest.approx(2680)
        assert snapshot.net_cash_deployed == pytest.approx(2480)

    def test_operation_profit_matches_value_change_less_net_amount(self, two_fund_portfolio, navs):
        for day in snapshot_dates(two_fund_portfolio):
            snapshot = build_snapshot(day, two_fund_portfolio, navs)

            assert snapshot.operation_profit == pytest.approx(
                snapshot.market_value_change - snapshot.net_amount_change
            )

    def test_attributions_are_grouped_by_code(self, two_fund_portfolio, navs):
        snapshot = build_snapshot("2024-01-02", two_fund_portfolio, navs)

        assert set(snapshot.attributions) == {"161725", "110011"}
        assert snapshot.attributions["110011"][0].floating_profit == pytest.approx(50)

    def test_missing_nav_contributes_nothing(self, two_fund_portfolio):
        navs = NavContext(latest={"161725": 1.3}, prior={"161725": 1.28})

        snapshot = build_snapshot("2024-01-02", two_fund_portfolio, navs)

        assert snapshot.current_market_value == pytest.approx(1820)
        assert snapshot.total_buy_floating_profit == pytest.approx(20)
        assert snapshot.total_cost_basis == pytest.approx(2700)


class TestSnapshotProperties:
    """Tests for additivity, determinism and degenerate cases."""

    def test_additivity(self, two_fund_portfolio, navs):
        for day in snapshot_dates(two_fund_portfolio):
            combined = build_snapshot(day, two_fund_portfolio, navs)
            parts = [build_snapshot(day, [h], navs) for h in two_fund_portfolio]

            for name in SUMMED_FIELDS:
                assert getattr(combined, name) == pytest.approx(
                    sum(getattr(p, name) for p in parts)
                ), name

    def test_rebuild_is_identical(self, two_fund_portfolio, navs):
        first = build_snapshot("2024-01-05", two_fund_portfolio, navs)
        second = build_snapshot("2024-01-05", two_fund_portfolio, navs)

        assert first == second

    def test_series_rebuild_is_identical(self, two_fund_portfolio, navs):
        assert build_snapshot_series(two_fund_portfolio, navs) == build_snapshot_series(
            two_fund_portfolio, navs
        )

    def test_profit_per_hundred(self):
        """Buy 1000 with 30 floating profit gives 3.0 per hundred."""
        holdings = [Holding(code="A", records=(buy("2024-01-02", 1.0, 1000),))]
        navs = NavContext(latest={"A": 1.03})

        snapshot = build_snapshot("2024-01-02", holdings, navs)

        assert snapshot.operation_profit == pytest.approx(30)
        assert snapshot.profit_per_hundred == pytest.approx(3.0)

    def test_zero_net_amount_gives_zero_per_hundred(self):
        holdings = [
            Holding(code="A", records=(buy("2024-01-02", 1.0, 1000),)),
            Holding(
                code="B",
                initial_position=Position(shares=1000, average_cost=1.0),
                records=(sell("2024-01-02", 2.0, 500, realized=500),),
            ),
        ]
        navs = NavContext(latest={"A": 1.1, "B": 1.9})

        snapshot = build_snapshot("2024-01-02", holdings, navs)

        assert snapshot.net_amount_change == pytest.approx(0)
        assert snapshot.profit_per_hundred == 0.0
        assert snapshot.profit_caused_per_hundred == 0.0

    def test_no_prior_daily_profit_gives_full_effect(self):
        holdings = [Holding(code="A", records=(buy("2024-01-02", 1.0, 1000),))]
        navs = NavContext(latest={"A": 1.1}, prior={"A": 1.05})

        snapshot = build_snapshot("2024-01-02", holdings, navs)

        assert snapshot.profit_caused == pytest.approx(50)
        assert snapshot.operation_effect == 100.0

    def test_pending_records_are_ignored(self, navs):
        holdings = [
            Holding(
                code="161725",
                records=(
                    buy("2024-01-02", 1.25, 500),
                    pending("2024-01-03", RecordType.BUY, 1000),
                ),
            )
        ]

        assert snapshot_dates(holdings) == [date(2024, 1, 2)]
        snapshot = build_snapshot("2024-01-03", holdings, navs)
        assert snapshot.total_buy_amount == 0.0


class TestBaselineAndSeries:
    """Tests for the baseline snapshot and the series."""

    def test_baseline_uses_initial_positions(self, two_fund_portfolio, navs):
        baseline = build_baseline_snapshot(two_fund_portfolio, navs)

        assert baseline.is_baseline
        assert baseline.snapshot_date == BASELINE_DATE
        assert baseline.current_market_value == pytest.approx(1300)
        assert baseline.total_cost_basis == pytest.approx(1200)
        assert baseline.daily_profit == pytest.approx(20)
        assert baseline.operation_profit is None
        assert baseline.attributions == {}

    def test_series_is_newest_first_with_baseline_last(self, two_fund_portfolio, navs):
        series = build_snapshot_series(two_fund_portfolio, navs)

        assert [s.snapshot_date for s in series] == ["2024-01-05", "2024-01-02", BASELINE_DATE]

    def test_empty_portfolio(self):
        series = build_snapshot_series([], NavContext())

        assert len(series) == 1
        assert series[0].is_baseline
        assert series[0].current_market_value == 0.0

    def test_later_records_do_not_change_earlier_snapshot(self, two_fund_portfolio, navs):
        before = build_snapshot("2024-01-02", two_fund_portfolio, navs)
        extended = [
            replace(h, records=h.records + (buy("2024-02-01", 1.3, 100),))
            if h.code == "161725"
            else h
            for h in two_fund_portfolio
        ]

        assert build_snapshot("2024-01-02", extended, navs) == before


class TestSummary:
    """Tests for summarize_snapshots and find_snapshot."""

    def test_summary_totals(self, two_fund_portfolio, navs):
        summary = summarize_snapshots(build_snapshot_series(two_fund_portfolio, navs))

        assert summary.snapshot_count == 2
        assert summary.total_operation_profit == pytest.approx(80)
        assert summary.total_profit_caused == pytest.approx(-12)
        assert summary.total_net_amount_change == pytest.approx(1280)
        assert summary.total_buy_amount == pytest.approx(1500)
        assert summary.total_sell_amount == pytest.approx(220)
        assert summary.total_sell_realized_profit == pytest.approx(20)
        assert summary.profit_per_hundred == pytest.approx(6.25)

    def test_summary_effect_compares_latest_with_baseline(self, two_fund_portfolio, navs):
        summary = summarize_snapshots(build_snapshot_series(two_fund_portfolio, navs))

        assert summary.daily_profit_change == pytest.approx(8 - 20)
        assert summary.operation_effect == pytest.approx(-60)

    def test_summary_without_trading(self):
        summary = summarize_snapshots(build_snapshot_series([], NavContext()))

        assert summary.snapshot_count == 0
        assert summary.profit_per_hundred == 0.0
        assert summary.operation_effect is None

    @pytest.mark.parametrize(
        "day, expected",
        [
            ("2024-01-03", "2024-01-02"),
            ("2024-01-05", "2024-01-05"),
            ("2024-03-01", "2024-01-05"),
            ("2023-12-31", BASELINE_DATE),
        ],
    )
    def test_find_snapshot(self, two_fund_portfolio, navs, day, expected):
        series = build_snapshot_series(two_fund_portfolio, navs)

        assert find_snapshot(series, day).snapshot_date == expected
