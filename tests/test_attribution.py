"""Tests for per-record profit attribution."""

import math
from datetime import date

import pytest

from conftest import buy, dividend_cash, pending, reinvest, sell
from fundfolio.core.portfolio.attribution import (
    attribute,
    attribute_history,
    safe_percent,
    safe_ratio,
    summarize_history,
)
from fundfolio.core.portfolio.ledger import LedgerState
from fundfolio.core.portfolio.records import Holding, Position, RecordType


class TestSafeRatio:
    """Tests for degenerate-denominator handling."""

    def test_regular_division(self):
        assert safe_ratio(30, 1000) == pytest.approx(0.03)
        assert safe_percent(30, 1000) == pytest.approx(3.0)

    @pytest.mark.parametrize("denominator", [0, 0.0, 1e-9, -1e-9])
    def test_near_zero_denominator_falls_back(self, denominator):
        assert safe_ratio(5, denominator) == 0.0
        assert safe_percent(5, denominator, fallback=100.0) == 100.0

    def test_non_finite_result_falls_back(self):
        assert safe_ratio(math.inf, 1.0) == 0.0
        assert safe_ratio(math.nan, 1.0) == 0.0


class TestBuyAttribution:
    """Tests for floating profit on buys."""

    def test_floating_profit(self):
        """Buy 500 at 1.0, latest 1.1: floating 50, 10%."""
        result = attribute(buy("2024-01-02", 1.0, 500), LedgerState(), 1.1)

        assert result.kind is RecordType.BUY
        assert result.floating_profit == pytest.approx(50)
        assert result.floating_profit_percent == pytest.approx(10)
        assert result.opportunity_profit == 0.0
        assert result.operation_profit == pytest.approx(50)

    def test_no_latest_nav(self):
        result = attribute(buy("2024-01-02", 1.0, 500), LedgerState(), None)

        assert result.floating_profit == 0.0
        assert result.floating_profit_percent == 0.0

    def test_cost_change_on_averaging_up(self):
        before = LedgerState(shares=1000, total_cost=1000)

        result = attribute(buy("2024-01-02", 2.0, 1000), before, 2.0)

        # 1500 shares at 2000 total
        assert result.cost_change == pytest.approx(2000 / 1500 - 1.0)
        assert result.cost_change_percent == pytest.approx((2000 / 1500 - 1.0) * 100)
        assert result.shares_change_percent == pytest.approx(50)

    def test_first_buy_has_no_cost_change_percent(self):
        result = attribute(buy("2024-01-02", 1.5, 300), LedgerState(), 1.5)

        assert result.cost_change == pytest.approx(1.5)
        assert result.cost_change_percent == 0.0
        assert result.shares_change_percent == 0.0


class TestSellAttribution:
    """Tests for opportunity and realized profit on sells."""

    def test_opportunity_profit(self):
        """1000 @ 1.2, sell 400 @ 1.5, latest 1.4: opportunity 40."""
        before = LedgerState(shares=1000, total_cost=1200)

        result = attribute(sell("2024-01-02", 1.5, 400, realized=120), before, 1.4)

        assert result.amount == pytest.approx(600)
        assert result.opportunity_profit == pytest.approx(40)
        assert result.opportunity_profit_percent == pytest.approx((1.5 - 1.4) / 1.5 * 100)
        assert result.realized_profit == pytest.approx(120)
        assert result.realized_profit_percent == pytest.approx(25)
        assert result.floating_profit == 0.0

    def test_selling_before_a_rise_is_negative(self):
        before = LedgerState(shares=100, total_cost=100)

        result = attribute(sell("2024-01-02", 1.0, 100), before, 1.2)

        assert result.opportunity_profit == pytest.approx(-20)

    def test_zero_average_cost(self):
        result = attribute(sell("2024-01-02", 1.0, 10), LedgerState(), 1.0)

        assert result.realized_profit_percent == 0.0
        assert result.shares_change_percent == 0.0


class TestDividendAttribution:
    """Tests for dividend records."""

    def test_cash_dividend_is_realized(self):
        before = LedgerState(shares=1000, total_cost=1200)

        result = attribute(dividend_cash("2024-01-02", 1.3, 15), before, 1.4)

        assert result.realized_profit == pytest.approx(15)
        assert result.operation_profit == 0.0
        assert result.cost_change == 0.0

    def test_reinvest_reports_dilution(self):
        before = LedgerState(shares=1000, total_cost=1200)

        result = attribute(reinvest("2024-01-02", 1.3, 200), before, 1.4)

        assert result.operation_profit == 0.0
        assert result.cost_change == pytest.approx(1.0 - 1.2)
        assert result.cost_change_percent == pytest.approx(-100 / 6)


@pytest.fixture
def traded_holding():
    """Base 1000 @ 1.2; records entered out of date order."""
    return Holding(
        code="161725",
        initial_position=Position(shares=1000, average_cost=1.2),
        records=(
            sell("2024-01-05", 1.35, 200, realized=27.0),
            buy("2024-01-02", 1.25, 500),
            dividend_cash("2024-01-08", 1.3, 10.0),
            reinvest("2024-01-09", 1.3, 10),
        ),
    )


class TestAttributeHistory:
    """Tests for attributing a holding's whole record history."""

    def test_replay_order(self, traded_holding):
        history = attribute_history(traded_holding, 1.3)

        assert [a.kind for a in history] == [
            RecordType.BUY,
            RecordType.SELL,
            RecordType.DIVIDEND_CASH,
            RecordType.DIVIDEND_REINVEST,
        ]

    def test_each_record_judged_against_state_before_it(self, traded_holding):
        bought, sold, dividend, reinvested = attribute_history(traded_holding, 1.3)

        assert bought.floating_profit == pytest.approx(20.0)
        assert bought.shares_change_percent == pytest.approx(40.0)
        assert sold.opportunity_profit == pytest.approx(10.0)
        assert sold.shares_change_percent == pytest.approx(-200 / 1400 * 100)
        assert sold.realized_profit == pytest.approx(27.0)
        assert dividend.realized_profit == pytest.approx(10.0)
        assert reinvested.cost_change < 0

    def test_through_date(self, traded_holding):
        history = attribute_history(traded_holding, 1.3, through=date(2024, 1, 5))

        assert [a.kind for a in history] == [RecordType.BUY, RecordType.SELL]

    def test_pending_records_are_skipped(self, traded_holding):
        holding = Holding(
            code="161725",
            records=traded_holding.records + (pending("2024-01-10", RecordType.BUY, 100),),
        )

        assert len(attribute_history(holding, 1.3)) == 4


class TestSummarizeHistory:
    """Tests for per-holding trading-history totals."""

    def test_records_only(self, traded_holding):
        summary = summarize_history(traded_holding, 1.3)

        assert summary.record_count == 4
        assert summary.shares_change == pytest.approx(210)
        assert summary.amount == pytest.approx(500 - 270 + 10)
        assert summary.buy_amount == pytest.approx(500)
        assert summary.sell_amount == pytest.approx(280)
        assert summary.floating_profit == pytest.approx(20.0)
        assert summary.opportunity_profit == pytest.approx(10.0)
        assert summary.realized_profit == pytest.approx(37.0)
        assert summary.operation_profit == pytest.approx(30.0)
        assert summary.floating_profit_rate == pytest.approx(4.0)
        assert summary.opportunity_profit_rate == pytest.approx(10 / 280 * 100)
        assert summary.realized_profit_rate == pytest.approx(37 / 280 * 100)

    def test_include_baseline(self, traded_holding):
        summary = summarize_history(traded_holding, 1.3, include_baseline=True)

        assert summary.shares_change == pytest.approx(1210)
        assert summary.amount == pytest.approx(1200 + 240)
        assert summary.buy_amount == pytest.approx(1700)
        assert summary.floating_profit == pytest.approx(120.0)

    def test_through_date(self, traded_holding):
        summary = summarize_history(traded_holding, 1.3, through=date(2024, 1, 2))

        assert summary.record_count == 1
        assert summary.sell_amount == 0.0
        assert summary.opportunity_profit_rate == 0.0

    def test_without_latest_nav(self, traded_holding):
        summary = summarize_history(traded_holding, None, include_baseline=True)

        assert summary.floating_profit == 0.0
        assert summary.opportunity_profit == 0.0
        assert summary.realized_profit == pytest.approx(37.0)

    def test_empty_holding(self, empty_holding):
        summary = summarize_history(empty_holding, 1.0, include_baseline=True)

        assert summary.record_count == 0
        assert summary.floating_profit_rate == 0.0
