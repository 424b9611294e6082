"""
Per-record profit attribution.

Judges each confirmed record in hindsight against the fund's latest NAV:

- Buy: floating profit = (latest NAV - buy NAV) * shares bought.
  Positive when buying was cheaper than the fund is now.
- Sell: opportunity profit = (sell NAV - latest NAV) * shares sold.
  Positive when selling beat holding until now. Realized profit is the
  profit booked on the record.
- Dividend-cash: realized profit only.
- Dividend-reinvest: no profit; reported as the dilution of unit cost.

Every percentage uses safe_ratio(), so zero shares, zero cost, zero NAV or
a missing latest NAV resolve to 0 instead of raising.
"""

import math
from dataclasses import dataclass
from datetime import date
from typing import Optional

from fundfolio.core.portfolio.constants import DENOMINATOR_EPSILON
from fundfolio.core.portfolio.ledger import LedgerState, apply_record
from fundfolio.core.portfolio.records import ConfirmedRecord, Holding, RecordType, sort_records


def safe_ratio(numerator: float, denominator: float, fallback: float = 0.0) -> float:
    """numerator / denominator, or fallback when the denominator is ~0 or the result is not finite."""
    if denominator is None or numerator is None:
        return fallback
    if abs(denominator) < DENOMINATOR_EPSILON:
        return fallback
    result = numerator / denominator
    if math.isnan(result) or math.isinf(result):
        return fallback
    return result


def safe_percent(numerator: float, denominator: float, fallback: float = 0.0) -> float:
    """safe_ratio() scaled to percent."""
    ratio = safe_ratio(numerator, denominator, fallback=None)
    return fallback if ratio is None else ratio * 100


@dataclass
class Attribution:
    """Profit contribution of a single confirmed record."""

    record: ConfirmedRecord
    kind: RecordType
    amount: float
    shares_change: float
    shares_change_percent: float = 0.0
    floating_profit: float = 0.0
    floating_profit_percent: float = 0.0
    opportunity_profit: float = 0.0
    opportunity_profit_percent: float = 0.0
    realized_profit: float = 0.0
    realized_profit_percent: float = 0.0
    cost_change: float = 0.0
    cost_change_percent: float = 0.0

    @property
    def operation_profit(self) -> float:
        """Timing profit of this record (floating + opportunity)."""
        return self.floating_profit + self.opportunity_profit


def attribute(
    record: ConfirmedRecord,
    state_before: LedgerState,
    latest_nav: Optional[float],
) -> Attribution:
    """
    Compute a record's profit contribution.

    Args:
        record: Confirmed record to judge
        state_before: Holding's ledger state immediately before the record
        latest_nav: Fund's most recent NAV (0 or None when unavailable)

    Returns:
        Attribution for the record
    """
    latest = latest_nav if latest_nav and latest_nav > 0 else 0.0
    avg_before = state_before.average_cost
    result = Attribution(
        record=record,
        kind=record.type,
        amount=record.amount,
        shares_change=record.shares_change,
        shares_change_percent=safe_percent(record.shares_change, state_before.shares),
    )

    if record.type is RecordType.BUY:
        if latest > 0:
            result.floating_profit = (latest - record.nav) * record.shares_change
        if record.amount > 0 and record.nav > 0:
            result.floating_profit_percent = safe_percent(result.floating_profit, record.amount)
        _set_cost_change(result, record, state_before)

    elif record.type is RecordType.SELL:
        shares_sold = abs(record.shares_change)
        result.amount = abs(record.amount)
        if latest > 0:
            result.opportunity_profit = (record.nav - latest) * shares_sold
            result.opportunity_profit_percent = safe_percent(record.nav - latest, record.nav)
        result.realized_profit = record.realized_profit_change or 0.0
        if avg_before > 0:
            result.realized_profit_percent = safe_percent(record.nav - avg_before, avg_before)

    elif record.type is RecordType.DIVIDEND_CASH:
        result.realized_profit = record.realized_profit_change or 0.0

    else:
        _set_cost_change(result, record, state_before)

    return result


def _set_cost_change(result: Attribution, record: ConfirmedRecord, state_before: LedgerState) -> None:
    avg_before = state_before.average_cost
    avg_after = apply_record(state_before, record).average_cost
    result.cost_change = avg_after - avg_before
    if avg_before > 0:
        result.cost_change_percent = safe_percent(result.cost_change, avg_before)


@dataclass
class HistorySummary:
    """Totals over one holding's confirmed records, optionally counting its base position."""

    record_count: int = 0
    shares_change: float = 0.0
    amount: float = 0.0
    floating_profit: float = 0.0
    opportunity_profit: float = 0.0
    realized_profit: float = 0.0
    buy_amount: float = 0.0
    sell_amount: float = 0.0  # Sells plus cash dividends

    @property
    def operation_profit(self) -> float:
        return self.floating_profit + self.opportunity_profit

    @property
    def floating_profit_rate(self) -> float:
        return safe_percent(self.floating_profit, self.buy_amount)

    @property
    def opportunity_profit_rate(self) -> float:
        return safe_percent(self.opportunity_profit, self.sell_amount)

    @property
    def realized_profit_rate(self) -> float:
        return safe_percent(self.realized_profit, self.sell_amount)


def _history(holding: Holding, through: Optional[date]) -> list[ConfirmedRecord]:
    return [
        r
        for r in sort_records(holding.confirmed_records)
        if through is None or r.date <= through
    ]


def attribute_history(
    holding: Holding,
    latest_nav: Optional[float],
    through: Optional[date] = None,
) -> list[Attribution]:
    """
    Attribute every confirmed record of a holding in replay order.

    Replay starts from the initial position and each record is judged
    against the state just before it, the same way trading-day snapshots
    judge a day's records.
    """
    state = LedgerState.from_position(holding.initial_position)
    history = []
    for record in _history(holding, through):
        history.append(attribute(record, state, latest_nav))
        state = apply_record(state, record)
    return history


def summarize_history(
    holding: Holding,
    latest_nav: Optional[float],
    include_baseline: bool = False,
    through: Optional[date] = None,
) -> HistorySummary:
    """
    Trading-history totals for one holding.

    Buys and reinvested dividends earn floating profit, sells earn
    opportunity profit, both against the latest NAV. Cash dividends count
    toward the amount and the sell-side denominator. With include_baseline
    the initial position is treated as one more buy at its average cost.
    """
    latest = latest_nav if latest_nav and latest_nav > 0 else 0.0
    summary = HistorySummary()

    if include_baseline:
        base = holding.initial_position
        summary.shares_change = base.shares
        summary.amount = base.total_cost
        summary.buy_amount = base.total_cost
        summary.realized_profit = base.realized_profit
        if latest > 0 and base.shares > 0:
            summary.floating_profit = (latest - base.average_cost) * base.shares

    for record in _history(holding, through):
        realized = record.realized_profit_change or 0.0
        summary.record_count += 1
        summary.shares_change += record.shares_change
        summary.realized_profit += realized

        if record.type is RecordType.DIVIDEND_CASH:
            summary.amount += realized
            summary.sell_amount += abs(realized)
            continue

        summary.amount += record.amount
        if record.type is RecordType.BUY:
            summary.buy_amount += record.amount
        elif record.type is RecordType.SELL:
            summary.sell_amount += abs(record.amount)

        if latest <= 0 or record.nav <= 0:
            continue
        if record.type is RecordType.SELL:
            summary.opportunity_profit += (record.nav - latest) * abs(record.shares_change)
        else:
            summary.floating_profit += (latest - record.nav) * record.shares_change

    return summary
