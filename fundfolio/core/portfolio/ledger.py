"""
Weighted-average cost ledger replay.

Rebuilds a holding's {shares, total cost, realized profit} at any date by
applying its confirmed records in chronological order on top of a seed
position. Replay is a pure function of (records, cutoff, seed): there is no
cached state, so callers can rebuild any date from scratch.

Transitions:
    buy              shares += shares_change, total_cost += amount
    dividend-reinvest shares += shares_change (total cost unchanged, unit cost diluted)
    sell             total_cost -= (total_cost / shares) * |shares_change|
                     shares += shares_change
    dividend-cash    no share or cost change
    every record     realized_profit += realized_profit_change (if set)

After every step, shares below SHARES_EPSILON floor shares and total cost
to exactly zero.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, Optional

from fundfolio.core.portfolio.constants import SHARES_EPSILON
from fundfolio.core.portfolio.records import (
    ConfirmedRecord,
    Position,
    RecordType,
    TradingRecord,
    sort_records,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerState:
    """Cost-basis state of one holding at an instant."""

    shares: float = 0.0
    total_cost: float = 0.0
    realized_profit: float = 0.0

    @property
    def average_cost(self) -> float:
        return self.total_cost / self.shares if self.shares > 0 else 0.0

    @classmethod
    def from_position(cls, position: Optional[Position]) -> "LedgerState":
        if position is None:
            return cls()
        return _floor(
            cls(
                shares=position.shares,
                total_cost=position.total_cost,
                realized_profit=position.realized_profit,
            )
        )


def _floor(state: LedgerState) -> LedgerState:
    if state.shares < SHARES_EPSILON:
        return replace(state, shares=0.0, total_cost=0.0)
    return state


def apply_record(state: LedgerState, record: TradingRecord) -> LedgerState:
    """
    Apply a single record to a ledger state.

    Pending records have no NAV yet and leave the state unchanged.
    """
    if not isinstance(record, ConfirmedRecord):
        return state

    shares = state.shares
    total_cost = state.total_cost

    if record.type is RecordType.BUY:
        shares += record.shares_change
        total_cost += record.amount
    elif record.type is RecordType.DIVIDEND_REINVEST:
        shares += record.shares_change
    elif record.type is RecordType.SELL:
        cost_per_share_before_sell = total_cost / shares if shares > 0 else 0.0
        total_cost -= cost_per_share_before_sell * abs(record.shares_change)
        shares += record.shares_change

    realized = state.realized_profit + (record.realized_profit_change or 0.0)

    return _floor(LedgerState(shares=shares, total_cost=total_cost, realized_profit=realized))


def apply_records(state: LedgerState, records: Iterable[TradingRecord]) -> LedgerState:
    """Apply records in the given order."""
    for record in records:
        state = apply_record(state, record)
    return state


def replay_as_of(
    records: Iterable[TradingRecord],
    cutoff: Optional[date],
    seed: Optional[Position] = None,
) -> LedgerState:
    """
    State at the start of `cutoff`.

    Records dated strictly before the cutoff are applied; the cutoff date's
    own records are excluded. A cutoff of None applies every record.

    Args:
        records: A holding's records in insertion order (pending ones are skipped)
        cutoff: Exclusive date bound, or None
        seed: Position before any record (zero if None)

    Returns:
        LedgerState after the applicable records
    """
    applicable = [
        r
        for r in sort_records(records)
        if isinstance(r, ConfirmedRecord) and (cutoff is None or r.date < cutoff)
    ]
    return apply_records(LedgerState.from_position(seed), applicable)


def replay_through(
    records: Iterable[TradingRecord],
    day: date,
    seed: Optional[Position] = None,
) -> LedgerState:
    """State at the end of `day` (the day's own records included)."""
    applicable = [
        r for r in sort_records(records) if isinstance(r, ConfirmedRecord) and r.date <= day
    ]
    return apply_records(LedgerState.from_position(seed), applicable)


def records_on(records: Iterable[TradingRecord], day: date) -> list[ConfirmedRecord]:
    """Confirmed records dated exactly `day`, in insertion order."""
    return [r for r in records if isinstance(r, ConfirmedRecord) and r.date == day]
