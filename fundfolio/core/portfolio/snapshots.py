"""
Portfolio snapshots and trading-day profit decomposition.

A snapshot is built for every date on which at least one confirmed record
exists, plus a synthetic baseline (every holding's initial position, i.e.
no tracked trading at all). All snapshots value holdings at the same
latest / prior NAVs, so differences between them isolate the effect of the
trades themselves:

- operation_profit: buy floating profit + sell opportunity profit for the day
- profit_per_hundred: operation_profit per 100 of net cash moved
- profit_caused: change in daily profit versus the same portfolio without
  the day's records applied
- operation_effect: profit_caused relative to that no-action daily profit

Snapshots are derived data. build_snapshot() is a pure function of its
inputs, so rebuilding a date from the same records and NAVs yields an
identical result.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Sequence

from fundfolio.core.portfolio.attribution import Attribution, attribute, safe_percent
from fundfolio.core.portfolio.constants import BASELINE_DATE, NO_BASELINE_EFFECT
from fundfolio.core.portfolio.ledger import LedgerState, apply_record, records_on, replay_as_of
from fundfolio.core.portfolio.records import ConfirmedRecord, Holding, RecordType
from fundfolio.core.portfolio.valuation import NavContext

logger = logging.getLogger(__name__)


@dataclass
class PortfolioSnapshot:
    """Aggregate portfolio state for one trading date (or the baseline)."""

    snapshot_date: str
    total_cost_basis: float
    current_market_value: float
    cumulative_value: float
    holding_profit: float
    total_profit: float
    profit_rate: float
    daily_profit: float
    daily_profit_rate: float
    net_cash_deployed: float
    position_count: int = 0

    # Attribution fields (None on the baseline)
    net_amount_change: Optional[float] = None
    market_value_change: Optional[float] = None
    operation_profit: Optional[float] = None
    profit_per_hundred: Optional[float] = None
    profit_caused: Optional[float] = None
    profit_caused_per_hundred: Optional[float] = None
    operation_effect: Optional[float] = None
    total_buy_amount: Optional[float] = None
    total_buy_floating_profit: Optional[float] = None
    total_sell_amount: Optional[float] = None
    total_sell_opportunity_profit: Optional[float] = None
    total_sell_realized_profit: Optional[float] = None
    total_dividend_cash: Optional[float] = None
    attributions: dict[str, list[Attribution]] = field(default_factory=dict)

    @property
    def is_baseline(self) -> bool:
        return self.snapshot_date == BASELINE_DATE


@dataclass
class SnapshotSummary:
    """Totals across all trading-day snapshots."""

    snapshot_count: int
    total_operation_profit: float
    total_profit_caused: float
    total_net_amount_change: float
    total_buy_amount: float
    total_buy_floating_profit: float
    total_sell_amount: float
    total_sell_opportunity_profit: float
    total_sell_realized_profit: float
    profit_per_hundred: float
    profit_caused_per_hundred: float
    daily_profit_change: Optional[float]  # Latest daily profit minus baseline daily profit
    operation_effect: Optional[float]     # None when there is no trading snapshot


@dataclass
class _Valuation:
    """Running market-value sums for one portfolio state."""

    cost_basis: float = 0.0
    realized_profit: float = 0.0
    market_value: float = 0.0
    daily_profit: float = 0.0
    yesterday_market_value: float = 0.0
    position_count: int = 0

    def add(self, code: str, state: LedgerState, navs: NavContext) -> None:
        self.realized_profit += state.realized_profit
        if state.shares <= 0:
            return
        self.position_count += 1
        self.cost_basis += state.total_cost
        latest = navs.latest_nav(code)
        prior = navs.prior_nav(code)
        if latest > 0:
            self.market_value += state.shares * latest
        if latest > 0 and prior > 0:
            self.daily_profit += (latest - prior) * state.shares
            self.yesterday_market_value += state.shares * prior


def _parse_day(day) -> date:
    if isinstance(day, date):
        return day
    return date.fromisoformat(str(day))


def _base_snapshot(label: str, valuation: _Valuation, net_cash: float) -> PortfolioSnapshot:
    cumulative_value = valuation.market_value + valuation.realized_profit
    total_profit = cumulative_value - valuation.cost_basis
    return PortfolioSnapshot(
        snapshot_date=label,
        total_cost_basis=valuation.cost_basis,
        current_market_value=valuation.market_value,
        cumulative_value=cumulative_value,
        holding_profit=valuation.market_value - valuation.cost_basis,
        total_profit=total_profit,
        profit_rate=safe_percent(total_profit, valuation.cost_basis) if valuation.cost_basis > 0 else 0.0,
        daily_profit=valuation.daily_profit,
        daily_profit_rate=(
            safe_percent(valuation.daily_profit, valuation.yesterday_market_value)
            if valuation.yesterday_market_value > 0
            else 0.0
        ),
        net_cash_deployed=net_cash,
        position_count=valuation.position_count,
    )


def build_snapshot(day, holdings: Sequence[Holding], navs: NavContext) -> PortfolioSnapshot:
    """
    Build the snapshot for one trading date.

    For every holding, the state just before `day` is replayed, then the
    day's confirmed records are applied one at a time and each is
    attributed against the state immediately before it.

    Args:
        day: Trading date (date or ISO string)
        holdings: All tracked holdings
        navs: Latest / prior NAV lookup

    Returns:
        PortfolioSnapshot with market and attribution fields populated
    """
    day = _parse_day(day)
    before_day = _Valuation()
    end_of_day = _Valuation()
    net_cash = 0.0

    buy_amount = 0.0
    buy_floating = 0.0
    sell_amount = 0.0
    sell_opportunity = 0.0
    sell_realized = 0.0
    dividend_cash = 0.0
    attributions: dict[str, list[Attribution]] = {}

    for holding in holdings:
        seed = holding.initial_position
        state = replay_as_of(holding.records, day, seed)
        before_day.add(holding.code, state, navs)

        latest = navs.latest_nav(holding.code)
        for record in records_on(holding.records, day):
            contribution = attribute(record, state, latest)
            attributions.setdefault(holding.code, []).append(contribution)

            if record.type is RecordType.BUY:
                buy_amount += record.amount
                buy_floating += contribution.floating_profit
            elif record.type is RecordType.SELL:
                sell_amount += abs(record.amount)
                sell_opportunity += contribution.opportunity_profit
                sell_realized += contribution.realized_profit
            elif record.type is RecordType.DIVIDEND_CASH:
                dividend_cash += contribution.realized_profit

            state = apply_record(state, record)

        end_of_day.add(holding.code, state, navs)
        net_cash += seed.total_cost + sum(
            r.amount for r in holding.records if isinstance(r, ConfirmedRecord) and r.date <= day
        )

    snapshot = _base_snapshot(day.isoformat(), end_of_day, net_cash)

    net_amount_change = buy_amount - sell_amount
    operation_profit = buy_floating + sell_opportunity
    profit_caused = end_of_day.daily_profit - before_day.daily_profit

    snapshot.net_amount_change = net_amount_change
    snapshot.market_value_change = end_of_day.market_value - before_day.market_value
    snapshot.operation_profit = operation_profit
    snapshot.profit_per_hundred = safe_percent(operation_profit, abs(net_amount_change))
    snapshot.profit_caused = profit_caused
    snapshot.profit_caused_per_hundred = safe_percent(profit_caused, abs(net_amount_change))
    snapshot.operation_effect = safe_percent(
        profit_caused, abs(before_day.daily_profit), fallback=NO_BASELINE_EFFECT
    )
    snapshot.total_buy_amount = buy_amount
    snapshot.total_buy_floating_profit = buy_floating
    snapshot.total_sell_amount = sell_amount
    snapshot.total_sell_opportunity_profit = sell_opportunity
    snapshot.total_sell_realized_profit = sell_realized
    snapshot.total_dividend_cash = dividend_cash
    snapshot.attributions = attributions

    logger.debug(
        f"Snapshot {snapshot.snapshot_date}: value={snapshot.current_market_value:.2f}, "
        f"operation_profit={operation_profit:.2f}, profit_caused={profit_caused:.2f}"
    )
    return snapshot


def build_baseline_snapshot(holdings: Sequence[Holding], navs: NavContext) -> PortfolioSnapshot:
    """
    Snapshot of every holding's initial position at current NAVs.

    This is the no-trading reference; its attribution fields stay None.
    """
    valuation = _Valuation()
    net_cash = 0.0
    for holding in holdings:
        state = LedgerState.from_position(holding.initial_position)
        valuation.add(holding.code, state, navs)
        net_cash += state.total_cost
    return _base_snapshot(BASELINE_DATE, valuation, net_cash)


def snapshot_dates(holdings: Iterable[Holding]) -> list[date]:
    """Sorted distinct dates carrying at least one confirmed record."""
    dates = {r.date for h in holdings for r in h.records if isinstance(r, ConfirmedRecord)}
    return sorted(dates)


def build_snapshot_series(holdings: Sequence[Holding], navs: NavContext) -> list[PortfolioSnapshot]:
    """
    All trading-day snapshots newest first, followed by the baseline.
    """
    holdings = list(holdings)
    series = [build_snapshot(day, holdings, navs) for day in reversed(snapshot_dates(holdings))]
    series.append(build_baseline_snapshot(holdings, navs))
    logger.info(f"Built {len(series) - 1} trading-day snapshots plus baseline")
    return series


def summarize_snapshots(snapshots: Sequence[PortfolioSnapshot]) -> SnapshotSummary:
    """
    Aggregate a snapshot series (as returned by build_snapshot_series).

    The summary operation effect compares the newest snapshot's daily
    profit with the baseline's; 100 when the baseline earns nothing.
    """
    trading = [s for s in snapshots if not s.is_baseline]
    baseline = next((s for s in snapshots if s.is_baseline), None)

    def total(attr: str) -> float:
        return sum(getattr(s, attr) or 0.0 for s in trading)

    net_amount = total("net_amount_change")
    operation_profit = total("operation_profit")
    profit_caused = total("profit_caused")

    daily_profit_change = None
    operation_effect = None
    if trading and baseline is not None:
        latest = max(trading, key=lambda s: s.snapshot_date)
        daily_profit_change = latest.daily_profit - baseline.daily_profit
        operation_effect = safe_percent(
            daily_profit_change, abs(baseline.daily_profit), fallback=NO_BASELINE_EFFECT
        )

    return SnapshotSummary(
        snapshot_count=len(trading),
        total_operation_profit=operation_profit,
        total_profit_caused=profit_caused,
        total_net_amount_change=net_amount,
        total_buy_amount=total("total_buy_amount"),
        total_buy_floating_profit=total("total_buy_floating_profit"),
        total_sell_amount=total("total_sell_amount"),
        total_sell_opportunity_profit=total("total_sell_opportunity_profit"),
        total_sell_realized_profit=total("total_sell_realized_profit"),
        profit_per_hundred=safe_percent(operation_profit, abs(net_amount)),
        profit_caused_per_hundred=safe_percent(profit_caused, abs(net_amount)),
        daily_profit_change=daily_profit_change,
        operation_effect=operation_effect,
    )


def find_snapshot(snapshots: Sequence[PortfolioSnapshot], day) -> Optional[PortfolioSnapshot]:
    """
    Nearest trading-day snapshot on or before `day`, else the baseline.
    """
    target = _parse_day(day).isoformat()
    candidates = [s for s in snapshots if not s.is_baseline and s.snapshot_date <= target]
    if candidates:
        return max(candidates, key=lambda s: s.snapshot_date)
    return next((s for s in snapshots if s.is_baseline), None)
