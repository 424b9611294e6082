"""
NAV inputs and per-holding valuation.

NAV data is owned by the caller and passed in explicitly: a NavSeries holds
per-fund history (used to confirm pending records), and a NavContext is
the frozen {code -> latest NAV, code -> prior trading day NAV} view that
the attribution and aggregation functions read. Nothing here caches
market data at module level.
"""

import hashlib
import logging
from bisect import bisect_left
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Mapping, Optional

from fundfolio.core.portfolio.attribution import safe_percent, safe_ratio
from fundfolio.core.portfolio.ledger import replay_through
from fundfolio.core.portfolio.records import Holding

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavPoint:
    """Unit NAV of a fund on one trading day."""

    date: date
    nav: float


@dataclass(frozen=True)
class NavContext:
    """
    Caller-owned NAV lookup used for valuation.

    Missing codes resolve to 0.0, which the aggregation treats as "no
    valuation available" for that fund.
    """

    latest: Mapping[str, float] = field(default_factory=dict)
    prior: Mapping[str, float] = field(default_factory=dict)

    def latest_nav(self, code: str) -> float:
        value = self.latest.get(code)
        return float(value) if value and value > 0 else 0.0

    def prior_nav(self, code: str) -> float:
        value = self.prior.get(code)
        return float(value) if value and value > 0 else 0.0

    @property
    def fingerprint(self) -> str:
        """Stable digest of the NAV maps, used as a memoization key."""
        digest = hashlib.sha1()
        for label, mapping in (("L", self.latest), ("P", self.prior)):
            for code in sorted(mapping):
                digest.update(f"{label}:{code}={mapping[code]!r};".encode())
        return digest.hexdigest()


class NavSeries:
    """
    Per-fund NAV history.

    Points are kept sorted by date; adding a point for an existing date
    replaces it.
    """

    def __init__(self, history: Optional[Mapping[str, Iterable[NavPoint]]] = None):
        self._points: dict[str, list[NavPoint]] = {}
        for code, points in (history or {}).items():
            for point in points:
                self.add(code, point.date, point.nav)

    def add(self, code: str, day: date, nav: float) -> None:
        points = self._points.setdefault(code, [])
        dates = [p.date for p in points]
        index = bisect_left(dates, day)
        point = NavPoint(date=day, nav=float(nav))
        if index < len(points) and points[index].date == day:
            points[index] = point
        else:
            points.insert(index, point)

    def codes(self) -> list[str]:
        return sorted(self._points)

    def points(self, code: str) -> list[NavPoint]:
        return list(self._points.get(code, []))

    def nav_on(self, code: str, day: date) -> Optional[float]:
        """NAV published for exactly `day`, or None."""
        for point in self._points.get(code, []):
            if point.date == day:
                return point.nav
        return None

    def latest(self, code: str) -> Optional[NavPoint]:
        points = self._points.get(code)
        return points[-1] if points else None

    def prior(self, code: str) -> Optional[NavPoint]:
        points = self._points.get(code)
        return points[-2] if points and len(points) >= 2 else None

    def context(self, as_of: Optional[date] = None) -> NavContext:
        """
        Build the latest/prior NAV view, optionally truncated at `as_of`.
        """
        latest: dict[str, float] = {}
        prior: dict[str, float] = {}
        for code, points in self._points.items():
            usable = [p for p in points if as_of is None or p.date <= as_of]
            if usable:
                latest[code] = usable[-1].nav
            if len(usable) >= 2:
                prior[code] = usable[-2].nav
        return NavContext(latest=latest, prior=prior)

    def __len__(self) -> int:
        return sum(len(points) for points in self._points.values())


@dataclass
class HoldingValuation:
    """Current state of one holding valued at the latest NAV."""

    code: str
    shares: float
    average_cost: float
    cost_basis: float
    realized_profit: float
    latest_nav: float
    prior_nav: float
    market_value: float
    holding_profit: float
    total_profit: float
    actual_cost: float
    holding_profit_rate: float
    total_profit_rate: float
    daily_profit: float
    yesterday_market_value: float
    daily_change_percent: Optional[float]

    @property
    def is_held(self) -> bool:
        return self.shares > 0


def value_holding(
    holding: Holding, navs: NavContext, through: Optional[date] = None
) -> HoldingValuation:
    """
    Value a holding's current (fully replayed) position.

    With `through`, only records dated on or before it are replayed, so the
    position is the one held at the end of that day (still valued at the
    latest NAV). Market value is 0 without a latest NAV; daily profit is 0
    unless both the latest and prior NAVs are known.
    """
    if through is None:
        state = holding.current_state()
    else:
        state = replay_through(holding.records, through, holding.initial_position)
    latest = navs.latest_nav(holding.code)
    prior = navs.prior_nav(holding.code)

    market_value = state.shares * latest if latest > 0 else 0.0
    cost_basis = state.total_cost
    holding_profit = market_value - cost_basis
    total_profit = holding_profit + state.realized_profit

    daily_profit = 0.0
    yesterday_market_value = 0.0
    daily_change_percent = None
    if latest > 0 and prior > 0:
        daily_profit = (latest - prior) * state.shares
        yesterday_market_value = prior * state.shares
        daily_change_percent = safe_percent(latest - prior, prior)

    return HoldingValuation(
        code=holding.code,
        shares=state.shares,
        average_cost=state.average_cost,
        cost_basis=cost_basis,
        realized_profit=state.realized_profit,
        latest_nav=latest,
        prior_nav=prior,
        market_value=market_value,
        holding_profit=holding_profit,
        total_profit=total_profit,
        actual_cost=safe_ratio(cost_basis - state.realized_profit, state.shares) if state.shares > 0 else 0.0,
        holding_profit_rate=safe_percent(holding_profit, cost_basis) if cost_basis > 0 else 0.0,
        total_profit_rate=safe_percent(total_profit, cost_basis) if cost_basis > 0 else 0.0,
        daily_profit=daily_profit,
        yesterday_market_value=yesterday_market_value,
        daily_change_percent=daily_change_percent,
    )
