"""
Tag rollup: aggregate holdings by user-assigned labels.

A holding with N tags counts fully in each of its N buckets (no
proportional split). Fund count and realized profit include funds that
are no longer held; every share-dependent figure only counts held funds.

Efficiency ratios compare a tag's share of portfolio profit with its share
of portfolio market value:

    efficiency = (tag profit / |portfolio profit|) / (tag value / portfolio value)

> 1 means the tag earns more than its weight. Degenerate denominators give 0.
"""

import logging
import math
from dataclasses import dataclass, fields
from typing import Mapping, Optional, Sequence

from fundfolio.core.portfolio.attribution import safe_percent, safe_ratio
from fundfolio.core.portfolio.constants import (
    SORT_ORDERS,
    SYSTEM_TAGS,
    TAG_HOLDING,
    TAG_LOSS,
    TAG_PROFIT,
    TAG_WATCHING,
)
from fundfolio.core.portfolio.records import Holding
from fundfolio.core.portfolio.valuation import HoldingValuation, NavContext, value_holding

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecentTrend:
    """
    Recent NAV move of a fund, supplied by an external trend analyzer.

    change_percent: move since the last trend pivot, in percent
    pivot_nav: NAV at that pivot
    """

    change_percent: float
    pivot_nav: float


@dataclass
class PortfolioTotals:
    """Portfolio-wide sums used as the denominators of tag efficiency."""

    total_cost_basis: float = 0.0
    total_market_value: float = 0.0
    cumulative_market_value: float = 0.0
    grand_total_profit: float = 0.0
    total_holding_profit: float = 0.0
    total_daily_profit: float = 0.0
    total_yesterday_market_value: float = 0.0
    total_recent_profit: float = 0.0
    total_initial_market_value_for_trend: float = 0.0
    holding_profit_rate: float = 0.0
    total_profit_rate: float = 0.0
    daily_profit_rate: float = 0.0
    recent_profit_rate: float = 0.0


@dataclass
class TagAnalysisData:
    """Aggregated figures for one tag."""

    tag: str
    fund_count: int = 0
    total_cost_basis: float = 0.0
    total_market_value: float = 0.0
    cumulative_market_value: float = 0.0
    total_holding_profit: float = 0.0
    total_realized_profit: float = 0.0
    grand_total_profit: float = 0.0
    total_daily_profit: float = 0.0
    total_yesterday_market_value: float = 0.0
    total_recent_profit: float = 0.0
    total_initial_market_value_for_trend: float = 0.0
    holding_profit_rate: float = 0.0
    total_profit_rate: float = 0.0
    daily_profit_rate: float = 0.0
    recent_profit_rate: float = 0.0
    holding_efficiency: float = 0.0
    daily_efficiency: float = 0.0
    recent_efficiency: float = 0.0


@dataclass
class TagRollup:
    rows: list[TagAnalysisData]
    totals: PortfolioTotals


@dataclass
class _TagBucket:
    codes: set
    cost_basis: float = 0.0
    market_value: float = 0.0
    holding_profit: float = 0.0
    realized_profit: float = 0.0
    daily_profit: float = 0.0
    yesterday_market_value: float = 0.0
    recent_profit: float = 0.0
    initial_market_value_for_trend: float = 0.0
    sum_daily_rates: float = 0.0
    daily_rate_count: int = 0
    sum_recent_rates: float = 0.0
    recent_rate_count: int = 0


def _recent_figures(valuation: HoldingValuation, trend: Optional[RecentTrend]) -> tuple[float, float]:
    """(recent profit, market value at the pivot) for a held fund."""
    if trend is None or not valuation.is_held or valuation.latest_nav <= 0 or trend.pivot_nav <= 0:
        return 0.0, 0.0
    return (
        (valuation.latest_nav - trend.pivot_nav) * valuation.shares,
        trend.pivot_nav * valuation.shares,
    )


def _efficiency(tag_profit: float, portfolio_profit: float, value_share: float) -> float:
    profit_share = safe_ratio(tag_profit, abs(portfolio_profit))
    return safe_ratio(profit_share, value_share) if value_share > 0 else 0.0


def portfolio_totals(
    valuations: Sequence[HoldingValuation],
    recent: Optional[Mapping[str, RecentTrend]] = None,
) -> PortfolioTotals:
    """Sum every holding's valuation into portfolio totals."""
    recent = recent or {}
    totals = PortfolioTotals()
    for v in valuations:
        totals.grand_total_profit += v.total_profit
        if not v.is_held:
            continue
        recent_profit, initial_value = _recent_figures(v, recent.get(v.code))
        totals.total_cost_basis += v.cost_basis
        totals.total_market_value += v.market_value
        totals.total_holding_profit += v.holding_profit
        totals.total_daily_profit += v.daily_profit
        totals.total_yesterday_market_value += v.yesterday_market_value
        totals.total_recent_profit += recent_profit
        totals.total_initial_market_value_for_trend += initial_value

    totals.cumulative_market_value = totals.total_cost_basis + totals.grand_total_profit
    if totals.total_cost_basis > 0:
        totals.holding_profit_rate = safe_percent(totals.total_holding_profit, totals.total_cost_basis)
        totals.total_profit_rate = safe_percent(totals.grand_total_profit, totals.total_cost_basis)
    if totals.total_yesterday_market_value > 0:
        totals.daily_profit_rate = safe_percent(
            totals.total_daily_profit, totals.total_yesterday_market_value
        )
    if totals.total_initial_market_value_for_trend > 0:
        totals.recent_profit_rate = safe_percent(
            totals.total_recent_profit, totals.total_initial_market_value_for_trend
        )
    return totals


def aggregate_by_tag(
    holdings: Sequence[Holding],
    navs: NavContext,
    recent: Optional[Mapping[str, RecentTrend]] = None,
) -> TagRollup:
    """
    Roll holdings up by tag.

    Args:
        holdings: Tracked holdings
        navs: Latest / prior NAV lookup
        recent: Optional recent-trend input per fund code

    Returns:
        TagRollup with one row per tag (in first-seen order) and portfolio totals
    """
    recent = recent or {}
    valuations = {h.code: value_holding(h, navs) for h in holdings}
    totals = portfolio_totals(list(valuations.values()), recent)

    buckets: dict[str, _TagBucket] = {}
    for holding in holdings:
        valuation = valuations[holding.code]
        trend = recent.get(holding.code)
        for tag in holding.tags:
            bucket = buckets.setdefault(tag, _TagBucket(codes=set()))
            bucket.codes.add(holding.code)
            bucket.realized_profit += valuation.realized_profit

            if valuation.daily_change_percent is not None:
                bucket.sum_daily_rates += valuation.daily_change_percent
                bucket.daily_rate_count += 1
            if trend is not None and trend.change_percent:
                bucket.sum_recent_rates += trend.change_percent
                bucket.recent_rate_count += 1

            if not valuation.is_held:
                continue
            recent_profit, initial_value = _recent_figures(valuation, trend)
            bucket.cost_basis += valuation.cost_basis
            bucket.market_value += valuation.market_value
            bucket.holding_profit += valuation.holding_profit
            bucket.daily_profit += valuation.daily_profit
            bucket.yesterday_market_value += valuation.yesterday_market_value
            bucket.recent_profit += recent_profit
            bucket.initial_market_value_for_trend += initial_value

    rows = [_build_row(tag, bucket, totals) for tag, bucket in buckets.items()]
    logger.debug(f"Aggregated {len(holdings)} holdings into {len(rows)} tags")
    return TagRollup(rows=rows, totals=totals)


def _build_row(tag: str, bucket: _TagBucket, totals: PortfolioTotals) -> TagAnalysisData:
    grand_total_profit = bucket.holding_profit + bucket.realized_profit

    if bucket.yesterday_market_value > 0:
        daily_profit_rate = safe_percent(bucket.daily_profit, bucket.yesterday_market_value)
    else:
        daily_profit_rate = safe_ratio(bucket.sum_daily_rates, bucket.daily_rate_count)

    if bucket.initial_market_value_for_trend > 0:
        recent_profit_rate = safe_percent(bucket.recent_profit, bucket.initial_market_value_for_trend)
    else:
        recent_profit_rate = safe_ratio(bucket.sum_recent_rates, bucket.recent_rate_count)

    value_share = (
        safe_ratio(bucket.market_value, totals.total_market_value)
        if totals.total_market_value > 0
        else 0.0
    )

    return TagAnalysisData(
        tag=tag,
        fund_count=len(bucket.codes),
        total_cost_basis=bucket.cost_basis,
        total_market_value=bucket.market_value,
        cumulative_market_value=bucket.cost_basis + grand_total_profit,
        total_holding_profit=bucket.holding_profit,
        total_realized_profit=bucket.realized_profit,
        grand_total_profit=grand_total_profit,
        total_daily_profit=bucket.daily_profit,
        total_yesterday_market_value=bucket.yesterday_market_value,
        total_recent_profit=bucket.recent_profit,
        total_initial_market_value_for_trend=bucket.initial_market_value_for_trend,
        holding_profit_rate=safe_percent(bucket.holding_profit, bucket.cost_basis) if bucket.cost_basis > 0 else 0.0,
        total_profit_rate=safe_percent(grand_total_profit, bucket.cost_basis) if bucket.cost_basis > 0 else 0.0,
        daily_profit_rate=daily_profit_rate,
        recent_profit_rate=recent_profit_rate,
        holding_efficiency=_efficiency(bucket.holding_profit, totals.total_holding_profit, value_share),
        daily_efficiency=_efficiency(bucket.daily_profit, totals.total_daily_profit, value_share),
        recent_efficiency=_efficiency(bucket.recent_profit, totals.total_recent_profit, value_share),
    )


TAG_SORT_KEYS = tuple(f.name for f in fields(TagAnalysisData))
TEXT_SORT_KEYS = ("tag",)


def sort_tag_rows(
    rows: Sequence[TagAnalysisData],
    key: str = "total_market_value",
    order: str = "desc",
) -> list[TagAnalysisData]:
    """
    Sort tag rows by a field.

    Stable: rows with equal values keep their input order. Text fields (the
    tag name) sort case-insensitively; for them the abs orders behave like
    asc and desc. Other non-numeric or non-finite values sort as 0.

    Raises:
        ValueError: If key or order is unknown
    """
    if key not in TAG_SORT_KEYS:
        raise ValueError(f"Unknown tag sort key: {key}")
    if order not in SORT_ORDERS:
        raise ValueError(f"Invalid sort order: {order}. Use one of {', '.join(SORT_ORDERS)}")

    def sort_value(row: TagAnalysisData):
        value = getattr(row, key)
        if key in TEXT_SORT_KEYS:
            return str(value or "").casefold()
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0.0
        if math.isnan(value) or math.isinf(value):
            return 0.0
        return abs(value) if order.startswith("abs") else value

    descending = order in ("desc", "abs_desc")
    return sorted(rows, key=sort_value, reverse=descending)


def system_tags_for(valuation: HoldingValuation) -> list[str]:
    """System tags that apply to one holding."""
    if not valuation.is_held:
        return [TAG_WATCHING]
    tags = [TAG_HOLDING]
    if valuation.latest_nav > 0:
        if valuation.holding_profit > 0:
            tags.append(TAG_PROFIT)
        elif valuation.holding_profit < 0:
            tags.append(TAG_LOSS)
    return tags


def collect_tags(holdings: Sequence[Holding], navs: NavContext) -> list[str]:
    """System tags present (fixed order) followed by custom tags sorted alphabetically."""
    system: set[str] = set()
    custom: set[str] = set()
    for holding in holdings:
        system.update(system_tags_for(value_holding(holding, navs)))
        custom.update(holding.tags)
    return [t for t in SYSTEM_TAGS if t in system] + sorted(custom - set(SYSTEM_TAGS))


def filter_by_tag(holdings: Sequence[Holding], tag: str, navs: NavContext) -> list[Holding]:
    """Holdings carrying a system or custom tag."""
    if tag in SYSTEM_TAGS:
        return [h for h in holdings if tag in system_tags_for(value_holding(h, navs))]
    return [h for h in holdings if tag in h.tags]
