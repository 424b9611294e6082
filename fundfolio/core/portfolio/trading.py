"""
Trade entry across one or many holdings.

execute_trade() applies the same trade to every targeted holding:

- Targets: a code, a comma-separated list of codes, "all" (every fund
  currently held) or "tag:NAME" (every fund carrying that custom tag).
- Sell value may be a share count or a percentage of the shares held just
  before the trade date ("50%").
- If the fund's NAV for the date is known, the record is confirmed at once.
  Otherwise it is queued as pending, unless the date is in the past (no NAV
  will ever be published for it) or falls on a weekend.
- A trade replaces any record already entered for that fund and date.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from fundfolio.core.exceptions import HoldingNotFoundError, RecordValidationError
from fundfolio.core.portfolio.ledger import replay_as_of
from fundfolio.core.portfolio.records import (
    Holding,
    PendingRecord,
    RecordType,
    TradingRecord,
    confirm_record,
)
from fundfolio.core.portfolio.store import PortfolioStore
from fundfolio.core.portfolio.valuation import NavSeries

logger = logging.getLogger(__name__)

STATUS_CONFIRMED = "confirmed"
STATUS_PENDING = "pending"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass
class TradeOutcome:
    """Result of a trade for one holding."""

    code: str
    status: str
    message: str
    record: Optional[TradingRecord] = None


def resolve_targets(store: PortfolioStore, target: str) -> list[Holding]:
    """
    Expand a target expression into holdings.

    Raises:
        HoldingNotFoundError: If an explicit code is not tracked
    """
    target = target.strip()
    if target == "all":
        return [h for h in store.holdings() if h.current_state().shares > 0]
    if target.startswith("tag:"):
        tag = target[len("tag:"):].strip()
        return [h for h in store.holdings() if tag in h.tags]

    codes = [c.strip() for c in target.split(",") if c.strip()]
    missing = [c for c in codes if c not in store]
    if missing:
        raise HoldingNotFoundError(", ".join(missing))
    return [store.get(c) for c in codes]


def parse_trade_value(raw: Union[str, float]) -> tuple[float, bool]:
    """
    Parse "100", "12.5" or "50%".

    Returns:
        (value, is_percent)

    Raises:
        RecordValidationError: If the value is not a positive number or the
            percentage is outside (0, 100]
    """
    text = str(raw).strip()
    is_percent = text.endswith("%")
    if is_percent:
        text = text[:-1]
    try:
        value = float(text)
    except ValueError:
        raise RecordValidationError(f"Invalid trade value: {raw}") from None
    if value <= 0 or (is_percent and value > 100):
        raise RecordValidationError(f"Invalid trade value: {raw}")
    return value, is_percent


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def execute_trade(
    store: PortfolioStore,
    nav_series: NavSeries,
    kind: RecordType,
    target: str,
    value: Union[str, float],
    day: date,
    today: Optional[date] = None,
    share_decimals: Optional[int] = None,
) -> list[TradeOutcome]:
    """
    Enter a trade for every holding matched by `target`.

    Args:
        store: Record store to update
        nav_series: Published NAV history used to confirm immediately
        kind: Record type
        target: Target expression (see module docstring)
        value: Cash amount (buy, dividend-cash) or share count (sell,
            dividend-reinvest); sells also accept "N%"
        day: Trade date
        today: Reference date for the past-date rule (defaults to date.today())
        share_decimals: Rounding applied on confirmation

    Returns:
        One TradeOutcome per targeted holding

    Raises:
        HoldingNotFoundError: If an explicit code is not tracked
        RecordValidationError: If the value cannot be parsed
    """
    today = today or date.today()
    amount, is_percent = parse_trade_value(value)
    if is_percent and kind is not RecordType.SELL:
        raise RecordValidationError("Percentages are only supported for sells")

    outcomes = []
    for holding in resolve_targets(store, target):
        code = holding.code
        before = replay_as_of(holding.records, day, holding.initial_position)

        trade_value = before.shares * amount / 100 if is_percent else amount
        if kind is RecordType.SELL:
            if before.shares <= 0 or trade_value <= 0:
                outcomes.append(TradeOutcome(code, STATUS_SKIPPED, "No shares held"))
                continue
            if trade_value > before.shares:
                outcomes.append(
                    TradeOutcome(
                        code,
                        STATUS_SKIPPED,
                        f"Insufficient shares (have {before.shares:.2f}, sell {trade_value:.2f})",
                    )
                )
                continue

        pending = PendingRecord(date=day, type=kind, value=trade_value)
        nav = nav_series.nav_on(code, day)

        if nav is not None and nav > 0:
            record = confirm_record(pending, nav, before.average_cost, share_decimals)
            outcome = TradeOutcome(code, STATUS_CONFIRMED, f"{kind.value} confirmed @ {nav:.4f}", record)
        elif day < today:
            outcomes.append(
                TradeOutcome(code, STATUS_FAILED, f"No NAV for {day}; not a trading day or data missing")
            )
            continue
        elif is_weekend(day):
            outcomes.append(TradeOutcome(code, STATUS_FAILED, f"{day} is a weekend"))
            continue
        else:
            record = pending
            outcome = TradeOutcome(code, STATUS_PENDING, f"{kind.value} queued for {day}", record)

        store.add_record(code, record, replace_same_day=True)
        outcomes.append(outcome)

    logger.info(
        f"Trade {kind.value} on {day} for '{target}': "
        f"{sum(o.status in (STATUS_CONFIRMED, STATUS_PENDING) for o in outcomes)}/{len(outcomes)} applied"
    )
    return outcomes
