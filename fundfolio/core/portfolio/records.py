"""
Trading record and holding types.

A trading record is either pending (entered by the user, waiting for the
fund's NAV on that date) or confirmed (NAV fixed, share and cash deltas
known). The two shapes are distinct dataclasses so that code handling one
never has to guess which optional fields are present:

- PendingRecord: date, type, value
- ConfirmedRecord: date, type, nav, shares_change, amount, realized_profit_change

A pending record is confirmed exactly once via confirm_record(); confirmed
records are immutable and only ever replaced or deleted as a whole.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable, Optional, Union

from fundfolio.core.exceptions import RecordValidationError
from fundfolio.core.portfolio.constants import CASH_DECIMALS

logger = logging.getLogger(__name__)


class RecordType(str, Enum):
    """Transaction type of a trading record."""

    BUY = "buy"
    SELL = "sell"
    DIVIDEND_CASH = "dividend-cash"
    DIVIDEND_REINVEST = "dividend-reinvest"

    @property
    def value_is_cash(self) -> bool:
        """Whether a pending record of this type carries a cash amount (vs a share count)."""
        return self in (RecordType.BUY, RecordType.DIVIDEND_CASH)


@dataclass(frozen=True)
class PendingRecord:
    """
    Trade entered before its NAV is known.

    value is a cash amount for buy / dividend-cash and a share count for
    sell / dividend-reinvest.
    """

    date: date
    type: RecordType
    value: float

    @property
    def is_confirmed(self) -> bool:
        return False


@dataclass(frozen=True)
class ConfirmedRecord:
    """
    Trade executed at a known NAV.

    Sign conventions:
        shares_change: buy/reinvest > 0, sell < 0, dividend-cash = 0
        amount: buy > 0, sell < 0, dividends = 0
        realized_profit_change: set for sell and dividend-cash
    """

    date: date
    type: RecordType
    nav: float
    shares_change: float
    amount: float
    realized_profit_change: Optional[float] = None

    @property
    def is_confirmed(self) -> bool:
        return True


TradingRecord = Union[PendingRecord, ConfirmedRecord]


@dataclass(frozen=True)
class Position:
    """Seed position of a holding before any tracked record is applied."""

    shares: float = 0.0
    average_cost: float = 0.0
    realized_profit: float = 0.0

    @property
    def total_cost(self) -> float:
        return self.shares * self.average_cost


@dataclass(frozen=True)
class Holding:
    """
    One tracked fund.

    initial_position is the base the records are replayed on top of (the
    baseline snapshot seed). Current shares and cost are always derived by
    replay, never stored.
    """

    code: str
    name: str = ""
    initial_position: Position = field(default_factory=Position)
    tag: str = ""
    records: tuple[TradingRecord, ...] = ()

    @property
    def tags(self) -> list[str]:
        """Comma-separated tag string as a de-duplicated, ordered list."""
        return parse_tags(self.tag)

    @property
    def confirmed_records(self) -> list[ConfirmedRecord]:
        return [r for r in self.records if isinstance(r, ConfirmedRecord)]

    @property
    def pending_records(self) -> list[PendingRecord]:
        return [r for r in self.records if isinstance(r, PendingRecord)]

    def current_state(self):
        """Replay every confirmed record on top of the initial position."""
        from fundfolio.core.portfolio.ledger import replay_as_of

        return replay_as_of(self.records, None, self.initial_position)


def parse_tags(tag: Optional[str]) -> list[str]:
    """Split a comma-joined tag string, trimming blanks and duplicates."""
    if not tag:
        return []
    seen: list[str] = []
    for part in tag.split(","):
        part = part.strip()
        if part and part not in seen:
            seen.append(part)
    return seen


def sort_records(records: Iterable[TradingRecord]) -> list[TradingRecord]:
    """Chronological order; records on the same date keep insertion order."""
    return sorted(records, key=lambda r: r.date)


def confirm_record(
    pending: PendingRecord,
    nav: float,
    average_cost_before: float,
    share_decimals: Optional[int] = None,
) -> ConfirmedRecord:
    """
    Turn a pending record into a confirmed one at the given NAV.

    Args:
        pending: The pending record
        nav: Execution NAV for the record's date
        average_cost_before: Holding's average cost just before the record,
            used to book realized profit on sells
        share_decimals: Round share counts to this many places (and cash to
            cents). None keeps full precision.

    Returns:
        The confirmed record

    Raises:
        RecordValidationError: If nav is not positive
    """
    if nav is None or nav <= 0:
        raise RecordValidationError(
            f"Cannot confirm {pending.type.value} on {pending.date}: NAV must be positive, got {nav}"
        )

    def shares(value: float) -> float:
        return round(value, share_decimals) if share_decimals is not None else value

    def cash(value: float) -> float:
        return round(value, CASH_DECIMALS) if share_decimals is not None else value

    value = pending.value
    if pending.type is RecordType.BUY:
        confirmed = ConfirmedRecord(
            date=pending.date,
            type=pending.type,
            nav=nav,
            shares_change=shares(value / nav),
            amount=value,
        )
    elif pending.type is RecordType.SELL:
        confirmed = ConfirmedRecord(
            date=pending.date,
            type=pending.type,
            nav=nav,
            shares_change=-value,
            amount=cash(-(value * nav)),
            realized_profit_change=cash((nav - average_cost_before) * value),
        )
    elif pending.type is RecordType.DIVIDEND_CASH:
        confirmed = ConfirmedRecord(
            date=pending.date,
            type=pending.type,
            nav=nav,
            shares_change=0.0,
            amount=0.0,
            realized_profit_change=value,
        )
    else:
        confirmed = ConfirmedRecord(
            date=pending.date,
            type=pending.type,
            nav=nav,
            shares_change=shares(value),
            amount=0.0,
        )

    logger.debug(f"Confirmed {pending.type.value} on {pending.date} at NAV {nav}")
    return confirmed


def validate_record(record: TradingRecord) -> TradingRecord:
    """
    Check a record's shape and sign conventions before it enters the store.

    The replay engine assumes validated input; this is the gate.

    Raises:
        RecordValidationError: On any violation
    """
    if not isinstance(record.date, date):
        raise RecordValidationError(f"Record date must be a date, got {record.date!r}")
    if not isinstance(record.type, RecordType):
        raise RecordValidationError(f"Unknown record type: {record.type!r}")

    if isinstance(record, PendingRecord):
        if record.value is None or record.value <= 0:
            raise RecordValidationError(
                f"Pending {record.type.value} on {record.date} must have a positive value"
            )
        return record

    if record.nav is None or record.nav <= 0:
        raise RecordValidationError(
            f"Confirmed {record.type.value} on {record.date} must have a positive NAV"
        )

    kind = record.type
    if kind is RecordType.BUY:
        if record.shares_change <= 0 or record.amount <= 0:
            raise RecordValidationError(
                f"Buy on {record.date} must have positive shares_change and amount"
            )
    elif kind is RecordType.SELL:
        if record.shares_change >= 0 or record.amount > 0:
            raise RecordValidationError(
                f"Sell on {record.date} must have negative shares_change and non-positive amount"
            )
    elif kind is RecordType.DIVIDEND_CASH:
        if record.shares_change != 0 or record.amount != 0:
            raise RecordValidationError(
                f"Cash dividend on {record.date} must not change shares or amount"
            )
        if record.realized_profit_change is None:
            raise RecordValidationError(
                f"Cash dividend on {record.date} must set realized_profit_change"
            )
    else:
        if record.shares_change <= 0 or record.amount != 0:
            raise RecordValidationError(
                f"Reinvested dividend on {record.date} must add shares at zero amount"
            )

    return record
