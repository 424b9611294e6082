"""
Durable storage for the portfolio.

PortfolioManager moves holdings, trading records and NAV history between
the SQLite database and the in-memory PortfolioStore / NavSeries the
engine computes on. Saving a holding replaces its row and all of its
record rows inside a single session, so a failed write leaves the previous
sequence intact.
"""

import logging
import math
from datetime import date, datetime, timezone
from typing import Iterable, Mapping, Optional, Union

from sqlalchemy import func
from sqlmodel import select

from fundfolio.core.exceptions import HoldingNotFoundError, NavImportError
from fundfolio.core.portfolio.constants import FUND_CODE_PATTERN
from fundfolio.core.portfolio.records import (
    ConfirmedRecord,
    Holding,
    PendingRecord,
    Position,
    RecordType,
    TradingRecord,
)
from fundfolio.core.portfolio.store import PortfolioStore
from fundfolio.core.portfolio.valuation import NavPoint, NavSeries
from fundfolio.db.database import get_session, init_db
from fundfolio.db.portfolio_models import HoldingRow, NavPointRow, TradingRecordRow

logger = logging.getLogger(__name__)


def _to_date(value: Union[date, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _upsert_nav(session, code: str, day: date, nav: float) -> None:
    row = session.exec(
        select(NavPointRow).where(NavPointRow.code == code, NavPointRow.nav_date == day)
    ).first()
    if row is None:
        session.add(NavPointRow(code=code, nav_date=day, nav=nav))
    else:
        row.nav = nav
        row.fetched_at = datetime.now(timezone.utc)


def _validate_nav_payload(navs: Mapping) -> list[tuple[str, date, float]]:
    """Normalized (code, date, nav) triples, or NavImportError on the first bad entry."""
    if not isinstance(navs, Mapping):
        raise NavImportError('Expected an object of {"CODE": {"YYYY-MM-DD": nav}}')

    points = []
    for raw_code, series in navs.items():
        code = str(raw_code).strip().upper()
        if not FUND_CODE_PATTERN.match(code):
            raise NavImportError(f"Invalid fund code: '{raw_code}'")
        if not isinstance(series, Mapping):
            raise NavImportError(f"{code}: expected an object of dates to NAVs")

        for raw_day, nav in series.items():
            try:
                day = _to_date(raw_day)
            except ValueError:
                raise NavImportError(f"{code}: invalid date '{raw_day}'. Use YYYY-MM-DD") from None
            if isinstance(nav, bool) or not isinstance(nav, (int, float)):
                raise NavImportError(f"{code} {day}: NAV must be a number, got {nav!r}")
            if not math.isfinite(nav) or nav <= 0:
                raise NavImportError(f"{code} {day}: NAV must be positive, got {nav}")
            points.append((code, day, float(nav)))
    return points


def _record_to_row(record: TradingRecord, holding_id: int, position: int) -> TradingRecordRow:
    row = TradingRecordRow(
        holding_id=holding_id,
        position=position,
        record_date=record.date,
        record_type=record.type.value,
        is_confirmed=isinstance(record, ConfirmedRecord),
    )
    if isinstance(record, PendingRecord):
        row.value = record.value
    else:
        row.nav = record.nav
        row.shares_change = record.shares_change
        row.amount = record.amount
        row.realized_profit_change = record.realized_profit_change
    return row


def _row_to_record(row: TradingRecordRow) -> TradingRecord:
    kind = RecordType(row.record_type)
    if row.is_confirmed:
        return ConfirmedRecord(
            date=row.record_date,
            type=kind,
            nav=row.nav,
            shares_change=row.shares_change,
            amount=row.amount,
            realized_profit_change=row.realized_profit_change,
        )
    return PendingRecord(date=row.record_date, type=kind, value=row.value)


class PortfolioManager:
    """
    Loads and saves holdings and NAV history.

    The manager holds no state of its own; every call opens its own session.
    """

    def __init__(self) -> None:
        init_db()

    def load_store(self) -> PortfolioStore:
        """Read every holding with its records into a fresh store."""
        with get_session() as session:
            rows = session.exec(select(HoldingRow).order_by(HoldingRow.id)).all()
            holdings = []
            for row in rows:
                record_rows = session.exec(
                    select(TradingRecordRow)
                    .where(TradingRecordRow.holding_id == row.id)
                    .order_by(TradingRecordRow.position)
                ).all()
                holdings.append(
                    Holding(
                        code=row.code,
                        name=row.name,
                        initial_position=Position(
                            shares=row.shares,
                            average_cost=row.average_cost,
                            realized_profit=row.realized_profit,
                        ),
                        tag=row.tag,
                        records=tuple(_row_to_record(r) for r in record_rows),
                    )
                )
        logger.debug(f"Loaded {len(holdings)} holdings from database")
        return PortfolioStore(holdings)

    def row_counts(self) -> dict[str, int]:
        """Stored funds, confirmed and pending records, and NAV points, counted in SQL."""
        with get_session() as session:
            funds = session.exec(select(func.count(HoldingRow.id))).one()
            by_status = dict(
                session.exec(
                    select(TradingRecordRow.is_confirmed, func.count(TradingRecordRow.id)).group_by(
                        TradingRecordRow.is_confirmed
                    )
                ).all()
            )
            nav_points = session.exec(select(func.count(NavPointRow.id))).one()
        return {
            "funds": funds,
            "confirmed": by_status.get(True, 0),
            "pending": by_status.get(False, 0),
            "nav_points": nav_points,
        }

    def save_holding(self, holding: Holding) -> None:
        """
        Insert or replace a holding and its full record sequence.
        """
        now_utc = datetime.now(timezone.utc)
        with get_session() as session:
            row = session.exec(select(HoldingRow).where(HoldingRow.code == holding.code)).first()
            if row is None:
                row = HoldingRow(code=holding.code)
                session.add(row)
            row.name = holding.name
            row.shares = holding.initial_position.shares
            row.average_cost = holding.initial_position.average_cost
            row.realized_profit = holding.initial_position.realized_profit
            row.tag = holding.tag
            row.updated_at = now_utc
            session.flush()  # Get holding ID

            existing = session.exec(
                select(TradingRecordRow).where(TradingRecordRow.holding_id == row.id)
            ).all()
            for record_row in existing:
                session.delete(record_row)
            session.flush()

            for position, record in enumerate(holding.records):
                session.add(_record_to_row(record, row.id, position))
        logger.info(f"Saved holding {holding.code} with {len(holding.records)} records")

    def delete_holding(self, code: str) -> None:
        """
        Raises:
            HoldingNotFoundError: If the code is not stored
        """
        with get_session() as session:
            row = session.exec(select(HoldingRow).where(HoldingRow.code == code)).first()
            if row is None:
                raise HoldingNotFoundError(code)
            for record_row in session.exec(
                select(TradingRecordRow).where(TradingRecordRow.holding_id == row.id)
            ).all():
                session.delete(record_row)
            session.delete(row)
        logger.info(f"Deleted holding {code}")

    def sync_store(self, store: PortfolioStore) -> None:
        """Make the database mirror the store: save every holding, drop the rest."""
        keep = {h.code for h in store.holdings()}
        with get_session() as session:
            stored = set(session.exec(select(HoldingRow.code)).all())
        for code in sorted(stored - keep):
            self.delete_holding(code)
        for holding in store.holdings():
            self.save_holding(holding)

    def record_nav(self, code: str, day: Union[date, str], nav: float) -> None:
        """
        Store (or overwrite) a fund's NAV for one date.

        Raises:
            ValueError: If nav is not positive
        """
        if nav is None or nav <= 0:
            raise ValueError(f"NAV must be positive, got {nav}")
        day = _to_date(day)
        with get_session() as session:
            _upsert_nav(session, code, day, float(nav))
        logger.debug(f"Recorded NAV {nav} for {code} on {day}")

    def import_navs(self, navs: Mapping[str, Mapping[Union[date, str], float]]) -> int:
        """
        Store many NAV points at once: {code: {date: nav}}.

        The whole payload is checked before anything is written, and every
        point is written in one session, so a bad point leaves the stored
        history untouched.

        Returns:
            Number of points written

        Raises:
            NavImportError: If any code, date or NAV is invalid
        """
        points = _validate_nav_payload(navs)
        with get_session() as session:
            for code, day, nav in points:
                _upsert_nav(session, code, day, nav)
        logger.info(f"Imported {len(points)} NAV points for {len(navs)} funds")
        return len(points)

    def load_nav_series(self, codes: Optional[Iterable[str]] = None) -> NavSeries:
        """NAV history for the given codes (all codes if None)."""
        with get_session() as session:
            query = select(NavPointRow).order_by(NavPointRow.code, NavPointRow.nav_date)
            if codes is not None:
                query = query.where(NavPointRow.code.in_(list(codes)))
            rows = session.exec(query).all()
            history: dict[str, list[NavPoint]] = {}
            for row in rows:
                history.setdefault(row.code, []).append(NavPoint(date=row.nav_date, nav=row.nav))
        return NavSeries(history)
