"""
In-memory trading record store.

PortfolioStore owns the holdings and their record sequences. Holdings are
immutable values: every mutation builds a new record tuple and swaps the
holding in a single assignment under the store lock, then bumps `version`.
Readers therefore always see either the old or the new sequence, never a
half-edited one.

Derived views (snapshot series, tag analysis) are memoized on
(version, NAV fingerprint), so they recompute only after a mutation or a
NAV change.
"""

import logging
import threading
from dataclasses import replace
from datetime import date
from typing import Iterable, Mapping, Optional

from fundfolio.core.exceptions import (
    DuplicateHoldingError,
    HoldingNotFoundError,
    RecordValidationError,
)
from fundfolio.core.portfolio.ledger import replay_as_of
from fundfolio.core.portfolio.records import (
    Holding,
    PendingRecord,
    Position,
    TradingRecord,
    confirm_record,
    validate_record,
)
from fundfolio.core.portfolio.snapshots import PortfolioSnapshot, build_snapshot_series
from fundfolio.core.portfolio.tags import RecentTrend, TagRollup, aggregate_by_tag
from fundfolio.core.portfolio.valuation import NavContext, NavSeries

logger = logging.getLogger(__name__)


class PortfolioStore:
    """Versioned collection of holdings keyed by fund code."""

    def __init__(self, holdings: Optional[Iterable[Holding]] = None):
        self._lock = threading.RLock()
        self._holdings: dict[str, Holding] = {}
        self._version = 0
        self._cache: dict[tuple, object] = {}
        for holding in holdings or []:
            self._holdings[holding.code] = holding

    @property
    def version(self) -> int:
        return self._version

    def _bump(self) -> None:
        self._version += 1
        self._cache.clear()

    def __contains__(self, code: str) -> bool:
        return code in self._holdings

    def __len__(self) -> int:
        return len(self._holdings)

    def holdings(self) -> list[Holding]:
        """Holdings in insertion order."""
        return list(self._holdings.values())

    def get(self, code: str) -> Holding:
        """
        Raises:
            HoldingNotFoundError: If the code is not tracked
        """
        try:
            return self._holdings[code]
        except KeyError:
            raise HoldingNotFoundError(code) from None

    def add_holding(self, holding: Holding) -> Holding:
        """
        Track a new fund.

        Raises:
            DuplicateHoldingError: If the code is already tracked
        """
        for record in holding.records:
            validate_record(record)
        with self._lock:
            if holding.code in self._holdings:
                raise DuplicateHoldingError(holding.code)
            self._holdings[holding.code] = holding
            self._bump()
        logger.info(f"Added holding {holding.code}")
        return holding

    def remove_holding(self, code: str) -> Holding:
        with self._lock:
            holding = self.get(code)
            del self._holdings[code]
            self._bump()
        logger.info(f"Removed holding {code}")
        return holding

    def replace_all(self, holdings: Iterable[Holding]) -> None:
        """Swap the whole portfolio (used by JSON import)."""
        holdings = list(holdings)
        for holding in holdings:
            for record in holding.records:
                validate_record(record)
        with self._lock:
            self._holdings = {h.code: h for h in holdings}
            self._bump()
        logger.info(f"Replaced portfolio with {len(holdings)} holdings")

    def _swap(self, holding: Holding) -> Holding:
        self._holdings[holding.code] = holding
        self._bump()
        return holding

    def update_position(
        self,
        code: str,
        position: Optional[Position] = None,
        tag: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Holding:
        """
        Edit a holding's base position, tag or name.

        Changing shares or average cost discards the holding's records: the
        new position becomes the starting point. Changing only realized
        profit, tag or name keeps them.
        """
        with self._lock:
            holding = self.get(code)
            changes = {}
            if tag is not None:
                changes["tag"] = tag
            if name is not None:
                changes["name"] = name
            if position is not None:
                current = holding.initial_position
                changes["initial_position"] = position
                if (
                    position.shares != current.shares
                    or position.average_cost != current.average_cost
                ):
                    changes["records"] = ()
                    logger.info(f"Position of {code} changed; cleared {len(holding.records)} records")
            return self._swap(replace(holding, **changes))

    def add_record(
        self,
        code: str,
        record: TradingRecord,
        replace_same_day: bool = True,
    ) -> Holding:
        """
        Append a record to a holding.

        With replace_same_day, any existing record on the same date is
        dropped first, so re-entering a day's trade corrects it.

        Raises:
            HoldingNotFoundError: If the code is not tracked
            RecordValidationError: If the record is malformed
        """
        validate_record(record)
        with self._lock:
            holding = self.get(code)
            records = holding.records
            if replace_same_day:
                records = tuple(r for r in records if r.date != record.date)
            updated = self._swap(replace(holding, records=records + (record,)))
        logger.info(f"Recorded {record.type.value} for {code} on {record.date}")
        return updated

    def delete_record(self, code: str, day: date, index: Optional[int] = None) -> int:
        """
        Delete the records of a holding on `day`.

        Args:
            code: Fund code
            day: Record date
            index: Position among that day's records (0-based); None deletes all

        Returns:
            Number of records deleted

        Raises:
            RecordValidationError: If nothing matches
        """
        with self._lock:
            holding = self.get(code)
            same_day = [i for i, r in enumerate(holding.records) if r.date == day]
            if index is not None:
                if index < 0 or index >= len(same_day):
                    raise RecordValidationError(
                        f"No record #{index} for {code} on {day} ({len(same_day)} on that date)"
                    )
                same_day = [same_day[index]]
            if not same_day:
                raise RecordValidationError(f"No record for {code} on {day}")
            drop = set(same_day)
            records = tuple(r for i, r in enumerate(holding.records) if i not in drop)
            self._swap(replace(holding, records=records))
        logger.info(f"Deleted {len(drop)} record(s) for {code} on {day}")
        return len(drop)

    def pending_count(self) -> int:
        return sum(len(h.pending_records) for h in self._holdings.values())

    def confirm_pending(self, nav_series: NavSeries, share_decimals: Optional[int] = None) -> int:
        """
        Confirm every pending record whose date now has a published NAV.

        Each record is confirmed against the average cost replayed just
        before its date. Records without a NAV stay pending.

        Returns:
            Number of records confirmed
        """
        confirmed_total = 0
        with self._lock:
            for code, holding in list(self._holdings.items()):
                records = list(holding.records)
                changed = 0
                for i in sorted(range(len(records)), key=lambda k: records[k].date):
                    record = records[i]
                    if not isinstance(record, PendingRecord):
                        continue
                    nav = nav_series.nav_on(code, record.date)
                    if nav is None or nav <= 0:
                        continue
                    before = replay_as_of(records, record.date, holding.initial_position)
                    records[i] = confirm_record(record, nav, before.average_cost, share_decimals)
                    changed += 1
                if changed:
                    self._swap(replace(holding, records=tuple(records)))
                    logger.info(f"Confirmed {changed} pending record(s) for {code}")
                    confirmed_total += changed
        return confirmed_total

    def snapshots(self, navs: NavContext) -> list[PortfolioSnapshot]:
        """Snapshot series (newest first, baseline last), memoized."""
        key = ("snapshots", self._version, navs.fingerprint)
        with self._lock:
            if key not in self._cache:
                self._cache[key] = build_snapshot_series(self.holdings(), navs)
            return self._cache[key]

    def tag_analysis(
        self,
        navs: NavContext,
        recent: Optional[Mapping[str, RecentTrend]] = None,
    ) -> TagRollup:
        """Tag rollup of the current holdings, memoized."""
        recent_key = frozenset((recent or {}).items())
        key = ("tags", self._version, navs.fingerprint, recent_key)
        with self._lock:
            if key not in self._cache:
                self._cache[key] = aggregate_by_tag(self.holdings(), navs, recent)
            return self._cache[key]
