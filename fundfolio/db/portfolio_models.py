"""
Portfolio database models for fundfolio.

Defines the schema for:
- HoldingRow: One tracked fund with its base position and tags
- TradingRecordRow: Pending or confirmed trading records, kept in insertion order
- NavPointRow: Published unit NAV per fund and date

Figures are stored as floats: the ledger engine works in floats with
epsilon thresholds, and round-tripping through Decimal would only add
conversions at every boundary.
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlmodel import Field, Relationship, SQLModel, UniqueConstraint


class HoldingRow(SQLModel, table=True):
    """
    Tracked fund with its base position.

    shares / average_cost / realized_profit are the position the records
    are replayed on top of, not the current state.
    """

    __tablename__ = "holdings"

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(index=True, unique=True, max_length=20)
    name: str = Field(default="", max_length=200)

    # Base position
    shares: float = Field(default=0.0)
    average_cost: float = Field(default=0.0)
    realized_profit: float = Field(default=0.0)

    # Comma-separated custom tags
    tag: str = Field(default="", max_length=500)

    # Timestamps
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    records: list["TradingRecordRow"] = Relationship(
        back_populates="holding",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "TradingRecordRow.position"},
    )


class TradingRecordRow(SQLModel, table=True):
    """
    One trading record.

    Pending rows carry `value`; confirmed rows carry nav, shares_change and
    amount (and realized_profit_change for sells and cash dividends).
    """

    __tablename__ = "trading_records"

    id: Optional[int] = Field(default=None, primary_key=True)
    holding_id: int = Field(foreign_key="holdings.id", index=True)
    position: int = Field(default=0)  # Insertion order within the holding

    record_date: date = Field(index=True)
    record_type: str = Field(max_length=20)  # buy, sell, dividend-cash, dividend-reinvest
    is_confirmed: bool = Field(default=False)

    # Pending payload
    value: Optional[float] = None

    # Confirmed payload
    nav: Optional[float] = None
    shares_change: Optional[float] = None
    amount: Optional[float] = None
    realized_profit_change: Optional[float] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    holding: Optional[HoldingRow] = Relationship(back_populates="records")


class NavPointRow(SQLModel, table=True):
    """Unit NAV of a fund on one trading day."""

    __tablename__ = "nav_points"
    __table_args__ = (
        UniqueConstraint("code", "nav_date", name="uq_nav_point_code_date"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(index=True, max_length=20)
    nav_date: date = Field(index=True)
    nav: float

    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
