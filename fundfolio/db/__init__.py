"""
Database module for fundfolio.

Provides SQLModel definitions and connection management for holdings,
trading records and NAV history.
"""

from fundfolio.db.database import get_engine, get_session, init_db, reset_engine
from fundfolio.db.portfolio_models import HoldingRow, NavPointRow, TradingRecordRow

__all__ = [
    # Models
    "HoldingRow",
    "TradingRecordRow",
    "NavPointRow",
    # Database
    "get_engine",
    "get_session",
    "init_db",
    "reset_engine",
]
