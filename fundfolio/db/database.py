"""
Database connection management for fundfolio.

Provides SQLite connection with context managers for session handling.
Follows singleton pattern for the database engine.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Generator

from sqlmodel import Session, SQLModel, create_engine

from fundfolio.config import config

logger = logging.getLogger(__name__)

# Global engine (singleton)
_engine = None
_engine_lock = threading.Lock()


def get_engine():
    """
    Get or create database engine (singleton pattern).

    Thread-safe initialization ensures only one engine is created
    across the entire application.

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine

    if _engine is None:
        with _engine_lock:
            # Double-check locking pattern
            if _engine is None:
                db_path = config.db_path
                db_path.parent.mkdir(parents=True, exist_ok=True)

                _engine = create_engine(
                    f"sqlite:///{db_path}",
                    echo=False,
                    connect_args={"check_same_thread": False},
                )
                logger.info(f"Database engine initialized: {db_path}")

    return _engine


def init_db() -> None:
    """
    Initialize database tables.

    Creates all tables defined in the models if they don't exist.
    Safe to call multiple times.
    """
    # Import models to ensure they're registered with SQLModel metadata
    from fundfolio.db.portfolio_models import (  # noqa: F401
        HoldingRow,
        NavPointRow,
        TradingRecordRow,
    )

    engine = get_engine()
    SQLModel.metadata.create_all(engine)
    logger.info("Database tables initialized")


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Get database session with automatic cleanup.

    Usage:
        with get_session() as session:
            session.add(HoldingRow(code="161725"))
            # Commits automatically on success

    Yields:
        SQLModel Session instance.

    Notes:
        - Automatically commits on successful exit
        - Rolls back on exception
        - Always closes the session
    """
    engine = get_engine()
    session = Session(engine)

    try:
        yield session
        session.commit()
    except Exception as e:
        logger.error(
            "Database transaction failed, rolling back: %s",
            str(e),
            exc_info=True,
        )
        session.rollback()
        raise
    finally:
        session.close()


def reset_engine() -> None:
    """
    Reset the global engine instance.

    Primarily useful for testing. In production, the engine should
    persist for the lifetime of the application.
    """
    global _engine

    with _engine_lock:
        if _engine is not None:
            _engine.dispose()
            _engine = None
            logger.info("Database engine reset")
