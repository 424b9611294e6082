"""
Configuration management for fundfolio.

Centralizes all configuration from environment variables with sensible defaults.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """
    Application configuration loaded from environment variables.

    Optional:
        FUNDFOLIO_DB_PATH: Path to the SQLite record store
        FUNDFOLIO_SHARE_DECIMALS: Decimal places kept when confirming share counts
        FUNDFOLIO_LOG_LEVEL: Root log level for the CLI
        FUNDFOLIO_EXPORT_DIR: Default directory for JSON exports
    """

    # Storage paths
    db_path: Path = field(
        default_factory=lambda: Path(
            os.getenv("FUNDFOLIO_DB_PATH", "./data/fundfolio.db")
        )
    )
    export_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("FUNDFOLIO_EXPORT_DIR", "./data/exports")
        )
    )

    # ========================================================================
    # Ledger
    # Fund platforms store confirmed shares with 2 decimals
    # ========================================================================
    share_decimals: Optional[int] = field(
        default_factory=lambda: int(
            os.getenv("FUNDFOLIO_SHARE_DECIMALS", "2")
        )
    )

    log_level: str = field(
        default_factory=lambda: os.getenv("FUNDFOLIO_LOG_LEVEL", "WARNING").upper()
    )

    def __post_init__(self) -> None:
        """Convert string paths to Path objects if needed."""
        if isinstance(self.db_path, str):
            self.db_path = Path(self.db_path)
        if isinstance(self.export_dir, str):
            self.export_dir = Path(self.export_dir)

    def validate(self) -> None:
        """
        Validate configuration.

        Raises:
            ConfigurationError: If a setting is out of range.
        """
        from fundfolio.core.exceptions import ConfigurationError

        if self.share_decimals is not None and self.share_decimals < 0:
            raise ConfigurationError(
                f"FUNDFOLIO_SHARE_DECIMALS must be >= 0, got {self.share_decimals}"
            )
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid FUNDFOLIO_LOG_LEVEL: {self.log_level}. "
                f"Use one of {', '.join(LOG_LEVELS)}"
            )

    def ensure_directories(self) -> None:
        """Create data directories if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.export_dir.mkdir(parents=True, exist_ok=True)

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level, logging.WARNING)


# Global configuration instance
config = Config()
