"""
Custom exceptions for Fundfolio.

The replay and aggregation functions never raise on degenerate numbers
(zero shares, zero NAV, zero net amount). These errors are raised at the
edges: record validation, store lookups, JSON import and configuration.
"""


class FundfolioError(Exception):
    """Base exception for all Fundfolio errors."""

    pass


class RecordValidationError(FundfolioError):
    """Raised when a trading record has an invalid shape or sign."""

    pass


class HoldingNotFoundError(FundfolioError):
    """Raised when a fund code is not tracked in the store."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(
            f"Fund {code} is not tracked. "
            f"Run 'fundfolio fund add {code}' first."
        )


class DuplicateHoldingError(FundfolioError):
    """Raised when adding a fund code that is already tracked."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Fund {code} is already tracked")


class PositionImportError(FundfolioError):
    """
    Raised when a positions JSON document cannot be imported.

    The message is meant to be shown to the user as-is.
    """

    pass


class NavImportError(FundfolioError):
    """Raised when a NAV history document has an invalid code, date or value."""

    pass


class ConfigurationError(FundfolioError):
    """Raised when environment configuration is invalid."""

    pass
