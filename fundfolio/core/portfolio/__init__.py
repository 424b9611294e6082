"""Position ledger and profit-attribution engine."""

from fundfolio.core.portfolio.attribution import (
    Attribution,
    HistorySummary,
    attribute,
    attribute_history,
    safe_percent,
    safe_ratio,
    summarize_history,
)
from fundfolio.core.portfolio.ledger import (
    LedgerState,
    apply_record,
    records_on,
    replay_as_of,
    replay_through,
)
from fundfolio.core.portfolio.records import (
    ConfirmedRecord,
    Holding,
    PendingRecord,
    Position,
    RecordType,
    TradingRecord,
    confirm_record,
    sort_records,
    validate_record,
)
from fundfolio.core.portfolio.snapshots import (
    PortfolioSnapshot,
    SnapshotSummary,
    build_baseline_snapshot,
    build_snapshot,
    build_snapshot_series,
    find_snapshot,
    summarize_snapshots,
)
from fundfolio.core.portfolio.store import PortfolioStore
from fundfolio.core.portfolio.tags import (
    PortfolioTotals,
    RecentTrend,
    TagAnalysisData,
    TagRollup,
    aggregate_by_tag,
    collect_tags,
    filter_by_tag,
    sort_tag_rows,
)
from fundfolio.core.portfolio.valuation import NavContext, NavPoint, NavSeries, value_holding

__all__ = [
    # Records
    "RecordType",
    "PendingRecord",
    "ConfirmedRecord",
    "TradingRecord",
    "Position",
    "Holding",
    "confirm_record",
    "validate_record",
    "sort_records",
    "PortfolioStore",
    # Ledger replay
    "LedgerState",
    "apply_record",
    "replay_as_of",
    "replay_through",
    "records_on",
    # Attribution
    "Attribution",
    "HistorySummary",
    "attribute",
    "attribute_history",
    "summarize_history",
    "safe_ratio",
    "safe_percent",
    # Valuation
    "NavPoint",
    "NavContext",
    "NavSeries",
    "value_holding",
    # Snapshots
    "PortfolioSnapshot",
    "SnapshotSummary",
    "build_snapshot",
    "build_baseline_snapshot",
    "build_snapshot_series",
    "summarize_snapshots",
    "find_snapshot",
    # Tags
    "TagAnalysisData",
    "PortfolioTotals",
    "RecentTrend",
    "TagRollup",
    "aggregate_by_tag",
    "sort_tag_rows",
    "collect_tags",
    "filter_by_tag",
]
