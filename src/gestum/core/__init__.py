"""Core components of Gestum metrics: records, sources and time helpers."""

from .records import (
    Expense,
    ExpenseStatus,
    InvalidRecord,
    Product,
    Sale,
    SaleItem,
    SaleStatus,
    SupportConversation,
    Tag,
    Team,
)
from .source import Directory, LoadReport, RecordSource, SnapshotError, SnapshotRecordSource, StaticDirectory
from .time import (
    ensure_utc,
    format_utc_iso8601,
    get_current_utc,
    localize_utc_to_tz,
    parse_utc_iso8601,
    validate_timezone,
)

__all__ = [
    # Records
    "Expense",
    "ExpenseStatus",
    "InvalidRecord",
    "Product",
    "Sale",
    "SaleItem",
    "SaleStatus",
    "SupportConversation",
    "Tag",
    "Team",
    # Sources
    "Directory",
    "LoadReport",
    "RecordSource",
    "SnapshotError",
    "SnapshotRecordSource",
    "StaticDirectory",
    # Time
    "ensure_utc",
    "format_utc_iso8601",
    "get_current_utc",
    "localize_utc_to_tz",
    "parse_utc_iso8601",
    "validate_timezone",
]
