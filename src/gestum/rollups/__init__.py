"""Time-windowed rollups: window resolution, filters, aggregators and alerts."""

from .aggregator import (
    AgentCount,
    CashFlow,
    DailySales,
    MetricsSnapshot,
    SalesReport,
    TagCount,
    TeamCount,
    TopProduct,
    compute_cash_flow,
    compute_cash_flow_sharded,
    compute_daily_sales,
    compute_sales_report,
    compute_support_metrics,
)
from .alerts import (
    DueSoonExpense,
    LowStockItem,
    OverdueExpense,
    evaluate_due_soon_expenses,
    evaluate_low_stock,
    evaluate_overdue_expenses,
)
from .filters import (
    DEFAULT_DUE_SOON_DAYS,
    DEFAULT_LOW_STOCK_THRESHOLD,
    in_window,
    is_cash_in,
    is_cash_out,
    is_due_soon,
    is_low_stock,
    is_overdue,
)
from .time_windows import (
    InvalidPeriod,
    Period,
    Window,
    compute_day_boundaries_utc,
    compute_month_boundaries_utc,
    parse_period,
    resolve_window,
    rolling_window,
)

__all__ = [
    # Time windows
    "InvalidPeriod",
    "Period",
    "Window",
    "compute_day_boundaries_utc",
    "compute_month_boundaries_utc",
    "parse_period",
    "resolve_window",
    "rolling_window",
    # Filters
    "DEFAULT_DUE_SOON_DAYS",
    "DEFAULT_LOW_STOCK_THRESHOLD",
    "in_window",
    "is_cash_in",
    "is_cash_out",
    "is_due_soon",
    "is_low_stock",
    "is_overdue",
    # Aggregation
    "AgentCount",
    "CashFlow",
    "DailySales",
    "MetricsSnapshot",
    "SalesReport",
    "TagCount",
    "TeamCount",
    "TopProduct",
    "compute_cash_flow",
    "compute_cash_flow_sharded",
    "compute_daily_sales",
    "compute_sales_report",
    "compute_support_metrics",
    # Alerts
    "DueSoonExpense",
    "LowStockItem",
    "OverdueExpense",
    "evaluate_due_soon_expenses",
    "evaluate_low_stock",
    "evaluate_overdue_expenses",
]
