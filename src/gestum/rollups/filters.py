"""Record predicates used by the aggregators.

Each predicate is pure and O(1) per record: a date-in-window test combined
with a status test for the record kind.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from ..core.records import Expense, ExpenseStatus, Product, Sale, SaleStatus
from ..core.time import ensure_utc
from .time_windows import Window

__all__ = [
    "DEFAULT_DUE_SOON_DAYS",
    "DEFAULT_LOW_STOCK_THRESHOLD",
    "in_window",
    "is_cash_in",
    "is_cash_out",
    "is_due_soon",
    "is_low_stock",
    "is_overdue",
]

DEFAULT_LOW_STOCK_THRESHOLD = 10
DEFAULT_DUE_SOON_DAYS = 5


def in_window(timestamp: datetime, window: Window) -> bool:
    """Check if ``timestamp`` falls within ``window`` (both bounds inclusive)."""
    return window.start <= ensure_utc(timestamp) <= window.end


def is_cash_in(sale: Sale, window: Window) -> bool:
    """A completed sale dated inside the window."""
    return sale.status is SaleStatus.COMPLETED and in_window(sale.date, window)


def is_cash_out(expense: Expense, window: Window) -> bool:
    """A paid expense created inside the window."""
    return expense.status is ExpenseStatus.PAID and in_window(expense.created_at, window)


def is_low_stock(product: Product, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> bool:
    return product.quantity <= threshold


def is_overdue(expense: Expense, reference: datetime) -> bool:
    """A pending expense whose due date has passed at ``reference``."""
    return (
        expense.status is ExpenseStatus.PENDING
        and expense.due_date is not None
        and expense.due_date < ensure_utc(reference)
    )


def is_due_soon(expense: Expense, reference: datetime, within_days: int = DEFAULT_DUE_SOON_DAYS) -> bool:
    """A pending expense not yet overdue and due within ``within_days`` whole days of ``reference``."""
    if expense.status is not ExpenseStatus.PENDING or expense.due_date is None:
        return False
    remaining = expense.due_date - ensure_utc(reference)
    return remaining >= timedelta(0) and remaining.days <= within_days
