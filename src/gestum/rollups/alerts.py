"""Stateless alert evaluation over inventory and payables snapshots.

Evaluators keep no state: dismissing or hiding an alert is up to the caller,
who re-fetches the snapshot and re-evaluates whenever it may have changed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable

from ..core.records import Expense, Product
from ..core.time import ensure_utc, format_utc_iso8601
from .filters import DEFAULT_DUE_SOON_DAYS, DEFAULT_LOW_STOCK_THRESHOLD, is_due_soon, is_low_stock, is_overdue

__all__ = [
    "DueSoonExpense",
    "LowStockItem",
    "OverdueExpense",
    "evaluate_due_soon_expenses",
    "evaluate_low_stock",
    "evaluate_overdue_expenses",
]


@dataclass(frozen=True)
class LowStockItem:
    name: str
    quantity: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "quantity": self.quantity}


@dataclass(frozen=True)
class OverdueExpense:
    id: str
    name: str
    amount: Decimal
    due_date: datetime
    days_overdue: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "amount": str(self.amount),
            "due_date": format_utc_iso8601(self.due_date),
            "days_overdue": self.days_overdue,
        }


@dataclass(frozen=True)
class DueSoonExpense:
    id: str
    name: str
    amount: Decimal
    due_date: datetime
    days_until_due: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "amount": str(self.amount),
            "due_date": format_utc_iso8601(self.due_date),
            "days_until_due": self.days_until_due,
        }


def evaluate_low_stock(
    products: Iterable[Product],
    threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> list[LowStockItem]:
    """List products at or below ``threshold``, in input order.

    Example
    -------
    >>> evaluate_low_stock([Product("1", "A", 5), Product("2", "B", 15)])
    [LowStockItem(name='A', quantity=5)]
    """
    return [
        LowStockItem(name=product.name, quantity=product.quantity)
        for product in products
        if is_low_stock(product, threshold)
    ]


def evaluate_overdue_expenses(expenses: Iterable[Expense], reference: datetime) -> list[OverdueExpense]:
    """List pending expenses whose due date passed before ``reference``, in input order."""
    reference = ensure_utc(reference)
    return [
        OverdueExpense(
            id=expense.id,
            name=expense.name,
            amount=expense.amount,
            due_date=expense.due_date,  # type: ignore[arg-type]
            days_overdue=(reference - expense.due_date).days,  # type: ignore[operator]
        )
        for expense in expenses
        if is_overdue(expense, reference)
    ]


def evaluate_due_soon_expenses(
    expenses: Iterable[Expense],
    reference: datetime,
    within_days: int = DEFAULT_DUE_SOON_DAYS,
) -> list[DueSoonExpense]:
    """List pending expenses falling due within ``within_days`` days of ``reference``, in input order.

    Parameters
    ----------
    expenses
        Expenses snapshot
    reference
        Instant the countdown starts from
    within_days
        Inclusive number of whole days ahead (default 5)

    Returns
    -------
    list[DueSoonExpense]
        Bills not yet overdue; ``days_until_due`` counts whole days left,
        so a bill due later today is 0
    """
    if within_days < 0:
        raise ValueError(f"within_days must be non-negative, got {within_days}")

    reference = ensure_utc(reference)
    return [
        DueSoonExpense(
            id=expense.id,
            name=expense.name,
            amount=expense.amount,
            due_date=expense.due_date,  # type: ignore[arg-type]
            days_until_due=(expense.due_date - reference).days,  # type: ignore[operator]
        )
        for expense in expenses
        if is_due_soon(expense, reference, within_days)
    ]
