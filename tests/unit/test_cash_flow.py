"""Tests for windowed cash flow aggregation."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from gestum.core.records import Expense, ExpenseStatus, Sale, SaleStatus
from gestum.rollups.aggregator import CashFlow, compute_cash_flow, compute_cash_flow_sharded
from gestum.rollups.time_windows import compute_day_boundaries_utc, compute_month_boundaries_utc

DAY = compute_day_boundaries_utc(date(2024, 3, 10))
MONTH = compute_month_boundaries_utc(date(2024, 3, 10))


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_day_window_scenario():
    """Test sale just after midnight is excluded from the previous day."""
    sales = [
        Sale("1", utc(2024, 3, 10, 8, 0), Decimal("50"), SaleStatus.COMPLETED),
        Sale("2", utc(2024, 3, 10, 23, 59, 59, 999000), Decimal("30"), SaleStatus.COMPLETED),
        Sale("3", utc(2024, 3, 11, 0, 0, 0, 1000), Decimal("999"), SaleStatus.COMPLETED),
    ]

    flow = compute_cash_flow(sales, [], DAY)

    assert flow.cash_in == Decimal("80")
    assert flow.cash_out == Decimal("0")
    assert flow.balance == Decimal("80")


def test_cash_flow_filters_status(sales, expenses):
    flow = compute_cash_flow(sales, expenses, DAY)

    assert flow.cash_in == Decimal("80")  # pending and cancelled sales ignored
    assert flow.cash_out == Decimal("10.50")  # pending expense ignored
    assert flow.balance == Decimal("69.50")


def test_cash_flow_month(sales, expenses):
    flow = compute_cash_flow(sales, expenses, MONTH)

    assert flow.cash_in == Decimal("1079")
    assert flow.cash_out == Decimal("10.50")  # February expense is outside


def test_sale_at_window_end_included():
    sale = Sale("1", DAY.end, Decimal("5"), SaleStatus.COMPLETED)
    late = Sale("2", DAY.end + timedelta(microseconds=1), Decimal("7"), SaleStatus.COMPLETED)

    assert compute_cash_flow([sale, late], [], DAY).cash_in == Decimal("5")


def test_empty_inputs_give_zero():
    flow = compute_cash_flow([], [], DAY)

    assert flow == CashFlow()
    assert flow.cash_in == Decimal("0")
    assert flow.balance == Decimal("0")


def test_negative_balance():
    expenses = [Expense("1", utc(2024, 3, 10, 9, 0), Decimal("100"), ExpenseStatus.PAID)]

    assert compute_cash_flow([], expenses, DAY).balance == Decimal("-100")


def test_decimal_sums_are_exact():
    sales = [Sale(str(i), utc(2024, 3, 10, 12, 0), Decimal("0.10"), SaleStatus.COMPLETED) for i in range(3)]

    assert compute_cash_flow(sales, [], DAY).cash_in == Decimal("0.30")


def test_cash_flow_is_deterministic(sales, expenses):
    assert compute_cash_flow(sales, expenses, MONTH) == compute_cash_flow(sales, expenses, MONTH)


def test_cash_flow_is_order_independent(sales, expenses):
    assert compute_cash_flow(sales, expenses, MONTH) == compute_cash_flow(sales[::-1], expenses[::-1], MONTH)


def test_cash_flow_accepts_generators(sales, expenses):
    flow = compute_cash_flow((s for s in sales), (e for e in expenses), DAY)

    assert flow.cash_in == Decimal("80")


def test_sharded_equals_whole(sales, expenses):
    shards = [(sales[:2], expenses[:1]), (sales[2:], expenses[1:]), ([], [])]

    assert compute_cash_flow_sharded(shards, MONTH) == compute_cash_flow(sales, expenses, MONTH)


def test_cash_flow_addition():
    total = CashFlow(Decimal("10"), Decimal("3")) + CashFlow(Decimal("5"), Decimal("1"))

    assert total == CashFlow(Decimal("15"), Decimal("4"))
    assert total.balance == Decimal("11")


def test_cash_flow_to_dict():
    assert CashFlow(Decimal("80"), Decimal("10.50")).to_dict() == {
        "cash_in": "80",
        "cash_out": "10.50",
        "balance": "69.50",
    }
