"""Tests for daily sales series and sales reports."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from gestum.core.records import Product, Sale, SaleItem, SaleStatus
from gestum.rollups.aggregator import DailySales, TopProduct, compute_daily_sales, compute_sales_report

REFERENCE = datetime(2024, 3, 11, 12, 0, tzinfo=timezone.utc)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestDailySales:
    """Test per-day completed sales series."""

    def test_daily_series_oldest_first(self, sales):
        series = compute_daily_sales(sales, REFERENCE, days=3)

        assert series == [
            DailySales(date(2024, 3, 9), Decimal("0"), 0),
            DailySales(date(2024, 3, 10), Decimal("80"), 2),
            DailySales(date(2024, 3, 11), Decimal("999"), 1),
        ]

    def test_daily_series_default_week(self, sales):
        series = compute_daily_sales(sales, REFERENCE)

        assert len(series) == 7
        assert series[0].day == date(2024, 3, 5)
        assert series[-1].day == date(2024, 3, 11)

    def test_daily_series_business_timezone(self):
        """Test sales are bucketed by local calendar day."""
        # 01:00 UTC on the 11th is still the 10th in Sao Paulo
        sales = [Sale("1", utc(2024, 3, 11, 1, 0), Decimal("20"), SaleStatus.COMPLETED)]

        series = compute_daily_sales(sales, REFERENCE, days=2, timezone_str="America/Sao_Paulo")

        assert series[0] == DailySales(date(2024, 3, 10), Decimal("20"), 1)
        assert series[1].count == 0

    def test_daily_series_rejects_non_positive_days(self, sales):
        with pytest.raises(ValueError):
            compute_daily_sales(sales, REFERENCE, days=0)

    def test_daily_to_dict(self):
        assert DailySales(date(2024, 3, 10), Decimal("80"), 2).to_dict() == {
            "day": "2024-03-10",
            "total": "80",
            "count": 2,
        }


class TestSalesReport:
    """Test last-N-days sales report."""

    def test_report_totals(self, sales, products):
        report = compute_sales_report(sales, products, 7, REFERENCE)

        assert report.total == Decimal("1079")
        assert report.sales_count == 3
        assert report.average_per_day == Decimal("154.14")
        assert report.window.end == REFERENCE
        assert report.window.start == REFERENCE - timedelta(days=7)

    def test_top_product_ties_go_to_last_seen(self, sales, products):
        report = compute_sales_report(sales, products, 7, REFERENCE)

        # Coffee and Bread both sold 2 units; Bread appears last
        assert report.top_product == TopProduct("p2", "Bread", 2)

    def test_top_product_tie_within_one_sale(self):
        sales = [
            Sale(
                "1",
                utc(2024, 3, 10),
                Decimal("40"),
                SaleStatus.COMPLETED,
                items=(SaleItem("p1", "Coffee", 2), SaleItem("p2", "Bread", 2)),
            ),
        ]

        assert compute_sales_report(sales, [], 7, REFERENCE).top_product.product_id == "p2"

    def test_top_product_larger_quantity_wins_regardless_of_order(self):
        sales = [
            Sale(
                "1",
                utc(2024, 3, 10),
                Decimal("40"),
                SaleStatus.COMPLETED,
                items=(SaleItem("p1", "Coffee", 3), SaleItem("p2", "Bread", 2)),
            ),
        ]

        assert compute_sales_report(sales, [], 7, REFERENCE).top_product == TopProduct("p1", "Coffee", 3)

    def test_top_product_name_from_catalog(self):
        sales = [
            Sale("1", utc(2024, 3, 10), Decimal("9"), SaleStatus.COMPLETED, items=(SaleItem("p2", "", 3),)),
        ]

        report = compute_sales_report(sales, [Product("p2", "Sourdough", 4)], 7, REFERENCE)

        assert report.top_product == TopProduct("p2", "Sourdough", 3)

    def test_recent_sales_newest_first(self, sales, products):
        report = compute_sales_report(sales, products, 7, REFERENCE)

        assert [sale.id for sale in report.recent_sales] == ["s3", "s2", "s1"]

    def test_recent_sales_limited_to_ten(self):
        sales = [
            Sale(str(i), REFERENCE - timedelta(hours=i + 1), Decimal("1"), SaleStatus.COMPLETED) for i in range(12)
        ]

        report = compute_sales_report(sales, [], 7, REFERENCE)

        assert len(report.recent_sales) == 10
        assert report.recent_sales[0].id == "0"
        assert report.sales_count == 12

    def test_empty_report(self):
        report = compute_sales_report([], [], 30, REFERENCE)

        assert report.total == Decimal("0")
        assert report.average_per_day == Decimal("0")
        assert report.sales_count == 0
        assert report.top_product is None
        assert report.recent_sales == ()

    def test_report_rejects_non_positive_days(self):
        with pytest.raises(ValueError):
            compute_sales_report([], [], 0, REFERENCE)

    def test_report_to_dict(self, sales, products):
        data = compute_sales_report(sales, products, 7, REFERENCE).to_dict()

        assert data["total"] == "1079"
        assert data["average_per_day"] == "154.14"
        assert data["top_product"] == {"product_id": "p2", "name": "Bread", "quantity": 2}
        assert data["recent_sales"][0]["id"] == "s3"
