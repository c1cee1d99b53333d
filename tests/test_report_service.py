# =============================================================================
# tests/test_report_service.py - Sales Report Tests
# =============================================================================
# Run with: pytest tests/test_report_service.py -v
# =============================================================================

from datetime import date, datetime, timezone
from unittest.mock import patch

import pytest

from core.models.report import ReportFilters
from core.services.report_service import (
    ReportService,
    build_report,
    export_csv,
    normalize_payment_method,
    normalize_payment_status,
    order_revenue,
    report_range,
)
from tests.conftest import make_client, make_query

MARCH_START, MARCH_END, _ = report_range("monthly", date(2025, 3, 15))


@pytest.fixture
def sample_items():
    return [
        {"order_id": "o1", "product_id": "p1", "product_name": "Polo", "quantity": 2, "total_price": 1000},
        {"order_id": "o2", "product_id": "p2", "product_name": "Watch", "quantity": 1, "total_price": 2000},
        {"order_id": "o2", "product_id": "p1", "product_name": "Polo", "quantity": 1, "unit_price": 500},
        {"order_id": "o3", "product_id": "p3", "product_name": "Mug", "quantity": 5, "total_price": 500},
    ]


class TestNormalisation:
    """Tests for payment bucketing."""

    @pytest.mark.parametrize(
        "value,expected",
        [("bKash", "bKash"), ("Cash on Delivery", "COD"), ("cod", "COD"), ("Nagad", "Other"), (None, "Other")],
    )
    def test_payment_method(self, value, expected):
        assert normalize_payment_method(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("PAID", "paid"),
            ("success", "paid"),
            ("unpaid", "unpaid"),
            ("pending_review", "pending"),
            ("Cancelled", "failed"),
            ("", "unknown"),
            ("refunded", "refunded"),
        ],
    )
    def test_payment_status(self, value, expected):
        assert normalize_payment_status(value) == expected

    def test_order_revenue_falls_back_to_total_amount(self):
        assert order_revenue({"total": None, "total_amount": "450"}) == 450.0
        assert order_revenue({"total": 0, "total_amount": 450}) == 0.0


class TestReportRange:
    """Tests for daily, weekly and monthly ranges."""

    def test_daily(self):
        start, end, label = report_range("daily", date(2025, 3, 5))
        assert start == datetime(2025, 3, 5, tzinfo=timezone.utc)
        assert end == datetime(2025, 3, 6, tzinfo=timezone.utc)
        assert label == "2025-03-05"

    def test_weekly_starts_on_saturday(self):
        start, end, label = report_range("weekly", date(2025, 1, 14))
        assert start.date() == date(2025, 1, 11)
        assert end.date() == date(2025, 1, 18)
        assert label == "2025-01-11 to 2025-01-17"

    def test_weekly_on_a_saturday(self):
        start, _, _ = report_range("weekly", date(2025, 1, 11))
        assert start.date() == date(2025, 1, 11)

    def test_monthly(self):
        start, end, label = report_range("monthly", date(2024, 12, 31))
        assert start.date() == date(2024, 12, 1)
        assert end.date() == date(2025, 1, 1)
        assert label == "December 2024"


class TestBuildReport:
    """Tests for report aggregation."""

    def test_sales_only_by_default(self, sample_orders, sample_items):
        report = build_report(sample_orders, sample_items, ReportFilters(mode="monthly"), MARCH_START, MARCH_END)
        summary = report["summary"]

        assert summary["orders"] == 2
        assert summary["revenue"] == 3080.0
        assert summary["items_sold"] == 4.0
        assert summary["delivered"] == 1
        assert summary["cod_orders"] == 1
        assert summary["bkash_orders"] == 1
        assert summary["paid_orders"] == 1
        assert summary["unpaid_orders"] == 1
        assert summary["avg_order_value"] == 1540.0
        assert [o["id"] for o in report["orders"]] == ["o2", "o1"]

    def test_daily_series_covers_whole_range(self, sample_orders, sample_items):
        report = build_report(sample_orders, sample_items, ReportFilters(mode="monthly"), MARCH_START, MARCH_END)
        daily = report["daily"]

        assert len(daily) == 31
        assert daily[0] == {"day": "2025-03-01", "orders": 1, "revenue": 1060.0, "items_sold": 2.0}
        assert daily[2]["orders"] == 0

    def test_top_products_and_breakdowns(self, sample_orders, sample_items):
        report = build_report(sample_orders, sample_items, ReportFilters(mode="monthly"), MARCH_START, MARCH_END)

        top = report["top_products"]
        assert [p["product_id"] for p in top] == ["p1", "p2"]
        assert top[0]["quantity"] == 3.0
        assert top[0]["revenue"] == 1500.0

        assert [b["key"] for b in report["payment_breakdown"]] == ["bKash", "COD"]
        assert {b["key"] for b in report["status_breakdown"]} == {"delivered", "processing"}

    def test_filters(self, sample_orders, sample_items):
        def ids(**kwargs):
            filters = ReportFilters(mode="monthly", **kwargs)
            return [o["id"] for o in build_report(sample_orders, sample_items, filters, MARCH_START, MARCH_END)["orders"]]

        assert ids(payment_method="bkash") == ["o2"]
        assert ids(include_non_sales=True, sort="oldest") == ["o1", "o2", "o3"]
        assert ids(include_non_sales=True, search="0003") == ["o3"]
        assert ids(min_total=1500) == ["o2"]
        assert ids(sort="lowest") == ["o1", "o2"]
        assert ids(payment_status="paid") == ["o1"]

    def test_empty_range(self):
        report = build_report([], [], ReportFilters(), MARCH_START, MARCH_END)
        assert report["summary"]["orders"] == 0
        assert report["summary"]["avg_order_value"] == 0.0
        assert report["top_products"] == []
        assert report["payment_breakdown"] == []
        assert len(report["daily"]) == 31


class TestExportCsv:
    """Tests for the CSV download."""

    def test_sections(self, sample_orders, sample_items):
        report = build_report(sample_orders, sample_items, ReportFilters(mode="monthly"), MARCH_START, MARCH_END)
        text = export_csv(report, "March 2025", datetime(2025, 4, 1, tzinfo=timezone.utc))
        lines = text.splitlines()

        assert lines[0] == "SPRAXE Admin Report"
        assert lines[1] == "Range,March 2025"
        assert lines[2] == "Generated At,2025-04-01T00:00:00+00:00"
        for title in ("Summary", "Payment Breakdown", "Breakdown (Daily)", "Top Products", "Orders (Filtered)"):
            assert title in lines
        assert "order_number,created_at,status,payment_method,payment_status,revenue,items_sold" in lines
        assert any(line.startswith("ORD-20250302-0002,") for line in lines)


class TestReportService:
    """Tests for fetching, snapshots and file names."""

    def test_snapshot_served_when_requested(self):
        snapshot = {"month": "2025-03-01", "metrics": {"orders": 7}, "breakdown": [], "orders": []}
        with patch.object(ReportService, "get_snapshot", return_value=snapshot), \
             patch.object(ReportService, "fetch_range") as fetch:
            report = ReportService.get_report(ReportFilters(mode="monthly", anchor=date(2025, 3, 9), use_snapshot=True))

        assert report["source"] == "snapshot"
        assert report["summary"] == {"orders": 7}
        fetch.assert_not_called()

    def test_csv_file_name(self, sample_orders, sample_items):
        with patch.object(ReportService, "fetch_range", return_value=(sample_orders, sample_items)):
            _, filename = ReportService.export_report_csv(ReportFilters(mode="weekly", anchor=date(2025, 3, 5)))
        assert filename == "spraxe-report-weekly-2025-03-01.csv"

    def test_save_snapshot_upserts_on_month(self, sample_orders, sample_items):
        client = make_client({"monthly_reports": make_query([])})
        with patch.object(ReportService, "fetch_range", return_value=(sample_orders, sample_items)), \
             patch("core.services.report_service.SupabaseClient.get_client", return_value=client):
            row = ReportService.save_monthly_snapshot(date(2025, 3, 20))

        assert row["month"] == "2025-03-01"
        assert row["metrics"]["orders"] == 2
        _, kwargs = client.queries["monthly_reports"].upsert.call_args
        assert kwargs == {"on_conflict": "month"}
