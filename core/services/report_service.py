# =============================================================================
# core/services/report_service.py - Sales Reports
# =============================================================================
# Builds the admin sales report for a daily, weekly (Saturday start) or
# monthly range:
# - Summary (revenue, orders, items sold, COD/bKash, paid/unpaid)
# - Per-day series across the whole range (empty days included)
# - Top products by quantity
# - Breakdowns by payment method, order status and payment status
# - CSV export and monthly snapshots stored in monthly_reports
#
# Aggregation is done with pandas over rows fetched from orders and
# order_items; Supabase only filters by date range.
# =============================================================================

import io
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

import pandas as pd

from lib.supabase_client import SupabaseClient
from lib.utils import to_number, utc_now
from core.models.report import ReportFilters
from app.exceptions import DatabaseError

logger = logging.getLogger(__name__)

SALES_ORDER_STATUSES = ("processing", "shipped", "delivered", "completed")
UNPAID_STATUSES = ("unpaid", "pending", "unknown", "failed")
TOP_PRODUCTS_LIMIT = 20
SNAPSHOT_LIST_LIMIT = 24

ORDER_COLUMNS = "id,order_number,created_at,status,total,total_amount,payment_method,payment_status"
ITEM_COLUMNS = "order_id,product_id,product_name,quantity,unit_price,total_price"

_ORDER_FRAME_COLUMNS = [
    "id", "order_number", "created_at", "day", "status",
    "revenue", "payment_method", "payment_status",
]


# =============================================================================
# Normalisation
# =============================================================================

def normalize_payment_method(value: Any) -> str:
    """Bucket a stored payment method into "COD", "bKash" or "Other"."""
    text = str(value or "").strip().lower()
    if "bkash" in text:
        return "bKash"
    if "cod" in text or "cash" in text:
        return "COD"
    return "Other"


def normalize_payment_status(value: Any) -> str:
    """
    Bucket a stored payment status.

    Returns one of paid, unpaid, pending, failed, unknown, or the raw
    lowercased value when it fits none of them.
    """
    text = str(value or "").strip().lower()
    if not text:
        return "unknown"
    if "unpaid" in text:
        return "unpaid"
    if "paid" in text or text == "success":
        return "paid"
    if "pending" in text:
        return "pending"
    if "fail" in text or "cancel" in text:
        return "failed"
    return text


def order_revenue(order: dict[str, Any]) -> float:
    value = order.get("total")
    if value is None:
        value = order.get("total_amount")
    return to_number(value)


def report_range(mode: str, anchor: date | None = None) -> tuple[datetime, datetime, str]:
    """
    Start (inclusive), end (exclusive) and label of a report range.

    Example:
        report_range("weekly", date(2025, 1, 14))
        # 2025-01-11 (Saturday) .. 2025-01-18, "2025-01-11 to 2025-01-17"
    """
    anchor = anchor or utc_now().date()

    if mode == "monthly":
        first = anchor.replace(day=1)
        following = (first + timedelta(days=32)).replace(day=1)
        start_day, end_day = first, following
        label = first.strftime("%B %Y")
    elif mode == "weekly":
        # date.weekday(): Monday=0 .. Saturday=5
        start_day = anchor - timedelta(days=(anchor.weekday() - 5) % 7)
        end_day = start_day + timedelta(days=7)
        label = f"{start_day.isoformat()} to {(end_day - timedelta(days=1)).isoformat()}"
    else:
        start_day, end_day = anchor, anchor + timedelta(days=1)
        label = anchor.isoformat()

    start = datetime.combine(start_day, time.min, tzinfo=timezone.utc)
    end = datetime.combine(end_day, time.min, tzinfo=timezone.utc)
    return start, end, label


# =============================================================================
# Aggregation
# =============================================================================

def _orders_frame(orders: list[dict[str, Any]]) -> pd.DataFrame:
    records = [
        {
            "id": str(o.get("id") or ""),
            "order_number": str(o.get("order_number") or o.get("id") or ""),
            "created_at": str(o.get("created_at") or ""),
            "day": str(o.get("created_at") or "")[:10],
            "status": str(o.get("status") or "").lower(),
            "revenue": order_revenue(o),
            "payment_method": normalize_payment_method(o.get("payment_method")),
            "payment_status": normalize_payment_status(o.get("payment_status")),
        }
        for o in orders
    ]
    return pd.DataFrame(records, columns=_ORDER_FRAME_COLUMNS)


def _items_frame(items: list[dict[str, Any]]) -> pd.DataFrame:
    records = []
    for item in items:
        quantity = to_number(item.get("quantity"))
        line = item.get("total_price")
        records.append({
            "order_id": str(item.get("order_id") or ""),
            "product_id": str(item.get("product_id") or item.get("product_name") or ""),
            "product_name": str(item.get("product_name") or "Product"),
            "quantity": quantity,
            "revenue": to_number(line) if line is not None else quantity * to_number(item.get("unit_price")),
        })
    return pd.DataFrame(records, columns=["order_id", "product_id", "product_name", "quantity", "revenue"])


def filter_orders(df: pd.DataFrame, filters: ReportFilters) -> pd.DataFrame:
    """Apply the report filters and sort to an orders frame."""
    mask = pd.Series(True, index=df.index)

    if not filters.include_non_sales:
        mask &= df["status"].isin(SALES_ORDER_STATUSES)
    if filters.status != "all":
        mask &= df["status"] == filters.status.lower()
    if filters.payment_method != "all":
        mask &= df["payment_method"].str.lower() == filters.payment_method
    if filters.payment_status != "all":
        mask &= df["payment_status"] == filters.payment_status.lower()
    if filters.min_total is not None:
        mask &= df["revenue"] >= filters.min_total
    if filters.max_total is not None:
        mask &= df["revenue"] <= filters.max_total

    term = filters.search.strip().lower()
    if term:
        haystack = (
            df["id"] + " " + df["order_number"] + " " + df["status"] + " "
            + df["payment_method"] + " " + df["payment_status"]
        ).str.lower()
        mask &= haystack.str.contains(term, regex=False)

    result = df[mask]
    if filters.sort == "highest":
        return result.sort_values("revenue", ascending=False, kind="stable")
    if filters.sort == "lowest":
        return result.sort_values("revenue", ascending=True, kind="stable")
    return result.sort_values("created_at", ascending=(filters.sort == "oldest"), kind="stable")


def _breakdown(df: pd.DataFrame, column: str) -> list[dict[str, Any]]:
    if df.empty:
        return []
    grouped = (
        df.groupby(column)
        .agg(orders=("id", "count"), revenue=("revenue", "sum"))
        .reset_index()
        .rename(columns={column: "key"})
        .sort_values(["orders", "revenue"], ascending=False, kind="stable")
    )
    return grouped.to_dict("records")


def build_report(
    orders: list[dict[str, Any]],
    items: list[dict[str, Any]],
    filters: ReportFilters,
    start: datetime,
    end: datetime,
) -> dict[str, Any]:
    """
    Aggregate fetched rows into the report.

    Args:
        orders: orders rows inside [start, end)
        items: order_items rows for those orders
        filters: Filters and sort
        start: Range start (inclusive)
        end: Range end (exclusive)

    Returns:
        Dict with summary, daily, top_products, payment_breakdown,
        status_breakdown, payment_status_breakdown and orders
    """
    filtered = filter_orders(_orders_frame(orders), filters)
    item_df = _items_frame(items)
    item_df = item_df[item_df["order_id"].isin(filtered["id"])]

    per_order_qty = item_df.groupby("order_id")["quantity"].sum()
    filtered = filtered.assign(items_sold=filtered["id"].map(per_order_qty).fillna(0.0))

    count = len(filtered)
    revenue = float(filtered["revenue"].sum())
    summary = {
        "revenue": revenue,
        "orders": count,
        "items_sold": float(filtered["items_sold"].sum()),
        "delivered": int(filtered["status"].isin(("delivered", "completed")).sum()),
        "cod_orders": int((filtered["payment_method"] == "COD").sum()),
        "bkash_orders": int((filtered["payment_method"] == "bKash").sum()),
        "paid_orders": int((filtered["payment_status"] == "paid").sum()),
        "unpaid_orders": int(filtered["payment_status"].isin(UNPAID_STATUSES).sum()),
        "avg_order_value": revenue / count if count else 0.0,
    }

    days = [d.strftime("%Y-%m-%d") for d in pd.date_range(start.date(), end.date() - timedelta(days=1), freq="D")]
    daily = (
        filtered.groupby("day")
        .agg(orders=("id", "count"), revenue=("revenue", "sum"), items_sold=("items_sold", "sum"))
        .reindex(days, fill_value=0)
        .rename_axis("day")
        .reset_index()
    )

    top_products = []
    if not item_df.empty:
        top_products = (
            item_df.groupby("product_id")
            .agg(product_name=("product_name", "first"), quantity=("quantity", "sum"), revenue=("revenue", "sum"))
            .reset_index()
            .sort_values("quantity", ascending=False, kind="stable")
            .head(TOP_PRODUCTS_LIMIT)
            .to_dict("records")
        )

    return {
        "summary": summary,
        "daily": daily.to_dict("records"),
        "top_products": top_products,
        "payment_breakdown": _breakdown(filtered, "payment_method"),
        "status_breakdown": _breakdown(filtered, "status"),
        "payment_status_breakdown": _breakdown(filtered, "payment_status"),
        "orders": filtered.drop(columns=["day"]).to_dict("records"),
    }


def export_csv(report: dict[str, Any], label: str, generated_at: datetime | None = None) -> str:
    """
    Render a report as a multi-section CSV document.

    Sections: Summary, the three breakdowns, daily series, top products and
    the filtered orders, separated by blank lines.
    """
    generated_at = generated_at or utc_now()
    out = io.StringIO()
    out.write("SPRAXE Admin Report\n")
    out.write(f"Range,{label}\n")
    out.write(f"Generated At,{generated_at.isoformat()}\n")

    sections = [
        ("Summary", pd.DataFrame(list(report["summary"].items()), columns=["metric", "value"])),
        ("Payment Breakdown", pd.DataFrame(report["payment_breakdown"], columns=["key", "orders", "revenue"])),
        ("Status Breakdown", pd.DataFrame(report["status_breakdown"], columns=["key", "orders", "revenue"])),
        ("Payment Status Breakdown", pd.DataFrame(report["payment_status_breakdown"], columns=["key", "orders", "revenue"])),
        ("Breakdown (Daily)", pd.DataFrame(report["daily"], columns=["day", "orders", "revenue", "items_sold"])),
        ("Top Products", pd.DataFrame(report["top_products"], columns=["product_id", "product_name", "quantity", "revenue"])),
        ("Orders (Filtered)", pd.DataFrame(report["orders"], columns=[
            "order_number", "created_at", "status", "payment_method", "payment_status", "revenue", "items_sold",
        ])),
    ]
    for title, frame in sections:
        out.write(f"\n{title}\n")
        frame.to_csv(out, index=False)

    return out.getvalue()


class ReportService:
    """Service for admin sales reports."""

    @staticmethod
    def fetch_range(start: datetime, end: datetime) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        """
        Orders created in [start, end) and their items.

        Raises:
            DatabaseError: If either query fails
        """
        client = SupabaseClient.get_client()
        try:
            orders = (
                client.table("orders")
                .select(ORDER_COLUMNS)
                .gte("created_at", start.isoformat())
                .lt("created_at", end.isoformat())
                .order("created_at", desc=False)
                .execute()
            ).data or []

            items = []
            order_ids = [o["id"] for o in orders]
            if order_ids:
                items = (
                    client.table("order_items")
                    .select(ITEM_COLUMNS)
                    .in_("order_id", order_ids)
                    .execute()
                ).data or []
        except Exception as e:
            logger.error(f"Report query failed: {e}")
            raise DatabaseError("load report", str(e))

        return orders, items

    @staticmethod
    def get_report(filters: ReportFilters) -> dict[str, Any]:
        """
        Live report for the filtered range, or the stored monthly snapshot
        when `use_snapshot` is set and one exists.
        """
        start, end, label = report_range(filters.mode, filters.anchor)
        range_info = {"mode": filters.mode, "start": start.isoformat(), "end": end.isoformat(), "label": label}

        if filters.mode == "monthly" and filters.use_snapshot:
            snapshot = ReportService.get_snapshot(start.date())
            if snapshot:
                return {
                    "range": range_info,
                    "source": "snapshot",
                    "summary": snapshot.get("metrics") or {},
                    "daily": snapshot.get("breakdown") or [],
                    "top_products": snapshot.get("top_products") or [],
                    "payment_breakdown": snapshot.get("payment_breakdown") or [],
                    "status_breakdown": snapshot.get("status_breakdown") or [],
                    "payment_status_breakdown": snapshot.get("payment_status_breakdown") or [],
                    "orders": snapshot.get("orders") or [],
                }

        orders, items = ReportService.fetch_range(start, end)
        report = build_report(orders, items, filters, start, end)
        return {"range": range_info, "source": "live", **report}

    @staticmethod
    def export_report_csv(filters: ReportFilters) -> tuple[str, str]:
        """
        Returns:
            Tuple of (csv text, suggested file name)
        """
        report = ReportService.get_report(filters)
        start = report["range"]["start"][:10]
        return export_csv(report, report["range"]["label"]), f"spraxe-report-{filters.mode}-{start}.csv"

    # -------------------------------------------------------------------------
    # Monthly snapshots
    # -------------------------------------------------------------------------

    @staticmethod
    def save_monthly_snapshot(month: date | None = None) -> dict[str, Any]:
        """
        Compute and store the sales report for a month.

        Args:
            month: Any date inside the month; defaults to the previous month

        Returns:
            The upserted monthly_reports row
        """
        if month is None:
            month = utc_now().date().replace(day=1) - timedelta(days=1)

        filters = ReportFilters(mode="monthly", anchor=month)
        start, end, _ = report_range("monthly", month)
        orders, items = ReportService.fetch_range(start, end)
        report = build_report(orders, items, filters, start, end)

        row = {
            "month": start.date().isoformat(),
            "metrics": report["summary"],
            "breakdown": report["daily"],
            "top_products": report["top_products"],
            "payment_breakdown": report["payment_breakdown"],
            "status_breakdown": report["status_breakdown"],
            "payment_status_breakdown": report["payment_status_breakdown"],
            "orders": report["orders"],
        }

        client = SupabaseClient.get_client()
        try:
            response = client.table("monthly_reports").upsert(row, on_conflict="month").execute()
        except Exception as e:
            logger.error(f"Monthly snapshot save failed: {e}")
            raise DatabaseError("save monthly snapshot", str(e))

        logger.info(f"Saved monthly report snapshot for {row['month']} ({report['summary']['orders']} orders)")
        return (response.data or [row])[0]

    @staticmethod
    def list_snapshots(limit: int = SNAPSHOT_LIST_LIMIT) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("monthly_reports")
                .select("month,metrics,created_at")
                .order("month", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            raise DatabaseError("list monthly snapshots", str(e))
        return response.data or []

    @staticmethod
    def get_snapshot(month: date) -> dict[str, Any] | None:
        client = SupabaseClient.get_client()
        try:
            rows = (
                client.table("monthly_reports")
                .select("*")
                .eq("month", month.replace(day=1).isoformat())
                .limit(1)
                .execute()
            ).data or []
        except Exception as e:
            logger.warning(f"Snapshot lookup failed for {month}: {e}")
            return None
        return rows[0] if rows else None
