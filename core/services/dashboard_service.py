# =============================================================================
# core/services/dashboard_service.py - Admin Dashboard Aggregates
# =============================================================================
# Headline numbers for the admin home page:
# - Exact counts (products, orders, customers, pending orders, tickets)
# - Delivered revenue and the 10 most recent orders
# - Best sellers over a trailing window
# - Latest product reviews with admin replies
#
# The count queries are independent, so get_stats() runs them concurrently
# on worker threads (the Supabase client is synchronous).
# =============================================================================

import asyncio
import logging
from collections import defaultdict
from datetime import timedelta
from typing import Any

from lib.supabase_client import SupabaseClient, is_unique_violation
from lib.utils import to_number, utc_now
from app.exceptions import DatabaseError, ValidationFailedError

logger = logging.getLogger(__name__)

RECENT_ORDERS_LIMIT = 10
REVIEWS_LIMIT = 50
BEST_SELLER_DAYS = 30
BEST_SELLER_LIMIT = 8

RECENT_ORDER_COLUMNS = (
    "id,order_number,customer_name,total,status,created_at,contact_number,"
    "profiles(full_name,email,phone)"
)
REVIEW_COLUMNS = (
    "id,product_id,user_id,rating,comment,created_at,"
    "products(name,slug),profiles(full_name,email)"
)
REPLY_COLUMNS = "id,review_id,admin_id,reply,created_at"


def _count(table: str, **filters: Any) -> int:
    client = SupabaseClient.get_client()
    query = client.table(table).select("id", count="exact", head=True)
    for column, value in filters.items():
        query = query.eq(column, value)
    return query.execute().count or 0


def _delivered_revenue() -> float:
    client = SupabaseClient.get_client()
    rows = client.table("orders").select("total").eq("status", "delivered").execute().data or []
    return sum(to_number(r.get("total")) for r in rows)


def rank_best_sellers(items: list[dict[str, Any]], sort: str = "units", limit: int = BEST_SELLER_LIMIT) -> list[dict[str, Any]]:
    """
    Aggregate order_items rows by product name.

    Args:
        items: Rows with product_name, quantity, total_price, order_id
        sort: "units" or "revenue"
        limit: How many to return

    Returns:
        [{product_name, units, revenue, orders}] best first
    """
    totals: dict[str, dict[str, Any]] = defaultdict(lambda: {"units": 0.0, "revenue": 0.0, "orders": set()})

    for row in items:
        entry = totals[row.get("product_name") or "Unknown"]
        entry["units"] += to_number(row.get("quantity"))
        entry["revenue"] += to_number(row.get("total_price"))
        if row.get("order_id"):
            entry["orders"].add(str(row["order_id"]))

    ranked = [
        {
            "product_name": name,
            "units": v["units"],
            "revenue": v["revenue"],
            "orders": len(v["orders"]),
        }
        for name, v in totals.items()
    ]
    key = "revenue" if sort == "revenue" else "units"
    ranked.sort(key=lambda r: r[key], reverse=True)
    return ranked[:limit]


class DashboardService:
    """Service for admin dashboard data."""

    @staticmethod
    async def get_stats() -> dict[str, Any]:
        """
        Counts, delivered revenue and recent orders.

        Raises:
            DatabaseError: If any query fails
        """
        try:
            (
                products, orders, customers, pending_orders,
                open_tickets, in_progress_tickets, revenue,
            ) = await asyncio.gather(
                asyncio.to_thread(_count, "products"),
                asyncio.to_thread(_count, "orders"),
                asyncio.to_thread(_count, "profiles", role="customer"),
                asyncio.to_thread(_count, "orders", status="pending"),
                asyncio.to_thread(_count, "support_tickets", status="open"),
                asyncio.to_thread(_count, "support_tickets", status="in_progress"),
                asyncio.to_thread(_delivered_revenue),
            )
            recent = await asyncio.to_thread(DashboardService.recent_orders)
        except Exception as e:
            logger.error(f"Dashboard load failed: {e}")
            raise DatabaseError("load dashboard", str(e))

        return {
            "stats": {
                "products": products,
                "orders": orders,
                "customers": customers,
                "pending_orders": pending_orders,
                "unresolved_tickets": open_tickets,
                "pending_tickets": in_progress_tickets,
            },
            "revenue_total": revenue,
            "recent_orders": recent,
        }

    @staticmethod
    def recent_orders(limit: int = RECENT_ORDERS_LIMIT) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        response = (
            client.table("orders")
            .select(RECENT_ORDER_COLUMNS)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []

    @staticmethod
    def get_best_sellers(
        days: int = BEST_SELLER_DAYS,
        sort: str = "units",
        limit: int = BEST_SELLER_LIMIT,
    ) -> list[dict[str, Any]]:
        """
        Top products by units or revenue over the last `days` days.

        Uses items of delivered orders in the window. When no order in the
        window is delivered yet, every item in the window is ranked instead.
        Failures return an empty list so the rest of the dashboard still
        renders.
        """
        since = (utc_now() - timedelta(days=days)).isoformat()
        client = SupabaseClient.get_client()

        try:
            delivered = (
                client.table("orders")
                .select("id")
                .eq("status", "delivered")
                .gte("created_at", since)
                .execute()
            ).data or []

            query = (
                client.table("order_items")
                .select("product_name,quantity,total_price,order_id,created_at")
                .gte("created_at", since)
            )
            order_ids = [o["id"] for o in delivered]
            if order_ids:
                query = query.in_("order_id", order_ids)

            items = query.execute().data or []
        except Exception as e:
            logger.error(f"Best sellers error: {e}")
            return []

        return rank_best_sellers(items, sort=sort, limit=limit)

    # -------------------------------------------------------------------------
    # Reviews
    # -------------------------------------------------------------------------

    @staticmethod
    def list_reviews(limit: int = REVIEWS_LIMIT) -> dict[str, Any]:
        """
        Latest reviews and their replies.

        Returns:
            {"reviews": [...], "replies": {review_id: [reply, ...newest first]}}

        Raises:
            DatabaseError: If either query fails
        """
        client = SupabaseClient.get_client()

        try:
            reviews = (
                client.table("product_reviews")
                .select(REVIEW_COLUMNS)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            ).data or []

            replies: dict[str, list[dict[str, Any]]] = {}
            review_ids = [r["id"] for r in reviews]
            if review_ids:
                rows = (
                    client.table("review_replies")
                    .select(REPLY_COLUMNS)
                    .in_("review_id", review_ids)
                    .execute()
                ).data or []
                for row in rows:
                    replies.setdefault(row["review_id"], []).append(row)
                for group in replies.values():
                    group.sort(key=lambda r: r.get("created_at") or "", reverse=True)

        except Exception as e:
            logger.error(f"Could not load reviews: {e}")
            raise DatabaseError("load reviews", str(e))

        return {"reviews": reviews, "replies": replies}

    @staticmethod
    def submit_review_reply(review_id: str, admin_id: str, reply: str) -> tuple[dict[str, Any], bool]:
        """
        Reply to a review.

        Inserts a new reply. If the database allows only one reply per
        review (unique violation), the latest existing reply is updated
        instead.

        Returns:
            Tuple of (reply row, updated_existing)

        Raises:
            ValidationFailedError: If the reply is empty
            DatabaseError: If insert/update fails for another reason
        """
        text = (reply or "").strip()
        if not text:
            raise ValidationFailedError("Reply cannot be empty.", field="reply")

        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("review_replies")
                .insert({"review_id": review_id, "admin_id": admin_id, "reply": text})
                .execute()
            )
            return (response.data or [{}])[0], False
        except Exception as e:
            if not is_unique_violation(e):
                logger.error(f"Review reply failed: {e}")
                raise DatabaseError("send reply", str(e))

        try:
            latest = (
                client.table("review_replies")
                .select(REPLY_COLUMNS)
                .eq("review_id", review_id)
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            ).data or []
            if not latest:
                raise DatabaseError("send reply", "Could not find an existing reply to update.")

            response = (
                client.table("review_replies")
                .update({"reply": text})
                .eq("id", latest[0]["id"])
                .execute()
            )
        except DatabaseError:
            raise
        except Exception as e:
            logger.error(f"Review reply update failed: {e}")
            raise DatabaseError("update reply", str(e))

        logger.info(f"Updated existing reply on review {review_id}")
        return (response.data or [latest[0]])[0], True
