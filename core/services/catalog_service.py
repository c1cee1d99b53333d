# =============================================================================
# core/services/catalog_service.py - Storefront Reads
# =============================================================================
# Public, read-only product queries:
# - Homepage: featured products, curated categories, hero/carousel slides,
#   new arrivals, mid banner and best sellers
# - Search suggestions (products + categories)
# - Product lists resolved from stored ids (wishlist, recently viewed)
# - Products for a category including two levels of sub-categories
#
# Every list shown to shoppers is deduplicated by colour group so a product
# with several colour variants appears once.
# =============================================================================

import asyncio
import logging
from typing import Any

from lib.supabase_client import SupabaseClient
from lib.product_dedupe import dedupe_by_color_group
from lib.formatting import category_accent, first_image, normalize_images, safe_like
from lib.utils import to_number
from core.services.featured_service import BANNER_SETTING_KEY, placement_of
from app.exceptions import DatabaseError

logger = logging.getLogger(__name__)

CARD_COLUMNS = (
    "id,name,slug,category_id,price,base_price,retail_price,images,stock_quantity,"
    "is_featured,total_sales,color_group_id,color_name,color_hex"
)
SUGGEST_COLUMNS = (
    "id,name,slug,category_id,price,retail_price,images,stock_quantity,supplier_name,"
    "sku,tags,color_group_id,color_name,color_hex"
)

# Homepage category strip, in display order
TARGET_CATEGORIES = [
    "Women’s Fashion",
    "Man’s Fashion",
    "Laptop & Computer Accessories",
    "Gadgets",
    "Headphone",
    "Watches",
    "CCTV Camera",
    "Home Appliances",
    "Home Electronics",
    "Home Decor & Textile",
]

FEATURED_LIMIT = 12
NEW_ARRIVALS_LIMIT = 16
BEST_SELLERS_LIMIT = 12
CATEGORY_PRODUCTS_LIMIT = 16
SUGGEST_PRODUCTS_LIMIT = 6
SUGGEST_CATEGORIES_LIMIT = 5
SUGGEST_MIN_CHARS = 2
RESOLVE_LIMIT = 24


def display_price(product: dict[str, Any]) -> float:
    """Selling price: price, else retail_price, else base_price."""
    for key in ("price", "retail_price", "base_price"):
        if product.get(key) is not None:
            return to_number(product[key])
    return 0.0


def curate_categories(categories: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Keep the homepage categories and order them like TARGET_CATEGORIES.

    Names are compared case-insensitively. Each kept category gets an
    "accent" colour pair.
    """
    order = {name.lower(): i for i, name in enumerate(TARGET_CATEGORIES)}
    picked = [c for c in categories if str(c.get("name") or "").lower() in order]
    picked.sort(key=lambda c: order[str(c.get("name") or "").lower()])
    return [{**c, "accent": category_accent(c.get("id") or c.get("name"))} for c in picked]


def _card(product: dict[str, Any]) -> dict[str, Any]:
    images = normalize_images(product.get("images"))
    return {**product, "images": images, "image": images[0] if images else None, "display_price": display_price(product)}


class CatalogService:
    """Service for public catalog reads."""

    # -------------------------------------------------------------------------
    # Homepage
    # -------------------------------------------------------------------------

    @staticmethod
    def _featured_products() -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        return (
            client.table("products")
            .select(CARD_COLUMNS)
            .eq("is_active", True)
            .is_("color_name", "null")
            .eq("is_featured", True)
            .limit(FEATURED_LIMIT)
            .execute()
        ).data or []

    @staticmethod
    def _categories() -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        return (
            client.table("categories")
            .select("id,name,slug,parent_id,image_url,sort_order,is_active")
            .eq("is_active", True)
            .limit(200)
            .execute()
        ).data or []

    @staticmethod
    def _slides() -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        return (
            client.table("featured_images")
            .select("*")
            .eq("is_active", True)
            .order("sort_order")
            .execute()
        ).data or []

    @staticmethod
    def _new_arrivals() -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        return (
            client.table("products")
            .select(f"{CARD_COLUMNS},created_at")
            .eq("is_active", True)
            .is_("color_name", "null")
            .order("created_at", desc=True)
            .limit(NEW_ARRIVALS_LIMIT)
            .execute()
        ).data or []

    @staticmethod
    def _mid_banner() -> Any:
        client = SupabaseClient.get_client()
        rows = (
            client.table("site_settings")
            .select("key,value")
            .eq("key", BANNER_SETTING_KEY)
            .limit(1)
            .execute()
        ).data or []
        return rows[0].get("value") if rows else None

    @staticmethod
    def get_best_sellers(limit: int = BEST_SELLERS_LIMIT) -> tuple[list[dict[str, Any]], dict[str, float]]:
        """
        Best sellers for the storefront.

        Uses the get_best_sellers RPC (aggregated sold quantities only). If
        the RPC fails, falls back to products ordered by total_sales.

        Returns:
            Tuple of (products in sold order, {product_id: sold_qty})
        """
        client = SupabaseClient.get_client()

        try:
            rows = client.rpc("get_best_sellers", {"limit_count": limit}).execute().data or []
        except Exception as e:
            logger.warning(f"RPC get_best_sellers failed: {e}")
            try:
                fallback = (
                    client.table("products")
                    .select(CARD_COLUMNS)
                    .eq("is_active", True)
                    .is_("color_name", "null")
                    .order("total_sales", desc=True)
                    .limit(limit)
                    .execute()
                ).data or []
            except Exception as fallback_error:
                logger.warning(f"Best seller fallback failed: {fallback_error}")
                fallback = []
            return dedupe_by_color_group(fallback), {}

        sold = {str(r["product_id"]): to_number(r.get("sold_qty")) for r in rows if r.get("product_id")}
        if not sold:
            return [], {}

        try:
            products = (
                client.table("products")
                .select(CARD_COLUMNS)
                .in_("id", list(sold))
                .eq("is_active", True)
                .is_("color_name", "null")
                .execute()
            ).data or []
        except Exception as e:
            logger.warning(f"Best seller products fetch failed: {e}")
            return [], sold

        by_id = {str(p["id"]): p for p in products}
        ordered = [by_id[pid] for pid in sold if pid in by_id]
        return dedupe_by_color_group(ordered), sold

    @staticmethod
    async def get_homepage() -> dict[str, Any]:
        """
        Everything the homepage renders, loaded concurrently.

        Raises:
            DatabaseError: If one of the core queries fails
        """
        try:
            featured, categories, slides, arrivals, banner = await asyncio.gather(
                asyncio.to_thread(CatalogService._featured_products),
                asyncio.to_thread(CatalogService._categories),
                asyncio.to_thread(CatalogService._slides),
                asyncio.to_thread(CatalogService._new_arrivals),
                asyncio.to_thread(CatalogService._mid_banner),
            )
        except Exception as e:
            logger.error(f"Homepage load failed: {e}")
            raise DatabaseError("load homepage", str(e))

        best_sellers, sold = await asyncio.to_thread(CatalogService.get_best_sellers)

        return {
            "featured_products": [_card(p) for p in dedupe_by_color_group(featured)],
            "categories": curate_categories(categories),
            "hero_images": [s for s in slides if placement_of(s) == "hero"],
            "info_carousel_images": [s for s in slides if placement_of(s) == "info_carousel"],
            "new_arrivals": [_card(p) for p in dedupe_by_color_group(arrivals)],
            "mid_banner": banner if isinstance(banner, dict) else None,
            "best_sellers": [_card(p) for p in best_sellers],
            "best_seller_sold": sold,
        }

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    @staticmethod
    def search_suggest(q: str) -> dict[str, list[dict[str, Any]]]:
        """
        Typeahead suggestions.

        Queries shorter than two characters return nothing. Products match
        on name or SKU (featured first, then by sales); categories on name.
        """
        term = (q or "").strip()
        if len(term) < SUGGEST_MIN_CHARS:
            return {"products": [], "categories": []}

        like = f"%{safe_like(term)}%"
        client = SupabaseClient.get_client()

        try:
            products = (
                client.table("products")
                .select(SUGGEST_COLUMNS)
                .eq("is_active", True)
                .is_("color_name", "null")
                .or_(f"name.ilike.{like},sku.ilike.{like}")
                .order("is_featured", desc=True)
                .order("total_sales", desc=True)
                .limit(SUGGEST_PRODUCTS_LIMIT)
                .execute()
            ).data or []
            categories = (
                client.table("categories")
                .select("id,name,slug")
                .eq("is_active", True)
                .ilike("name", like)
                .order("sort_order")
                .limit(SUGGEST_CATEGORIES_LIMIT)
                .execute()
            ).data or []
        except Exception as e:
            logger.warning(f"Search suggest failed for '{term}': {e}")
            return {"products": [], "categories": []}

        return {
            "products": [
                {
                    "id": p["id"],
                    "name": p.get("name"),
                    "slug": p.get("slug"),
                    "price": p.get("price"),
                    "retail_price": p.get("retail_price"),
                    "image": first_image(p.get("images")),
                    "stock_quantity": p.get("stock_quantity"),
                    "supplier_name": p.get("supplier_name"),
                    "sku": p.get("sku"),
                    "tags": p.get("tags") if isinstance(p.get("tags"), list) else [],
                }
                for p in dedupe_by_color_group(products)
            ],
            "categories": [{"id": c["id"], "name": c.get("name"), "slug": c.get("slug")} for c in categories],
        }

    # -------------------------------------------------------------------------
    # Id lists
    # -------------------------------------------------------------------------

    @staticmethod
    def resolve_products(ids: list[str], limit: int = RESOLVE_LIMIT) -> list[dict[str, Any]]:
        """
        Load products for a stored id list, keeping the list's order.

        Entries may be product ids or colour group ids; a group id resolves
        to the group's base product. Unknown ids are dropped.
        """
        keys = [str(i).strip() for i in ids if str(i or "").strip()][:limit]
        if not keys:
            return []

        client = SupabaseClient.get_client()
        try:
            by_id = (
                client.table("products")
                .select(CARD_COLUMNS)
                .eq("is_active", True)
                .in_("id", keys)
                .limit(limit)
                .execute()
            ).data or []
            by_group = (
                client.table("products")
                .select(CARD_COLUMNS)
                .eq("is_active", True)
                .in_("color_group_id", keys)
                .is_("color_name", "null")
                .limit(limit)
                .execute()
            ).data or []
        except Exception as e:
            logger.warning(f"Could not resolve product ids: {e}")
            return []

        id_map = {str(p["id"]): p for p in by_id}
        group_map = {str(p.get("color_group_id") or p["id"]): p for p in by_group}

        ordered = []
        for key in keys:
            product = id_map.get(key) or group_map.get(key)
            if product:
                ordered.append(_card(product))
        return ordered

    @staticmethod
    def category_products(category_id: str) -> list[dict[str, Any]]:
        """
        Newest approved products in a category and its sub-categories
        (two levels deep).

        Raises:
            DatabaseError: If a query fails
        """
        client = SupabaseClient.get_client()
        try:
            children = (
                client.table("categories")
                .select("id")
                .eq("is_active", True)
                .eq("parent_id", category_id)
                .execute()
            ).data or []
            child_ids = [c["id"] for c in children]

            grand_ids = []
            if child_ids:
                grand = (
                    client.table("categories")
                    .select("id")
                    .eq("is_active", True)
                    .in_("parent_id", child_ids)
                    .execute()
                ).data or []
                grand_ids = [c["id"] for c in grand]

            products = (
                client.table("products")
                .select(f"{CARD_COLUMNS},supplier_name,created_at")
                .eq("is_active", True)
                .is_("color_name", "null")
                .eq("approval_status", "approved")
                .in_("category_id", [category_id, *child_ids, *grand_ids])
                .order("created_at", desc=True)
                .limit(CATEGORY_PRODUCTS_LIMIT)
                .execute()
            ).data or []
        except Exception as e:
            logger.error(f"Category products load failed: {e}")
            raise DatabaseError("load products", str(e))

        return [_card(p) for p in dedupe_by_color_group(products)]
