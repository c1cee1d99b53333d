# =============================================================================
# core/services/seller_service.py - Seller Portal Business Logic
# =============================================================================
# Handles:
# - Seller applications (profile switched to role=seller, status=pending)
# - Seller's own product list and overview stats
# - Seller edits to their own products (always scoped by seller_id)
#
# Pending sellers can browse their products; writes need approval (see
# require_approved_seller) and approval_blocked tells the UI why.
# =============================================================================

import logging
import time
from typing import Any

from lib.supabase_client import SupabaseClient, missing_column
from lib.formatting import (
    is_valid_bd_phone,
    normalize_images,
    safe_like,
    sanitize_file_name,
)
from lib.utils import to_number
from core.models.product import (
    LOW_STOCK_THRESHOLD,
    MAX_IMAGES,
    PAGE_SIZE,
    InventoryFilters,
    SellerProductUpdate,
    StockFilter,
)
from core.models.profile import SellerApplication, SellerStatus
from core.services.storage_service import StorageService, PRODUCT_IMAGES_BUCKET
from app.auth.models import AuthUser
from app.exceptions import (
    DatabaseError,
    ProductNotFoundError,
    TooManyImagesError,
    ValidationFailedError,
)
from app.websocket.broadcast import publish_inventory_change

logger = logging.getLogger(__name__)

SELLER_PRODUCT_COLUMNS = (
    "id,name,slug,sku,images,stock_quantity,unit,base_price,price,retail_price,"
    "is_active,approval_status,updated_at"
)

# Profile update retries after dropping columns the table doesn't have
MAX_PROFILE_UPDATE_ATTEMPTS = 5
OVERVIEW_LIMIT = 50


def validate_application(form: SellerApplication) -> None:
    """
    Raises:
        ValidationFailedError: If a required field is too short or the
            phone (when given) isn't a valid BD number
    """
    if (
        len(form.shop_name.strip()) < 3
        or len(form.company_name.strip()) < 2
        or len(form.business_type.strip()) < 2
        or len(form.business_address.strip()) < 6
        or (form.phone.strip() and not is_valid_bd_phone(form.phone))
    ):
        raise ValidationFailedError(
            "Please complete the required fields (and ensure the phone number is valid)."
        )


def seller_stats(products: list[dict[str, Any]]) -> dict[str, int]:
    """Counts shown on the seller overview."""
    stocks = [to_number(p.get("stock_quantity")) for p in products]
    return {
        "total": len(products),
        "pending": sum(1 for p in products if str(p.get("approval_status") or "").lower() != "approved"),
        "active": sum(1 for p in products if p.get("is_active")),
        "low_stock": sum(1 for s in stocks if 0 < s <= LOW_STOCK_THRESHOLD),
        "out_of_stock": sum(1 for s in stocks if s <= 0),
    }


def approval_blocked(user: AuthUser) -> bool:
    status = (user.seller_status or "").lower()
    return bool(status) and status != SellerStatus.APPROVED.value


class SellerService:
    """Service for seller portal operations."""

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------

    @staticmethod
    def apply_as_seller(user: AuthUser, form: SellerApplication) -> dict[str, Any]:
        """
        Submit a seller application.

        Updates the profile to role=seller / seller_status=pending. If the
        profiles table lacks an optional column, the update is retried
        without it (up to 5 attempts). A seller_applications row is also
        recorded for the admin review queue.

        Returns:
            The profile fields that were saved

        Raises:
            ValidationFailedError: If the form is incomplete
            DatabaseError: If the profile update keeps failing
        """
        validate_application(form)

        updates: dict[str, Any] = {
            "role": "seller",
            "seller_status": SellerStatus.PENDING.value,
            "shop_name": form.shop_name.strip(),
            "shop_description": form.shop_description.strip() or None,
            "company_name": form.company_name.strip() or None,
            "business_type": form.business_type.strip() or None,
            "phone": form.phone.strip() or None,
            "business_address": form.business_address.strip() or None,
        }

        client = SupabaseClient.get_client()
        last_error: Exception | None = None

        for _ in range(MAX_PROFILE_UPDATE_ATTEMPTS):
            try:
                client.table("profiles").update(updates).eq("id", str(user.id)).execute()
                last_error = None
                break
            except Exception as e:
                last_error = e
                column = missing_column(e)
                if not column or column not in updates:
                    break
                logger.warning(f"profiles has no column {column!r}, retrying without it")
                del updates[column]

        if last_error is not None:
            logger.error(f"Seller application failed for {user.id}: {last_error}")
            raise DatabaseError("submit seller application", str(last_error))

        SellerService._record_application(user, form)

        logger.info(f"Seller application submitted by {user.id}")
        return updates

    @staticmethod
    def _record_application(user: AuthUser, form: SellerApplication) -> None:
        """Best-effort row in seller_applications."""
        client = SupabaseClient.get_client()
        try:
            client.table("seller_applications").insert({
                "user_id": str(user.id),
                "shop_name": form.shop_name.strip(),
                "shop_description": form.shop_description.strip() or None,
                "business_address": form.business_address.strip(),
                "phone": form.phone.strip(),
                "email": user.email or "",
                "status": SellerStatus.PENDING.value,
            }).execute()
        except Exception as e:
            logger.warning(f"Could not record seller application for {user.id}: {e}")

    # -------------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------------

    @staticmethod
    def overview(seller_id: str) -> dict[str, Any]:
        """Latest products and stats for the seller home page."""
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("products")
                .select(SELLER_PRODUCT_COLUMNS)
                .eq("seller_id", seller_id)
                .order("updated_at", desc=True)
                .limit(OVERVIEW_LIMIT)
                .execute()
            )
        except Exception as e:
            raise DatabaseError("load seller dashboard", str(e))

        products = response.data or []
        return {"products": products, "stats": seller_stats(products)}

    @staticmethod
    def list_products(seller_id: str, filters: InventoryFilters) -> tuple[list[dict[str, Any]], int]:
        """
        List the seller's products.

        The stock filter is applied to the fetched page, so the total count
        reflects search and approval filters only.
        """
        client = SupabaseClient.get_client()
        offset = (filters.page - 1) * PAGE_SIZE

        query = (
            client.table("products")
            .select(SELLER_PRODUCT_COLUMNS, count="exact")
            .eq("seller_id", seller_id)
            .order("updated_at", desc=True)
            .range(offset, offset + PAGE_SIZE - 1)
        )

        term = filters.q.strip()
        if term:
            like = f"%{safe_like(term)}%"
            query = query.or_(f"name.ilike.{like},sku.ilike.{like},slug.ilike.{like}")

        if filters.approval != "all":
            query = query.eq("approval_status", filters.approval)

        try:
            response = query.execute()
        except Exception as e:
            logger.error(f"Failed to list products for seller {seller_id}: {e}")
            raise DatabaseError("load products", str(e))

        items = response.data or []
        if filters.stock == StockFilter.OUT:
            items = [p for p in items if to_number(p.get("stock_quantity")) <= 0]
        elif filters.stock == StockFilter.LOW:
            items = [p for p in items if 0 < to_number(p.get("stock_quantity")) <= LOW_STOCK_THRESHOLD]

        for item in items:
            item["images"] = normalize_images(item.get("images"))

        return items, response.count or 0

    @staticmethod
    def get_product(seller_id: str, product_id: str) -> dict[str, Any]:
        """
        Raises:
            ProductNotFoundError: If it doesn't exist or belongs to another seller
        """
        product = SupabaseClient.fetch_row("products", product_id, SELLER_PRODUCT_COLUMNS + ",seller_id")
        if not product or product.get("seller_id") != seller_id:
            raise ProductNotFoundError(product_id)
        return product

    @staticmethod
    def update_product(seller_id: str, product_id: str, patch: SellerProductUpdate) -> dict[str, Any]:
        """
        Save the seller-editable fields of one product.

        Raises:
            TooManyImagesError: If more than MAX_IMAGES images are given
            ProductNotFoundError: If no product of this seller matched
            DatabaseError: If the update fails
        """
        images = normalize_images(patch.images)
        if len(images) > MAX_IMAGES:
            raise TooManyImagesError(MAX_IMAGES)

        payload = {
            "stock_quantity": patch.stock_quantity,
            "base_price": patch.base_price,
            "price": patch.price,
            "retail_price": patch.retail_price,
            "unit": patch.unit.strip() or "pieces",
            "is_active": patch.is_active,
            "images": images,
        }

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("products")
                .update(payload)
                .eq("id", product_id)
                .eq("seller_id", seller_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Seller {seller_id} failed to update {product_id}: {e}")
            raise DatabaseError("save product", str(e))

        if not response.data:
            raise ProductNotFoundError(product_id)

        publish_inventory_change([product_id], "seller_update")
        return payload

    @staticmethod
    def upload_images(
        seller_id: str,
        product_id: str,
        files: list[tuple[str, str, bytes]],
        existing: list[str],
    ) -> list[str]:
        """
        Upload photos for one of the seller's products.

        Path: {seller}/{product}/{timestamp}-{index}-{file}

        Raises:
            TooManyImagesError: If the files don't fit in the remaining slots
        """
        current = normalize_images(existing)
        if len(files) > MAX_IMAGES - len(current):
            raise TooManyImagesError(MAX_IMAGES)

        for filename, content_type, content in files:
            StorageService.validate_image(filename, content_type, len(content))

        stamp = int(time.time() * 1000)
        uploaded = []
        for index, (filename, content_type, content) in enumerate(files):
            path = f"{seller_id}/{product_id}/{stamp}-{index}-{sanitize_file_name(filename)}"
            StorageService.upload(PRODUCT_IMAGES_BUCKET, path, content, content_type)
            uploaded.append(StorageService.get_public_url(PRODUCT_IMAGES_BUCKET, path))

        return normalize_images(current + uploaded)[:MAX_IMAGES]

