# =============================================================================
# core/services/inventory_service.py - Admin Inventory Business Logic
# =============================================================================
# Handles the admin inventory screen:
# - Filtered/sorted/paginated product list
# - Bulk edit of selected rows (only fields marked as changed are sent)
# - Grouped colour-variant editor: load every variant of a product, then
#   reconcile edits, new colours and removed colours in one save
# - Product image uploads and hotlinks
#
# Every write publishes an "inventory" change so open inventory screens
# refetch.
# =============================================================================

import logging
import re
import time
from typing import Any

from lib.supabase_client import SupabaseClient
from lib.formatting import normalize_images, safe_like, sanitize_file_name, simple_slug
from lib.size_chart import parse_size_chart, sanitize_size_chart
from lib.utils import parse_optional_number, to_number, utc_now_iso
from core.models.product import (
    LOW_STOCK_THRESHOLD,
    MAX_IMAGES,
    PAGE_SIZE,
    BulkEditRequest,
    InventoryFilters,
    ProductSort,
    SpecRow,
    StockFilter,
    VariantDraft,
    VariantGroup,
    VariantGroupSave,
)
from core.services.storage_service import StorageService, PRODUCT_IMAGES_BUCKET
from app.exceptions import (
    DatabaseError,
    NothingToUpdateError,
    ProductNotFoundError,
    TooManyImagesError,
    ValidationFailedError,
)
from app.websocket.broadcast import publish_inventory_change

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = (
    "id,name,sku,slug,images,stock_quantity,min_order_quantity,unit,base_price,"
    "retail_price,price,is_active,is_featured,approval_status,updated_at,created_at,"
    "total_sales,color_group_id,color_name,color_hex,description,size_chart"
)

_HEX_RE = re.compile(r"^#?[0-9a-fA-F]{3}([0-9a-fA-F]{3})?$")
_HTTP_RE = re.compile(r"^https?://", re.IGNORECASE)

BULK_NUMERIC_FIELDS = ("stock_quantity", "price", "retail_price", "base_price")


def stock_status(stock: Any) -> str:
    """Badge for a stock level: "out", "low" or "ok"."""
    value = to_number(stock)
    if value <= 0:
        return "out"
    if value <= LOW_STOCK_THRESHOLD:
        return "low"
    return "ok"


def build_bulk_update(edit: BulkEditRequest) -> dict[str, Any]:
    """
    Turn a bulk edit form into an update payload.

    Only fields that are not "keep" (tri-state) or not blank (numeric) are
    included, so untouched columns are never overwritten.

    Raises:
        NothingToUpdateError: If no field was chosen
        ValidationFailedError: If a numeric field is not a finite number >= 0
    """
    update: dict[str, Any] = {}

    if edit.is_active != "keep":
        update["is_active"] = edit.is_active == "true"
    if edit.is_featured != "keep":
        update["is_featured"] = edit.is_featured == "true"
    if edit.approval_status != "keep":
        update["approval_status"] = edit.approval_status

    for field in BULK_NUMERIC_FIELDS:
        label = field.replace("_", " ", 1)
        try:
            value = parse_optional_number(getattr(edit, field))
        except ValueError:
            raise ValidationFailedError(f"Please enter a valid {label}.", field=field)
        if value is None:
            continue
        if value < 0:
            raise ValidationFailedError(f"Please enter a valid {label}.", field=field)
        update[field] = value

    if not update:
        raise NothingToUpdateError()

    return update


def validate_variant_draft(draft: VariantDraft, label: str, is_base: bool) -> str | None:
    """
    Check one variant before saving.

    Returns:
        Error message prefixed with the variant label, or None if valid
    """
    images = draft.images or []
    if draft.stock_quantity < 0:
        return f"{label}: Stock cannot be negative."
    if draft.price <= 0:
        return f"{label}: Price must be greater than 0."
    if draft.retail_price < 0:
        return f"{label}: Retail price cannot be negative."
    if draft.base_price < 0:
        return f"{label}: Base price cannot be negative."
    if draft.min_order_quantity <= 0:
        return f"{label}: Min order quantity must be at least 1."
    if not (draft.unit or "").strip():
        return f"{label}: Unit is required."
    if not images:
        return f"{label}: Add at least 1 image."
    if len(images) > MAX_IMAGES:
        return f"{label}: Max {MAX_IMAGES} images."
    if not is_base and not draft.color_name.strip():
        return f"{label}: Color name is required."
    hex_value = draft.color_hex.strip()
    if hex_value and not _HEX_RE.match(hex_value):
        return f"{label}: Color hex must be valid (e.g. #000000)."
    return None


def _slug_part(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (text or "").lower().strip())
    return re.sub(r"-+", "-", slug).strip("-")


def variant_identity(base: dict[str, Any], color_name: str) -> dict[str, str]:
    """
    Name, slug and SKU for a new colour variant of `base`.

    Example:
        base slug "cotton-tee", sku "TEE01", colour "Sky Blue"
        -> slug "cotton-tee-sky-blue", sku "TEE01-SKYBLUE"
    """
    base_slug = _slug_part(str(base.get("slug") or base.get("name") or "product"))
    color_slug = _slug_part(color_name or "color")
    sku_suffix = re.sub(r"[^A-Z0-9]+", "", color_slug.upper())[:10]
    return {
        "name": base.get("name"),
        "slug": f"{base_slug}-{color_slug}",
        "sku": f"{base.get('sku') or 'SKU'}-{sku_suffix}",
    }


def add_hotlinks(images: list[str], urls: list[str]) -> list[str]:
    """
    Append external image URLs.

    Raises:
        ValidationFailedError: If a URL isn't http(s)
    """
    result = normalize_images(images)[:MAX_IMAGES]
    for raw in urls:
        url = (raw or "").strip()
        if not url:
            continue
        if not _HTTP_RE.match(url):
            raise ValidationFailedError("URL must start with http:// or https://", field="urls")
        if len(result) >= MAX_IMAGES:
            break
        if url not in result:
            result.append(url)
    return result


class InventoryService:
    """
    Service for admin inventory operations.

    Provides a clean interface between API routes and database.
    """

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    @staticmethod
    def list_products(filters: InventoryFilters) -> tuple[list[dict[str, Any]], int]:
        """
        List products for the inventory table.

        Args:
            filters: Search, active/approval/stock filters, sort and page

        Returns:
            Tuple of (products on this page, total matching count)

        Raises:
            DatabaseError: If the query fails
        """
        client = SupabaseClient.get_client()

        query = client.table("products").select(PRODUCT_COLUMNS, count="exact")

        term = filters.q.strip()
        if term:
            s = safe_like(term)
            query = query.or_(f"name.ilike.%{s}%,sku.ilike.%{s}%,slug.ilike.%{s}%")

        if filters.active == "active":
            query = query.eq("is_active", True)
        elif filters.active == "inactive":
            query = query.eq("is_active", False)

        if filters.approval != "all":
            query = query.eq("approval_status", filters.approval)

        if filters.stock == StockFilter.OUT:
            query = query.lte("stock_quantity", 0)
        elif filters.stock == StockFilter.LOW:
            query = query.gt("stock_quantity", 0).lte("stock_quantity", LOW_STOCK_THRESHOLD)

        if not filters.show_variants:
            query = query.is_("color_name", "null")

        if filters.sort == ProductSort.UPDATED_DESC:
            query = query.order("updated_at", desc=True, nullsfirst=False)
        elif filters.sort == ProductSort.STOCK_ASC:
            query = query.order("stock_quantity", desc=False, nullsfirst=True)
        elif filters.sort == ProductSort.STOCK_DESC:
            query = query.order("stock_quantity", desc=True, nullsfirst=False)
        elif filters.sort == ProductSort.PRICE_DESC:
            query = query.order("price", desc=True, nullsfirst=False)
        elif filters.sort == ProductSort.PRICE_ASC:
            query = query.order("price", desc=False, nullsfirst=True)

        offset = (filters.page - 1) * PAGE_SIZE
        query = query.range(offset, offset + PAGE_SIZE - 1)

        try:
            response = query.execute()
        except Exception as e:
            logger.error(f"Failed to list inventory: {e}")
            raise DatabaseError("load inventory", str(e))

        products = response.data or []
        for product in products:
            product["images"] = normalize_images(product.get("images"))
            product["stock_status"] = stock_status(product.get("stock_quantity"))

        return products, response.count or 0

    # -------------------------------------------------------------------------
    # Single-row edits
    # -------------------------------------------------------------------------

    @staticmethod
    def bulk_update(edit: BulkEditRequest) -> int:
        """
        Apply a bulk edit to the selected products.

        Returns:
            Number of products targeted

        Raises:
            NothingToUpdateError: If no field was chosen
            ValidationFailedError: If a numeric value is invalid
            DatabaseError: If the update fails
        """
        update = build_bulk_update(edit)
        client = SupabaseClient.get_client()

        try:
            client.table("products").update(update).in_("id", edit.ids).execute()
        except Exception as e:
            logger.error(f"Bulk update failed: {e}")
            raise DatabaseError("apply bulk update", str(e))

        logger.info(f"Bulk updated {len(edit.ids)} products: {sorted(update)}")
        publish_inventory_change(edit.ids, "update")
        return len(edit.ids)

    @staticmethod
    def set_flags(product_id: str, **flags: Any) -> dict[str, Any]:
        """
        Quick toggle of is_active / is_featured / approval_status.

        Raises:
            NothingToUpdateError: If no recognised flag is given
            ProductNotFoundError: If no row was updated
        """
        allowed = {"is_active", "is_featured", "approval_status"}
        update = {k: v for k, v in flags.items() if k in allowed and v is not None}
        if not update:
            raise NothingToUpdateError()

        client = SupabaseClient.get_client()
        try:
            response = client.table("products").update(update).eq("id", product_id).execute()
        except Exception as e:
            raise DatabaseError("update product", str(e))

        if not response.data:
            raise ProductNotFoundError(product_id)

        publish_inventory_change([product_id], "update")
        return response.data[0]

    @staticmethod
    def toggle_active(product_id: str, is_active: bool) -> dict[str, Any]:
        """Show or hide a product on the storefront."""
        return InventoryService.set_flags(product_id, is_active=is_active)

    @staticmethod
    def set_approval(product_id: str, status: str) -> dict[str, Any]:
        """Approve, reject or reset a product to pending."""
        return InventoryService.set_flags(product_id, approval_status=status)

    # -------------------------------------------------------------------------
    # Variant Groups
    # -------------------------------------------------------------------------

    @staticmethod
    def load_specs(base_id: str) -> list[SpecRow]:
        """Manual specs of the base product; failures give an empty list."""
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("product_specs")
                .select("label,value,sort_order")
                .eq("product_id", base_id)
                .order("sort_order")
                .execute()
            )
        except Exception as e:
            logger.warning(f"[product_specs] load failed: {e}")
            return []

        return [
            SpecRow(label=str(r.get("label") or ""), value=str(r.get("value") or ""))
            for r in response.data or []
        ]

    @staticmethod
    def load_variant_group(product_id: str) -> VariantGroup:
        """
        Load every colour variant of a product for the grouped editor.

        The base row (no colour) comes first, then colours alphabetically.
        Shared fields (description, size chart, specs) come from the base.

        Raises:
            ProductNotFoundError: If the product doesn't exist
        """
        product = SupabaseClient.fetch_row("products", product_id, PRODUCT_COLUMNS)
        if not product:
            raise ProductNotFoundError(product_id)

        group_id = product.get("color_group_id") or product["id"]
        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("products")
                .select(PRODUCT_COLUMNS)
                .eq("color_group_id", group_id)
                .execute()
            )
            group = response.data or []
        except Exception as e:
            logger.warning(f"Variant group load failed for {group_id}: {e}")
            group = []

        if not group:
            group = [product]

        group.sort(key=lambda p: (p.get("color_name") is not None, str(p.get("color_name") or "").lower()))

        base = next((p for p in group if p.get("color_name") is None), group[0])
        selected_id = product_id if any(p["id"] == product_id for p in group) else base["id"]
        description = str(base.get("description") or "")

        drafts = []
        for item in group:
            price = item.get("price")
            retail = item.get("retail_price")
            drafts.append(VariantDraft(
                id=item["id"],
                stock_quantity=to_number(item.get("stock_quantity")),
                price=to_number(price if price is not None else retail),
                retail_price=to_number(retail if retail is not None else price),
                base_price=to_number(item.get("base_price")),
                min_order_quantity=to_number(item.get("min_order_quantity")) or 1,
                unit=item.get("unit") or "pieces",
                is_active=item.get("is_active") if item.get("is_active") is not None else True,
                is_featured=bool(item.get("is_featured")),
                approval_status=item.get("approval_status") or "approved",
                color_group_id=item.get("color_group_id") or group_id,
                color_name=str(item.get("color_name") or ""),
                color_hex=str(item.get("color_hex") or ""),
                images=normalize_images(item.get("images"))[:MAX_IMAGES],
                description=description or str(item.get("description") or ""),
            ))

        return VariantGroup(
            group_id=group_id,
            base_id=base["id"],
            selected_id=selected_id,
            description=description,
            drafts=drafts,
            size_chart=[o.to_dict() for o in parse_size_chart(base.get("size_chart"))],
            specs=InventoryService.load_specs(base["id"]),
        )

    @staticmethod
    def save_variant_group(request: VariantGroupSave) -> dict[str, Any]:
        """
        Reconcile the grouped editor with the database.

        Steps:
        1. Validate every non-deleted draft ("Default" for the base row,
           the colour name otherwise)
        2. Update existing rows, insert new colours (slug/sku derived from
           the base), sharing description, group id and size chart
        3. Delete removed colours that already exist
        4. Replace the base product's specs (failures only logged)

        Returns:
            Dict with updated, inserted and deleted id lists

        Raises:
            ValidationFailedError: If any draft is invalid
            ProductNotFoundError: If the base product is gone
            DatabaseError: If a product write fails
        """
        base = SupabaseClient.fetch_row("products", request.base_id, PRODUCT_COLUMNS)
        if not base:
            raise ProductNotFoundError(request.base_id)

        base_id = base["id"]
        base_draft = next((d for d in request.drafts if d.id == base_id), None)
        group_id = (base_draft.color_group_id if base_draft else "") or base.get("color_group_id") or base_id

        visible = [d for d in request.drafts if not d.is_deleted]
        for draft in visible:
            is_base = draft.id == base_id
            label = "Default" if is_base else (draft.color_name or "Variant")
            message = validate_variant_draft(draft, label, is_base)
            if message:
                raise ValidationFailedError(message)

        now = utc_now_iso()
        size_chart = sanitize_size_chart(request.size_chart_options())
        client = SupabaseClient.get_client()
        result: dict[str, list[str]] = {"updated": [], "inserted": [], "deleted": []}

        try:
            for draft in visible:
                is_base = draft.id == base_id
                payload = {
                    "description": request.description,
                    "stock_quantity": draft.stock_quantity,
                    "price": draft.price,
                    "retail_price": draft.retail_price,
                    "base_price": draft.base_price,
                    "min_order_quantity": draft.min_order_quantity or 1,
                    "unit": draft.unit or "pieces",
                    "is_active": draft.is_active,
                    "is_featured": draft.is_featured,
                    "approval_status": draft.approval_status or "approved",
                    "images": draft.images[:MAX_IMAGES],
                    "color_group_id": group_id,
                    "color_name": None if is_base else (draft.color_name.strip() or None),
                    "color_hex": None if is_base else (draft.color_hex.strip() or None),
                    "size_chart": size_chart,
                    "updated_at": now,
                }

                if draft.is_unsaved:
                    payload.update(variant_identity(base, draft.color_name))
                    response = client.table("products").insert(payload).execute()
                    if response.data:
                        result["inserted"].append(response.data[0]["id"])
                else:
                    client.table("products").update(payload).eq("id", draft.id).execute()
                    result["updated"].append(draft.id)

            delete_ids = [
                d.id for d in request.drafts
                if d.is_deleted and not d.is_unsaved and d.id != base_id
            ]
            if delete_ids:
                client.table("products").delete().in_("id", delete_ids).execute()
                result["deleted"] = delete_ids

        except Exception as e:
            logger.error(f"Variant group save failed for {group_id}: {e}")
            raise DatabaseError("save product variants", str(e))

        InventoryService.replace_specs(base_id, request.specs)

        logger.info(
            f"Saved variant group {group_id}: {len(result['updated'])} updated, "
            f"{len(result['inserted'])} inserted, {len(result['deleted'])} deleted"
        )
        publish_inventory_change(
            result["updated"] + result["inserted"] + result["deleted"], "save_group"
        )
        return result

    @staticmethod
    def replace_specs(base_id: str, specs: list[SpecRow]) -> None:
        """Replace the base product's specs; errors are logged, not raised."""
        client = SupabaseClient.get_client()
        cleaned = [
            {"label": s.label.strip(), "value": s.value.strip()}
            for s in specs
            if s.label.strip() and s.value.strip()
        ]

        try:
            client.table("product_specs").delete().eq("product_id", base_id).execute()
        except Exception as e:
            logger.warning(f"[product_specs] delete failed: {e}")

        if not cleaned:
            return

        rows = [
            {"product_id": base_id, "label": s["label"], "value": s["value"], "sort_order": i}
            for i, s in enumerate(cleaned)
        ]
        try:
            client.table("product_specs").insert(rows).execute()
        except Exception as e:
            logger.warning(f"[product_specs] insert failed: {e}")

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    @staticmethod
    def upload_images(
        user_id: str,
        product: dict[str, Any],
        files: list[tuple[str, str, bytes]],
        existing: list[str],
    ) -> list[str]:
        """
        Upload product photos and append their public URLs.

        Args:
            user_id: Uploader (first path segment)
            product: Product row (id, slug/name used in the path)
            files: (filename, content_type, bytes) per file
            existing: Current image list

        Returns:
            New image list, capped at MAX_IMAGES

        Raises:
            TooManyImagesError: If the files don't fit in the remaining slots
            InvalidFileTypeError / FileTooLargeError: Per-file validation
            StorageUploadError: If an upload fails
        """
        current = normalize_images(existing)
        remaining = MAX_IMAGES - len(current)
        if len(files) > remaining:
            raise TooManyImagesError(MAX_IMAGES)

        for filename, content_type, content in files:
            StorageService.validate_image(filename, content_type, len(content))

        slug = simple_slug(str(product.get("slug") or product.get("name") or "product")) or "product"
        prefix = f"{user_id}/{product.get('id') or 'unknown'}/{slug}/{int(time.time() * 1000)}"

        uploaded = []
        for index, (filename, content_type, content) in enumerate(files):
            path = f"{prefix}/{index}-{sanitize_file_name(filename)}"
            StorageService.upload(PRODUCT_IMAGES_BUCKET, path, content, content_type)
            uploaded.append(StorageService.get_public_url(PRODUCT_IMAGES_BUCKET, path))

        return normalize_images(current + uploaded)[:MAX_IMAGES]
