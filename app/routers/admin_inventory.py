# =============================================================================
# app/routers/admin_inventory.py - Admin Inventory Endpoints
# =============================================================================
# Product list with filters, bulk edit, quick toggles, the grouped colour
# variant editor and image uploads.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, File, Path, Query, UploadFile
from pydantic import BaseModel

from app.auth import require_admin, AuthUser
from app.dependencies import read_uploads
from app.exceptions import ProductNotFoundError
from core.models.product import (
    PAGE_SIZE,
    ApprovalStatus,
    BulkEditRequest,
    HotlinkRequest,
    InventoryFilters,
    VariantGroupSave,
)
from core.services.inventory_service import InventoryService, PRODUCT_COLUMNS, add_hotlinks
from lib.supabase_client import SupabaseClient

router = APIRouter()


class ActiveToggle(BaseModel):
    is_active: bool


class FeaturedToggle(BaseModel):
    is_featured: bool


class ApprovalUpdate(BaseModel):
    approval_status: ApprovalStatus


# =============================================================================
# List and Bulk Edit
# =============================================================================

@router.get("")
async def list_inventory(
    admin: AuthUser = Depends(require_admin),
    filters: InventoryFilters = Depends(),
):
    """Paginated products with a stock_status of ok / low / out."""
    products, total = InventoryService.list_products(filters)
    return {
        "products": products,
        "total": total,
        "page": filters.page,
        "page_size": PAGE_SIZE,
    }


@router.post("/bulk")
async def bulk_edit(
    request: BulkEditRequest,
    admin: AuthUser = Depends(require_admin),
):
    """Apply only the fields marked as changed to every selected product."""
    count = InventoryService.bulk_update(request)
    return {"updated": count, "message": f"Updated {count} products"}


# =============================================================================
# Quick Toggles
# =============================================================================

@router.patch("/{product_id}/active")
async def set_active(
    product_id: Annotated[str, Path(description="Product UUID")],
    request: ActiveToggle,
    admin: AuthUser = Depends(require_admin),
):
    return InventoryService.toggle_active(product_id, request.is_active)


@router.patch("/{product_id}/featured")
async def set_featured(
    product_id: Annotated[str, Path(description="Product UUID")],
    request: FeaturedToggle,
    admin: AuthUser = Depends(require_admin),
):
    return InventoryService.set_flags(product_id, is_featured=request.is_featured)


@router.patch("/{product_id}/approval")
async def set_approval(
    product_id: Annotated[str, Path(description="Product UUID")],
    request: ApprovalUpdate,
    admin: AuthUser = Depends(require_admin),
):
    return InventoryService.set_approval(product_id, request.approval_status.value)


# =============================================================================
# Variant Groups
# =============================================================================

@router.get("/{product_id}/variants")
async def get_variant_group(
    product_id: Annotated[str, Path(description="Any product in the group")],
    admin: AuthUser = Depends(require_admin),
):
    """All colour variants of the product's group, base first."""
    return InventoryService.load_variant_group(product_id)


@router.put("/variants")
async def save_variant_group(
    request: VariantGroupSave,
    admin: AuthUser = Depends(require_admin),
):
    """
    Save the grouped editor.

    Updates existing variants, inserts new colours and deletes removed
    ones; description, size chart and specs are copied to every variant.
    """
    result = InventoryService.save_variant_group(request)
    return {**result, "message": "Variants saved"}


# =============================================================================
# Images
# =============================================================================

@router.post("/{product_id}/images")
async def upload_images(
    product_id: Annotated[str, Path(description="Product UUID")],
    files: Annotated[list[UploadFile], File(description="Product photos")],
    existing: Annotated[list[str], Query(description="Current image URLs of the variant")] = [],
    admin: AuthUser = Depends(require_admin),
):
    """Upload photos and return the variant's new image list (max 5)."""
    product = SupabaseClient.fetch_row("products", product_id, PRODUCT_COLUMNS)
    if not product:
        raise ProductNotFoundError(product_id)

    uploads = await read_uploads(files)
    images = InventoryService.upload_images(str(admin.id), product, uploads, existing)
    return {"images": images}


@router.post("/images/hotlinks")
async def add_image_hotlinks(
    request: HotlinkRequest,
    admin: AuthUser = Depends(require_admin),
):
    """Append external http(s) image URLs to an image list."""
    return {"images": add_hotlinks(request.images, request.urls)}
