# =============================================================================
# app/routers/seller.py - Seller Portal Endpoints
# =============================================================================
# Sellers manage stock, prices and photos of their own products. Every
# query is scoped by seller_id, so a seller can never touch another
# seller's rows.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, File, Path, Query, UploadFile

from app.auth import require_approved_seller, require_seller, AuthUser
from app.dependencies import read_uploads
from core.models.product import PAGE_SIZE, InventoryFilters, SellerProductUpdate
from core.services.seller_service import SellerService, approval_blocked

router = APIRouter()


@router.get("/overview")
async def seller_overview(seller: AuthUser = Depends(require_seller)):
    """Latest products, stock stats and whether approval is still pending."""
    overview = SellerService.overview(str(seller.id))
    return {**overview, "approval_pending": approval_blocked(seller)}


@router.get("/products")
async def list_seller_products(
    seller: AuthUser = Depends(require_seller),
    filters: InventoryFilters = Depends(),
):
    products, total = SellerService.list_products(str(seller.id), filters)
    return {
        "products": products,
        "total": total,
        "page": filters.page,
        "page_size": PAGE_SIZE,
    }


@router.get("/products/{product_id}")
async def get_seller_product(
    product_id: Annotated[str, Path(description="Product UUID")],
    seller: AuthUser = Depends(require_seller),
):
    return SellerService.get_product(str(seller.id), product_id)


@router.put("/products/{product_id}")
async def update_seller_product(
    product_id: Annotated[str, Path(description="Product UUID")],
    request: SellerProductUpdate,
    seller: AuthUser = Depends(require_approved_seller),
):
    """Save stock, prices, unit, visibility and images."""
    return SellerService.update_product(str(seller.id), product_id, request)


@router.post("/products/{product_id}/images")
async def upload_seller_images(
    product_id: Annotated[str, Path(description="Product UUID")],
    files: Annotated[list[UploadFile], File(description="Product photos")],
    existing: Annotated[list[str], Query(description="Current image URLs")] = [],
    seller: AuthUser = Depends(require_approved_seller),
):
    """
    Upload photos and return the new image list.

    The list is not saved until the product is updated.
    """
    SellerService.get_product(str(seller.id), product_id)
    uploads = await read_uploads(files)
    return {"images": SellerService.upload_images(str(seller.id), product_id, uploads, existing)}
