# =============================================================================
# app/routers/catalog.py - Storefront Catalog Endpoints
# =============================================================================
# Public reads for the homepage, search box and category sections, plus the
# signed-in customer's recently viewed list.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query

from app.auth import get_current_user, AuthUser
from core.services.catalog_service import CatalogService
from lib.user_state import UserState

router = APIRouter()


# =============================================================================
# Public Endpoints
# =============================================================================

@router.get("/home")
async def get_homepage():
    """
    Homepage data in one call.

    Featured products, curated categories, hero and info-carousel slides,
    new arrivals, the mid banner and best sellers (with sold quantities).
    """
    return await CatalogService.get_homepage()


@router.get("/search-suggest")
async def search_suggest(
    q: Annotated[str, Query(description="Search text (2+ characters)")] = "",
):
    """Up to 6 products and 5 categories matching `q`."""
    return CatalogService.search_suggest(q)


@router.get("/categories/{category_id}/products")
async def category_products(
    category_id: Annotated[str, Path(description="Category id")],
):
    """Newest products of a category and its sub-categories."""
    return {"products": CatalogService.category_products(category_id)}


@router.get("/products")
async def resolve_products(
    ids: Annotated[list[str], Query(description="Product or colour group ids, in display order")] = [],
):
    """Load products for a list of ids (e.g. a guest's local wishlist)."""
    return {"products": CatalogService.resolve_products(ids)}


# =============================================================================
# Recently Viewed
# =============================================================================

@router.get("/recently-viewed")
async def get_recently_viewed(user: AuthUser = Depends(get_current_user)):
    """Recently viewed products, most recent first."""
    ids = UserState.get_recently_viewed(str(user.id))
    return {"ids": ids, "products": CatalogService.resolve_products(ids)}


@router.post("/recently-viewed/{product_id}")
async def record_view(
    product_id: Annotated[str, Path(description="Product or colour group id")],
    user: AuthUser = Depends(get_current_user),
):
    """Record a product view."""
    return {"ids": UserState.record_view(str(user.id), product_id)}


@router.delete("/recently-viewed")
async def clear_recently_viewed(user: AuthUser = Depends(get_current_user)):
    return {"ids": UserState.clear_recently_viewed(str(user.id))}
