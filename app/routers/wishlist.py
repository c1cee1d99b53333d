# =============================================================================
# app/routers/wishlist.py - Wishlist Endpoints
# =============================================================================
# The wishlist is a per-user id list kept in Redis. It is a convenience
# list only: products that disappear are silently dropped on read.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from app.auth import get_current_user, AuthUser
from core.services.catalog_service import CatalogService
from lib.user_state import UserState

router = APIRouter()


@router.get("")
async def get_wishlist(user: AuthUser = Depends(get_current_user)):
    """Wishlist ids and the products they resolve to."""
    ids = UserState.get_wishlist(str(user.id))
    return {"ids": ids, "products": CatalogService.resolve_products(ids, limit=len(ids) or 1)}


@router.post("/{product_id}/toggle")
async def toggle_wishlist(
    product_id: Annotated[str, Path(description="Product id")],
    user: AuthUser = Depends(get_current_user),
):
    """Add the product if absent, remove it if present."""
    ids, in_wishlist = UserState.toggle_wishlist(str(user.id), product_id)
    return {"ids": ids, "in_wishlist": in_wishlist}


@router.put("/{product_id}")
async def add_to_wishlist(
    product_id: Annotated[str, Path(description="Product id")],
    user: AuthUser = Depends(get_current_user),
):
    return {"ids": UserState.add_to_wishlist(str(user.id), product_id)}


@router.delete("/{product_id}")
async def remove_from_wishlist(
    product_id: Annotated[str, Path(description="Product id")],
    user: AuthUser = Depends(get_current_user),
):
    return {"ids": UserState.remove_from_wishlist(str(user.id), product_id)}


@router.delete("")
async def clear_wishlist(user: AuthUser = Depends(get_current_user)):
    return {"ids": UserState.clear_wishlist(str(user.id))}
