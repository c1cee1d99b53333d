# =============================================================================
# app/routers/orders.py - Checkout and Order Endpoints
# =============================================================================
# - POST /orders: checkout for signed-in customers and guests
# - POST /orders/track: public order tracking
# - GET /orders/mine: the customer's order history
# - GET /orders/{id}/invoice: invoice for the owner (or an admin)
#
# Checkout and tracking are public, so both are rate limited per IP.
# =============================================================================

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query

from app.auth import get_current_user, get_current_user_optional, resolve_role, AuthUser
from app.dependencies import rate_limited
from app.exceptions import ForbiddenError
from core.models.order import PlaceOrderRequest, TrackOrderRequest
from core.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", dependencies=[Depends(rate_limited("place-order"))])
async def place_order(
    request: PlaceOrderRequest,
    user: Optional[AuthUser] = Depends(get_current_user_optional),
):
    """
    Place an order.

    Signed-in customers use the contact details on their profile; guests
    send them in `guest`. Prices come from the products table.

    Returns the order id and number for the confirmation page.
    """
    result = OrderService.place_order(request, str(user.id) if user else None)
    return {**result, "message": "Order placed successfully"}


@router.post("/track", dependencies=[Depends(rate_limited("track-order"))])
async def track_order(request: TrackOrderRequest):
    """
    Track an order by number plus the phone or email used at checkout.

    Mismatched contact details give the same 404 as an unknown number.
    """
    return {"order": OrderService.track_order(request.order_number, request.contact)}


@router.get("/mine")
async def list_my_orders(
    user: AuthUser = Depends(get_current_user),
    status: Annotated[str, Query(description="Order status or 'all'")] = "all",
    q: Annotated[str, Query(description="Search order number or product name")] = "",
):
    orders = OrderService.list_customer_orders(str(user.id), status=status, search=q)
    return {"orders": orders, "total": len(orders)}


@router.get("/{order_id}/invoice")
async def get_invoice(
    order_id: Annotated[str, Path(description="Order UUID")],
    user: AuthUser = Depends(get_current_user),
):
    """Invoice data; customers may only open their own orders."""
    owner = OrderService.get_order_owner(order_id)
    if owner != str(user.id) and not resolve_role(user).is_admin:
        logger.warning(f"Invoice access denied: user {user.id} on order {order_id}")
        raise ForbiddenError("You can only view invoices for your own orders")
    return OrderService.get_invoice_data(order_id)
