# =============================================================================
# app/routers/admin_orders.py - Admin Order Endpoints
# =============================================================================
# Order list with search/sort and KPIs, status changes and invoices.
# Moving an order to "processing" queues the invoice email to the customer.
# =============================================================================

import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Path, Query

from app.auth import require_admin, AuthUser
from core.models.order import OrderStatus, OrderStatusUpdate
from core.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def list_orders(
    admin: AuthUser = Depends(require_admin),
    status: Annotated[str, Query(description="Order status or 'all'")] = "all",
    q: Annotated[str, Query(description="Order number, customer, phone, payment or TRX id")] = "",
    sort: Annotated[Literal["newest", "oldest", "highest", "lowest"], Query()] = "newest",
):
    return OrderService.list_admin_orders(status=status, search=q, sort=sort)


@router.patch("/{order_id}/status")
async def update_status(
    order_id: Annotated[str, Path(description="Order UUID")],
    request: OrderStatusUpdate,
    admin: AuthUser = Depends(require_admin),
):
    """Change status; "processing" also emails the invoice when possible."""
    result = OrderService.update_order_status(order_id, request.status)

    invoice_task_id = None
    if request.status == OrderStatus.PROCESSING and result["customer_email"]:
        try:
            from workers.tasks import send_order_invoice_email

            invoice_task_id = send_order_invoice_email.delay(order_id, result["customer_email"]).id
        except Exception as e:
            logger.warning(f"Could not queue invoice email for {order_id}: {e}")

    return {**result, "invoice_task_id": invoice_task_id}


@router.get("/{order_id}/invoice")
async def get_invoice(
    order_id: Annotated[str, Path(description="Order UUID")],
    admin: AuthUser = Depends(require_admin),
):
    return OrderService.get_invoice_data(order_id)
