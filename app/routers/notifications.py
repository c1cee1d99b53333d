# =============================================================================
# app/routers/notifications.py - Transactional Email Endpoints
# =============================================================================
# Send customer emails synchronously through Brevo and report the result:
# - POST /support/reply: admin reply notification (admins only)
# - POST /support/confirm: "ticket received" confirmation
# - POST /orders/{id}/invoice-email: invoice for an order (admins only)
#
# The same emails are normally queued from the support/order flows; these
# endpoints exist for manual resends.
# =============================================================================

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path

from app.auth import get_current_user, require_admin, AuthUser
from app.exceptions import ValidationFailedError
from core.models.order import InvoiceEmailRequest
from core.models.support import SupportReplyNotification, TicketConfirmationNotification
from core.services.email_service import EmailService
from core.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/support/reply")
async def send_support_reply(
    request: SupportReplyNotification,
    admin: AuthUser = Depends(require_admin),
):
    """
    Email a support reply to the customer.

    Returns 400 when email or message is missing, 500 when Brevo is not
    configured and 502 when Brevo rejects the request.
    """
    message = EmailService.build_support_reply(
        customer_email=request.customer_email or "",
        ticket_id=request.ticket_id,
        subject=request.subject,
        message=request.message or "",
        agent_name=request.agent_name or admin.display_name,
    )
    message_id = EmailService.send(message)
    return {"success": True, "message_id": message_id}


@router.post("/support/confirm")
async def send_ticket_confirmation(
    request: TicketConfirmationNotification,
    user: AuthUser = Depends(get_current_user),
):
    """Email the "ticket received" confirmation."""
    message = EmailService.build_ticket_confirmation(
        request.ticket_number or "",
        request.customer_email or user.email or "",
    )
    message_id = EmailService.send(message)
    return {"success": True, "message_id": message_id}


@router.post("/orders/{order_id}/invoice-email")
async def send_invoice_email(
    order_id: Annotated[str, Path(description="Order UUID")],
    request: InvoiceEmailRequest,
    admin: AuthUser = Depends(require_admin),
):
    """Build the invoice (creating its record if needed) and email it."""
    if not request.email.strip():
        raise ValidationFailedError("Missing required fields", field="email")
    invoice = OrderService.get_invoice_data(order_id)
    message_id = EmailService.send(EmailService.build_order_invoice(invoice, request.email))
    logger.info(f"Invoice {invoice['invoice_number']} emailed for order {order_id}")
    return {"success": True, "message_id": message_id, "invoice_number": invoice["invoice_number"]}
