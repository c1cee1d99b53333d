# =============================================================================
# app/routers/support.py - Customer Support Endpoints
# =============================================================================
# Customers open tickets (with optional screenshots), read their own
# threads and reply. A reply re-opens the ticket.
#
# Ticket creation queues the confirmation email; it never delays or fails
# the request.
# =============================================================================

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile

from app.auth import get_current_user, AuthUser
from app.dependencies import read_uploads
from core.models.support import COMMON_TICKET_TYPES, TicketCreateRequest
from core.services.support_service import SupportService

logger = logging.getLogger(__name__)

router = APIRouter()


def _queue_confirmation(ticket_number: str, email: str | None) -> None:
    if not email:
        return
    try:
        from workers.tasks import send_ticket_confirmation_email

        send_ticket_confirmation_email.delay(ticket_number, email)
    except Exception as e:
        logger.warning(f"Could not queue confirmation for {ticket_number}: {e}")


@router.get("/ticket-types")
async def ticket_types():
    return {"types": COMMON_TICKET_TYPES}


@router.get("/tickets")
async def list_my_tickets(user: AuthUser = Depends(get_current_user)):
    tickets = SupportService.list_my_tickets(str(user.id))
    return {"tickets": tickets, "total": len(tickets)}


@router.post("/tickets")
async def create_ticket(
    subject: Annotated[str, Form()],
    message: Annotated[str, Form()],
    type: Annotated[str, Form()] = "inquiry",
    files: Annotated[list[UploadFile] | None, File(description="Up to 5 images")] = None,
    user: AuthUser = Depends(get_current_user),
):
    """
    Open a support ticket.

    Multipart form: type, subject, message and up to 5 image files.
    """
    form = TicketCreateRequest(type=type, subject=subject, message=message)
    uploads = await read_uploads(files)

    result = SupportService.create_ticket(str(user.id), user.email, form, uploads)
    _queue_confirmation(result["ticket_number"], user.email)

    return {**result, "message": "Ticket submitted. We'll get back to you soon."}


@router.get("/tickets/{ticket_id}")
async def get_my_ticket(
    ticket_id: Annotated[str, Path(description="Ticket UUID")],
    user: AuthUser = Depends(get_current_user),
):
    """Ticket, replies and attachments (signed URLs)."""
    return SupportService.get_my_thread(str(user.id), ticket_id)


@router.post("/tickets/{ticket_id}/replies")
async def reply_to_ticket(
    ticket_id: Annotated[str, Path(description="Ticket UUID")],
    message: Annotated[str, Form()],
    files: Annotated[list[UploadFile] | None, File(description="Up to 5 images")] = None,
    user: AuthUser = Depends(get_current_user),
):
    """Reply in the thread; the ticket goes back to "open"."""
    uploads = await read_uploads(files)
    return SupportService.customer_reply(str(user.id), ticket_id, message, uploads)
