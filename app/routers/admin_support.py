# =============================================================================
# app/routers/admin_support.py - Admin Support Inbox Endpoints
# =============================================================================
# Inbox (filters, SLA flags, pins), ticket detail with internal notes,
# status/priority/tag edits, bulk actions and replies.
#
# Replies can notify the customer by email; the email is queued on the
# worker and never delays or fails the reply itself.
# =============================================================================

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path

from app.auth import require_admin, AuthUser
from core.models.support import (
    AdminReplyRequest,
    BulkTicketPatch,
    InboxFilters,
    NoteRequest,
    PinRequest,
    TagsRequest,
    TicketPatch,
)
from core.services.support_service import REPLY_TEMPLATES, SupportService
from lib.user_state import UserState

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Inbox
# =============================================================================

@router.get("/tickets")
async def list_inbox(
    admin: AuthUser = Depends(require_admin),
    filters: InboxFilters = Depends(),
):
    """
    Filtered inbox.

    Pinned tickets come first. Resolved tickets older than the auto-close
    window are closed before listing.
    """
    pinned = UserState.get_pinned_tickets(str(admin.id))
    return SupportService.list_inbox(filters, pinned)


@router.post("/tickets/bulk")
async def bulk_update(
    request: BulkTicketPatch,
    admin: AuthUser = Depends(require_admin),
):
    count = SupportService.bulk_update(request.ids, status=request.status, priority=request.priority)
    return {"updated": count}


@router.post("/tickets/pins")
async def set_pins(
    request: PinRequest,
    admin: AuthUser = Depends(require_admin),
):
    """Pin or unpin tickets for this admin."""
    return {"pinned": UserState.set_pinned(str(admin.id), request.ids, request.pinned)}


@router.post("/tickets/auto-close")
async def auto_close(admin: AuthUser = Depends(require_admin)):
    """Close resolved tickets past the auto-close window now."""
    closed = SupportService.auto_close_resolved()
    return {"closed": closed, "count": len(closed)}


@router.get("/templates")
async def reply_templates(admin: AuthUser = Depends(require_admin)):
    return {"templates": REPLY_TEMPLATES}


# =============================================================================
# Single Ticket
# =============================================================================

@router.get("/tickets/{ticket_id}")
async def get_ticket(
    ticket_id: Annotated[str, Path(description="Ticket UUID")],
    admin: AuthUser = Depends(require_admin),
):
    """Ticket with replies, attachments, linked order, related tickets and notes."""
    detail = SupportService.get_ticket_detail(ticket_id)
    pinned = UserState.get_pinned_tickets(str(admin.id))
    return {
        **detail,
        "notes": UserState.get_ticket_notes(ticket_id),
        "pinned": ticket_id in pinned,
    }


@router.patch("/tickets/{ticket_id}")
async def update_ticket(
    ticket_id: Annotated[str, Path(description="Ticket UUID")],
    request: TicketPatch,
    admin: AuthUser = Depends(require_admin),
):
    return SupportService.update_ticket(ticket_id, request)


@router.put("/tickets/{ticket_id}/tags")
async def save_tags(
    ticket_id: Annotated[str, Path(description="Ticket UUID")],
    request: TagsRequest,
    admin: AuthUser = Depends(require_admin),
):
    """Replace tags (list or comma-separated string)."""
    return {"tags": SupportService.save_tags(ticket_id, request.tags)}


@router.post("/tickets/{ticket_id}/notes")
async def add_note(
    ticket_id: Annotated[str, Path(description="Ticket UUID")],
    request: NoteRequest,
    admin: AuthUser = Depends(require_admin),
):
    """Internal note, visible to admins only."""
    return {"notes": UserState.add_ticket_note(ticket_id, request.text, admin.display_name)}


@router.post("/tickets/{ticket_id}/reply")
async def reply_to_ticket(
    ticket_id: Annotated[str, Path(description="Ticket UUID")],
    request: AdminReplyRequest,
    admin: AuthUser = Depends(require_admin),
):
    """
    Reply to the customer.

    Marks the ticket resolved unless `mark_resolved` is false. When
    `send_email` is set and the customer has an email, the reply email
    is queued.
    """
    result = SupportService.admin_reply(
        ticket_id,
        str(admin.id),
        request.message,
        mark_resolved=request.mark_resolved,
    )

    email_task_id = None
    customer_email = result["customer_email"]
    if request.send_email and customer_email:
        try:
            from workers.tasks import send_support_reply_email

            task = send_support_reply_email.delay(
                ticket_id,
                customer_email,
                result["ticket"].get("subject") or "",
                request.message,
                admin.display_name,
            )
            email_task_id = task.id
        except Exception as e:
            logger.warning(f"Could not queue reply email for {ticket_id}: {e}")

    return {
        "reply": result["reply"],
        "status": result["ticket"].get("status"),
        "email_task_id": email_task_id,
        "email_skipped": request.send_email and not customer_email,
    }
