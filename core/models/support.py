# =============================================================================
# core/models/support.py - Support Ticket Schemas
# =============================================================================
# These models define the API contract for the support system:
# - InboxFilters: admin inbox search/filter/sort
# - TicketPatch / BulkTicketPatch: status, priority, tags updates
# - AdminReplyRequest / CustomerReplyRequest: thread messages
# - TicketCreateRequest: customer opens a ticket
#
# Ticket lifecycle: open -> in_progress -> resolved -> closed.
# A customer reply re-opens the ticket; resolved tickets are closed
# automatically after a few days.
# =============================================================================

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class TicketStatus(str, Enum):
    """support_tickets.status values."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


COMMON_TICKET_TYPES = ["inquiry", "complaint", "refund", "return", "delivery", "payment"]


class InboxFilters(BaseModel):
    """
    Admin inbox filters.

    Example:
        {"q": "refund", "status": "open", "order": "with_order", "sort": "updated"}
    """
    q: str = ""
    status: Literal["all", "open", "in_progress", "resolved", "closed"] = "all"
    priority: Literal["all", "low", "medium", "high", "urgent"] = "all"
    type: str = "all"
    order: Literal["all", "with_order", "no_order"] = "all"
    pinned_only: bool = False
    sort: Literal["newest", "oldest", "updated"] = "newest"


class TicketPatch(BaseModel):
    """Fields an admin may change on a ticket. None means unchanged."""
    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    tags: list[str] | None = None


class BulkTicketPatch(BaseModel):
    """Apply a status/priority change to several tickets."""
    ids: list[str] = Field(..., min_length=1)
    status: TicketStatus | None = None
    priority: TicketPriority | None = None


class PinRequest(BaseModel):
    ids: list[str] = Field(..., min_length=1)
    pinned: bool = True


class NoteRequest(BaseModel):
    text: str = Field(..., min_length=1)


class TagsRequest(BaseModel):
    """Tags as a list or the raw comma-separated input."""
    tags: list[str] | str = ""


class AdminReplyRequest(BaseModel):
    """
    Admin reply in a ticket thread.

    Example:
        {"message": "We've shipped a replacement.", "send_email": true, "mark_resolved": true}
    """
    message: str = Field(..., min_length=1)
    send_email: bool = True
    mark_resolved: bool = True


class TicketCreateRequest(BaseModel):
    """Customer support form (attachments are sent as multipart files)."""
    type: str = "inquiry"
    subject: str = ""
    message: str = ""


class SupportReplyNotification(BaseModel):
    """Body of the support reply email endpoint."""
    ticket_id: str | None = Field(default=None, alias="ticketId")
    customer_email: str | None = Field(default=None, alias="customerEmail")
    subject: str | None = None
    message: str | None = None
    agent_name: str | None = Field(default=None, alias="agentName")

    model_config = {"populate_by_name": True}


class TicketConfirmationNotification(BaseModel):
    """Body of the ticket confirmation email endpoint."""
    ticket_number: str | None = Field(default=None, alias="ticketNumber")
    customer_email: str | None = Field(default=None, alias="customerEmail")

    model_config = {"populate_by_name": True}
