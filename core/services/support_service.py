# =============================================================================
# core/services/support_service.py - Support Ticket Business Logic
# =============================================================================
# Handles both sides of the support system:
#
# Admin inbox / detail:
# - List tickets with search, filters, pinned-first sort, stats and SLA flags
# - Auto-close resolved tickets after TICKET_AUTO_CLOSE_DAYS
# - Status / priority / tags updates (single and bulk)
# - Ticket detail: profile, replies, signed attachment URLs, related order
#   and related tickets
# - Admin replies (email is queued by the caller)
#
# Customer portal:
# - Open a ticket (TICKET-<ms> number) with image attachments
# - List own tickets, read a thread, reply (re-opens the ticket)
#
# Every write publishes a change on the support topics so open inboxes
# and threads refetch.
# =============================================================================

import logging
import time
import uuid
from datetime import datetime, timedelta
from typing import Any

from lib.supabase_client import SupabaseClient
from lib.formatting import parse_tags, sanitize_attachment_name
from lib.utils import parse_timestamp, utc_now, utc_now_iso
from core.models.support import (
    COMMON_TICKET_TYPES,
    InboxFilters,
    TicketCreateRequest,
    TicketPatch,
    TicketPriority,
    TicketStatus,
)
from core.services.storage_service import StorageService, SUPPORT_ATTACHMENTS_BUCKET
from app.config import settings
from app.exceptions import (
    DatabaseError,
    ForbiddenError,
    NothingToUpdateError,
    SpraxeException,
    TicketClosedError,
    TicketNotFoundError,
    ValidationFailedError,
)
from app.websocket.broadcast import publish_ticket_change

logger = logging.getLogger(__name__)

MAX_ATTACHMENTS = 5
RELATED_TICKETS_LIMIT = 5

MY_TICKET_COLUMNS = "id,user_id,ticket_number,subject,message,type,status,priority,created_at,updated_at"
RELATED_TICKET_COLUMNS = "id,ticket_number,subject,status,created_at,updated_at"

REPLY_TEMPLATES = [
    {
        "label": "Shipping delay apology",
        "body": (
            "Hi! Thanks for reaching out.\n\n"
            "We're sorry for the delay. We're checking your order status and will update you shortly.\n\n"
            "- Support Team"
        ),
    },
    {
        "label": "Need more info",
        "body": (
            "Hi! To help you faster, could you please share:\n"
            "- Order number\n- Phone number\n- Any screenshots (if applicable)\n\n"
            "Thanks!\n- Support Team"
        ),
    },
    {
        "label": "Resolved confirmation",
        "body": (
            "Hi! We've resolved this issue on our end.\n\n"
            "Please confirm if everything looks good now.\n\n"
            "- Support Team"
        ),
    },
]


# =============================================================================
# Pure helpers
# =============================================================================

def ticket_sla(ticket: dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
    """
    SLA flags for a ticket with an optional sla_due_at.

    Returns:
        {"has_sla", "breached", "at_risk", "label"}; at_risk means due
        within TICKET_SLA_AT_RISK_HOURS and not yet breached.

    Example:
        due in 2h30m -> {"has_sla": True, "breached": False,
                         "at_risk": True, "label": "SLA in 2h 30m"}
    """
    due = parse_timestamp(ticket.get("sla_due_at"))
    if due is None:
        return {"has_sla": False, "breached": False, "at_risk": False, "label": None}

    now = now or utc_now()
    remaining = (due - now).total_seconds()

    if remaining < 0:
        return {"has_sla": True, "breached": True, "at_risk": False, "label": "SLA Breached"}

    hours, rest = divmod(int(remaining), 3600)
    at_risk = 0 < remaining < settings.TICKET_SLA_AT_RISK_HOURS * 3600
    return {
        "has_sla": True,
        "breached": False,
        "at_risk": at_risk,
        "label": f"SLA in {hours}h {rest // 60}m",
    }


def ticket_stats(tickets: list[dict[str, Any]]) -> dict[str, int]:
    """Counts per status for the inbox header."""
    stats = {status.value: 0 for status in TicketStatus}
    for ticket in tickets:
        if ticket.get("status") in stats:
            stats[ticket["status"]] += 1
    return stats


def type_options(tickets: list[dict[str, Any]]) -> list[str]:
    """
    Ticket types for the filter dropdown.

    Common types present in the data come first (in canonical order),
    then any other types; the common list if nothing is present.
    """
    seen: list[str] = []
    for ticket in tickets:
        value = str(ticket.get("type") or "").strip()
        if value and value not in seen:
            seen.append(value)

    present = {s.lower() for s in seen}
    common = [t for t in COMMON_TICKET_TYPES if t in present]
    rest = [s for s in seen if s.lower() not in COMMON_TICKET_TYPES]
    return common + rest or list(COMMON_TICKET_TYPES)


def _ticket_email(ticket: dict[str, Any]) -> str:
    return ticket.get("email") or (ticket.get("profiles") or {}).get("email") or ""


def filter_tickets(
    tickets: list[dict[str, Any]],
    filters: InboxFilters,
    pinned_ids: list[str],
) -> list[dict[str, Any]]:
    """
    Apply inbox filters, then order pinned tickets first and the rest by
    the chosen sort.
    """
    term = filters.q.strip().lower()
    pinned = set(pinned_ids)

    def matches(t: dict[str, Any]) -> bool:
        if term:
            haystack = (
                str(t.get("subject") or ""),
                str(t.get("ticket_number") or ""),
                _ticket_email(t),
                str(t.get("message") or ""),
            )
            if not any(term in value.lower() for value in haystack):
                return False
        if filters.status != "all" and t.get("status") != filters.status:
            return False
        if filters.pinned_only and t.get("id") not in pinned:
            return False
        if filters.priority != "all" and str(t.get("priority") or "").lower() != filters.priority:
            return False
        if filters.type != "all" and str(t.get("type") or "").lower() != filters.type.lower():
            return False
        has_order = bool(t.get("order_id"))
        if filters.order == "with_order" and not has_order:
            return False
        if filters.order == "no_order" and has_order:
            return False
        return True

    def timestamp(t: dict[str, Any], field: str) -> float:
        value = parse_timestamp(t.get(field)) or parse_timestamp(t.get("created_at"))
        return value.timestamp() if value else 0.0

    result = [t for t in tickets if matches(t)]

    if filters.sort == "oldest":
        result.sort(key=lambda t: timestamp(t, "created_at"))
    elif filters.sort == "updated":
        result.sort(key=lambda t: timestamp(t, "updated_at"), reverse=True)
    else:
        result.sort(key=lambda t: timestamp(t, "created_at"), reverse=True)

    # Stable sort keeps the order above within each group
    result.sort(key=lambda t: t.get("id") not in pinned)
    return result


def _patch_payload(status: Any = None, priority: Any = None, tags: list[str] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if status is not None:
        payload["status"] = getattr(status, "value", status)
    if priority is not None:
        payload["priority"] = getattr(priority, "value", priority)
    if tags is not None:
        payload["tags"] = tags
    return payload


class SupportService:
    """
    Service for support ticket operations.

    Provides a clean interface between API routes and database.
    """

    # -------------------------------------------------------------------------
    # Admin Inbox
    # -------------------------------------------------------------------------

    @staticmethod
    def fetch_tickets() -> list[dict[str, Any]]:
        """
        All tickets newest first, with the customer's profile when the join
        is available (falls back to plain rows).
        """
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("support_tickets")
                .select("*, profiles:user_id(full_name,email,phone)")
                .order("created_at", desc=True)
                .execute()
            )
            return response.data or []
        except Exception as e:
            logger.warning(f"Joined ticket fetch failed, falling back: {e}")

        try:
            response = (
                client.table("support_tickets")
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise DatabaseError("load tickets", str(e))
        return response.data or []

    @staticmethod
    def auto_close_resolved(days: int | None = None) -> list[str]:
        """
        Close tickets that have been resolved for more than `days` days.

        Returns:
            IDs of tickets closed (empty on failure)
        """
        days = settings.TICKET_AUTO_CLOSE_DAYS if days is None else days
        cutoff = (utc_now() - timedelta(days=days)).isoformat()
        client = SupabaseClient.get_client()

        try:
            rows = (
                client.table("support_tickets")
                .select("id")
                .eq("status", TicketStatus.RESOLVED.value)
                .lt("updated_at", cutoff)
                .execute()
            ).data or []

            ids = [r["id"] for r in rows]
            if ids:
                (
                    client.table("support_tickets")
                    .update({"status": TicketStatus.CLOSED.value})
                    .in_("id", ids)
                    .execute()
                )
        except Exception as e:
            logger.warning(f"Auto-close failed, ignoring: {e}")
            return []

        if ids:
            logger.info(f"Auto-closed {len(ids)} resolved tickets")
            for ticket_id in ids:
                publish_ticket_change(ticket_id, "ticket_closed")
        return ids

    @staticmethod
    def list_inbox(filters: InboxFilters, pinned_ids: list[str]) -> dict[str, Any]:
        """
        Admin inbox.

        Runs auto-close first (best effort) so stale resolved tickets show
        as closed.

        Returns:
            {"tickets", "total", "stats", "type_options"}; each ticket has
            "sla" flags and a "pinned" marker
        """
        SupportService.auto_close_resolved()
        tickets = SupportService.fetch_tickets()

        now = utc_now()
        pinned = set(pinned_ids)
        displayed = filter_tickets(tickets, filters, pinned_ids)
        for ticket in displayed:
            ticket["sla"] = ticket_sla(ticket, now)
            ticket["pinned"] = ticket.get("id") in pinned

        return {
            "tickets": displayed,
            "total": len(tickets),
            "stats": ticket_stats(tickets),
            "type_options": type_options(tickets),
        }

    @staticmethod
    def update_ticket(ticket_id: str, patch: TicketPatch) -> dict[str, Any]:
        """
        Update status/priority/tags of one ticket.

        Raises:
            NothingToUpdateError: If the patch is empty
            DatabaseError: If the update fails
        """
        payload = _patch_payload(patch.status, patch.priority, patch.tags)
        if not payload:
            raise NothingToUpdateError()
        payload["updated_at"] = utc_now_iso()

        client = SupabaseClient.get_client()
        try:
            client.table("support_tickets").update(payload).eq("id", ticket_id).execute()
        except Exception as e:
            logger.error(f"Ticket update failed for {ticket_id}: {e}")
            raise DatabaseError("update ticket", str(e))

        publish_ticket_change(ticket_id, "ticket_updated", **{k: v for k, v in payload.items() if k != "updated_at"})
        return payload

    @staticmethod
    def set_status(ticket_id: str, status: TicketStatus) -> dict[str, Any]:
        return SupportService.update_ticket(ticket_id, TicketPatch(status=status))

    @staticmethod
    def set_priority(ticket_id: str, priority: TicketPriority) -> dict[str, Any]:
        return SupportService.update_ticket(ticket_id, TicketPatch(priority=priority))

    @staticmethod
    def save_tags(ticket_id: str, tags: list[str] | str) -> list[str]:
        """Save tags given as a list or comma-separated string."""
        cleaned = parse_tags(tags)
        SupportService.update_ticket(ticket_id, TicketPatch(tags=cleaned))
        return cleaned

    @staticmethod
    def bulk_update(ids: list[str], status: Any = None, priority: Any = None) -> int:
        """
        Apply status/priority to several tickets.

        Returns:
            Number of tickets targeted
        """
        payload = _patch_payload(status, priority)
        if not payload:
            raise NothingToUpdateError()
        payload["updated_at"] = utc_now_iso()

        client = SupabaseClient.get_client()
        try:
            client.table("support_tickets").update(payload).in_("id", ids).execute()
        except Exception as e:
            logger.error(f"Bulk ticket update failed: {e}")
            raise DatabaseError("update tickets", str(e))

        for ticket_id in ids:
            publish_ticket_change(ticket_id, "ticket_updated")
        return len(ids)

    # -------------------------------------------------------------------------
    # Ticket Detail
    # -------------------------------------------------------------------------

    @staticmethod
    def get_ticket(ticket_id: str, with_profile: bool = True) -> dict[str, Any]:
        """
        Fetch one ticket, with the full profile of its owner when possible.

        Raises:
            TicketNotFoundError: If the ticket doesn't exist
        """
        if with_profile:
            try:
                ticket = SupabaseClient.fetch_row("support_tickets", ticket_id, "*, profiles:user_id(*)")
                if ticket:
                    return ticket
            except Exception as e:
                logger.warning(f"Ticket profile join failed, falling back: {e}")

        ticket = SupabaseClient.fetch_row("support_tickets", ticket_id)
        if not ticket:
            raise TicketNotFoundError(ticket_id)
        return ticket

    @staticmethod
    def list_replies(ticket_id: str) -> list[dict[str, Any]]:
        """Replies oldest first, with author name and role."""
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("ticket_replies")
                .select("id,ticket_id,user_id,message,created_at, profiles:user_id(full_name,role)")
                .eq("ticket_id", ticket_id)
                .order("created_at")
                .execute()
            )
        except Exception as e:
            raise DatabaseError("load replies", str(e))
        return response.data or []

    @staticmethod
    def list_attachments(ticket_id: str) -> list[dict[str, Any]]:
        """Attachments oldest first, each with a 1 hour signed "url"."""
        client = SupabaseClient.get_client()
        try:
            rows = (
                client.table("support_attachments")
                .select("*")
                .eq("ticket_id", ticket_id)
                .order("created_at")
                .execute()
            ).data or []
        except Exception as e:
            raise DatabaseError("load attachments", str(e))

        for row in rows:
            row["url"] = StorageService.create_signed_url(SUPPORT_ATTACHMENTS_BUCKET, row.get("file_path") or "")
        return rows

    @staticmethod
    def related_tickets(ticket: dict[str, Any]) -> list[dict[str, Any]]:
        """Up to 5 other tickets from the same user, else the same email."""
        client = SupabaseClient.get_client()
        query = client.table("support_tickets").select(RELATED_TICKET_COLUMNS)

        if ticket.get("user_id"):
            query = query.eq("user_id", ticket["user_id"])
        elif _ticket_email(ticket):
            query = query.eq("email", _ticket_email(ticket))
        else:
            return []

        try:
            response = (
                query.neq("id", ticket["id"])
                .order("created_at", desc=True)
                .limit(RELATED_TICKETS_LIMIT)
                .execute()
            )
        except Exception as e:
            logger.warning(f"Related tickets lookup failed: {e}")
            return []
        return response.data or []

    @staticmethod
    def get_ticket_detail(ticket_id: str) -> dict[str, Any]:
        """
        Everything the admin ticket page shows.

        Returns:
            {"ticket", "tags", "sla", "replies", "attachments",
             "order", "related", "templates"}
        """
        ticket = SupportService.get_ticket(ticket_id)

        order = None
        if ticket.get("order_id"):
            try:
                order = SupabaseClient.fetch_row("orders", ticket["order_id"])
            except Exception as e:
                logger.warning(f"Related order lookup failed: {e}")

        return {
            "ticket": ticket,
            "tags": parse_tags(ticket.get("tags")),
            "sla": ticket_sla(ticket),
            "replies": SupportService.list_replies(ticket_id),
            "attachments": SupportService.list_attachments(ticket_id),
            "order": order,
            "related": SupportService.related_tickets(ticket),
            "templates": REPLY_TEMPLATES,
        }

    @staticmethod
    def admin_reply(
        ticket_id: str,
        admin_id: str,
        message: str,
        mark_resolved: bool = True,
    ) -> dict[str, Any]:
        """
        Add an admin reply to a ticket.

        Args:
            ticket_id: Ticket UUID
            admin_id: Replying admin
            message: Reply text
            mark_resolved: Set status to resolved after replying

        Returns:
            {"reply", "ticket", "customer_email"}; the caller queues the
            notification email when wanted

        Raises:
            ValidationFailedError: If the message is empty
            TicketClosedError: If the ticket is closed
        """
        text = (message or "").strip()
        if not text:
            raise ValidationFailedError("Reply message is required.", field="message")

        ticket = SupportService.get_ticket(ticket_id)
        if ticket.get("status") == TicketStatus.CLOSED.value:
            raise TicketClosedError(ticket_id)

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("ticket_replies")
                .insert({"ticket_id": ticket_id, "user_id": admin_id, "message": text})
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to save reply on {ticket_id}: {e}")
            raise DatabaseError("send reply", str(e))

        if mark_resolved:
            try:
                (
                    client.table("support_tickets")
                    .update({"status": TicketStatus.RESOLVED.value, "updated_at": utc_now_iso()})
                    .eq("id", ticket_id)
                    .execute()
                )
                ticket["status"] = TicketStatus.RESOLVED.value
            except Exception as e:
                raise DatabaseError("resolve ticket", str(e))

        reply = (response.data or [{}])[0]
        publish_ticket_change(ticket_id, "reply_added", reply_id=reply.get("id"), status=ticket.get("status"))

        return {"reply": reply, "ticket": ticket, "customer_email": _ticket_email(ticket)}

    # -------------------------------------------------------------------------
    # Customer Portal
    # -------------------------------------------------------------------------

    @staticmethod
    def upload_attachments(
        user_id: str,
        ticket_id: str,
        files: list[tuple[str, str, bytes]],
        reply_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        Store up to 5 image attachments on a ticket (or one of its replies).

        Non-image files are skipped. Path: {user}/{ticket}/{uuid}-{name}

        Raises:
            StorageUploadError: If an upload fails
            DatabaseError: If the attachment row can't be saved
        """
        client = SupabaseClient.get_client()
        saved = []

        for filename, content_type, content in files[:MAX_ATTACHMENTS]:
            if not (content_type or "").startswith("image/"):
                continue

            path = f"{user_id}/{ticket_id}/{uuid.uuid4()}-{sanitize_attachment_name(filename)}"
            StorageService.upload(SUPPORT_ATTACHMENTS_BUCKET, path, content, content_type)

            row = {
                "ticket_id": ticket_id,
                "reply_id": reply_id,
                "uploader_id": user_id,
                "file_path": path,
                "file_name": filename,
                "content_type": content_type,
                "size": len(content),
            }
            try:
                client.table("support_attachments").insert(row).execute()
            except Exception as e:
                raise DatabaseError("save attachment", str(e))
            saved.append(row)

        return saved

    @staticmethod
    def create_ticket(
        user_id: str,
        email: str | None,
        form: TicketCreateRequest,
        files: list[tuple[str, str, bytes]] | None = None,
    ) -> dict[str, Any]:
        """
        Open a new ticket.

        Returns:
            {"id", "ticket_number", "attachments"}

        Raises:
            ValidationFailedError: If subject or message is missing
        """
        subject = form.subject.strip()
        message = form.message.strip()
        if not subject or not message:
            raise ValidationFailedError("Please add a subject and message.")

        ticket_number = f"TICKET-{int(time.time() * 1000)}"
        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("support_tickets")
                .insert({
                    "user_id": user_id,
                    "ticket_number": ticket_number,
                    "email": email,
                    "type": form.type or "inquiry",
                    "subject": subject,
                    "message": message,
                    "status": TicketStatus.OPEN.value,
                    "priority": TicketPriority.MEDIUM.value,
                })
                .execute()
            )
        except Exception as e:
            logger.error(f"Ticket creation failed for {user_id}: {e}")
            raise DatabaseError("submit ticket", str(e))

        if not response.data:
            raise DatabaseError("submit ticket", "No data returned from insert")

        ticket_id = response.data[0]["id"]
        attachments = SupportService.upload_attachments(user_id, ticket_id, files or [])

        logger.info(f"Created ticket {ticket_number} for {user_id}")
        publish_ticket_change(ticket_id, "ticket_created", ticket_number=ticket_number)

        return {"id": ticket_id, "ticket_number": ticket_number, "attachments": attachments}

    @staticmethod
    def list_my_tickets(user_id: str) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("support_tickets")
                .select(MY_TICKET_COLUMNS)
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise DatabaseError("load tickets", str(e))
        return response.data or []

    @staticmethod
    def get_owned_ticket(user_id: str, ticket_id: str) -> dict[str, Any]:
        """
        Raises:
            TicketNotFoundError: If missing
            ForbiddenError: If owned by someone else
        """
        ticket = SupabaseClient.fetch_row("support_tickets", ticket_id, MY_TICKET_COLUMNS)
        if not ticket:
            raise TicketNotFoundError(ticket_id)
        if str(ticket.get("user_id")) != str(user_id):
            raise ForbiddenError("You can only view your own tickets")
        return ticket

    @staticmethod
    def get_my_thread(user_id: str, ticket_id: str) -> dict[str, Any]:
        """
        Ticket, replies and attachments for the customer's own ticket.

        Attachments are split into those on the ticket itself and those
        on each reply (keyed by reply id).
        """
        ticket = SupportService.get_owned_ticket(user_id, ticket_id)
        attachments = SupportService.list_attachments(ticket_id)

        by_reply: dict[str, list[dict[str, Any]]] = {}
        for attachment in attachments:
            if attachment.get("reply_id"):
                by_reply.setdefault(attachment["reply_id"], []).append(attachment)

        return {
            "ticket": ticket,
            "replies": SupportService.list_replies(ticket_id),
            "attachments": [a for a in attachments if not a.get("reply_id")],
            "reply_attachments": by_reply,
        }

    @staticmethod
    def customer_reply(
        user_id: str,
        ticket_id: str,
        message: str,
        files: list[tuple[str, str, bytes]] | None = None,
    ) -> dict[str, Any]:
        """
        Add a customer reply; the ticket goes back to "open".

        Raises:
            ValidationFailedError: If the message is empty
            TicketClosedError: If the ticket is closed
        """
        text = (message or "").strip()
        if not text:
            raise ValidationFailedError("Reply message is required.", field="message")

        ticket = SupportService.get_owned_ticket(user_id, ticket_id)
        if ticket.get("status") == TicketStatus.CLOSED.value:
            raise TicketClosedError(ticket_id)

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("ticket_replies")
                .insert({"ticket_id": ticket_id, "user_id": user_id, "message": text})
                .execute()
            )
            reply = (response.data or [{}])[0]

            attachments = SupportService.upload_attachments(user_id, ticket_id, files or [], reply_id=reply.get("id"))

            (
                client.table("support_tickets")
                .update({"status": TicketStatus.OPEN.value, "updated_at": utc_now_iso()})
                .eq("id", ticket_id)
                .execute()
            )
        except SpraxeException:
            raise
        except Exception as e:
            logger.error(f"Customer reply failed on {ticket_id}: {e}")
            raise DatabaseError("send reply", str(e))

        publish_ticket_change(ticket_id, "reply_added", reply_id=reply.get("id"), status=TicketStatus.OPEN.value)
        return {"reply": reply, "attachments": attachments}
