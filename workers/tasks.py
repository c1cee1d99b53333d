# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Background work queued by the API or fired by beat.
#
# Tasks:
# - send_support_reply_email: "we replied" email after an admin reply
# - send_ticket_confirmation_email: receipt for a newly opened ticket
# - send_order_invoice_email: invoice email when an order starts processing
# - auto_close_resolved_tickets: close tickets resolved for too long (beat)
# - save_monthly_report_snapshot: persist last month's sales report (beat)
# =============================================================================

import logging
from datetime import date
from typing import Any

from celery import shared_task

from app.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)


# =============================================================================
# Email Tasks
# =============================================================================

def _deliver(task, message) -> dict[str, Any]:
    """Send through Brevo, retrying transient provider failures."""
    from core.services.email_service import EmailService

    try:
        message_id = EmailService.send(message)
    except EmailDeliveryError as e:
        # 4xx other than rate limiting will not succeed on retry
        status = e.details.get("provider_status", 0)
        if status == 0 or status == 429 or status >= 500:
            logger.warning(f"Email to {message.to_email} failed, retrying: {e.message}")
            raise task.retry(exc=e)
        raise

    return {"sent": True, "message_id": message_id, "to": message.to_email}


@shared_task(bind=True, name="workers.tasks.send_support_reply_email")
def send_support_reply_email(
    self,
    ticket_id: str,
    customer_email: str,
    subject: str,
    message: str,
    agent_name: str | None = None,
) -> dict[str, Any]:
    """
    Email the customer that support answered their ticket.

    Args:
        ticket_id: Ticket the reply belongs to
        customer_email: Recipient
        subject: Ticket subject (used in the email subject line)
        message: Reply text
        agent_name: Name shown as "Replied by"
    """
    from core.services.email_service import EmailService

    logger.info(f"Sending support reply email for ticket {ticket_id}")
    email = EmailService.build_support_reply(customer_email, ticket_id, subject, message, agent_name)
    return _deliver(self, email)


@shared_task(bind=True, name="workers.tasks.send_ticket_confirmation_email")
def send_ticket_confirmation_email(self, ticket_number: str, customer_email: str) -> dict[str, Any]:
    """Confirm to the customer that their ticket was received."""
    from core.services.email_service import EmailService

    logger.info(f"Sending ticket confirmation {ticket_number}")
    email = EmailService.build_ticket_confirmation(ticket_number, customer_email)
    return _deliver(self, email)


@shared_task(bind=True, name="workers.tasks.send_order_invoice_email")
def send_order_invoice_email(self, order_id: str, customer_email: str) -> dict[str, Any]:
    """
    Build the invoice for an order and email it.

    The invoice row is created on first build, so this also assigns the
    invoice number when the admin moves an order to processing.
    """
    from core.services.email_service import EmailService
    from core.services.order_service import OrderService

    logger.info(f"Sending invoice email for order {order_id}")
    try:
        invoice = OrderService.get_invoice_data(order_id)
    except Exception as e:
        logger.exception(f"Invoice build failed for order {order_id}: {e}")
        raise

    email = EmailService.build_order_invoice(invoice, customer_email)
    result = _deliver(self, email)
    result["invoice_number"] = invoice.get("invoice_number")
    return result


# =============================================================================
# Scheduled Tasks
# =============================================================================

@shared_task(bind=True, name="workers.tasks.auto_close_resolved_tickets")
def auto_close_resolved_tickets(self, days: int | None = None) -> dict[str, Any]:
    """Close support tickets that stayed resolved past the grace period."""
    from core.services.support_service import SupportService

    closed = SupportService.auto_close_resolved(days)
    return {"closed": len(closed), "ticket_ids": closed}


@shared_task(bind=True, name="workers.tasks.save_monthly_report_snapshot")
def save_monthly_report_snapshot(self, month: str | None = None) -> dict[str, Any]:
    """
    Store the sales report for a month.

    Args:
        month: ISO date inside the month (YYYY-MM-DD); defaults to last month
    """
    from core.services.report_service import ReportService

    anchor = date.fromisoformat(month) if month else None
    try:
        row = ReportService.save_monthly_snapshot(anchor)
    except Exception as e:
        logger.exception(f"Monthly snapshot failed: {e}")
        raise

    metrics = row.get("metrics") or {}
    return {"month": row.get("month"), "orders": metrics.get("orders", 0)}
