# =============================================================================
# core/services/email_service.py - Transactional Email (Brevo)
# =============================================================================
# Sends customer-facing emails through the Brevo HTTP API:
# - Support reply notifications (admin answered a ticket)
# - Ticket confirmations (customer opened a ticket)
# - Order invoices (admin moved an order to "processing")
#
# Messages are built here and sent either inline (notification endpoints)
# or from Celery tasks (workers/tasks.py) so a slow provider never blocks
# an admin action.
# =============================================================================

import html
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from app.config import settings
from app.exceptions import EmailConfigError, EmailDeliveryError, ValidationFailedError
from lib.formatting import format_bdt

logger = logging.getLogger(__name__)

SUPPORT_LINKS_HTML = (
    '💬 <a href="https://m.me/spraxe" target="_blank">Messenger</a> | '
    '📱 <a href="https://wa.me/01606087761" target="_blank">WhatsApp</a>'
)


@dataclass
class EmailMessage:
    """A rendered email ready to send."""

    to_email: str
    subject: str
    html_content: str
    to_name: str | None = None
    sender_name: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Brevo /v3/smtp/email request body."""
        recipient: dict[str, str] = {"email": self.to_email}
        if self.to_name:
            recipient["name"] = self.to_name
        return {
            "sender": {
                "name": self.sender_name or settings.EMAIL_SENDER_NAME,
                "email": settings.EMAIL_SENDER_ADDRESS,
            },
            "to": [recipient],
            "subject": self.subject,
            "htmlContent": self.html_content,
        }


def _text_to_html(text: str) -> str:
    """Escape user text and keep its line breaks."""
    return html.escape(text or "").replace("\n", "<br>")


def _card(title: str, body: str) -> str:
    return f"""
<div style="font-family: Arial, sans-serif; color: #333; line-height: 1.6;">
  <div style="max-width:600px;margin:0 auto;background:#ffffff;border-radius:12px;padding:24px;box-shadow:0 4px 12px rgba(0,0,0,0.05);">
    <h2 style="color:#1e3a8a;text-align:center;margin-bottom:16px;">{html.escape(title)}</h2>
    {body}
  </div>
</div>"""


class EmailService:
    """Builds and sends transactional emails."""

    # -------------------------------------------------------------------------
    # Builders
    # -------------------------------------------------------------------------

    @staticmethod
    def build_support_reply(
        customer_email: str,
        ticket_id: str | None,
        subject: str | None,
        message: str,
        agent_name: str | None = None,
    ) -> EmailMessage:
        """
        Build the "we replied to your ticket" email.

        Subject format: "Re: <subject> [Ticket #<first 8 chars of id>]".

        Raises:
            ValidationFailedError: If email or message is missing
        """
        if not customer_email or not (message or "").strip():
            raise ValidationFailedError("Missing required fields")

        reference = ticket_id[:8] if ticket_id else "REF"
        body = f"""
    <p>Dear Customer,</p>
    <div style="background:#f8fafc;padding:16px;border-left:4px solid #1e3a8a;margin:20px 0;border-radius:6px;">
      {_text_to_html(message)}
    </div>
    <p>If you have further questions, please reply directly to this email.</p>
    <hr style="border:none;border-top:1px solid #eee;margin:24px 0;">
    <p style="font-size:12px;color:#666;text-align:center;">
      Ticket ID: <strong>{html.escape(ticket_id or "")}</strong><br>
      Replied by: {html.escape(agent_name or "Spraxe Support Team")}
    </p>
    <p style="text-align:center;margin-top:16px;">{SUPPORT_LINKS_HTML}</p>"""

        return EmailMessage(
            to_email=customer_email,
            subject=f"Re: {subject or 'Your support request'} [Ticket #{reference}]",
            html_content=_card("Support Update", body),
        )

    @staticmethod
    def build_ticket_confirmation(ticket_number: str, customer_email: str) -> EmailMessage:
        """
        Build the "ticket received" email.

        Raises:
            ValidationFailedError: If ticket number or email is missing
        """
        if not ticket_number or not customer_email:
            raise ValidationFailedError("Missing required fields")

        body = f"""
    <p>Hello,</p>
    <p>Thank you for contacting <strong>Spraxe Support</strong>. Your support request has been received successfully.</p>
    <div style="background:#f8fafc;padding:16px;border-left:4px solid #1e3a8a;margin:20px 0;text-align:center;font-size:16px;font-weight:bold;border-radius:6px;">
      {html.escape(ticket_number)}
    </div>
    <p>Our team will review your request and respond as soon as possible. Please keep this ticket number for reference.</p>
    <p style="text-align:center;">{SUPPORT_LINKS_HTML}</p>
    <hr style="border:none;border-top:1px solid #eee;margin:24px 0;">
    <p style="font-size:12px;color:#666;text-align:center;">
      This is an automated message. Please do not reply directly to this email.
    </p>"""

        return EmailMessage(
            to_email=customer_email,
            subject=f"🎫 Ticket Received – {ticket_number}",
            html_content=_card("Ticket Received", body),
        )

    @staticmethod
    def build_order_invoice(invoice: dict[str, Any], customer_email: str) -> EmailMessage:
        """
        Build the order confirmation / invoice email.

        Args:
            invoice: Output of OrderService.get_invoice_data()
            customer_email: Recipient
        """
        rows = "".join(
            f"<tr><td style=\"padding:6px 0;\">{html.escape(item['name'])}</td>"
            f"<td style=\"text-align:center;\">{item['quantity']}</td>"
            f"<td style=\"text-align:right;\">{format_bdt(item['price'])}</td>"
            f"<td style=\"text-align:right;\">{format_bdt(item['total'])}</td></tr>"
            for item in invoice.get("items", [])
        )

        discount_row = ""
        if invoice.get("discount_amount"):
            code = invoice.get("discount_code")
            label = f"Discount ({html.escape(code)})" if code else "Discount"
            discount_row = (
                f"<tr><td colspan=\"3\">{label}</td>"
                f"<td style=\"text-align:right;\">-{format_bdt(invoice['discount_amount'])}</td></tr>"
            )

        payment = invoice.get("payment", {})
        trx = f" (TRX: {html.escape(payment['trx_id'])})" if payment.get("trx_id") else ""
        customer = invoice.get("customer", {})

        body = f"""
    <p>Dear {html.escape(customer.get("name") or "Valued Customer")},</p>
    <p>Thank you for your order. Your invoice <strong>{html.escape(invoice["invoice_number"])}</strong>
       was issued on {html.escape(invoice["issue_date"])}.</p>
    <table style="width:100%;border-collapse:collapse;font-size:14px;">
      <thead><tr><th style="text-align:left;">Item</th><th>Qty</th>
        <th style="text-align:right;">Price</th><th style="text-align:right;">Total</th></tr></thead>
      <tbody>{rows}</tbody>
      <tfoot>
        <tr><td colspan="3">Subtotal</td><td style="text-align:right;">{format_bdt(invoice["subtotal"])}</td></tr>
        {discount_row}
        <tr><td colspan="3">Shipping</td><td style="text-align:right;">{format_bdt(invoice["shipping_cost"])}</td></tr>
        <tr><td colspan="3"><strong>Total</strong></td>
          <td style="text-align:right;"><strong>{format_bdt(invoice["total_amount"])}</strong></td></tr>
      </tfoot>
    </table>
    <p>Payment: {html.escape(payment.get("method", "Cash on Delivery"))}{trx}</p>
    <p>Deliver to: {html.escape(customer.get("address") or "")} ({html.escape(customer.get("phone") or "")})</p>
    <p style="font-size:12px;color:#666;text-align:center;">{html.escape(invoice.get("notes") or "")}</p>"""

        return EmailMessage(
            to_email=customer_email,
            to_name=customer.get("name"),
            sender_name="Spraxe",
            subject=f"Order #{invoice['invoice_number']} Confirmation",
            html_content=_card("Order Confirmation", body),
        )

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    @staticmethod
    def send(message: EmailMessage) -> str | None:
        """
        Send an email through Brevo.

        Returns:
            Brevo messageId (if returned)

        Raises:
            EmailConfigError: If BREVO_API_KEY is not set
            EmailDeliveryError: If Brevo rejects the request or is unreachable
        """
        if not settings.BREVO_API_KEY:
            logger.error("Missing BREVO_API_KEY")
            raise EmailConfigError()

        headers = {
            "accept": "application/json",
            "api-key": settings.BREVO_API_KEY,
            "content-type": "application/json",
        }

        try:
            response = httpx.post(
                settings.BREVO_API_URL,
                json=message.to_payload(),
                headers=headers,
                timeout=15,
            )
        except httpx.HTTPError as e:
            logger.error(f"Brevo request failed: {e}")
            raise EmailDeliveryError(0, str(e))

        if response.status_code >= 400:
            try:
                error = response.json().get("message") or response.text
            except ValueError:
                error = response.text
            logger.error(f"Brevo API error {response.status_code}: {error}")
            raise EmailDeliveryError(response.status_code, error)

        try:
            message_id = response.json().get("messageId")
        except ValueError:
            message_id = None

        logger.info(f"Email sent to {message.to_email}: {message.subject} ({message_id})")
        return message_id
