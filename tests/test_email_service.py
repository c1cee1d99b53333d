# =============================================================================
# tests/test_email_service.py - Transactional Email Tests
# =============================================================================
# Builders are checked for subject lines and escaping; send() is checked
# against a patched httpx.post so no request leaves the process.
#
# Run with: pytest tests/test_email_service.py -v
# =============================================================================

from unittest.mock import MagicMock, patch

import httpx
import pytest

from app.exceptions import EmailConfigError, EmailDeliveryError, ValidationFailedError
from core.services.email_service import EmailMessage, EmailService


@pytest.fixture
def invoice():
    return {
        "invoice_number": "INV-20250302-1111",
        "issue_date": "02 Mar 2025",
        "due_date": "09 Mar 2025",
        "payment": {"method": "bKash", "trx_id": "TRX99"},
        "customer": {"name": "Karim", "phone": "01812345678", "address": "Chittagong"},
        "items": [{"name": "Watch", "quantity": 1, "price": 2000.0, "total": 2000.0}],
        "subtotal": 2000.0,
        "discount_code": "EID10",
        "discount_amount": 100.0,
        "shipping_cost": 120.0,
        "total_amount": 2020.0,
        "notes": "Thank you for shopping with Spraxe!",
    }


def _response(status_code, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body or {}
    response.text = str(body)
    return response


class TestBuilders:
    """Tests for rendered messages."""

    def test_support_reply_subject_uses_short_ticket_id(self):
        message = EmailService.build_support_reply(
            "rahim@example.com", "3f2a9c1e-0000-4000-8000-000000000000", "Late delivery", "Line one\n<b>two</b>"
        )
        assert message.subject == "Re: Late delivery [Ticket #3f2a9c1e]"
        assert "Line one<br>&lt;b&gt;two&lt;/b&gt;" in message.html_content
        assert "Spraxe Support Team" in message.html_content

    def test_support_reply_requires_message(self):
        with pytest.raises(ValidationFailedError):
            EmailService.build_support_reply("rahim@example.com", "t1", "Hi", "  ")

    def test_ticket_confirmation(self):
        message = EmailService.build_ticket_confirmation("TICKET-1700000000000", "rahim@example.com")
        assert message.subject == "🎫 Ticket Received – TICKET-1700000000000"
        assert "TICKET-1700000000000" in message.html_content

    def test_ticket_confirmation_requires_email(self):
        with pytest.raises(ValidationFailedError):
            EmailService.build_ticket_confirmation("TICKET-1", "")

    def test_order_invoice(self, invoice):
        message = EmailService.build_order_invoice(invoice, "karim@example.com")
        assert message.subject == "Order #INV-20250302-1111 Confirmation"
        assert message.to_name == "Karim"
        assert "Discount (EID10)" in message.html_content
        assert "-৳100" in message.html_content
        assert "(TRX: TRX99)" in message.html_content
        assert "৳2,020" in message.html_content


class TestPayload:
    """Tests for the Brevo request body."""

    def test_payload_shape(self):
        payload = EmailMessage(to_email="a@example.com", subject="Hi", html_content="<p>x</p>", to_name="A").to_payload()
        assert payload["to"] == [{"email": "a@example.com", "name": "A"}]
        assert payload["subject"] == "Hi"
        assert payload["htmlContent"] == "<p>x</p>"
        assert set(payload["sender"]) == {"name", "email"}


class TestSend:
    """Tests for delivery through Brevo."""

    MESSAGE = EmailMessage(to_email="a@example.com", subject="Hi", html_content="<p>x</p>")

    def test_success_returns_message_id(self):
        with patch("core.services.email_service.httpx.post", return_value=_response(201, {"messageId": "<m1>"})) as post:
            assert EmailService.send(self.MESSAGE) == "<m1>"
        headers = post.call_args[1]["headers"]
        assert headers["api-key"] == "test-brevo-key"

    def test_provider_error(self):
        with patch("core.services.email_service.httpx.post", return_value=_response(400, {"message": "invalid sender"})):
            with pytest.raises(EmailDeliveryError) as exc_info:
                EmailService.send(self.MESSAGE)
        assert exc_info.value.details == {"provider_status": 400}

    def test_network_error(self):
        with patch("core.services.email_service.httpx.post", side_effect=httpx.ConnectError("refused")):
            with pytest.raises(EmailDeliveryError):
                EmailService.send(self.MESSAGE)

    def test_missing_api_key(self):
        with patch("core.services.email_service.settings") as settings:
            settings.BREVO_API_KEY = ""
            with pytest.raises(EmailConfigError):
                EmailService.send(self.MESSAGE)
