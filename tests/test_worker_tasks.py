# =============================================================================
# tests/test_worker_tasks.py - Celery Task Tests
# =============================================================================
# Tasks are called directly (no broker). Email delivery and the services
# behind the scheduled jobs are patched.
#
# Run with: pytest tests/test_worker_tasks.py -v
# =============================================================================

from datetime import date
from unittest.mock import patch

import pytest

from app.exceptions import EmailDeliveryError
from workers.config import CeleryConfig
from workers.tasks import (
    auto_close_resolved_tickets,
    save_monthly_report_snapshot,
    send_order_invoice_email,
    send_support_reply_email,
    send_ticket_confirmation_email,
)

SEND = "core.services.email_service.EmailService.send"


class RetryRequested(Exception):
    pass


class TestEmailTasks:
    """Tests for queued email delivery."""

    def test_support_reply_sent(self):
        with patch(SEND, return_value="<m1>") as send:
            result = send_support_reply_email("3f2a9c1e-aaaa", "rahim@example.com", "Late", "On its way")

        assert result == {"sent": True, "message_id": "<m1>", "to": "rahim@example.com"}
        assert send.call_args[0][0].subject == "Re: Late [Ticket #3f2a9c1e]"

    def test_ticket_confirmation_sent(self):
        with patch(SEND, return_value=None):
            result = send_ticket_confirmation_email("TICKET-1", "rahim@example.com")
        assert result["sent"] is True

    def test_server_error_is_retried(self):
        with patch(SEND, side_effect=EmailDeliveryError(503, "unavailable")):
            with patch.object(send_ticket_confirmation_email, "retry", side_effect=RetryRequested()) as retry:
                with pytest.raises(RetryRequested):
                    send_ticket_confirmation_email("TICKET-1", "rahim@example.com")
        assert isinstance(retry.call_args[1]["exc"], EmailDeliveryError)

    def test_rate_limit_is_retried(self):
        with patch(SEND, side_effect=EmailDeliveryError(429, "slow down")):
            with patch.object(send_ticket_confirmation_email, "retry", side_effect=RetryRequested()):
                with pytest.raises(RetryRequested):
                    send_ticket_confirmation_email("TICKET-1", "rahim@example.com")

    def test_client_error_is_not_retried(self):
        with patch(SEND, side_effect=EmailDeliveryError(400, "invalid email")):
            with patch.object(send_ticket_confirmation_email, "retry") as retry:
                with pytest.raises(EmailDeliveryError):
                    send_ticket_confirmation_email("TICKET-1", "not-an-email")
        retry.assert_not_called()

    def test_invoice_email_reports_invoice_number(self):
        invoice = {
            "invoice_number": "INV-20250301-0001",
            "issue_date": "01 Mar 2025",
            "payment": {"method": "Cash on Delivery"},
            "customer": {"name": "Rahim", "phone": "01712345678", "address": "Dhaka"},
            "items": [],
            "subtotal": 1000,
            "discount_amount": 0,
            "shipping_cost": 60,
            "total_amount": 1060,
        }
        with patch("core.services.order_service.OrderService.get_invoice_data", return_value=invoice):
            with patch(SEND, return_value="<m2>"):
                result = send_order_invoice_email("o1", "rahim@example.com")

        assert result["invoice_number"] == "INV-20250301-0001"
        assert result["message_id"] == "<m2>"


class TestScheduledTasks:
    """Tests for beat-driven maintenance tasks."""

    def test_auto_close(self):
        with patch("core.services.support_service.SupportService.auto_close_resolved", return_value=["t1", "t2"]) as close:
            result = auto_close_resolved_tickets(days=3)

        close.assert_called_once_with(3)
        assert result == {"closed": 2, "ticket_ids": ["t1", "t2"]}

    def test_monthly_snapshot_parses_month(self):
        row = {"month": "2025-02-01", "metrics": {"orders": 42}}
        with patch("core.services.report_service.ReportService.save_monthly_snapshot", return_value=row) as save:
            result = save_monthly_report_snapshot("2025-02-15")

        save.assert_called_once_with(date(2025, 2, 15))
        assert result == {"month": "2025-02-01", "orders": 42}

    def test_monthly_snapshot_defaults_to_previous_month(self):
        with patch("core.services.report_service.ReportService.save_monthly_snapshot", return_value={"month": "2025-02-01"}) as save:
            result = save_monthly_report_snapshot()

        save.assert_called_once_with(None)
        assert result["orders"] == 0


class TestCeleryConfig:
    """Tests for routing and schedule settings."""

    def test_email_tasks_use_email_queue(self):
        for name in (
            "workers.tasks.send_support_reply_email",
            "workers.tasks.send_ticket_confirmation_email",
            "workers.tasks.send_order_invoice_email",
        ):
            assert CeleryConfig.task_routes[name] == {"queue": "email"}

    def test_beat_schedule(self):
        tasks = {entry["task"] for entry in CeleryConfig.beat_schedule.values()}
        assert tasks == {
            "workers.tasks.auto_close_resolved_tickets",
            "workers.tasks.save_monthly_report_snapshot",
        }
