# =============================================================================
# tests/test_support_service.py - Support Ticket Tests
# =============================================================================
# Inbox helpers (SLA, stats, type options, filtering) and the reply flows
# with Supabase and realtime publishing mocked out.
#
# Run with: pytest tests/test_support_service.py -v
# =============================================================================

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from app.exceptions import DatabaseError, ForbiddenError, TicketClosedError, TicketNotFoundError, ValidationFailedError
from core.models.support import InboxFilters, TicketCreateRequest
from core.services.support_service import (
    SupportService,
    filter_tickets,
    ticket_sla,
    ticket_stats,
    type_options,
)
from tests.conftest import make_client, make_query

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def tickets():
    return [
        {
            "id": "t1",
            "ticket_number": "TICKET-1",
            "subject": "Late delivery",
            "message": "Where is my parcel?",
            "status": "open",
            "priority": "high",
            "type": "delivery",
            "order_id": "o1",
            "email": "rahim@example.com",
            "created_at": "2025-03-01T10:00:00Z",
            "updated_at": "2025-03-05T10:00:00Z",
        },
        {
            "id": "t2",
            "ticket_number": "TICKET-2",
            "subject": "Refund request",
            "message": "Item broken",
            "status": "resolved",
            "priority": "medium",
            "type": "Refund",
            "order_id": None,
            "profiles": {"email": "karim@example.com"},
            "created_at": "2025-03-03T10:00:00Z",
            "updated_at": "2025-03-03T11:00:00Z",
        },
        {
            "id": "t3",
            "ticket_number": "TICKET-3",
            "subject": "Bulk order",
            "message": "Wholesale pricing?",
            "status": "open",
            "priority": "low",
            "type": "wholesale",
            "order_id": None,
            "created_at": "2025-03-02T10:00:00Z",
            "updated_at": "2025-03-09T10:00:00Z",
        },
    ]


class TestTicketSla:
    """Tests for SLA flags."""

    def test_no_sla(self):
        assert ticket_sla({}, NOW) == {"has_sla": False, "breached": False, "at_risk": False, "label": None}

    def test_breached(self):
        sla = ticket_sla({"sla_due_at": (NOW - timedelta(minutes=1)).isoformat()}, NOW)
        assert sla["breached"] and sla["label"] == "SLA Breached"

    def test_at_risk(self):
        sla = ticket_sla({"sla_due_at": (NOW + timedelta(hours=2, minutes=30)).isoformat()}, NOW)
        assert sla == {"has_sla": True, "breached": False, "at_risk": True, "label": "SLA in 2h 30m"}

    def test_comfortable(self):
        sla = ticket_sla({"sla_due_at": (NOW + timedelta(hours=30)).isoformat()}, NOW)
        assert not sla["at_risk"] and sla["label"] == "SLA in 30h 0m"


class TestInboxHelpers:
    """Tests for stats, type options and filtering."""

    def test_stats(self, tickets):
        assert ticket_stats(tickets) == {"open": 2, "in_progress": 0, "resolved": 1, "closed": 0}

    def test_type_options_common_first(self, tickets):
        assert type_options(tickets) == ["refund", "delivery", "wholesale"]

    def test_type_options_default(self):
        assert type_options([])[0] == "inquiry"

    def test_newest_first_with_pins_on_top(self, tickets):
        result = filter_tickets(tickets, InboxFilters(), pinned_ids=["t1"])
        assert [t["id"] for t in result] == ["t1", "t2", "t3"]

    def test_oldest_and_updated_sorts(self, tickets):
        assert [t["id"] for t in filter_tickets(tickets, InboxFilters(sort="oldest"), [])] == ["t1", "t3", "t2"]
        assert [t["id"] for t in filter_tickets(tickets, InboxFilters(sort="updated"), [])] == ["t3", "t1", "t2"]

    def test_search_matches_profile_email(self, tickets):
        result = filter_tickets(tickets, InboxFilters(q="KARIM@"), [])
        assert [t["id"] for t in result] == ["t2"]

    def test_status_priority_type_order_filters(self, tickets):
        assert [t["id"] for t in filter_tickets(tickets, InboxFilters(status="open", priority="low"), [])] == ["t3"]
        assert [t["id"] for t in filter_tickets(tickets, InboxFilters(type="refund"), [])] == ["t2"]
        assert [t["id"] for t in filter_tickets(tickets, InboxFilters(order="with_order"), [])] == ["t1"]
        assert [t["id"] for t in filter_tickets(tickets, InboxFilters(pinned_only=True), ["t3"])] == ["t3"]


class TestFetchTickets:
    """Tests for loading the admin inbox."""

    def test_joined_select(self):
        client = make_client({"support_tickets": make_query([{"id": "t1", "profiles": {"email": "a@x.test"}}])})
        with patch("core.services.support_service.SupabaseClient.get_client", return_value=client):
            rows = SupportService.fetch_tickets()

        assert rows[0]["profiles"]["email"] == "a@x.test"
        client.queries["support_tickets"].select.assert_called_once_with("*, profiles:user_id(full_name,email,phone)")

    def test_falls_back_to_plain_rows_when_join_fails(self):
        query = make_query([])
        query.execute.side_effect = [
            Exception("Could not find a relationship between support_tickets and profiles"),
            MagicMock(data=[{"id": "t1"}, {"id": "t2"}]),
        ]
        client = make_client({"support_tickets": query})
        with patch("core.services.support_service.SupabaseClient.get_client", return_value=client):
            rows = SupportService.fetch_tickets()

        assert [r["id"] for r in rows] == ["t1", "t2"]
        assert query.select.call_args_list[-1].args == ("*",)
        query.order.assert_called_with("created_at", desc=True)

    def test_both_selects_failing(self):
        query = make_query([])
        query.execute.side_effect = Exception("connection refused")
        client = make_client({"support_tickets": query})
        with patch("core.services.support_service.SupabaseClient.get_client", return_value=client):
            with pytest.raises(DatabaseError):
                SupportService.fetch_tickets()


class TestAdminReply:
    """Tests for replying from the admin workspace."""

    def test_reply_resolves_ticket(self):
        ticket = {"id": "t1", "status": "open", "email": "rahim@example.com", "subject": "Late"}
        client = make_client({"ticket_replies": make_query([{"id": "r1", "message": "On its way"}])})

        with patch.object(SupportService, "get_ticket", return_value=ticket), \
             patch("core.services.support_service.SupabaseClient.get_client", return_value=client), \
             patch("core.services.support_service.publish_ticket_change") as publish:
            result = SupportService.admin_reply("t1", "admin-1", "  On its way  ")

        client.queries["ticket_replies"].insert.assert_called_once_with(
            {"ticket_id": "t1", "user_id": "admin-1", "message": "On its way"}
        )
        assert result["ticket"]["status"] == "resolved"
        assert result["customer_email"] == "rahim@example.com"
        publish.assert_called_once_with("t1", "reply_added", reply_id="r1", status="resolved")

    def test_closed_ticket_rejected(self):
        with patch.object(SupportService, "get_ticket", return_value={"id": "t1", "status": "closed"}):
            with pytest.raises(TicketClosedError):
                SupportService.admin_reply("t1", "admin-1", "Hello")

    def test_empty_message_rejected(self):
        with pytest.raises(ValidationFailedError):
            SupportService.admin_reply("t1", "admin-1", "   ")


class TestCustomerPortal:
    """Tests for the customer side of tickets."""

    def test_create_requires_subject_and_message(self):
        with pytest.raises(ValidationFailedError):
            SupportService.create_ticket("u1", "u@example.com", TicketCreateRequest(subject="Hi", message=" "))

    def test_create_ticket(self):
        client = make_client({"support_tickets": make_query([{"id": "t9"}])})
        with patch("core.services.support_service.SupabaseClient.get_client", return_value=client), \
             patch("core.services.support_service.publish_ticket_change"):
            result = SupportService.create_ticket(
                "u1", "u@example.com", TicketCreateRequest(type="refund", subject=" Broken ", message="Cracked screen")
            )

        assert result["id"] == "t9"
        assert result["ticket_number"].startswith("TICKET-")
        assert result["attachments"] == []
        payload = client.queries["support_tickets"].insert.call_args[0][0]
        assert payload["subject"] == "Broken"
        assert payload["status"] == "open"
        assert payload["priority"] == "medium"

    def test_other_users_ticket_forbidden(self):
        with patch("core.services.support_service.SupabaseClient.fetch_row", return_value={"id": "t1", "user_id": "someone"}):
            with pytest.raises(ForbiddenError):
                SupportService.get_owned_ticket("u1", "t1")

    def test_missing_ticket(self):
        with patch("core.services.support_service.SupabaseClient.fetch_row", return_value=None):
            with pytest.raises(TicketNotFoundError):
                SupportService.get_owned_ticket("u1", "t1")

    def test_reply_on_closed_ticket_rejected(self):
        ticket = {"id": "t1", "user_id": "u1", "status": "closed"}
        with patch.object(SupportService, "get_owned_ticket", return_value=ticket):
            with pytest.raises(TicketClosedError):
                SupportService.customer_reply("u1", "t1", "Any update?")


class TestAutoClose:
    """Tests for closing long-resolved tickets."""

    def test_closes_and_publishes(self):
        client = make_client({"support_tickets": make_query([{"id": "t2"}, {"id": "t5"}])})
        with patch("core.services.support_service.SupabaseClient.get_client", return_value=client), \
             patch("core.services.support_service.publish_ticket_change") as publish:
            closed = SupportService.auto_close_resolved(days=3)

        assert closed == ["t2", "t5"]
        client.queries["support_tickets"].update.assert_called_once_with({"status": "closed"})
        assert publish.call_count == 2

    def test_failure_is_ignored(self):
        query = make_query()
        query.execute.side_effect = RuntimeError("db down")
        client = make_client({"support_tickets": query})
        with patch("core.services.support_service.SupabaseClient.get_client", return_value=client):
            assert SupportService.auto_close_resolved() == []
