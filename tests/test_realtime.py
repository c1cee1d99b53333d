# =============================================================================
# tests/test_realtime.py - Realtime Change Notification Tests
# =============================================================================
# Covers the subscription registry, Redis publishing helpers and the rules
# for who may watch which topic.
#
# Run with: pytest tests/test_realtime.py -v
# =============================================================================

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID

import pytest

from app.auth import AuthUser, UserRole
from app.websocket.broadcast import (
    WEBSOCKET_CHANNEL,
    publish_event,
    publish_inventory_change,
    publish_ticket_change,
)
from app.websocket.manager import ConnectionManager
from app.websocket.routes import can_subscribe

OWNER_ID = "11111111-1111-4111-8111-111111111111"
OTHER_ID = "22222222-2222-4222-8222-222222222222"


def _user(role: UserRole, user_id: str = OWNER_ID) -> AuthUser:
    return AuthUser(id=UUID(user_id), email="u@example.com", role=role)


def _socket():
    websocket = MagicMock()
    websocket.accept = AsyncMock()
    websocket.send_json = AsyncMock()
    return websocket


# =============================================================================
# Subscription Rules
# =============================================================================

class TestCanSubscribe:
    """Tests for topic access rules."""

    def test_admin_topics(self):
        admin = _user(UserRole.ADMIN)
        for topic in ("support-tickets", "inventory", "featured", "ticket:abc"):
            assert can_subscribe(admin, topic)
        assert not can_subscribe(admin, "orders")

    def test_customer_limited_to_featured(self):
        customer = _user(UserRole.CUSTOMER)
        assert can_subscribe(customer, "featured")
        assert not can_subscribe(customer, "inventory")
        assert not can_subscribe(customer, "support-tickets")

    def test_seller_sees_inventory(self):
        seller = _user(UserRole.SELLER)
        assert can_subscribe(seller, "inventory")
        assert not can_subscribe(seller, "support-tickets")

    def test_ticket_owner_only(self):
        ticket = {"id": "t1", "user_id": OWNER_ID}
        with patch("app.websocket.routes.SupabaseClient.fetch_row", return_value=ticket):
            assert can_subscribe(_user(UserRole.CUSTOMER), "ticket:t1")
            assert not can_subscribe(_user(UserRole.CUSTOMER, OTHER_ID), "ticket:t1")

    def test_missing_ticket(self):
        with patch("app.websocket.routes.SupabaseClient.fetch_row", return_value=None):
            assert not can_subscribe(_user(UserRole.CUSTOMER), "ticket:gone")


# =============================================================================
# Publishing
# =============================================================================

class TestPublish:
    """Tests for Redis publishing helpers."""

    def test_publish_event_includes_topic(self):
        redis = MagicMock()
        with patch("app.websocket.broadcast.get_redis_client", return_value=redis):
            assert publish_event("featured", "media_changed", {"placement": "hero"})

        channel, payload = redis.publish.call_args[0]
        assert channel == WEBSOCKET_CHANNEL
        assert json.loads(payload) == {"topic": "featured", "type": "media_changed", "placement": "hero"}

    def test_publish_failure_is_swallowed(self):
        redis = MagicMock()
        redis.publish.side_effect = ConnectionError("down")
        with patch("app.websocket.broadcast.get_redis_client", return_value=redis):
            assert publish_event("featured", "media_changed") is False

    def test_ticket_change_goes_to_inbox_and_thread(self):
        redis = MagicMock()
        with patch("app.websocket.broadcast.get_redis_client", return_value=redis):
            publish_ticket_change("t1", "reply_created", reply_id="r1")

        topics = [json.loads(c[0][1])["topic"] for c in redis.publish.call_args_list]
        assert topics == ["support-tickets", "ticket:t1"]
        assert json.loads(redis.publish.call_args[0][1])["reply_id"] == "r1"

    def test_inventory_change(self):
        redis = MagicMock()
        with patch("app.websocket.broadcast.get_redis_client", return_value=redis):
            publish_inventory_change(["p1", "p2"], "update")

        payload = json.loads(redis.publish.call_args[0][1])
        assert payload["type"] == "products_changed"
        assert payload["product_ids"] == ["p1", "p2"]


# =============================================================================
# Connection Manager
# =============================================================================

class TestConnectionManager:
    """Tests for the per-topic subscription registry."""

    @pytest.fixture
    def manager(self):
        return ConnectionManager()

    def test_connect_and_count(self, manager):
        first, second = _socket(), _socket()

        async def scenario():
            await manager.connect("support-tickets", first, OWNER_ID)
            await manager.connect("support-tickets", second, OWNER_ID)
            await manager.connect("featured", _socket(), OTHER_ID)

        asyncio.run(scenario())

        first.accept.assert_awaited_once()
        assert manager.get_connection_count() == 3
        assert manager.get_connection_count("support-tickets") == 2
        assert manager.get_subscriber_ids("support-tickets") == {OWNER_ID}
        assert sorted(manager.get_active_topics()) == ["featured", "support-tickets"]

    def test_broadcast_drops_dead_sockets(self, manager):
        alive, dead = _socket(), _socket()
        dead.send_json.side_effect = RuntimeError("closed")

        async def scenario():
            await manager.connect("inventory", alive)
            await manager.connect("inventory", dead)
            return await manager.broadcast("inventory", {"type": "products_changed"})

        assert asyncio.run(scenario()) == 1
        alive.send_json.assert_awaited_once_with({"type": "products_changed"})
        assert manager.get_connection_count("inventory") == 1

    def test_broadcast_to_unknown_topic(self, manager):
        assert asyncio.run(manager.broadcast("ticket:none", {"type": "x"})) == 0

    def test_disconnect_removes_empty_topic(self, manager):
        websocket = _socket()
        asyncio.run(manager.connect("featured", websocket))

        manager.disconnect("featured", websocket)
        manager.disconnect("featured", websocket)

        assert manager.get_active_topics() == []
        assert manager.get_connection_count() == 0
