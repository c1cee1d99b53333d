# =============================================================================
# app/websocket/broadcast.py - Cross-Process Broadcasting
# =============================================================================
# Provides utilities for services and Celery workers to publish change
# events that get broadcast to WebSocket clients.
#
# Uses Redis pub/sub for cross-process communication:
# - Services/workers call publish_event() after a write
# - FastAPI subscribes and broadcasts to WebSocket clients of that topic
#
# Clients treat every event as "something changed, refetch".
#
# Topics:
#   - support-tickets: any ticket inserted/updated (admin inbox)
#   - ticket:<id>: replies/status of one ticket (detail + customer thread)
#   - inventory: product rows changed (admin + seller inventory)
#   - featured: homepage media changed
# =============================================================================

import json
import logging
from typing import Any

from lib.redis_client import get_redis_client

logger = logging.getLogger(__name__)

# Redis channel for WebSocket events
WEBSOCKET_CHANNEL = "spraxe:websocket:events"

TOPIC_SUPPORT_TICKETS = "support-tickets"
TOPIC_INVENTORY = "inventory"
TOPIC_FEATURED = "featured"


def ticket_topic(ticket_id: str) -> str:
    """Topic for a single ticket's thread."""
    return f"ticket:{ticket_id}"


def publish_event(topic: str, event_type: str, data: dict[str, Any] | None = None) -> bool:
    """
    Publish an event that will be broadcast to WebSocket clients.

    Publishing is best effort: a failure is logged and never fails the
    write that triggered it.

    Args:
        topic: The topic to broadcast to
        event_type: Event type (e.g. ticket_updated, reply_created)
        data: Event data to include

    Returns:
        bool: True if published successfully
    """
    try:
        client = get_redis_client()

        message = json.dumps({
            "topic": topic,
            "type": event_type,
            **(data or {})
        }, default=str)

        client.publish(WEBSOCKET_CHANNEL, message)

        logger.debug(f"Published {event_type} event for topic {topic}")
        return True

    except Exception as e:
        logger.error(f"Failed to publish event: {e}")
        return False


def publish_ticket_change(ticket_id: str, event_type: str, **data: Any) -> None:
    """
    Publish a ticket change to both the inbox and the ticket's own topic.

    Called after ticket inserts/updates and reply inserts.
    """
    payload = {"ticket_id": ticket_id, **data}
    publish_event(TOPIC_SUPPORT_TICKETS, event_type, payload)
    publish_event(ticket_topic(ticket_id), event_type, payload)


def publish_inventory_change(product_ids: list[str], action: str) -> bool:
    """Publish an inventory change (update/insert/delete of product rows)."""
    return publish_event(
        TOPIC_INVENTORY,
        "products_changed",
        {"product_ids": product_ids, "action": action},
    )
