# =============================================================================
# app/websocket/__init__.py - WebSocket Module
# =============================================================================
# Provides change notifications for tickets, inventory and homepage media.
#
# Usage:
#   # Broadcast to all connections of a topic (from FastAPI)
#   from app.websocket import websocket_manager
#
#   await websocket_manager.broadcast("support-tickets", {"type": "ticket_updated"})
#
#   # Publish from services and Celery workers
#   from app.websocket.broadcast import publish_ticket_change
#
#   publish_ticket_change(ticket_id, "reply_created", reply_id=reply_id)
# =============================================================================

from app.websocket.manager import websocket_manager
from app.websocket.broadcast import (
    publish_event,
    publish_inventory_change,
    publish_ticket_change,
    ticket_topic,
    TOPIC_FEATURED,
    TOPIC_INVENTORY,
    TOPIC_SUPPORT_TICKETS,
    WEBSOCKET_CHANNEL,
)

__all__ = [
    "websocket_manager",
    "publish_event",
    "publish_inventory_change",
    "publish_ticket_change",
    "ticket_topic",
    "TOPIC_FEATURED",
    "TOPIC_INVENTORY",
    "TOPIC_SUPPORT_TICKETS",
    "WEBSOCKET_CHANNEL",
]
