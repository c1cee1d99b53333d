# =============================================================================
# app/websocket/routes.py - Realtime Subscription Endpoint
# =============================================================================
# Browsers subscribe to one topic per socket and refetch when told to.
#
# Connect: ws://host/api/v1/ws/{topic}?token={jwt}
#
# Topics and who may subscribe:
#   - support-tickets: admins
#   - inventory: admins and sellers
#   - ticket:<id>: admins and the ticket owner
#   - featured: any signed-in user
#
# Events are hints to refetch:
#   - {"type": "ticket_updated", "ticket_id": "...", ...}
#   - {"type": "products_changed", "product_ids": [...], "action": "update"}
# =============================================================================

import logging
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, Query
from jose import JWTError

from app.auth import AuthUser, UserRole, decode_access_token, require_admin, resolve_role
from app.websocket.broadcast import TOPIC_FEATURED, TOPIC_INVENTORY, TOPIC_SUPPORT_TICKETS
from app.websocket.manager import websocket_manager
from lib.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

router = APIRouter()


def can_subscribe(user: AuthUser, topic: str) -> bool:
    """Whether a resolved user may receive events for a topic."""
    if user.role == UserRole.ADMIN:
        return topic in (TOPIC_SUPPORT_TICKETS, TOPIC_INVENTORY, TOPIC_FEATURED) or topic.startswith("ticket:")
    if topic == TOPIC_FEATURED:
        return True
    if topic == TOPIC_INVENTORY:
        return user.role == UserRole.SELLER
    if topic.startswith("ticket:"):
        ticket = SupabaseClient.fetch_row("support_tickets", topic.split(":", 1)[1], "id,user_id")
        return bool(ticket) and str(ticket.get("user_id")) == str(user.id)
    return False


# Close codes sent before the socket is accepted
CLOSE_INVALID_TOKEN = 4001
CLOSE_FORBIDDEN = 4003
CLOSE_SERVER_ERROR = 4000


@router.websocket("/ws/{topic}")
async def topic_websocket(
    websocket: WebSocket,
    topic: str,
    token: str = Query(..., description="Supabase access token"),
):
    """
    Subscribe to change notifications for one topic.

    Connection URL:
        ws://localhost:8000/api/v1/ws/support-tickets?token={jwt}

    The first frame is {"type": "connected", "topic": ...}. Afterwards the
    server only pushes events; a text "ping" is answered with "pong".
    Refused subscriptions are closed with 4001 (bad token), 4003 (not
    allowed) or 4000 (lookup failed).
    """
    try:
        user = resolve_role(decode_access_token(token))
        allowed = can_subscribe(user, topic)
    except JWTError as e:
        logger.warning(f"WebSocket token rejected for {topic}: {e}")
        await websocket.close(code=CLOSE_INVALID_TOKEN, reason="Invalid token")
        return
    except Exception as e:
        logger.error(f"WebSocket access check for {topic} failed: {e}")
        await websocket.close(code=CLOSE_SERVER_ERROR, reason="Server error")
        return

    if not allowed:
        logger.warning(f"{user.role.value} {user.id} may not watch {topic}")
        await websocket.close(code=CLOSE_FORBIDDEN, reason="Access denied")
        return

    await websocket_manager.connect(topic, websocket, str(user.id))
    try:
        await websocket.send_json({"type": "connected", "topic": topic})
        while True:
            if await websocket.receive_text() == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        logger.debug(f"{user.id} left {topic}")
    except Exception as e:
        logger.warning(f"WebSocket on {topic} dropped: {e}")
    finally:
        websocket_manager.disconnect(topic, websocket)


@router.get("/ws/status")
async def websocket_status(admin: AuthUser = Depends(require_admin)):
    """
    Realtime subscription statistics (admin only).

    Returns:
        dict: Socket totals plus sockets and distinct users per topic
    """
    topics = websocket_manager.get_active_topics()
    return {
        "total_connections": websocket_manager.get_connection_count(),
        "topic_count": len(topics),
        "topics": {
            topic: {
                "sockets": websocket_manager.get_connection_count(topic),
                "users": len(websocket_manager.get_subscriber_ids(topic)),
            }
            for topic in topics
        },
    }
