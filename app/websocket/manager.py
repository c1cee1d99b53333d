# =============================================================================
# app/websocket/manager.py - Topic Subscription Registry
# =============================================================================
# In-process registry of WebSocket subscribers, keyed by topic.
#
# Each socket is stored with the id of the user behind it so the admin
# status endpoint can tell "3 tabs" apart from "3 admins".
#
# Usage:
#   from app.websocket import websocket_manager
#
#   await websocket_manager.connect("support-tickets", websocket, user_id)
#   await websocket_manager.broadcast("support-tickets", {"type": "ticket_updated"})
#   websocket_manager.disconnect("support-tickets", websocket)
# =============================================================================

import logging
from typing import Dict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Subscribers per topic.

    A topic can be watched by many sockets (several admins on the inbox,
    a customer and an admin on the same ticket). Events are fanned out to
    every socket on the topic; sockets that fail to receive are dropped.
    """

    def __init__(self):
        # topic -> {websocket: user id}
        self.topics: Dict[str, Dict[WebSocket, str | None]] = {}

    async def connect(self, topic: str, websocket: WebSocket, user_id: str | None = None) -> None:
        """
        Accept the socket and subscribe it to a topic.

        Args:
            topic: Topic name (support-tickets, inventory, featured, ticket:<id>)
            websocket: Socket to accept
            user_id: Authenticated user behind the socket
        """
        await websocket.accept()
        self.topics.setdefault(topic, {})[websocket] = user_id
        logger.info(f"Subscribed {user_id or 'anonymous'} to {topic} ({self.get_connection_count()} open)")

    def disconnect(self, topic: str, websocket: WebSocket) -> None:
        """Unsubscribe a socket. Unknown sockets are ignored."""
        if self._drop(topic, websocket):
            logger.info(f"Unsubscribed from {topic} ({self.get_connection_count()} open)")

    def _drop(self, topic: str, websocket: WebSocket) -> bool:
        subscribers = self.topics.get(topic)
        if subscribers is None or websocket not in subscribers:
            return False
        del subscribers[websocket]
        if not subscribers:
            del self.topics[topic]
        return True

    async def broadcast(self, topic: str, message: dict) -> int:
        """
        Send an event to every subscriber of a topic.

        Returns:
            int: Number of sockets the event reached
        """
        subscribers = self.topics.get(topic)
        if not subscribers:
            return 0

        sent = 0
        stale = []
        for websocket in list(subscribers):
            try:
                await websocket.send_json(message)
                sent += 1
            except Exception as e:
                logger.warning(f"Dropping socket on {topic}: {e}")
                stale.append(websocket)

        for websocket in stale:
            self._drop(topic, websocket)

        logger.debug(f"{message.get('type')} on {topic} reached {sent} socket(s)")
        return sent

    def get_connection_count(self, topic: str | None = None) -> int:
        """Open sockets on one topic, or across all topics."""
        if topic:
            return len(self.topics.get(topic, {}))
        return sum(len(subscribers) for subscribers in self.topics.values())

    def get_subscriber_ids(self, topic: str) -> set[str]:
        """Distinct users watching a topic."""
        return {uid for uid in self.topics.get(topic, {}).values() if uid}

    def get_active_topics(self) -> list[str]:
        """Topics with at least one subscriber."""
        return list(self.topics.keys())


websocket_manager = ConnectionManager()
