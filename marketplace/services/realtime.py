"""
Live messaging connections.

Each user may hold several sockets (tabs, devices); events for a user are
fanned out to all of them.
"""
import logging
from typing import Any, Dict, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks open WebSocket connections per user ID."""

    def __init__(self):
        self.active: Dict[str, Set[WebSocket]] = {}

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active.setdefault(user_id, set()).add(websocket)
        logger.info(f"🔌 User {user_id} connected ({len(self.active[user_id])} sockets)")

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        sockets = self.active.get(user_id)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            del self.active[user_id]
        logger.info(f"🔌 User {user_id} disconnected")

    def is_online(self, user_id: str) -> bool:
        return bool(self.active.get(user_id))

    async def send_to_user(self, user_id: str, event: str, data: Any) -> int:
        """
        Send an event to every socket of a user

        Returns:
            Number of sockets the event was delivered to
        """
        delivered = 0
        for websocket in list(self.active.get(user_id, ())):
            try:
                await websocket.send_json(event_payload(event, data))
                delivered += 1
            except Exception as e:
                logger.warning(f"⚠️  Dropping dead socket for user {user_id}: {e}")
                self.disconnect(user_id, websocket)
        return delivered


manager = ConnectionManager()


def get_connection_manager() -> ConnectionManager:
    return manager


def event_payload(event: str, data: Any) -> Dict[str, Any]:
    """Wrap data in the {"event", "data"} frame, JSON-ready."""
    return {"event": event, "data": jsonable_encoder(data)}
