"""Registry of live notification sockets keyed by user identity."""

from typing import Any, Dict, Set
from fastapi import WebSocket
from ..utils.logger import get_logger

logger = get_logger(__name__)


class NotificationHub:
    """
    Tracks open WebSocket connections per user and pushes events to them.

    One instance lives for the lifetime of the API process (created in the
    application lifespan and stored on ``app.state``). A user may hold any
    number of connections; events for a user with none are dropped.
    """

    def __init__(self):
        self._user_connections: Dict[str, Set[str]] = {}
        self._sockets: Dict[str, WebSocket] = {}

    def register(self, user_email: str, connection_id: str, websocket: WebSocket) -> None:
        """Add a connection to a user's set."""
        self._user_connections.setdefault(user_email, set()).add(connection_id)
        self._sockets[connection_id] = websocket
        logger.info("Client connected", connection_id=connection_id, user=user_email)

    def unregister(self, user_email: str, connection_id: str) -> None:
        """Remove a connection; drop the user entry once it has none left."""
        self._sockets.pop(connection_id, None)
        connections = self._user_connections.get(user_email)
        if connections is not None:
            connections.discard(connection_id)
            if not connections:
                del self._user_connections[user_email]
        logger.info("Client disconnected", connection_id=connection_id, user=user_email)

    def connections_for(self, user_email: str) -> Set[str]:
        return set(self._user_connections.get(user_email, ()))

    @property
    def users(self) -> Set[str]:
        return set(self._user_connections)

    async def broadcast(self, user_email: str, event: str, data: Dict[str, Any]) -> int:
        """
        Send an event to every connection of a user.
        Returns the number of connections that received it.
        """
        connection_ids = self.connections_for(user_email)
        if not connection_ids:
            logger.debug("No live connections, dropping event", user=user_email, event_name=event)
            return 0

        delivered = 0
        message = {"event": event, "data": data}
        for connection_id in connection_ids:
            websocket = self._sockets.get(connection_id)
            if websocket is None:
                continue
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as exc:
                logger.warning(
                    "Failed to push event, dropping connection",
                    connection_id=connection_id,
                    event_name=event,
                    error=str(exc),
                )
                self.unregister(user_email, connection_id)
        return delivered

    def close(self) -> None:
        """Forget every connection (server shutdown)."""
        self._user_connections.clear()
        self._sockets.clear()
