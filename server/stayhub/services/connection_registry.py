"""Registry of open chat WebSocket connections, keyed by user."""

import asyncio
import logging
from collections import defaultdict
from typing import Any
from uuid import UUID

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from ..core.observability import metrics_collector

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Tracks which users are connected to the chat channel.

    A user may hold several connections (one per open client); a published
    event is delivered to each of them. One registry exists per application
    and is handed to whoever needs it.
    """

    def __init__(self):
        self._connections: dict[UUID, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def register(self, user_id: UUID, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections[user_id].add(websocket)
            count = self.connection_count
        metrics_collector.set_chat_connections(count)
        logger.info("Chat connection registered", extra={"user_id": str(user_id)})

    async def unregister(self, user_id: UUID, websocket: WebSocket) -> None:
        async with self._lock:
            sockets = self._connections.get(user_id)
            if sockets is not None:
                sockets.discard(websocket)
                if not sockets:
                    del self._connections[user_id]
            count = self.connection_count
        metrics_collector.set_chat_connections(count)
        logger.info("Chat connection closed", extra={"user_id": str(user_id)})

    def is_connected(self, user_id: UUID) -> bool:
        return bool(self._connections.get(user_id))

    @property
    def connection_count(self) -> int:
        return sum(len(sockets) for sockets in self._connections.values())

    async def publish(self, user_id: UUID, payload: dict[str, Any]) -> bool:
        """
        Send a JSON event to every connection of ``user_id``.

        Returns:
            True if at least one connection received the event
        """
        async with self._lock:
            sockets = list(self._connections.get(user_id, ()))

        delivered = False
        for websocket in sockets:
            try:
                await websocket.send_json(payload)
                delivered = True
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.warning(
                    "Dropping stale chat connection",
                    extra={"user_id": str(user_id), "error": str(e)}
                )
                await self.unregister(user_id, websocket)

        return delivered
