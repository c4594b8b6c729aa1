"""
POSETRACK WebSocket Stream Manager

Serves push streams over WebSocket: one pump task forwards updates from a
subscription to the socket while the receive loop answers pings and
handles unsubscribe requests.
"""

import asyncio
import logging
import json
from typing import Dict, Any, Callable, Awaitable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """WebSocket message types."""
    # System messages
    PING = "ping"
    PONG = "pong"
    ERROR = "error"

    # Subscription lifecycle
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBE = "unsubscribe"
    UNSUBSCRIBED = "unsubscribed"

    # Tracking events
    TICK_UPDATE = "tick_update"


@dataclass
class WebSocketMessage:
    """Structured WebSocket message."""
    type: MessageType
    payload: Any = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_json(self) -> str:
        return json.dumps({
            "type": self.type.value if isinstance(self.type, MessageType) else self.type,
            "payload": self.payload,
            "timestamp": self.timestamp
        })

    @classmethod
    def from_json(cls, data: str) -> "WebSocketMessage":
        parsed = json.loads(data)
        if not isinstance(parsed, dict):
            raise ValueError("Message must be a JSON object")
        return cls(
            type=parsed.get("type", "data"),
            payload=parsed.get("payload"),
            timestamp=parsed.get("timestamp", datetime.now(timezone.utc).isoformat())
        )


@dataclass
class ConnectedClient:
    """Represents a connected WebSocket client."""
    websocket: WebSocket
    client_id: str
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_activity: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    messages_sent: int = 0

    def is_connected(self) -> bool:
        return self.websocket.client_state == WebSocketState.CONNECTED


class StreamManager:
    """
    Serves update streams to WebSocket clients.

    The manager only moves messages; who receives updates is decided by
    the `attach`/`detach` callables handed to `serve`.
    """

    def __init__(self):
        self._connections: Dict[str, ConnectedClient] = {}
        self._served_count = 0

        logger.info("🔌 StreamManager initialized")

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def serve(
        self,
        websocket: WebSocket,
        subscription: Any,
        attach: Callable[[Any], Awaitable[Any]],
        detach: Callable[[Any], Awaitable[Any]],
        serialize: Callable[[Any], Any]
    ):
        """
        Accept the socket and stream `subscription` until either side ends.

        `subscription` must provide `name` and an async `get()` returning
        None once closed. The subscription is detached and both stream
        tasks are cancelled and awaited on every exit path, including
        cancellation of `serve` itself.
        """
        await websocket.accept()

        client = ConnectedClient(websocket=websocket, client_id=subscription.name)
        self._connections[client.client_id] = client
        self._served_count += 1

        tasks = []
        try:
            await attach(subscription)
            logger.info(f"✅ Stream client connected: {client.client_id}")

            await self._send(client, WebSocketMessage(
                type=MessageType.SUBSCRIBED,
                payload={"client_id": client.client_id}
            ))

            tasks = [
                asyncio.create_task(self._pump(client, subscription, serialize)),
                asyncio.create_task(self._receive(client))
            ]
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)

            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    logger.error(f"Stream error for {client.client_id}: {task.exception()}")
        finally:
            for task in tasks:
                task.cancel()
            self._connections.pop(client.client_id, None)

            try:
                await detach(subscription)
            finally:
                if tasks:
                    await asyncio.gather(*tasks, return_exceptions=True)
                await self._close(client)
                logger.info(f"👋 Stream client disconnected: {client.client_id}")

    async def _pump(self, client: ConnectedClient, subscription: Any, serialize: Callable[[Any], Any]):
        while True:
            update = await subscription.get()
            if update is None:
                logger.debug(f"Subscription {client.client_id} closed, ending stream")
                return

            sent = await self._send(client, WebSocketMessage(
                type=MessageType.TICK_UPDATE,
                payload=serialize(update)
            ))
            if not sent:
                return

    async def _receive(self, client: ConnectedClient):
        try:
            while True:
                raw = await client.websocket.receive_text()
                client.last_activity = datetime.now(timezone.utc)

                try:
                    message = WebSocketMessage.from_json(raw)
                except (json.JSONDecodeError, ValueError):
                    await self._send(client, WebSocketMessage(
                        type=MessageType.ERROR,
                        payload={"error": "Invalid JSON"}
                    ))
                    continue

                if message.type == MessageType.PING.value:
                    await self._send(client, WebSocketMessage(type=MessageType.PONG))
                elif message.type == MessageType.UNSUBSCRIBE.value:
                    await self._send(client, WebSocketMessage(type=MessageType.UNSUBSCRIBED))
                    return

        except WebSocketDisconnect:
            logger.debug(f"Client {client.client_id} hung up")

    async def _close(self, client: ConnectedClient):
        if not client.is_connected():
            return

        try:
            await client.websocket.close(code=1000)
        except RuntimeError:
            # Close raced with the client hanging up
            pass

    async def _send(self, client: ConnectedClient, message: WebSocketMessage) -> bool:
        if not client.is_connected():
            return False

        try:
            await client.websocket.send_text(message.to_json())
            client.last_activity = datetime.now(timezone.utc)
            client.messages_sent += 1
            return True
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.error(f"Failed to send to {client.client_id}: {e}")
            return False

    def get_stats(self) -> dict:
        """Get connection statistics."""
        return {
            "active_connections": self.connection_count,
            "served_connections": self._served_count,
            "clients": [
                {
                    "client_id": c.client_id,
                    "connected_at": c.connected_at.isoformat(),
                    "messages_sent": c.messages_sent
                }
                for c in self._connections.values()
            ]
        }


# Global stream manager instance
stream_manager = StreamManager()
