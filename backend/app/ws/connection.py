"""WebSocket connection model."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Lifecycle of a realtime connection."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class WebSocketConnection:
    """Represents a single WebSocket connection."""

    websocket: WebSocket
    connection_id: str
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: ConnectionState = ConnectionState.CONNECTING

    # Last player name received on this connection
    user_name: str | None = None
    messages_received: int = 0

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN

    async def accept(self) -> None:
        await self.websocket.accept()
        self.state = ConnectionState.OPEN

    async def send_payload(self, payload: bytes, binary: bool = False) -> None:
        """Write a serialized payload as a text or binary frame.

        Raises whatever the transport raises; callers decide whether the
        failure closes the connection.
        """
        if binary:
            await self.websocket.send_bytes(payload)
        else:
            await self.websocket.send_text(payload.decode("utf-8"))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the connection. Safe to call more than once."""
        if self.state == ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED
        try:
            await self.websocket.close(code, reason)
        except Exception as e:
            logger.debug(f"Error closing connection {self.connection_id}: {e}")
