"""Registry of live WebSocket connections and out-of-band fan-out."""

from __future__ import annotations

import asyncio
import logging

from app.middleware.prometheus import record_broadcast, record_ws_connection, record_ws_message
from app.ws.connection import WebSocketConnection

logger = logging.getLogger(__name__)


class ConnectionLimitExceeded(Exception):
    """Raised when connection limits are exceeded."""
    pass


class ConnectionManager:
    """Tracks open connections in this process.

    ``broadcast`` pushes a precomputed payload to every open connection. It
    never waits for a listener: with no connections it returns immediately.
    """

    def __init__(self, max_connections: int = 600, send_timeout: float = 1.0):
        self._connections: dict[str, WebSocketConnection] = {}  # connection_id -> Connection
        self._max_connections = max_connections
        self._send_timeout = send_timeout

    # =========================================================================
    # Connection Lifecycle
    # =========================================================================

    def connect(self, conn: WebSocketConnection) -> None:
        """Register an accepted connection."""
        if len(self._connections) >= self._max_connections:
            logger.warning(
                f"Connection limit reached ({self._max_connections}). "
                f"Rejecting connection {conn.connection_id}"
            )
            raise ConnectionLimitExceeded(
                f"Maximum connections ({self._max_connections}) reached"
            )

        self._connections[conn.connection_id] = conn
        record_ws_connection(connected=True)

        logger.info(
            f"Connection {conn.connection_id} registered "
            f"(total: {len(self._connections)}/{self._max_connections})"
        )

    async def disconnect(self, connection_id: str, code: int = 1000) -> None:
        """Close and unregister a connection; unknown ids are ignored."""
        conn = self._connections.pop(connection_id, None)
        if not conn:
            logger.debug(f"Connection {connection_id} not found, skipping disconnect")
            return

        record_ws_connection(connected=False)
        await conn.close(code)

        logger.info(
            f"Connection {connection_id} disconnected "
            f"(user={conn.user_name}, messages={conn.messages_received}, "
            f"remaining: {len(self._connections)})"
        )

    def get_connection(self, connection_id: str) -> WebSocketConnection | None:
        return self._connections.get(connection_id)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # =========================================================================
    # Broadcasting
    # =========================================================================

    async def broadcast(self, payload: bytes, reason: str = "update") -> int:
        """Send ``payload`` to every open connection concurrently.

        Each send is bounded by ``send_timeout``. A connection whose send
        fails or times out is torn down; the others still receive the
        payload.

        Returns:
            Number of connections the payload was delivered to
        """
        record_broadcast(reason)
        targets = [
            (conn_id, conn)
            for conn_id, conn in list(self._connections.items())
            if conn.is_open
        ]
        if not targets:
            return 0

        results = await asyncio.gather(
            *(
                asyncio.wait_for(conn.send_payload(payload), timeout=self._send_timeout)
                for _, conn in targets
            ),
            return_exceptions=True,
        )

        delivered = 0
        for (conn_id, _), result in zip(targets, results):
            if isinstance(result, Exception):
                if isinstance(result, asyncio.TimeoutError):
                    logger.warning(f"Broadcast to {conn_id} timed out, closing")
                else:
                    logger.warning(f"Broadcast to {conn_id} failed, closing: {result}")
                await self.disconnect(conn_id, code=1011)
                continue
            record_ws_message("sent", "broadcast")
            delivered += 1

        logger.debug(
            f"Leaderboard broadcast ({reason}) delivered to "
            f"{delivered}/{len(targets)} connections"
        )
        return delivered

    async def close_all(self) -> None:
        """Close every connection (shutdown)."""
        connection_count = len(self._connections)
        for conn_id in list(self._connections):
            await self.disconnect(conn_id, code=1001)
        logger.info(f"ConnectionManager stopped (connections closed: {connection_count})")
