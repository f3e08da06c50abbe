"""WebSocket gateway endpoint.

Connection flow:
1. Client connects; server registers and accepts the connection
2. Client sends a frame containing a player name (text or binary)
3. Server bumps the tally for that name, reads the leaderboard and replies
   with it as a JSON array, using the same frame kind it received
4. Steps 2-3 repeat until the client disconnects or a write fails

A leaderboard read failure drops that one message and keeps the connection.
A serialize or write failure closes the connection.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.api.deps import ConnectionManagerDep, LeaderboardDep, TallyDep
from app.logging_config import bind_connection, bind_player
from app.middleware.prometheus import record_ws_message
from app.middleware.sentry import capture_realtime_error
from app.services.leaderboard import LeaderboardService
from app.utils.errors import StoreError
from app.ws.connection import WebSocketConnection
from app.ws.manager import ConnectionLimitExceeded
from app.ws.tally import LiveConnectionTally

logger = logging.getLogger(__name__)
router = APIRouter(tags=["WebSocket"])


async def handle_message(
    conn: WebSocketConnection,
    user_name: str,
    binary: bool,
    tally: LiveConnectionTally,
    leaderboard: LeaderboardService,
) -> bool:
    """Process one inbound frame.

    Returns:
        True if a reply was written, False if the message was dropped

    Raises:
        Exception: Serialize/write failures propagate so the caller closes
            the connection
    """
    conn.user_name = user_name
    bind_player(user_name)
    conn.messages_received += 1
    record_ws_message("received")
    logger.debug(f"Received message on {conn.connection_id}: {user_name!r}")

    await tally.increment(user_name)

    try:
        entries = await leaderboard.snapshot()
    except StoreError as e:
        logger.warning(
            f"Leaderboard read failed, dropping message on {conn.connection_id}: {e}"
        )
        return False

    payload = leaderboard.serialize(entries)
    await conn.send_payload(payload, binary=binary)
    record_ws_message("sent", "reply")
    return True


def _decode_frame(message: dict[str, Any]) -> tuple[str, bool]:
    """Extract the player name from a receive() message.

    Returns:
        (user_name, binary)
    """
    text = message.get("text")
    if text is not None:
        return text, False
    data = message.get("bytes") or b""
    return data.decode("utf-8"), True


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    manager: ConnectionManagerDep,
    leaderboard: LeaderboardDep,
    tally: TallyDep,
):
    """Realtime leaderboard channel."""
    conn = WebSocketConnection(websocket=websocket, connection_id=str(uuid4()))
    bind_connection(conn.connection_id)

    try:
        manager.connect(conn)
    except ConnectionLimitExceeded as e:
        logger.warning(f"WebSocket rejected: {e}")
        # 1013 = Try Again Later (RFC 6455)
        await websocket.close(code=1013, reason="Too many connections")
        return

    try:
        await conn.accept()
        logger.info(f"WebSocket connection established: conn={conn.connection_id}")

        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            user_name, binary = _decode_frame(message)
            await handle_message(conn, user_name, binary, tally, leaderboard)

    except WebSocketDisconnect as e:
        logger.info(f"WebSocket disconnected: conn={conn.connection_id}, code={e.code}")

    except Exception as e:
        logger.exception(f"WebSocket error on {conn.connection_id}: {e}")
        capture_realtime_error(e, conn.connection_id, conn.user_name)

    finally:
        await manager.disconnect(conn.connection_id)


@router.get("/ws/stats")
async def websocket_stats(
    manager: ConnectionManagerDep,
    tally: TallyDep,
) -> dict[str, Any]:
    """WebSocket connection statistics and per-player message tally."""
    return {
        "connections": manager.connection_count,
        "tally": tally.snapshot(),
    }
