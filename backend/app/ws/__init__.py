"""WebSocket gateway module for real-time leaderboard updates."""

from app.ws.connection import WebSocketConnection, ConnectionState
from app.ws.manager import ConnectionManager, ConnectionLimitExceeded
from app.ws.tally import LiveConnectionTally

__all__ = [
    "WebSocketConnection",
    "ConnectionState",
    "ConnectionManager",
    "ConnectionLimitExceeded",
    "LiveConnectionTally",
]
