"""Per-process message tally for realtime connections."""

from __future__ import annotations

import asyncio


class LiveConnectionTally:
    """Counts inbound WebSocket frames per player name.

    Shared by every connection in the process. The lock is held only for the
    increment itself, never across store calls.
    """

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}
        self._lock = asyncio.Lock()

    async def increment(self, user_name: str) -> int:
        """Add one to ``user_name``'s counter and return the new value."""
        async with self._lock:
            count = self._counts.get(user_name, 0) + 1
            self._counts[user_name] = count
            return count

    def get(self, user_name: str) -> int:
        return self._counts.get(user_name, 0)

    def snapshot(self) -> dict[str, int]:
        return dict(self._counts)
