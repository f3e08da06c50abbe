"""Global leaderboard backed by a Redis sorted set.

ZADD keeps one score per player (last write wins), ZREVRANGE returns the
ranking highest score first. Ties follow Redis member ordering.
"""

from app.game.types import LeaderboardEntry
from app.logging_config import get_logger
from app.services.store import RedisStore, StoreBatch
from app.utils.json_utils import json_dumps_bytes

logger = get_logger(__name__)


class LeaderboardService:
    """Maintains the sorted set of player scores."""

    def __init__(self, store: RedisStore, key: str = "leaderboard"):
        self.store = store
        self.key = key

    async def upsert(
        self,
        user_name: str,
        score: int,
        batch: StoreBatch | None = None,
    ) -> None:
        """Create or overwrite ``user_name``'s score.

        When ``batch`` is given the write is queued on it instead of being
        sent immediately.
        """
        if batch is not None:
            batch.set_score(self.key, user_name, score)
            return
        await self.store.set_score(self.key, user_name, score)
        logger.debug("leaderboard_upserted", user_name=user_name, score=score)

    async def remove(self, user_name: str, batch: StoreBatch | None = None) -> None:
        """Drop ``user_name`` from the leaderboard; no-op if absent."""
        if batch is not None:
            batch.remove_member(self.key, user_name)
            return
        await self.store.remove_member(self.key, user_name)
        logger.debug("leaderboard_removed", user_name=user_name)

    async def snapshot(self) -> list[LeaderboardEntry]:
        """Every ranked player, highest score first, as a fresh list."""
        rows = await self.store.read_ranked_descending(self.key)
        return [
            LeaderboardEntry(user_name=member, user_score=int(score))
            for member, score in rows
        ]

    @staticmethod
    def serialize(entries: list[LeaderboardEntry]) -> bytes:
        """JSON array of ``{"userName", "userScore"}`` objects."""
        return json_dumps_bytes([entry.to_dict() for entry in entries])
