"""Business logic services."""

from app.services.game_state import GameStateRepository
from app.services.leaderboard import LeaderboardService
from app.services.store import RedisStore, StoreBatch

__all__ = [
    # Store
    "RedisStore",
    "StoreBatch",
    # Leaderboard
    "LeaderboardService",
    # Game state
    "GameStateRepository",
]
