"""API routers."""

from app.api.game import router as game_router
from app.api.leaderboard import router as leaderboard_router

__all__ = [
    "game_router",
    "leaderboard_router",
]
