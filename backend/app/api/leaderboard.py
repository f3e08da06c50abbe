"""Leaderboard API."""

from fastapi import APIRouter

from app.api.deps import LeaderboardDep
from app.schemas.game import LeaderboardEntrySchema

router = APIRouter(prefix="/leaderboard", tags=["Leaderboard"])


@router.get("", response_model=list[LeaderboardEntrySchema])
async def get_leaderboard(leaderboard: LeaderboardDep):
    """Every ranked player, highest score first."""
    entries = await leaderboard.snapshot()
    return [entry.to_dict() for entry in entries]
