"""Game state API."""

from fastapi import APIRouter, Query
from fastapi.responses import Response

from app.api.deps import ConnectionManagerDep, GameStateDep, LeaderboardDep
from app.logging_config import bind_player, get_logger
from app.schemas.common import ErrorResponse
from app.schemas.game import (
    GameResponse,
    LeaderboardEntrySchema,
    ResetGameRequest,
    UpdateGameRequest,
    UpdateGameResponse,
)

logger = get_logger(__name__)

router = APIRouter(
    prefix="/game",
    tags=["Game"],
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


@router.get("", response_model=GameResponse)
async def get_game(
    game_state: GameStateDep,
    leaderboard: LeaderboardDep,
    user_name: str = Query("", alias="userName"),
):
    """Load a player's game, creating it on first visit.

    - A new name is dealt a fresh deck and enters the leaderboard at 0
    - An empty name skips initialization and reads as zero-valued state
    """
    bind_player(user_name)
    await game_state.ensure_initialized(user_name)
    state = await game_state.read(user_name)
    entries = await leaderboard.snapshot()

    return {
        "gameData": state.to_dict(),
        "leaderboard": [entry.to_dict() for entry in entries],
    }


@router.put("", response_model=UpdateGameResponse)
async def update_game(
    body: UpdateGameRequest,
    game_state: GameStateDep,
    leaderboard: LeaderboardDep,
    manager: ConnectionManagerDep,
):
    """Overwrite the fields sent in the body and sync the leaderboard score."""
    bind_player(body.user_name)
    update = body.to_update()
    await game_state.update(body.user_name, update)

    entries = await leaderboard.snapshot()
    await manager.broadcast(leaderboard.serialize(entries), reason="update")

    applied = {"userName": body.user_name}
    if update.score is not None:
        applied["score"] = update.score
    if update.cards is not None:
        applied["gameCards"] = [card.to_dict() for card in update.cards]
    if update.has_defuse_card is not None:
        applied["hasDefuseCard"] = update.has_defuse_card
    if update.active_card is not None:
        applied["activeCard"] = update.active_card

    return {
        "leaderboard": [entry.to_dict() for entry in entries],
        "applied": applied,
    }


@router.delete("", response_model=list[LeaderboardEntrySchema])
async def reset_game(
    body: ResetGameRequest,
    game_state: GameStateDep,
    leaderboard: LeaderboardDep,
    manager: ConnectionManagerDep,
):
    """Clear a player's state and remove them from the leaderboard.

    The resulting leaderboard is returned and pushed to every live
    WebSocket connection.
    """
    bind_player(body.user_name)
    await game_state.reset(body.user_name)

    payload = leaderboard.serialize(await leaderboard.snapshot())
    delivered = await manager.broadcast(payload, reason="reset")
    logger.info("reset_broadcast", user_name=body.user_name, delivered=delivered)

    return Response(content=payload, media_type="application/json")
