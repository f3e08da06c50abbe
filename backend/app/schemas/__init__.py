"""Pydantic schemas for API requests and responses."""

from app.schemas.common import ErrorDetail, ErrorResponse
from app.schemas.game import (
    CardSchema,
    GameDataSchema,
    GameResponse,
    LeaderboardEntrySchema,
    ResetGameRequest,
    UpdateGameRequest,
    UpdateGameResponse,
)

__all__ = [
    # Common
    "ErrorDetail",
    "ErrorResponse",
    # Game
    "CardSchema",
    "GameDataSchema",
    "GameResponse",
    "LeaderboardEntrySchema",
    "ResetGameRequest",
    "UpdateGameRequest",
    "UpdateGameResponse",
]
