"""Game API schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.game.types import Card, PlayerStateUpdate


class CamelSchema(BaseModel):
    """Base schema accepting both camelCase aliases and field names."""

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Responses
# =============================================================================


class CardSchema(CamelSchema):
    name: str
    type: str = ""


class GameDataSchema(CamelSchema):
    """Player state as returned to clients."""

    score: int
    game_cards: list[CardSchema] = Field(default_factory=list, alias="gameCards")
    has_defuse_card: bool = Field(False, alias="hasDefuseCard")
    active_card: CardSchema | None = Field(None, alias="activeCard")


class LeaderboardEntrySchema(CamelSchema):
    user_name: str = Field(..., alias="userName")
    user_score: int = Field(..., alias="userScore")


class GameResponse(CamelSchema):
    """GET /game response."""

    game_data: GameDataSchema = Field(..., alias="gameData")
    leaderboard: list[LeaderboardEntrySchema]


class UpdateGameResponse(CamelSchema):
    """PUT /game response: the new leaderboard plus the fields that were written."""

    leaderboard: list[LeaderboardEntrySchema]
    applied: dict[str, Any]


# =============================================================================
# Requests
# =============================================================================


class UpdateGameRequest(CamelSchema):
    """PUT /game body.

    ``score`` may be sent as a string-encoded integer. Fields left out of
    the body are not touched.
    """

    user_name: str = Field(..., alias="userName", description="Player name")
    score: int | None = Field(None, ge=0, description="New score")
    game_cards: list[CardSchema | str] | None = Field(
        None,
        alias="gameCards",
        description="Ordered cards; bare strings are card names",
    )
    has_defuse_card: bool | None = Field(None, alias="hasDefuseCard")
    active_card: str | None = Field(
        None,
        alias="activeCard",
        description='Active card name, "" for none',
    )

    @field_validator("score", mode="before")
    @classmethod
    def parse_score(cls, v: Any) -> Any:
        """Accept "5" as well as 5."""
        if isinstance(v, str):
            v = v.strip()
            if not v.lstrip("-").isdigit():
                raise ValueError("score must be an integer")
            return int(v)
        return v

    def to_update(self) -> PlayerStateUpdate:
        """Domain update holding only the fields present in the body."""
        sent = self.model_fields_set
        cards = None
        if "game_cards" in sent:
            cards = [
                Card(name=c) if isinstance(c, str) else Card(name=c.name, type=c.type)
                for c in self.game_cards or []
            ]
        return PlayerStateUpdate(
            score=self.score if "score" in sent else None,
            cards=cards,
            has_defuse_card=self.has_defuse_card if "has_defuse_card" in sent else None,
            active_card=(self.active_card or "") if "active_card" in sent else None,
        )


class ResetGameRequest(CamelSchema):
    """DELETE /game body."""

    user_name: str = Field("", alias="userName", description="Player name")
