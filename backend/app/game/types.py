"""Game state types.

Provides the records exchanged between the store-facing services and the
HTTP/WebSocket layers:
- Card and PlayerState (one Redis hash per player)
- PlayerStateUpdate (partial writes)
- LeaderboardEntry (one sorted-set member)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Cards
# =============================================================================


@dataclass(frozen=True)
class Card:
    """A single card. ``type`` is empty when only the name is known."""

    name: str
    type: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type}

    @classmethod
    def from_value(cls, value: Any) -> Card:
        """Build a card from a stored/request value.

        Accepts a bare name string or a ``{"name", "type"}`` mapping.

        Raises:
            ValueError: If the value is neither
        """
        if isinstance(value, str):
            return cls(name=value)
        if isinstance(value, dict) and isinstance(value.get("name"), str):
            card_type = value.get("type") or ""
            if not isinstance(card_type, str):
                raise ValueError(f"Card type must be a string: {card_type!r}")
            return cls(name=value["name"], type=card_type)
        raise ValueError(f"Not a card: {value!r}")


# =============================================================================
# Player State
# =============================================================================


@dataclass
class PlayerState:
    """Decoded player-state record."""

    score: int = 0
    cards: list[Card] = field(default_factory=list)
    has_defuse_card: bool = False
    active_card: Card | None = None

    @classmethod
    def initial(cls, cards: list[Card]) -> PlayerState:
        """State seeded for a brand new player."""
        return cls(score=0, cards=list(cards), has_defuse_card=False, active_card=None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "gameCards": [card.to_dict() for card in self.cards],
            "hasDefuseCard": self.has_defuse_card,
            "activeCard": self.active_card.to_dict() if self.active_card else None,
        }


@dataclass
class PlayerStateUpdate:
    """Partial or full replacement of a player's fields.

    ``None`` means "leave unchanged". An empty ``active_card`` string clears
    the active card.
    """

    score: int | None = None
    cards: list[Card] | None = None
    has_defuse_card: bool | None = None
    active_card: str | None = None

    @classmethod
    def cleared(cls) -> PlayerStateUpdate:
        """Zero/empty value for every field."""
        return cls(score=0, cards=[], has_defuse_card=False, active_card="")

    def is_empty(self) -> bool:
        return (
            self.score is None
            and self.cards is None
            and self.has_defuse_card is None
            and self.active_card is None
        )


# =============================================================================
# Leaderboard
# =============================================================================


@dataclass(frozen=True)
class LeaderboardEntry:
    """One ranked player."""

    user_name: str
    user_score: int

    def to_dict(self) -> dict[str, Any]:
        return {"userName": self.user_name, "userScore": self.user_score}
