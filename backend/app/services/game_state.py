"""Player game-state repository.

Each player is one Redis hash keyed by the player name:

    score          "7"
    gameCards      '[{"name": "Cat card 😼", "type": "neutral"}, ...]'
    hasDefuseCard  "true" | "false"
    activeCard     card name, "" when there is no active card

Writes that touch the score are queued in the same MULTI/EXEC batch as the
leaderboard update so the hash and the sorted set move together.
"""

from __future__ import annotations

from typing import Any

from app.game.cards import DEFAULT_DECK_SIZE, generate_random_cards
from app.game.types import Card, PlayerState, PlayerStateUpdate
from app.logging_config import get_logger
from app.services.leaderboard import LeaderboardService
from app.services.store import FieldValue, RedisStore
from app.utils.errors import DecodeFailureError, InvalidArgumentError
from app.utils.json_utils import json_dumps, json_loads

logger = get_logger(__name__)

FIELD_SCORE = "score"
FIELD_CARDS = "gameCards"
FIELD_HAS_DEFUSE = "hasDefuseCard"
FIELD_ACTIVE_CARD = "activeCard"

# Accepted spellings, matching what older records may contain
_TRUE_VALUES = frozenset({"1", "t", "T", "true", "TRUE", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "false", "FALSE", "False"})


class _Malformed(ValueError):
    pass


def encode_update(update: PlayerStateUpdate) -> dict[str, FieldValue]:
    """Convert the set fields of ``update`` into raw hash values."""
    fields: dict[str, FieldValue] = {}
    if update.score is not None:
        fields[FIELD_SCORE] = update.score
    if update.cards is not None:
        fields[FIELD_CARDS] = json_dumps([card.to_dict() for card in update.cards])
    if update.has_defuse_card is not None:
        fields[FIELD_HAS_DEFUSE] = "true" if update.has_defuse_card else "false"
    if update.active_card is not None:
        fields[FIELD_ACTIVE_CARD] = update.active_card
    return fields


def _parse_score(raw: str | None) -> int:
    if raw is None:
        return 0
    try:
        return int(raw)
    except ValueError as e:
        raise _Malformed(raw) from e


def _parse_bool(raw: str | None) -> bool:
    if raw is None:
        return False
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise _Malformed(raw)


def _parse_cards(raw: str | None) -> list[Card]:
    if not raw:
        return []
    try:
        values: Any = json_loads(raw)
    except ValueError as e:
        raise _Malformed(raw) from e
    if not isinstance(values, list):
        raise _Malformed(raw)
    return [Card.from_value(value) for value in values]


class GameStateRepository:
    """Reads and writes player-state records."""

    def __init__(
        self,
        store: RedisStore,
        leaderboard: LeaderboardService,
        deck_size: int = DEFAULT_DECK_SIZE,
        strict_decoding: bool = False,
    ):
        self.store = store
        self.leaderboard = leaderboard
        self.deck_size = deck_size
        self.strict_decoding = strict_decoding

    async def ensure_initialized(self, user_name: str) -> bool:
        """Seed state for a player seen for the first time.

        Seeding is one WATCH/MULTI/EXEC transaction: a failed EXEC leaves no
        partial record, and a concurrent caller that loses the race returns
        only after the winner's record is visible.

        Returns:
            True if this call created the record, False otherwise
        """
        if not user_name:
            return False

        state = PlayerState.initial(generate_random_cards(self.deck_size))
        seed = PlayerStateUpdate(
            score=state.score,
            cards=state.cards,
            has_defuse_card=state.has_defuse_card,
            active_card="",
        )
        # The hash and the leaderboard entry appear together or not at all
        async with self.store.batch_if_absent(user_name) as batch:
            if batch is None:
                return False
            batch.write_fields(user_name, encode_update(seed))
            await self.leaderboard.upsert(user_name, state.score, batch=batch)

        if not batch.committed:
            logger.debug("player_seeded_concurrently", user_name=user_name)
            return False

        logger.info(
            "player_initialized",
            user_name=user_name,
            cards=[card.name for card in state.cards],
        )
        return True

    async def read(self, user_name: str) -> PlayerState:
        """Decode the stored record; missing fields read as zero values."""
        raw = await self.store.read_fields(user_name)

        return PlayerState(
            score=self._decode(user_name, FIELD_SCORE, raw, _parse_score, 0),
            cards=self._decode(user_name, FIELD_CARDS, raw, _parse_cards, []),
            has_defuse_card=self._decode(
                user_name, FIELD_HAS_DEFUSE, raw, _parse_bool, False
            ),
            active_card=Card(name=raw[FIELD_ACTIVE_CARD])
            if raw.get(FIELD_ACTIVE_CARD)
            else None,
        )

    async def update(self, user_name: str, update: PlayerStateUpdate) -> None:
        """Write the given fields; a new score is also pushed to the leaderboard.

        Raises:
            InvalidArgumentError: If ``user_name`` is empty
        """
        if not user_name:
            raise InvalidArgumentError("userName", "Missing userName")
        if update.is_empty():
            return

        async with self.store.batch() as batch:
            batch.write_fields(user_name, encode_update(update))
            if update.score is not None:
                await self.leaderboard.upsert(user_name, update.score, batch=batch)

        logger.info(
            "player_state_updated",
            user_name=user_name,
            score=update.score,
            fields=sorted(encode_update(update)),
        )

    async def reset(self, user_name: str) -> None:
        """Clear every field and drop the player from the leaderboard.

        Raises:
            InvalidArgumentError: If ``user_name`` is empty
        """
        if not user_name:
            raise InvalidArgumentError("userName", "Missing userName in request body")

        async with self.store.batch() as batch:
            batch.write_fields(user_name, encode_update(PlayerStateUpdate.cleared()))
            await self.leaderboard.remove(user_name, batch=batch)

        logger.info("player_state_reset", user_name=user_name)

    def _decode(self, user_name, field, raw, parse, default):
        try:
            return parse(raw.get(field))
        except ValueError as e:
            if self.strict_decoding:
                raise DecodeFailureError(user_name, field, raw.get(field)) from e
            logger.warning(
                "player_field_defaulted",
                user_name=user_name,
                field=field,
                raw=raw.get(field),
            )
            return default
