"""Card catalog and random deck generation.

The card names are matched verbatim by clients; changing any of them is a
breaking change.
"""

import random
from enum import Enum

from app.game.types import Card

DEFAULT_DECK_SIZE = 5


class CardKind(str, Enum):
    """Role of a catalog card."""

    NEUTRAL = "neutral"
    EFFECT = "effect"
    HAZARD = "hazard"


CAT_CARD = Card(name="Cat card 😼", type=CardKind.NEUTRAL.value)
DEFUSE_CARD = Card(name="Defuse card 🙅‍♂️", type=CardKind.EFFECT.value)
SHUFFLE_CARD = Card(name="Shuffle card 🔀 ", type=CardKind.EFFECT.value)
EXPLODING_KITTEN_CARD = Card(name="Exploding kitten card 💣", type=CardKind.HAZARD.value)

CARD_CATALOG: tuple[Card, ...] = (
    CAT_CARD,
    DEFUSE_CARD,
    SHUFFLE_CARD,
    EXPLODING_KITTEN_CARD,
)


def generate_random_cards(
    size: int = DEFAULT_DECK_SIZE,
    rng: random.Random | None = None,
) -> list[Card]:
    """Draw ``size`` cards uniformly from the catalog, with replacement.

    Args:
        size: Number of cards to draw
        rng: Optional random source (seed it for reproducible decks)

    Returns:
        New list of cards, order significant
    """
    if size < 0:
        raise ValueError(f"Deck size must be non-negative: {size}")
    rng = rng or random.SystemRandom()
    return [rng.choice(CARD_CATALOG) for _ in range(size)]
