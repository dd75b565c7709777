from __future__ import annotations

import itertools
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

from .cards import PlayingCard

HAND_SIZE = 5
_POSITION_BASE = 100
_CATEGORY_BASE = _POSITION_BASE ** HAND_SIZE

RANK_NAMES = {
    2: "Two",
    3: "Three",
    4: "Four",
    5: "Five",
    6: "Six",
    7: "Seven",
    8: "Eight",
    9: "Nine",
    10: "Ten",
    11: "Jack",
    12: "Queen",
    13: "King",
    14: "Ace",
}


class HandCategory(str, Enum):
    INCOMPLETE = "incomplete"
    HIGH_CARD = "high-card"
    ONE_PAIR = "one-pair"
    TWO_PAIR = "two-pair"
    THREE_OF_A_KIND = "three-of-a-kind"
    STRAIGHT = "straight"
    FLUSH = "flush"
    FULL_HOUSE = "full-house"
    FOUR_OF_A_KIND = "four-of-a-kind"
    STRAIGHT_FLUSH = "straight-flush"

    @property
    def order(self) -> int:
        # Declaration order doubles as precedence; INCOMPLETE sits below everything.
        return list(HandCategory).index(self)


@dataclass(frozen=True)
class HandRank:
    category: HandCategory
    strength: int
    description: str
    ranks: Tuple[int, ...] = ()

    @property
    def complete(self) -> bool:
        return self.category != HandCategory.INCOMPLETE

    @property
    def high_card(self) -> Optional[int]:
        return self.ranks[0] if self.ranks else None


INCOMPLETE_HAND = HandRank(HandCategory.INCOMPLETE, 0, "Incomplete hand")


def rank_name(value: int) -> str:
    return RANK_NAMES.get(value, str(value))


def rank_plural(value: int) -> str:
    name = rank_name(value)
    return f"{name}es" if name.endswith("x") else f"{name}s"


def encode_strength(category: HandCategory, ranks: Sequence[int]) -> int:
    """Category weight plus each tie-break rank at ``value * 100**position``."""
    strength = category.order * _CATEGORY_BASE
    for idx, value in enumerate(ranks):
        strength += value * _POSITION_BASE ** (HAND_SIZE - 1 - idx)
    return strength


def evaluate(cards: Sequence[PlayingCard]) -> HandRank:
    """Rank a held card set. More than five cards are ranked by their best five."""
    if len(cards) < HAND_SIZE:
        return INCOMPLETE_HAND
    if len(cards) == HAND_SIZE:
        return _evaluate_five(cards)
    return max(
        (_evaluate_five(combo) for combo in itertools.combinations(cards, HAND_SIZE)),
        key=lambda rank: rank.strength,
    )


def _evaluate_five(cards: Sequence[PlayingCard]) -> HandRank:
    values = sorted((card.value for card in cards), reverse=True)
    is_flush = len({card.suit for card in cards}) == 1
    straight_high = _straight_high(values)

    counts = Counter(values)
    # Group by multiplicity first, then by rank, both descending.
    grouped = sorted(counts.items(), key=lambda item: (item[1], item[0]), reverse=True)
    shape = [count for _, count in grouped]
    by_group = [value for value, _ in grouped]

    if straight_high and is_flush:
        return _rank(
            HandCategory.STRAIGHT_FLUSH,
            [straight_high],
            f"Straight flush, {rank_name(straight_high)} high",
        )
    if shape[0] == 4:
        return _rank(HandCategory.FOUR_OF_A_KIND, by_group, f"Four {rank_plural(by_group[0])}")
    if shape[0] == 3 and shape[1] == 2:
        return _rank(
            HandCategory.FULL_HOUSE,
            by_group,
            f"Full house, {rank_plural(by_group[0])} over {rank_plural(by_group[1])}",
        )
    if is_flush:
        return _rank(HandCategory.FLUSH, values, f"Flush, {rank_name(values[0])} high")
    if straight_high:
        return _rank(HandCategory.STRAIGHT, [straight_high], f"Straight, {rank_name(straight_high)} high")
    if shape[0] == 3:
        return _rank(HandCategory.THREE_OF_A_KIND, by_group, f"Three {rank_plural(by_group[0])}")
    if shape[0] == 2 and shape[1] == 2:
        return _rank(
            HandCategory.TWO_PAIR,
            by_group,
            f"Two pair, {rank_plural(by_group[0])} and {rank_plural(by_group[1])}",
        )
    if shape[0] == 2:
        return _rank(HandCategory.ONE_PAIR, by_group, f"Pair of {rank_plural(by_group[0])}")
    return _rank(HandCategory.HIGH_CARD, values, f"High card {rank_name(values[0])}")


def _rank(category: HandCategory, ranks: Sequence[int], description: str) -> HandRank:
    return HandRank(category, encode_strength(category, ranks), description, tuple(ranks))


def _straight_high(values: Sequence[int]) -> Optional[int]:
    """High card of a five-card straight given ranks sorted descending."""
    if len(set(values)) != HAND_SIZE:
        return None
    if all(values[idx] - values[idx + 1] == 1 for idx in range(HAND_SIZE - 1)):
        return values[0]
    if list(values) == [14, 5, 4, 3, 2]:  # wheel
        return 5
    return None
