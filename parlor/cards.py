from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, TypeVar

RANKS = ("2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K", "A")
SUITS = ("hearts", "diamonds", "clubs", "spades")
RANK_VALUE = {rank: idx for idx, rank in enumerate(RANKS, start=2)}

_SUIT_LETTERS = {"h": "hearts", "d": "diamonds", "c": "clubs", "s": "spades"}
_RANK_ALIASES = {"T": "10"}

T = TypeVar("T")


class CardKind(str, Enum):
    QUESTION = "question"
    ANSWER = "answer"
    PROMPT = "prompt"


@dataclass(frozen=True)
class PlayingCard:
    rank: str
    suit: str

    def __post_init__(self) -> None:
        if self.rank not in RANK_VALUE:
            raise ValueError(f"Invalid rank: {self.rank}")
        if self.suit not in SUITS:
            raise ValueError(f"Invalid suit: {self.suit}")

    @property
    def value(self) -> int:
        return RANK_VALUE[self.rank]

    @property
    def id(self) -> str:
        return f"{self.rank}-{self.suit}"

    @property
    def label(self) -> str:
        return f"{self.rank}{self.suit[0]}"

    def to_payload(self) -> dict:
        return {"id": self.id, "rank": self.rank, "suit": self.suit, "value": self.value}


@dataclass(frozen=True)
class TextCard:
    id: str
    text: str
    kind: CardKind

    def to_payload(self) -> dict:
        return {"id": self.id, "text": self.text}


def build_deck(rng: Optional[random.Random] = None) -> List[PlayingCard]:
    """Standard 52-card deck, shuffled when an rng is given."""
    deck = [PlayingCard(rank, suit) for suit in SUITS for rank in RANKS]
    if rng is not None:
        shuffle(deck, rng)
    return deck


def shuffle(deck: List[T], rng: random.Random) -> List[T]:
    rng.shuffle(deck)
    return deck


def draw(deck: List[T], count: int) -> List[T]:
    """Pop up to ``count`` cards off the end of the deck; short decks give fewer."""
    cards: List[T] = []
    while deck and len(cards) < count:
        cards.append(deck.pop())
    return cards


def parse_label(label: str) -> PlayingCard:
    if len(label) not in (2, 3):
        raise ValueError(f"Invalid card label: {label}")
    rank, suit = label[:-1], label[-1].lower()
    rank = _RANK_ALIASES.get(rank.upper(), rank.upper())
    if suit not in _SUIT_LETTERS:
        raise ValueError(f"Invalid suit: {label[-1]}")
    return PlayingCard(rank, _SUIT_LETTERS[suit])


def parse_cards(labels: Sequence[str]) -> List[PlayingCard]:
    return [parse_label(label) for label in labels]
