"""Question/answer/prompt text supply for the text-card games.

Generated content is untrusted: it may fail outright, come back short, or
carry blank and mis-tagged cards. ``acquire`` filters what it gets and tops
the pile up from the source's fallback corpus so engines never stall.
"""

from __future__ import annotations

import random
from typing import Iterable, List, Optional, Protocol

from .cards import CardKind, TextCard

_ID_PREFIX = {CardKind.QUESTION: "Q", CardKind.ANSWER: "A", CardKind.PROMPT: "P"}

FALLBACK_QUESTIONS = (
    "What did I eat for breakfast that made everyone leave the room?",
    "The real reason I got fired was ___.",
    "My dating profile would be complete with ___.",
    "The group chat went silent after someone posted ___.",
    "Grandma's secret ingredient is ___.",
    "Nobody warned me that adulthood would involve so much ___.",
    "The museum's newest exhibit: ___.",
    "My therapist says I need to stop ___.",
    "Tonight's team-building exercise is ___.",
    "The worst thing to hear from your pilot: ___.",
    "I brought ___ to the potluck and nobody has spoken to me since.",
    "The landlord's only rule: no ___.",
    "Scientists have finally explained ___.",
    "My autobiography is titled ___.",
    "The wedding was going great until ___.",
    "What's hiding in the back of the office fridge?",
)

FALLBACK_ANSWERS = (
    "My dignity",
    "Showing up in pajamas",
    "A warning label",
    "A suspiciously damp sock",
    "Interpretive dance",
    "Three raccoons in a trench coat",
    "An unsolicited podcast recommendation",
    "Reply-all",
    "Aggressive networking",
    "A motivational poster about failure",
    "The last slice of pizza",
    "Crying in the parking lot",
    "A strongly worded email",
    "My ex's playlist",
    "Emotional damage",
    "Free samples",
    "A haunted printer",
    "Karaoke at 9 a.m.",
    "The wrong Zoom link",
    "A lifetime supply of glitter",
    "Passive-aggressive sticky notes",
    "Unseasoned chicken",
    "A forgotten password",
    "Jazz hands",
    "Tax fraud, but cute",
    "A llama with opinions",
    "Buffering",
    "Sending a voice memo",
    "Expired coupons",
    "A dramatic exit",
    "Mom's Facebook comments",
    "Overconfidence",
    "A participation trophy",
    "The group project",
    "An intern named Chad",
    "Spontaneous combustion",
    "A tiny hat",
    "My search history",
    "Splitting the bill evenly",
    "A surprise audit",
    "Wet socks",
    "The Wi-Fi password",
    "Gas station sushi",
    "An awkward hug",
    "A mime in distress",
    "Unlimited breadsticks",
    "A conspiracy board",
    "Rollerblades",
    "Daylight saving time",
    "Motivational yelling",
    "A spreadsheet of grudges",
    "Free-range children",
    "Two left shoes",
    "A questionable tattoo",
    "Cold brew and regret",
    "The neighbor's drone",
    "A pigeon with a plan",
    "Forbidden snacks",
    "An unpaid internship",
    "Competitive napping",
    "The fire drill",
    "A timeshare presentation",
    "Unskippable ads",
    "Fake plants",
)

FALLBACK_PROMPTS = (
    "Tell us about an unusual food you've eaten",
    "Share a weird talent or skill you have",
    "Describe an awkward encounter with a celebrity",
    "Tell us about a strange place you've been",
    "Share a funny childhood misconception",
    "Describe your most memorable job",
    "Tell us about a time you got lost",
    "Share something you collected as a kid",
    "Describe a holiday that went wrong",
    "Tell us about a pet you've had",
)

_FALLBACK_TEXT = {
    CardKind.QUESTION: FALLBACK_QUESTIONS,
    CardKind.ANSWER: FALLBACK_ANSWERS,
    CardKind.PROMPT: FALLBACK_PROMPTS,
}


class ContentSource(Protocol):
    def generate(self, kind: CardKind, count: int) -> List[TextCard]:
        ...

    def fallback(self, kind: CardKind) -> List[TextCard]:
        ...


class BuiltinContent:
    """Content source backed only by the shipped corpus."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self.rng = random.Random(seed)

    def generate(self, kind: CardKind, count: int) -> List[TextCard]:
        corpus = self.fallback(kind)
        return self.rng.sample(corpus, min(count, len(corpus)))

    def fallback(self, kind: CardKind) -> List[TextCard]:
        prefix = _ID_PREFIX[kind].lower()
        return [
            TextCard(id=f"{prefix}{idx}", text=text, kind=kind)
            for idx, text in enumerate(_FALLBACK_TEXT[kind], start=1)
        ]


def acquire(source: ContentSource, kind: CardKind, count: int, minimum: int) -> List[TextCard]:
    """Ask ``source`` for ``count`` cards of ``kind``; top up from its fallback below ``minimum``."""
    try:
        cards = _usable(source.generate(kind, count), kind)
    except Exception:
        cards = []
    if len(cards) < minimum:
        seen = {card.text for card in cards}
        for card in _usable(source.fallback(kind), kind):
            if card.text not in seen:
                seen.add(card.text)
                cards.append(card)
    return _reissue(cards[: max(count, minimum)], kind)


def _usable(cards: Iterable[object], kind: CardKind) -> List[TextCard]:
    return [
        card
        for card in cards or []
        if isinstance(card, TextCard) and card.kind == kind and isinstance(card.text, str) and card.text.strip()
    ]


def _reissue(cards: List[TextCard], kind: CardKind) -> List[TextCard]:
    # Source ids are not trusted to be unique across generate/fallback.
    prefix = _ID_PREFIX[kind]
    return [
        TextCard(id=f"{prefix}-{idx:03d}", text=card.text.strip(), kind=kind)
        for idx, card in enumerate(cards, start=1)
    ]
