"""Party game session engine shared by every transport adapter."""

from .cards import CardKind, PlayingCard, RANKS, SUITS, TextCard, build_deck, draw, parse_cards
from .confession import ConfessionEngine
from .content import BuiltinContent, ContentSource
from .evaluator import HandCategory, HandRank, evaluate
from .exchange import ExchangeEngine
from .manager import GameManager, create_session
from .models import (
    ActionResult,
    ConfessionConfig,
    ErrorKind,
    ExchangeConfig,
    GameType,
    HostConfig,
    Player,
    SessionStatus,
    Snapshot,
    StudConfig,
)
from .session import Session
from .stud import StudEngine

__all__ = [
    "CardKind",
    "PlayingCard",
    "RANKS",
    "SUITS",
    "TextCard",
    "build_deck",
    "draw",
    "parse_cards",
    "ConfessionEngine",
    "BuiltinContent",
    "ContentSource",
    "HandCategory",
    "HandRank",
    "evaluate",
    "ExchangeEngine",
    "GameManager",
    "create_session",
    "ActionResult",
    "ConfessionConfig",
    "ErrorKind",
    "ExchangeConfig",
    "GameType",
    "HostConfig",
    "Player",
    "SessionStatus",
    "Snapshot",
    "StudConfig",
    "Session",
    "StudEngine",
]
