from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

MIN_CAPACITY = 2
MAX_CAPACITY = 8


class GameType(str, Enum):
    EXCHANGE = "card-exchange"
    CONFESSION = "confession"
    STUD = "stud-poker"


class SessionStatus(str, Enum):
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"

    @property
    def order(self) -> int:
        return list(SessionStatus).index(self)


class ErrorKind(str, Enum):
    # Session
    GAME_FULL = "GAME_FULL"
    ALREADY_STARTED = "ALREADY_STARTED"
    DUPLICATE_PLAYER = "DUPLICATE_PLAYER"
    NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    NOT_PLAYING = "NOT_PLAYING"
    UNKNOWN_ACTION = "UNKNOWN_ACTION"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    # Card-Exchange
    JUDGE_CANNOT_SUBMIT = "JUDGE_CANNOT_SUBMIT"
    DUPLICATE_SUBMISSION = "DUPLICATE_SUBMISSION"
    CARD_NOT_IN_HAND = "CARD_NOT_IN_HAND"
    NOT_JUDGE = "NOT_JUDGE"
    INVALID_CHOICE = "INVALID_CHOICE"
    ALREADY_JUDGED = "ALREADY_JUDGED"
    # Confession
    WRONG_SPEAKER = "WRONG_SPEAKER"
    INVALID_STATEMENT_COUNT = "INVALID_STATEMENT_COUNT"
    EMPTY_STATEMENT = "EMPTY_STATEMENT"
    ALREADY_SUBMITTED = "ALREADY_SUBMITTED"
    NO_STATEMENTS = "NO_STATEMENTS"
    SPEAKER_CANNOT_GUESS = "SPEAKER_CANNOT_GUESS"
    DUPLICATE_GUESS = "DUPLICATE_GUESS"
    INVALID_INDEX = "INVALID_INDEX"
    ALREADY_REVEALED = "ALREADY_REVEALED"
    # Stud-Poker
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    CANNOT_CHECK = "CANNOT_CHECK"
    INVALID_RAISE_AMOUNT = "INVALID_RAISE_AMOUNT"

    @property
    def advisory(self) -> str:
        return _ADVISORIES[self]


_ADVISORIES: Dict[ErrorKind, str] = {
    ErrorKind.GAME_FULL: "Game is full",
    ErrorKind.ALREADY_STARTED: "Game already started",
    ErrorKind.DUPLICATE_PLAYER: "Player already in game",
    ErrorKind.NOT_ENOUGH_PLAYERS: "Not enough players to start",
    ErrorKind.PLAYER_NOT_FOUND: "Player is not in this game",
    ErrorKind.NOT_PLAYING: "Game is not in progress",
    ErrorKind.UNKNOWN_ACTION: "Unknown action",
    ErrorKind.INVALID_PAYLOAD: "Malformed action payload",
    ErrorKind.SESSION_NOT_FOUND: "Game not found",
    ErrorKind.JUDGE_CANNOT_SUBMIT: "The judge cannot submit cards",
    ErrorKind.DUPLICATE_SUBMISSION: "You have already submitted a card this round",
    ErrorKind.CARD_NOT_IN_HAND: "Card not found in your hand",
    ErrorKind.NOT_JUDGE: "Only the judge can do that",
    ErrorKind.INVALID_CHOICE: "That player did not submit a card",
    ErrorKind.ALREADY_JUDGED: "This round has already been judged",
    ErrorKind.WRONG_SPEAKER: "Only the current speaker can do that",
    ErrorKind.INVALID_STATEMENT_COUNT: "Submit exactly 3 statements",
    ErrorKind.EMPTY_STATEMENT: "All statements must have content",
    ErrorKind.ALREADY_SUBMITTED: "Statements already submitted this turn",
    ErrorKind.NO_STATEMENTS: "Waiting for the speaker's statements",
    ErrorKind.SPEAKER_CANNOT_GUESS: "The speaker cannot guess",
    ErrorKind.DUPLICATE_GUESS: "You have already made your guess",
    ErrorKind.INVALID_INDEX: "Statement index must be 0, 1 or 2",
    ErrorKind.ALREADY_REVEALED: "The lie has already been revealed",
    ErrorKind.NOT_YOUR_TURN: "Not your turn",
    ErrorKind.CANNOT_CHECK: "Cannot check, must call or fold",
    ErrorKind.INVALID_RAISE_AMOUNT: "Raise amount must be a positive whole number",
}


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    error: Optional[ErrorKind] = None
    data: Mapping[str, object] = field(default_factory=dict)

    @classmethod
    def success(cls, **data: object) -> "ActionResult":
        return cls(ok=True, data=MappingProxyType(dict(data)))

    @classmethod
    def failure(cls, error: ErrorKind) -> "ActionResult":
        return cls(ok=False, error=error)

    @property
    def message(self) -> str:
        return self.error.advisory if self.error else ""


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    handle: Optional[str] = None


@dataclass
class ExchangeConfig:
    min_players: int = 3
    hand_size: int = 7
    max_rounds: int = 10
    content_count: int = 50
    min_questions: int = 10
    points_per_win: int = 1


@dataclass
class ConfessionConfig:
    min_players: int = 3
    max_rounds: int = 5
    correct_guess_points: int = 10
    fooled_points: int = 5


@dataclass
class StudConfig:
    min_players: int = 2
    small_blind: int = 5
    big_blind: int = 10
    betting_rounds: int = 4
    hole_cards: int = 2


@dataclass
class HostConfig:
    turn_time_ms: int = 60_000
    grace_period_s: float = 60.0
    reap_interval_s: float = 5.0


@dataclass(frozen=True)
class Snapshot:
    session_id: str
    game_type: GameType
    creator: str
    private: bool
    capacity: int
    players: Tuple[Player, ...]
    status: SessionStatus
    round: int
    scores: Mapping[str, int]
    winners: Tuple[str, ...]
    game: Mapping[str, object]
    viewer: Optional[str] = None
    hand: Tuple[Mapping[str, object], ...] = ()

    def to_payload(self) -> Dict[str, object]:
        return {
            "id": self.session_id,
            "type": self.game_type.value,
            "creator": self.creator,
            "private": self.private,
            "capacity": self.capacity,
            "players": [{"id": player.id, "name": player.name} for player in self.players],
            "status": self.status.value,
            "round": self.round,
            "scores": dict(self.scores),
            "winners": list(self.winners),
            "game": dict(self.game),
            "viewer": self.viewer,
            "hand": [dict(card) for card in self.hand],
        }
