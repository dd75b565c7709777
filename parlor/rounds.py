from __future__ import annotations

import random
from typing import TYPE_CHECKING, Callable, Dict, List, Mapping, Optional

from .models import ActionResult, ErrorKind, GameType

if TYPE_CHECKING:
    from .session import Session

ActionHandler = Callable[[str, Mapping[str, object]], ActionResult]


class RoundEngine:
    """Game-type specific state machine layered on a Session.

    Subclasses own their deck, hands and per-round tables; the session is only
    touched through its scorekeeping and lifecycle methods.
    """

    game_type: GameType

    def __init__(self, session: "Session", config, rng: Optional[random.Random] = None) -> None:
        self.session = session
        self.config = config
        self.rng = rng or random.Random()

    @property
    def min_players(self) -> int:
        return self.config.min_players

    def initialize(self) -> None:
        raise NotImplementedError

    def actions(self) -> Dict[str, ActionHandler]:
        raise NotImplementedError

    def handle_action(self, player_id: str, action: str, payload: Mapping[str, object]) -> ActionResult:
        handler = self.actions().get(action)
        if handler is None:
            return ActionResult.failure(ErrorKind.UNKNOWN_ACTION)
        return handler(player_id, payload)

    def force_advance(self) -> ActionResult:
        """Timeout entry point; safe to call at any moment."""
        raise NotImplementedError

    def on_leave(self, player_id: str, index: int) -> None:
        """Called after ``player_id`` left the roster from position ``index`` mid-game."""

    def public_state(self) -> Dict[str, object]:
        return {}

    def hand_of(self, player_id: str) -> List[Dict[str, object]]:
        return []

    # Shared helpers ---------------------------------------------------

    def _playing(self) -> bool:
        return self.session.is_playing

    def _end_game(self) -> None:
        self.session.finish(self.session.leaders())


def int_field(payload: Mapping[str, object], key: str) -> Optional[int]:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def str_field(payload: Mapping[str, object], key: str) -> Optional[str]:
    value = payload.get(key)
    return value if isinstance(value, str) else None
