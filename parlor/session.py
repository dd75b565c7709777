from __future__ import annotations

import time
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .models import (
    MAX_CAPACITY,
    MIN_CAPACITY,
    ActionResult,
    ErrorKind,
    Player,
    SessionStatus,
    Snapshot,
)
from .rounds import RoundEngine

EngineFactory = Callable[["Session"], RoundEngine]


class Session:
    """Roster, status, round counter and scores for one game instance."""

    def __init__(
        self,
        session_id: str,
        creator: Player,
        engine_factory: EngineFactory,
        *,
        private: bool = False,
        capacity: int = MAX_CAPACITY,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.id = session_id
        self.creator = creator
        self.private = private
        self.clock = clock
        self.players: List[Player] = []
        self.scores: Dict[str, int] = {}
        self.status = SessionStatus.WAITING
        self.round = 0
        self.winners: Tuple[str, ...] = ()
        self.finished_at: Optional[float] = None
        self.destroyed = False

        self.engine = engine_factory(self)
        self.game_type = self.engine.game_type
        floor = max(MIN_CAPACITY, self.engine.min_players)
        self.capacity = max(floor, min(capacity, MAX_CAPACITY))

        self._add(creator)

    # Roster ----------------------------------------------------------

    def join(self, player: Player) -> ActionResult:
        self._ensure_alive()
        if len(self.players) >= self.capacity:
            return ActionResult.failure(ErrorKind.GAME_FULL)
        if self.status != SessionStatus.WAITING:
            return ActionResult.failure(ErrorKind.ALREADY_STARTED)
        if self.find(player.id) is not None:
            return ActionResult.failure(ErrorKind.DUPLICATE_PLAYER)
        self._add(player)
        return ActionResult.success(player_id=player.id)

    def leave(self, player_id: str) -> ActionResult:
        self._ensure_alive()
        index = self.index_of(player_id)
        if index is None:
            return ActionResult.failure(ErrorKind.PLAYER_NOT_FOUND)
        del self.players[index]
        self.scores.pop(player_id, None)

        if not self.players:
            if self.status != SessionStatus.FINISHED:
                self.finish(())
        elif self.status == SessionStatus.PLAYING:
            self.engine.on_leave(player_id, index)
        return ActionResult.success(player_id=player_id)

    def find(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def index_of(self, player_id: str) -> Optional[int]:
        for idx, player in enumerate(self.players):
            if player.id == player_id:
                return idx
        return None

    def player_ids(self) -> List[str]:
        return [player.id for player in self.players]

    def _add(self, player: Player) -> None:
        self.players.append(player)
        self.scores[player.id] = 0

    # Lifecycle -------------------------------------------------------

    @property
    def is_playing(self) -> bool:
        return self.status == SessionStatus.PLAYING

    def start(self) -> ActionResult:
        self._ensure_alive()
        if self.status != SessionStatus.WAITING:
            return ActionResult.failure(ErrorKind.ALREADY_STARTED)
        if len(self.players) < self.engine.min_players:
            return ActionResult.failure(ErrorKind.NOT_ENOUGH_PLAYERS)
        self._set_status(SessionStatus.PLAYING)
        self.round = 1
        self.engine.initialize()
        return ActionResult.success(round=self.round)

    def act(self, player_id: str, action: str, payload: Optional[Mapping[str, object]] = None) -> ActionResult:
        self._ensure_alive()
        if self.status != SessionStatus.PLAYING:
            return ActionResult.failure(ErrorKind.NOT_PLAYING)
        if self.find(player_id) is None:
            return ActionResult.failure(ErrorKind.PLAYER_NOT_FOUND)
        if payload is None:
            payload = {}
        elif not isinstance(payload, Mapping):
            return ActionResult.failure(ErrorKind.INVALID_PAYLOAD)
        return self.engine.handle_action(player_id, action, payload)

    def force_advance(self) -> ActionResult:
        self._ensure_alive()
        if self.status != SessionStatus.PLAYING:
            return ActionResult.failure(ErrorKind.NOT_PLAYING)
        return self.engine.force_advance()

    def advance_round(self) -> None:
        if self.status != SessionStatus.PLAYING:
            raise RuntimeError("Round counter only moves while playing")
        self.round += 1

    def finish(self, winners) -> None:
        self._set_status(SessionStatus.FINISHED)
        self.winners = tuple(winners)
        self.finished_at = self.clock()

    def destroy(self) -> None:
        self.destroyed = True

    def _set_status(self, status: SessionStatus) -> None:
        if status.order <= self.status.order:
            raise RuntimeError(f"Illegal status transition {self.status.value} -> {status.value}")
        self.status = status

    def _ensure_alive(self) -> None:
        if self.destroyed:
            raise RuntimeError("Session destroyed")

    # Scores ----------------------------------------------------------

    def award(self, player_id: str, points: int) -> None:
        if points < 0:
            raise ValueError("Awards cannot be negative")
        if player_id not in self.scores:
            raise KeyError(player_id)
        self.scores[player_id] += points

    def leaders(self) -> List[str]:
        if not self.scores:
            return []
        best = max(self.scores.values())
        return [player.id for player in self.players if self.scores[player.id] == best]

    # Views -----------------------------------------------------------

    def snapshot(self, viewer_id: Optional[str] = None) -> Snapshot:
        self._ensure_alive()
        hand: Tuple[Mapping[str, object], ...] = ()
        if viewer_id is not None and self.find(viewer_id) is not None:
            hand = tuple(MappingProxyType(card) for card in self.engine.hand_of(viewer_id))
        return Snapshot(
            session_id=self.id,
            game_type=self.game_type,
            creator=self.creator.id,
            private=self.private,
            capacity=self.capacity,
            players=tuple(self.players),
            status=self.status,
            round=self.round,
            scores=MappingProxyType(dict(self.scores)),
            winners=self.winners,
            game=MappingProxyType(self.engine.public_state()),
            viewer=viewer_id,
            hand=hand,
        )

    def summary(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "type": self.game_type.value,
            "creator": self.creator.name,
            "players": len(self.players),
            "capacity": self.capacity,
            "status": self.status.value,
        }
