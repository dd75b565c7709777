from __future__ import annotations

import random
import time
import uuid
from typing import Callable, Dict, List, Mapping, Optional

from .confession import ConfessionEngine
from .content import ContentSource
from .exchange import ExchangeEngine
from .models import MAX_CAPACITY, ActionResult, ErrorKind, GameType, Player, SessionStatus
from .rounds import RoundEngine
from .session import Session
from .stud import StudEngine


def create_session(
    game_type: GameType,
    creator: Player,
    *,
    session_id: Optional[str] = None,
    private: bool = False,
    capacity: int = MAX_CAPACITY,
    seed: Optional[int] = None,
    content: Optional[ContentSource] = None,
    config=None,
    clock: Callable[[], float] = time.monotonic,
) -> Session:
    """Build a Session together with the round engine its game type calls for."""
    try:
        game_type = GameType(game_type)
    except ValueError:
        raise ValueError(f"Invalid game type: {game_type}") from None
    rng = random.Random(seed)

    def factory(session: Session) -> RoundEngine:
        if game_type == GameType.EXCHANGE:
            return ExchangeEngine(session, config, content, rng)
        if game_type == GameType.CONFESSION:
            return ConfessionEngine(session, config, content, rng)
        return StudEngine(session, config, rng)

    return Session(
        session_id or str(uuid.uuid4()),
        creator,
        factory,
        private=private,
        capacity=capacity,
        clock=clock,
    )


class GameManager:
    """In-memory registry of live sessions."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        grace_period: float = 60.0,
        content: Optional[ContentSource] = None,
    ) -> None:
        self.clock = clock
        self.grace_period = grace_period
        self.content = content
        self.sessions: Dict[str, Session] = {}

    def create(
        self,
        game_type: GameType,
        creator: Player,
        *,
        private: bool = False,
        capacity: int = MAX_CAPACITY,
        seed: Optional[int] = None,
        content: Optional[ContentSource] = None,
        config=None,
    ) -> Session:
        session = create_session(
            game_type,
            creator,
            private=private,
            capacity=capacity,
            seed=seed,
            content=content or self.content,
            config=config,
            clock=self.clock,
        )
        self.sessions[session.id] = session
        return session

    def get(self, session_id: str) -> Optional[Session]:
        return self.sessions.get(session_id)

    def public_sessions(self) -> List[Dict[str, object]]:
        return [
            session.summary()
            for session in self.sessions.values()
            if not session.private and session.status != SessionStatus.FINISHED
        ]

    def join(self, session_id: str, player: Player) -> ActionResult:
        session = self.sessions.get(session_id)
        if session is None:
            return ActionResult.failure(ErrorKind.SESSION_NOT_FOUND)
        return session.join(player)

    def leave(self, session_id: str, player_id: str) -> ActionResult:
        session = self.sessions.get(session_id)
        if session is None:
            return ActionResult.failure(ErrorKind.SESSION_NOT_FOUND)
        result = session.leave(player_id)
        if result.ok and not session.players:
            self._drop(session_id)
        return result

    def start(self, session_id: str) -> ActionResult:
        session = self.sessions.get(session_id)
        if session is None:
            return ActionResult.failure(ErrorKind.SESSION_NOT_FOUND)
        return session.start()

    def act(
        self,
        session_id: str,
        player_id: str,
        action: str,
        payload: Optional[Mapping[str, object]] = None,
    ) -> ActionResult:
        session = self.sessions.get(session_id)
        if session is None:
            return ActionResult.failure(ErrorKind.SESSION_NOT_FOUND)
        return session.act(player_id, action, payload)

    def reap(self) -> List[str]:
        """Drop finished sessions whose post-game viewing window has passed."""
        now = self.clock()
        expired = [
            session_id
            for session_id, session in self.sessions.items()
            if session.finished_at is not None and now - session.finished_at >= self.grace_period
        ]
        for session_id in expired:
            self._drop(session_id)
        return expired

    def _drop(self, session_id: str) -> None:
        session = self.sessions.pop(session_id, None)
        if session is not None:
            session.destroy()
