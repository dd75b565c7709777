from __future__ import annotations

from typing import List, Optional

from parlor.cards import CardKind, TextCard
from parlor.content import BuiltinContent
from parlor.manager import create_session
from parlor.models import GameType, Player
from parlor.session import Session


def make_players(count: int) -> List[Player]:
    return [Player(id=f"p{idx}", name=f"Player{idx}") for idx in range(count)]


def create_game(
    game_type: GameType,
    players: int = 4,
    *,
    seed: int = 42,
    content=None,
    config=None,
    start: bool = True,
) -> Session:
    """Instantiate a session with a populated roster, started unless told otherwise."""
    roster = make_players(players)
    session = create_session(game_type, roster[0], seed=seed, content=content, config=config)
    for player in roster[1:]:
        assert session.join(player).ok
    if start:
        result = session.start()
        assert result.ok, result.error
    return session


class FailingContent(BuiltinContent):
    """Generator that always blows up; fallback still works."""

    def generate(self, kind: CardKind, count: int) -> List[TextCard]:
        raise RuntimeError("generator offline")


class ScriptedContent(BuiltinContent):
    def __init__(self, cards: Optional[List[object]] = None) -> None:
        super().__init__(seed=1)
        self.cards = cards or []

    def generate(self, kind: CardKind, count: int) -> List[TextCard]:
        return list(self.cards)


def play_stud_passively(session: Session, limit: int = 200) -> None:
    """Check when free, call otherwise, until the hand is settled."""
    engine = session.engine
    for _ in range(limit):
        actor = engine.actor_id
        if actor is None:
            return
        ctx = engine.hand
        if ctx.contributions.get(actor, 0) >= ctx.current_bet:
            assert engine.check(actor).ok
        else:
            assert engine.call(actor).ok
    raise AssertionError("hand did not finish")
