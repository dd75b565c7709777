from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Sequence

from .cards import CardKind, TextCard, draw, shuffle
from .content import BuiltinContent, ContentSource, acquire
from .models import ActionResult, ConfessionConfig, ErrorKind, GameType
from .rounds import ActionHandler, RoundEngine, int_field

if TYPE_CHECKING:
    from .session import Session

STATEMENT_COUNT = 3


@dataclass
class ConfessionTurn:
    speaker_index: int = 0
    prompt: Optional[TextCard] = None
    # Display order; the lie's position is only known to the speaker.
    statements: List[str] = field(default_factory=list)
    guesses: Dict[str, int] = field(default_factory=dict)
    revealed_index: Optional[int] = None
    results: List[Dict[str, object]] = field(default_factory=list)

    @property
    def phase(self) -> str:
        if not self.statements:
            return "awaiting-statements"
        if self.revealed_index is None:
            return "awaiting-guesses"
        return "revealed"


class ConfessionEngine(RoundEngine):
    """Two statements and a lie: the speaker fools, everyone else guesses."""

    game_type = GameType.CONFESSION

    def __init__(
        self,
        session: "Session",
        config: Optional[ConfessionConfig] = None,
        content: Optional[ContentSource] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(session, config or ConfessionConfig(), rng)
        self.content = content or BuiltinContent()
        self.prompts: List[TextCard] = []
        self.state = ConfessionTurn()

    def initialize(self) -> None:
        rounds = self.config.max_rounds
        self.prompts = acquire(self.content, CardKind.PROMPT, rounds * 2, rounds)
        shuffle(self.prompts, self.rng)
        self.state = ConfessionTurn(speaker_index=0)
        self._draw_prompt()

    def _draw_prompt(self) -> None:
        drawn = draw(self.prompts, 1)
        if drawn:
            self.state.prompt = drawn[0]

    @property
    def speaker_id(self) -> Optional[str]:
        players = self.session.players
        if not players or self.state.speaker_index >= len(players):
            return None
        return players[self.state.speaker_index].id

    # Actions ---------------------------------------------------------

    def actions(self) -> Dict[str, ActionHandler]:
        return {
            "submit-statements": self._statements_action,
            "guess": self._guess_action,
            "reveal": self._reveal_action,
            "next-turn": self._next_turn_action,
        }

    def _statements_action(self, player_id: str, payload: Mapping[str, object]) -> ActionResult:
        statements = payload.get("statements")
        if not isinstance(statements, (list, tuple)):
            return ActionResult.failure(ErrorKind.INVALID_PAYLOAD)
        if not all(isinstance(text, str) for text in statements):
            return ActionResult.failure(ErrorKind.INVALID_PAYLOAD)
        return self.submit_statements(player_id, statements)

    def _guess_action(self, player_id: str, payload: Mapping[str, object]) -> ActionResult:
        index = int_field(payload, "index")
        if index is None:
            return ActionResult.failure(ErrorKind.INVALID_PAYLOAD)
        return self.guess(player_id, index)

    def _reveal_action(self, player_id: str, payload: Mapping[str, object]) -> ActionResult:
        index = int_field(payload, "index")
        if index is None:
            return ActionResult.failure(ErrorKind.INVALID_PAYLOAD)
        return self.reveal(player_id, index)

    def _next_turn_action(self, player_id: str, payload: Mapping[str, object]) -> ActionResult:
        if player_id != self.speaker_id:
            return ActionResult.failure(ErrorKind.WRONG_SPEAKER)
        return self.next_turn()

    def submit_statements(self, speaker_id: str, statements: Sequence[str]) -> ActionResult:
        if not self._playing():
            return ActionResult.failure(ErrorKind.NOT_PLAYING)
        if speaker_id != self.speaker_id:
            return ActionResult.failure(ErrorKind.WRONG_SPEAKER)
        if len(statements) != STATEMENT_COUNT:
            return ActionResult.failure(ErrorKind.INVALID_STATEMENT_COUNT)
        if any(not text.strip() for text in statements):
            return ActionResult.failure(ErrorKind.EMPTY_STATEMENT)
        if self.state.statements:
            return ActionResult.failure(ErrorKind.ALREADY_SUBMITTED)

        self.state.statements = shuffle([text.strip() for text in statements], self.rng)
        self.state.guesses.clear()
        return ActionResult.success(statements=list(self.state.statements))

    def guess(self, player_id: str, statement_index: int) -> ActionResult:
        if not self._playing():
            return ActionResult.failure(ErrorKind.NOT_PLAYING)
        if player_id == self.speaker_id:
            return ActionResult.failure(ErrorKind.SPEAKER_CANNOT_GUESS)
        if player_id in self.state.guesses:
            return ActionResult.failure(ErrorKind.DUPLICATE_GUESS)
        if not 0 <= statement_index < STATEMENT_COUNT:
            return ActionResult.failure(ErrorKind.INVALID_INDEX)
        if not self.state.statements:
            return ActionResult.failure(ErrorKind.NO_STATEMENTS)
        if self.state.revealed_index is not None:
            return ActionResult.failure(ErrorKind.ALREADY_REVEALED)
        self.state.guesses[player_id] = statement_index
        return ActionResult.success(all_guessed=self.all_guessed)

    def reveal(self, speaker_id: str, lie_index: int) -> ActionResult:
        if not self._playing():
            return ActionResult.failure(ErrorKind.NOT_PLAYING)
        if speaker_id != self.speaker_id:
            return ActionResult.failure(ErrorKind.WRONG_SPEAKER)
        if not 0 <= lie_index < STATEMENT_COUNT:
            return ActionResult.failure(ErrorKind.INVALID_INDEX)
        if not self.state.statements:
            return ActionResult.failure(ErrorKind.NO_STATEMENTS)
        if self.state.revealed_index is not None:
            return ActionResult.failure(ErrorKind.ALREADY_REVEALED)

        correct = 0
        results: List[Dict[str, object]] = []
        for player_id, guess in self.state.guesses.items():
            was_correct = guess == lie_index
            if was_correct:
                correct += 1
                self.session.award(player_id, self.config.correct_guess_points)
            results.append({"player_id": player_id, "guess": guess, "correct": was_correct})
        fooled = len(self.state.guesses) - correct
        self.session.award(speaker_id, fooled * self.config.fooled_points)

        self.state.revealed_index = lie_index
        self.state.results = results
        return ActionResult.success(
            lie_index=lie_index,
            results=results,
            correct_points=correct * self.config.correct_guess_points,
            fooled_points=fooled * self.config.fooled_points,
        )

    @property
    def all_guessed(self) -> bool:
        return len(self.state.guesses) >= len(self.session.players) - 1

    def next_turn(self) -> ActionResult:
        """Pass the floor to the next speaker, revealed or not."""
        if not self._playing():
            return ActionResult.failure(ErrorKind.NOT_PLAYING)
        return self._pass_turn(self.state.speaker_index + 1)

    def force_advance(self) -> ActionResult:
        return self.next_turn()

    def _pass_turn(self, next_index: int) -> ActionResult:
        if next_index >= len(self.session.players):
            next_index = 0
            self.session.advance_round()
            if self.session.round > self.config.max_rounds:
                self._end_game()
                return ActionResult.success(game_ended=True, winners=list(self.session.winners))
        self.state = ConfessionTurn(speaker_index=next_index, prompt=self.state.prompt)
        self._draw_prompt()
        return ActionResult.success(game_ended=False, speaker=self.speaker_id)

    def on_leave(self, player_id: str, index: int) -> None:
        self.state.guesses.pop(player_id, None)
        if index < self.state.speaker_index:
            self.state.speaker_index -= 1
        elif index == self.state.speaker_index:
            # Speaker left: the player now at this seat speaks next.
            self._pass_turn(index)

    # Views -----------------------------------------------------------

    def public_state(self) -> Dict[str, object]:
        revealed = self.state.revealed_index is not None
        return {
            "prompt": self.state.prompt.to_payload() if self.state.prompt else None,
            "speaker": self.speaker_id,
            "phase": self.state.phase,
            "statements": list(self.state.statements),
            "guessed": list(self.state.guesses),
            "all_guessed": self.all_guessed,
            "lie_index": self.state.revealed_index,
            "results": [dict(result) for result in self.state.results] if revealed else [],
            "max_rounds": self.config.max_rounds,
        }
