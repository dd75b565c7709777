from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional

from .cards import CardKind, TextCard, draw, shuffle
from .content import BuiltinContent, ContentSource, acquire
from .models import ActionResult, ErrorKind, ExchangeConfig, GameType
from .rounds import ActionHandler, RoundEngine, str_field

if TYPE_CHECKING:
    from .session import Session


@dataclass
class ExchangeRound:
    # Mutable state for the round in progress.
    judge_index: int = 0
    question: Optional[TextCard] = None
    submissions: Dict[str, TextCard] = field(default_factory=dict)
    round_winner: Optional[str] = None


class ExchangeEngine(RoundEngine):
    """Judge-and-submit game: everyone but the judge answers the question card."""

    game_type = GameType.EXCHANGE

    def __init__(
        self,
        session: "Session",
        config: Optional[ExchangeConfig] = None,
        content: Optional[ContentSource] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(session, config or ExchangeConfig(), rng)
        self.content = content or BuiltinContent()
        self.questions: List[TextCard] = []
        self.answers: List[TextCard] = []
        self.hands: Dict[str, List[TextCard]] = {}
        self.state = ExchangeRound()

    # Setup -----------------------------------------------------------

    def initialize(self) -> None:
        question_count = self.config.content_count // 2
        answer_count = self.config.content_count - question_count
        full_deal = self.config.hand_size * len(self.session.players)
        self.questions = acquire(self.content, CardKind.QUESTION, question_count, self.config.min_questions)
        self.answers = acquire(self.content, CardKind.ANSWER, answer_count, full_deal)
        shuffle(self.questions, self.rng)
        shuffle(self.answers, self.rng)

        self.hands = {
            player_id: draw(self.answers, self.config.hand_size) for player_id in self.session.player_ids()
        }
        self.state = ExchangeRound(judge_index=0)
        self._draw_question()

    def _draw_question(self) -> None:
        # An exhausted question deck keeps the previous question in play.
        drawn = draw(self.questions, 1)
        if drawn:
            self.state.question = drawn[0]
        self.state.submissions.clear()
        self.state.round_winner = None

    # Queries ---------------------------------------------------------

    @property
    def judge_id(self) -> Optional[str]:
        players = self.session.players
        if not players:
            return None
        return players[self.state.judge_index % len(players)].id

    @property
    def ready_for_judging(self) -> bool:
        return len(self.state.submissions) >= len(self.session.players) - 1

    # Actions ---------------------------------------------------------

    def actions(self) -> Dict[str, ActionHandler]:
        return {
            "submit-card": self._submit_action,
            "judge": self._judge_action,
            "next-round": self._next_round_action,
        }

    def _submit_action(self, player_id: str, payload: Mapping[str, object]) -> ActionResult:
        card_id = str_field(payload, "card_id")
        if card_id is None:
            return ActionResult.failure(ErrorKind.INVALID_PAYLOAD)
        return self.submit(player_id, card_id)

    def _judge_action(self, player_id: str, payload: Mapping[str, object]) -> ActionResult:
        chosen = str_field(payload, "player_id")
        if chosen is None:
            return ActionResult.failure(ErrorKind.INVALID_PAYLOAD)
        return self.judge(player_id, chosen)

    def _next_round_action(self, player_id: str, payload: Mapping[str, object]) -> ActionResult:
        if player_id != self.judge_id:
            return ActionResult.failure(ErrorKind.NOT_JUDGE)
        return self.advance_round()

    def submit(self, player_id: str, card_id: str) -> ActionResult:
        if not self._playing():
            return ActionResult.failure(ErrorKind.NOT_PLAYING)
        if player_id == self.judge_id:
            return ActionResult.failure(ErrorKind.JUDGE_CANNOT_SUBMIT)
        if player_id in self.state.submissions:
            return ActionResult.failure(ErrorKind.DUPLICATE_SUBMISSION)
        if self.state.round_winner is not None:
            return ActionResult.failure(ErrorKind.ALREADY_JUDGED)
        hand = self.hands.get(player_id)
        if hand is None:
            return ActionResult.failure(ErrorKind.PLAYER_NOT_FOUND)
        index = next((idx for idx, card in enumerate(hand) if card.id == card_id), None)
        if index is None:
            return ActionResult.failure(ErrorKind.CARD_NOT_IN_HAND)

        self.state.submissions[player_id] = hand.pop(index)
        hand.extend(draw(self.answers, 1))
        return ActionResult.success(ready_for_judging=self.ready_for_judging)

    def judge(self, judge_id: str, chosen_player_id: str) -> ActionResult:
        if not self._playing():
            return ActionResult.failure(ErrorKind.NOT_PLAYING)
        if judge_id != self.judge_id:
            return ActionResult.failure(ErrorKind.NOT_JUDGE)
        if self.state.round_winner is not None:
            return ActionResult.failure(ErrorKind.ALREADY_JUDGED)
        if chosen_player_id not in self.state.submissions:
            return ActionResult.failure(ErrorKind.INVALID_CHOICE)
        self.session.award(chosen_player_id, self.config.points_per_win)
        self.state.round_winner = chosen_player_id
        return ActionResult.success(winner=chosen_player_id)

    def advance_round(self) -> ActionResult:
        """Close the round whether or not it was judged."""
        if not self._playing():
            return ActionResult.failure(ErrorKind.NOT_PLAYING)
        self.session.advance_round()
        if self.session.round > self.config.max_rounds:
            self._end_game()
            return ActionResult.success(game_ended=True, winners=list(self.session.winners))
        if self.session.players:
            self.state.judge_index = (self.state.judge_index + 1) % len(self.session.players)
        self._draw_question()
        return ActionResult.success(game_ended=False, round=self.session.round)

    def force_advance(self) -> ActionResult:
        return self.advance_round()

    # Departures ------------------------------------------------------

    def on_leave(self, player_id: str, index: int) -> None:
        self.hands.pop(player_id, None)
        self.state.submissions.pop(player_id, None)
        remaining = len(self.session.players)
        if index < self.state.judge_index:
            self.state.judge_index -= 1
        elif index == self.state.judge_index and self.state.round_winner is None:
            # Judge left before picking: the round is void and the next seat takes over.
            if remaining:
                self.state.judge_index %= remaining
            self._draw_question()
            return
        if remaining:
            self.state.judge_index %= remaining

    # Views -----------------------------------------------------------

    def public_state(self) -> Dict[str, object]:
        judge = self.judge_id
        return {
            "question": self.state.question.to_payload() if self.state.question else None,
            "judge": judge,
            "submissions": [
                {"player_id": player_id, "card": card.to_payload()}
                for player_id, card in self.state.submissions.items()
            ],
            "ready_for_judging": self.ready_for_judging,
            "round_winner": self.state.round_winner,
            "hand_sizes": {player_id: len(hand) for player_id, hand in self.hands.items()},
            "max_rounds": self.config.max_rounds,
            "questions_left": len(self.questions),
            "answers_left": len(self.answers),
        }

    def hand_of(self, player_id: str) -> List[Dict[str, object]]:
        return [card.to_payload() for card in self.hands.get(player_id, [])]
