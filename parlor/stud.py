from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Set

from .cards import PlayingCard, build_deck, draw
from .evaluator import HandRank, evaluate
from .models import ActionResult, ErrorKind, GameType, StudConfig
from .rounds import ActionHandler, RoundEngine, int_field

if TYPE_CHECKING:
    from .session import Session

# StudEngine plays a single hand of five-card stud. Seats are fixed when the
# hand is dealt; scores take the pot, nothing is deducted for bets.


@dataclass
class StudHand:
    seats: List[str]
    dealer: int
    deck: List[PlayingCard]
    hands: Dict[str, List[PlayingCard]] = field(default_factory=dict)
    contributions: Dict[str, int] = field(default_factory=dict)
    folded: Set[str] = field(default_factory=set)
    pending: Set[str] = field(default_factory=set)
    current_bet: int = 0
    pot: int = 0
    actor: Optional[int] = None
    betting_round: int = 1
    settled: bool = False
    payouts: Dict[str, int] = field(default_factory=dict)
    rankings: List[Dict[str, object]] = field(default_factory=list)


class StudEngine(RoundEngine):
    """Five-card stud with blinds, one hand per session."""

    game_type = GameType.STUD

    def __init__(
        self,
        session: "Session",
        config: Optional[StudConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(session, config or StudConfig(), rng)
        self.hand: Optional[StudHand] = None

    # Hand lifecycle --------------------------------------------------

    def initialize(self) -> None:
        seats = self.session.player_ids()
        ctx = StudHand(seats=seats, dealer=self.rng.randrange(len(seats)), deck=build_deck(self.rng))
        self.hand = ctx
        self._post_blinds(ctx)
        for player_id in seats:
            ctx.hands[player_id] = draw(ctx.deck, self.config.hole_cards)
        ctx.actor = self._next_active_seat(ctx, (ctx.dealer + 2) % len(seats))
        ctx.pending = set(self._active(ctx))

    def _post_blinds(self, ctx: StudHand) -> None:
        count = len(ctx.seats)
        sb_seat = ctx.seats[(ctx.dealer + 1) % count]
        bb_seat = ctx.seats[(ctx.dealer + 2) % count]
        self._commit(ctx, sb_seat, self.config.small_blind)
        self._commit(ctx, bb_seat, self.config.big_blind)
        ctx.current_bet = max(ctx.contributions.values())

    def _commit(self, ctx: StudHand, player_id: str, target: int) -> int:
        """Raise ``player_id``'s contribution to ``target``; returns the delta."""
        previous = ctx.contributions.get(player_id, 0)
        delta = max(target - previous, 0)
        ctx.contributions[player_id] = previous + delta
        ctx.pot += delta
        return delta

    def _active(self, ctx: StudHand) -> List[str]:
        return [player_id for player_id in ctx.seats if player_id not in ctx.folded]

    def _next_active_seat(self, ctx: StudHand, start: int) -> Optional[int]:
        count = len(ctx.seats)
        idx = (start + 1) % count
        for _ in range(count):
            if ctx.seats[idx] not in ctx.folded:
                return idx
            idx = (idx + 1) % count
        return None

    @property
    def actor_id(self) -> Optional[str]:
        ctx = self.hand
        if ctx is None or ctx.settled or ctx.actor is None:
            return None
        return ctx.seats[ctx.actor]

    # Actions ---------------------------------------------------------

    def actions(self) -> Dict[str, ActionHandler]:
        return {
            "fold": lambda player_id, payload: self.fold(player_id),
            "call": lambda player_id, payload: self.call(player_id),
            "check": lambda player_id, payload: self.check(player_id),
            "raise": self._raise_action,
        }

    def _raise_action(self, player_id: str, payload: Mapping[str, object]) -> ActionResult:
        amount = int_field(payload, "amount")
        if amount is None:
            return ActionResult.failure(ErrorKind.INVALID_RAISE_AMOUNT)
        return self.raise_bet(player_id, amount)

    def _guard_turn(self, player_id: str) -> Optional[ActionResult]:
        if not self._playing() or self.hand is None or self.hand.settled:
            return ActionResult.failure(ErrorKind.NOT_PLAYING)
        if player_id != self.actor_id:
            return ActionResult.failure(ErrorKind.NOT_YOUR_TURN)
        return None

    def fold(self, player_id: str) -> ActionResult:
        rejected = self._guard_turn(player_id)
        if rejected:
            return rejected
        ctx = self.hand
        assert ctx is not None
        ctx.folded.add(player_id)
        ctx.pending.discard(player_id)
        return self._after_action(ctx, action="fold")

    def call(self, player_id: str) -> ActionResult:
        rejected = self._guard_turn(player_id)
        if rejected:
            return rejected
        ctx = self.hand
        assert ctx is not None
        amount = self._commit(ctx, player_id, ctx.current_bet)
        ctx.pending.discard(player_id)
        return self._after_action(ctx, action="call", amount=amount)

    def check(self, player_id: str) -> ActionResult:
        rejected = self._guard_turn(player_id)
        if rejected:
            return rejected
        ctx = self.hand
        assert ctx is not None
        if ctx.contributions.get(player_id, 0) < ctx.current_bet:
            return ActionResult.failure(ErrorKind.CANNOT_CHECK)
        ctx.pending.discard(player_id)
        return self._after_action(ctx, action="check")

    def raise_bet(self, player_id: str, amount: int) -> ActionResult:
        rejected = self._guard_turn(player_id)
        if rejected:
            return rejected
        if amount <= 0:
            return ActionResult.failure(ErrorKind.INVALID_RAISE_AMOUNT)
        ctx = self.hand
        assert ctx is not None
        ctx.current_bet += amount
        added = self._commit(ctx, player_id, ctx.current_bet)
        ctx.pending = {other for other in self._active(ctx) if other != player_id}
        return self._after_action(ctx, action="raise", amount=added, current_bet=ctx.current_bet)

    def _after_action(self, ctx: StudHand, **data: object) -> ActionResult:
        active = self._active(ctx)
        if len(active) == 1:
            self._award(ctx, active)
            return ActionResult.success(hand_over=True, winners=active, **data)

        ctx.actor = self._next_active_seat(ctx, ctx.actor if ctx.actor is not None else ctx.dealer)
        if not ctx.pending and self._bets_level(ctx):
            self._complete_betting_round(ctx)
        return ActionResult.success(hand_over=ctx.settled, pot=ctx.pot, **data)

    def _bets_level(self, ctx: StudHand) -> bool:
        return all(ctx.contributions.get(player_id, 0) == ctx.current_bet for player_id in self._active(ctx))

    def _complete_betting_round(self, ctx: StudHand) -> None:
        ctx.betting_round += 1
        if ctx.betting_round > self.config.betting_rounds:
            self._showdown(ctx)
            return
        for player_id in self._active(ctx):
            ctx.hands[player_id].extend(draw(ctx.deck, 1))
        ctx.contributions.clear()
        ctx.current_bet = 0
        ctx.actor = self._next_active_seat(ctx, ctx.dealer)
        ctx.pending = set(self._active(ctx))

    # Showdown --------------------------------------------------------

    def _showdown(self, ctx: StudHand) -> None:
        ranks: Dict[str, HandRank] = {}
        for player_id in self._active(ctx):
            ranks[player_id] = evaluate(ctx.hands.get(player_id, []))

        contenders = [player_id for player_id, rank in ranks.items() if rank.complete] or list(ranks)
        best = max(ranks[player_id].strength for player_id in contenders)
        winners = [player_id for player_id in contenders if ranks[player_id].strength == best]

        ctx.rankings = sorted(
            (
                {
                    "player_id": player_id,
                    "cards": [card.label for card in ctx.hands.get(player_id, [])],
                    "category": rank.category.value,
                    "description": rank.description,
                    "strength": rank.strength,
                }
                for player_id, rank in ranks.items()
            ),
            key=lambda entry: entry["strength"],
            reverse=True,
        )
        self._award(ctx, winners)

    def _award(self, ctx: StudHand, winners: List[str]) -> None:
        # Odd chips go one each to the winners closest to the dealer's left.
        count = len(ctx.seats)
        order = [ctx.seats[(ctx.dealer + 1 + offset) % count] for offset in range(count)]
        ordered = [player_id for player_id in order if player_id in winners]
        share, remainder = divmod(ctx.pot, len(ordered))
        for idx, player_id in enumerate(ordered):
            payout = share + (1 if idx < remainder else 0)
            ctx.payouts[player_id] = payout
            if player_id in self.session.scores:
                self.session.award(player_id, payout)
        ctx.settled = True
        ctx.actor = None
        ctx.pending.clear()
        self.session.finish(ordered)

    # Timeouts and departures -----------------------------------------

    def force_advance(self) -> ActionResult:
        """Default move for a silent actor: check when free, otherwise fold."""
        player_id = self.actor_id
        if player_id is None or self.hand is None:
            return ActionResult.failure(ErrorKind.NOT_PLAYING)
        if self.hand.contributions.get(player_id, 0) >= self.hand.current_bet:
            return self.check(player_id)
        return self.fold(player_id)

    def force_showdown(self) -> ActionResult:
        """Settle immediately with whatever cards are held."""
        ctx = self.hand
        if not self._playing() or ctx is None or ctx.settled:
            return ActionResult.failure(ErrorKind.NOT_PLAYING)
        self._showdown(ctx)
        return ActionResult.success(hand_over=True, winners=list(self.session.winners))

    def on_leave(self, player_id: str, index: int) -> None:
        ctx = self.hand
        if ctx is None or ctx.settled or player_id not in ctx.seats or player_id in ctx.folded:
            return
        ctx.folded.add(player_id)
        ctx.pending.discard(player_id)
        ctx.hands.pop(player_id, None)
        active = self._active(ctx)
        if len(active) == 1:
            self._award(ctx, active)
            return
        if ctx.actor is not None and ctx.seats[ctx.actor] == player_id:
            ctx.actor = self._next_active_seat(ctx, ctx.actor)
        if not ctx.pending and self._bets_level(ctx):
            self._complete_betting_round(ctx)

    # Views -----------------------------------------------------------

    def public_state(self) -> Dict[str, object]:
        ctx = self.hand
        if ctx is None:
            return {"dealt": False}
        return {
            "dealt": True,
            "dealer": ctx.seats[ctx.dealer],
            "actor": self.actor_id,
            "pot": ctx.pot,
            "current_bet": ctx.current_bet,
            "contributions": dict(ctx.contributions),
            "folded": [player_id for player_id in ctx.seats if player_id in ctx.folded],
            "betting_round": ctx.betting_round,
            "max_betting_rounds": self.config.betting_rounds,
            "hand_sizes": {player_id: len(cards) for player_id, cards in ctx.hands.items()},
            "settled": ctx.settled,
            "payouts": dict(ctx.payouts),
            "rankings": [dict(entry) for entry in ctx.rankings],
        }

    def hand_of(self, player_id: str) -> List[Dict[str, object]]:
        if self.hand is None:
            return []
        return [card.to_payload() for card in self.hand.hands.get(player_id, [])]
