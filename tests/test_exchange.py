from parlor.cards import CardKind, TextCard
from parlor.content import FALLBACK_QUESTIONS
from parlor.models import ErrorKind, ExchangeConfig, GameType, SessionStatus

from .helpers import FailingContent, ScriptedContent, create_game


def first_card(session, player_id):
    return session.engine.hands[player_id][0].id


def test_start_deals_hands_and_a_question():
    session = create_game(GameType.EXCHANGE, players=3)
    engine = session.engine

    assert engine.judge_id == "p0"
    assert engine.state.question is not None
    assert engine.state.question.id.startswith("Q-")
    assert all(len(hand) == 7 for hand in engine.hands.values())
    dealt = [card.id for hand in engine.hands.values() for card in hand]
    assert len(dealt) == len(set(dealt)) == 21


def test_judge_cannot_submit():
    session = create_game(GameType.EXCHANGE, players=3)
    result = session.act("p0", "submit-card", {"card_id": first_card(session, "p0")})
    assert result.error == ErrorKind.JUDGE_CANNOT_SUBMIT


def test_submit_moves_card_and_refills_hand():
    session = create_game(GameType.EXCHANGE, players=3)
    engine = session.engine
    card_id = first_card(session, "p1")
    answers_before = len(engine.answers)

    result = session.act("p1", "submit-card", {"card_id": card_id})

    assert result.ok
    assert result.data["ready_for_judging"] is False
    assert engine.state.submissions["p1"].id == card_id
    assert card_id not in [card.id for card in engine.hands["p1"]]
    assert len(engine.hands["p1"]) == 7
    assert len(engine.answers) == answers_before - 1


def test_submission_guards():
    session = create_game(GameType.EXCHANGE, players=3)
    assert session.act("p1", "submit-card", {"card_id": "nope"}).error == ErrorKind.CARD_NOT_IN_HAND
    assert session.act("p1", "submit-card", {}).error == ErrorKind.INVALID_PAYLOAD

    assert session.act("p1", "submit-card", {"card_id": first_card(session, "p1")}).ok
    again = session.act("p1", "submit-card", {"card_id": first_card(session, "p1")})
    assert again.error == ErrorKind.DUPLICATE_SUBMISSION


def test_judging_awards_one_point_once():
    session = create_game(GameType.EXCHANGE, players=4)
    session.act("p1", "submit-card", {"card_id": first_card(session, "p1")})
    session.act("p2", "submit-card", {"card_id": first_card(session, "p2")})

    assert session.act("p1", "judge", {"player_id": "p2"}).error == ErrorKind.NOT_JUDGE
    assert session.act("p0", "judge", {"player_id": "p3"}).error == ErrorKind.INVALID_CHOICE
    assert session.act("p0", "judge", {"player_id": "p0"}).error == ErrorKind.INVALID_CHOICE

    result = session.act("p0", "judge", {"player_id": "p2"})
    assert result.ok
    assert result.data["winner"] == "p2"
    assert session.scores == {"p0": 0, "p1": 0, "p2": 1, "p3": 0}

    assert session.act("p0", "judge", {"player_id": "p1"}).error == ErrorKind.ALREADY_JUDGED
    late = session.act("p3", "submit-card", {"card_id": first_card(session, "p3")})
    assert late.error == ErrorKind.ALREADY_JUDGED
    assert session.scores["p2"] == 1


def test_ready_for_judging_once_every_non_judge_submitted():
    session = create_game(GameType.EXCHANGE, players=3)
    session.act("p1", "submit-card", {"card_id": first_card(session, "p1")})
    result = session.act("p2", "submit-card", {"card_id": first_card(session, "p2")})
    assert result.data["ready_for_judging"] is True
    assert session.snapshot().game["ready_for_judging"] is True


def test_next_round_rotates_judge_and_draws_a_new_question():
    session = create_game(GameType.EXCHANGE, players=3)
    engine = session.engine
    old_question = engine.state.question
    session.act("p1", "submit-card", {"card_id": first_card(session, "p1")})

    assert session.act("p1", "next-round").error == ErrorKind.NOT_JUDGE
    result = session.act("p0", "next-round")

    assert result.ok
    assert result.data["game_ended"] is False
    assert session.round == 2
    assert engine.judge_id == "p1"
    assert engine.state.submissions == {}
    assert engine.state.round_winner is None
    assert engine.state.question != old_question


def test_forced_advance_voids_an_unjudged_round():
    session = create_game(GameType.EXCHANGE, players=3)
    session.act("p1", "submit-card", {"card_id": first_card(session, "p1")})
    assert session.force_advance().ok
    assert session.scores == {"p0": 0, "p1": 0, "p2": 0}
    assert session.round == 2
    assert session.engine.judge_id == "p1"


def test_game_finishes_after_max_rounds():
    session = create_game(GameType.EXCHANGE, players=3, config=ExchangeConfig(max_rounds=2))
    session.act("p1", "submit-card", {"card_id": first_card(session, "p1")})
    session.act("p0", "judge", {"player_id": "p1"})

    assert session.act("p0", "next-round").data["game_ended"] is False
    final = session.act("p1", "next-round")

    assert final.data["game_ended"] is True
    assert session.status == SessionStatus.FINISHED
    assert session.winners == ("p1",)
    assert session.act("p2", "submit-card", {"card_id": first_card(session, "p2")}).error == ErrorKind.NOT_PLAYING


def test_exhausted_question_deck_keeps_current_question():
    config = ExchangeConfig(content_count=2, min_questions=1)
    session = create_game(GameType.EXCHANGE, players=3, config=config)
    engine = session.engine
    question = engine.state.question

    assert engine.questions == []
    session.force_advance()
    assert engine.state.question == question
    assert session.round == 2


def test_failing_generator_falls_back_to_builtin_corpus():
    session = create_game(GameType.EXCHANGE, players=3, content=FailingContent())
    engine = session.engine
    assert engine.state.question is not None
    assert all(len(hand) == 7 for hand in engine.hands.values())
    question_ids = [card.id for card in engine.questions] + [engine.state.question.id]
    assert len(question_ids) == len(set(question_ids)) == len(FALLBACK_QUESTIONS)


def test_generated_junk_is_filtered_out():
    junk = [
        TextCard(id="x", text="   ", kind=CardKind.QUESTION),
        TextCard(id="x", text="Wrong kind", kind=CardKind.PROMPT),
        "not a card",
        TextCard(id="x", text="Why is the printer on fire?", kind=CardKind.QUESTION),
    ]
    session = create_game(GameType.EXCHANGE, players=3, content=ScriptedContent(junk))
    engine = session.engine
    texts = [card.text for card in engine.questions] + [engine.state.question.text]
    assert "Why is the printer on fire?" in texts
    assert "Wrong kind" not in texts
    assert all(text.strip() for text in texts)
    assert all(len(hand) == 7 for hand in engine.hands.values())


def test_non_judge_leaving_drops_their_submission():
    session = create_game(GameType.EXCHANGE, players=4)
    session.act("p2", "submit-card", {"card_id": first_card(session, "p2")})
    session.leave("p2")

    engine = session.engine
    assert "p2" not in engine.state.submissions
    assert "p2" not in engine.hands
    assert engine.judge_id == "p0"


def test_judge_leaving_voids_the_round():
    session = create_game(GameType.EXCHANGE, players=4)
    session.act("p1", "submit-card", {"card_id": first_card(session, "p1")})
    session.leave("p0")

    engine = session.engine
    assert engine.judge_id == "p1"
    assert engine.state.submissions == {}
    assert session.round == 1


def test_judge_leaving_after_judging_keeps_the_round_closed():
    session = create_game(GameType.EXCHANGE, players=4)
    session.act("p1", "submit-card", {"card_id": first_card(session, "p1")})
    session.act("p0", "judge", {"player_id": "p1"})
    question = session.engine.state.question
    session.leave("p0")

    engine = session.engine
    assert engine.judge_id == "p1"
    assert engine.state.round_winner == "p1"
    assert engine.state.question == question
    late = session.act("p2", "submit-card", {"card_id": first_card(session, "p2")})
    assert late.error == ErrorKind.ALREADY_JUDGED
    assert session.act("p1", "judge", {"player_id": "p1"}).error == ErrorKind.ALREADY_JUDGED
    assert session.scores == {"p1": 1, "p2": 0, "p3": 0}

    assert session.act("p1", "next-round").ok
    assert session.round == 2
    assert engine.state.round_winner is None


def test_leaving_before_the_judge_keeps_the_same_judge():
    session = create_game(GameType.EXCHANGE, players=4)
    session.act("p0", "next-round")
    assert session.engine.judge_id == "p1"
    session.leave("p0")
    assert session.engine.judge_id == "p1"


def test_public_state_hides_hands():
    session = create_game(GameType.EXCHANGE, players=3)
    session.act("p1", "submit-card", {"card_id": first_card(session, "p1")})
    game = session.snapshot("p2").game
    assert game["judge"] == "p0"
    assert game["submissions"][0]["player_id"] == "p1"
    assert set(game["submissions"][0]["card"]) == {"id", "text"}
    assert "hands" not in game


def test_submit_from_an_exhausted_deck_shrinks_the_hand():
    session = create_game(GameType.EXCHANGE, players=4)
    engine = session.engine
    assert engine.answers == []

    session.act("p1", "submit-card", {"card_id": first_card(session, "p1")})
    assert len(engine.hands["p1"]) == 6


def test_four_player_round_with_every_submission_in():
    session = create_game(GameType.EXCHANGE, players=4)
    assert session.act("p0", "submit-card", {"card_id": first_card(session, "p0")}).error == ErrorKind.JUDGE_CANNOT_SUBMIT
    for player_id in ("p1", "p2", "p3"):
        assert session.act(player_id, "submit-card", {"card_id": first_card(session, player_id)}).ok
    assert session.engine.ready_for_judging
    assert session.act("p3", "judge", {"player_id": "p1"}).error == ErrorKind.NOT_JUDGE
