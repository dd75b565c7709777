import pytest

from parlor.models import ConfessionConfig, ErrorKind, GameType, SessionStatus

from .helpers import FailingContent, create_game

STATEMENTS = ["I have met a king", "I once ate a candle", "I can juggle knives"]


def confess(session, speaker="p0", statements=STATEMENTS):
    result = session.act(speaker, "submit-statements", {"statements": list(statements)})
    assert result.ok, result.error
    return result.data["statements"]


def test_first_speaker_gets_a_prompt():
    session = create_game(GameType.CONFESSION, players=3)
    engine = session.engine
    assert engine.speaker_id == "p0"
    assert engine.state.prompt.id.startswith("P-")
    assert engine.state.phase == "awaiting-statements"


def test_statements_are_stored_in_shuffled_display_order():
    session = create_game(GameType.CONFESSION, players=3)
    shown = confess(session, statements=["  I have met a king ", *STATEMENTS[1:]])
    assert sorted(shown) == sorted(STATEMENTS)
    assert session.engine.state.phase == "awaiting-guesses"
    assert session.snapshot().game["statements"] == shown


@pytest.mark.parametrize(
    "statements, expected",
    [
        (STATEMENTS[:2], ErrorKind.INVALID_STATEMENT_COUNT),
        (STATEMENTS + ["one more"], ErrorKind.INVALID_STATEMENT_COUNT),
        (["fine", "   ", "also fine"], ErrorKind.EMPTY_STATEMENT),
    ],
)
def test_statement_validation(statements, expected):
    session = create_game(GameType.CONFESSION, players=3)
    result = session.act("p0", "submit-statements", {"statements": statements})
    assert result.error == expected
    assert session.engine.state.statements == []


def test_only_the_speaker_submits_and_only_once():
    session = create_game(GameType.CONFESSION, players=3)
    wrong = session.act("p1", "submit-statements", {"statements": STATEMENTS})
    assert wrong.error == ErrorKind.WRONG_SPEAKER
    assert session.act("p0", "submit-statements", {"statements": "nope"}).error == ErrorKind.INVALID_PAYLOAD
    confess(session)
    again = session.act("p0", "submit-statements", {"statements": STATEMENTS})
    assert again.error == ErrorKind.ALREADY_SUBMITTED


def test_guess_guards():
    session = create_game(GameType.CONFESSION, players=3)
    assert session.act("p1", "guess", {"index": 0}).error == ErrorKind.NO_STATEMENTS
    confess(session)
    assert session.act("p0", "guess", {"index": 0}).error == ErrorKind.SPEAKER_CANNOT_GUESS
    assert session.act("p1", "guess", {"index": 3}).error == ErrorKind.INVALID_INDEX
    assert session.act("p1", "guess", {"index": -1}).error == ErrorKind.INVALID_INDEX
    assert session.act("p1", "guess", {"index": "1"}).error == ErrorKind.INVALID_PAYLOAD
    assert session.act("p1", "guess", {"index": True}).error == ErrorKind.INVALID_PAYLOAD

    first = session.act("p1", "guess", {"index": 1})
    assert first.ok
    assert first.data["all_guessed"] is False
    assert session.act("p1", "guess", {"index": 2}).error == ErrorKind.DUPLICATE_GUESS
    assert session.act("p2", "guess", {"index": 2}).data["all_guessed"] is True


def test_reveal_scores_guessers_and_speaker():
    session = create_game(GameType.CONFESSION, players=5)
    confess(session)
    session.act("p1", "guess", {"index": 2})
    session.act("p2", "guess", {"index": 2})
    session.act("p3", "guess", {"index": 0})

    assert session.act("p1", "reveal", {"index": 2}).error == ErrorKind.WRONG_SPEAKER
    assert session.act("p0", "reveal", {"index": 5}).error == ErrorKind.INVALID_INDEX
    result = session.act("p0", "reveal", {"index": 2})

    assert result.ok
    assert result.data["correct_points"] == 20
    assert result.data["fooled_points"] == 5
    assert session.scores == {"p0": 5, "p1": 10, "p2": 10, "p3": 0, "p4": 0}
    assert session.engine.state.phase == "revealed"

    assert session.act("p0", "reveal", {"index": 1}).error == ErrorKind.ALREADY_REVEALED
    assert session.act("p4", "guess", {"index": 2}).error == ErrorKind.ALREADY_REVEALED
    game = session.snapshot().game
    assert game["lie_index"] == 2
    assert {entry["player_id"]: entry["correct"] for entry in game["results"]} == {
        "p1": True,
        "p2": True,
        "p3": False,
    }


def test_reveal_before_statements_is_rejected():
    session = create_game(GameType.CONFESSION, players=3)
    assert session.act("p0", "reveal", {"index": 0}).error == ErrorKind.NO_STATEMENTS


def test_next_turn_passes_the_floor_and_wraps_into_a_new_round():
    session = create_game(GameType.CONFESSION, players=3)
    engine = session.engine
    first_prompt = engine.state.prompt
    confess(session)

    assert session.act("p1", "next-turn").error == ErrorKind.WRONG_SPEAKER
    assert session.act("p0", "next-turn").data["speaker"] == "p1"
    assert engine.state.statements == []
    assert engine.state.guesses == {}
    assert engine.state.prompt != first_prompt
    assert session.round == 1

    session.act("p1", "next-turn")
    session.act("p2", "next-turn")
    assert engine.speaker_id == "p0"
    assert session.round == 2


def test_forced_advance_skips_a_silent_speaker():
    session = create_game(GameType.CONFESSION, players=3)
    assert session.force_advance().ok
    assert session.engine.speaker_id == "p1"
    assert session.scores == {"p0": 0, "p1": 0, "p2": 0}


def test_game_ends_after_max_rounds_with_tied_leaders():
    session = create_game(GameType.CONFESSION, players=3, config=ConfessionConfig(max_rounds=1))
    confess(session)
    session.act("p1", "guess", {"index": 0})
    session.act("p2", "guess", {"index": 1})
    session.act("p0", "reveal", {"index": 0})
    assert session.scores == {"p0": 5, "p1": 10, "p2": 0}

    session.force_advance()
    session.force_advance()
    final = session.force_advance()

    assert final.data["game_ended"] is True
    assert session.status == SessionStatus.FINISHED
    assert session.winners == ("p1",)
    assert session.force_advance().error == ErrorKind.NOT_PLAYING


def test_prompts_fall_back_when_generation_fails():
    session = create_game(GameType.CONFESSION, players=3, content=FailingContent())
    assert session.engine.state.prompt is not None
    assert session.engine.state.prompt.text


def test_speaker_leaving_hands_the_floor_to_the_next_seat():
    session = create_game(GameType.CONFESSION, players=4)
    confess(session)
    session.act("p1", "guess", {"index": 0})
    session.leave("p0")

    engine = session.engine
    assert engine.speaker_id == "p1"
    assert engine.state.statements == []
    assert session.round == 1


def test_guesser_leaving_withdraws_their_guess():
    session = create_game(GameType.CONFESSION, players=4)
    confess(session)
    session.act("p2", "guess", {"index": 0})
    session.leave("p2")
    assert session.engine.state.guesses == {}
    assert session.engine.speaker_id == "p0"


def test_earlier_seat_leaving_keeps_the_speaker():
    session = create_game(GameType.CONFESSION, players=4)
    session.act("p0", "next-turn")
    session.leave("p0")
    assert session.engine.speaker_id == "p1"
