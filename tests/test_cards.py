import random

import pytest

from parlor.cards import RANKS, SUITS, PlayingCard, build_deck, draw, parse_cards, parse_label


def test_build_deck_has_52_unique_cards():
    deck = build_deck()
    assert len(deck) == 52
    assert len({(card.suit, card.rank) for card in deck}) == 52
    assert len({card.id for card in deck}) == 52


def test_shuffled_deck_is_a_permutation():
    reference = build_deck()
    for seed in range(20):
        shuffled = build_deck(random.Random(seed))
        assert sorted(shuffled, key=lambda card: card.id) == sorted(reference, key=lambda card: card.id)


def test_seeded_shuffle_is_reproducible():
    assert build_deck(random.Random(7)) == build_deck(random.Random(7))
    assert build_deck(random.Random(7)) != build_deck(random.Random(8))


def test_rank_values_follow_card_faces():
    values = {rank: PlayingCard(rank, "spades").value for rank in RANKS}
    assert values["2"] == 2
    assert values["10"] == 10
    assert (values["J"], values["Q"], values["K"], values["A"]) == (11, 12, 13, 14)


def test_draw_pops_from_the_end():
    deck = build_deck()
    last_two = deck[-2:]
    drawn = draw(deck, 2)
    assert drawn == list(reversed(last_two))
    assert len(deck) == 50


def test_draw_from_short_deck_returns_what_is_left():
    deck = parse_cards(["Ah", "Kd"])
    assert len(draw(deck, 5)) == 2
    assert deck == []
    assert draw(deck, 1) == []


def test_parse_label_accepts_ten_spellings():
    assert parse_label("Ah") == PlayingCard("A", "hearts")
    assert parse_label("10d") == PlayingCard("10", "diamonds")
    assert parse_label("Td") == PlayingCard("10", "diamonds")
    assert parse_label("10d").label == "10d"


def test_card_validation_rejects_invalid_labels():
    with pytest.raises(ValueError, match="Invalid rank"):
        PlayingCard("1", "hearts")
    with pytest.raises(ValueError, match="Invalid suit"):
        PlayingCard("A", "stars")
    with pytest.raises(ValueError, match="Invalid suit"):
        parse_label("Ax")
    with pytest.raises(ValueError, match="Invalid card label"):
        parse_label("A")


def test_cards_are_immutable():
    card = PlayingCard("Q", SUITS[0])
    with pytest.raises(AttributeError):
        card.rank = "K"  # type: ignore[misc]
