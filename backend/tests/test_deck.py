import itertools
import random

from setboard.models import Card, Theme, ThemeProperty
from setboard.services.games.deck import (
    CLASSIC_THEME,
    describe_card,
    generate_deck,
    get_theme,
    is_valid_match,
    shuffle,
)


def card(cid, *props):
    return Card(id=cid, properties=tuple(props))


def test_classic_deck_is_full_cartesian_product():
    deck = generate_deck(CLASSIC_THEME)
    assert len(deck) == 81
    assert [c.id for c in deck] == list(range(81))
    assert sorted(c.properties for c in deck) == list(itertools.product(range(3), repeat=4))
    # attribute 0 varies slowest
    assert deck[0].properties == (0, 0, 0, 0)
    assert deck[1].properties == (0, 0, 0, 1)
    assert deck[27].properties == (1, 0, 0, 0)
    assert deck[80].properties == (2, 2, 2, 2)


def test_deck_size_follows_theme_arity():
    theme = Theme(
        id='tiny',
        name='Tiny',
        properties=(
            ThemeProperty('a', ('x', 'y')),
            ThemeProperty('b', ('x', 'y', 'z')),
        ),
    )
    deck = generate_deck(theme)
    assert len(deck) == 6
    assert len({c.id for c in deck}) == 6
    assert {c.properties for c in deck} == set(itertools.product(range(2), range(3)))


def test_generate_deck_is_deterministic():
    assert generate_deck(CLASSIC_THEME) == generate_deck(CLASSIC_THEME)


def test_shuffle_returns_new_permutation_without_mutating_input():
    deck = generate_deck(CLASSIC_THEME)
    original = list(deck)
    shuffled = shuffle(deck, random.Random(3))
    assert deck == original
    assert shuffled is not deck
    assert sorted(c.id for c in shuffled) == list(range(81))
    assert shuffled != deck


def test_shuffle_handles_tiny_sequences():
    assert shuffle([]) == []
    assert shuffle([1]) == [1]


def test_example_valid_match():
    a = card(0, 0, 0, 0, 0)
    b = card(39, 1, 1, 1, 0)
    c = card(78, 2, 2, 2, 0)
    assert is_valid_match(a, b, c)


def test_example_invalid_match():
    a = card(0, 0, 0, 0, 0)
    b = card(39, 1, 1, 1, 0)
    c = card(72, 2, 2, 0, 0)
    assert not is_valid_match(a, b, c)


def test_match_is_symmetric_under_permutation():
    deck = generate_deck(CLASSIC_THEME)
    rng = random.Random(11)
    for _ in range(200):
        triple = rng.sample(deck, 3)
        results = {is_valid_match(*perm) for perm in itertools.permutations(triple)}
        assert len(results) == 1


def test_two_equal_values_in_any_slot_invalidates():
    for slot in range(4):
        props_a = [0, 0, 0, 0]
        props_b = [1, 1, 1, 1]
        props_c = [2, 2, 2, 2]
        # a and b agree in this slot, c differs; every other slot is all-different
        props_b[slot] = 0
        props_c[slot] = 1
        assert not is_valid_match(card(1, *props_a), card(2, *props_b), card(3, *props_c))


def test_all_same_or_all_different_in_every_slot_is_valid():
    assert is_valid_match(card(1, 0, 1, 2, 0), card(2, 1, 1, 2, 1), card(3, 2, 1, 2, 2))
    assert is_valid_match(card(1, 0, 0, 0, 0), card(2, 1, 1, 1, 1), card(3, 2, 2, 2, 2))


def test_every_pair_has_exactly_one_completing_card():
    deck = generate_deck(CLASSIC_THEME)
    a, b = deck[5], deck[40]
    completing = [c for c in deck if c not in (a, b) and is_valid_match(a, b, c)]
    assert len(completing) == 1


def test_unknown_theme_falls_back_to_classic():
    assert get_theme('missing') is CLASSIC_THEME
    assert get_theme('classic') is CLASSIC_THEME


def test_describe_card():
    assert describe_card(card(0, 0, 1, 2, 0), CLASSIC_THEME) == ['diamond', 'green', '3', 'solid']
