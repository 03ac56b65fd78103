"""Card catalog: themes, deck generation, shuffling and the match rule."""

import itertools
import random
from typing import Dict, List, Sequence, TypeVar

from setboard.models import Card, Theme, ThemeProperty

T = TypeVar('T')

DEFAULT_THEME_ID = 'classic'

CLASSIC_THEME = Theme(
    id='classic',
    name='Classic Set',
    properties=(
        ThemeProperty('shape', ('diamond', 'oval', 'squiggle')),
        ThemeProperty('color', ('red', 'green', 'purple')),
        ThemeProperty('count', ('1', '2', '3')),
        ThemeProperty('fill', ('solid', 'striped', 'empty')),
    ),
)

THEMES: Dict[str, Theme] = {
    CLASSIC_THEME.id: CLASSIC_THEME,
}


def get_theme(theme_id: str) -> Theme:
    """Look up a theme; unknown ids fall back to the classic theme."""
    return THEMES.get(theme_id, CLASSIC_THEME)


def generate_deck(theme: Theme) -> List[Card]:
    """Every combination of attribute values, ids in lexicographic order.

    Attribute 0 varies slowest, so for the classic theme card 0 is
    (0, 0, 0, 0), card 1 is (0, 0, 0, 1) and card 80 is (2, 2, 2, 2).
    """
    ranges = [range(len(prop.values)) for prop in theme.properties]
    return [
        Card(id=card_id, properties=tuple(combo))
        for card_id, combo in enumerate(itertools.product(*ranges))
    ]


def shuffle(sequence: Sequence[T], rng=None) -> List[T]:
    """Fisher-Yates shuffle into a new list; the input is left untouched."""
    rng = rng or random
    shuffled = list(sequence)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def is_valid_match(a: Card, b: Card, c: Card) -> bool:
    # Each slot must be all-same or all-different; two-of-a-kind fails.
    for values in zip(a.properties, b.properties, c.properties):
        if len(set(values)) == 2:
            return False
    return True


def describe_card(card: Card, theme: Theme) -> List[str]:
    return [prop.values[idx] for prop, idx in zip(theme.properties, card.properties)]
