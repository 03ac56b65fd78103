from typing import List, Optional

from setboard.models import Card, GameState, Player
from .deck import is_valid_match


def attributed_player(state: GameState) -> Optional[Player]:
    """The player a result counts for: whoever buzzed in, else player 1."""
    player_id = state.buzzed_in_player or 1
    for player in state.players:
        if player.id == player_id:
            return player
    return None


def draw_replacements(state: GameState, count: int) -> List[Card]:
    """Next undrawn deck cards, skipping anything on the board or consumed."""
    unavailable = {c.id for c in state.active_cards} | set(state.consumed_cards)
    return [c for c in state.deck if c.id not in unavailable][:count]


def replace_cards(state: GameState, card_ids: List[int]) -> List[Card]:
    """Swap matched cards off the board. Returns the newly drawn cards.

    Survivors keep their order and the new cards are appended, so board
    cells after the first consumed one shift. Fewer than ``len(card_ids)``
    cards come back once the deck runs dry.
    """
    drawn = draw_replacements(state, len(card_ids))
    state.active_cards = [c for c in state.active_cards if c.id not in card_ids] + drawn
    state.consumed_cards.extend(card_ids)
    return drawn


def score_selection(state: GameState) -> bool:
    """Resolve the three selected cards.

    +1 successful and replacement cards for a match; +1 unsuccessful
    otherwise. Returns whether the triple matched.
    """
    by_id = {c.id: c for c in state.active_cards}
    cards = [by_id[cid] for cid in state.selected_cards]
    matched = is_valid_match(*cards)
    player = attributed_player(state)
    if player is None:
        return matched
    if matched:
        player.successful_sets += 1
        replace_cards(state, list(state.selected_cards))
    else:
        player.unsuccessful_sets += 1
    return matched
