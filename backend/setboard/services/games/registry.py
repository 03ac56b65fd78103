"""Board station and player cell bookkeeping.

Helpers here only touch the registry fields of a ``GameState``; phase
changes that follow from registration live in the engine.
"""

from typing import Dict, Optional

from setboard.models import GameState

BOARD_SIZE = 12

# Corner-ish cells for up to four players
DEFAULT_PLAYER_ANCHORS = (0, 3, 8, 11)

# Cells that act as the start button while players are arranged
START_POSITIONS = (5, 6)


def default_player_positions(player_count: int) -> Dict[int, int]:
    return {pid: DEFAULT_PLAYER_ANCHORS[pid - 1] for pid in range(1, player_count + 1)}


def next_free_position(state: GameState, board_size: int = BOARD_SIZE) -> Optional[int]:
    taken = set(state.instance_card_map.values())
    for position in range(board_size):
        if position not in taken:
            return position
    return None


def assign_instance(state: GameState, instance_id: str, board_size: int = BOARD_SIZE) -> Optional[int]:
    """Give a new station the lowest free cell.

    Returns the cell, or None when the board is already full.
    """
    position = next_free_position(state, board_size)
    if position is None:
        return None
    state.registered_instances.append(instance_id)
    state.instance_card_map[instance_id] = position
    return position


def release_instance(state: GameState, instance_id: str) -> Optional[int]:
    state.registered_instances.remove(instance_id)
    return state.instance_card_map.pop(instance_id, None)


def player_at_position(state: GameState, position: int) -> Optional[int]:
    for player_id, pos in state.player_positions.items():
        if pos == position:
            return player_id
    return None


def is_player_position(state: GameState, position: int) -> bool:
    return position in state.player_positions.values()


def swap_players(state: GameState, first: int, second: int) -> None:
    positions = state.player_positions
    positions[first], positions[second] = positions[second], positions[first]


def move_player(state: GameState, player_id: int, position: int) -> None:
    """Put a player on a cell, swapping with whoever already sits there."""
    occupant = player_at_position(state, position)
    if occupant is not None and occupant != player_id:
        state.player_positions[occupant] = state.player_positions[player_id]
    state.player_positions[player_id] = position
