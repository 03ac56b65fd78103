"""Button stations: turns raw press/release events into engine calls.

A station is one physical key (or panel) on the board. What a press
means depends on the phase and on whether the station's cell belongs to
a player.
"""

import threading
from typing import Dict, List, Optional

from setboard.models import GamePhase
from .registry import START_POSITIONS


class BoardController:

    def __init__(self, manager):
        self.manager = manager
        self._pressed: Dict[str, bool] = {}
        self._connected: List[str] = []
        self._lock = threading.Lock()

    @property
    def connected(self) -> List[str]:
        return list(self._connected)

    def connect(self, instance_id: str) -> Optional[int]:
        position = self.manager.register_instance(instance_id)
        if position is not None:
            with self._lock:
                if instance_id not in self._connected:
                    self._connected.append(instance_id)
        return position

    def disconnect(self, instance_id: str) -> bool:
        with self._lock:
            if instance_id in self._connected:
                self._connected.remove(instance_id)
            self._pressed.pop(instance_id, None)
        return self.manager.unregister_instance(instance_id)

    def new_game(self, player_count: int, theme_id: Optional[str] = None) -> None:
        """Start over with a fresh deck; stations already on the board keep their cells."""
        cells = {iid: self.manager.get_card_index_for_context(iid) for iid in self.connected}
        self.manager.new_game(player_count, theme_id)
        for instance_id in sorted(cells, key=lambda iid: cells[iid]):
            self.manager.register_instance(instance_id)

    def press(self, instance_id: str) -> Optional[str]:
        """Handle a key going down. Returns the action taken, if any."""
        with self._lock:
            self._pressed[instance_id] = True
        manager = self.manager
        position = manager.get_card_index_for_context(instance_id)
        if position is None:
            return None
        phase = manager.phase
        player_id = manager.get_player_at_position(position)

        if phase == GamePhase.PLAYER_SELECTION:
            if player_id is not None:
                return 'swap' if manager.select_player_for_swap(player_id) else None
            if position in START_POSITIONS:
                return 'start' if manager.start_countdown() else None
            return 'assign' if manager.assign_player_position(position) else None

        if phase == GamePhase.LIVE:
            if player_id is not None and manager.buzz_in(player_id):
                return 'buzz'
            return None

        if phase == GamePhase.SELECTING:
            if player_id is None and manager.select_card(position):
                return 'select'
            return None

        # setup, countdown, buzzHeld, buzzed, validating, cooldown: nothing to do
        return None

    def release(self, instance_id: str) -> Optional[str]:
        with self._lock:
            was_pressed = self._pressed.get(instance_id, False)
            self._pressed[instance_id] = False
        manager = self.manager
        if manager.phase != GamePhase.BUZZ_HELD or not was_pressed:
            return None
        position = manager.get_card_index_for_context(instance_id)
        if position is None:
            return None
        state = manager.get_state()
        if manager.get_player_at_position(position) == state.buzzed_in_player:
            return 'release' if manager.start_selection_timer() else None
        return None
