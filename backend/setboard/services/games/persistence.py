import json
import logging
import math
import os
from pathlib import Path
from typing import Optional

from setboard.models import BUZZ_PHASES, GameState


class SnapshotError(ValueError):
    """A stored snapshot parsed but does not describe a coherent game."""


def validate_snapshot(state: GameState) -> None:
    deck_ids = {c.id for c in state.deck}
    active_ids = [c.id for c in state.active_cards]
    if len(set(active_ids)) != len(active_ids):
        raise SnapshotError('duplicate active cards')
    if not set(active_ids) <= deck_ids:
        raise SnapshotError('active cards missing from deck')
    if len(state.selected_cards) > 3:
        raise SnapshotError('more than three selected cards')
    if len(set(state.instance_card_map.values())) != len(state.instance_card_map):
        raise SnapshotError('two stations share a board cell')
    if len(state.players) != state.player_count:
        raise SnapshotError('player list does not match player count')
    if set(state.player_positions) != {p.id for p in state.players}:
        raise SnapshotError('player cells do not match players')
    if state.buzzed_in_player is not None and state.phase not in BUZZ_PHASES:
        raise SnapshotError(f"buzzed-in player outside a buzz phase ({state.phase.value})")
    for name, value in state.timer_settings.to_dict().items():
        if not math.isfinite(value) or value <= 0:
            raise SnapshotError(f"timer setting {name} is not a positive duration")


class StateStore:
    """Whole-snapshot JSON file: load-or-nothing, overwrite on save."""

    def __init__(self, path, logger: Optional[logging.Logger] = None):
        self.path = Path(path)
        self.logger = logger or logging.getLogger(__name__)

    def load(self) -> Optional[GameState]:
        """Return the stored game, or None if there is no usable snapshot."""
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
            state = GameState.from_dict(data)
            validate_snapshot(state)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            self.logger.error(f"[state-load] failed path={self.path} error={exc!r}")
            return None
        self.logger.info(f"[state-load] loaded path={self.path} phase={state.phase.value}")
        return state

    def save(self, state: GameState) -> bool:
        """Write the snapshot. Failures are logged and reported, never raised."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # write beside the target, then swap it in whole
            tmp_path = self.path.with_name(self.path.name + '.tmp')
            tmp_path.write_text(json.dumps(state.to_dict(), indent=2, allow_nan=False), encoding='utf-8')
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as exc:
            self.logger.error(f"[state-save] failed path={self.path} error={exc!r}")
            return False
        self.logger.debug(f"[state-save] path={self.path}")
        return True
