from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class GamePhase(str, Enum):
    SETUP = 'setup'                         # waiting for every board station
    PLAYER_SELECTION = 'playerSelection'    # arranging player cells
    COUNTDOWN = 'countdown'                 # pre-game countdown
    LIVE = 'live'                           # anyone may buzz in
    BUZZ_HELD = 'buzzHeld'                  # buzzer down, waiting for release
    BUZZED = 'buzzed'                       # buzzer released, showing winner
    SELECTING = 'selecting'                 # buzzed player picks three cards
    VALIDATING = 'validating'               # showing the match result
    COOLDOWN = 'cooldown'                   # selection timed out


# Phases in which a player holds the buzz
BUZZ_PHASES = (
    GamePhase.BUZZ_HELD,
    GamePhase.BUZZED,
    GamePhase.SELECTING,
    GamePhase.VALIDATING,
    GamePhase.COOLDOWN,
)


@dataclass(frozen=True)
class Card:
    id: int
    properties: Tuple[int, ...]  # indices into the theme's value lists

    def to_dict(self):
        return {'id': self.id, 'properties': list(self.properties)}

    @classmethod
    def from_dict(cls, data):
        return cls(id=int(data['id']), properties=tuple(int(p) for p in data['properties']))


@dataclass(frozen=True)
class ThemeProperty:
    name: str
    values: Tuple[str, ...]


@dataclass(frozen=True)
class Theme:
    id: str
    name: str
    properties: Tuple[ThemeProperty, ...]


@dataclass
class Player:
    id: int
    name: str
    color: str
    buzzer_instance: Optional[str] = None
    successful_sets: int = 0
    unsuccessful_sets: int = 0

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'color': self.color,
            'buzzer_instance': self.buzzer_instance,
            'successful_sets': self.successful_sets,
            'unsuccessful_sets': self.unsuccessful_sets,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=int(data['id']),
            name=data['name'],
            color=data['color'],
            buzzer_instance=data.get('buzzer_instance'),
            successful_sets=int(data.get('successful_sets', 0)),
            unsuccessful_sets=int(data.get('unsuccessful_sets', 0)),
        )


@dataclass
class TimerSettings:
    buzz_hold_timeout: float = 3.0
    selection_timeout: float = 4.0
    countdown_duration: float = 5.0

    def to_dict(self):
        return {
            'buzz_hold_timeout': self.buzz_hold_timeout,
            'selection_timeout': self.selection_timeout,
            'countdown_duration': self.countdown_duration,
        }

    @classmethod
    def from_dict(cls, data):
        defaults = cls()
        return cls(
            buzz_hold_timeout=float(data.get('buzz_hold_timeout', defaults.buzz_hold_timeout)),
            selection_timeout=float(data.get('selection_timeout', defaults.selection_timeout)),
            countdown_duration=float(data.get('countdown_duration', defaults.countdown_duration)),
        )


@dataclass
class GameState:
    """Everything about the running game. Persisted whole after each change."""
    theme_id: str
    player_count: int
    players: List[Player]
    deck: List[Card]
    active_cards: List[Card]
    consumed_cards: List[int] = field(default_factory=list)
    # Board stations
    registered_instances: List[str] = field(default_factory=list)
    instance_card_map: Dict[str, int] = field(default_factory=dict)
    # Player cells
    player_positions: Dict[int, int] = field(default_factory=dict)
    selected_player_for_swap: Optional[int] = None
    # Round state
    selected_cards: List[int] = field(default_factory=list)
    phase: GamePhase = GamePhase.SETUP
    buzzed_in_player: Optional[int] = None
    buzz_press_time: Optional[float] = None
    selection_timer: Optional[float] = None
    countdown_timer: Optional[float] = None
    turn: int = 0
    timer_settings: TimerSettings = field(default_factory=TimerSettings)

    def to_dict(self):
        return {
            'theme_id': self.theme_id,
            'player_count': self.player_count,
            'players': [p.to_dict() for p in self.players],
            'deck': [c.to_dict() for c in self.deck],
            'active_cards': [c.to_dict() for c in self.active_cards],
            'consumed_cards': list(self.consumed_cards),
            'registered_instances': list(self.registered_instances),
            'instance_card_map': dict(self.instance_card_map),
            # JSON object keys are strings
            'player_positions': {str(pid): pos for pid, pos in self.player_positions.items()},
            'selected_player_for_swap': self.selected_player_for_swap,
            'selected_cards': list(self.selected_cards),
            'phase': self.phase.value,
            'buzzed_in_player': self.buzzed_in_player,
            'buzz_press_time': self.buzz_press_time,
            'selection_timer': self.selection_timer,
            'countdown_timer': self.countdown_timer,
            'turn': self.turn,
            'timer_settings': self.timer_settings.to_dict(),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            theme_id=data['theme_id'],
            player_count=int(data['player_count']),
            players=[Player.from_dict(p) for p in data['players']],
            deck=[Card.from_dict(c) for c in data['deck']],
            active_cards=[Card.from_dict(c) for c in data['active_cards']],
            consumed_cards=[int(cid) for cid in data.get('consumed_cards', [])],
            registered_instances=list(data.get('registered_instances', [])),
            instance_card_map={k: int(v) for k, v in data.get('instance_card_map', {}).items()},
            player_positions={int(k): int(v) for k, v in data.get('player_positions', {}).items()},
            selected_player_for_swap=data.get('selected_player_for_swap'),
            selected_cards=[int(cid) for cid in data.get('selected_cards', [])],
            phase=GamePhase(data.get('phase', GamePhase.SETUP.value)),
            buzzed_in_player=data.get('buzzed_in_player'),
            buzz_press_time=data.get('buzz_press_time'),
            selection_timer=data.get('selection_timer'),
            countdown_timer=data.get('countdown_timer'),
            turn=int(data.get('turn', 0)),
            timer_settings=TimerSettings.from_dict(data.get('timer_settings', {})),
        )
