"""The game engine: one shared game, one writer.

``GameStateManager`` owns the ``GameState``. Every mutating call runs under
a single re-entrant lock, persists the whole snapshot and then pushes a
copy to every watcher. Delayed auto-advances are handed to a scheduler and
re-check phase and turn when they fire, so a reset or a newer turn that got
there first turns them into no-ops.
"""

import copy
import logging
import math
import threading
import time
from typing import Callable, Optional

from setboard.models import (
    Card,
    GamePhase,
    GameState,
    Player,
    TimerSettings,
)
from . import registry
from .deck import DEFAULT_THEME_ID, generate_deck, get_theme, shuffle
from .notifier import ChangeBus, Listener
from .persistence import StateStore
from .scoring import attributed_player, score_selection

PLAYER_COLORS = ('#FF0000', '#00FF00', '#0000FF', '#FFFF00')
MAX_PLAYERS = len(PLAYER_COLORS)
SET_SIZE = 3
BOARD_CARDS = 12


class GameStateManager:

    def __init__(
        self,
        store: StateStore,
        scheduler,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
        timer_defaults: Optional[TimerSettings] = None,
        default_theme_id: str = DEFAULT_THEME_ID,
        reveal_delay: float = 1.0,
        result_delay: float = 1.0,
        required_instances: int = registry.BOARD_SIZE,
        rng=None,
    ):
        self.store = store
        self.scheduler = scheduler
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self.timer_defaults = timer_defaults or TimerSettings()
        self.default_theme_id = default_theme_id
        self.reveal_delay = reveal_delay
        self.result_delay = result_delay
        self.required_instances = required_instances
        self.rng = rng
        self.bus = ChangeBus(self.logger)
        self._lock = threading.RLock()
        self.state = self._load_state()

    # ---- lifecycle ----

    def _create_state(self, player_count: int, theme_id: str, timer_settings: TimerSettings) -> GameState:
        theme = get_theme(theme_id)
        deck = shuffle(generate_deck(theme), self.rng)
        players = [
            Player(id=pid, name=f"Player {pid}", color=PLAYER_COLORS[pid - 1])
            for pid in range(1, player_count + 1)
        ]
        return GameState(
            theme_id=theme.id,
            player_count=player_count,
            players=players,
            deck=deck,
            active_cards=deck[:BOARD_CARDS],
            player_positions=registry.default_player_positions(player_count),
            timer_settings=timer_settings,
        )

    def _load_state(self) -> GameState:
        state = self.store.load()
        if state is None:
            self.logger.info('[state-load] creating new game state')
            state = self._create_state(1, self.default_theme_id, copy.copy(self.timer_defaults))
            self.store.save(state)
            return state
        # Stations reconnect after a restart and any in-flight round is lost
        # with its timers; keep the board, deck and scores.
        state.registered_instances = []
        state.instance_card_map = {}
        self._reset_to_setup(state)
        self.store.save(state)
        return state

    def _reset_to_setup(self, state: GameState) -> None:
        state.phase = GamePhase.SETUP
        state.buzzed_in_player = None
        state.buzz_press_time = None
        state.selection_timer = None
        state.countdown_timer = None
        state.selected_cards = []
        state.selected_player_for_swap = None

    def _commit(self) -> None:
        """Persist, then notify. Caller holds the lock."""
        self.store.save(self.state)
        self.bus.publish(copy.deepcopy(self.state))

    def _reject(self, action: str) -> bool:
        self.logger.debug(f"[reject] {action} phase={self.state.phase.value}")
        return False

    def _elapsed(self, started: Optional[float]) -> float:
        return self.clock() - started

    def watch(self, listener: Listener) -> Callable[[], None]:
        """Subscribe to snapshots pushed after every change."""
        return self.bus.subscribe(listener)

    @property
    def phase(self) -> GamePhase:
        return self.state.phase

    def new_game(self, player_count: int, theme_id: Optional[str] = None) -> None:
        if isinstance(player_count, bool) or not isinstance(player_count, int) \
                or not 1 <= player_count <= MAX_PLAYERS:
            raise ValueError(f"player_count must be between 1 and {MAX_PLAYERS}")
        with self._lock:
            previous = self.state
            self.state = self._create_state(
                player_count,
                theme_id or self.default_theme_id,
                copy.copy(previous.timer_settings),
            )
            # keep counting so timers from the old game can never match
            self.state.turn = previous.turn + 1
            self.logger.info(f"[new-game] players={player_count} theme={self.state.theme_id}")
            self._commit()

    def update_timer_settings(self, **settings) -> TimerSettings:
        allowed = set(TimerSettings().to_dict())
        unknown = set(settings) - allowed
        if unknown:
            raise ValueError(f"unknown timer settings: {sorted(unknown)}")
        for name, value in settings.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)) \
                    or not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be a positive, finite number of seconds")
        with self._lock:
            for name, value in settings.items():
                setattr(self.state.timer_settings, name, float(value))
            self.logger.info(f"[timers] {self.state.timer_settings.to_dict()}")
            self._commit()
            return copy.copy(self.state.timer_settings)

    # ---- board stations ----

    def register_instance(self, instance_id: str) -> Optional[int]:
        """Add a station. Returns its board cell, or None if the board is full."""
        with self._lock:
            state = self.state
            if instance_id in state.instance_card_map:
                return state.instance_card_map[instance_id]
            position = registry.assign_instance(state, instance_id, self.required_instances)
            if position is None:
                self.logger.warning(f"[register] board full, ignoring instance={instance_id}")
                return None
            count = len(state.registered_instances)
            self.logger.info(f"[register] instance={instance_id} cell={position} ({count}/{self.required_instances})")
            if count == self.required_instances and state.phase == GamePhase.SETUP:
                state.phase = GamePhase.PLAYER_SELECTION
                self.logger.info('[phase] all stations registered -> playerSelection')
            self._commit()
            return position

    def unregister_instance(self, instance_id: str) -> bool:
        with self._lock:
            state = self.state
            if instance_id not in state.registered_instances:
                return False
            position = registry.release_instance(state, instance_id)
            count = len(state.registered_instances)
            if count < self.required_instances:
                self._reset_to_setup(state)
            self.logger.info(f"[unregister] instance={instance_id} cell={position} ({count}/{self.required_instances})")
            self._commit()
            return True

    def register_buzzer(self, instance_id: str, player_id: int) -> bool:
        with self._lock:
            player = self._find_player(player_id)
            if player is None:
                return False
            player.buzzer_instance = instance_id
            self.logger.info(f"[buzzer] player={player_id} instance={instance_id}")
            self._commit()
            return True

    def get_card_index_for_context(self, instance_id: str) -> Optional[int]:
        return self.state.instance_card_map.get(instance_id)

    def get_instance_count(self) -> int:
        return len(self.state.registered_instances)

    # ---- player cells ----

    def select_player_for_swap(self, player_id: int) -> bool:
        with self._lock:
            state = self.state
            if state.phase != GamePhase.PLAYER_SELECTION:
                return self._reject(f"swap-select player={player_id}")
            if player_id not in state.player_positions:
                return self._reject(f"swap-select unknown player={player_id}")
            pending = state.selected_player_for_swap
            if pending is None:
                state.selected_player_for_swap = player_id
                self.logger.info(f"[swap] player={player_id} picked")
            elif pending == player_id:
                state.selected_player_for_swap = None
                self.logger.info(f"[swap] player={player_id} unpicked")
            else:
                registry.swap_players(state, pending, player_id)
                state.selected_player_for_swap = None
                self.logger.info(f"[swap] players {pending} <-> {player_id}")
            self._commit()
            return True

    def assign_player_position(self, position: int) -> bool:
        with self._lock:
            state = self.state
            if state.phase != GamePhase.PLAYER_SELECTION:
                return self._reject(f"assign cell={position}")
            player_id = state.selected_player_for_swap
            if player_id is None or not 0 <= position < self.required_instances:
                return self._reject(f"assign cell={position}")
            registry.move_player(state, player_id, position)
            state.selected_player_for_swap = None
            self.logger.info(f"[swap] player={player_id} -> cell={position}")
            self._commit()
            return True

    def get_player_position(self, player_id: int) -> Optional[int]:
        return self.state.player_positions.get(player_id)

    def get_player_at_position(self, position: int) -> Optional[int]:
        return registry.player_at_position(self.state, position)

    def is_player_position(self, position: int) -> bool:
        return registry.is_player_position(self.state, position)

    def _find_player(self, player_id: Optional[int]) -> Optional[Player]:
        for player in self.state.players:
            if player.id == player_id:
                return player
        return None

    def get_player(self, player_id: int) -> Optional[Player]:
        player = self._find_player(player_id)
        return copy.copy(player) if player else None

    # ---- countdown ----

    def start_countdown(self) -> bool:
        with self._lock:
            state = self.state
            if state.phase != GamePhase.PLAYER_SELECTION:
                return self._reject('start-countdown')
            state.phase = GamePhase.COUNTDOWN
            state.countdown_timer = self.clock()
            state.selected_player_for_swap = None
            state.turn += 1
            turn = state.turn
            duration = state.timer_settings.countdown_duration
            self.logger.info(f"[phase] countdown started duration={duration}s")
            self._commit()
        self.scheduler.schedule(duration, lambda: self._countdown_elapsed(turn), key=('countdown', turn))
        return True

    def get_countdown_remaining(self) -> float:
        state = self.state
        if state.phase != GamePhase.COUNTDOWN or state.countdown_timer is None:
            return 0
        return max(0.0, state.timer_settings.countdown_duration - self._elapsed(state.countdown_timer))

    def finish_countdown(self) -> bool:
        """Go live once the countdown window has run out (poll path)."""
        with self._lock:
            state = self.state
            if state.phase != GamePhase.COUNTDOWN or state.countdown_timer is None:
                return self._reject('finish-countdown')
            if self._elapsed(state.countdown_timer) < state.timer_settings.countdown_duration:
                return False
            self._go_live_from_countdown()
            return True

    def _countdown_elapsed(self, turn: int) -> None:
        with self._lock:
            if self.state.phase != GamePhase.COUNTDOWN or self.state.turn != turn:
                self.logger.info(f"[timer-abort] countdown turn={turn} phase={self.state.phase.value}")
                return
            self._go_live_from_countdown()

    def _go_live_from_countdown(self) -> None:
        self.state.phase = GamePhase.LIVE
        self.state.countdown_timer = None
        self.logger.info('[phase] game is live')
        self._commit()

    # ---- buzzing ----

    def buzz_in(self, player_id: int) -> bool:
        """Claim the next attempt. Only the first press while live wins."""
        with self._lock:
            state = self.state
            if state.phase != GamePhase.LIVE:
                return self._reject(f"buzz player={player_id}")
            if self._find_player(player_id) is None:
                return self._reject(f"buzz unknown player={player_id}")
            state.phase = GamePhase.BUZZ_HELD
            state.buzzed_in_player = player_id
            state.buzz_press_time = self.clock()
            state.turn += 1
            self.logger.info(f"[buzz] player={player_id} pressed turn={state.turn}")
            self._commit()
            return True

    def is_buzz_hold_timed_out(self) -> bool:
        state = self.state
        if state.buzz_press_time is None:
            return False
        return self._elapsed(state.buzz_press_time) >= state.timer_settings.buzz_hold_timeout

    def get_buzz_hold_time_remaining(self) -> float:
        state = self.state
        if state.buzz_press_time is None:
            return 0
        return max(0.0, state.timer_settings.buzz_hold_timeout - self._elapsed(state.buzz_press_time))

    def handle_buzz_hold_timeout(self) -> bool:
        with self._lock:
            state = self.state
            if state.phase != GamePhase.BUZZ_HELD or not self.is_buzz_hold_timed_out():
                return self._reject('buzz-hold-timeout')
            player = self._find_player(state.buzzed_in_player)
            if player:
                player.unsuccessful_sets += 1
            self.logger.info(f"[timeout] player={state.buzzed_in_player} held the buzzer too long")
            state.phase = GamePhase.LIVE
            state.buzzed_in_player = None
            state.buzz_press_time = None
            self._commit()
            return True

    def start_selection_timer(self) -> bool:
        """Buzzer released: show the winner, then open the selection window."""
        with self._lock:
            state = self.state
            if state.phase != GamePhase.BUZZ_HELD:
                return self._reject('release')
            state.phase = GamePhase.BUZZED
            state.buzz_press_time = None
            turn = state.turn
            self.logger.info(f"[buzz] player={state.buzzed_in_player} released")
            self._commit()
        self.scheduler.schedule(self.reveal_delay, lambda: self._reveal_elapsed(turn), key=('reveal', turn))
        return True

    def _reveal_elapsed(self, turn: int) -> None:
        with self._lock:
            state = self.state
            if state.phase != GamePhase.BUZZED or state.turn != turn:
                self.logger.info(f"[timer-abort] reveal turn={turn} phase={state.phase.value}")
                return
            state.phase = GamePhase.SELECTING
            state.selection_timer = self.clock()
            self.logger.info(f"[phase] selecting player={state.buzzed_in_player}")
            self._commit()

    # ---- selecting ----

    def is_selection_timed_out(self) -> bool:
        state = self.state
        if state.selection_timer is None:
            return False
        return self._elapsed(state.selection_timer) >= state.timer_settings.selection_timeout

    def get_selection_time_remaining(self) -> float:
        state = self.state
        if state.selection_timer is None:
            return 0
        return max(0.0, state.timer_settings.selection_timeout - self._elapsed(state.selection_timer))

    def select_card(self, position: int) -> bool:
        """Toggle the card on a board cell; the third card resolves at once."""
        turn = None
        with self._lock:
            state = self.state
            if state.phase != GamePhase.SELECTING:
                return self._reject(f"select cell={position}")
            if registry.is_player_position(state, position):
                return self._reject(f"select player cell={position}")
            if not 0 <= position < len(state.active_cards):
                return self._reject(f"select empty cell={position}")
            card_id = state.active_cards[position].id
            if card_id in state.selected_cards:
                state.selected_cards.remove(card_id)
                self.logger.debug(f"[select] card={card_id} removed")
            elif len(state.selected_cards) < SET_SIZE:
                state.selected_cards.append(card_id)
                self.logger.debug(f"[select] card={card_id} added")
            if len(state.selected_cards) == SET_SIZE:
                turn = self._validate_selection()
            self._commit()
        if turn is not None:
            self.scheduler.schedule(self.result_delay, lambda: self._return_to_live(turn), key=('result', turn))
        return True

    def _validate_selection(self) -> int:
        state = self.state
        state.phase = GamePhase.VALIDATING
        player = attributed_player(state)
        before = len(state.active_cards)
        matched = score_selection(state)
        pid = player.id if player else None
        if matched:
            self.logger.info(f"[match] player={pid} found a set cards={state.selected_cards}")
            drawn = len(state.active_cards) - (before - SET_SIZE)
            if drawn < SET_SIZE:
                self.logger.warning(f"[match] deck exhausted, drew {drawn} of {SET_SIZE} cards")
        else:
            self.logger.info(f"[match] player={pid} picked an invalid set cards={state.selected_cards}")
        return state.turn

    def handle_timeout(self) -> bool:
        """Selection window ran out: count a miss and cool down."""
        with self._lock:
            state = self.state
            if state.phase != GamePhase.SELECTING or not self.is_selection_timed_out():
                return self._reject('selection-timeout')
            player = attributed_player(state)
            if player:
                player.unsuccessful_sets += 1
            self.logger.info(f"[timeout] player={player.id if player else None} ran out of time")
            state.phase = GamePhase.COOLDOWN
            turn = state.turn
            self._commit()
        self.scheduler.schedule(self.result_delay, lambda: self._return_to_live(turn), key=('result', turn))
        return True

    def _return_to_live(self, turn: int) -> None:
        with self._lock:
            state = self.state
            if state.phase not in (GamePhase.VALIDATING, GamePhase.COOLDOWN) or state.turn != turn:
                self.logger.info(f"[timer-abort] result turn={turn} phase={state.phase.value}")
                return
            state.phase = GamePhase.LIVE
            state.buzzed_in_player = None
            state.selection_timer = None
            state.selected_cards = []
            self.logger.info('[phase] back to live')
            self._commit()

    # ---- reads ----

    def get_state(self) -> GameState:
        with self._lock:
            return copy.deepcopy(self.state)

    def get_card(self, position: int) -> Optional[Card]:
        cards = self.state.active_cards
        if 0 <= position < len(cards):
            return cards[position]
        return None

    def is_card_selected(self, position: int) -> bool:
        card = self.get_card(position)
        return card is not None and card.id in self.state.selected_cards
