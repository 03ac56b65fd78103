import logging
import threading
from typing import Callable, Hashable, Optional, Set

from setboard.models import GamePhase


class DeferredScheduler:
    """One-shot delayed callbacks run as Socket.IO background tasks.

    - Inline mode fires the callback immediately, without sleeping (tests)
    - Ensures a single pending callback per key
    - Callbacks are responsible for re-checking game state when they fire
    """

    def __init__(self, socketio, logger: Optional[logging.Logger] = None, inline: bool = False):
        self.socketio = socketio
        self.logger = logger or logging.getLogger(__name__)
        self.inline = inline
        self._pending: Set[Hashable] = set()
        self._lock = threading.Lock()

    def schedule(self, delay: float, callback: Callable[[], None], key: Hashable) -> bool:
        with self._lock:
            if key in self._pending:
                self.logger.info(f"[timer-skip] key={key} already scheduled")
                return False
            self._pending.add(key)
        self.logger.info(f"[timer-set] key={key} delay={delay}s")
        if self.inline:
            self._fire(callback, key)
        else:
            self.socketio.start_background_task(self._worker, delay, callback, key)
        return True

    def _worker(self, delay: float, callback: Callable[[], None], key: Hashable) -> None:
        self.socketio.sleep(delay)
        self._fire(callback, key)

    def _fire(self, callback: Callable[[], None], key: Hashable) -> None:
        with self._lock:
            self._pending.discard(key)
        self.logger.info(f"[timer-fire] key={key}")
        try:
            callback()
        except Exception:
            # background tasks have no caller to propagate to
            self.logger.exception(f"[timer-fire] key={key} callback failed")


def poll_timers(manager) -> Optional[str]:
    """Run whichever timeout transition is due. Returns its name, if any."""
    phase = manager.phase
    if phase == GamePhase.COUNTDOWN and manager.get_countdown_remaining() <= 0:
        if manager.finish_countdown():
            return 'countdown'
    elif phase == GamePhase.BUZZ_HELD and manager.is_buzz_hold_timed_out():
        if manager.handle_buzz_hold_timeout():
            return 'buzz_hold'
    elif phase == GamePhase.SELECTING and manager.is_selection_timed_out():
        if manager.handle_timeout():
            return 'selection'
    return None


class TimerPoller:
    """Checks the timeout windows at a fixed interval.

    The interval bounds how late a timeout is noticed, so keep it short.
    """

    def __init__(self, socketio, manager, interval_ms: int = 100, heartbeat_sec: int = 0,
                 logger: Optional[logging.Logger] = None):
        self.socketio = socketio
        self.manager = manager
        self.interval = interval_ms / 1000.0
        self.heartbeat_sec = heartbeat_sec
        self.logger = logger or logging.getLogger(__name__)
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self.logger.info(f"[poller] started interval={self.interval}s")
        self.socketio.start_background_task(self._run)

    def stop(self) -> None:
        self._running = False

    def _run(self) -> None:
        since_heartbeat = 0.0
        while self._running:
            try:
                fired = poll_timers(self.manager)
            except Exception:
                self.logger.exception('[poller] timeout check failed')
                fired = None
            if fired:
                self.logger.info(f"[poller] {fired} timeout handled")
            if self.heartbeat_sec > 0:
                since_heartbeat += self.interval
                if since_heartbeat >= self.heartbeat_sec:
                    since_heartbeat = 0.0
                    self.logger.info(f"[poller-heartbeat] phase={self.manager.phase.value}")
            self.socketio.sleep(self.interval)
        self.logger.info('[poller] stopped')
