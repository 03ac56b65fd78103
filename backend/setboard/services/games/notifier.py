import logging
import threading
from typing import Callable, List, Optional

from setboard.models import GameState

Listener = Callable[[GameState], None]


class ChangeBus:
    """Synchronous fan-out of state snapshots to subscribed listeners."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()
        self.logger = logger or logging.getLogger(__name__)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; call the returned function to unsubscribe."""
        with self._lock:
            self._listeners.append(listener)

        def _dispose():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _dispose

    def publish(self, snapshot: GameState) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            # a failing listener does not stop delivery to the others
            try:
                listener(snapshot)
            except Exception:
                self.logger.exception(f"[notify] listener {listener!r} failed")

    def __len__(self):
        return len(self._listeners)
