"""Game domain services: deck, engine, registry and timers.

This package holds the game logic the HTTP routes and socket handlers
call into, keeping transport concerns separated from core game mechanics.
"""

from .board import BoardController
from .engine import GameStateManager
from .persistence import StateStore
from .scheduler import DeferredScheduler, TimerPoller, poll_timers

__all__ = [
    'BoardController',
    'DeferredScheduler',
    'GameStateManager',
    'StateStore',
    'TimerPoller',
    'poll_timers',
]
