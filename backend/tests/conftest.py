import os
import sys
import random
import logging
import pytest

# Ensure the backend root (containing the `setboard` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from setboard import create_app, socketio
from setboard.models import TimerSettings
from setboard.services.games import GameStateManager, StateStore
from setboard.services.games.deck import CLASSIC_THEME, generate_deck


class FakeClock:
    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class ManualScheduler:
    """Holds deferred callbacks until the test fires them."""

    def __init__(self):
        self.pending = []

    def schedule(self, delay, callback, key):
        self.pending.append((delay, callback, key))
        return True

    def run_pending(self):
        calls, self.pending = self.pending, []
        for _delay, callback, _key in calls:
            callback()
        return len(calls)


@pytest.fixture()
def state_file(tmp_path):
    return tmp_path / 'game-state.json'


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def make_manager(state_file, clock, scheduler):
    def _make(**kwargs):
        params = dict(
            store=StateStore(state_file),
            scheduler=scheduler,
            clock=clock,
            logger=logging.getLogger('setboard-tests'),
            timer_defaults=TimerSettings(buzz_hold_timeout=3, selection_timeout=4, countdown_duration=5),
            rng=random.Random(7),
        )
        params.update(kwargs)
        return GameStateManager(**params)
    return _make


@pytest.fixture()
def manager(make_manager):
    return make_manager()


def register_board(manager, count=12, prefix='key'):
    return [manager.register_instance(f'{prefix}-{i}') for i in range(count)]


def arrange_board(manager, card_ids):
    """Unshuffled deck with the given cards dealt first, in order."""
    deck = generate_deck(CLASSIC_THEME)
    wanted = [deck[cid] for cid in card_ids]
    rest = [c for c in deck if c.id not in card_ids]
    manager.state.deck = wanted + rest
    manager.state.active_cards = (wanted + rest)[:12]
    manager.state.consumed_cards = []


def go_live(manager, scheduler):
    register_board(manager)
    assert manager.start_countdown()
    scheduler.run_pending()
    assert manager.phase.value == 'live'


def go_selecting(manager, scheduler, player_id=1):
    assert manager.buzz_in(player_id)
    assert manager.start_selection_timer()
    scheduler.run_pending()
    assert manager.phase.value == 'selecting'


@pytest.fixture()
def flask_app(tmp_path):
    class TestConfig(Config):
        TESTING = True
        SECRET_KEY = 'test-secret'
        STATE_FILE = str(tmp_path / 'app-state.json')

    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
