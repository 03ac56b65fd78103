from flask import Flask, current_app
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

EXTENSION_KEY = 'set_board'


def get_manager(app=None):
    """The app's single GameStateManager."""
    app = app or current_app
    return app.extensions[EXTENSION_KEY]['manager']


def get_board(app=None):
    app = app or current_app
    return app.extensions[EXTENSION_KEY]['board']


def get_poller(app=None):
    app = app or current_app
    return app.extensions[EXTENSION_KEY]['poller']


def _build_game(flask_app):
    from setboard.models import TimerSettings
    from setboard.services.games import (
        BoardController,
        DeferredScheduler,
        GameStateManager,
        StateStore,
        TimerPoller,
    )

    cfg = flask_app.config
    testing = cfg.get('TESTING') and not cfg.get('ENABLE_SCHEDULER_IN_TESTS')
    scheduler = DeferredScheduler(socketio, logger=flask_app.logger, inline=bool(testing))
    manager = GameStateManager(
        store=StateStore(cfg['STATE_FILE'], logger=flask_app.logger),
        scheduler=scheduler,
        logger=flask_app.logger,
        timer_defaults=TimerSettings(
            buzz_hold_timeout=cfg['BUZZ_HOLD_TIMEOUT_SEC'],
            selection_timeout=cfg['SELECTION_TIMEOUT_SEC'],
            countdown_duration=cfg['COUNTDOWN_DURATION_SEC'],
        ),
        default_theme_id=cfg['DEFAULT_THEME_ID'],
        reveal_delay=cfg['BUZZ_REVEAL_DELAY_SEC'],
        result_delay=cfg['RESULT_DELAY_SEC'],
        required_instances=cfg['REQUIRED_INSTANCES'],
    )
    poller = TimerPoller(
        socketio,
        manager,
        interval_ms=cfg['TIMER_POLL_INTERVAL_MS'],
        heartbeat_sec=cfg['TIMER_HEARTBEAT_SEC'],
        logger=flask_app.logger,
    )
    flask_app.extensions[EXTENSION_KEY] = {
        'manager': manager,
        'board': BoardController(manager),
        'scheduler': scheduler,
        'poller': poller,
    }
    return manager


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    manager = _build_game(flask_app)

    # Push every state change to the board room
    from setboard.socketio_events import broadcast_state, register_socketio_handlers
    manager.watch(broadcast_state)

    from setboard.main import main
    flask_app.register_blueprint(main)

    from setboard.api.game import game
    flask_app.register_blueprint(game, url_prefix='/api/game')

    register_socketio_handlers()

    @click.command('new-game')
    @click.option('--players', default=1, type=click.IntRange(1, 4), help='Number of players (1-4).')
    @click.option('--theme', default=None, help='Theme id; defaults to DEFAULT_THEME_ID.')
    def new_game_command(players, theme):
        """Deals a fresh deck and resets scores."""
        get_manager(flask_app).new_game(players, theme)
        click.echo(f'New game started for {players} player(s).')

    @click.command('reset-state')
    def reset_state_command():
        """Deletes the saved game snapshot."""
        path = get_manager(flask_app).store.path
        if path.exists():
            path.unlink()
            click.echo(f'Removed {path}')
        else:
            click.echo(f'No saved state at {path}')

    flask_app.cli.add_command(new_game_command)
    flask_app.cli.add_command(reset_state_command)

    return flask_app
