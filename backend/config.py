import os

BACKEND_ROOT = os.path.abspath(os.path.dirname(__file__))


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Whole-game JSON snapshot, rewritten after every mutation
    STATE_FILE = os.environ.get('STATE_FILE') or os.path.join(BACKEND_ROOT, 'instance', 'game-state.json')
    DEFAULT_THEME_ID = os.environ.get('DEFAULT_THEME_ID', 'classic')
    # Board size; the game only leaves setup once this many stations are registered
    REQUIRED_INSTANCES = 12
    # Player-facing timer windows (seconds)
    BUZZ_HOLD_TIMEOUT_SEC = float(os.environ.get('BUZZ_HOLD_TIMEOUT_SEC', '3'))
    SELECTION_TIMEOUT_SEC = float(os.environ.get('SELECTION_TIMEOUT_SEC', '4'))
    COUNTDOWN_DURATION_SEC = float(os.environ.get('COUNTDOWN_DURATION_SEC', '5'))
    # Fixed pauses before auto-advance (seconds)
    BUZZ_REVEAL_DELAY_SEC = float(os.environ.get('BUZZ_REVEAL_DELAY_SEC', '1'))
    RESULT_DELAY_SEC = float(os.environ.get('RESULT_DELAY_SEC', '1'))
    # Timeout detection poll interval (ms). Coarser values delay timeout feedback.
    TIMER_POLL_INTERVAL_MS = int(os.environ.get('TIMER_POLL_INTERVAL_MS', '100'))
    # Optional: heartbeat interval for timer poller logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
