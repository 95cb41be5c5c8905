import os


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '8000'))
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS',
            'https://assefabingogame.github.io,http://localhost:8000,http://localhost:8080',
        ).split(',') if o.strip()
    ]
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Room defaults
    DEFAULT_GAME_TYPE = os.environ.get('DEFAULT_GAME_TYPE', '75ball')
    DEFAULT_STAKE = int(os.environ.get('DEFAULT_STAKE', '25'))
    DEFAULT_BOARD_ID = int(os.environ.get('DEFAULT_BOARD_ID', '1'))
    DEFAULT_MAX_PLAYERS = int(os.environ.get('DEFAULT_MAX_PLAYERS', '100'))
    # Outbound history views (the stored history is never truncated)
    RECENT_NUMBERS_LIMIT = int(os.environ.get('RECENT_NUMBERS_LIMIT', '10'))
    DETAIL_NUMBERS_LIMIT = int(os.environ.get('DETAIL_NUMBERS_LIMIT', '20'))
    # Cleanup timers (seconds). A grace of 0 evicts empty rooms immediately.
    EMPTY_ROOM_GRACE_SEC = float(os.environ.get('EMPTY_ROOM_GRACE_SEC', '300'))
    IDLE_SWEEP_INTERVAL_SEC = float(os.environ.get('IDLE_SWEEP_INTERVAL_SEC', '1800'))
    IDLE_STALE_AFTER_SEC = float(os.environ.get('IDLE_STALE_AFTER_SEC', '7200'))
    # How often the background loop evicts rooms whose grace window has passed
    EVICTION_CHECK_INTERVAL_SEC = float(os.environ.get('EVICTION_CHECK_INTERVAL_SEC', '5'))
    # Simulated withdrawal processing time (seconds)
    WITHDRAWAL_DELAY_SEC = float(os.environ.get('WITHDRAWAL_DELAY_SEC', '1.5'))
    # Chat echoes back to the sender unless disabled
    CHAT_INCLUDE_SENDER = _env_bool('CHAT_INCLUDE_SENDER', True)
    # Reaper loop and deferred withdrawal replies; tests drive both by hand
    ENABLE_BACKGROUND_TASKS = _env_bool('ENABLE_BACKGROUND_TASKS', True)
