import os
import sys
import pytest

# Ensure the backend root (containing the `bingo_relay` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from bingo_relay import create_app, socketio
from bingo_relay.context import RelayContext


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    ENABLE_BACKGROUND_TASKS = False
    EMPTY_ROOM_GRACE_SEC = 0
    WITHDRAWAL_DELAY_SEC = 0


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingTransport:
    """Collects emitted events; connections in ``broken`` raise on send."""

    def __init__(self):
        self.sent = []
        self.broken = set()

    def emit(self, connection_id, event, data):
        if connection_id in self.broken:
            raise ConnectionError('socket closed')
        self.sent.append((connection_id, event, data))

    def received(self, connection_id, event=None):
        return [d for cid, e, d in self.sent
                if cid == connection_id and (event is None or e == event)]

    def events(self, connection_id):
        return [e for cid, e, _ in self.sent if cid == connection_id]

    def clear(self):
        self.sent.clear()


class FixedRandom:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def transport():
    return RecordingTransport()


def make_relay(transport, clock, **overrides):
    config = {
        'EMPTY_ROOM_GRACE_SEC': 0,
        'IDLE_STALE_AFTER_SEC': 7200,
        'IDLE_SWEEP_INTERVAL_SEC': 1800,
        'ENABLE_BACKGROUND_TASKS': False,
        'WITHDRAWAL_DELAY_SEC': 0,
    }
    config.update(overrides)
    return RelayContext(transport, config=config, clock=clock, sleep=lambda seconds: None)


@pytest.fixture()
def relay(transport, clock):
    ctx = make_relay(transport, clock)
    ctx.start()
    yield ctx
    ctx.stop()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
    application.extensions['bingo_relay'].stop()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
    )
    yield test_client
    try:
        test_client.disconnect()
    except Exception:
        pass
