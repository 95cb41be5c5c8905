"""Errors raised while handling inbound relay events.

Each carries a short machine-readable code that is sent back to the
triggering connection in an ``error`` event. None of them ever reach other
connections.
"""

INVALID_EVENT = 'INVALID_EVENT'
GAME_NOT_FOUND = 'GAME_NOT_FOUND'
UNKNOWN_EVENT = 'UNKNOWN_EVENT'
DUPLICATE_CONNECTION = 'DUPLICATE_CONNECTION'
INTERNAL = 'INTERNAL'


class RelayError(Exception):
    """Base error for relay events."""
    code = INTERNAL

    def __init__(self, message: str, code: str = None):
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(f"[{self.code}] {message}")

    def to_dict(self):
        return {'code': self.code, 'message': self.message}


class MalformedEventError(RelayError):
    code = INVALID_EVENT


class GameNotFoundError(RelayError):
    code = GAME_NOT_FOUND

    def __init__(self, game_id):
        self.game_id = game_id
        super().__init__('Game not found')


class UnknownEventError(RelayError):
    code = UNKNOWN_EVENT

    def __init__(self, event_type):
        self.event_type = event_type
        super().__init__(f"Unknown event type: {event_type}")


class DuplicateConnectionError(RelayError):
    code = DUPLICATE_CONNECTION

    def __init__(self, connection_id):
        self.connection_id = connection_id
        super().__init__(f"Connection {connection_id} is already registered")
