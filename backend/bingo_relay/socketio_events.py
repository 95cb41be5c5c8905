from flask import request
from bingo_relay import socketio
from bingo_relay.context import current_relay


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect():
    current_relay().router.connect(_get_sid())


def handle_disconnect(reason=None):
    current_relay().router.disconnect(_get_sid(), str(reason) if reason else 'transport close')


def handle_unknown(event, data=None, *args):
    """Catch-all for event names without a handler."""
    return current_relay().router.dispatch(_get_sid(), event, data)


def _make_event_handler(event: str):
    def _handler(data=None, *args):
        return current_relay().router.dispatch(_get_sid(), event, data)
    _handler.__name__ = 'handle_' + event.replace('-', '_')
    return _handler


def register_socketio_handlers(events, namespace: str = '/') -> None:
    """Bind every relay event, plus connect/disconnect and a catch-all, on ``namespace``.

    Return values of the handlers travel back as Socket.IO acknowledgements.
    """
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    for event in events:
        socketio.on_event(event, _make_event_handler(event), namespace=namespace)
    socketio.on_event('*', handle_unknown, namespace=namespace)
