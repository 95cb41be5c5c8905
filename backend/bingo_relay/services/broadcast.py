import logging
import time
from typing import Any, Dict, Optional, Protocol

from ..directory import RoomDirectory
from ..models import isoformat
from ..registry import ConnectionRegistry


class Transport(Protocol):
    def emit(self, connection_id: str, event: str, data: Dict[str, Any]) -> None:
        ...


class SocketIOTransport:
    """Deliver to a single Socket.IO connection through its private room."""

    def __init__(self, socketio, namespace: str = '/') -> None:
        self.socketio = socketio
        self.namespace = namespace

    def emit(self, connection_id: str, event: str, data: Dict[str, Any]) -> None:
        self.socketio.emit(event, data, to=connection_id, namespace=self.namespace)


class Broadcaster:
    """Room fan-out with per-recipient isolation."""

    def __init__(self, transport: Transport, registry: ConnectionRegistry,
                 directory: RoomDirectory, logger: Optional[logging.Logger] = None,
                 clock=time.time) -> None:
        self.transport = transport
        self.registry = registry
        self.directory = directory
        self.logger = logger or logging.getLogger(__name__)
        self._clock = clock

    def _stamp(self, data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        payload = dict(data or {})
        payload.setdefault('timestamp', isoformat(self._clock()))
        return payload

    def _deliver(self, connection_id: str, event: str, payload: Dict[str, Any]) -> bool:
        if not self.registry.is_live(connection_id):
            return False
        try:
            self.transport.emit(connection_id, event, payload)
        except Exception as exc:
            self.logger.warning(f"[send-failed] conn={connection_id} event={event} error={exc!r}")
            return False
        return True

    def send(self, connection_id: str, event: str, data: Optional[Dict[str, Any]] = None) -> bool:
        return self._deliver(connection_id, event, self._stamp(data))

    def broadcast(self, game_id: str, event: str, data: Optional[Dict[str, Any]] = None,
                  exclude: Optional[str] = None) -> int:
        """Send ``event`` to every live roster member of ``game_id`` except ``exclude``.

        Returns how many connections accepted the message.
        """
        game = self.directory.get(game_id)
        if game is None:
            return 0
        payload = self._stamp(data)
        recipients = [p.connection_id for p in game.players if p.connection_id != exclude]
        delivered = 0
        for connection_id in recipients:
            if self._deliver(connection_id, event, payload):
                delivered += 1
        return delivered
