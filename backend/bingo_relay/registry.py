from typing import Dict, Optional

from .errors import DuplicateConnectionError
from .models import Session


class ConnectionRegistry:
    """Sessions keyed by transport connection id."""

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, connection_id) -> bool:
        return connection_id in self._sessions

    def register(self, connection_id: str) -> Session:
        if connection_id in self._sessions:
            raise DuplicateConnectionError(connection_id)
        session = Session(connection_id=connection_id)
        self._sessions[connection_id] = session
        return session

    def update_session(self, connection_id: str, display_name: Optional[str] = None,
                       contact: Optional[str] = None, game_id: Optional[str] = None) -> Session:
        """Upsert session metadata; safe to call on every join, re-joins included."""
        session = self._sessions.get(connection_id)
        if session is None:
            session = self.register(connection_id)
        if display_name is not None:
            session.display_name = display_name
        if contact is not None:
            session.contact = contact
        session.current_game_id = game_id
        return session

    def mark_disconnected(self, connection_id: str) -> Optional[Session]:
        session = self._sessions.get(connection_id)
        if session is not None:
            session.connected = False
        return session

    def unregister(self, connection_id: str) -> Optional[Session]:
        return self._sessions.pop(connection_id, None)

    def lookup(self, connection_id: str) -> Optional[Session]:
        return self._sessions.get(connection_id)

    def is_live(self, connection_id: str) -> bool:
        session = self._sessions.get(connection_id)
        return session is not None and session.connected
