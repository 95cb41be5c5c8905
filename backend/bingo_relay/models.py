import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

WAITING = 'waiting'
FINISHED = 'finished'


def isoformat(ts: Optional[float]) -> Optional[str]:
    """Render an epoch timestamp the way browsers print ``Date.toISOString()``."""
    if ts is None:
        return None
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def generate_game_id(now: Optional[float] = None, rng: Optional[random.Random] = None) -> str:
    """Mint a room id like ``game-1700000000000-k3j9x0a2b``."""
    now = time.time() if now is None else now
    rng = rng or random
    suffix = ''.join(rng.choices(string.ascii_lowercase + string.digits, k=9))
    return f"game-{int(now * 1000)}-{suffix}"


@dataclass
class Session:
    connection_id: str
    display_name: Optional[str] = None
    contact: Optional[str] = None
    current_game_id: Optional[str] = None
    connected: bool = True
    connected_at: float = field(default_factory=time.time)


# Keys of the client's playerData object that map onto Player attributes
_PLAYER_KEYS = ('name', 'phone', 'boardId', 'stake', 'gameType')


@dataclass
class Player:
    connection_id: str
    name: str
    contact: Optional[str] = None
    board_id: int = 1
    stake: int = 25
    joined_at: float = field(default_factory=time.time)
    last_seen: float = field(default_factory=time.time)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, connection_id: str, data: Dict[str, Any], name: str = 'Anonymous',
                     board_id: int = 1, stake: int = 25, now: Optional[float] = None) -> 'Player':
        """Build a player from a join-game ``playerData`` object.

        The keyword arguments are the fallbacks for fields the client left out.
        """
        now = time.time() if now is None else now
        return cls(
            connection_id=connection_id,
            name=data.get('name') or name,
            contact=data.get('phone'),
            board_id=board_id if data.get('boardId') is None else data['boardId'],
            stake=stake if data.get('stake') is None else data['stake'],
            joined_at=now,
            last_seen=now,
            extra={k: v for k, v in data.items() if k not in _PLAYER_KEYS},
        )

    def merge(self, other: 'Player') -> None:
        self.name = other.name
        if other.contact is not None:
            self.contact = other.contact
        self.board_id = other.board_id
        self.stake = other.stake
        self.extra.update(other.extra)
        self.last_seen = other.last_seen

    def to_dict(self):
        return {
            'name': self.name,
            'boardId': self.board_id,
            'stake': self.stake,
            'joinedAt': isoformat(self.joined_at),
        }


@dataclass
class CalledNumber:
    number: Any
    display_text: str
    called_at: float
    called_by: str

    def to_dict(self):
        return {
            'number': self.number,
            'displayText': self.display_text,
            'calledAt': isoformat(self.called_at),
            'calledBy': self.called_by,
        }


@dataclass
class Winner:
    connection_id: str
    player_name: Optional[str]
    pattern: Optional[str]
    amount: Any
    won_at: float

    def to_dict(self, full: bool = True):
        data = {
            'playerName': self.player_name,
            'pattern': self.pattern,
            'winAmount': self.amount,
        }
        if full:
            data['playerId'] = self.connection_id
            data['wonAt'] = isoformat(self.won_at)
        return data


@dataclass
class GameRecord:
    """Authoritative state of one room.

    ``called_numbers`` is the full history for the room's lifetime; outbound
    payloads use :meth:`recent_numbers` to stay small.
    """
    game_id: str
    game_type: str = '75ball'
    status: str = WAITING
    players: List[Player] = field(default_factory=list)
    called_numbers: List[CalledNumber] = field(default_factory=list)
    host: Optional[str] = None
    winner: Optional[Winner] = None
    settings: Dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)
    last_activity: Optional[float] = None

    def __post_init__(self):
        if self.last_activity is None:
            self.last_activity = self.created_at

    @property
    def is_empty(self) -> bool:
        return not self.players

    def find_player(self, connection_id: str) -> Optional[Player]:
        for p in self.players:
            if p.connection_id == connection_id:
                return p
        return None

    def touch_activity(self, now: Optional[float] = None) -> None:
        self.last_activity = time.time() if now is None else now

    def add_or_update_player(self, player: Player, now: Optional[float] = None) -> bool:
        """Insert ``player`` or merge it into its existing roster entry.

        Returns True when the player was not on the roster before. The first
        player added to a room without a host becomes the host.
        """
        existing = self.find_player(player.connection_id)
        if existing is None:
            self.players.append(player)
        else:
            existing.merge(player)
        if self.host is None:
            self.host = player.connection_id
        self.touch_activity(now)
        return existing is None

    def remove_player(self, connection_id: str, now: Optional[float] = None) -> Optional[Player]:
        removed = self.find_player(connection_id)
        if removed is None:
            return None
        self.players = [p for p in self.players if p.connection_id != connection_id]
        if self.host == connection_id:
            # Host passes to the longest-standing remaining player
            self.host = self.players[0].connection_id if self.players else None
        self.touch_activity(now)
        return removed

    def can_call(self, connection_id: str) -> bool:
        return self.host is None or self.host == connection_id

    def append_called_number(self, connection_id: str, number, display_text: Optional[str] = None,
                             now: Optional[float] = None) -> Optional[CalledNumber]:
        """Append a call from ``connection_id``; returns None when not authorized."""
        if not self.can_call(connection_id):
            return None
        now = time.time() if now is None else now
        call = CalledNumber(
            number=number,
            display_text=display_text or str(number),
            called_at=now,
            called_by=connection_id,
        )
        self.called_numbers.append(call)
        self.touch_activity(now)
        return call

    def announce_winner(self, winner: Winner) -> None:
        self.status = FINISHED
        self.winner = winner
        self.touch_activity(winner.won_at)

    def recent_numbers(self, limit: Optional[int] = None) -> List[CalledNumber]:
        if not limit:
            return list(self.called_numbers)
        return self.called_numbers[-limit:]

    def called_values(self, limit: Optional[int] = None) -> List[Any]:
        return [c.number for c in self.recent_numbers(limit)]

    def to_summary(self):
        return {
            'id': self.game_id,
            'gameType': self.game_type,
            'players': len(self.players),
            'status': self.status,
            'calledNumbers': len(self.called_numbers),
            'createdAt': isoformat(self.created_at),
            'lastActivity': isoformat(self.last_activity),
            'host': self.host[:8] + '...' if self.host else None,
            'winner': self.winner.to_dict(full=False) if self.winner else None,
        }

    def to_detail(self, numbers_limit: Optional[int] = None):
        return {
            'id': self.game_id,
            'gameType': self.game_type,
            'players': [p.to_dict() for p in self.players],
            'calledNumbers': [c.to_dict() for c in self.recent_numbers(numbers_limit)],
            'totalCalled': len(self.called_numbers),
            'status': self.status,
            'createdAt': isoformat(self.created_at),
            'lastActivity': isoformat(self.last_activity),
            'host': self.host,
            'winner': self.winner.to_dict() if self.winner else None,
            'settings': dict(self.settings),
        }

    def to_info(self):
        return {
            'gameId': self.game_id,
            'gameType': self.game_type,
            'players': len(self.players),
            'status': self.status,
            'calledNumbers': len(self.called_numbers),
            'createdAt': isoformat(self.created_at),
            'lastActivity': isoformat(self.last_activity),
            'host': self.host,
            'winner': self.winner.to_dict() if self.winner else None,
        }

    def to_state(self):
        """Snapshot sent to a joining connection."""
        return {
            'gameId': self.game_id,
            'players': [p.to_dict() for p in self.players],
            'calledNumbers': self.called_values(),
            'gameType': self.game_type,
            'status': self.status,
            'host': self.host,
            'winner': self.winner.to_dict(full=False) if self.winner else None,
        }
