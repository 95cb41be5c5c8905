import time
from typing import Any, Callable, Dict, List, Optional

from .models import GameRecord, generate_game_id


class RoomDirectory:
    """Game records keyed by game id."""

    def __init__(self, default_game_type: str = '75ball',
                 clock: Callable[[], float] = time.time) -> None:
        self.default_game_type = default_game_type
        self._clock = clock
        self._games: Dict[str, GameRecord] = {}

    def __len__(self) -> int:
        return len(self._games)

    def __contains__(self, game_id) -> bool:
        return game_id in self._games

    def _new_record(self, game_id: str, game_type: Optional[str], settings=None) -> GameRecord:
        return GameRecord(
            game_id=game_id,
            game_type=game_type or self.default_game_type,
            settings=dict(settings or {}),
            created_at=self._clock(),
        )

    def get_or_create(self, game_id: str, default_type: Optional[str] = None) -> GameRecord:
        game = self._games.get(game_id)
        if game is None:
            game = self._new_record(game_id, default_type)
            self._games[game_id] = game
        return game

    def create(self, game_type: Optional[str] = None,
               settings: Optional[Dict[str, Any]] = None) -> GameRecord:
        """Create a room under a freshly minted id."""
        game_id = generate_game_id(self._clock())
        while game_id in self._games:
            game_id = generate_game_id(self._clock())
        game = self._new_record(game_id, game_type, settings)
        self._games[game_id] = game
        return game

    def get(self, game_id: str) -> Optional[GameRecord]:
        return self._games.get(game_id)

    def remove(self, game_id: str) -> Optional[GameRecord]:
        return self._games.pop(game_id, None)

    def all(self) -> List[GameRecord]:
        """Snapshot of the current records; later changes to the directory do not affect it."""
        return list(self._games.values())
