import logging
import threading
import time
from typing import Callable, Dict, List, Optional

from ..directory import RoomDirectory


class IdleReaper:
    """Removes rooms nobody is using.

    Two independent policies:

    - empty-room eviction: once a roster empties, the room is deleted right
      away (grace of 0) or after ``grace_sec`` if it is still empty by then.
      A join during the window cancels the eviction. Pending deadlines are
      checked every ``check_interval_sec`` by the background loop.
    - idle sweep: every ``sweep_interval_sec`` any room whose last activity is
      older than ``stale_after_sec`` is deleted, players or not.

    One background loop serves both policies. ``spawn`` and ``sleep`` default
    to plain threads and ``time.sleep``; the app wires in
    ``socketio.start_background_task`` / ``socketio.sleep``.
    With ``background=False`` nothing is spawned and callers drive
    :meth:`run_due_evictions` and :meth:`sweep_idle` themselves.
    """

    def __init__(self, directory: RoomDirectory, lock=None, grace_sec: float = 300,
                 sweep_interval_sec: float = 1800, stale_after_sec: float = 7200,
                 check_interval_sec: float = 5,
                 background: bool = True, spawn: Optional[Callable] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.time,
                 logger: Optional[logging.Logger] = None) -> None:
        self.directory = directory
        self.lock = lock or threading.RLock()
        self.grace_sec = grace_sec
        self.sweep_interval_sec = sweep_interval_sec
        self.stale_after_sec = stale_after_sec
        self.check_interval_sec = check_interval_sec
        self.background = background
        self._spawn = spawn or self._spawn_thread
        self._sleep = sleep
        self._clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self._pending: Dict[str, float] = {}
        self._running = False

    @staticmethod
    def _spawn_thread(target, *args):
        thread = threading.Thread(target=target, args=args, daemon=True)
        thread.start()
        return thread

    # ---- empty-room eviction ----

    def pending(self) -> Dict[str, float]:
        return dict(self._pending)

    def schedule_eviction(self, game_id: str) -> bool:
        """Arrange for an emptied room to go away. Returns True if it was removed now."""
        with self.lock:
            game = self.directory.get(game_id)
            if game is None or not game.is_empty:
                return False
            if self.grace_sec <= 0:
                self.directory.remove(game_id)
                self._pending.pop(game_id, None)
                self.logger.info(f"[evict] game={game_id} reason=empty")
                return True
            deadline = self._clock() + self.grace_sec
            self._pending[game_id] = deadline
            self.logger.info(f"[evict-scheduled] game={game_id} grace={self.grace_sec}s")
        return False

    def cancel_eviction(self, game_id: str) -> bool:
        with self.lock:
            cancelled = self._pending.pop(game_id, None) is not None
        if cancelled:
            self.logger.info(f"[evict-cancelled] game={game_id}")
        return cancelled

    def _evict_if_due(self, game_id: str, deadline: float) -> bool:
        with self.lock:
            # A newer schedule or a cancel replaces the deadline
            if self._pending.get(game_id) != deadline:
                return False
            self._pending.pop(game_id, None)
            game = self.directory.get(game_id)
            if game is None or not game.is_empty:
                return False
            self.directory.remove(game_id)
        self.logger.info(f"[evict] game={game_id} reason=empty-after-grace")
        return True

    def run_due_evictions(self) -> List[str]:
        now = self._clock()
        due = [(gid, dl) for gid, dl in self.pending().items() if dl <= now]
        return [gid for gid, dl in due if self._evict_if_due(gid, dl)]

    # ---- idle sweep ----

    def sweep_idle(self) -> List[str]:
        cutoff = self._clock() - self.stale_after_sec
        removed = []
        with self.lock:
            for game in self.directory.all():
                if game.last_activity < cutoff:
                    self.directory.remove(game.game_id)
                    self._pending.pop(game.game_id, None)
                    removed.append(game.game_id)
        for game_id in removed:
            self.logger.info(f"[sweep] removed inactive game={game_id}")
        if removed:
            self.logger.info(f"[sweep] cleaned up {len(removed)} inactive games")
        return removed

    def _tick_sec(self) -> float:
        intervals = [s for s in (self.check_interval_sec, self.sweep_interval_sec) if s and s > 0]
        return min(intervals) if intervals else 0

    def _loop(self) -> None:
        tick = self._tick_sec()
        next_sweep = self._clock() + self.sweep_interval_sec
        while self._running:
            self._sleep(tick)
            if not self._running:
                break
            try:
                self.run_due_evictions()
                if self.sweep_interval_sec > 0 and self._clock() >= next_sweep:
                    self.sweep_idle()
                    next_sweep = self._clock() + self.sweep_interval_sec
            except Exception:
                self.logger.exception("[reaper] cleanup pass failed")

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        if self.background and self._tick_sec() > 0:
            self._spawn(self._loop)

    def stop(self) -> None:
        self._running = False
        with self.lock:
            self._pending.clear()
