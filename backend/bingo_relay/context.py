import logging
import threading
import time
from typing import Optional

from flask import current_app

from .directory import RoomDirectory
from .registry import ConnectionRegistry
from .router import EventRouter
from .services.broadcast import Broadcaster, Transport
from .services.finance import (
    PaymentGateway,
    SimulatedPaymentGateway,
    SimulatedWithdrawalGateway,
    WithdrawalGateway,
)
from .services.reaper import IdleReaper


class RelayContext:
    """Everything one relay instance owns.

    The registry, directory and game records are only touched while holding
    ``lock``, so one inbound event (mutation plus broadcast) completes before
    the next one starts. Arrival order per connection comes from the server
    handling each connection's events on its own reader (``async_handlers``
    is off).
    """

    def __init__(self, transport: Transport, config: Optional[dict] = None,
                 payments: Optional[PaymentGateway] = None,
                 withdrawals: Optional[WithdrawalGateway] = None,
                 logger: Optional[logging.Logger] = None,
                 spawn=None, sleep=time.sleep, clock=time.time) -> None:
        cfg = dict(config or {})
        self.config = cfg
        self.logger = logger or logging.getLogger('bingo_relay')
        self.clock = clock
        self.sleep = sleep
        self.spawn = spawn or IdleReaper._spawn_thread
        self.background = cfg.get('ENABLE_BACKGROUND_TASKS', True)
        self.lock = threading.RLock()
        self.started_at = clock()
        self.registry = ConnectionRegistry()
        self.directory = RoomDirectory(
            default_game_type=cfg.get('DEFAULT_GAME_TYPE', '75ball'),
            clock=clock,
        )
        self.broadcaster = Broadcaster(
            transport, self.registry, self.directory, logger=self.logger, clock=clock,
        )
        self.reaper = IdleReaper(
            self.directory,
            lock=self.lock,
            grace_sec=cfg.get('EMPTY_ROOM_GRACE_SEC', 300),
            sweep_interval_sec=cfg.get('IDLE_SWEEP_INTERVAL_SEC', 1800),
            check_interval_sec=cfg.get('EVICTION_CHECK_INTERVAL_SEC', 5),
            stale_after_sec=cfg.get('IDLE_STALE_AFTER_SEC', 7200),
            background=self.background,
            spawn=spawn,
            sleep=sleep,
            clock=clock,
            logger=self.logger,
        )
        self.payments = payments or SimulatedPaymentGateway(clock=clock)
        self.withdrawals = withdrawals or SimulatedWithdrawalGateway(clock=clock)
        self.router = EventRouter(self)
        self.running = False

    def start(self) -> None:
        if self.running:
            return
        self.running = True
        self.reaper.start()
        self.logger.info("[relay] started")

    def stop(self) -> None:
        if not self.running:
            return
        self.running = False
        self.reaper.stop()
        self.logger.info("[relay] stopped")

    def uptime(self) -> float:
        return self.clock() - self.started_at

    def health(self):
        with self.lock:
            return {
                'activeGames': len(self.directory),
                'connectedPlayers': len(self.registry),
            }


def current_relay() -> RelayContext:
    """The relay bound to the active Flask app."""
    return current_app.extensions['bingo_relay']
