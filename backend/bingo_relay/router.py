import uuid
from typing import Any, Dict, Optional

from .errors import (
    GameNotFoundError,
    MalformedEventError,
    RelayError,
    UnknownEventError,
)
from .models import GameRecord, Player, Session, Winner, isoformat


def _payload(data) -> Dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MalformedEventError('Event payload must be an object')
    return data


def _require(data: Dict[str, Any], key: str):
    value = data.get(key)
    if value is None or value == '':
        raise MalformedEventError(f"{key} is required")
    return value


def _require_game_id(data: Dict[str, Any]) -> str:
    game_id = _require(data, 'gameId')
    if not isinstance(game_id, str):
        raise MalformedEventError('gameId must be a string')
    return game_id


class EventRouter:
    """Applies inbound client events to a relay's shared state.

    Stateful handlers run under the context lock; finance events touch no
    room state and run outside it. Whatever a handler returns is used as the
    acknowledgement for the client's callback.
    """

    def __init__(self, relay) -> None:
        self.relay = relay
        self.registry = relay.registry
        self.directory = relay.directory
        self.broadcaster = relay.broadcaster
        self.reaper = relay.reaper
        self.logger = relay.logger
        self.lock = relay.lock
        cfg = relay.config
        self.default_board_id = cfg.get('DEFAULT_BOARD_ID', 1)
        self.default_stake = cfg.get('DEFAULT_STAKE', 25)
        self.recent_limit = cfg.get('RECENT_NUMBERS_LIMIT', 10)
        self.chat_include_sender = cfg.get('CHAT_INCLUDE_SENDER', True)
        self.withdrawal_delay = cfg.get('WITHDRAWAL_DELAY_SEC', 1.5)
        self._handlers = {
            'join-game': self.join_game,
            'leave-game': self.leave_game,
            'call-number': self.call_number,
            'announce-winner': self.announce_winner,
            'send-chat': self.send_chat,
            'send-message': self.send_chat,
            'update-board': self.update_board,
            'get-game-info': self.get_game_info,
            'ping': self.ping,
        }
        self._unlocked_handlers = {
            'verify-payment': self.verify_payment,
            'request-withdrawal': self.request_withdrawal,
        }

    @property
    def events(self):
        return sorted(list(self._handlers) + list(self._unlocked_handlers))

    def _now(self) -> float:
        return self.relay.clock()

    def _game(self, data: Dict[str, Any]) -> GameRecord:
        game_id = _require_game_id(data)
        game = self.directory.get(game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        return game

    # ---- connection lifecycle ----

    def connect(self, connection_id: str) -> Session:
        with self.lock:
            session = self.registry.register(connection_id)
        self.broadcaster.send(connection_id, 'connected', {'connectionId': connection_id})
        self.logger.info(f"[connect] conn={connection_id}")
        return session

    def disconnect(self, connection_id: str, reason: Optional[str] = None) -> None:
        with self.lock:
            session = self.registry.mark_disconnected(connection_id)
            if session is None:
                return
            self._leave_current_game(session, reason or 'disconnect')
            self.registry.unregister(connection_id)
        self.logger.info(f"[disconnect] conn={connection_id} reason={reason}")

    def _leave_current_game(self, session: Session, reason: str) -> Optional[GameRecord]:
        game_id = session.current_game_id
        if not game_id:
            return None
        session.current_game_id = None
        game = self.directory.get(game_id)
        if game is None:
            return None
        removed = game.remove_player(session.connection_id, self._now())
        if removed is None:
            return game
        self.broadcaster.broadcast(game_id, 'player-left', {
            'playerId': session.connection_id,
            'playerName': removed.name,
            'totalPlayers': len(game.players),
            'host': game.host,
            'reason': reason,
        }, exclude=session.connection_id)
        self.logger.info(
            f"[leave] {removed.name} left game={game_id} ({len(game.players)} players left) reason={reason}"
        )
        if game.is_empty:
            self.reaper.schedule_eviction(game_id)
        return game

    # ---- dispatch ----

    def dispatch(self, connection_id: str, event_type: str, data=None):
        """Run the handler for ``event_type``; errors go back to the sender only."""
        try:
            handler = self._unlocked_handlers.get(event_type)
            if handler is not None:
                return handler(connection_id, data)
            handler = self._handlers.get(event_type)
            if handler is None:
                raise UnknownEventError(event_type)
            with self.lock:
                return handler(connection_id, data)
        except RelayError as exc:
            self.logger.info(f"[rejected] conn={connection_id} event={event_type} code={exc.code} {exc.message}")
            return self._reply_error(connection_id, event_type, exc)
        except Exception:
            self.logger.exception(f"[handler-error] conn={connection_id} event={event_type}")
            return self._reply_error(connection_id, event_type, RelayError('Internal server error'))

    def _reply_error(self, connection_id: str, event_type: str, exc: RelayError):
        error = exc.to_dict()
        error['event'] = event_type
        self.broadcaster.send(connection_id, 'error', error)
        return {'success': False, 'error': exc.message, 'code': exc.code}

    # ---- room events ----

    def join_game(self, connection_id: str, data=None):
        data = _payload(data)
        game_id = _require_game_id(data)
        player_data = data.get('playerData') or {}
        if not isinstance(player_data, dict):
            raise MalformedEventError('playerData must be an object')

        session = self.registry.lookup(connection_id)
        if session is not None and session.current_game_id not in (None, game_id):
            self._leave_current_game(session, 'switched-game')

        now = self._now()
        game = self.directory.get_or_create(game_id, player_data.get('gameType'))
        current = game.find_player(connection_id)
        player = Player.from_payload(
            connection_id,
            player_data,
            name=current.name if current else 'Anonymous',
            board_id=current.board_id if current else self.default_board_id,
            stake=current.stake if current else self.default_stake,
            now=now,
        )
        is_new = game.add_or_update_player(player, now)
        self.registry.update_session(connection_id, player.name, player.contact, game_id)
        self.reaper.cancel_eviction(game_id)

        self.broadcaster.broadcast(game_id, 'player-joined', {
            'playerId': connection_id,
            'playerName': player.name,
            'totalPlayers': len(game.players),
            'rejoined': not is_new,
        }, exclude=connection_id)
        self.broadcaster.send(connection_id, 'game-state', game.to_state())
        self.logger.info(f"[join] {player.name} joined game={game_id} ({len(game.players)} players)")
        return {'success': True, 'gameId': game_id, 'host': game.host}

    def leave_game(self, connection_id: str, data=None):
        _payload(data)
        session = self.registry.lookup(connection_id)
        game_id = session.current_game_id if session else None
        if game_id is None:
            raise MalformedEventError('Not in a game')
        self._leave_current_game(session, 'left')
        self.broadcaster.send(connection_id, 'left', {'gameId': game_id})
        return {'success': True, 'gameId': game_id}

    def call_number(self, connection_id: str, data=None):
        data = _payload(data)
        game = self._game(data)
        number = _require(data, 'number')
        call = game.append_called_number(connection_id, number, data.get('displayText'), self._now())
        if call is None:
            # Only the host may call once a room has one; others are ignored quietly
            self.logger.debug(f"[call-ignored] conn={connection_id} game={game.game_id} host={game.host}")
            return None
        self.broadcaster.broadcast(game.game_id, 'number-called', {
            'number': call.number,
            'displayText': call.display_text,
            'calledNumbers': game.called_values(self.recent_limit),
            'recentCalls': [c.to_dict() for c in game.recent_numbers(self.recent_limit)],
            'totalCalled': len(game.called_numbers),
        })
        self.logger.info(f"[call] game={game.game_id} number={call.display_text}")
        return None

    def announce_winner(self, connection_id: str, data=None):
        data = _payload(data)
        game = self._game(data)
        winner = Winner(
            connection_id=connection_id,
            player_name=data.get('playerName'),
            pattern=data.get('pattern'),
            amount=data.get('winAmount'),
            won_at=self._now(),
        )
        game.announce_winner(winner)
        self.broadcaster.broadcast(game.game_id, 'winner-announced', {
            'playerId': connection_id,
            'playerName': winner.player_name,
            'pattern': winner.pattern,
            'winAmount': winner.amount,
            'calledNumbers': len(game.called_numbers),
            'totalCalled': len(game.called_numbers),
        })
        self.logger.info(
            f"[winner] game={game.game_id} {winner.player_name} won {winner.amount} with pattern {winner.pattern}"
        )
        return None

    def send_chat(self, connection_id: str, data=None):
        data = _payload(data)
        game = self._game(data)
        message = _require(data, 'message')
        session = self.registry.lookup(connection_id)
        player_name = data.get('playerName') or (session.display_name if session else None) or 'Anonymous'
        game.touch_activity(self._now())
        self.broadcaster.broadcast(game.game_id, 'new-message', {
            'playerId': connection_id,
            'playerName': player_name,
            'message': message,
        }, exclude=None if self.chat_include_sender else connection_id)
        self.logger.info(f"[chat] game={game.game_id} {player_name}: {str(message)[:50]}")
        return None

    def update_board(self, connection_id: str, data=None):
        data = _payload(data)
        game = self._game(data)
        game.touch_activity(self._now())
        self.broadcaster.broadcast(game.game_id, 'board-updated', {
            'playerId': connection_id,
            'boardState': data.get('boardState'),
        }, exclude=connection_id)
        return None

    def get_game_info(self, connection_id: str, data=None):
        game = self._game(_payload(data))
        info = game.to_info()
        info['success'] = True
        return info

    def ping(self, connection_id: str, data=None):
        now = self._now()
        payload = {
            'status': 'pong',
            'serverTime': int(now * 1000),
            'timestamp': isoformat(now),
        }
        self.broadcaster.send(connection_id, 'pong', payload)
        return payload

    # ---- finance ----

    def verify_payment(self, connection_id: str, data=None):
        data = _payload(data)
        result = self.relay.payments.verify(
            data.get('phone'), data.get('amount'), data.get('transactionId'),
        )
        if result.get('success'):
            self.logger.info(f"[payment] verified conn={connection_id} amount={data.get('amount')}")
        else:
            self.logger.info(f"[payment] failed conn={connection_id} amount={data.get('amount')}")
        return result

    def request_withdrawal(self, connection_id: str, data=None):
        """Validate now; the gateway result is sent as ``withdrawal-result``.

        With background tasks on, the processing delay runs in its own task so
        this connection's later events are not held up behind it and the ack
        only confirms the request. Otherwise the result is also the ack.
        """
        data = _payload(data)
        gateway = self.relay.withdrawals
        account = data.get('account')
        amount = data.get('amount')
        error = gateway.validate(account, amount)
        if error:
            return {'success': False, 'error': error, 'timestamp': isoformat(self._now())}
        request_id = f"WREQ-{uuid.uuid4().hex[:12]}"
        args = (connection_id, request_id, account, amount, data.get('playerId'))
        if self.relay.background and self.withdrawal_delay > 0:
            self.relay.spawn(self._complete_withdrawal, *args)
            return {
                'success': True,
                'status': 'processing',
                'requestId': request_id,
                'timestamp': isoformat(self._now()),
            }
        return self._complete_withdrawal(*args)

    def _complete_withdrawal(self, connection_id, request_id, account, amount, player_id):
        if self.withdrawal_delay > 0:
            self.relay.sleep(self.withdrawal_delay)
        try:
            result = self.relay.withdrawals.withdraw(account, amount, player_id)
        except Exception:
            self.logger.exception(f"[withdrawal] gateway error conn={connection_id} request={request_id}")
            result = {
                'success': False,
                'error': 'Withdrawal failed. Please try again.',
                'timestamp': isoformat(self._now()),
            }
        result['requestId'] = request_id
        if not self.broadcaster.send(connection_id, 'withdrawal-result', result):
            self.logger.info(f"[withdrawal] conn={connection_id} went away before the reply")
        elif result.get('success'):
            self.logger.info(f"[withdrawal] processed conn={connection_id} amount={amount} fee={result['serviceFee']}")
        return result
