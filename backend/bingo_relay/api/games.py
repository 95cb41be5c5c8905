from flask import Blueprint, jsonify, request

from bingo_relay import __version__
from bingo_relay.context import current_relay
from bingo_relay.main import SERVER_NAME, error_response
from bingo_relay.models import isoformat

games = Blueprint('games', __name__)


def _timestamp():
    return isoformat(current_relay().clock())


@games.route('/health', methods=['GET'])
def health():
    relay = current_relay()
    payload = {
        'status': 'healthy',
        'server': SERVER_NAME,
        'version': __version__,
        'uptime': round(relay.uptime(), 3),
        'timestamp': _timestamp(),
    }
    payload.update(relay.health())
    return jsonify(payload)


@games.route('/games', methods=['GET'])
def list_games():
    relay = current_relay()
    with relay.lock:
        summaries = [game.to_summary() for game in relay.directory.all()]
    return jsonify({
        'success': True,
        'count': len(summaries),
        'games': summaries,
        'timestamp': _timestamp(),
    })


@games.route('/create-game', methods=['POST'])
def create_game():
    relay = current_relay()
    data = request.get_json(silent=True)
    if data is None:
        if request.get_data():
            return error_response('Request body must be valid JSON', 400)
        data = {}
    if not isinstance(data, dict):
        return error_response('Request body must be a JSON object', 400)

    cfg = relay.config
    settings = {
        'maxPlayers': data.get('maxPlayers') or cfg.get('DEFAULT_MAX_PLAYERS', 100),
        'stake': data.get('stake') or cfg.get('DEFAULT_STAKE', 25),
        'autoStart': data.get('autoStart') is not False,
    }
    with relay.lock:
        game = relay.directory.create(data.get('gameType'), settings)
    relay.logger.info(f"[create] API created game={game.game_id} ({game.game_type})")
    return jsonify({
        'success': True,
        'gameId': game.game_id,
        'message': 'Game created successfully',
        'timestamp': _timestamp(),
    }), 201


@games.route('/game', methods=['GET'])
def get_game():
    relay = current_relay()
    game_id = request.args.get('id')
    if not game_id:
        return error_response('Game ID is required', 400)
    with relay.lock:
        game = relay.directory.get(game_id)
        detail = game.to_detail(relay.config.get('DETAIL_NUMBERS_LIMIT', 20)) if game else None
    if detail is None:
        return error_response('Game not found', 404)
    return jsonify({
        'success': True,
        'game': detail,
        'timestamp': _timestamp(),
    })
