from flask import Blueprint, jsonify
from werkzeug.exceptions import HTTPException

from bingo_relay import __version__
from bingo_relay.models import isoformat
from bingo_relay.context import current_relay

main = Blueprint('main', __name__)

SERVER_NAME = 'Assefa Digital Bingo Game'


def error_response(message, status):
    return jsonify({
        'success': False,
        'error': message,
        'timestamp': isoformat(current_relay().clock()),
    }), status


@main.route('/')
def index():
    relay = current_relay()
    health = relay.health()
    return jsonify({
        'message': f'{SERVER_NAME} server is running',
        'version': __version__,
        'activeGames': health['activeGames'],
        'connectedPlayers': health['connectedPlayers'],
        'endpoints': {
            'GET /api/health': 'Check server health status',
            'GET /api/games': 'List all active games',
            'POST /api/create-game': 'Create a new game, body {"gameType": "75ball", "maxPlayers": 100}',
            'GET /api/game?id=GAME_ID': 'Get specific game details',
        },
        'socketio': {
            'namespace': relay.config.get('SOCKETIO_NAMESPACE', '/'),
            'events': relay.router.events,
        },
    })


@main.app_errorhandler(404)
def not_found(error):
    return error_response('Endpoint not found', 404)


@main.app_errorhandler(405)
def method_not_allowed(error):
    return error_response('Method not allowed', 405)


@main.app_errorhandler(HTTPException)
def http_error(error):
    return error_response(error.description or error.name, error.code or 500)


@main.app_errorhandler(Exception)
def unhandled_error(error):
    current_relay().logger.exception('[http-error] unhandled exception')
    return error_response('Internal server error', 500)
