from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

__version__ = '1.0.0'

# Handlers run on the connection's reader, so each client's events apply in arrival order
socketio = SocketIO(async_mode=None, async_handlers=False)


def create_app(config_class=Config, payments=None, withdrawals=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or '*'
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One relay (registry, rooms, reaper) per app instance
    from bingo_relay.context import RelayContext
    from bingo_relay.services.broadcast import SocketIOTransport
    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/')
    relay = RelayContext(
        SocketIOTransport(socketio, namespace),
        config=flask_app.config,
        payments=payments,
        withdrawals=withdrawals,
        logger=flask_app.logger,
        spawn=socketio.start_background_task,
        sleep=socketio.sleep,
    )
    flask_app.extensions['bingo_relay'] = relay

    from bingo_relay.main import main
    flask_app.register_blueprint(main)

    from bingo_relay.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api')

    from bingo_relay.socketio_events import register_socketio_handlers
    register_socketio_handlers(relay.router.events, namespace=namespace)

    relay.start()

    @click.command('serve')
    @click.option('--host', default=None, help='Interface to bind (defaults to HOST).')
    @click.option('--port', default=None, type=int, help='Port to listen on (defaults to PORT).')
    def serve_command(host, port):
        """Runs the relay with its Socket.IO server."""
        host = host or flask_app.config.get('HOST', '0.0.0.0')
        port = port or flask_app.config.get('PORT', 8000)
        flask_app.logger.info(f"[serve] Bingo relay starting on {host}:{port}")
        try:
            socketio.run(flask_app, host=host, port=port, allow_unsafe_werkzeug=True)
        finally:
            relay.stop()

    flask_app.cli.add_command(serve_command)

    return flask_app
