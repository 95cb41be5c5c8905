from bingo_relay import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # Use SocketIO server to enable websockets in dev
    try:
        socketio.run(app, host=app.config['HOST'], port=app.config['PORT'],
                     allow_unsafe_werkzeug=True)
    finally:
        app.extensions['bingo_relay'].stop()
