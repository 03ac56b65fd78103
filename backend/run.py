from setboard import create_app, get_poller, socketio

app = create_app()

if __name__ == '__main__':
    # Timeout windows are only detected while the poller runs
    get_poller(app).start()
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, debug=True, use_reloader=False)
