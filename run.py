from gevent import monkey
monkey.patch_all()  # must be first

import os

from app import create_app, socketio

app = create_app()

# Gunicorn picks up 'app'; leaderboard screens connect through socketio
if __name__ == "__main__":
    socketio.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3000")))
