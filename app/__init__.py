import os
import logging

from flask import Flask
from flask_cors import CORS
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager

from app.config import Config
from app.errors import register_error_handlers
from app.extension.extensions import db
from app.services.result_cache import init_result_cache
from app.services.websocket_service import socketio, register_dashboard_events
from app.services.recompute_service import start_recompute_worker

jwt = JWTManager()  # global instance

def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    app.logger.setLevel(os.getenv("LOG_LEVEL", "INFO"))

    jwt.init_app(app)

    # Extensions
    CORS(app)
    db.init_app(app)
    Migrate(app, db)
    socketio.init_app(app, cors_allowed_origins="*", async_mode=app.config.get("SOCKETIO_ASYNC_MODE"))
    init_result_cache(app)

    register_error_handlers(app)

    # Import blueprints AFTER extensions are inited to avoid premature current_app usage
    from app.controllers.admin_controller import bp_admin
    from app.controllers.organizer_controller import bp_organizer
    from app.controllers.player_controller import bp_player
    from app.controllers.me_controller import bp_me

    # Register blueprints
    app.register_blueprint(bp_admin)
    app.register_blueprint(bp_organizer)
    app.register_blueprint(bp_player)
    app.register_blueprint(bp_me)

    from app.commands import register_commands
    register_commands(app)

    # Socket events
    register_dashboard_events()
    if app.config.get("RECOMPUTE_ASYNC"):
        start_recompute_worker(app)

    return app
