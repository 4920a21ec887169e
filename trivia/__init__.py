from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import logging
from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config, question_loader=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    logging.getLogger('trivia').setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # The document store and the services on top of it are built once here and
    # handed to routes and socket handlers through app.extensions
    from trivia.services.rooms import TriviaServices
    flask_app.extensions['trivia'] = TriviaServices.from_config(db, flask_app.config, loader=question_loader)

    from trivia.main import main
    flask_app.register_blueprint(main)

    from trivia.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api')

    from trivia.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from trivia.models import Identity

    @login_manager.user_loader
    def load_user(user_id):
        from flask import session
        return Identity(user_id, session.get('player_name'))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Create an identity first.'}), 401

    from trivia.commands import register_commands
    register_commands(flask_app)

    return flask_app
