from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

# Imported after the extension objects: store -> models -> trivia.db
from trivia.store import StateStore  # noqa: E402
from trivia.errors import TriviaError  # noqa: E402

store = StateStore()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)
    store.init_app(flask_app, socketio)

    from trivia.main import main
    flask_app.register_blueprint(main)

    from trivia.api.game import game
    flask_app.register_blueprint(game, url_prefix='/api/game')

    from trivia.api.presenter import presenter
    flask_app.register_blueprint(presenter, url_prefix='/api/presenter')

    from trivia.api.admin import admin
    flask_app.register_blueprint(admin, url_prefix='/api/admin')

    from trivia.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @flask_app.errorhandler(TriviaError)
    def handle_trivia_error(exc):
        flask_app.logger.info(f"[error] {exc.__class__.__name__}: {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    from trivia.models import AdminUser

    @login_manager.user_loader
    def load_user(user_id):
        return AdminUser() if user_id == AdminUser.id else None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Admin login required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from trivia.services.admin.content import seed_defaults
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            seed_defaults(flask_app.config)
            print('Database has been reset and seeded!')

    @click.command('import-questions')
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    def import_questions_command(path):
        """Loads questions from a CSV or .xlsx file (Question, Opt1, Opt2, Opt3, Correct 1-3)."""
        from trivia.services.admin.importer import import_questions, import_workbook, is_workbook
        with flask_app.app_context():
            if is_workbook(path):
                with open(path, 'rb') as fp:
                    created = import_workbook(store, fp)
            else:
                with open(path, newline='', encoding='utf-8-sig') as fp:
                    created = import_questions(store, fp)
            print(f'Imported {len(created)} questions.')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(import_questions_command)

    return flask_app
