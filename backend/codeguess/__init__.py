from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from werkzeug.exceptions import HTTPException
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
default_origins = [
    "http://localhost:8080",
    "http://127.0.0.1:8080",
    "https://josephbarbier.github.io",
]
default_security_headers = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'Referrer-Policy': 'no-referrer',
}
socketio = SocketIO(async_mode=None)


def _allowed_origins(flask_app):
    origins = list(default_origins)
    frontend_url = flask_app.config.get('FRONTEND_URL')
    if frontend_url and frontend_url not in origins:
        origins.append(frontend_url)
    return origins


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = _allowed_origins(flask_app)
    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Snippet corpus is read once here and shared read-only by every request
    from codeguess.corpus import load_corpus
    corpus = load_corpus(flask_app.config['CORPUS_PATH'])
    flask_app.extensions['snippet_corpus'] = corpus
    if corpus.is_empty:
        flask_app.logger.warning("[corpus] no snippets loaded; session creation is disabled until the corpus is fixed")

    from codeguess.ratelimit import init_rate_limiter
    init_rate_limiter(flask_app)

    # Import and register blueprints here
    from codeguess.main import main
    flask_app.register_blueprint(main)

    from codeguess.api.quiz import quiz
    flask_app.register_blueprint(quiz, url_prefix='/api')

    security_headers = flask_app.config.get('SECURITY_HEADERS') or default_security_headers

    @flask_app.after_request
    def add_security_headers(response):
        for name, value in security_headers.items():
            response.headers.setdefault(name, value)
        return response

    from codeguess.errors import QuizError

    @flask_app.errorhandler(QuizError)
    def handle_quiz_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    @flask_app.errorhandler(HTTPException)
    def handle_http_error(exc):
        if exc.code is None or exc.code < 400:
            return exc
        return jsonify({'error': exc.description, 'code': exc.name.lower().replace(' ', '_')}), exc.code

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        flask_app.logger.exception(f"[error] unhandled: {exc}")
        return jsonify({'error': 'Something went wrong!'}), 500

    from codeguess.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Ensure models are registered on the metadata for create_all/migrations
    from codeguess import models  # noqa: F401

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the session and result tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    @click.command('corpus-info')
    def corpus_info_command():
        """Reports the loaded snippet corpus."""
        loaded = flask_app.extensions['snippet_corpus']
        print(f"Corpus: {loaded.source}")
        print(f"Snippets: {len(loaded)}")
        print(f"Languages: {', '.join(sorted(loaded.languages)) or '-'}")

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(corpus_info_command)

    return flask_app
