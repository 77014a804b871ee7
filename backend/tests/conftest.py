import json
import os
import sys
import pytest

# Ensure the backend root (containing the `codeguess` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from codeguess import create_app, db, socketio


FIXTURE_SNIPPETS = [
    {'language': 'Go', 'code': 'package main', 'distractors': []},
    {'language': 'Python', 'code': 'print("hi")', 'distractors': ['Ruby', 'Perl']},
    {'language': 'Rust', 'code': 'fn main() {}', 'distractors': ['Go', 'C++', 'Zig']},
    {'language': 'Java', 'code': 'class Main {}', 'distractors': ['C#', 'Kotlin']},
    {'language': 'Ruby', 'code': 'puts 1', 'distractors': ['Python']},
]


def make_config(**overrides):
    attrs = {
        'TESTING': True,
        'SECRET_KEY': os.environ.get('SECRET_KEY', 'test-secret'),
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CORPUS_PATH': None,
        'DEFAULT_SNIPPETS_COUNT': 10,
        'MAX_SNIPPETS_COUNT': 50,
        'MIN_SECONDS_PER_QUESTION': 1.0,
        'LEADERBOARD_DEFAULT_LIMIT': 5,
        'LEADERBOARD_MAX_LIMIT': 100,
        'RATE_LIMIT_MAX_REQUESTS': 0,
        'RATE_LIMIT_WINDOW_SEC': 900,
        'FRONTEND_URL': None,
    }
    attrs.update(overrides)
    return type('TestConfig', (), attrs)


def write_corpus(path, snippets):
    path.write_text(json.dumps(snippets), encoding='utf-8')
    return path


@pytest.fixture()
def corpus_path(tmp_path):
    return write_corpus(tmp_path / 'snippets.json', FIXTURE_SNIPPETS)


@pytest.fixture()
def app_factory(corpus_path):
    """Build an app with a fresh in-memory database; tears all of them down."""
    built = []

    def _build(**overrides):
        overrides.setdefault('CORPUS_PATH', str(corpus_path))
        application = create_app(make_config(**overrides))
        ctx = application.app_context()
        ctx.push()
        db.create_all()
        built.append(ctx)
        return application

    yield _build
    for ctx in reversed(built):
        db.session.remove()
        db.drop_all()
        ctx.pop()


@pytest.fixture()
def flask_app(app_factory):
    return app_factory()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')
