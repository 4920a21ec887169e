import os
import sys
import pytest
from flask import g

# Ensure the project root (containing the `trivia` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from trivia import create_app, db, socketio
from trivia.services.rooms.questions import fallback_questions


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = 'DEBUG'
    APP_NAMESPACE = 'test-trivia-app'
    QUESTION_COUNT = 2
    ROOM_CODE_LENGTH = 6
    ROOM_CODE_ATTEMPTS = 5
    WRITE_CONFLICT_RETRIES = 1
    ROOM_MISSING_REDIRECT_SEC = 3
    STALE_ROOM_HOURS = 24
    PUBLIC_BASE_URL = 'https://trivia.example.com/'


class StaticLoader:
    """Question loader that never touches the network."""

    def __init__(self):
        self.calls = []

    def load(self, amount=None, category=None, difficulty=None):
        self.calls.append((amount, category, difficulty))
        return fallback_questions()


@pytest.fixture()
def loader():
    return StaticLoader()


@pytest.fixture()
def flask_app(loader):
    application = create_app(TestConfig, question_loader=loader)

    @application.teardown_request
    def forget_login_user(exc):
        # The app context outlives each request here, so drop the user that
        # Flask-Login cached on g or the next client would inherit it
        g.pop('_login_user', None)

    with application.app_context():
        # Ensure models are imported so tables are created
        import trivia.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def services(flask_app):
    return flask_app.extensions['trivia']


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def make_player(flask_app, name):
    """An HTTP test client holding its own anonymous identity."""
    http = flask_app.test_client()
    res = http.post('/api/identity', json={'name': name})
    assert res.status_code == 200
    http.uid = res.get_json()['uid']
    return http


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


def connect_socket(flask_app, http):
    """Socket.IO test client sharing the identity cookie of `http`."""
    return socketio.test_client(flask_app, flask_test_client=http, namespace='/ws')


def by_name(packets, name):
    return [pkt['args'][0] for pkt in packets if pkt['name'] == name]


class RacingStore:
    """Store wrapper that lands another write just before the first CAS update."""

    def __init__(self, inner, interloper):
        self.inner = inner
        self.interloper = interloper
        self.raced = False

    def update(self, path, fields, expected_version=None):
        if expected_version is not None and not self.raced:
            self.raced = True
            self.interloper(self.inner, path)
        return self.inner.update(path, fields, expected_version=expected_version)

    def __getattr__(self, name):
        return getattr(self.inner, name)
