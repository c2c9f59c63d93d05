import json
import os
import sys
import logging
import pytest

# Ensure the backend root (containing the `duet` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from duet import create_app, socketio, NAMESPACE
from duet.services.puzzle.levels import LevelLibrary


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    LEVEL_DIR = Config.LEVEL_DIR
    LEVEL_FILES = list(Config.LEVEL_FILES)
    DEFAULT_SESSION_ID = 'default'
    CORS_ORIGINS = ['http://localhost:5173']


# Small level used across the unit tests: goal plate in the middle, a red
# plate gating a red door in the bottom-right corner.
BASIC_LEVEL = {
    'Size': [5, 5],
    'Walls': [[1, 1]],
    'Doors': [[4, 4, 0]],
    'PressurePlates': [[0, 4, 0]],
    'EndPlates': [2, 2],
    'PlayersStart': [[0, 0], [4, 0]],
}


class Outbox:
    """Collects (event, payload, client) triples sent by a session."""

    def __init__(self):
        self.sent = []

    def __call__(self, event, payload, client):
        self.sent.append((event, payload, client))

    def to(self, client):
        return [(event, payload) for event, payload, c in self.sent if c == client]

    def events(self, client=None):
        return [event for event, _, c in self.sent if client is None or c == client]

    def clear(self):
        self.sent.clear()


@pytest.fixture()
def outbox():
    return Outbox()


@pytest.fixture()
def test_logger():
    return logging.getLogger('duet.tests')


@pytest.fixture()
def write_level(tmp_path):
    def _write(name, doc):
        path = tmp_path / name
        if isinstance(doc, str):
            path.write_text(doc, encoding='utf-8')
        else:
            path.write_text(json.dumps(doc), encoding='utf-8')
        return str(path)
    return _write


@pytest.fixture()
def make_library(write_level, test_logger):
    def _make(*docs):
        paths = [write_level(f'level{i}.json', doc) for i, doc in enumerate(docs)]
        return LevelLibrary(paths, logger=test_logger)
    return _make


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace=NAMESPACE
    )
    yield test_client
    try:
        test_client.disconnect(namespace=NAMESPACE)
    except Exception:
        pass
