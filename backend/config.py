import os

_HERE = os.path.dirname(os.path.abspath(__file__))


def _split(value):
    return [part.strip() for part in value.split(',') if part.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Level documents, played in order and wrapping around
    LEVEL_DIR = os.environ.get('LEVEL_DIR') or os.path.join(_HERE, 'duet', 'levels')
    LEVEL_FILES = _split(os.environ.get('LEVEL_FILES', 'level0.json,level1.json,level2.json'))
    # Session used when a client connects without a ?game= parameter
    DEFAULT_SESSION_ID = os.environ.get('DEFAULT_SESSION_ID', 'default')
    CORS_ORIGINS = _split(os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,http://localhost:8080,http://127.0.0.1:8080',
    ))
