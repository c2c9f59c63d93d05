from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

socketio = SocketIO(async_mode=None)

NAMESPACE = '/ws'


def emit_to_client(event, payload, client):
    """Fire-and-forget send to one socket; unknown sids are dropped."""
    socketio.emit(event, payload, to=client, namespace=NAMESPACE)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    origins = flask_app.config.get('CORS_ORIGINS') or []
    CORS(flask_app, supports_credentials=True, origins=origins)
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    # One registry per app; handlers reach it through current_app.extensions
    from duet.services.puzzle.levels import LevelLibrary
    from duet.services.puzzle.registry import SessionRegistry
    levels = LevelLibrary.from_config(flask_app.config, logger=flask_app.logger)
    # Level advances run inline under TESTING
    run_task = None if flask_app.config.get('TESTING') else socketio.start_background_task
    flask_app.extensions['duet_sessions'] = SessionRegistry(
        levels, emit_to_client, logger=flask_app.logger, run_task=run_task,
    )

    from duet.main import main
    flask_app.register_blueprint(main)

    from duet.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from duet.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('check-levels')
    def check_levels_command():
        """Loads every configured level and reports problems."""
        from duet.services.puzzle.levels import LevelFormatError
        failed = 0
        for index, path in enumerate(levels.paths):
            try:
                level = levels.load(index)
            except LevelFormatError as exc:
                failed += 1
                click.echo(f'[FAIL] {index}: {exc}')
                continue
            if level.goal_plate is None:
                click.echo(f'[WARN] {index}: {path} has no goal plate and cannot be completed')
            else:
                click.echo(f'[ OK ] {index}: {path} ({level.width}x{level.height})')
        if failed:
            raise click.ClickException(f'{failed} level(s) failed to load')

    flask_app.cli.add_command(check_levels_command)

    return flask_app
