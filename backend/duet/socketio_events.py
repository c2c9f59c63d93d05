from flask import current_app, request
from flask_socketio import emit
from typing import Any, Dict

from duet import NAMESPACE, protocol, socketio
from duet.services.puzzle.levels import LevelFormatError
from duet.services.puzzle.registry import SessionRegistry


# sid -> session id the socket belongs to
_sid_to_session: Dict[str, str] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _registry() -> SessionRegistry:
    return current_app.extensions['duet_sessions']


def _requested_session_id(auth: Any) -> str:
    game = request.args.get('game')
    if not game and isinstance(auth, dict):
        game = auth.get('game')
    if isinstance(game, str) and game:
        return game
    return current_app.config.get('DEFAULT_SESSION_ID', 'default')


def handle_connect(auth=None):
    sid = _get_sid()
    session_id = _requested_session_id(auth)
    try:
        _registry().connect(session_id, sid)
    except LevelFormatError as exc:
        current_app.logger.error(f"[connect-failed] session={session_id} sid={sid} error={exc}")
        emit(protocol.ERROR, protocol.error_payload('Unable to join the game'))
        raise ConnectionRefusedError('Unable to join the game')
    _sid_to_session[sid] = session_id


def handle_disconnect(reason=None):
    sid = _get_sid()
    session_id = _sid_to_session.pop(sid, None)
    if session_id is None:
        return
    registry = _registry()
    session = registry.get(session_id)
    if session is None:
        return
    session.remove_client(sid)
    registry.release(session_id)


def _dispatch(message: protocol.ClientMessage) -> None:
    sid = _get_sid()
    session_id = _sid_to_session.get(sid)
    session = _registry().get(session_id) if session_id else None
    if session is None:
        return
    if isinstance(message, protocol.JoinMessage):
        session.join(sid, message.desired_slot)
    elif isinstance(message, protocol.MoveMessage):
        session.handle_move(sid, message.direction)


def handle_join(data=None):
    try:
        message = protocol.parse_join(data)
    except protocol.ProtocolError as exc:
        current_app.logger.warning(f"[protocol-drop] sid={_get_sid()} type=join error={exc}")
        return
    _dispatch(message)


def handle_move(data=None):
    try:
        message = protocol.parse_move(data)
    except protocol.ProtocolError as exc:
        current_app.logger.warning(f"[protocol-drop] sid={_get_sid()} type=move error={exc}")
        return
    _dispatch(message)


def handle_message(data=None):
    try:
        message = protocol.parse_envelope(data)
    except protocol.ProtocolError as exc:
        current_app.logger.warning(f"[protocol-drop] sid={_get_sid()} type=message error={exc}")
        return
    _dispatch(message)


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the game namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event(protocol.JOIN, handle_join, namespace=NAMESPACE)
    socketio.on_event(protocol.MOVE, handle_move, namespace=NAMESPACE)
    socketio.on_event('message', handle_message, namespace=NAMESPACE)
