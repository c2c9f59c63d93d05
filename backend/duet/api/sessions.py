from flask import Blueprint, current_app, jsonify

sessions = Blueprint('sessions', __name__)


def _registry():
    return current_app.extensions['duet_sessions']


@sessions.route('', methods=['GET'])
@sessions.route('/', methods=['GET'])
def list_sessions():
    """
    Lists live sessions with their phase, level and slot occupancy.
    """
    return jsonify([s.to_dict() for s in _registry().sessions()])


@sessions.route('/<string:session_id>/state', methods=['GET'])
def get_session_state(session_id):
    """
    Returns the same payload a client receives in a state message.
    """
    session = _registry().get(session_id)
    if session is None:
        return jsonify({'error': 'Session not found'}), 404
    payload = session.snapshot()
    payload['phase'] = session.phase.value
    return jsonify(payload)
