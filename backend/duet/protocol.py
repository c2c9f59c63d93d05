"""Message catalogue exchanged between a client and its game session.

Each message is a ``type`` discriminator plus a ``payload``. Over
Socket.IO the type is the event name and the payload is the event data.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from duet.models import LevelState
from duet.services.puzzle.movement import Direction


# Client -> session
JOIN = 'join'
MOVE = 'move'
# Session -> client
INIT = 'init'
STATE = 'state'
SLOTS = 'slots'
ERROR = 'error'

_DIRECTION_NAMES = {d.name.lower(): d for d in Direction}


class ProtocolError(ValueError):
    """Incoming message does not match the catalogue."""


@dataclass(frozen=True)
class JoinMessage:
    desired_slot: Optional[int] = None


@dataclass(frozen=True)
class MoveMessage:
    direction: Direction


ClientMessage = Union[JoinMessage, MoveMessage]


def _parse_slot(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or value not in (0, 1):
        raise ProtocolError(f"desiredSlot must be 0 or 1, got {value!r}")
    return int(value)


def parse_join(payload: Any) -> JoinMessage:
    if payload is None:
        return JoinMessage()
    if not isinstance(payload, dict):
        raise ProtocolError('join payload must be an object')
    # "desired" is the older key
    raw = payload.get('desiredSlot', payload.get('desired'))
    return JoinMessage(desired_slot=_parse_slot(raw))


def parse_move(payload: Any) -> MoveMessage:
    if not isinstance(payload, dict):
        raise ProtocolError('move payload must be an object')
    name = payload.get('direction')
    if name is not None:
        direction = _DIRECTION_NAMES.get(str(name).lower())
        if direction is None:
            raise ProtocolError(f"unknown direction {name!r}")
        return MoveMessage(direction)
    dx, dy = payload.get('dx'), payload.get('dy')
    if isinstance(dx, bool) or isinstance(dy, bool) or not isinstance(dx, int) or not isinstance(dy, int):
        raise ProtocolError(f"move needs integer dx/dy, got {payload!r}")
    try:
        return MoveMessage(Direction.from_delta(dx, dy))
    except ValueError:
        raise ProtocolError(f"({dx}, {dy}) is not a unit move")


def parse_client_message(message_type: Any, payload: Any = None) -> ClientMessage:
    if message_type == JOIN:
        return parse_join(payload)
    if message_type == MOVE:
        return parse_move(payload)
    raise ProtocolError(f"unknown message type {message_type!r}")


def parse_envelope(data: Any) -> ClientMessage:
    if not isinstance(data, dict) or 'type' not in data:
        raise ProtocolError('message must be an object with a type')
    return parse_client_message(data.get('type'), data.get('payload'))


def serialize_level_state(state: LevelState) -> Dict[str, Any]:
    return state.to_dict()


def slot_summary(occupied: Sequence[bool]) -> List[Dict[str, Any]]:
    return [{'index': index, 'occupied': bool(flag)} for index, flag in enumerate(occupied)]


def init_payload(you: Optional[int], level_index: int, state: LevelState, occupied: Sequence[bool]) -> Dict[str, Any]:
    return {
        'you': you,
        'levelIndex': level_index,
        'state': serialize_level_state(state),
        'slots': slot_summary(occupied),
    }


def state_payload(level_index: int, state: LevelState) -> Dict[str, Any]:
    return {
        'levelIndex': level_index,
        'state': serialize_level_state(state),
    }


def slots_payload(occupied: Sequence[bool]) -> Dict[str, Any]:
    return {'slots': slot_summary(occupied)}


def error_payload(message: str) -> Dict[str, Any]:
    return {'message': message}
