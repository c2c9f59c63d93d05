import json
import logging
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple

from duet.models import Color, Door, LevelState, Plate, PlateKind, Player, Shape, Wall


module_logger = logging.getLogger(__name__)

COLOR_TABLE: Tuple[Color, ...] = (
    Color.RED,
    Color.BLUE,
    Color.GREEN,
    Color.PURPLE,
    Color.CYAN,
    Color.YELLOW,
)
PLAYER_COLORS: Tuple[Color, Color] = (Color.BLUE, Color.RED)


class LevelFormatError(Exception):
    """The level document could not be read or does not describe a level."""


def color_from_id(color_id: Any) -> Color:
    if isinstance(color_id, int) and not isinstance(color_id, bool) and 0 <= color_id < len(COLOR_TABLE):
        return COLOR_TABLE[color_id]
    return COLOR_TABLE[0]


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _coords(entry: Any, what: str, min_len: int = 2) -> List[Any]:
    if not isinstance(entry, (list, tuple)) or len(entry) < min_len:
        raise LevelFormatError(f"{what}: expected a list of at least {min_len} values, got {entry!r}")
    if not (_is_int(entry[0]) and _is_int(entry[1])):
        raise LevelFormatError(f"{what}: coordinates must be integers, got {entry!r}")
    return list(entry)


def _entries(doc: Dict[str, Any], key: str) -> List[Any]:
    raw = doc.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise LevelFormatError(f"{key} must be a list")
    return raw


def build_level(doc: Any, logger: Optional[logging.Logger] = None, name: Optional[str] = None) -> LevelState:
    """Build a fresh LevelState from a decoded level document.

    Doors start closed and plates start empty. A missing or malformed
    ``EndPlates`` entry is logged and the level is built without a goal
    plate; such a level can never be completed.

    Raises:
        LevelFormatError: if the document is not a level description.
    """
    log = logger or module_logger
    if not isinstance(doc, dict):
        raise LevelFormatError('level document must be an object')

    size = doc.get('Size')
    if (not isinstance(size, (list, tuple)) or len(size) != 2
            or not all(_is_int(v) and v > 0 for v in size)):
        raise LevelFormatError(f"Size must be two positive integers, got {size!r}")
    width, height = size

    walls = frozenset(
        Wall(*_coords(entry, 'Walls')[:2]) for entry in _entries(doc, 'Walls')
    )

    doors = []
    for entry in _entries(doc, 'Doors'):
        x, y, *rest = _coords(entry, 'Doors')
        doors.append(Door(x=x, y=y, color=color_from_id(rest[0] if rest else None)))

    plates = []
    end_plate = doc.get('EndPlates')
    if (isinstance(end_plate, (list, tuple)) and len(end_plate) == 2
            and all(_is_int(v) for v in end_plate)):
        gx, gy = end_plate
        plates.append(Plate(x=gx, y=gy, color=Color.GOLD, shape=Shape.CIRCLE, kind=PlateKind.GOAL))
    else:
        log.warning(f"[level-warn] level={name or '?'} EndPlates missing or invalid; no goal plate, level cannot be completed")

    for entry in _entries(doc, 'PressurePlates'):
        x, y, *rest = _coords(entry, 'PressurePlates')
        plates.append(Plate(
            x=x, y=y,
            color=color_from_id(rest[0] if rest else None),
            shape=Shape.SQUARE,
            kind=PlateKind.PRESSURE,
        ))

    starts = doc.get('PlayersStart')
    if not isinstance(starts, (list, tuple)) or len(starts) != 2:
        raise LevelFormatError('PlayersStart must hold exactly two coordinates')
    players = []
    for slot, entry in enumerate(starts):
        x, y = _coords(entry, 'PlayersStart')[:2]
        if not (0 <= x < width and 0 <= y < height):
            raise LevelFormatError(f"player {slot} starts outside the grid at ({x}, {y})")
        players.append(Player(slot=slot, x=x, y=y, color=PLAYER_COLORS[slot], shape=Shape.CIRCLE))

    return LevelState(
        width=width,
        height=height,
        walls=walls,
        doors=doors,
        plates=plates,
        players=(players[0], players[1]),
        name=name,
    )


def load_level_file(path: str, logger: Optional[logging.Logger] = None) -> LevelState:
    try:
        with open(path, 'r', encoding='utf-8') as fh:
            doc = json.load(fh)
    except (OSError, ValueError) as exc:
        raise LevelFormatError(f"cannot read level {path}: {exc}") from exc
    return build_level(doc, logger=logger, name=os.path.basename(path))


class LevelLibrary:
    """Ordered list of level documents on disk."""

    def __init__(self, paths: Sequence[str], logger: Optional[logging.Logger] = None):
        if not paths:
            raise ValueError('at least one level is required')
        self.paths = list(paths)
        self.logger = logger or module_logger

    @classmethod
    def from_config(cls, config, logger: Optional[logging.Logger] = None) -> 'LevelLibrary':
        level_dir = config.get('LEVEL_DIR')
        files = config.get('LEVEL_FILES') or []
        return cls([os.path.join(level_dir, name) for name in files], logger=logger)

    def __len__(self) -> int:
        return len(self.paths)

    def load(self, index: int) -> LevelState:
        if index < 0 or index >= len(self.paths):
            raise IndexError(f"invalid level index: {index}")
        return load_level_file(self.paths[index], logger=self.logger)
