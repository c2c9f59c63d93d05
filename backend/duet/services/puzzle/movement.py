import logging
from enum import Enum
from typing import Optional, Set

from duet.models import Color, LevelState


module_logger = logging.getLogger(__name__)


class IllegalMove(Exception):
    """Target cell cannot be entered."""


class Direction(Enum):
    UP = (0, -1)
    DOWN = (0, 1)
    LEFT = (-1, 0)
    RIGHT = (1, 0)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]

    @classmethod
    def from_delta(cls, dx: int, dy: int) -> 'Direction':
        return cls((dx, dy))


class MovementEngine:
    """Applies unit moves to the LevelState it is bound to.

    Plates are entered and left at the two fixed points of an accepted
    move, and door state is recomputed from plate activation after every
    accepted move.
    """

    def __init__(self, state: LevelState, logger: Optional[logging.Logger] = None):
        self.state = state
        self.logger = logger or module_logger

    def apply_move(self, player_index: int, direction: Direction) -> bool:
        """Move one player by one cell. Returns True iff the move was applied."""
        try:
            tx, ty = self._check_target(player_index, direction)
        except IllegalMove as exc:
            self.logger.debug(f"[move-reject] player={player_index} dir={direction.name} reason={exc}")
            return False

        player = self.state.players[player_index]
        old_plate = self.state.plate_at(player.x, player.y)
        if old_plate:
            old_plate.leave()

        player.x, player.y = tx, ty

        new_plate = self.state.plate_at(tx, ty)
        if new_plate:
            new_plate.enter()

        self.sync_doors()
        return True

    def sync_doors(self) -> None:
        active_colors: Set[Color] = {p.color for p in self.state.plates if p.is_active}
        for door in self.state.doors:
            door.open = door.color in active_colors

    def _check_target(self, player_index: int, direction: Direction):
        if player_index not in (0, 1):
            raise IllegalMove(f"no player at index {player_index}")
        state = self.state
        player = state.players[player_index]
        other = state.players[1 - player_index]
        tx, ty = player.x + direction.dx, player.y + direction.dy

        if not state.in_bounds(tx, ty):
            raise IllegalMove('out of bounds')
        if state.is_wall(tx, ty):
            raise IllegalMove('wall')
        if state.is_closed_door(tx, ty):
            raise IllegalMove('closed door')

        goal = state.goal_plate
        onto_goal = goal is not None and goal.x == tx and goal.y == ty
        if not onto_goal and other.is_at(tx, ty):
            raise IllegalMove('occupied')
        return tx, ty
