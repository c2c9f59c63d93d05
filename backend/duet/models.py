from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, FrozenSet


class Color(str, Enum):
    RED = 'red'
    BLUE = 'blue'
    GREEN = 'green'
    PURPLE = 'purple'
    CYAN = 'cyan'
    YELLOW = 'yellow'
    # Goal plate only; no color id maps to it
    GOLD = 'gold'


class Shape(str, Enum):
    CIRCLE = 'circle'
    SQUARE = 'square'


class PlateKind(str, Enum):
    GOAL = 'goal'
    PRESSURE = 'pressure'

    @property
    def threshold(self) -> int:
        return 2 if self is PlateKind.GOAL else 1


def recompute_active(occupancy: int, kind: PlateKind) -> bool:
    return occupancy >= kind.threshold


@dataclass(frozen=True, order=True)
class Wall:
    x: int
    y: int

    def to_dict(self):
        return {'x': self.x, 'y': self.y}


@dataclass
class Door:
    x: int
    y: int
    color: Color
    open: bool = False

    def to_dict(self):
        return {
            'x': self.x,
            'y': self.y,
            'color': self.color.value,
            'open': self.open,
        }


@dataclass
class Plate:
    x: int
    y: int
    color: Color
    shape: Shape
    kind: PlateKind
    occupancy: int = 0
    is_active: bool = False

    def enter(self) -> None:
        self.occupancy += 1
        self.is_active = recompute_active(self.occupancy, self.kind)

    def leave(self) -> None:
        self.occupancy = max(0, self.occupancy - 1)
        self.is_active = recompute_active(self.occupancy, self.kind)

    def to_dict(self):
        return {
            'x': self.x,
            'y': self.y,
            'color': self.color.value,
            'shape': self.shape.value,
            'kind': self.kind.value,
            'isActive': self.is_active,
        }


@dataclass
class Player:
    slot: int
    x: int
    y: int
    color: Color
    shape: Shape = Shape.CIRCLE

    def is_at(self, x: int, y: int) -> bool:
        return self.x == x and self.y == y

    def to_dict(self):
        return {
            'slot': self.slot,
            'x': self.x,
            'y': self.y,
            'color': self.color.value,
            'shape': self.shape.value,
        }


@dataclass
class LevelState:
    width: int
    height: int
    walls: FrozenSet[Wall]
    doors: List[Door]
    plates: List[Plate]
    players: Tuple[Player, Player]
    name: Optional[str] = field(default=None, compare=False)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def is_wall(self, x: int, y: int) -> bool:
        return Wall(x, y) in self.walls

    def is_closed_door(self, x: int, y: int) -> bool:
        return any(d.x == x and d.y == y and not d.open for d in self.doors)

    def plate_at(self, x: int, y: int) -> Optional[Plate]:
        for plate in self.plates:
            if plate.x == x and plate.y == y:
                return plate
        return None

    @property
    def goal_plate(self) -> Optional[Plate]:
        for plate in self.plates:
            if plate.kind is PlateKind.GOAL:
                return plate
        return None

    @property
    def is_completed(self) -> bool:
        goal = self.goal_plate
        return bool(goal and goal.is_active)

    def to_dict(self):
        """Flattened, value-only snapshot of the level."""
        return {
            'width': self.width,
            'height': self.height,
            'walls': [w.to_dict() for w in sorted(self.walls)],
            'doors': [d.to_dict() for d in self.doors],
            'plates': [p.to_dict() for p in self.plates],
            'players': [p.to_dict() for p in self.players],
        }
