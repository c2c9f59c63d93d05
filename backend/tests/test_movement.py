import copy
import random

import pytest

from conftest import BASIC_LEVEL
from duet.models import Color, Plate, PlateKind, Shape, recompute_active
from duet.services.puzzle.levels import build_level
from duet.services.puzzle.movement import Direction, MovementEngine

UP, DOWN, LEFT, RIGHT = Direction.UP, Direction.DOWN, Direction.LEFT, Direction.RIGHT


def engine_for(doc):
    level = build_level(doc)
    engine = MovementEngine(level)
    engine.sync_doors()
    return level, engine


def assert_doors_follow_plates(level):
    for door in level.doors:
        expected = any(p.is_active for p in level.plates if p.color == door.color)
        assert door.open == expected


def test_valid_move_lands_on_target_cell():
    level, engine = engine_for(BASIC_LEVEL)
    assert engine.apply_move(0, RIGHT) is True
    assert (level.players[0].x, level.players[0].y) == (1, 0)
    assert engine.apply_move(0, RIGHT) is True
    assert engine.apply_move(0, DOWN) is True
    assert (level.players[0].x, level.players[0].y) == (2, 1)


@pytest.mark.parametrize('start, direction, why', [
    ((0, 0), UP, 'top edge'),
    ((0, 0), LEFT, 'left edge'),
    ((1, 0), DOWN, 'wall at (1, 1)'),
    ((4, 3), DOWN, 'closed red door at (4, 4)'),
    ((3, 0), RIGHT, 'other player at (4, 0)'),
])
def test_blocked_moves_change_nothing(start, direction, why):
    doc = dict(BASIC_LEVEL, PlayersStart=[list(start), [4, 0]])
    if start == (4, 3):
        doc['PlayersStart'] = [[4, 3], [0, 0]]
    level, engine = engine_for(doc)
    before = copy.deepcopy(level)
    assert engine.apply_move(0, direction) is False, why
    assert level == before


def test_rejection_is_idempotent():
    level, engine = engine_for(BASIC_LEVEL)
    before = copy.deepcopy(level)
    for _ in range(5):
        assert engine.apply_move(0, LEFT) is False
        assert level == before


def test_invalid_player_index_is_rejected():
    level, engine = engine_for(BASIC_LEVEL)
    before = copy.deepcopy(level)
    assert engine.apply_move(2, RIGHT) is False
    assert level == before


def test_occupied_red_plate_opens_red_door():
    doc = {
        'Size': [4, 4],
        'Walls': [],
        'Doors': [[3, 3, 0]],
        'PressurePlates': [[2, 2, 0]],
        'PlayersStart': [[0, 0], [3, 0]],
    }
    level, engine = engine_for(doc)
    door = level.doors[0]
    plate = level.plates[0]

    # Player 1 walks down the right column and is stopped by the closed door
    assert engine.apply_move(1, DOWN)
    assert engine.apply_move(1, DOWN)
    assert engine.apply_move(1, DOWN) is False
    assert not door.open

    for step in (RIGHT, RIGHT, DOWN, DOWN):
        assert engine.apply_move(0, step)
    assert (level.players[0].x, level.players[0].y) == (2, 2)
    assert plate.is_active
    assert door.open

    assert engine.apply_move(1, DOWN) is True
    assert (level.players[1].x, level.players[1].y) == (3, 3)


def test_leaving_plate_closes_door_again():
    doc = dict(BASIC_LEVEL, PlayersStart=[[0, 3], [4, 0]])
    level, engine = engine_for(doc)
    assert engine.apply_move(0, DOWN)
    assert level.doors[0].open
    assert engine.apply_move(0, UP)
    assert not level.doors[0].open
    assert level.plates[1].occupancy == 0


def test_any_plate_of_a_color_opens_all_doors_of_that_color():
    doc = {
        'Size': [5, 3],
        'Doors': [[4, 0, 1], [4, 2, 1], [2, 0, 2]],
        'PressurePlates': [[0, 1, 1], [3, 1, 1]],
        'EndPlates': [2, 2],
        'PlayersStart': [[0, 0], [2, 1]],
    }
    level, engine = engine_for(doc)
    assert engine.apply_move(1, RIGHT)  # onto (3, 1), second blue plate
    blue = [d for d in level.doors if d.color is Color.BLUE]
    green = [d for d in level.doors if d.color is Color.GREEN]
    assert all(d.open for d in blue)
    assert not any(d.open for d in green)
    assert engine.apply_move(0, DOWN)  # onto (0, 1), first blue plate
    assert engine.apply_move(1, LEFT)  # off the second one
    assert all(d.open for d in blue)
    assert_doors_follow_plates(level)


def test_goal_plate_needs_both_players():
    doc = {
        'Size': [4, 4],
        'EndPlates': [3, 3],
        'PlayersStart': [[3, 2], [2, 3]],
    }
    level, engine = engine_for(doc)
    goal = level.goal_plate
    assert engine.apply_move(0, DOWN)
    assert goal.occupancy == 1
    assert not goal.is_active
    assert not level.is_completed

    assert engine.apply_move(1, RIGHT)
    assert goal.occupancy == 2
    assert goal.is_active
    assert level.is_completed

    assert engine.apply_move(1, LEFT)
    assert goal.occupancy == 1
    assert not level.is_completed


def test_players_cannot_share_a_pressure_plate():
    doc = dict(BASIC_LEVEL, PlayersStart=[[0, 4], [0, 3]])
    level, engine = engine_for(doc)
    assert engine.apply_move(1, DOWN) is False
    assert level.plates[1].occupancy == 0


def test_doors_match_plates_after_every_accepted_move():
    doc = {
        'Size': [6, 6],
        'Walls': [[2, 2], [3, 3]],
        'Doors': [[5, 5, 0], [0, 5, 1], [5, 0, 0]],
        'PressurePlates': [[1, 1, 0], [4, 1, 1], [1, 4, 0]],
        'EndPlates': [3, 0],
        'PlayersStart': [[0, 0], [4, 4]],
    }
    level, engine = engine_for(doc)
    rng = random.Random(1234)
    accepted = 0
    for _ in range(400):
        index = rng.choice((0, 1))
        if engine.apply_move(index, rng.choice(list(Direction))):
            accepted += 1
            assert_doors_follow_plates(level)
        for plate in level.plates:
            assert plate.occupancy >= 0
            assert plate.is_active == recompute_active(plate.occupancy, plate.kind)
        for player in level.players:
            assert level.in_bounds(player.x, player.y)
    assert accepted > 0


def test_plate_thresholds_and_floor():
    assert recompute_active(1, PlateKind.PRESSURE)
    assert not recompute_active(0, PlateKind.PRESSURE)
    assert not recompute_active(1, PlateKind.GOAL)
    assert recompute_active(2, PlateKind.GOAL)

    plate = Plate(x=0, y=0, color=Color.RED, shape=Shape.SQUARE, kind=PlateKind.PRESSURE)
    plate.leave()
    assert plate.occupancy == 0
    assert not plate.is_active
    plate.enter()
    assert plate.is_active
