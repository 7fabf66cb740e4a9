"""Unit tests for condition evaluation."""
from __future__ import annotations

import pytest

from lembots.program.conditions import VmContext, evaluate_condition
from lembots.program.nodes import And, ConditionKind, Not, Or, Primitive
from lembots.simulation.robot import Direction, create_robot
from lembots.simulation.world import create_world

pytestmark = pytest.mark.unit

# robot at (2, 2) facing east:
#   ahead (3, 2) = door, left (2, 1) = wall, right (2, 3) = hazard
GRID = [
    [1, 1, 1, 1, 1],
    [1, 0, 1, 0, 1],
    [1, 0, 4, 5, 1],
    [1, 0, 3, 0, 1],
    [1, 1, 1, 1, 1],
]


def _make_ctx(x=2, y=2, direction=Direction.EAST, **kwargs):
    return VmContext(world=create_world(GRID), robot=create_robot(x, y, direction), **kwargs)


def _check(kind, ctx):
    return evaluate_condition(Primitive(kind), ctx)


class TestPrimitives:
    def test_closed_door_is_not_clear(self):
        assert not _check(ConditionKind.PATH_AHEAD_CLEAR, _make_ctx())

    def test_open_door_is_clear(self):
        assert _check(ConditionKind.PATH_AHEAD_CLEAR, _make_ctx(door_open=True))

    def test_wall_and_hazard_are_not_clear(self):
        ctx = _make_ctx()
        assert not _check(ConditionKind.LEFT_CLEAR, ctx)
        assert not _check(ConditionKind.RIGHT_CLEAR, ctx)

    def test_clear_when_open(self):
        ctx = _make_ctx(x=1, y=2, direction=Direction.SOUTH)
        assert _check(ConditionKind.PATH_AHEAD_CLEAR, ctx)
        assert not _check(ConditionKind.RIGHT_CLEAR, ctx)
        assert _check(ConditionKind.LEFT_CLEAR, ctx)

    def test_wall_sides(self):
        ctx = _make_ctx()
        assert _check(ConditionKind.WALL_LEFT, ctx)
        assert not _check(ConditionKind.WALL_RIGHT, ctx)

    def test_hazard_sides(self):
        ctx = _make_ctx()
        assert _check(ConditionKind.HAZARD_RIGHT, ctx)
        assert not _check(ConditionKind.HAZARD_LEFT, ctx)
        assert not _check(ConditionKind.HAZARD_AHEAD, ctx)
        assert _check(ConditionKind.HAZARD_AHEAD, _make_ctx(direction=Direction.SOUTH))

    def test_on_plate(self):
        assert _check(ConditionKind.ON_PRESSURE_PLATE, _make_ctx())
        assert not _check(ConditionKind.ON_PRESSURE_PLATE, _make_ctx(x=1))

    def test_on_goal_uses_explicit_exits(self):
        assert _check(ConditionKind.ON_GOAL, _make_ctx(exits=((2, 2),)))
        assert not _check(ConditionKind.ON_GOAL, _make_ctx(exits=((1, 1),)))

    def test_global_signal(self):
        assert _check(ConditionKind.GLOBAL_SIGNAL_ON, _make_ctx(global_signal=True))
        assert not _check(ConditionKind.GLOBAL_SIGNAL_ON, _make_ctx())

    def test_on_raft(self):
        ctx = VmContext(world=create_world([[7, 0]]), robot=create_robot(0, 0, Direction.EAST))
        assert _check(ConditionKind.ON_RAFT, ctx)


class TestComposition:
    def test_not_and_or(self):
        ctx = _make_ctx()
        wall_left = Primitive(ConditionKind.WALL_LEFT)
        signal = Primitive(ConditionKind.GLOBAL_SIGNAL_ON)
        assert not evaluate_condition(Not(wall_left), ctx)
        assert not evaluate_condition(And(wall_left, signal), ctx)
        assert evaluate_condition(Or(signal, wall_left), ctx)
        assert evaluate_condition(Not(And(wall_left, Not(wall_left))), ctx)
