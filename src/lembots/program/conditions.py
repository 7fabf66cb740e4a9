"""Condition evaluation against a read-only per-tick context."""

from __future__ import annotations

from dataclasses import dataclass

from ..simulation.engine import is_exit
from ..simulation.robot import RobotState
from ..simulation.rules import forward_position, relative_direction
from ..simulation.world import World, is_door, is_lethal, is_pressure_plate, is_raft, is_wall
from .nodes import And, Condition, ConditionKind, Not, Or, Primitive


@dataclass(frozen=True)
class VmContext:
    """What a robot's program may look at during one tick."""

    world: World
    robot: RobotState
    exits: tuple[tuple[int, int], ...] = ()
    door_open: bool = False
    global_signal: bool = False


def _neighbour(ctx: VmContext, side: str) -> tuple[int, int]:
    r = ctx.robot
    return forward_position(r.x, r.y, relative_direction(r.direction, side))


def _is_clear(ctx: VmContext, side: str) -> bool:
    x, y = _neighbour(ctx, side)
    world = ctx.world
    if is_wall(world, x, y) or is_lethal(world, x, y):
        return False
    return not (is_door(world, x, y) and not ctx.door_open)


def _evaluate_primitive(kind: ConditionKind, ctx: VmContext) -> bool:
    robot, world = ctx.robot, ctx.world
    if kind == ConditionKind.PATH_AHEAD_CLEAR:
        return _is_clear(ctx, "ahead")
    if kind == ConditionKind.LEFT_CLEAR:
        return _is_clear(ctx, "left")
    if kind == ConditionKind.RIGHT_CLEAR:
        return _is_clear(ctx, "right")
    if kind == ConditionKind.ON_GOAL:
        return is_exit(world, ctx.exits, robot.x, robot.y)
    if kind == ConditionKind.ON_PRESSURE_PLATE:
        return is_pressure_plate(world, robot.x, robot.y)
    if kind == ConditionKind.HAZARD_AHEAD:
        return is_lethal(world, *_neighbour(ctx, "ahead"))
    if kind == ConditionKind.HAZARD_LEFT:
        return is_lethal(world, *_neighbour(ctx, "left"))
    if kind == ConditionKind.HAZARD_RIGHT:
        return is_lethal(world, *_neighbour(ctx, "right"))
    if kind == ConditionKind.WALL_LEFT:
        return is_wall(world, *_neighbour(ctx, "left"))
    if kind == ConditionKind.WALL_RIGHT:
        return is_wall(world, *_neighbour(ctx, "right"))
    if kind == ConditionKind.GLOBAL_SIGNAL_ON:
        return ctx.global_signal
    if kind == ConditionKind.ON_RAFT:
        return is_raft(world, robot.x, robot.y)
    raise ValueError(f"Unsupported condition kind: {kind!r}")


def evaluate_condition(condition: Condition, ctx: VmContext) -> bool:
    """Pure function of the condition tree and the context."""
    if isinstance(condition, Primitive):
        return _evaluate_primitive(condition.kind, ctx)
    if isinstance(condition, Not):
        return not evaluate_condition(condition.operand, ctx)
    if isinstance(condition, And):
        return evaluate_condition(condition.left, ctx) and evaluate_condition(condition.right, ctx)
    if isinstance(condition, Or):
        return evaluate_condition(condition.left, ctx) or evaluate_condition(condition.right, ctx)
    raise ValueError(f"Unsupported condition: {condition!r}")
