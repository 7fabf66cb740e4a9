"""Movement rules for a single robot.

These are the per-robot primitives the engine composes.  Collision with
other robots is *not* handled here; the engine owns occupancy and only
calls ``apply_action`` for a move once the destination is known to be free.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional

from .robot import Action, Direction, RobotState
from .world import World, is_lethal, is_wall

# (dx, dy) per Direction; y grows southward
_OFFSETS: dict[Direction, tuple[int, int]] = {
    Direction.NORTH: (0, -1),
    Direction.EAST: (1, 0),
    Direction.SOUTH: (0, 1),
    Direction.WEST: (-1, 0),
}

BlockedFn = Callable[[int, int], bool]


def turn_left(direction: Direction) -> Direction:
    return Direction((direction + 3) % 4)


def turn_right(direction: Direction) -> Direction:
    return Direction((direction + 1) % 4)


def relative_direction(direction: Direction, side: str) -> Direction:
    """Resolve ``"ahead"``, ``"left"`` or ``"right"`` against a heading."""
    if side == "left":
        return turn_left(direction)
    if side == "right":
        return turn_right(direction)
    return direction


def forward_position(x: int, y: int, direction: Direction) -> tuple[int, int]:
    dx, dy = _OFFSETS[Direction(direction)]
    return x + dx, y + dy


def apply_action(
    world: World,
    robot: RobotState,
    action: Action,
    is_blocked: Optional[BlockedFn] = None,
) -> RobotState:
    """Apply one action to one robot, ignoring other robots.

    ``is_blocked`` decides which cells a move may not enter; it defaults to
    walls only.  Non-blocking robots (dead or saved) are returned unchanged.
    Signal actions have no per-robot effect.
    """
    if not robot.is_blocking:
        return robot

    if action == Action.TURN_LEFT:
        return replace(robot, direction=turn_left(robot.direction))
    if action == Action.TURN_RIGHT:
        return replace(robot, direction=turn_right(robot.direction))
    if action != Action.MOVE_FORWARD:
        return robot

    blocked = is_blocked or (lambda x, y: is_wall(world, x, y))
    nx, ny = forward_position(robot.x, robot.y, robot.direction)
    if blocked(nx, ny):
        return robot

    moved = replace(robot, x=nx, y=ny)
    if is_lethal(world, nx, ny):
        moved = replace(moved, alive=False)
    return moved
