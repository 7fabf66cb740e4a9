"""Robot state and the closed action vocabulary."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class Direction(IntEnum):
    NORTH = 0
    EAST = 1
    SOUTH = 2
    WEST = 3


class Action(str, Enum):
    MOVE_FORWARD = "MOVE_FORWARD"
    TURN_LEFT = "TURN_LEFT"
    TURN_RIGHT = "TURN_RIGHT"
    WAIT = "WAIT"
    SIGNAL_ON = "SIGNAL_ON"
    SIGNAL_OFF = "SIGNAL_OFF"


@dataclass(frozen=True)
class RobotState:
    """One robot on the board.

    ``alive`` only ever goes True -> False and ``reached_goal`` only ever
    goes False -> True.  A robot that is dead or saved is *non-blocking*:
    it stays in the robot list but no longer occupies its cell.
    """

    id: str
    x: int
    y: int
    direction: Direction
    alive: bool = True
    reached_goal: bool = False

    @property
    def is_blocking(self) -> bool:
        return self.alive and not self.reached_goal

    @property
    def status(self) -> str:
        """Coarse status used by traces: ``saved``, ``dead`` or ``alive``."""
        if self.reached_goal:
            return "saved"
        if not self.alive:
            return "dead"
        return "alive"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "direction": int(self.direction),
            "alive": self.alive,
            "reached_goal": self.reached_goal,
        }


def create_robot(x: int, y: int, direction: Direction | int,
                 robot_id: str = "robot-1") -> RobotState:
    return RobotState(id=robot_id, x=x, y=y, direction=Direction(direction))
