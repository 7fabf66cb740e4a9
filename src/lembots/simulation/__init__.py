"""Tile grid, robots, devices and the tick engine."""
from .engine import (
    SimulationState,
    SimulationStatus,
    Spawner,
    create_simulation,
    effective_exits,
    is_door_open,
    is_plate_pressed,
    step_simulation,
    tick,
)
from .level import LevelDefinition, LevelError, builtin_levels, create_simulation_for_level, load_level, parse_direction
from .outcome import FailureCause, failure_cause
from .rafts import RaftState
from .replay import ReplayRecorder, replay
from .robot import Action, Direction, RobotState, create_robot
from .rules import apply_action, forward_position, turn_left, turn_right
from .world import TileType, World, create_world

__all__ = [
    "Action",
    "Direction",
    "FailureCause",
    "LevelDefinition",
    "LevelError",
    "RaftState",
    "ReplayRecorder",
    "RobotState",
    "SimulationState",
    "SimulationStatus",
    "Spawner",
    "TileType",
    "World",
    "apply_action",
    "builtin_levels",
    "create_robot",
    "create_simulation",
    "create_simulation_for_level",
    "create_world",
    "effective_exits",
    "failure_cause",
    "forward_position",
    "is_door_open",
    "is_plate_pressed",
    "load_level",
    "parse_direction",
    "replay",
    "step_simulation",
    "tick",
    "turn_left",
    "turn_right",
]
