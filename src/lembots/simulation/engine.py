"""Simulation engine — the deterministic tick function.

Architecture
------------
``SimulationState`` is a frozen value.  ``step_simulation(state, actions)``
returns the next state and never touches its input, so a caller can keep
every tick for replay or diffing.  The engine has no clock, no threads and
no randomness: identical (state, actions) pairs always produce identical
successors.

Per tick, in order:

  1. Snapshot blocking occupancy (alive robots not yet at an exit).
  2. Interval spawner: if the scheduled tick has arrived and the entry cell
     is free, append one robot; otherwise the spawn waits a tick.
  3. Resolve one action per robot in robot-list order.  Each robot leaves
     the occupancy set before acting and re-enters it afterwards, and the
     set is live: a robot that moves out frees its cell for robots later in
     the list, so a queue of robots advances together in one tick.
  4. Devices: a pressed plate latches ``door_unlocked`` for the rest of the
     run.  Doors are passable while unlocked or while a plate is held.
  5. Raft ferries carry riders (see ``rafts.py``).
  6. Terminal status: won on quota, lost on step limit or when no robot is
     active and no spawns remain.

``actions[i]`` belongs to ``robots[i]`` of the *post-spawn* robot list; a
missing entry or ``None`` means the robot does nothing this tick.  Illegal
moves are absorbed silently.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Sequence

from .rafts import RaftState, initialize_rafts, move_rafts
from .robot import Action, Direction, RobotState
from .rules import apply_action, forward_position
from .world import (
    TileType,
    World,
    is_door,
    is_goal,
    is_pressure_plate,
    is_wall,
    positions_of,
)

Position = tuple[int, int]

DEFAULT_MAX_STEPS = 200


class SimulationStatus(str, Enum):
    RUNNING = "running"
    WON = "won"
    LOST = "lost"


@dataclass(frozen=True)
class Spawner:
    """Where and how often robots enter the level.

    ``interval_ticks == 0`` spawns all ``count`` robots at tick 0.  With a
    positive interval the first robot appears at tick 0 and each further
    robot at the next scheduled tick whose entry cell is free.  ``starts``
    optionally overrides the pose of robot *i*.
    """

    x: int
    y: int
    direction: Direction
    count: int = 1
    interval_ticks: int = 0
    starts: tuple[tuple[int, int, Direction], ...] = ()

    def pose_for(self, index: int) -> tuple[int, int, Direction]:
        if index < len(self.starts):
            return self.starts[index]
        return self.x, self.y, self.direction

    def to_dict(self) -> dict:
        data = {
            "x": self.x,
            "y": self.y,
            "dir": int(self.direction),
            "count": self.count,
            "intervalTicks": self.interval_ticks,
        }
        if self.starts:
            data["starts"] = [{"x": x, "y": y, "dir": int(d)} for x, y, d in self.starts]
        return data


@dataclass(frozen=True)
class SimulationState:
    world: World
    robots: tuple[RobotState, ...]
    spawner: Spawner
    exits: tuple[Position, ...] = ()
    status: SimulationStatus = SimulationStatus.RUNNING
    step_count: int = 0
    max_steps: int = DEFAULT_MAX_STEPS
    required_saved: int = 1
    spawned_count: int = 0
    next_spawn_tick: Optional[int] = None
    door_unlocked: bool = False
    global_signal: bool = False
    raft_states: tuple[RaftState, ...] = ()
    jetty_positions: frozenset[Position] = field(default_factory=frozenset)

    @property
    def saved_count(self) -> int:
        return sum(1 for r in self.robots if r.reached_goal)

    @property
    def dead_count(self) -> int:
        return sum(1 for r in self.robots if not r.alive)

    @property
    def active_count(self) -> int:
        return sum(1 for r in self.robots if r.is_blocking)

    @property
    def remaining_spawns(self) -> int:
        return max(self.spawner.count - self.spawned_count, 0)

    def to_dict(self) -> dict:
        return {
            "grid": self.world.to_ids(),
            "robots": [r.to_dict() for r in self.robots],
            "spawner": self.spawner.to_dict(),
            "exits": [{"x": x, "y": y} for x, y in self.exits],
            "status": self.status.value,
            "step_count": self.step_count,
            "max_steps": self.max_steps,
            "required_saved": self.required_saved,
            "saved_count": self.saved_count,
            "spawned_count": self.spawned_count,
            "next_spawn_tick": self.next_spawn_tick,
            "door_unlocked": self.door_unlocked,
            "global_signal": self.global_signal,
            "rafts": [r.to_dict() for r in self.raft_states],
        }


# -- Queries -----------------------------------------------------------------

def is_exit(world: World, exits: Sequence[Position], x: int, y: int) -> bool:
    """Explicit exits win; with none listed, every Goal tile is an exit."""
    if exits:
        return (x, y) in exits
    return is_goal(world, x, y)


def effective_exits(world: World, exits: Sequence[Position]) -> list[Position]:
    if exits:
        return list(exits)
    return positions_of(world, TileType.GOAL)


def is_plate_pressed(world: World, robots: Sequence[RobotState]) -> bool:
    return any(r.is_blocking and is_pressure_plate(world, r.x, r.y) for r in robots)


def is_door_open(world: World, robots: Sequence[RobotState], door_unlocked: bool = False) -> bool:
    return door_unlocked or is_plate_pressed(world, robots)


def _occupancy(robots: Sequence[RobotState]) -> set[Position]:
    return {(r.x, r.y) for r in robots if r.is_blocking}


def _mark_exit(world: World, exits: Sequence[Position], robot: RobotState) -> RobotState:
    if robot.reached_goal or not robot.alive:
        return robot
    if is_exit(world, exits, robot.x, robot.y):
        return replace(robot, reached_goal=True)
    return robot


def _spawn_robot(spawner: Spawner, index: int) -> RobotState:
    x, y, direction = spawner.pose_for(index)
    return RobotState(id=f"robot-{index + 1}", x=x, y=y, direction=Direction(direction))


# -- Construction ------------------------------------------------------------

def create_simulation(
    world: World,
    spawner: Spawner,
    exits: Sequence[Position] = (),
    max_steps: int = DEFAULT_MAX_STEPS,
    required_saved: int = 1,
) -> SimulationState:
    """Build the tick-0 state: initial spawns, rafts, and the initial status."""
    exits = tuple(exits)
    if spawner.count <= 0:
        robots: list[RobotState] = []
        spawned, next_tick = 0, None
    elif spawner.interval_ticks <= 0:
        robots = [_spawn_robot(spawner, i) for i in range(spawner.count)]
        spawned, next_tick = spawner.count, None
    else:
        robots = [_spawn_robot(spawner, 0)]
        spawned, next_tick = 1, spawner.interval_ticks

    robots = [_mark_exit(world, exits, r) for r in robots]
    jetties = positions_of(world, TileType.JETTY)
    state = SimulationState(
        world=world,
        robots=tuple(robots),
        spawner=spawner,
        exits=exits,
        max_steps=max_steps,
        required_saved=required_saved,
        spawned_count=spawned,
        next_spawn_tick=next_tick,
        door_unlocked=is_plate_pressed(world, robots),
        raft_states=initialize_rafts(world, jetties),
        jetty_positions=frozenset(jetties),
    )
    if state.saved_count >= required_saved:
        state = replace(state, status=SimulationStatus.WON)
    return state


# -- Tick --------------------------------------------------------------------

def _spawn_next(state: SimulationState, occupied: set[Position]) -> tuple[list[RobotState], int, Optional[int]]:
    robots = list(state.robots)
    spawner = state.spawner
    spawned, next_tick = state.spawned_count, state.next_spawn_tick

    if spawned >= spawner.count or spawner.interval_ticks <= 0:
        return robots, spawned, next_tick
    if next_tick is None or state.step_count < next_tick:
        return robots, spawned, next_tick

    x, y, _ = spawner.pose_for(spawned)
    if (x, y) in occupied:
        # entry blocked: keep the schedule, retry next tick
        return robots, spawned, next_tick

    robots.append(_spawn_robot(spawner, spawned))
    return robots, spawned + 1, next_tick + spawner.interval_ticks


def step_simulation(
    state: SimulationState,
    actions: Sequence[Optional[Action]],
) -> SimulationState:
    """Advance one tick.  A no-op unless the simulation is running."""
    if state.status != SimulationStatus.RUNNING:
        return state

    world, exits = state.world, state.exits
    robots, spawned, next_tick = _spawn_next(state, _occupancy(state.robots))

    occupied = _occupancy(robots)
    plate_pressed = is_plate_pressed(world, robots)
    door_open = state.door_unlocked or plate_pressed
    global_signal = state.global_signal

    def is_blocked(x: int, y: int) -> bool:
        return is_wall(world, x, y) or (is_door(world, x, y) and not door_open)

    moved: list[RobotState] = []
    for index, robot in enumerate(robots):
        action = actions[index] if index < len(actions) else None
        if action is None:
            moved.append(_mark_exit(world, exits, robot))
            continue

        action = Action(action)
        if action == Action.SIGNAL_ON:
            global_signal = True
        elif action == Action.SIGNAL_OFF:
            global_signal = False

        if robot.is_blocking:
            occupied.discard((robot.x, robot.y))

        if action == Action.MOVE_FORWARD and robot.is_blocking:
            dest = forward_position(robot.x, robot.y, robot.direction)
            if dest in occupied or is_blocked(*dest):
                nxt = robot
            else:
                nxt = apply_action(world, robot, action, is_blocked)
        else:
            nxt = apply_action(world, robot, action, is_blocked)

        nxt = _mark_exit(world, exits, nxt)
        if nxt.is_blocking:
            occupied.add((nxt.x, nxt.y))
        moved.append(nxt)

    world, moved, rafts = move_rafts(world, moved, state.raft_states, state.jetty_positions)
    moved = [_mark_exit(world, exits, r) for r in moved]

    door_unlocked = state.door_unlocked or plate_pressed or is_plate_pressed(world, moved)
    step_count = state.step_count + 1
    saved = sum(1 for r in moved if r.reached_goal)
    has_active = any(r.is_blocking for r in moved)
    has_remaining = spawned < state.spawner.count

    if saved >= state.required_saved:
        status = SimulationStatus.WON
    elif step_count >= state.max_steps:
        status = SimulationStatus.LOST
    elif not has_active and not has_remaining:
        status = SimulationStatus.LOST
    else:
        status = SimulationStatus.RUNNING

    return replace(
        state,
        world=world,
        robots=tuple(moved),
        status=status,
        step_count=step_count,
        spawned_count=spawned,
        next_spawn_tick=next_tick,
        door_unlocked=door_unlocked,
        global_signal=global_signal,
        raft_states=rafts,
    )


# ``tick`` is the name the rest of the system uses for one engine step.
tick = step_simulation
