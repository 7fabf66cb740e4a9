"""Evaluator — run one program through a level and score the run.

Architecture
------------
``evaluate(program, level, options)`` owns a single simulation and one VM
per robot (created the first time the robot is seen, kept for its
lifetime).  Each tick it asks every blocking robot's VM for one action,
steps the engine, folds milestones into a monotonic ``EventSummary``, and
scores the tick.

Score for a tick:

    saved * 1000
    + door opened 50 + plate pressed 25 + raft used 50 + water touched 10
    + 5000 if won
    + max(0, 100 - Manhattan distance from the nearest living robot to
      the nearest exit)

The result keeps the *best* score seen and the robot snapshot at that
tick; a run can peak and then regress (a robot walks past the exit and
into a hazard), and the peak is what the solver should climb on.

Termination: the engine's own limits end every run.  If no robot produced
an action this tick, no spawns are pending and no raft is still sailing
(carrying a rider or heading back to its last stop), nothing can change
any more and the run is marked lost without stepping.  A VM that hits its step
limit simply stops issuing actions for its robot.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Optional

from ..program.conditions import VmContext
from ..program.nodes import Sequence
from ..program.vm import VmState, VmStatus, create_vm, step_vm
from ..simulation.engine import (
    SimulationState,
    SimulationStatus,
    effective_exits,
    is_door_open,
    is_plate_pressed,
    step_simulation,
)
from ..simulation.level import LevelDefinition, create_simulation_for_level
from ..simulation.robot import Action, RobotState
from ..simulation.world import is_raft, is_water

if TYPE_CHECKING:
    from ..config import Settings

DEFAULT_SAMPLE_EVERY = 5

SAVED_POINTS = 1000
WIN_BONUS = 5000
DOOR_BONUS = 50
PLATE_BONUS = 25
RAFT_BONUS = 50
WATER_BONUS = 10
DISTANCE_CEILING = 100


@dataclass(frozen=True)
class EvalOptions:
    max_ticks: Optional[int] = None       # used when the level has no maxTicks
    max_vm_steps: Optional[int] = None    # defaults to the simulation's max steps
    sample_every: int = DEFAULT_SAMPLE_EVERY

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> EvalOptions:
        options = cls(max_ticks=settings.default_max_ticks,
                      sample_every=settings.trace_sample_every)
        return replace(options, **{k: v for k, v in overrides.items() if v is not None})


@dataclass(frozen=True)
class EventSummary:
    door_opened: bool = False
    pressure_plate_pressed: bool = False
    raft_used: bool = False
    water_touched: bool = False
    any_saved: bool = False

    def merge(self, sim: SimulationState) -> EventSummary:
        """Fold this tick's observations in.  Flags never reset."""
        world, robots = sim.world, sim.robots
        return EventSummary(
            door_opened=self.door_opened or is_door_open(world, robots, sim.door_unlocked),
            pressure_plate_pressed=self.pressure_plate_pressed or is_plate_pressed(world, robots),
            raft_used=self.raft_used or any(
                r.is_blocking and is_raft(world, r.x, r.y) for r in robots),
            water_touched=self.water_touched or any(
                not r.reached_goal and is_water(world, r.x, r.y) for r in robots),
            any_saved=self.any_saved or sim.saved_count > 0,
        )

    def to_dict(self) -> dict[str, bool]:
        return {
            "door_opened": self.door_opened,
            "pressure_plate_pressed": self.pressure_plate_pressed,
            "raft_used": self.raft_used,
            "water_touched": self.water_touched,
            "any_saved": self.any_saved,
        }


@dataclass(frozen=True)
class TraceLiteFrame:
    id: str
    x: int
    y: int
    dir: int
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "x": self.x, "y": self.y, "dir": self.dir, "status": self.status}


@dataclass
class TraceLite:
    """Downsampled per-robot snapshots for cheap previews."""

    sample_every: int
    frames: list[list[TraceLiteFrame]] = field(default_factory=list)

    def capture(self, robots: tuple[RobotState, ...]) -> None:
        self.frames.append([
            TraceLiteFrame(id=r.id, x=r.x, y=r.y, dir=int(r.direction), status=r.status)
            for r in robots
        ])

    def to_dict(self) -> dict[str, Any]:
        return {
            "sample_every": self.sample_every,
            "frames": [[f.to_dict() for f in frame] for frame in self.frames],
        }


@dataclass
class EvalResult:
    solved: bool
    score: int
    ticks: int
    final_robots: list[RobotState]
    best_robots: list[RobotState]
    events: EventSummary
    trace_lite: TraceLite
    status: SimulationStatus = SimulationStatus.LOST
    step_limit_hit: bool = False
    final_state: Optional[SimulationState] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "solved": self.solved,
            "score": self.score,
            "ticks": self.ticks,
            "status": self.status.value,
            "step_limit_hit": self.step_limit_hit,
            "final_robots": [r.to_dict() for r in self.final_robots],
            "best_robots": [r.to_dict() for r in self.best_robots],
            "events": self.events.to_dict(),
            "trace_lite": self.trace_lite.to_dict(),
        }


def compute_score(sim: SimulationState, events: EventSummary) -> int:
    score = sim.saved_count * SAVED_POINTS
    if events.door_opened:
        score += DOOR_BONUS
    if events.pressure_plate_pressed:
        score += PLATE_BONUS
    if events.raft_used:
        score += RAFT_BONUS
    if events.water_touched:
        score += WATER_BONUS
    if sim.status == SimulationStatus.WON:
        score += WIN_BONUS

    exits = effective_exits(sim.world, sim.exits)
    distances = [
        abs(ex - r.x) + abs(ey - r.y)
        for r in sim.robots if r.alive
        for ex, ey in exits
    ]
    if distances:
        score += max(0, DISTANCE_CEILING - min(distances))
    return score


def _collect_actions(
    sim: SimulationState,
    program: Sequence,
    vms: dict[str, VmState],
    max_vm_steps: int,
) -> tuple[list[Optional[Action]], bool]:
    """One action per robot, in robot order.  Returns (actions, any_step_limit)."""
    door_open = is_door_open(sim.world, sim.robots, sim.door_unlocked)
    actions: list[Optional[Action]] = []
    step_limited = False
    for robot in sim.robots:
        vm = vms.get(robot.id)
        if vm is None:
            vm = create_vm(program, max_vm_steps)
        if not robot.is_blocking or vm.status != VmStatus.RUNNING:
            vms[robot.id] = vm
            actions.append(None)
            continue
        ctx = VmContext(
            world=sim.world,
            robot=robot,
            exits=sim.exits,
            door_open=door_open,
            global_signal=sim.global_signal,
        )
        vm, action = step_vm(vm, ctx)
        vms[robot.id] = vm
        actions.append(action)
        if vm.status == VmStatus.STEP_LIMIT:
            step_limited = True
    return actions, step_limited


def _rafts_in_motion(sim: SimulationState) -> bool:
    """True while a ferry can still move on its own: it has a rider or a return trip."""
    for raft in sim.raft_states:
        if len(raft.route) < 2:
            continue
        if raft.return_index is not None and raft.return_index != raft.dock_index:
            return True
        if any(r.is_blocking and (r.x, r.y) == (raft.x, raft.y) for r in sim.robots):
            return True
    return False


def evaluate(
    program: Sequence,
    level: LevelDefinition,
    options: Optional[EvalOptions] = None,
) -> EvalResult:
    """Run ``program`` on every robot of ``level`` until the run ends."""
    options = options or EvalOptions()
    sample_every = max(1, options.sample_every)
    if options.max_ticks is not None:
        sim = create_simulation_for_level(level, default_max_ticks=options.max_ticks)
    else:
        sim = create_simulation_for_level(level)
    max_vm_steps = options.max_vm_steps if options.max_vm_steps is not None else sim.max_steps

    vms: dict[str, VmState] = {}
    trace = TraceLite(sample_every=sample_every)
    trace.capture(sim.robots)

    events = EventSummary().merge(sim)
    best_score = compute_score(sim, events)
    best_robots = list(sim.robots)
    step_limit_hit = False
    tick_index = 0

    while sim.status == SimulationStatus.RUNNING:
        actions, limited = _collect_actions(sim, program, vms, max_vm_steps)
        step_limit_hit = step_limit_hit or limited

        if (any(a is not None for a in actions) or sim.remaining_spawns > 0
                or _rafts_in_motion(sim)):
            sim = step_simulation(sim, actions)
        else:
            sim = replace(sim, status=SimulationStatus.LOST)

        events = events.merge(sim)
        score = compute_score(sim, events)
        if score > best_score:
            best_score = score
            best_robots = list(sim.robots)

        tick_index += 1
        if tick_index % sample_every == 0:
            trace.capture(sim.robots)

    if tick_index % sample_every != 0:
        trace.capture(sim.robots)

    return EvalResult(
        solved=sim.status == SimulationStatus.WON,
        score=best_score,
        ticks=sim.step_count,
        final_robots=list(sim.robots),
        best_robots=best_robots,
        events=events,
        trace_lite=trace,
        status=sim.status,
        step_limit_hit=step_limit_hit,
        final_state=sim,
    )
