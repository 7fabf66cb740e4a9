"""Unit tests for failure-cause classification and replay."""
from __future__ import annotations

from dataclasses import replace

import pytest

from lembots.simulation.engine import SimulationStatus, Spawner, create_simulation, step_simulation
from lembots.simulation.outcome import FailureCause, failure_cause
from lembots.simulation.replay import ReplayRecorder, replay
from lembots.simulation.robot import Action, Direction
from lembots.simulation.world import create_world

pytestmark = pytest.mark.unit

M, W = Action.MOVE_FORWARD, Action.WAIT


def _make_sim(grid, exits=((0, 0),), max_steps=10, required_saved=1, count=1):
    spawner = Spawner(x=1, y=1, direction=Direction.EAST, count=count)
    return create_simulation(create_world(grid), spawner, exits=exits,
                             max_steps=max_steps, required_saved=required_saved)


OPEN = [[1, 1, 1, 1], [1, 0, 0, 1], [1, 1, 1, 1]]
HAZARD = [[1, 1, 1, 1], [1, 0, 3, 1], [1, 1, 1, 1]]


class TestFailureCause:
    def test_none_while_running_or_won(self):
        sim = _make_sim(OPEN)
        assert failure_cause(sim) is None
        won = step_simulation(_make_sim(OPEN, exits=[(2, 1)]), [M])
        assert won.status == SimulationStatus.WON
        assert failure_cause(won) is None

    def test_tick_limit(self):
        sim = _make_sim(OPEN, max_steps=2)
        sim = step_simulation(step_simulation(sim, [W]), [W])
        assert failure_cause(sim) == FailureCause.STEP_LIMIT

    def test_controller_step_limit_wins_over_hazard(self):
        sim = step_simulation(_make_sim(HAZARD), [M])
        assert failure_cause(sim, saw_step_limit=True) == FailureCause.STEP_LIMIT

    def test_hazard(self):
        sim = step_simulation(_make_sim(HAZARD), [M])
        assert failure_cause(sim) == FailureCause.HAZARD

    def test_hazard_wins_over_missed_quota(self):
        sim = step_simulation(_make_sim(HAZARD), [M])
        # the quota is missed too: nobody saved, nobody left, nothing to spawn
        assert sim.saved_count < sim.required_saved
        assert sim.active_count == 0 and sim.remaining_spawns == 0
        assert failure_cause(sim) == FailureCause.HAZARD

    def test_quota(self):
        sim = step_simulation(_make_sim(OPEN, exits=[(2, 1)], required_saved=2), [M])
        assert failure_cause(sim) == FailureCause.QUOTA

    def test_unknown(self):
        sim = replace(_make_sim(OPEN), status=SimulationStatus.LOST)
        assert failure_cause(sim) == FailureCause.UNKNOWN


class TestReplay:
    def test_replay_reproduces_every_state(self):
        start = _make_sim(OPEN, exits=[(2, 1)], count=1, max_steps=10)
        recorder = ReplayRecorder(start)
        state = start
        for actions in ([W], [Action.TURN_LEFT], [Action.TURN_RIGHT], [M]):
            state = recorder.step(state, actions)
        assert recorder.tick_count == 4
        states = replay(recorder.initial_state, recorder.actions)
        assert len(states) == 5
        assert states[-1] == state
        assert states[-1].status == SimulationStatus.WON

    def test_to_dict(self):
        recorder = ReplayRecorder(_make_sim(OPEN))
        recorder.record([M, None])
        assert recorder.to_dict() == {"ticks": [["MOVE_FORWARD", None]]}
