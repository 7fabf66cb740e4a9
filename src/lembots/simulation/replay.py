"""ReplayRecorder — records the per-tick action log of a run.

Because the engine is a pure function of (state, actions), the initial
state plus the list of per-tick action lists is a complete recording.
``replay()`` re-drives that log and reproduces every intermediate state.

Usage:
    recorder = ReplayRecorder(initial_state)
    while state.status == SimulationStatus.RUNNING:
        actions = ...
        state = recorder.step(state, actions)
    states = replay(recorder.initial_state, recorder.actions)
"""

from __future__ import annotations

from typing import Optional, Sequence

from .engine import SimulationState, step_simulation
from .robot import Action

TickActions = tuple[Optional[Action], ...]


class ReplayRecorder:
    """Wraps ``step_simulation`` and keeps every tick's action list."""

    def __init__(self, initial_state: SimulationState) -> None:
        self._initial = initial_state
        self._actions: list[TickActions] = []

    @property
    def initial_state(self) -> SimulationState:
        return self._initial

    @property
    def actions(self) -> list[TickActions]:
        return list(self._actions)

    @property
    def tick_count(self) -> int:
        return len(self._actions)

    def record(self, actions: Sequence[Optional[Action]]) -> None:
        self._actions.append(tuple(actions))

    def step(self, state: SimulationState, actions: Sequence[Optional[Action]]) -> SimulationState:
        """Record ``actions`` and advance ``state`` by one tick."""
        self.record(actions)
        return step_simulation(state, actions)

    def to_dict(self) -> dict:
        return {
            "ticks": [
                [a.value if a is not None else None for a in tick]
                for tick in self._actions
            ],
        }


def replay(initial_state: SimulationState,
           action_log: Sequence[Sequence[Optional[Action]]]) -> list[SimulationState]:
    """Re-drive a recorded action log.  Returns the initial state and every successor."""
    states = [initial_state]
    state = initial_state
    for actions in action_log:
        state = step_simulation(state, actions)
        states.append(state)
    return states
