"""Failure-cause derivation for finished runs.

The engine only reports ``won`` / ``lost``.  Hosts that want to tell the
player *why* a run was lost derive it from the state the engine keeps
(saved/dead counts, step count against the limit, pending spawns), in
this priority order:

    step_limit  -- a controller ran out of steps, or the tick limit was hit
    hazard      -- at least one robot died
    quota       -- every robot is finished, no spawns remain, quota unmet
    unknown     -- none of the above
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .engine import SimulationState, SimulationStatus


class FailureCause(str, Enum):
    STEP_LIMIT = "step_limit"
    HAZARD = "hazard"
    QUOTA = "quota"
    UNKNOWN = "unknown"


def failure_cause(state: SimulationState, saw_step_limit: bool = False) -> Optional[FailureCause]:
    """Classify a lost run.  Returns None unless ``state.status`` is LOST."""
    if state.status != SimulationStatus.LOST:
        return None

    if saw_step_limit or state.step_count >= state.max_steps:
        return FailureCause.STEP_LIMIT

    if state.dead_count > 0:
        return FailureCause.HAZARD

    if (state.saved_count < state.required_saved
            and state.active_count == 0 and state.remaining_spawns == 0):
        return FailureCause.QUOTA

    return FailureCause.UNKNOWN
