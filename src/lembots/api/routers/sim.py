"""Evaluate a program against a level over HTTP."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from ...program.nodes import ProgramError, program_from_dict
from ...simulation.outcome import failure_cause
from ...solver.evaluate import EvalOptions, evaluate
from ..deps import get_settings, resolve_level

router = APIRouter(prefix="/api/sim", tags=["sim"])


class EvaluateRequest(BaseModel):
    program: dict[str, Any]
    level: Optional[dict[str, Any]] = None
    level_id: Optional[str] = None
    max_ticks: Optional[int] = None
    sample_every: Optional[int] = None


@router.post("/evaluate")
def evaluate_program(body: EvaluateRequest, request: Request):
    """Run one program on every robot of a level and score it."""
    level = resolve_level(body.level, body.level_id)
    try:
        program = program_from_dict(body.program)
    except ProgramError as e:
        raise HTTPException(422, str(e)) from e

    options = EvalOptions.from_settings(
        get_settings(request),
        max_ticks=body.max_ticks,
        sample_every=body.sample_every,
    )
    result = evaluate(program, level, options)
    cause = failure_cause(result.final_state, result.step_limit_hit) if result.final_state else None

    # only a built-in level counts; an inline level's id is whatever the client sent
    from_builtin = body.level is None and bool(body.level_id)
    progress = getattr(request.app.state, "progress", None)
    if result.solved and progress is not None and from_builtin:
        progress.add(level.level_id)

    data = result.to_dict()
    data["failure_cause"] = cause.value if cause is not None else None
    return data
