"""Shared lookups for the API routers."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException, Request

from ..config import Settings
from ..progress import CompletedLevels
from ..simulation.level import LevelDefinition, LevelError, builtin_levels
from ..solver.host import SolverHost


def get_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        from ..config import settings as default_settings
        return default_settings
    return settings


def get_host(request: Request) -> SolverHost:
    host = getattr(request.app.state, "solver_host", None)
    if host is None:
        raise HTTPException(503, "Solver host not available")
    return host


def get_progress(request: Request) -> CompletedLevels:
    progress = getattr(request.app.state, "progress", None)
    if progress is None:
        raise HTTPException(503, "Progress store not available")
    return progress


def find_builtin(level_id: str) -> LevelDefinition:
    for level in builtin_levels():
        if level.level_id == level_id:
            return level
    raise HTTPException(404, f"Unknown level: {level_id}")


def resolve_level(level: Optional[dict[str, Any]], level_id: Optional[str]) -> LevelDefinition:
    """An inline level wins over a built-in id."""
    if level is not None:
        try:
            return LevelDefinition.from_dict(level)
        except LevelError as e:
            raise HTTPException(422, str(e)) from e
    if level_id:
        return find_builtin(level_id)
    raise HTTPException(422, "Either 'level' or 'level_id' is required")
