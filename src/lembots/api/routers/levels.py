"""Built-in level catalogue."""

from __future__ import annotations

from fastapi import APIRouter, Request

from ...simulation.level import builtin_levels
from ..deps import find_builtin

router = APIRouter(prefix="/api/levels", tags=["levels"])


@router.get("")
async def list_levels(request: Request):
    """List bundled levels, flagged with the player's completion state."""
    progress = getattr(request.app.state, "progress", None)
    return {
        "levels": [
            {
                "id": level.level_id,
                "name": level.name,
                "width": len(level.grid[0]),
                "height": len(level.grid),
                "required_saved": level.required_saved,
                "completed": progress is not None and progress.is_completed(level.level_id or ""),
            }
            for level in builtin_levels()
        ]
    }


@router.get("/{level_id}")
async def get_level(level_id: str):
    return find_builtin(level_id).to_dict()
