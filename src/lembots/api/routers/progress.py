"""Completed-levels API."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from ..deps import get_progress

router = APIRouter(prefix="/api/progress", tags=["progress"])


class CompleteLevel(BaseModel):
    level_id: str


@router.get("")
async def get_completed(request: Request):
    return {"completed": get_progress(request).ids()}


@router.post("")
async def mark_completed(body: CompleteLevel, request: Request):
    progress = get_progress(request)
    try:
        added = progress.add(body.level_id)
    except ValueError as e:
        raise HTTPException(422, str(e)) from e
    return {"level_id": body.level_id, "added": added, "completed": progress.ids()}


@router.delete("")
async def reset_progress(request: Request):
    get_progress(request).clear()
    return {"completed": []}
