"""Solver API — synchronous search, background jobs, and an event stream.

POST /api/solver/search   run a search inline and return the result
POST /api/solver/start    start a background search on the SolverHost
POST /api/solver/cancel   cancel the running background search
GET  /api/solver/status   running flag plus the latest progress/result
WS   /api/solver/events   relay of solver_* events until a terminal one
"""

from __future__ import annotations

import asyncio
import queue
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from ...simulation.robot import Action
from ...solver.evaluate import EvalOptions
from ...solver.host import SOLVER_EVENTS, TERMINAL_EVENTS, SolverBusyError
from ...solver.search import DEFAULT_ACTIONS, SearchOptions, SearchStrategy, search
from ..deps import get_host, get_settings, resolve_level

router = APIRouter(prefix="/api/solver", tags=["solver"])


class SolveRequest(BaseModel):
    level: Optional[dict[str, Any]] = None
    level_id: Optional[str] = None
    actions: Optional[list[str]] = None
    max_attempts: Optional[int] = None
    max_time_ms: Optional[int] = None
    max_depth: Optional[int] = None
    beam_width: Optional[int] = None
    strategy: Optional[str] = None
    seed: Optional[int] = None
    max_ticks: Optional[int] = None


def _options(body: SolveRequest, request: Request) -> tuple[EvalOptions, SearchOptions]:
    settings = get_settings(request)
    try:
        actions = tuple(Action(a) for a in body.actions) if body.actions else DEFAULT_ACTIONS
        strategy = SearchStrategy(body.strategy) if body.strategy else None
    except ValueError as e:
        raise HTTPException(422, str(e)) from e
    search_options = SearchOptions.from_settings(
        settings,
        actions=actions,
        max_attempts=body.max_attempts,
        max_time_ms=body.max_time_ms,
        max_depth=body.max_depth,
        beam_width=body.beam_width,
        strategy=strategy,
        seed=body.seed,
    )
    eval_options = EvalOptions.from_settings(settings, max_ticks=body.max_ticks)
    return eval_options, search_options


@router.post("/search")
def run_search(body: SolveRequest, request: Request):
    """Search inline; blocks the worker thread for up to max_time_ms."""
    level = resolve_level(body.level, body.level_id)
    eval_options, search_options = _options(body, request)
    return search(level, options=search_options, eval_options=eval_options).to_dict()


@router.post("/start")
async def start_search(body: SolveRequest, request: Request):
    host = get_host(request)
    level = resolve_level(body.level, body.level_id)
    eval_options, search_options = _options(body, request)
    try:
        job_id = host.start(level, eval_options, search_options)
    except SolverBusyError as e:
        raise HTTPException(409, str(e)) from e
    return {"status": "started", "job_id": job_id}


@router.post("/cancel")
async def cancel_search(request: Request):
    host = get_host(request)
    if not host.cancel():
        return {"status": "idle"}
    return {"status": "cancelled", "job_id": host.job_id}


@router.get("/status")
async def solver_status(request: Request):
    host = get_host(request)
    return {
        "running": host.is_running,
        "job_id": host.job_id,
        "progress": host.last_progress,
        "result": host.last_result,
    }


@router.websocket("/events")
async def solver_events(websocket: WebSocket):
    host = getattr(websocket.app.state, "solver_host", None)
    if host is None:
        await websocket.close(code=1011)
        return
    # subscribe before accepting so no event published after the handshake is missed
    q = host.event_bus.subscribe(types=SOLVER_EVENTS)
    await websocket.accept()
    try:
        while True:
            try:
                msg = await asyncio.to_thread(q.get, True, 0.25)
            except queue.Empty:
                continue
            await websocket.send_json(msg)
            if msg["type"] in TERMINAL_EVENTS:
                break
        await websocket.close()
    except WebSocketDisconnect:
        pass
    finally:
        host.event_bus.unsubscribe(q)
