"""Lembots API — FastAPI application factory.

The app wires one SolverHost (with its own EventBus) and one
CompletedLevels store onto ``app.state``; routers look them up there so
tests can build an app around their own instances.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from loguru import logger

from .. import __version__
from ..config import Settings
from ..progress import CompletedLevels
from ..solver.host import SolverHost
from .routers import levels_router, progress_router, sim_router, solver_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Lembots API v{__version__} starting")
    yield
    host: SolverHost | None = getattr(app.state, "solver_host", None)
    if host is not None and host.is_running:
        host.cancel()
        host.wait(timeout=2.0)
    logger.info("Lembots API stopped")


def create_app(
    settings: Optional[Settings] = None,
    host: Optional[SolverHost] = None,
    progress: Optional[CompletedLevels] = None,
) -> FastAPI:
    if settings is None:
        from ..config import settings as default_settings
        settings = default_settings

    app = FastAPI(
        title="Lembots",
        description="Robot programming puzzles: simulation, evaluation and solver",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.solver_host = host if host is not None else SolverHost()
    app.state.progress = progress if progress is not None else CompletedLevels(settings.progress_path)

    app.include_router(levels_router)
    app.include_router(sim_router)
    app.include_router(solver_router)
    app.include_router(progress_router)

    @app.get("/health")
    async def health():
        return {"status": "operational", "version": __version__}

    return app
