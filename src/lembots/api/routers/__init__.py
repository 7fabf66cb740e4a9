"""API routers."""
from .levels import router as levels_router
from .progress import router as progress_router
from .sim import router as sim_router
from .solver import router as solver_router

__all__ = ["levels_router", "progress_router", "sim_router", "solver_router"]
