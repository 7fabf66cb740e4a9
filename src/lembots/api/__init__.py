"""HTTP reference host for the simulation, solver and progress store."""
from .main import create_app

__all__ = ["create_app"]
