"""Evaluator, program search, and the background solver host."""
from .evaluate import EvalOptions, EvalResult, EventSummary, TraceLite, TraceLiteFrame, compute_score, evaluate
from .host import SOLVER_EVENTS, TERMINAL_EVENTS, SolverBusyError, SolverHost
from .search import SearchOptions, SearchProgress, SearchResult, SearchStrategy, search

__all__ = [
    "SOLVER_EVENTS",
    "TERMINAL_EVENTS",
    "EvalOptions",
    "EvalResult",
    "EventSummary",
    "SearchOptions",
    "SearchProgress",
    "SearchResult",
    "SearchStrategy",
    "SolverBusyError",
    "SolverHost",
    "TraceLite",
    "TraceLiteFrame",
    "compute_score",
    "evaluate",
    "search",
]
