"""Program search — find a program that solves a level.

Architecture
------------
The solver treats ``evaluate()`` as a black-box oracle and searches the
space of flat action sequences.

Beam (default):
  The frontier starts as the empty program (scored first as a baseline,
  for both strategies).  Each layer expands every frontier program by
  appending each allowed action once, evaluates the children in expansion
  order, then keeps the ``beam_width`` best by score for the next layer.
  Sorting is stable, so equal scores keep expansion order and identical
  inputs always give identical results.

Random:
  Seeded hill-climb from the empty program: append a random action (50%),
  replace a random step (30%) or drop the last step (20%).  All randomness
  comes from ``random.Random(seed)`` owned by the search.

Budgets: ``max_attempts`` evaluations, ``max_time_ms`` wall time,
``max_depth`` program length.  Budgets and the optional cancel event are
checked between candidates only, so the returned best is always a fully
evaluated program.

Parallelism: with ``workers > 1`` each batch of candidates is evaluated on
a thread pool, but results are consumed in candidate order and the search
stops at the first solved candidate in that order, so the program returned
does not depend on the worker count.

Progress callbacks are advisory: they receive copies of the best-so-far
and cannot influence the search.
"""

from __future__ import annotations

import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

from loguru import logger

from ..program.nodes import ActionNode, Sequence, program_to_dict
from ..simulation.level import LevelDefinition
from ..simulation.robot import Action
from .evaluate import EvalOptions, EvalResult, TraceLite, evaluate

if TYPE_CHECKING:
    from ..config import Settings

DEFAULT_ACTIONS: tuple[Action, ...] = (
    Action.MOVE_FORWARD,
    Action.TURN_LEFT,
    Action.TURN_RIGHT,
    Action.WAIT,
)


class SearchStrategy(str, Enum):
    BEAM = "beam"
    RANDOM = "random"


@dataclass(frozen=True)
class SearchOptions:
    actions: tuple[Action, ...] = DEFAULT_ACTIONS
    max_attempts: int = 200
    max_time_ms: int = 1500
    max_depth: int = 25
    beam_width: int = 8
    progress_every: int = 25
    strategy: SearchStrategy = SearchStrategy.BEAM
    seed: Optional[int] = None
    workers: int = 1

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> SearchOptions:
        options = cls(
            max_attempts=settings.solver_max_attempts,
            max_time_ms=settings.solver_max_time_ms,
            max_depth=settings.solver_max_depth,
            beam_width=settings.solver_beam_width,
            progress_every=settings.solver_progress_every,
            workers=settings.solver_workers,
        )
        return replace(options, **{k: v for k, v in overrides.items() if v is not None})


@dataclass(frozen=True)
class SearchProgress:
    attempts: int
    best_score: Optional[int]
    elapsed_ms: int
    best_program: Optional[Sequence] = None
    best_trace: Optional[TraceLite] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempts": self.attempts,
            "best_score": self.best_score,
            "elapsed_ms": self.elapsed_ms,
            "best_program": program_to_dict(self.best_program) if self.best_program is not None else None,
            "best_trace": self.best_trace.to_dict() if self.best_trace is not None else None,
        }


@dataclass
class SearchResult:
    solved: bool
    best_program: Sequence
    best_score: Optional[int]
    attempts: int
    elapsed_ms: int = 0
    best_eval: Optional[EvalResult] = None
    cancelled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "solved": self.solved,
            "best_program": program_to_dict(self.best_program),
            "best_score": self.best_score,
            "attempts": self.attempts,
            "elapsed_ms": self.elapsed_ms,
            "cancelled": self.cancelled,
            "best_trace": self.best_eval.trace_lite.to_dict() if self.best_eval else None,
        }


ProgressCallback = Callable[[SearchProgress], None]


def _positive(value: Optional[int], fallback: int) -> int:
    if value is None or value <= 0:
        return fallback
    return int(value)


@dataclass
class _SearchRun:
    """Mutable bookkeeping for one search call."""

    level: LevelDefinition
    eval_options: Optional[EvalOptions]
    options: SearchOptions
    on_progress: Optional[ProgressCallback]
    cancel_event: Optional[threading.Event]
    started: float = field(default_factory=time.monotonic)
    attempts: int = 0
    best_program: Sequence = field(default_factory=Sequence)
    best_eval: Optional[EvalResult] = None
    solved: bool = False
    cancelled: bool = False
    _last_progress: int = 0

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started) * 1000)

    def budget_left(self) -> int:
        """How many more candidates may be evaluated right now (0 = stop)."""
        if self.cancel_event is not None and self.cancel_event.is_set():
            self.cancelled = True
            return 0
        if self.elapsed_ms >= _positive(self.options.max_time_ms, 1500):
            return 0
        return max(_positive(self.options.max_attempts, 200) - self.attempts, 0)

    def record(self, program: Sequence, result: EvalResult) -> None:
        self.attempts += 1
        if self.best_eval is None or result.score > self.best_eval.score:
            self.best_eval = result
            self.best_program = program
        if result.solved and not self.solved:
            self.solved = True
            self.best_eval = result
            self.best_program = program
        if self.attempts - self._last_progress >= _positive(self.options.progress_every, 25):
            self._last_progress = self.attempts
            self.report()

    def report(self) -> None:
        if self.on_progress is None:
            return
        self.on_progress(SearchProgress(
            attempts=self.attempts,
            best_score=self.best_eval.score if self.best_eval else None,
            elapsed_ms=self.elapsed_ms,
            best_program=self.best_program,
            best_trace=self.best_eval.trace_lite if self.best_eval else None,
        ))

    def result(self) -> SearchResult:
        return SearchResult(
            solved=self.solved,
            best_program=self.best_program,
            best_score=self.best_eval.score if self.best_eval else None,
            attempts=self.attempts,
            elapsed_ms=self.elapsed_ms,
            best_eval=self.best_eval,
            cancelled=self.cancelled,
        )


def _evaluate_batch(run: _SearchRun, candidates: list[Sequence],
                    pool: Optional[ThreadPoolExecutor]) -> list[tuple[Sequence, EvalResult]]:
    """Evaluate candidates in order, stopping on budget or at the first solve."""
    scored: list[tuple[Sequence, EvalResult]] = []
    pending = list(candidates)
    while pending and not run.solved:
        allowed = run.budget_left()
        if allowed == 0:
            break
        if pool is None:
            program = pending.pop(0)
            result = evaluate(program, run.level, run.eval_options)
            run.record(program, result)
            scored.append((program, result))
            continue

        chunk = pending[:min(allowed, run.options.workers)]
        pending = pending[len(chunk):]
        results = pool.map(lambda p: evaluate(p, run.level, run.eval_options), chunk)
        for program, result in zip(chunk, results):
            if run.solved:
                break
            run.record(program, result)
            scored.append((program, result))
    return scored


def _beam_search(run: _SearchRun, pool: Optional[ThreadPoolExecutor]) -> None:
    options = run.options
    beam_width = _positive(options.beam_width, 8)
    max_depth = _positive(options.max_depth, 25)
    frontier: list[Sequence] = [Sequence()]

    for depth in range(1, max_depth + 1):
        children = [
            program.append(ActionNode(action))
            for program in frontier
            for action in options.actions
        ]
        scored = _evaluate_batch(run, children, pool)
        if run.solved or len(scored) < len(children):
            return
        ranked = sorted(scored, key=lambda item: item[1].score, reverse=True)
        frontier = [program for program, _ in ranked[:beam_width]]
        logger.debug(f"Beam depth {depth}: {len(scored)} evaluated, "
                     f"best {ranked[0][1].score if ranked else None}")
        if not frontier:
            return


def _mutate(program: Sequence, actions: tuple[Action, ...], rng: random.Random) -> Sequence:
    roll = rng.random()
    if not program.steps or roll < 0.5:
        return program.append(ActionNode(actions[rng.randrange(len(actions))]))
    if roll < 0.8:
        index = rng.randrange(len(program.steps))
        replacement = ActionNode(actions[rng.randrange(len(actions))])
        steps = program.steps[:index] + (replacement,) + program.steps[index + 1:]
        return Sequence(steps=steps)
    return Sequence(steps=program.steps[:-1])


def _random_search(run: _SearchRun) -> None:
    options = run.options
    rng = random.Random(options.seed)
    max_depth = _positive(options.max_depth, 25)
    current = Sequence()
    while not run.solved and run.budget_left() > 0:
        candidate = _mutate(current, options.actions, rng)
        if len(candidate) > max_depth:
            current = Sequence(steps=candidate.steps[:-1])
            continue
        current = candidate
        run.record(candidate, evaluate(candidate, run.level, run.eval_options))


def search(
    level: LevelDefinition,
    options: Optional[SearchOptions] = None,
    eval_options: Optional[EvalOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> SearchResult:
    """Search for a program that solves ``level`` within the given budgets."""
    options = options or SearchOptions()
    run = _SearchRun(
        level=level,
        eval_options=eval_options,
        options=options,
        on_progress=on_progress,
        cancel_event=cancel_event,
    )
    logger.info(f"Search started: {level.level_id or 'level'} strategy={options.strategy.value} "
                f"attempts<={options.max_attempts} depth<={options.max_depth}")

    # the empty program is the baseline every search starts from
    if run.budget_left() > 0:
        root = Sequence()
        run.record(root, evaluate(root, level, eval_options))

    if options.actions and not run.solved:
        if SearchStrategy(options.strategy) == SearchStrategy.RANDOM:
            _random_search(run)
        elif options.workers > 1:
            with ThreadPoolExecutor(max_workers=options.workers) as pool:
                _beam_search(run, pool)
        else:
            _beam_search(run, None)

    run.report()
    result = run.result()
    logger.info(f"Search finished: solved={result.solved} score={result.best_score} "
                f"attempts={result.attempts} in {result.elapsed_ms}ms")
    return result
