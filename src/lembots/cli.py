"""Command-line front end.

Usage:
    lembots levels
    lembots run corridor --program my_program.json [--json]
    lembots solve levels/ferry.json --attempts 500 --strategy random --seed 7
    lembots serve --port 8000

A LEVEL argument is either a path to a level JSON file or the id of a
built-in level.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Optional

from loguru import logger

from .config import settings
from .program.nodes import ProgramError, program_from_dict
from .simulation.level import LevelDefinition, LevelError, builtin_levels, load_level
from .simulation.outcome import failure_cause
from .simulation.robot import Action
from .solver.evaluate import EvalOptions, evaluate
from .solver.search import DEFAULT_ACTIONS, SearchOptions, SearchProgress, SearchStrategy, search


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def resolve_level(ref: str) -> LevelDefinition:
    if os.path.exists(ref):
        return load_level(ref)
    for level in builtin_levels():
        if level.level_id == ref:
            return level
    raise LevelError(f"No level file or built-in level named {ref!r}")


def cmd_levels(args: argparse.Namespace) -> int:
    for level in builtin_levels():
        print(f"{level.level_id:<16} {level.name or '':<24} "
              f"{len(level.grid[0])}x{len(level.grid)}  save {level.required_saved}/{level.spawner.count}")
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    level = resolve_level(args.level)
    with open(args.program) as f:
        program = program_from_dict(json.load(f))
    options = EvalOptions.from_settings(settings, max_ticks=args.max_ticks, sample_every=args.sample_every)
    result = evaluate(program, level, options)
    cause = failure_cause(result.final_state, result.step_limit_hit) if result.final_state else None

    if args.json:
        data = result.to_dict()
        data["failure_cause"] = cause.value if cause is not None else None
        print(json.dumps(data, indent=2))
    else:
        print(f"  Status:  {result.status.value}")
        print(f"  Solved:  {result.solved}")
        print(f"  Score:   {result.score}")
        print(f"  Ticks:   {result.ticks}")
        if cause is not None:
            print(f"  Cause:   {cause.value}")
    return 0 if result.solved else 1


def cmd_solve(args: argparse.Namespace) -> int:
    level = resolve_level(args.level)
    actions = tuple(Action(a) for a in args.actions) if args.actions else DEFAULT_ACTIONS
    options = SearchOptions.from_settings(
        settings,
        actions=actions,
        max_attempts=args.attempts,
        max_time_ms=args.time_ms,
        max_depth=args.depth,
        beam_width=args.beam,
        strategy=SearchStrategy(args.strategy) if args.strategy else None,
        seed=args.seed,
        workers=args.workers,
    )

    def on_progress(progress: SearchProgress) -> None:
        if not args.json:
            print(f"  ... {progress.attempts} attempts, best {progress.best_score}, "
                  f"{progress.elapsed_ms}ms")

    result = search(level, options=options, eval_options=EvalOptions.from_settings(settings),
                    on_progress=on_progress)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        steps = [step.action.value for step in result.best_program.steps]
        print(f"  Solved:   {result.solved}")
        print(f"  Score:    {result.best_score}")
        print(f"  Attempts: {result.attempts} in {result.elapsed_ms}ms")
        print(f"  Program:  {' '.join(steps) if steps else '(empty)'}")
    return 0 if result.solved else 1


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from .api.main import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port, log_level=settings.log_level.lower())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lembots",
        description="Lembots robot puzzles: run programs and search for solutions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--log-level", default=None, help=f"Log level (default: {settings.log_level})")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("levels", help="List built-in levels")
    p.set_defaults(func=cmd_levels)

    p = sub.add_parser("run", help="Evaluate a program JSON file on a level")
    p.add_argument("level", help="Level file or built-in level id")
    p.add_argument("--program", required=True, help="Program JSON file")
    p.add_argument("--max-ticks", type=int, default=None, help="Tick ceiling when the level has none")
    p.add_argument("--sample-every", type=int, default=None, help="Trace sampling interval")
    p.add_argument("--json", action="store_true", help="Output JSON")
    p.set_defaults(func=cmd_run)

    p = sub.add_parser("solve", help="Search for a program that solves a level")
    p.add_argument("level", help="Level file or built-in level id")
    p.add_argument("--attempts", type=int, default=None, help="Maximum evaluations")
    p.add_argument("--time-ms", type=int, default=None, help="Wall-time budget in milliseconds")
    p.add_argument("--depth", type=int, default=None, help="Maximum program length")
    p.add_argument("--beam", type=int, default=None, help="Beam width")
    p.add_argument("--strategy", choices=[s.value for s in SearchStrategy], default=None)
    p.add_argument("--seed", type=int, default=None, help="Seed for the random strategy")
    p.add_argument("--workers", type=int, default=None, help="Evaluator threads")
    p.add_argument("--actions", nargs="+", choices=[a.value for a in Action], default=None,
                   help="Action vocabulary (default: move, turns, wait)")
    p.add_argument("--json", action="store_true", help="Output JSON")
    p.set_defaults(func=cmd_solve)

    p = sub.add_parser("serve", help="Run the HTTP API")
    p.add_argument("--host", default=settings.api_host)
    p.add_argument("--port", type=int, default=settings.api_port)
    p.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level or settings.log_level)
    try:
        return args.func(args)
    except (LevelError, ProgramError, FileNotFoundError, json.JSONDecodeError) as e:
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
