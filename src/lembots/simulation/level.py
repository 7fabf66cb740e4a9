"""LevelDefinition — data model and loader for puzzle levels.

A level is consumed verbatim from JSON:

    {
      "id": "level-01",
      "name": "First Steps",
      "grid": [[1, 1, 1], ...],              # tile ids, see TileType
      "spawner": {"x": 1, "y": 1, "dir": "E", "count": 1, "intervalTicks": 0},
      "exits": [{"x": 5, "y": 1}],           # optional; else every Goal tile
      "requiredSaved": 1,                    # default 1
      "maxTicks": 200                        # default 200
    }

``dir`` may be an integer (taken modulo 4) or a compass letter.  Older
level files use ``start`` instead of ``spawner`` and ``goal`` instead of
``exits``; both are still accepted.

Usage:
    level = load_level("levels/level-01.json")
    sim = create_simulation_for_level(level)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from importlib import resources
from typing import Any, Optional

from loguru import logger

from .engine import DEFAULT_MAX_STEPS, SimulationState, Spawner, create_simulation
from .robot import Direction
from .world import create_world

_COMPASS = {"N": Direction.NORTH, "E": Direction.EAST, "S": Direction.SOUTH, "W": Direction.WEST}


class LevelError(ValueError):
    """A level definition that cannot be turned into a simulation."""


def parse_direction(value: Any) -> Direction:
    """Normalize an integer (mod 4) or compass letter to a Direction."""
    if isinstance(value, bool):
        raise LevelError(f"Invalid direction: {value!r}")
    if isinstance(value, int):
        return Direction(value % 4)
    if isinstance(value, str) and value.upper() in _COMPASS:
        return _COMPASS[value.upper()]
    raise LevelError(f"Invalid direction: {value!r}")


@dataclass
class LevelDefinition:
    """A puzzle level as authored."""

    grid: list[list[int]]
    spawner: Spawner
    exits: list[tuple[int, int]] = field(default_factory=list)
    required_saved: int = 1
    max_ticks: Optional[int] = None
    level_id: Optional[str] = None
    name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "grid": [list(row) for row in self.grid],
            "spawner": self.spawner.to_dict(),
            "exits": [{"x": x, "y": y} for x, y in self.exits],
            "requiredSaved": self.required_saved,
        }
        if self.max_ticks is not None:
            data["maxTicks"] = self.max_ticks
        if self.level_id is not None:
            data["id"] = self.level_id
        if self.name is not None:
            data["name"] = self.name
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LevelDefinition:
        try:
            return cls._parse(data)
        except LevelError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise LevelError(f"Malformed level definition: {e!r}") from e

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> LevelDefinition:
        grid = data.get("grid")
        if not grid or not all(isinstance(row, list) and row for row in grid):
            raise LevelError("Level grid must be a non-empty list of non-empty rows")
        if len({len(row) for row in grid}) != 1:
            raise LevelError("Level grid rows must all have the same width")

        raw = data.get("spawner")
        if raw is not None:
            starts = tuple(
                (int(s["x"]), int(s["y"]), parse_direction(s.get("dir", 1)))
                for s in raw.get("starts") or []
            )
            spawner = Spawner(
                x=int(raw["x"]),
                y=int(raw["y"]),
                direction=parse_direction(raw.get("dir", 1)),
                count=int(raw.get("count", 1)),
                interval_ticks=int(raw.get("intervalTicks", 0)),
                starts=starts,
            )
        elif data.get("start") is not None:
            start = data["start"]
            spawner = Spawner(
                x=int(start["x"]),
                y=int(start["y"]),
                direction=parse_direction(start.get("dir", 1)),
            )
        else:
            raise LevelError("Level has neither a spawner nor a start position")

        if data.get("exits") is not None:
            exits = [(int(e["x"]), int(e["y"])) for e in data["exits"]]
        elif data.get("goal") is not None:
            exits = [(int(data["goal"]["x"]), int(data["goal"]["y"]))]
        else:
            exits = []

        max_ticks = data.get("maxTicks")
        return cls(
            grid=[[int(cell) for cell in row] for row in grid],
            spawner=spawner,
            exits=exits,
            required_saved=int(data.get("requiredSaved", 1)),
            max_ticks=int(max_ticks) if max_ticks is not None else None,
            level_id=data.get("id"),
            name=data.get("name"),
        )


def load_level(path: str) -> LevelDefinition:
    """Load a LevelDefinition from a JSON file.

    Raises:
        FileNotFoundError: If path does not exist.
        json.JSONDecodeError: If file is not valid JSON.
        LevelError: If the level is malformed.
    """
    with open(path) as f:
        data = json.load(f)
    level = LevelDefinition.from_dict(data)
    logger.info(f"Level loaded from {path}: {level.level_id or level.name or 'unnamed'} "
                f"({len(level.grid[0])}x{len(level.grid)})")
    return level


def builtin_levels() -> list[LevelDefinition]:
    """The levels bundled with the package, ordered by file name."""
    root = resources.files("lembots") / "levels"
    entries = sorted(
        (p for p in root.iterdir() if p.name.endswith(".json")),
        key=lambda p: p.name,
    )
    return [LevelDefinition.from_dict(json.loads(p.read_text())) for p in entries]


def create_simulation_for_level(
    level: LevelDefinition,
    default_max_ticks: int = DEFAULT_MAX_STEPS,
) -> SimulationState:
    """Build the tick-0 simulation.  The level's own maxTicks wins."""
    try:
        world = create_world(level.grid)
    except ValueError as e:
        raise LevelError(f"Unknown tile id in grid: {e}") from e
    max_ticks = level.max_ticks if level.max_ticks is not None else default_max_ticks
    return create_simulation(
        world=world,
        spawner=level.spawner,
        exits=level.exits,
        max_steps=max_ticks,
        required_saved=level.required_saved,
    )
