"""World — the immutable tile grid and pure tile queries.

The grid is a tuple of tuples of ``TileType``.  Nothing in a tick mutates
it in place: the raft ferry step is the only writer and it goes through
``World.with_tiles()``, which returns a new World and leaves the previous
tick's grid untouched for replay.

Coordinates are ``(x, y)`` with ``x`` the column and ``y`` the row; ``y``
grows southward.  Anything outside the grid reads as Wall.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Sequence


class TileType(IntEnum):
    EMPTY = 0
    WALL = 1
    GOAL = 2
    HAZARD = 3
    PRESSURE_PLATE = 4
    DOOR = 5
    WATER = 6
    RAFT = 7
    JETTY = 8


# Tiles that kill a robot standing on them unless it is riding a raft.
# A raft occupies its own tile (RAFT), so a mounted robot is never on WATER.
_LETHAL_TILES = frozenset({TileType.HAZARD, TileType.WATER})


@dataclass(frozen=True)
class World:
    grid: tuple[tuple[TileType, ...], ...]
    width: int
    height: int

    def with_tiles(self, changes: dict[tuple[int, int], TileType]) -> World:
        """Return a copy of this world with the given cells replaced."""
        if not changes:
            return self
        rows = [list(row) for row in self.grid]
        for (x, y), tile in changes.items():
            rows[y][x] = tile
        return World(
            grid=tuple(tuple(row) for row in rows),
            width=self.width,
            height=self.height,
        )

    def to_ids(self) -> list[list[int]]:
        return [[int(tile) for tile in row] for row in self.grid]


def create_world(grid: Sequence[Sequence[int]]) -> World:
    """Build a World from a grid of integer tile ids.

    Raises:
        ValueError: If a tile id is not a known TileType.
    """
    typed = tuple(tuple(TileType(cell) for cell in row) for row in grid)
    width = len(typed[0]) if typed else 0
    return World(grid=typed, width=width, height=len(typed))


def is_inside(world: World, x: int, y: int) -> bool:
    return 0 <= x < world.width and 0 <= y < world.height


def get_tile(world: World, x: int, y: int) -> TileType:
    if not is_inside(world, x, y):
        return TileType.WALL
    row = world.grid[y]
    if x >= len(row):
        return TileType.EMPTY
    return row[x]


def is_wall(world: World, x: int, y: int) -> bool:
    return get_tile(world, x, y) == TileType.WALL


def is_goal(world: World, x: int, y: int) -> bool:
    return get_tile(world, x, y) == TileType.GOAL


def is_lethal(world: World, x: int, y: int) -> bool:
    """True for tiles that kill an unmounted robot (Hazard and Water)."""
    return get_tile(world, x, y) in _LETHAL_TILES


def is_water(world: World, x: int, y: int) -> bool:
    return get_tile(world, x, y) == TileType.WATER


def is_raft(world: World, x: int, y: int) -> bool:
    return get_tile(world, x, y) == TileType.RAFT


def is_jetty(world: World, x: int, y: int) -> bool:
    return get_tile(world, x, y) == TileType.JETTY


def is_pressure_plate(world: World, x: int, y: int) -> bool:
    return get_tile(world, x, y) == TileType.PRESSURE_PLATE


def is_door(world: World, x: int, y: int) -> bool:
    return get_tile(world, x, y) == TileType.DOOR


def positions_of(world: World, tiles: TileType | Iterable[TileType]) -> list[tuple[int, int]]:
    """All ``(x, y)`` cells holding the given tile type(s), in row-major order."""
    wanted = {tiles} if isinstance(tiles, TileType) else set(tiles)
    return [
        (x, y)
        for y, row in enumerate(world.grid)
        for x, tile in enumerate(row)
        if tile in wanted
    ]
