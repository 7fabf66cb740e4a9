"""Raft ferries.

Architecture
------------
Every Raft tile present when a simulation is created becomes a ferry with
a cyclic route: its origin cell followed by every Jetty on the map, sorted
by (y, x).  The raft is always visible on the grid as exactly one RAFT
tile; moving it swaps that marker, restoring the vacated cell to JETTY if
it is a dock or WATER otherwise.

The ferry step runs once per tick, after robots have moved:

  - A raft carrying at least one blocking robot sails to the next stop on
    its route if that stop is free (the riders themselves never block it).
    Riders travel with it and the previous stop is remembered as
    ``return_index``.
  - An empty raft with a pending ``return_index`` sails back to that stop
    if it is free, then forgets it.

Rafts are processed in creation order; each raft sees the occupancy left
by the rafts before it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from .robot import RobotState
from .world import TileType, World, positions_of

Position = tuple[int, int]


@dataclass(frozen=True)
class RaftState:
    x: int
    y: int
    route: tuple[Position, ...]
    dock_index: int = 0
    return_index: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "route": [list(p) for p in self.route],
            "dock_index": self.dock_index,
            "return_index": self.return_index,
        }


def build_route(origin: Position, jetties: list[Position]) -> tuple[Position, ...]:
    """Origin first, then every jetty except the origin in (y, x) order."""
    docks = sorted((j for j in jetties if j != origin), key=lambda p: (p[1], p[0]))
    return (origin, *docks)


def initialize_rafts(world: World, jetties: list[Position]) -> tuple[RaftState, ...]:
    return tuple(
        RaftState(x=x, y=y, route=build_route((x, y), jetties))
        for x, y in positions_of(world, TileType.RAFT)
    )


def move_rafts(
    world: World,
    robots: list[RobotState],
    rafts: tuple[RaftState, ...],
    jetties: frozenset[Position],
) -> tuple[World, list[RobotState], tuple[RaftState, ...]]:
    """Run one ferry step.  Returns the (possibly new) world, robots and rafts."""
    if not rafts:
        return world, robots, rafts

    changes: dict[Position, TileType] = {}
    occupied = {(r.x, r.y) for r in robots if r.is_blocking}
    next_rafts: list[RaftState] = []

    def _sail(raft: RaftState, destination: Position) -> None:
        here = (raft.x, raft.y)
        changes[here] = TileType.JETTY if here in jetties else TileType.WATER
        changes[destination] = TileType.RAFT
        occupied.discard(here)
        occupied.add(destination)

    for raft in rafts:
        if len(raft.route) < 2:
            next_rafts.append(raft)
            continue

        here = (raft.x, raft.y)
        riders = [r for r in robots if r.is_blocking and (r.x, r.y) == here]

        if riders:
            dest_index = (raft.dock_index + 1) % len(raft.route)
            destination = raft.route[dest_index]
            # a stop occupied only by this raft's own riders is free
            if destination in occupied and destination != here:
                next_rafts.append(raft)
                continue
            _sail(raft, destination)
            robots = [
                replace(r, x=destination[0], y=destination[1]) if (r.x, r.y) == here else r
                for r in robots
            ]
            next_rafts.append(replace(
                raft,
                x=destination[0],
                y=destination[1],
                dock_index=dest_index,
                return_index=raft.dock_index,
            ))
            continue

        if raft.return_index is not None and raft.return_index != raft.dock_index:
            destination = raft.route[raft.return_index]
            if destination in occupied:
                next_rafts.append(raft)
                continue
            _sail(raft, destination)
            next_rafts.append(replace(
                raft,
                x=destination[0],
                y=destination[1],
                dock_index=raft.return_index,
                return_index=None,
            ))
            continue

        next_rafts.append(raft)

    return world.with_tiles(changes), robots, tuple(next_rafts)
