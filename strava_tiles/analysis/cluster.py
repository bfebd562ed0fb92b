"""Largest connected region of interior tiles (the "Yard").

A visited tile is interior when its four orthogonal neighbours are visited
too. The Yard is the largest 4-connected component formed by interior tiles
alone.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable, List, Set, Tuple, Union

from ..models import ClusterResult, TileCoordinate, TileRecord

TileLike = Union[TileRecord, TileCoordinate, Tuple[int, int]]


def as_coordinates(tiles: Iterable[TileLike]) -> Set[TileCoordinate]:
    """Normalise records, coordinates or ``(x, y)`` tuples into a set."""

    coords: Set[TileCoordinate] = set()
    for tile in tiles:
        if isinstance(tile, TileRecord):
            coords.add(tile.coordinate)
        else:
            x, y = tile
            coords.add(TileCoordinate(int(x), int(y)))
    return coords


def _neighbours(coord: TileCoordinate) -> List[TileCoordinate]:
    x, y = coord
    result = []
    # No tile exists left of x=0 or above y=0.
    if x > 0:
        result.append(TileCoordinate(x - 1, y))
    result.append(TileCoordinate(x + 1, y))
    if y > 0:
        result.append(TileCoordinate(x, y - 1))
    result.append(TileCoordinate(x, y + 1))
    return result


def interior_tiles(tiles: Iterable[TileLike]) -> Set[TileCoordinate]:
    visited = as_coordinates(tiles)
    return {
        coord
        for coord in visited
        if coord.x > 0
        and coord.y > 0
        and all(n in visited for n in _neighbours(coord))
    }


def largest_cluster(tiles: Iterable[TileLike]) -> ClusterResult:
    """Return the largest 4-connected component of interior tiles.

    Seeds are taken in ascending ``(x, y)`` order and only a strictly larger
    component replaces the current best, so ties resolve to the component
    holding the smallest seed. Member tiles are listed in BFS order.
    """

    interior = interior_tiles(tiles)
    if not interior:
        return ClusterResult(size=0, tiles=[])

    unvisited = set(interior)
    best: List[TileCoordinate] = []
    for seed in sorted(interior):
        if seed not in unvisited:
            continue
        unvisited.discard(seed)
        queue = deque([seed])
        component: List[TileCoordinate] = []
        while queue:
            current = queue.popleft()
            component.append(current)
            for neighbour in _neighbours(current):
                if neighbour in unvisited:
                    unvisited.discard(neighbour)
                    queue.append(neighbour)
        if len(component) > len(best):
            best = component
        if not unvisited:
            break
    return ClusterResult(size=len(best), tiles=best)


__all__ = ["as_coordinates", "interior_tiles", "largest_cluster"]
