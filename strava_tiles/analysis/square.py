"""Largest fully visited axis-aligned square (the "Übersquadrat")."""

from __future__ import annotations

from typing import Iterable

import numpy as np
from numpy.typing import NDArray

from ..models import SquareResult
from .cluster import TileLike, as_coordinates


def _occupancy_grid(coords: Iterable[TileLike]) -> tuple[NDArray[np.bool_], int, int]:
    """Return a dense boolean grid over the bounding box plus its origin."""

    points = np.array(sorted(as_coordinates(coords)), dtype=np.int64)
    min_x = int(points[:, 0].min())
    min_y = int(points[:, 1].min())
    width = int(points[:, 0].max()) - min_x + 1
    height = int(points[:, 1].max()) - min_y + 1
    grid = np.zeros((height, width), dtype=bool)
    grid[points[:, 1] - min_y, points[:, 0] - min_x] = True
    return grid, min_x, min_y


def largest_square(coords: Iterable[TileLike]) -> SquareResult:
    """Return the side length and top-left tile of the largest covered square.

    Uses the classic "largest square ending here" recurrence over a dense
    occupancy grid spanning the bounding box, so memory grows with the box
    area rather than the number of tiles. The first maximum met in row-major
    order wins.
    """

    coords = list(coords)
    if not coords:
        return SquareResult(size=0, top_left_x=0, top_left_y=0)

    grid, min_x, min_y = _occupancy_grid(coords)
    best = 0
    best_row = best_col = 0
    # Each cell depends on its left neighbour in the same row, so the
    # recurrence runs over plain lists with one previous row kept.
    previous = [0] * grid.shape[1]
    for row, cells in enumerate(grid.tolist()):
        current = [0] * len(cells)
        for col, occupied in enumerate(cells):
            if not occupied:
                continue
            if row == 0 or col == 0:
                size = 1
            else:
                size = 1 + min(previous[col], current[col - 1], previous[col - 1])
            current[col] = size
            if size > best:
                best = size
                best_row, best_col = row, col
        previous = current
    return SquareResult(
        size=best,
        top_left_x=min_x + best_col - best + 1,
        top_left_y=min_y + best_row - best + 1,
    )


__all__ = ["largest_square"]
