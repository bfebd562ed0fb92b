"""Aggregate statistics and map geometry over the tile store.

Everything is recomputed from a fresh read of the store on each call; nothing
derived here is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import List, Tuple

from ..analysis import eddington_number, largest_cluster, largest_square
from ..config import TILE_ZOOM
from ..models import ClusterResult, SquareResult, TileRecord
from ..projection import LatLonBox, square_bounds, tile_to_bounds, to_latlon_box
from ..store import TileStore


@dataclass(slots=True)
class StatsSummary:
    total_distance_km: float
    activity_count: int
    tile_count: int
    max_square: int
    max_cluster: int
    eddington: int


@dataclass(slots=True)
class SquareClusterGeometry:
    """Visited tiles plus the Yard and Übersquadrat with their lat/lon boxes."""

    zoom: int
    square: SquareResult
    cluster: ClusterResult
    square_bounds: LatLonBox
    cluster_bounds: List[LatLonBox] = field(default_factory=list)
    tiles: List[TileRecord] = field(default_factory=list)


class StatsService:
    def __init__(self, store: TileStore, zoom: int = TILE_ZOOM):
        self.store = store
        self.zoom = zoom
        self._log = logging.getLogger(self.__class__.__name__)

    def _analyse(self) -> Tuple[List[TileRecord], ClusterResult, SquareResult]:
        tiles = self.store.get_all_tiles(self.zoom)
        # Yard and Übersquadrat are computed independently from all tiles.
        cluster = largest_cluster(tiles)
        square = largest_square(tiles)
        self._log.debug(
            "Analysed %d tiles: cluster=%d square=%d",
            len(tiles),
            cluster.size,
            square.size,
        )
        return tiles, cluster, square

    def summary(self) -> StatsSummary:
        tiles, cluster, square = self._analyse()
        return StatsSummary(
            total_distance_km=self.store.total_distance_km(),
            activity_count=self.store.activity_count(),
            tile_count=len(tiles),
            max_square=square.size,
            max_cluster=cluster.size,
            eddington=eddington_number(self.store.activity_distances()),
        )

    def geometry(self) -> SquareClusterGeometry:
        tiles, cluster, square = self._analyse()
        if square.size > 0:
            box = to_latlon_box(square_bounds(square, self.zoom))
        else:
            box = [[0.0, 0.0], [0.0, 0.0]]
        return SquareClusterGeometry(
            zoom=self.zoom,
            square=square,
            cluster=cluster,
            square_bounds=box,
            cluster_bounds=[
                to_latlon_box(tile_to_bounds(c.x, c.y, self.zoom))
                for c in cluster.tiles
            ],
            tiles=tiles,
        )


__all__ = [
    "SquareClusterGeometry",
    "StatsService",
    "StatsSummary",
]
