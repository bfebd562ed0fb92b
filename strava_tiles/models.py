"""Dataclasses describing track points, tiles and derived statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional


@dataclass(slots=True)
class GeoPoint:
    lat: float
    lon: float
    # Unix seconds; 0 when neither the point nor the file carried a time.
    timestamp: int = 0


class TileCoordinate(NamedTuple):
    """Tile address at the configured zoom. Compares equal to ``(x, y)``."""

    x: int
    y: int


@dataclass(slots=True)
class Provenance:
    activity_id: Optional[str] = None
    activity_title: Optional[str] = None
    filename: Optional[str] = None


@dataclass(slots=True)
class TileVisit:
    """One entry of a per-file upsert batch."""

    coordinate: TileCoordinate
    visited_at: int
    provenance: Provenance = field(default_factory=Provenance)


@dataclass
class TileRecord:
    x: int
    y: int
    z: int
    first_visited_at: int
    activity_id: Optional[str] = None
    activity_title: Optional[str] = None
    gpx_filename: Optional[str] = None

    @property
    def coordinate(self) -> TileCoordinate:
        return TileCoordinate(self.x, self.y)


@dataclass
class ActivityRecord:
    activity_id: int
    name: Optional[str]
    distance_km: float
    imported_at: int


@dataclass(slots=True)
class TrackData:
    """Points and display name pulled out of one track file."""

    name: str
    points: List[GeoPoint] = field(default_factory=list)


@dataclass(slots=True)
class ClusterResult:
    size: int
    tiles: List[TileCoordinate] = field(default_factory=list)


@dataclass(slots=True)
class SquareResult:
    size: int
    top_left_x: int = 0
    top_left_y: int = 0


@dataclass(slots=True)
class IngestResult:
    """File-level outcome of an ingestion attempt."""

    filename: str
    tiles: int = 0
    skipped: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class IngestSummary:
    results: List[IngestResult] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(1 for r in self.results if r.ok and not r.skipped)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def total_tiles(self) -> int:
        return sum(r.tiles for r in self.results if r.ok)
