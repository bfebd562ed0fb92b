"""Strava tile explorer package."""

from .errors import (
    InvalidCoordinateError,
    PointParseError,
    StoreError,
    TimeParseError,
)
from .main import main
from .models import ClusterResult, SquareResult, TileCoordinate, TileRecord
from .store import TileStore

__all__ = [
    "main",
    "ClusterResult",
    "SquareResult",
    "TileCoordinate",
    "TileRecord",
    "TileStore",
    "InvalidCoordinateError",
    "PointParseError",
    "StoreError",
    "TimeParseError",
]
