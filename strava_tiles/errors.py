"""Central error types used across the application."""

from __future__ import annotations


class TileError(RuntimeError):
    """Base error for tile ingestion and analysis failures."""


class PointParseError(TileError):
    """Raised when a track point lacks usable latitude/longitude attributes."""


class TimeParseError(TileError):
    """Raised when a timestamp is not a recognisable ISO-8601 value."""


class InvalidCoordinateError(TileError, ValueError):
    """Raised when a coordinate cannot be projected onto the tile grid."""


class StoreError(TileError):
    """Raised when the tile store fails to persist or read data."""


class StravaAPIError(RuntimeError):
    """Raised when the Strava API returns an error or an unexpected payload."""


__all__ = [
    "TileError",
    "PointParseError",
    "TimeParseError",
    "InvalidCoordinateError",
    "StoreError",
    "StravaAPIError",
]
