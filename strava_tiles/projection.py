"""Web Mercator slippy-map tile projection."""

from __future__ import annotations

import math
from typing import List, Tuple

from .config import MAX_MERCATOR_LATITUDE, TILE_ZOOM
from .errors import InvalidCoordinateError
from .models import SquareResult, TileCoordinate

Bounds = Tuple[float, float, float, float]
# [[south, west], [north, east]] as consumed by Leaflet/folium.
LatLonBox = List[List[float]]


def _tile_count(zoom: int) -> int:
    if zoom < 0:
        raise InvalidCoordinateError(f"Zoom must be non-negative, got {zoom}")
    return 2**zoom


def project(lat: float, lon: float, zoom: int = TILE_ZOOM) -> TileCoordinate:
    """Return the tile containing ``(lat, lon)`` at ``zoom``.

    Longitude wraps around the antimeridian. Latitude must lie inside the
    Web Mercator range.

    Raises:
        InvalidCoordinateError: If either value is not finite or the latitude
            is outside +/-85.0511 degrees.
    """

    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidCoordinateError(f"Non-finite coordinate ({lat}, {lon})")
    if abs(lat) > MAX_MERCATOR_LATITUDE:
        raise InvalidCoordinateError(
            f"Latitude {lat} outside Web Mercator range +/-{MAX_MERCATOR_LATITUDE}"
        )
    n = _tile_count(zoom)
    wrapped_lon = ((lon + 180.0) % 360.0) - 180.0
    x = math.floor((wrapped_lon + 180.0) / 360.0 * n)
    lat_rad = math.radians(lat)
    y = math.floor((1.0 - math.asinh(math.tan(lat_rad)) / math.pi) / 2.0 * n)
    # The exact upper edges (lon=180 after rounding, lat=-85.05...) land on n.
    return TileCoordinate(min(max(x, 0), n - 1), min(max(y, 0), n - 1))


def _tile_lat(y: int, n: int) -> float:
    return math.degrees(math.atan(math.sinh(math.pi * (1.0 - 2.0 * y / n))))


def tile_to_bounds(x: int, y: int, zoom: int = TILE_ZOOM) -> Bounds:
    """Return ``(lat_min, lon_min, lat_max, lon_max)`` for a tile.

    Raises:
        InvalidCoordinateError: If the tile lies outside the zoom's grid.
    """

    n = _tile_count(zoom)
    if not (0 <= x < n and 0 <= y < n):
        raise InvalidCoordinateError(f"Tile ({x}, {y}) outside zoom {zoom} grid")
    lon_min = x / n * 360.0 - 180.0
    lon_max = (x + 1) / n * 360.0 - 180.0
    lat_max = _tile_lat(y, n)
    lat_min = _tile_lat(y + 1, n)
    return lat_min, lon_min, lat_max, lon_max


def to_latlon_box(bounds: Bounds) -> LatLonBox:
    lat_min, lon_min, lat_max, lon_max = bounds
    return [[lat_min, lon_min], [lat_max, lon_max]]


def square_bounds(square: SquareResult, zoom: int = TILE_ZOOM) -> Bounds:
    """Return bounds covering every tile of a square result."""

    if square.size <= 0:
        return 0.0, 0.0, 0.0, 0.0
    far = square.size - 1
    lat_min, lon_min, _, _ = tile_to_bounds(
        square.top_left_x, square.top_left_y + far, zoom
    )
    _, _, lat_max, lon_max = tile_to_bounds(
        square.top_left_x + far, square.top_left_y, zoom
    )
    return lat_min, lon_min, lat_max, lon_max


__all__ = [
    "Bounds",
    "LatLonBox",
    "project",
    "square_bounds",
    "tile_to_bounds",
    "to_latlon_box",
]
