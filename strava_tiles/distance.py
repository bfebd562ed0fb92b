"""Great-circle track length."""

from __future__ import annotations

import math
from typing import Sequence

from .models import GeoPoint

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2.0) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2.0) ** 2
    )
    return EARTH_RADIUS_KM * 2.0 * math.asin(min(1.0, math.sqrt(a)))


def path_distance_km(points: Sequence[GeoPoint]) -> float:
    """Sum haversine legs between consecutive points, rounded to 2 decimals."""

    if len(points) < 2:
        return 0.0
    total = 0.0
    for prev, cur in zip(points, points[1:]):
        total += haversine_km(prev.lat, prev.lon, cur.lat, cur.lon)
    return round(total, 2)


__all__ = ["EARTH_RADIUS_KM", "haversine_km", "path_distance_km"]
