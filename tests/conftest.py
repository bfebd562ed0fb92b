"""Global pytest fixtures & helpers.

Adds project root to path and provides a temporary tile store plus GPX
builders shared across test modules.
"""
from __future__ import annotations

import os
import sys
from typing import Iterable, Optional, Sequence, Tuple

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from strava_tiles.store import TileStore


# --- Factory helpers -------------------------------------------------
def make_gpx(
    points: Sequence[Tuple[float, float, Optional[str]]],
    *,
    name: Optional[str] = "Morning Run",
    metadata_time: Optional[str] = None,
) -> str:
    """Build GPX text from (lat, lon, iso_time_or_None) triples."""

    lines = ['<?xml version="1.0" encoding="UTF-8"?>', '<gpx version="1.1">']
    if metadata_time is not None:
        lines += ["  <metadata>", f"    <time>{metadata_time}</time>", "  </metadata>"]
    lines.append("  <trk>")
    if name is not None:
        lines.append(f"    <name>{name}</name>")
    lines.append("    <trkseg>")
    for lat, lon, iso in points:
        lines.append(f'      <trkpt lat="{lat}" lon="{lon}">')
        if iso is not None:
            lines.append(f"        <time>{iso}</time>")
        lines.append("      </trkpt>")
    lines += ["    </trkseg>", "  </trk>", "</gpx>"]
    return "\n".join(lines)


def block(x0: int, y0: int, width: int, height: Optional[int] = None) -> list[tuple[int, int]]:
    """Return every (x, y) of a filled rectangle."""

    height = width if height is None else height
    return [(x, y) for x in range(x0, x0 + width) for y in range(y0, y0 + height)]


def coords_of(tiles: Iterable) -> set[tuple[int, int]]:
    return {(t[0], t[1]) for t in tiles}


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def store(tmp_path):
    with TileStore.open(tmp_path / "tiles.db") as handle:
        yield handle


@pytest.fixture
def gpx_builder():
    return make_gpx
