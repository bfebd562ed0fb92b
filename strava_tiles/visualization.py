"""Render visited tiles, the Yard and the Übersquadrat on a folium map."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import folium  # Using folium to build an interactive Leaflet map.

from .models import TileRecord
from .projection import tile_to_bounds, to_latlon_box
from .services.stats_service import SquareClusterGeometry

PathLike = Union[str, Path]

_TILE_COLOR = "#2c7bb6"
_CLUSTER_COLOR = "#1a9641"
_SQUARE_COLOR = "#d73027"


def _map_center(
    tiles: Sequence[TileRecord], zoom: int
) -> Tuple[float, float]:
    if not tiles:
        return 0.0, 0.0
    xs = [t.x for t in tiles]
    ys = [t.y for t in tiles]
    lat_min, lon_min, _, _ = tile_to_bounds(min(xs), max(ys), zoom)
    _, _, lat_max, lon_max = tile_to_bounds(max(xs), min(ys), zoom)
    return (lat_min + lat_max) / 2.0, (lon_min + lon_max) / 2.0


def create_tile_map(
    geometry: SquareClusterGeometry,
    *,
    output_html_path: Optional[PathLike] = None,
) -> folium.Map:
    """Create an interactive map of the visited tile grid.

    Args:
        geometry: Tiles, Yard and Übersquadrat as returned by
            :meth:`StatsService.geometry`.
        output_html_path: Optional path to persist the map as an HTML file.

    Returns:
        A :class:`folium.Map` instance containing the overlays.
    """

    records = geometry.tiles
    zoom = geometry.zoom
    fmap = folium.Map(location=_map_center(records, zoom), zoom_start=11 if records else 2)

    visited_layer = folium.FeatureGroup(name=f"Visited tiles ({len(records)})")
    for tile in records:
        tooltip = tile.activity_title or tile.gpx_filename or f"{tile.x}/{tile.y}"
        folium.Rectangle(
            bounds=to_latlon_box(tile_to_bounds(tile.x, tile.y, zoom)),
            color=_TILE_COLOR,
            weight=1,
            fill=True,
            fill_opacity=0.25,
            tooltip=tooltip,
        ).add_to(visited_layer)
    visited_layer.add_to(fmap)

    if geometry.cluster.size > 0:
        cluster_layer = folium.FeatureGroup(name=f"Yard ({geometry.cluster.size})")
        for box in geometry.cluster_bounds:
            folium.Rectangle(
                bounds=box,
                color=_CLUSTER_COLOR,
                weight=1,
                fill=True,
                fill_opacity=0.4,
            ).add_to(cluster_layer)
        cluster_layer.add_to(fmap)

    size = geometry.square.size
    if size > 0:
        square_layer = folium.FeatureGroup(name=f"Übersquadrat ({size}x{size})")
        folium.Rectangle(
            bounds=geometry.square_bounds,
            color=_SQUARE_COLOR,
            weight=3,
            fill=False,
            tooltip=f"{size}x{size}",
        ).add_to(square_layer)
        square_layer.add_to(fmap)

    folium.LayerControl().add_to(fmap)

    if output_html_path is not None:
        path = Path(output_html_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fmap.save(str(path))
    return fmap


__all__ = ["create_tile_map"]
