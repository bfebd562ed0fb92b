"""Geometric statistics over the visited tile set."""

from .cluster import as_coordinates, interior_tiles, largest_cluster
from .eddington import eddington_number
from .square import largest_square

__all__ = [
    "as_coordinates",
    "eddington_number",
    "interior_tiles",
    "largest_cluster",
    "largest_square",
]
