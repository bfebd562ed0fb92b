"""Eddington number over per-activity distances."""

from __future__ import annotations

from typing import Iterable


def eddington_number(distances_km: Iterable[float]) -> int:
    """Largest E such that at least E activities covered at least E km."""

    ordered = sorted((d for d in distances_km if d > 0), reverse=True)
    e = 0
    for rank, distance in enumerate(ordered, start=1):
        if distance >= rank:
            e = rank
        else:
            break
    return e


__all__ = ["eddington_number"]
