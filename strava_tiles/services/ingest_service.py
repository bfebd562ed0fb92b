"""Track ingestion service.

Turns GPX text into a per-file tile batch and merges it into the store. The
processed-file ledger makes re-ingestion of a known filename a no-op; the
file is only marked once its batch has committed, so a failed batch leaves
the file eligible for a retry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Dict, List

from ..config import STRICT_XML_EXTRACTION, TILE_ZOOM
from ..distance import path_distance_km
from ..errors import InvalidCoordinateError, PointParseError, StoreError
from ..extraction import (
    PointExtractor,
    SubstringPointExtractor,
    XmlPointExtractor,
    activity_id_from_filename,
)
from ..models import (
    GeoPoint,
    IngestResult,
    IngestSummary,
    Provenance,
    TileCoordinate,
    TileVisit,
)
from ..projection import project
from ..store import TileStore


def _default_extractor() -> PointExtractor:
    if STRICT_XML_EXTRACTION:
        return XmlPointExtractor()
    return SubstringPointExtractor()


@dataclass(slots=True)
class IngestServiceConfig:
    extractor: PointExtractor = field(default_factory=_default_extractor)
    zoom: int = TILE_ZOOM
    logger: logging.Logger | None = None


class IngestService:
    def __init__(self, store: TileStore, config: IngestServiceConfig | None = None):
        self.store = store
        self.config = config or IngestServiceConfig()
        self._log = self.config.logger or logging.getLogger(self.__class__.__name__)

    def _earliest_visits(
        self, points: List[GeoPoint], filename: str
    ) -> Dict[TileCoordinate, int]:
        earliest: Dict[TileCoordinate, int] = {}
        rejected = 0
        for point in points:
            try:
                coord = project(point.lat, point.lon, self.config.zoom)
            except InvalidCoordinateError as exc:
                rejected += 1
                self._log.debug("Rejected point in %s: %s", filename, exc)
                continue
            previous = earliest.get(coord)
            if previous is None or point.timestamp < previous:
                earliest[coord] = point.timestamp
        if rejected:
            self._log.warning(
                "Rejected %d points outside the projectable range in %s",
                rejected,
                filename,
            )
        return earliest

    def _record_activity(self, activity_id: str, name: str, distance_km: float) -> None:
        try:
            numeric_id = int(activity_id)
        except ValueError:
            self._log.debug("Filename id %r is not numeric; activity not recorded", activity_id)
            return
        try:
            inserted = self.store.record_activity(numeric_id, name, distance_km)
        except StoreError as exc:
            self._log.warning(
                "Failed to mark activity %s as imported: %s", activity_id, exc
            )
            return
        if not inserted:
            self._log.debug("Activity %s already recorded; distance kept", numeric_id)

    def ingest(self, filename: str, content: str) -> IngestResult:
        """Merge one file's tiles into the store.

        Returns an :class:`IngestResult` carrying the number of distinct tiles
        in the committed batch, ``skipped=True`` for already processed files,
        or an error message when the file could not be applied.
        """

        try:
            if self.store.is_file_processed(filename):
                self._log.debug("Skipping already processed file %s", filename)
                return IngestResult(filename=filename, tiles=0, skipped=True)
        except StoreError as exc:
            self._log.error("Ledger lookup failed for %s: %s", filename, exc)
            return IngestResult(filename=filename, error=str(exc))

        try:
            track = self.config.extractor.extract(content, filename)
        except PointParseError as exc:
            self._log.error("Could not read %s: %s", filename, exc)
            return IngestResult(filename=filename, error=str(exc))

        distance_km = path_distance_km(track.points)
        activity_id = activity_id_from_filename(filename)
        provenance = Provenance(
            activity_id=activity_id, activity_title=track.name, filename=filename
        )
        visits = [
            TileVisit(coordinate=coord, visited_at=visited_at, provenance=provenance)
            for coord, visited_at in self._earliest_visits(track.points, filename).items()
        ]

        try:
            count = self.store.upsert_tiles(visits, self.config.zoom)
            self.store.mark_file_processed(filename)
        except StoreError as exc:
            self._log.error("Error processing %s: %s", filename, exc)
            return IngestResult(filename=filename, error=str(exc))

        self._record_activity(activity_id, track.name, distance_km)
        self._log.info(
            "Processed %s: %d tiles from %d points (%.2f km)",
            filename,
            count,
            len(track.points),
            distance_km,
        )
        return IngestResult(filename=filename, tiles=count)

    def ingest_path(self, path: str | Path) -> IngestResult:
        file_path = Path(path)
        try:
            content = file_path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            self._log.error("Could not read %s: %s", file_path, exc)
            return IngestResult(filename=file_path.name, error=str(exc))
        return self.ingest(file_path.name, content)

    def ingest_directory(
        self, directory: str | Path, pattern: str = "*.gpx"
    ) -> IngestSummary:
        """Ingest every matching file in name order; failures never stop the run."""

        base = Path(directory)
        summary = IngestSummary()
        if not base.is_dir():
            self._log.info("Track directory %s does not exist; nothing to ingest", base)
            return summary
        for file_path in sorted(base.glob(pattern)):
            if not file_path.is_file():
                continue
            summary.results.append(self.ingest_path(file_path))
        self._log.info(
            "Ingest run complete dir=%s processed=%d skipped=%d failed=%d tiles=%d",
            base,
            summary.processed,
            summary.skipped,
            summary.failed,
            summary.total_tiles,
        )
        return summary


__all__ = ["IngestService", "IngestServiceConfig"]
