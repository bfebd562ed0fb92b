"""Download Strava activities as GPX files and ingest them.

Activities are listed page by page, their ``latlng``/``time``/``altitude``
streams fetched and written to ``<gpx_dir>/activity_<id>.gpx``. Each written
file is ingested straight away. Activities already present in the import
ledger, or whose GPX file already exists, are skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from .config import (
    REQUEST_TIMEOUT,
    STRAVA_BASE_URL,
    STRAVA_IMPORT_MAX_PAGES,
    STRAVA_IMPORT_PER_PAGE,
)
from .errors import StravaAPIError
from .services.ingest_service import IngestService
from .store import TileStore

LOGGER = logging.getLogger(__name__)

STREAM_KEYS = ("latlng", "time", "altitude")


@dataclass(slots=True)
class ImportResult:
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    new_tiles: int = 0


def _escape_xml(text: str) -> str:
    """Escape special XML characters."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def _parse_start(start_date: Optional[str]) -> Optional[datetime]:
    if not start_date:
        return None
    if start_date.endswith("Z"):
        start_date = start_date[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(start_date)
    except ValueError:
        LOGGER.warning("Could not parse start_date: %s", start_date)
        return None


def streams_to_gpx(
    name: str,
    streams: Dict[str, List[Any]],
    start_date: Optional[str] = None,
) -> str:
    """Convert stream data to GPX 1.1 text.

    Point times are the activity start plus the ``time`` stream offset when
    both are available.
    """
    latlng = streams.get("latlng", [])
    altitude = streams.get("altitude", [])
    time_offsets = streams.get("time", [])
    start_time = _parse_start(start_date)

    gpx_lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<gpx version="1.1" creator="strava_tiles"',
        '     xmlns="http://www.topografix.com/GPX/1/1"',
        '     xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"',
        '     xsi:schemaLocation="http://www.topografix.com/GPX/1/1 '
        'http://www.topografix.com/GPX/1/1/gpx.xsd">',
        "  <metadata>",
        f"    <name>{_escape_xml(name)}</name>",
    ]
    if start_time:
        gpx_lines.append(
            f"    <time>{start_time.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')}</time>"
        )
    gpx_lines.extend(
        [
            "  </metadata>",
            "  <trk>",
            f"    <name>{_escape_xml(name)}</name>",
            "    <trkseg>",
        ]
    )

    for i, point in enumerate(latlng):
        if not isinstance(point, (list, tuple)) or len(point) < 2:
            continue
        lat, lng = point[0], point[1]
        gpx_lines.append(f'      <trkpt lat="{lat:.7f}" lon="{lng:.7f}">')
        ele = altitude[i] if i < len(altitude) else None
        if ele is not None:
            gpx_lines.append(f"        <ele>{ele:.2f}</ele>")
        offset = time_offsets[i] if i < len(time_offsets) else None
        if start_time and offset is not None:
            point_dt = datetime.fromtimestamp(
                start_time.timestamp() + offset, tz=timezone.utc
            )
            gpx_lines.append(
                f"        <time>{point_dt.strftime('%Y-%m-%dT%H:%M:%SZ')}</time>"
            )
        gpx_lines.append("      </trkpt>")

    gpx_lines.extend(["    </trkseg>", "  </trk>", "</gpx>", ""])
    return "\n".join(gpx_lines)


class StravaImporter:
    """Fetch activities for one athlete and feed them into the tile store."""

    def __init__(
        self,
        access_token: str,
        gpx_dir: str | Path,
        store: TileStore,
        *,
        ingest_service: IngestService | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.access_token = access_token
        self.gpx_dir = Path(gpx_dir)
        self.store = store
        self.ingest_service = ingest_service or IngestService(store)
        self._session = session or requests.Session()

    def _get(self, path: str, params: Dict[str, Any] | None = None) -> Any:
        url = f"{STRAVA_BASE_URL}{path}"
        LOGGER.debug("GET %s params=%s", url, params)
        try:
            response = self._session.get(
                url,
                headers={"Authorization": f"Bearer {self.access_token}"},
                params=params,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException as exc:
            raise StravaAPIError(f"Request to {path} failed: {exc}") from exc
        if response.status_code >= 400:
            raise StravaAPIError(
                f"Strava API error status={response.status_code} path={path}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise StravaAPIError(f"Invalid JSON from {path}") from exc

    def list_activities(self, page: int = 1, per_page: int = STRAVA_IMPORT_PER_PAGE) -> List[Dict[str, Any]]:
        payload = self._get(
            "/athlete/activities", params={"page": page, "per_page": per_page}
        )
        if not isinstance(payload, list):
            raise StravaAPIError(
                f"Unexpected activities response type: {type(payload).__name__}"
            )
        return [item for item in payload if isinstance(item, dict)]

    def fetch_streams(self, activity_id: int) -> Dict[str, List[Any]]:
        payload = self._get(
            f"/activities/{activity_id}/streams",
            params={"keys": ",".join(STREAM_KEYS), "key_by_type": "true"},
        )
        result: Dict[str, List[Any]] = {}
        if isinstance(payload, dict):
            for key in STREAM_KEYS:
                stream = payload.get(key)
                if isinstance(stream, dict) and isinstance(stream.get("data"), list):
                    result[key] = stream["data"]
        else:
            LOGGER.warning("Unexpected streams response format: %s", type(payload))
        return result

    def _import_one(self, activity: Dict[str, Any], known_ids: set[int], result: ImportResult) -> None:
        activity_id = activity.get("id")
        if not isinstance(activity_id, int):
            LOGGER.debug("Ignoring activity without numeric id: %s", activity_id)
            return
        output_path = self.gpx_dir / f"activity_{activity_id}.gpx"
        if activity_id in known_ids or output_path.exists():
            result.skipped += 1
            return

        name = activity.get("name") or f"Activity {activity_id}"
        try:
            streams = self.fetch_streams(activity_id)
        except StravaAPIError as exc:
            LOGGER.error("Streams request failed for %s: %s", activity_id, exc)
            result.failed += 1
            return
        if not streams.get("latlng"):
            LOGGER.info("Activity %s has no GPS data; skipping", activity_id)
            result.skipped += 1
            return

        self.gpx_dir.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            streams_to_gpx(name, streams, activity.get("start_date")),
            encoding="utf-8",
        )
        LOGGER.info("Saved GPX %s", output_path)
        ingest = self.ingest_service.ingest_path(output_path)
        if ingest.ok:
            result.imported += 1
            result.new_tiles += ingest.tiles
        else:
            result.failed += 1

    def import_activities(
        self,
        page: int = 1,
        per_page: int = STRAVA_IMPORT_PER_PAGE,
        *,
        fetch_all: bool = False,
    ) -> ImportResult:
        """Import one page of activities, or every page when ``fetch_all``."""

        result = ImportResult()
        known_ids = self.store.imported_activity_ids()
        current = page
        pages_walked = 0
        while True:
            activities = self.list_activities(current, per_page)
            pages_walked += 1
            for activity in activities:
                self._import_one(activity, known_ids, result)
            if not fetch_all or len(activities) < per_page:
                break
            if STRAVA_IMPORT_MAX_PAGES and pages_walked >= STRAVA_IMPORT_MAX_PAGES:
                LOGGER.warning(
                    "Stopped after %d pages (STRAVA_IMPORT_MAX_PAGES)", pages_walked
                )
                break
            current += 1
        LOGGER.info(
            "Import complete imported=%d skipped=%d failed=%d new_tiles=%d",
            result.imported,
            result.skipped,
            result.failed,
            result.new_tiles,
        )
        return result


__all__ = ["ImportResult", "StravaImporter", "streams_to_gpx"]
