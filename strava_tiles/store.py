"""SQLite persistence for visited tiles and ingestion ledgers.

The store owns a single connection handed to it by the caller (or opened via
:meth:`TileStore.open`). Every tile batch is written in one transaction so
readers never observe a partially applied file.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path
from threading import RLock
from typing import Iterable, List, Optional, Set

from .config import TILE_ZOOM
from .errors import StoreError
from .models import ActivityRecord, TileRecord, TileVisit

LOGGER = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS tiles (
        x INTEGER NOT NULL,
        y INTEGER NOT NULL,
        z INTEGER NOT NULL,
        first_visited_at INTEGER NOT NULL,
        activity_id TEXT,
        activity_title TEXT,
        gpx_filename TEXT,
        PRIMARY KEY (x, y, z)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS processed_files (
        filename TEXT PRIMARY KEY,
        processed_at INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS imported_activities (
        activity_id INTEGER PRIMARY KEY,
        name TEXT,
        distance_km REAL NOT NULL DEFAULT 0,
        imported_at INTEGER NOT NULL
    )
    """,
)

# Provenance follows the strictly earlier visit; ties keep what is stored.
# All right-hand sides see the row as it was before the update.
_UPSERT_TILE = """
    INSERT INTO tiles (
        x, y, z, first_visited_at, activity_id, activity_title, gpx_filename
    ) VALUES (?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(x, y, z) DO UPDATE SET
        activity_id = CASE
            WHEN excluded.first_visited_at < tiles.first_visited_at
            THEN excluded.activity_id ELSE tiles.activity_id END,
        activity_title = CASE
            WHEN excluded.first_visited_at < tiles.first_visited_at
            THEN excluded.activity_title ELSE tiles.activity_title END,
        gpx_filename = CASE
            WHEN excluded.first_visited_at < tiles.first_visited_at
            THEN excluded.gpx_filename ELSE tiles.gpx_filename END,
        first_visited_at = MIN(tiles.first_visited_at, excluded.first_visited_at)
"""


def _now() -> int:
    return int(time.time())


class TileStore:
    """Handle over the tiles database.

    Callers own the lifecycle: use ``with TileStore.open(path) as store`` or
    call :meth:`close` explicitly.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        self._lock = RLock()
        self._init_schema()

    @classmethod
    def open(cls, path: str | Path) -> "TileStore":
        target = str(path)
        if target != ":memory:":
            Path(target).parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(target, check_same_thread=False)
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to open tile database {path}: {exc}") from exc
        LOGGER.debug("Opened tile database %s", path)
        return cls(conn)

    def __enter__(self) -> "TileStore":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _init_schema(self) -> None:
        try:
            with self._lock, self._conn:
                for statement in _SCHEMA:
                    self._conn.execute(statement)
        except sqlite3.Error as exc:
            raise StoreError(f"Schema initialisation failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Tiles
    # ------------------------------------------------------------------
    def upsert_tiles(self, visits: Iterable[TileVisit], zoom: int) -> int:
        """Apply a file's tile batch atomically and return its size.

        Raises:
            StoreError: If any row fails; no row of the batch is kept.
        """

        rows = [
            (
                v.coordinate.x,
                v.coordinate.y,
                zoom,
                v.visited_at,
                v.provenance.activity_id,
                v.provenance.activity_title,
                v.provenance.filename,
            )
            for v in visits
        ]
        if not rows:
            return 0
        try:
            with self._lock, self._conn:
                self._conn.executemany(_UPSERT_TILE, rows)
        except sqlite3.Error as exc:
            LOGGER.error("Tile batch of %d rows rolled back: %s", len(rows), exc)
            raise StoreError(f"Tile batch failed: {exc}") from exc
        return len(rows)

    def get_all_tiles(self, zoom: int = TILE_ZOOM) -> List[TileRecord]:
        """Return every tile stored at ``zoom``, ordered by ``(x, y)``."""

        try:
            with self._lock:
                cursor = self._conn.execute(
                    "SELECT x, y, z, first_visited_at, activity_id, "
                    "activity_title, gpx_filename FROM tiles "
                    "WHERE z = ? ORDER BY x, y",
                    (zoom,),
                )
                rows = cursor.fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Reading tiles failed: {exc}") from exc
        return [TileRecord(*row) for row in rows]

    def get_tile(self, x: int, y: int, zoom: int) -> Optional[TileRecord]:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT x, y, z, first_visited_at, activity_id, "
                    "activity_title, gpx_filename FROM tiles "
                    "WHERE x = ? AND y = ? AND z = ?",
                    (x, y, zoom),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Reading tile ({x}, {y}) failed: {exc}") from exc
        return TileRecord(*row) if row else None

    def tile_count(self, zoom: int = TILE_ZOOM) -> int:
        return int(
            self._scalar("SELECT COUNT(*) FROM tiles WHERE z = ?", (zoom,)) or 0
        )

    # ------------------------------------------------------------------
    # Processed file ledger
    # ------------------------------------------------------------------
    def is_file_processed(self, filename: str) -> bool:
        count = self._scalar(
            "SELECT COUNT(*) FROM processed_files WHERE filename = ?", (filename,)
        )
        return bool(count)

    def mark_file_processed(self, filename: str) -> None:
        self._write(
            "INSERT OR IGNORE INTO processed_files (filename, processed_at) "
            "VALUES (?, ?)",
            (filename, _now()),
        )

    # ------------------------------------------------------------------
    # Activity import ledger
    # ------------------------------------------------------------------
    def record_activity(
        self, activity_id: int, name: Optional[str], distance_km: float
    ) -> bool:
        """Insert an activity if its id is new. Returns True when inserted."""

        changed = self._write(
            "INSERT OR IGNORE INTO imported_activities "
            "(activity_id, name, distance_km, imported_at) VALUES (?, ?, ?, ?)",
            (activity_id, name, distance_km, _now()),
        )
        return changed > 0

    def get_activity(self, activity_id: int) -> Optional[ActivityRecord]:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT activity_id, name, distance_km, imported_at "
                    "FROM imported_activities WHERE activity_id = ?",
                    (activity_id,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Reading activity {activity_id} failed: {exc}") from exc
        return ActivityRecord(*row) if row else None

    def imported_activity_ids(self) -> Set[int]:
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT activity_id FROM imported_activities"
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Reading activity ids failed: {exc}") from exc
        return {int(row[0]) for row in rows}

    def activity_distances(self) -> List[float]:
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT distance_km FROM imported_activities"
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Reading activity distances failed: {exc}") from exc
        return [float(row[0]) for row in rows]

    def activity_count(self) -> int:
        return int(self._scalar("SELECT COUNT(*) FROM imported_activities") or 0)

    def total_distance_km(self) -> float:
        total = self._scalar("SELECT SUM(distance_km) FROM imported_activities")
        return round(float(total or 0.0), 2)

    # ------------------------------------------------------------------
    def _scalar(self, sql: str, params: tuple = ()) -> object:
        try:
            with self._lock:
                row = self._conn.execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Query failed: {exc}") from exc
        return row[0] if row else None

    def _write(self, sql: str, params: tuple) -> int:
        try:
            with self._lock, self._conn:
                cursor = self._conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise StoreError(f"Write failed: {exc}") from exc
        return cursor.rowcount


__all__ = ["TileStore"]
