"""Command line entry point.

Sub-commands:

* ``ingest``: ingest every GPX file in a directory.
* ``stats``: print distance, Eddington number, Yard and Übersquadrat.
* ``map``: write an HTML map of the visited tiles.
* ``fetch``: download new Strava activities and ingest them.
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from .auth import TokenError, get_access_token
from .config import (
    ACCESS_TOKEN,
    GPX_DIR,
    MAP_OUTPUT_FILE,
    REFRESH_TOKEN,
    STRAVA_IMPORT_PER_PAGE,
    TILE_DB_PATH,
)
from .errors import StoreError, StravaAPIError
from .services import IngestService, StatsService
from .store import TileStore
from .strava_import import StravaImporter
from .visualization import create_tile_map


def _setup_logging(level: str = "INFO") -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, level),
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def _cmd_ingest(store: TileStore, args: argparse.Namespace) -> int:
    summary = IngestService(store).ingest_directory(args.gpx_dir)
    logging.info(
        "Added %d tile entries from %d files (%d skipped, %d failed); %d tiles stored",
        summary.total_tiles,
        summary.processed,
        summary.skipped,
        summary.failed,
        store.tile_count(),
    )
    return 1 if summary.failed else 0


def _cmd_stats(store: TileStore, _args: argparse.Namespace) -> int:
    stats = StatsService(store).summary()
    print(f"Tiles visited:     {stats.tile_count}")
    print(f"Activities:        {stats.activity_count}")
    print(f"Total distance:    {stats.total_distance_km:.2f} km")
    print(f"Eddington number:  {stats.eddington}")
    print(f"Yard (cluster):    {stats.max_cluster}")
    print(f"Übersquadrat:      {stats.max_square}x{stats.max_square}")
    return 0


def _cmd_map(store: TileStore, args: argparse.Namespace) -> int:
    geometry = StatsService(store).geometry()
    create_tile_map(geometry, output_html_path=args.output)
    logging.info("Map with %d tiles written to %s", len(geometry.tiles), args.output)
    return 0


def _resolve_access_token() -> str:
    if REFRESH_TOKEN:
        access_token, new_refresh = get_access_token(REFRESH_TOKEN)
        if new_refresh and new_refresh != REFRESH_TOKEN:
            logging.warning(
                "Strava rotated the refresh token (ends …%s). Update STRAVA_REFRESH_TOKEN.",
                new_refresh[-4:],
            )
        return access_token
    if ACCESS_TOKEN:
        return ACCESS_TOKEN
    raise TokenError("Set STRAVA_REFRESH_TOKEN or STRAVA_ACCESS_TOKEN first")


def _cmd_fetch(store: TileStore, args: argparse.Namespace) -> int:
    try:
        token = _resolve_access_token()
    except TokenError as exc:
        logging.error("Not authenticated: %s", exc)
        return 2
    importer = StravaImporter(token, args.gpx_dir, store)
    try:
        result = importer.import_activities(
            args.page, args.per_page, fetch_all=args.fetch_all
        )
    except StravaAPIError as exc:
        logging.error("Strava import failed: %s", exc)
        return 1
    return 1 if result.failed else 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="strava_tiles",
        description="Track visited map tiles from GPX files",
    )
    parser.add_argument("--db", default=TILE_DB_PATH, help="SQLite database path")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Python logging level",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Ingest GPX files from a directory")
    ingest.add_argument("--gpx-dir", default=GPX_DIR)
    ingest.set_defaults(handler=_cmd_ingest)

    stats = sub.add_parser("stats", help="Print tile statistics")
    stats.set_defaults(handler=_cmd_stats)

    map_cmd = sub.add_parser("map", help="Write an HTML tile map")
    map_cmd.add_argument("--output", default=MAP_OUTPUT_FILE)
    map_cmd.set_defaults(handler=_cmd_map)

    fetch = sub.add_parser("fetch", help="Import activities from Strava")
    fetch.add_argument("--gpx-dir", default=GPX_DIR)
    fetch.add_argument("--page", type=int, default=1)
    fetch.add_argument("--per-page", type=int, default=STRAVA_IMPORT_PER_PAGE)
    fetch.add_argument("--fetch-all", action="store_true")
    fetch.set_defaults(handler=_cmd_fetch)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    _setup_logging(args.log_level)
    try:
        with TileStore.open(args.db) as store:
            return args.handler(store, args)
    except StoreError as exc:
        logging.error("Tile database error (%s): %s", args.db, exc)
        return 1
