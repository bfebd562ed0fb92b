"""Tests for file ingestion into the tile store."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from strava_tiles.errors import StoreError
from strava_tiles.extraction import XmlPointExtractor
from strava_tiles.projection import project
from strava_tiles.services.ingest_service import IngestService, IngestServiceConfig
from strava_tiles.store import TileStore
from strava_tiles.timeutils import parse_iso8601

T_EARLY = "2024-01-01T08:00:00Z"
T_LATE = "2024-06-01T08:00:00Z"

# Two points in the same zoom-14 tile plus one clearly in another tile.
SAME_A = (52.5200, 13.4050)
SAME_B = (52.5201, 13.4051)
OTHER = (52.5600, 13.5000)


def test_ingest_counts_distinct_tiles(store: TileStore, gpx_builder) -> None:
    assert project(*SAME_A) == project(*SAME_B)
    assert project(*SAME_A) != project(*OTHER)
    content = gpx_builder(
        [(*SAME_A, T_LATE), (*SAME_B, T_EARLY), (*OTHER, T_LATE)]
    )

    result = IngestService(store).ingest("activity_100.gpx", content)

    assert result.ok and not result.skipped
    assert result.tiles == 2
    tile = store.get_tile(*project(*SAME_A), 14)
    assert tile.first_visited_at == parse_iso8601(T_EARLY)
    assert tile.activity_id == "100"
    assert tile.activity_title == "Morning Run"
    assert tile.gpx_filename == "activity_100.gpx"
    assert store.is_file_processed("activity_100.gpx")


def test_second_ingest_of_same_filename_is_skipped(store: TileStore, gpx_builder) -> None:
    content = gpx_builder([(*SAME_A, T_LATE), (*OTHER, T_LATE)])
    service = IngestService(store)
    service.ingest("activity_1.gpx", content)

    again = service.ingest("activity_1.gpx", content)

    assert again.skipped
    assert again.tiles == 0
    assert store.tile_count() == 2


def test_skipped_file_is_not_parsed(store: TileStore) -> None:
    class ExplodingExtractor:
        def extract(self, content, filename):  # pragma: no cover - must not run
            raise AssertionError("extractor called for processed file")

    store.mark_file_processed("done.gpx")
    service = IngestService(store, IngestServiceConfig(extractor=ExplodingExtractor()))

    assert service.ingest("done.gpx", "<gpx/>").skipped


def test_merge_across_files_keeps_minimum_and_first_writer_on_tie(
    store: TileStore, gpx_builder
) -> None:
    service = IngestService(store)
    coord = project(*SAME_A)

    service.ingest("activity_1.gpx", gpx_builder([(*SAME_A, T_LATE)], name="Late"))
    service.ingest("activity_2.gpx", gpx_builder([(*SAME_A, T_EARLY)], name="Early"))
    service.ingest("activity_3.gpx", gpx_builder([(*SAME_A, T_EARLY)], name="Tie"))

    tile = store.get_tile(coord.x, coord.y, 14)
    assert tile.first_visited_at == parse_iso8601(T_EARLY)
    assert tile.activity_title == "Early"
    assert tile.activity_id == "2"


def test_activity_distance_is_recorded_once(store: TileStore, gpx_builder) -> None:
    service = IngestService(store)
    service.ingest("activity_7.gpx", gpx_builder([(0.0, 0.0, T_EARLY), (0.0, 1.0, T_LATE)]))
    # Same id under another extension: tiles merge but the ledger keeps the first distance.
    service.ingest("activity_7.fit", gpx_builder([(0.0, 0.0, T_EARLY)], name="Other"))

    record = store.get_activity(7)
    assert record.distance_km == pytest.approx(111.19, abs=0.01)
    assert record.name == "Morning Run"


def test_non_numeric_filename_is_not_recorded_as_activity(
    store: TileStore, gpx_builder
) -> None:
    result = IngestService(store).ingest("commute.gpx", gpx_builder([(*SAME_A, T_EARLY)]))

    assert result.tiles == 1
    assert store.activity_count() == 0
    assert store.get_tile(*project(*SAME_A), 14).activity_id == "commute"


def test_out_of_range_points_are_rejected(
    store: TileStore, gpx_builder, caplog: pytest.LogCaptureFixture
) -> None:
    content = gpx_builder([(89.9, 0.0, T_EARLY), (*SAME_A, T_EARLY)])

    with caplog.at_level(logging.WARNING):
        result = IngestService(store).ingest("activity_9.gpx", content)

    assert result.tiles == 1
    assert "outside the projectable range" in caplog.text


def test_store_failure_leaves_file_retry_eligible(
    store: TileStore, gpx_builder, monkeypatch: pytest.MonkeyPatch
) -> None:
    content = gpx_builder([(*SAME_A, T_EARLY)])
    service = IngestService(store)

    def boom(*_args, **_kwargs):
        raise StoreError("disk full")

    monkeypatch.setattr(store, "upsert_tiles", boom)
    failed = service.ingest("activity_5.gpx", content)

    assert not failed.ok
    assert "disk full" in failed.error
    assert not store.is_file_processed("activity_5.gpx")
    assert store.activity_count() == 0

    monkeypatch.undo()
    retried = service.ingest("activity_5.gpx", content)
    assert retried.ok and retried.tiles == 1
    assert store.is_file_processed("activity_5.gpx")


def test_empty_track_is_marked_processed(store: TileStore) -> None:
    result = IngestService(store).ingest("activity_11.gpx", "<gpx></gpx>")

    assert result.ok and result.tiles == 0
    assert store.is_file_processed("activity_11.gpx")
    assert store.get_activity(11).distance_km == 0.0


def test_ingest_directory_continues_after_failures(
    store: TileStore, gpx_builder, tmp_path: Path
) -> None:
    gpx_dir = tmp_path / "gpx"
    gpx_dir.mkdir()
    (gpx_dir / "activity_1.gpx").write_text(gpx_builder([(*SAME_A, T_EARLY)]), encoding="utf-8")
    (gpx_dir / "activity_2.gpx").write_text('<gpx><trkpt lat="1"', encoding="utf-8")
    (gpx_dir / "activity_3.gpx").write_text(gpx_builder([(*OTHER, T_EARLY)]), encoding="utf-8")
    (gpx_dir / "notes.txt").write_text("ignored", encoding="utf-8")
    service = IngestService(store, IngestServiceConfig(extractor=XmlPointExtractor()))

    summary = service.ingest_directory(gpx_dir)

    assert [r.filename for r in summary.results] == [
        "activity_1.gpx",
        "activity_2.gpx",
        "activity_3.gpx",
    ]
    assert summary.processed == 2
    assert summary.failed == 1
    assert summary.total_tiles == 2
    assert not store.is_file_processed("activity_2.gpx")

    rerun = service.ingest_directory(gpx_dir)
    assert rerun.skipped == 2
    assert rerun.total_tiles == 0


def test_missing_directory_is_empty_summary(store: TileStore, tmp_path: Path) -> None:
    summary = IngestService(store).ingest_directory(tmp_path / "nope")
    assert summary.results == []


def test_non_finite_point_is_skipped_not_fatal(store: TileStore, gpx_builder) -> None:
    content = gpx_builder([(*SAME_A, T_EARLY), ("1e999", 13.0, None)])

    result = IngestService(store).ingest("activity_1.gpx", content)

    assert result.ok
    assert result.tiles == 1
    assert store.get_activity(1).distance_km == 0.0


def test_nan_point_does_not_inflate_recorded_distance(store: TileStore, gpx_builder) -> None:
    content = gpx_builder(
        [(52.52, 13.405, T_EARLY), ("nan", 13.0, T_EARLY), (52.53, 13.41, T_LATE)]
    )

    IngestService(store).ingest("activity_3.gpx", content)

    # Only the leg between the two finite points counts (about 1.16 km).
    assert store.get_activity(3).distance_km == pytest.approx(1.16, abs=0.02)
    assert store.total_distance_km() == pytest.approx(1.16, abs=0.02)


def test_directory_run_survives_infinite_coordinates(
    store: TileStore, gpx_builder, tmp_path: Path
) -> None:
    gpx_dir = tmp_path / "gpx"
    gpx_dir.mkdir()
    (gpx_dir / "activity_1.gpx").write_text(
        gpx_builder([("inf", 13.0, T_EARLY), (*SAME_A, T_EARLY), (*OTHER, T_LATE)]),
        encoding="utf-8",
    )
    (gpx_dir / "activity_2.gpx").write_text(
        gpx_builder([(*OTHER, T_EARLY)]), encoding="utf-8"
    )

    summary = IngestService(store).ingest_directory(gpx_dir)

    assert summary.processed == 2
    assert summary.failed == 0
    assert store.tile_count() == 2
