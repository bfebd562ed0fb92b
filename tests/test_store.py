"""Tests for the SQLite tile store and its merge semantics."""

from __future__ import annotations

from pathlib import Path

import pytest

from strava_tiles.errors import StoreError
from strava_tiles.models import Provenance, TileCoordinate, TileVisit
from strava_tiles.store import TileStore

Z = 14


def _visit(x: int, y: int, at: int, source: str) -> TileVisit:
    return TileVisit(
        coordinate=TileCoordinate(x, y),
        visited_at=at,
        provenance=Provenance(
            activity_id=source, activity_title=f"title {source}", filename=f"{source}.gpx"
        ),
    )


def test_insert_then_read_back(store: TileStore) -> None:
    assert store.upsert_tiles([_visit(3, 4, 100, "a"), _visit(1, 2, 50, "a")], Z) == 2

    tiles = store.get_all_tiles()

    assert [(t.x, t.y) for t in tiles] == [(1, 2), (3, 4)]
    assert tiles[0].z == Z
    assert tiles[0].first_visited_at == 50
    assert tiles[0].activity_title == "title a"
    assert tiles[0].gpx_filename == "a.gpx"
    assert store.tile_count() == 2


def test_earlier_visit_replaces_time_and_provenance(store: TileStore) -> None:
    store.upsert_tiles([_visit(5, 5, 200, "late")], Z)
    store.upsert_tiles([_visit(5, 5, 100, "early")], Z)

    tile = store.get_tile(5, 5, Z)

    assert tile is not None
    assert tile.first_visited_at == 100
    assert tile.activity_id == "early"
    assert tile.gpx_filename == "early.gpx"


def test_later_visit_changes_nothing(store: TileStore) -> None:
    store.upsert_tiles([_visit(5, 5, 100, "first")], Z)
    store.upsert_tiles([_visit(5, 5, 300, "second")], Z)

    tile = store.get_tile(5, 5, Z)

    assert tile.first_visited_at == 100
    assert tile.activity_id == "first"


def test_tie_keeps_existing_provenance(store: TileStore) -> None:
    store.upsert_tiles([_visit(7, 8, 100, "first")], Z)
    store.upsert_tiles([_visit(7, 8, 100, "second")], Z)

    tile = store.get_tile(7, 8, Z)

    assert tile.first_visited_at == 100
    assert tile.activity_id == "first"
    assert tile.activity_title == "title first"


def test_first_visit_is_minimum_over_any_order(store: TileStore) -> None:
    offered = [400, 250, 900, 120, 120, 600]
    for i, at in enumerate(offered):
        store.upsert_tiles([_visit(1, 1, at, f"f{i}")], Z)

    tile = store.get_tile(1, 1, Z)

    assert tile.first_visited_at == min(offered)
    assert tile.activity_id == "f3"


def test_reapplying_a_batch_is_a_no_op(store: TileStore) -> None:
    batch = [_visit(1, 1, 10, "a"), _visit(2, 1, 20, "a")]
    store.upsert_tiles(batch, Z)
    before = store.get_all_tiles()

    store.upsert_tiles(batch, Z)

    assert store.get_all_tiles() == before


def test_failed_batch_is_rolled_back(store: TileStore) -> None:
    good = _visit(1, 1, 10, "a")
    bad = _visit(2, 2, 10, "a")
    bad.visited_at = None  # violates NOT NULL

    with pytest.raises(StoreError):
        store.upsert_tiles([good, bad], Z)

    assert store.get_all_tiles() == []


def test_empty_batch(store: TileStore) -> None:
    assert store.upsert_tiles([], Z) == 0


def test_processed_file_ledger(store: TileStore) -> None:
    assert not store.is_file_processed("a.gpx")
    store.mark_file_processed("a.gpx")
    store.mark_file_processed("a.gpx")
    assert store.is_file_processed("a.gpx")
    assert not store.is_file_processed("b.gpx")


def test_activity_ledger_is_insert_only(store: TileStore) -> None:
    assert store.record_activity(42, "Morning Run", 10.5) is True
    assert store.record_activity(42, "Renamed", 99.0) is False

    record = store.get_activity(42)

    assert record is not None
    assert record.name == "Morning Run"
    assert record.distance_km == 10.5
    assert store.get_activity(43) is None


def test_activity_aggregates(store: TileStore) -> None:
    store.record_activity(1, "a", 10.004)
    store.record_activity(2, "b", 5.5)
    store.record_activity(3, None, 0.0)

    assert store.activity_count() == 3
    assert store.imported_activity_ids() == {1, 2, 3}
    assert sorted(store.activity_distances()) == [0.0, 5.5, 10.004]
    assert store.total_distance_km() == 15.5


def test_data_survives_reopen(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "tiles.db"
    with TileStore.open(path) as first:
        first.upsert_tiles([_visit(9, 9, 5, "a")], Z)
        first.mark_file_processed("a.gpx")

    with TileStore.open(path) as second:
        assert second.tile_count() == 1
        assert second.is_file_processed("a.gpx")


def test_in_memory_database() -> None:
    with TileStore.open(":memory:") as handle:
        handle.upsert_tiles([_visit(0, 0, 1, "a")], Z)
        assert handle.tile_count() == 1


def test_reads_are_scoped_to_one_zoom(store: TileStore) -> None:
    store.upsert_tiles([_visit(1, 1, 10, "a"), _visit(2, 2, 10, "a")], Z)
    store.upsert_tiles([_visit(1, 1, 5, "b")], Z + 2)

    assert [(t.x, t.y) for t in store.get_all_tiles(Z)] == [(1, 1), (2, 2)]
    assert store.get_all_tiles(Z)[0].first_visited_at == 10
    assert store.tile_count(Z) == 2
    assert [t.z for t in store.get_all_tiles(Z + 2)] == [Z + 2]
    assert store.tile_count(Z + 2) == 1
