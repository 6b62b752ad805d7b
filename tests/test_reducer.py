"""Tests for level reduction."""

from __future__ import annotations

import numpy as np
import pytest

from conftest import BLUE, GREEN, RED, TILE, WHITE
from tileunzoom.core.types import TileCoord
from tileunzoom.reduce.reducer import LevelReducer, chunked, parent_coords
from tileunzoom.reduce.store import TileStore

HALF = TILE // 2


class TestParentCoords:
    """Tests for parent discovery."""

    def test_distinct_floor_parents(self):
        children = [
            TileCoord(3, 0, 0),
            TileCoord(3, 1, 1),
            TileCoord(3, 5, 2),
            TileCoord(3, 4, 3),
            TileCoord(3, 7, 7),
        ]
        assert parent_coords(children) == [
            TileCoord(2, 0, 0),
            TileCoord(2, 2, 1),
            TileCoord(2, 3, 3),
        ]

    def test_empty(self):
        assert parent_coords([]) == []


class TestChunked:
    def test_splits_in_order(self):
        items = [TileCoord(1, x, 0) for x in range(5)]
        assert list(chunked(items, 2)) == [items[0:2], items[2:4], items[4:5]]

    def test_empty(self):
        assert list(chunked([], 64)) == []


class TestLevelReducer:
    """Tests for LevelReducer.reduce."""

    @pytest.fixture
    def reducer(self, store: TileStore) -> LevelReducer:
        return LevelReducer(store, (TILE, TILE), workers=1)

    def test_four_colour_scenario(self, store, reducer, four_colour_source):
        result = reducer.reduce(2)

        assert result.zoom == 1
        assert result.written == 1
        assert result.failures == []
        assert store.list_zoom(1) == [TileCoord(1, 0, 0)]

        tile = store.read(TileCoord(1, 0, 0))
        assert tile.shape == (TILE, TILE, 4)
        assert (tile[:HALF, :HALF] == RED).all()
        assert (tile[:HALF, HALF:] == GREEN).all()
        assert (tile[HALF:, :HALF] == BLUE).all()
        assert (tile[HALF:, HALF:] == WHITE).all()

    def test_single_child_scenario(self, store, reducer, write_tile):
        write_tile(2, 0, 0, RED)
        reducer.reduce(2)

        tile = store.read(TileCoord(1, 0, 0))
        assert (tile[:HALF, :HALF] == RED).all()
        assert not tile[:HALF, HALF:, 3].any()
        assert not tile[HALF:, :, 3].any()

    def test_produces_exactly_the_implied_parents(self, store, reducer, write_tile):
        children = [(0, 0), (3, 0), (3, 3), (6, 5), (7, 5)]
        for x, y in children:
            write_tile(3, x, y, GREEN)

        result = reducer.reduce(3)

        expected = sorted({TileCoord(2, x // 2, y // 2) for x, y in children})
        assert store.list_zoom(2) == expected
        assert result.written == len(expected)

    def test_corrupt_child_is_recorded_and_level_continues(self, store, reducer, write_tile):
        write_tile(2, 0, 0, RED)
        write_tile(2, 3, 3, BLUE)
        corrupt = store.path_for(TileCoord(2, 1, 0))
        corrupt.parent.mkdir(parents=True, exist_ok=True)
        corrupt.write_bytes(b"garbage")

        result = reducer.reduce(2)

        assert result.written == 1
        assert [f.coord for f in result.failures] == [TileCoord(1, 0, 0)]
        assert result.failures[0].kind == "TileReadFailure"
        assert not store.exists(TileCoord(1, 0, 0))
        assert store.exists(TileCoord(1, 1, 1))

    def test_dimension_mismatch_is_recorded(self, store, reducer, write_tile):
        write_tile(2, 0, 0, RED, size=TILE * 2)
        write_tile(2, 2, 0, RED)

        result = reducer.reduce(2)

        assert result.written == 1
        assert result.failures[0].coord == TileCoord(1, 0, 0)
        assert result.failures[0].kind == "DimensionMismatch"

    def test_write_failure_is_recorded(self, store, reducer, write_tile):
        write_tile(2, 0, 0, RED)
        (store.root / "1").write_text("not a directory")

        result = reducer.reduce(2)

        assert result.written == 0
        assert result.failures[0].kind == "TileWriteFailure"

    def test_failed_parent_removes_tile_from_earlier_run(self, store, reducer, write_tile):
        write_tile(2, 0, 0, RED)
        reducer.reduce(2)
        assert store.exists(TileCoord(1, 0, 0))

        store.path_for(TileCoord(2, 0, 0)).write_bytes(b"garbage")
        result = reducer.reduce(2)

        assert result.failures[0].coord == TileCoord(1, 0, 0)
        assert not store.exists(TileCoord(1, 0, 0))

    def test_idempotent(self, store, reducer, four_colour_source):
        reducer.reduce(2)
        first = store.path_for(TileCoord(1, 0, 0)).read_bytes()
        reducer.reduce(2)
        assert store.path_for(TileCoord(1, 0, 0)).read_bytes() == first

    def test_progress_callback(self, reducer, write_tile):
        write_tile(2, 0, 0)
        write_tile(2, 2, 2)
        calls = []
        reducer.reduce(2, progress_callback=lambda *args: calls.append(args))
        assert calls[0] == ("level 1", 0, 2)
        assert calls[-1] == ("level 1", 2, 2)
        assert len(calls) == 3

    def test_prune_removes_stale_tiles(self, store, reducer, write_tile):
        write_tile(2, 0, 0, RED)
        write_tile(1, 1, 1, BLUE)  # stale, nothing at zoom 2 implies it

        result = reducer.reduce(2, prune=True)

        assert result.pruned == 1
        assert store.list_zoom(1) == [TileCoord(1, 0, 0)]

    def test_without_prune_stale_tiles_stay(self, store, reducer, write_tile):
        write_tile(2, 0, 0, RED)
        write_tile(1, 1, 1, BLUE)
        reducer.reduce(2)
        assert store.list_zoom(1) == [TileCoord(1, 0, 0), TileCoord(1, 1, 1)]

    def test_rejects_zoom_zero(self, reducer):
        with pytest.raises(ValueError):
            reducer.reduce(0)

    def test_rejects_unknown_method(self, store):
        with pytest.raises(ValueError):
            LevelReducer(store, (TILE, TILE), method="nearest")


class TestLevelReducerProcessPool:
    """The process pool must produce the same files as inline execution."""

    def test_pool_matches_inline(self, temp_dir):
        from PIL import Image

        inline = TileStore(temp_dir / "inline")
        pooled = TileStore(temp_dir / "pooled")
        colors = [RED, GREEN, BLUE, WHITE]
        for i, (x, y) in enumerate([(0, 0), (1, 0), (2, 3), (5, 5), (6, 1)]):
            for target in (inline, pooled):
                path = target.path_for(TileCoord(3, x, y))
                path.parent.mkdir(parents=True, exist_ok=True)
                Image.new("RGBA", (TILE, TILE), colors[i % 4]).save(path)

        inline_result = LevelReducer(inline, (TILE, TILE), workers=1).reduce(3)
        pooled_result = LevelReducer(pooled, (TILE, TILE), workers=2, chunk_size=3).reduce(3)

        assert inline_result.written == pooled_result.written == 4
        assert inline.list_zoom(2) == pooled.list_zoom(2)
        for coord in inline.list_zoom(2):
            np.testing.assert_array_equal(inline.read(coord), pooled.read(coord))
            assert inline.path_for(coord).read_bytes() == pooled.path_for(coord).read_bytes()
