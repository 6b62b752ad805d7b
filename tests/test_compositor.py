"""Tests for downscaling and quadrant compositing."""

from __future__ import annotations

import numpy as np
import pytest

from conftest import BLUE, GREEN, RED, TILE, WHITE, solid
from tileunzoom.core.errors import DimensionMismatch, InvalidTileSize
from tileunzoom.core.types import Quadrant, TileCoord
from tileunzoom.reduce.compositor import (
    composite_quadrants,
    downscale_box,
    downscale_half,
    validate_tile_size,
)

PARENT = TileCoord(1, 0, 0)
HALF = TILE // 2


def quadrant_pixels(image: np.ndarray, quadrant: Quadrant) -> np.ndarray:
    left, top = quadrant.pixel_offset(TILE, TILE)
    return image[top:top + HALF, left:left + HALF]


class TestDownscaleBox:
    """Tests for the 2x2 area-average filter."""

    def test_solid_colour_is_preserved(self):
        result = downscale_box(solid((10, 20, 30, 255), size=2))
        assert result.shape == (1, 1, 4)
        np.testing.assert_array_equal(result[0, 0], [10, 20, 30, 255])

    def test_averages_each_block(self):
        arr = np.zeros((2, 4, 4), dtype=np.uint8)
        arr[..., 3] = 255
        arr[:, :2, 0] = [[0, 100], [200, 100]]  # left block red: mean 100
        arr[:, 2:, 1] = [[1, 2], [2, 2]]  # right block green: 7 / 4 rounds to 2
        result = downscale_box(arr)
        assert result.shape == (1, 2, 4)
        np.testing.assert_array_equal(result[0, 0], [100, 0, 0, 255])
        np.testing.assert_array_equal(result[0, 1], [0, 2, 0, 255])

    def test_transparent_pixels_do_not_bleed(self):
        """Colour comes only from opaque pixels; alpha is the plain mean."""
        arr = np.zeros((2, 2, 4), dtype=np.uint8)
        arr[0, 0] = RED
        result = downscale_box(arr)
        np.testing.assert_array_equal(result[0, 0], [255, 0, 0, 64])

    def test_fully_transparent_block(self):
        result = downscale_box(np.zeros((4, 4, 4), dtype=np.uint8))
        assert not result.any()

    def test_deterministic(self):
        rng = np.random.default_rng(1234)
        arr = rng.integers(0, 256, size=(16, 16, 4), dtype=np.uint8)
        np.testing.assert_array_equal(downscale_box(arr), downscale_box(arr.copy()))


class TestDownscaleHalf:
    @pytest.mark.parametrize("method", ["box", "lanczos"])
    def test_output_shape(self, method):
        arr = solid(GREEN, size=16)
        assert downscale_half(arr, method).shape == (8, 8, 4)

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            downscale_half(solid(RED), "bicubic")


class TestValidateTileSize:
    @pytest.mark.parametrize("size", [(255, 256), (256, 1), (0, 0), (3, 3)])
    def test_rejects_odd_or_tiny(self, size):
        with pytest.raises(InvalidTileSize):
            validate_tile_size(size)

    def test_accepts_non_square(self):
        validate_tile_size((512, 256))


class TestCompositeQuadrants:
    """Tests for placing children into their quadrants."""

    def test_four_children(self):
        children = {
            Quadrant.TOP_LEFT: solid(RED),
            Quadrant.TOP_RIGHT: solid(GREEN),
            Quadrant.BOTTOM_LEFT: solid(BLUE),
            Quadrant.BOTTOM_RIGHT: solid(WHITE),
        }
        result = composite_quadrants(PARENT, children, (TILE, TILE))

        assert result.shape == (TILE, TILE, 4)
        for quadrant, color in [
            (Quadrant.TOP_LEFT, RED),
            (Quadrant.TOP_RIGHT, GREEN),
            (Quadrant.BOTTOM_LEFT, BLUE),
            (Quadrant.BOTTOM_RIGHT, WHITE),
        ]:
            assert (quadrant_pixels(result, quadrant) == color).all(), quadrant

    def test_single_child_leaves_other_quadrants_transparent(self):
        child = solid(RED)
        result = composite_quadrants(PARENT, {Quadrant.TOP_LEFT: child}, (TILE, TILE))

        np.testing.assert_array_equal(
            quadrant_pixels(result, Quadrant.TOP_LEFT), downscale_box(child)
        )
        for quadrant in (Quadrant.TOP_RIGHT, Quadrant.BOTTOM_LEFT, Quadrant.BOTTOM_RIGHT):
            assert not quadrant_pixels(result, quadrant)[..., 3].any(), quadrant

    def test_explicit_absent_marker(self):
        children = {q: None for q in Quadrant}
        children[Quadrant.BOTTOM_RIGHT] = solid(BLUE)
        result = composite_quadrants(PARENT, children, (TILE, TILE))
        assert (quadrant_pixels(result, Quadrant.BOTTOM_RIGHT) == BLUE).all()
        assert not quadrant_pixels(result, Quadrant.TOP_LEFT).any()

    def test_no_children_gives_transparent_tile(self):
        result = composite_quadrants(PARENT, {}, (TILE, TILE))
        assert result.shape == (TILE, TILE, 4)
        assert not result.any()

    def test_non_square_tiles(self):
        child = np.full((4, 8, 4), GREEN, dtype=np.uint8)
        result = composite_quadrants(PARENT, {Quadrant.TOP_RIGHT: child}, (8, 4))
        assert result.shape == (4, 8, 4)
        assert (result[0:2, 4:8] == GREEN).all()
        assert not result[0:2, 0:4].any()

    def test_dimension_mismatch(self):
        children = {
            Quadrant.TOP_LEFT: solid(RED),
            Quadrant.TOP_RIGHT: solid(GREEN, size=TILE * 2),
        }
        with pytest.raises(DimensionMismatch) as exc_info:
            composite_quadrants(PARENT, children, (TILE, TILE))
        assert exc_info.value.coord == TileCoord(2, 1, 0)
        assert exc_info.value.actual == (TILE * 2, TILE * 2)
        assert exc_info.value.expected == (TILE, TILE)

    def test_lanczos_solid_colour(self):
        result = composite_quadrants(
            PARENT, {Quadrant.TOP_LEFT: solid(RED, size=16)}, (16, 16), method="lanczos"
        )
        diff = np.abs(result[0:8, 0:8].astype(int) - np.array(RED))
        assert diff.max() <= 1
        assert not result[8:, :].any()
