"""Quadrant compositing: four child tiles in, one parent tile out."""

from __future__ import annotations

import logging
from typing import Mapping

import numpy as np

from tileunzoom.config import CHANNELS, DEFAULT_RESAMPLE, RESAMPLE_METHODS
from tileunzoom.core.errors import DimensionMismatch, InvalidTileSize
from tileunzoom.core.types import Quadrant, TileCoord

from .backends import PillowBackend

logger = logging.getLogger(__name__)


def validate_tile_size(tile_size: tuple[int, int]) -> None:
    """Raise :class:`InvalidTileSize` unless both dimensions split evenly in two."""
    width, height = tile_size
    if width < 2 or height < 2 or width % 2 or height % 2:
        raise InvalidTileSize(
            f"Tile size {width}x{height} cannot be split into quadrants "
            "(width and height must be even and at least 2)"
        )


def downscale_box(arr: np.ndarray) -> np.ndarray:
    """Halve an RGBA array by averaging each 2x2 block.

    Colors are averaged weighted by alpha (premultiplied), so a transparent
    pixel contributes nothing to its block's color. All arithmetic is integer
    with round-half-up, which keeps the output bit-exact across runs and
    platforms.

    Args:
        arr: numpy array (H, W, 4) uint8 with even H and W

    Returns:
        numpy array (H/2, W/2, 4) uint8
    """
    height, width = arr.shape[:2]
    blocks = arr.reshape(height // 2, 2, width // 2, 2, CHANNELS).astype(np.uint32)
    rgb = blocks[..., :3]
    alpha = blocks[..., 3:]

    alpha_sum = alpha.sum(axis=(1, 3))
    weighted = (rgb * alpha).sum(axis=(1, 3))

    out = np.zeros((height // 2, width // 2, CHANNELS), dtype=np.uint8)
    safe_sum = np.maximum(alpha_sum, 1)
    color = (weighted + safe_sum // 2) // safe_sum
    out[..., :3] = np.where(alpha_sum > 0, color, 0).astype(np.uint8)
    out[..., 3] = ((alpha_sum[..., 0] + 2) // 4).astype(np.uint8)
    return out


def downscale_half(arr: np.ndarray, method: str = DEFAULT_RESAMPLE) -> np.ndarray:
    """Halve a tile with the given filter (``"box"`` or ``"lanczos"``)."""
    if method == "box":
        return downscale_box(arr)
    if method == "lanczos":
        height, width = arr.shape[:2]
        return PillowBackend.resize_lanczos(arr, (width // 2, height // 2))
    raise ValueError(f"Unknown resample method {method!r}; expected one of {RESAMPLE_METHODS}")


def check_dimensions(
    coord: TileCoord, image: np.ndarray, tile_size: tuple[int, int]
) -> None:
    """Raise :class:`DimensionMismatch` if ``image`` is not ``tile_size``."""
    height, width = image.shape[:2]
    if (width, height) != tuple(tile_size) or image.ndim != 3 or image.shape[2] != CHANNELS:
        raise DimensionMismatch(coord, (width, height), tuple(tile_size))


def composite_quadrants(
    parent: TileCoord,
    children: Mapping[Quadrant, np.ndarray | None],
    tile_size: tuple[int, int],
    method: str = DEFAULT_RESAMPLE,
) -> np.ndarray:
    """Build a parent tile from up to four children.

    Each present child is halved and copied into its quadrant. Quadrants
    whose child is missing (absent from ``children`` or ``None``) stay fully
    transparent. The result is always exactly ``tile_size``.

    Args:
        parent: Coordinate of the tile being built
        children: Child images keyed by quadrant
        tile_size: Pyramid tile size as (width, height)
        method: Downscale filter, one of ``RESAMPLE_METHODS``

    Returns:
        numpy array (height, width, 4) uint8

    Raises:
        DimensionMismatch: If any child is not ``tile_size``
        InvalidTileSize: If ``tile_size`` cannot be halved
    """
    validate_tile_size(tile_size)
    width, height = tile_size

    # Check every child first so a bad tile never yields a half-built parent
    for quadrant, image in children.items():
        if image is not None:
            check_dimensions(parent.child(quadrant), image, tile_size)

    output = PillowBackend.new_transparent(width, height)
    half_w, half_h = width // 2, height // 2
    for quadrant in Quadrant:
        image = children.get(quadrant)
        if image is None:
            continue
        left, top = quadrant.pixel_offset(width, height)
        output[top:top + half_h, left:left + half_w] = downscale_half(image, method)

    present = sum(1 for image in children.values() if image is not None)
    logger.debug("Composited %s from %d/4 children", parent, present)
    return output
