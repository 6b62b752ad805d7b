"""Worker functions for parallel level reduction.

This module exists separately from reducer.py so that the worker functions are
importable by ``ProcessPoolExecutor`` child processes on every platform
(spawn-based start methods cannot pickle functions defined in ``__main__``).
"""

from __future__ import annotations

import logging
from pathlib import Path

from tileunzoom.core.errors import TileError
from tileunzoom.core.types import TileCoord, TileFailure

from .compositor import composite_quadrants
from .store import TileStore

logger = logging.getLogger(__name__)


def discard_stale(store: TileStore, parent: TileCoord) -> None:
    """Remove a tile left at ``parent`` by an earlier run.

    A parent that was not produced must read as absent to the level below.
    """
    try:
        store.delete(parent)
    except OSError as e:
        logger.error("Could not remove stale tile %s: %s", parent, e)


def build_parent(
    store: TileStore,
    parent: TileCoord,
    tile_size: tuple[int, int],
    method: str,
) -> TileFailure | None:
    """Read the children of ``parent``, composite them and write the result.

    On failure any existing tile at ``parent`` is removed.

    Returns:
        ``None`` on success, otherwise a :class:`TileFailure` describing why
        the parent tile was not produced
    """
    try:
        children = {
            quadrant: store.read(child)
            for quadrant, child in parent.children().items()
        }
        image = composite_quadrants(parent, children, tile_size, method)
        store.write(parent, image)
    except TileError as e:
        logger.warning("Failed to build %s: %s", parent, e)
        discard_stale(store, parent)
        return TileFailure(parent, type(e).__name__, str(e))
    return None


def build_parent_safely(
    store: TileStore,
    parent: TileCoord,
    tile_size: tuple[int, int],
    method: str,
) -> TileFailure | None:
    """:func:`build_parent` that also records unexpected errors as failures."""
    try:
        return build_parent(store, parent, tile_size, method)
    except Exception as e:
        logger.error("Unexpected error building %s: %s", parent, e)
        discard_stale(store, parent)
        return TileFailure(parent, type(e).__name__, str(e))


def process_parents(
    root: Path,
    extension: str,
    parents: list[TileCoord],
    tile_size: tuple[int, int],
    method: str,
) -> list[tuple[TileCoord, TileFailure | None]]:
    """Process-pool entry point: build a batch of parents.

    Takes plain arguments so that nothing unpicklable crosses the process
    boundary.

    Returns:
        List of (parent, failure) tuples where failure is None on success
    """
    store = TileStore(root, extension)
    size = (int(tile_size[0]), int(tile_size[1]))
    return [
        (parent, build_parent_safely(store, parent, size, method))
        for parent in parents
    ]
