"""Pyramid reduction driver: build every level from ``max_zoom - 1`` down to ``min_zoom``."""

from __future__ import annotations

import logging
from pathlib import Path

from tileunzoom.config import (
    DEFAULT_EXTENSION,
    DEFAULT_MAX_ZOOM,
    DEFAULT_MIN_ZOOM,
    DEFAULT_RESAMPLE,
    DEFAULT_WORKERS,
)
from tileunzoom.core.errors import (
    EmptySource,
    InvalidTileSize,
    InvalidZoomRange,
    TileReadFailure,
)
from tileunzoom.core.types import DriverState, PyramidResult

from .compositor import validate_tile_size
from .reducer import LevelReducer, ProgressCallback
from .store import TileStore

logger = logging.getLogger(__name__)


def validate_zoom_range(min_zoom: int, max_zoom: int) -> None:
    """Raise :class:`InvalidZoomRange` unless ``0 <= min_zoom <= max_zoom``."""
    if min_zoom < 0 or max_zoom < 0 or min_zoom > max_zoom:
        raise InvalidZoomRange(min_zoom, max_zoom)


def find_last_zoom_level(store: TileStore, max_zoom: int, min_zoom: int) -> int | None:
    """Most detailed zoom in ``[min_zoom, max_zoom]`` that holds any tiles.

    Returns:
        The zoom level, or None if every level in the range is empty
    """
    for zoom in range(max_zoom, min_zoom - 1, -1):
        if store.has_tiles(zoom):
            return zoom
    return None


def detect_tile_size(store: TileStore, zoom: int) -> tuple[int, int]:
    """Read the pixel size of the first decodable tile at ``zoom``.

    Raises:
        EmptySource: If ``zoom`` holds no tiles
        InvalidTileSize: If no tile header at ``zoom`` can be read
    """
    coords = store.list_zoom(zoom)
    if not coords:
        raise EmptySource(zoom)
    for coord in coords:
        try:
            size = store.read_size(coord)
        except TileReadFailure as e:
            logger.warning("Skipping %s while probing tile size: %s", coord, e)
            continue
        logger.debug("Probed tile size %dx%d from %s", size[0], size[1], coord)
        return size
    raise InvalidTileSize(f"Could not read the size of any tile at zoom {zoom}")


class PyramidDriver:
    """Sequences :class:`LevelReducer` over a zoom range.

    Levels are processed strictly top-down: zoom ``z`` is only started once
    zoom ``z + 1`` has been fully written, because it reads those tiles.
    Per-tile failures are collected in the result and never stop the run.
    Range and source problems are raised before anything is written.

    State machine: ``NOT_STARTED -> REDUCING (per level) -> DONE``.

    Args:
        store: Tile store holding the pyramid
        min_zoom: Least detailed level to build
        max_zoom: Authoritative, most detailed level
        tile_size: Tile size as (width, height); probed from ``max_zoom`` if None
        method: Downscale filter
        workers: Worker processes per level
        detect_max_zoom: Walk down from ``max_zoom`` to the first populated level
        prune: Remove stale tiles at rebuilt levels
    """

    def __init__(
        self,
        store: TileStore,
        min_zoom: int = DEFAULT_MIN_ZOOM,
        max_zoom: int = DEFAULT_MAX_ZOOM,
        tile_size: tuple[int, int] | None = None,
        method: str = DEFAULT_RESAMPLE,
        workers: int = DEFAULT_WORKERS,
        detect_max_zoom: bool = False,
        prune: bool = False,
    ) -> None:
        self.store = store
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self.tile_size = tile_size
        self.method = method
        self.workers = workers
        self.detect_max_zoom = detect_max_zoom
        self.prune = prune
        self.state = DriverState.NOT_STARTED
        self.current_zoom: int | None = None

    def resolve_source_zoom(self) -> int:
        """Return the authoritative zoom level, searching downwards if enabled.

        Raises:
            EmptySource: If the source level holds no tiles
        """
        if not self.detect_max_zoom:
            if not self.store.has_tiles(self.max_zoom):
                raise EmptySource(self.max_zoom)
            return self.max_zoom

        zoom = find_last_zoom_level(self.store, self.max_zoom, self.min_zoom)
        if zoom is None:
            raise EmptySource(self.max_zoom)
        if zoom != self.max_zoom:
            logger.info("No tiles at zoom %d, starting from zoom %d", self.max_zoom, zoom)
        return zoom

    def run(self, progress_callback: ProgressCallback | None = None) -> PyramidResult:
        """Build every level from the source zoom minus one down to ``min_zoom``.

        Args:
            progress_callback: Optional callback(stage, current, total)

        Returns:
            PyramidResult with per-level counts and failures

        Raises:
            InvalidZoomRange: If ``min_zoom > max_zoom``
            InvalidRoot: If the root folder is missing or unreadable
            EmptySource: If there are levels to build but no source tiles
            InvalidTileSize: If the tile size cannot be split into quadrants
        """
        validate_zoom_range(self.min_zoom, self.max_zoom)
        self.store.check_root()

        if self.min_zoom == self.max_zoom:
            logger.info("min_zoom == max_zoom == %d, nothing to build", self.max_zoom)
            self.state = DriverState.DONE
            return PyramidResult(self.min_zoom, self.max_zoom, state=self.state)

        source_zoom = self.resolve_source_zoom()
        result = PyramidResult(self.min_zoom, source_zoom)

        tile_size = self.tile_size or detect_tile_size(self.store, source_zoom)
        validate_tile_size(tile_size)
        reducer = LevelReducer(self.store, tile_size, self.method, self.workers)
        logger.info(
            "Building zoom %d..%d from zoom %d (%dx%d tiles, %s)",
            source_zoom - 1,
            self.min_zoom,
            source_zoom,
            tile_size[0],
            tile_size[1],
            self.method,
        )

        for zoom in range(source_zoom - 1, self.min_zoom - 1, -1):
            self.state = DriverState.REDUCING
            self.current_zoom = zoom
            level = reducer.reduce(zoom + 1, progress_callback, prune=self.prune)
            result.levels.append(level)

        self.state = DriverState.DONE
        self.current_zoom = None
        result.state = self.state
        logger.info(
            "Done: %d tiles written, %d failed",
            result.total_written,
            len(result.failures),
        )
        return result


def build_unzoomed_levels(
    root: Path,
    min_zoom: int = DEFAULT_MIN_ZOOM,
    max_zoom: int = DEFAULT_MAX_ZOOM,
    extension: str = DEFAULT_EXTENSION,
    tile_size: tuple[int, int] | None = None,
    method: str = DEFAULT_RESAMPLE,
    workers: int = DEFAULT_WORKERS,
    detect_max_zoom: bool = False,
    prune: bool = False,
    progress_callback: ProgressCallback | None = None,
) -> PyramidResult:
    """Build the unzoomed levels of the tile pyramid under ``root``.

    Args:
        root: Folder holding ``<zoom>/<x>/<y>.<ext>`` tiles
        min_zoom: Least detailed level to build
        max_zoom: Authoritative, most detailed level
        extension: Tile file extension
        tile_size: Tile size as (width, height); probed if None
        method: Downscale filter, ``"box"`` or ``"lanczos"``
        workers: Worker processes per level
        detect_max_zoom: Walk down from ``max_zoom`` to the first populated level
        prune: Remove stale tiles at rebuilt levels
        progress_callback: Optional callback(stage, current, total)

    Returns:
        PyramidResult with per-level counts and failures
    """
    validate_zoom_range(min_zoom, max_zoom)
    store = TileStore(Path(root), extension)
    driver = PyramidDriver(
        store,
        min_zoom=min_zoom,
        max_zoom=max_zoom,
        tile_size=tile_size,
        method=method,
        workers=workers,
        detect_max_zoom=detect_max_zoom,
        prune=prune,
    )
    return driver.run(progress_callback)
