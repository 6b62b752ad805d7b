"""Level reduction: build zoom ``z`` from the tiles present at ``z + 1``."""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Callable, Iterable, Iterator

from tileunzoom.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_RESAMPLE,
    DEFAULT_WORKERS,
    RESAMPLE_METHODS,
)
from tileunzoom.core.types import LevelResult, TileCoord, TileFailure

from .compositor import validate_tile_size
from .store import TileStore
from .worker import build_parent_safely, discard_stale, process_parents

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]


def chunked(items: list[TileCoord], size: int) -> Iterator[list[TileCoord]]:
    """Split ``items`` into consecutive lists of at most ``size``."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


def parent_coords(children: Iterable[TileCoord]) -> list[TileCoord]:
    """Distinct parents of ``children``, sorted.

    A parent is included as soon as one of its four children exists.
    """
    return sorted({child.parent() for child in children})


class LevelReducer:
    """Builds one zoom level from the level directly above it.

    Work within a level is independent per parent coordinate: each parent
    reads its own four children and writes its own file. With ``workers > 1``
    parents are dispatched to a process pool; results are aggregated only in
    the calling process.

    Args:
        store: Tile store holding the pyramid
        tile_size: Pyramid tile size as (width, height)
        method: Downscale filter, one of ``RESAMPLE_METHODS``
        workers: Number of worker processes (1 = run inline)
        chunk_size: Parents sent to a worker per task
    """

    def __init__(
        self,
        store: TileStore,
        tile_size: tuple[int, int],
        method: str = DEFAULT_RESAMPLE,
        workers: int = DEFAULT_WORKERS,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        validate_tile_size(tile_size)
        if method not in RESAMPLE_METHODS:
            raise ValueError(
                f"Unknown resample method {method!r}; expected one of {RESAMPLE_METHODS}"
            )
        self.store = store
        self.tile_size = (int(tile_size[0]), int(tile_size[1]))
        self.method = method
        self.workers = max(1, workers)
        self.chunk_size = max(1, chunk_size)

    def plan(self, child_zoom: int) -> list[TileCoord]:
        """Parent coordinates at ``child_zoom - 1`` implied by ``child_zoom``."""
        if child_zoom < 1:
            raise ValueError(f"Cannot reduce below zoom 0 (child_zoom={child_zoom})")
        return parent_coords(self.store.iter_zoom(child_zoom))

    def reduce(
        self,
        child_zoom: int,
        progress_callback: ProgressCallback | None = None,
        prune: bool = False,
    ) -> LevelResult:
        """Build every parent tile of ``child_zoom``.

        A parent that fails (unreadable child, wrong size, write error) is
        recorded in the result and the rest of the level continues.

        Args:
            child_zoom: Zoom level whose tiles are read
            progress_callback: Optional callback(stage, current, total)
            prune: Remove tiles at the output level that no child implies

        Returns:
            LevelResult for zoom ``child_zoom - 1``
        """
        parents = self.plan(child_zoom)
        zoom = child_zoom - 1
        result = LevelResult(zoom=zoom)
        total = len(parents)
        logger.info("Reducing zoom %d -> %d: %d parent tiles", child_zoom, zoom, total)

        if progress_callback:
            progress_callback(f"level {zoom}", 0, total)

        for done, (parent, failure) in enumerate(self._run(parents), start=1):
            if failure is None:
                result.written += 1
            else:
                result.failures.append(failure)
            if progress_callback:
                progress_callback(f"level {zoom}", done, total)

        result.failures.sort(key=lambda f: f.coord)

        if prune:
            result.pruned = self._prune(zoom, set(parents))

        logger.info(
            "Zoom %d complete: %d written, %d failed",
            zoom,
            result.written,
            len(result.failures),
        )
        return result

    def _run(self, parents: list[TileCoord]):
        """Yield ``(parent, failure)`` pairs in completion order."""
        if self.workers == 1 or len(parents) <= 1:
            for parent in parents:
                yield parent, build_parent_safely(
                    self.store, parent, self.tile_size, self.method
                )
            return

        batches = -(-len(parents) // self.chunk_size)
        max_workers = min(self.workers, batches)
        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(
                    process_parents,
                    self.store.root,
                    self.store.extension,
                    batch,
                    self.tile_size,
                    self.method,
                ): batch
                for batch in chunked(parents, self.chunk_size)
            }
            for future in as_completed(futures):
                batch = futures[future]
                try:
                    results = future.result()
                except Exception as e:
                    # Worker crashed - record it against every parent in the batch
                    logger.error(
                        "Worker crashed building %d tiles from %s: %s", len(batch), batch[0], e
                    )
                    for parent in batch:
                        discard_stale(self.store, parent)
                    results = [
                        (parent, TileFailure(parent, type(e).__name__, str(e)))
                        for parent in batch
                    ]
                yield from results

    def _prune(self, zoom: int, keep: set[TileCoord]) -> int:
        """Delete tiles at ``zoom`` that are not in ``keep``."""
        removed = 0
        for coord in self.store.list_zoom(zoom):
            if coord not in keep:
                logger.debug("Pruning stale tile %s", coord)
                self.store.delete(coord)
                removed += 1
        if removed:
            logger.info("Pruned %d stale tiles at zoom %d", removed, zoom)
        return removed
