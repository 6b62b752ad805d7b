"""Shared type definitions for the tileunzoom core module."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple


class Quadrant(Enum):
    """Position of a child tile inside its parent.

    Values are ``(dx, dy)`` offsets in units of half a tile.
    """

    TOP_LEFT = (0, 0)
    TOP_RIGHT = (1, 0)
    BOTTOM_LEFT = (0, 1)
    BOTTOM_RIGHT = (1, 1)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]

    def pixel_offset(self, width: int, height: int) -> tuple[int, int]:
        """Top-left pixel of this quadrant in a ``width`` x ``height`` parent."""
        return self.dx * (width // 2), self.dy * (height // 2)


class TileCoord(NamedTuple):
    """Coordinate of a tile in the quadtree.

    Attributes:
        zoom: Zoom level (0 = least detailed)
        x: Column index (0-based)
        y: Row index (0-based)
    """

    zoom: int
    x: int
    y: int

    def parent(self) -> TileCoord:
        """The tile one zoom level up that covers this one."""
        if self.zoom == 0:
            raise ValueError("Zoom 0 tile has no parent")
        return TileCoord(self.zoom - 1, self.x // 2, self.y // 2)

    @property
    def quadrant(self) -> Quadrant:
        """Which quadrant of its parent this tile occupies."""
        return Quadrant((self.x % 2, self.y % 2))

    def child(self, quadrant: Quadrant) -> TileCoord:
        return TileCoord(self.zoom + 1, 2 * self.x + quadrant.dx, 2 * self.y + quadrant.dy)

    def children(self) -> dict[Quadrant, TileCoord]:
        """All four child coordinates keyed by quadrant."""
        return {q: self.child(q) for q in Quadrant}

    def __str__(self) -> str:
        return f"{self.zoom}/{self.x}/{self.y}"


class DriverState(Enum):
    """Lifecycle of a pyramid reduction run."""

    NOT_STARTED = "not_started"
    REDUCING = "reducing"
    DONE = "done"


@dataclass(frozen=True)
class TileFailure:
    """A parent tile that could not be produced.

    Attributes:
        coord: Parent coordinate that failed
        kind: Error class name (e.g. ``"TileReadFailure"``)
        message: Human-readable reason
    """

    coord: TileCoord
    kind: str
    message: str


@dataclass
class LevelResult:
    """Outcome of reducing one zoom level."""

    zoom: int
    written: int = 0
    pruned: int = 0
    failures: list[TileFailure] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.written + len(self.failures)


@dataclass
class PyramidResult:
    """Aggregated outcome of a full reduction run.

    Attributes:
        min_zoom: Least detailed level that was requested
        max_zoom: Authoritative source level actually used
        levels: Per-level results in processing order (descending zoom)
        state: Final driver state
    """

    min_zoom: int
    max_zoom: int
    levels: list[LevelResult] = field(default_factory=list)
    state: DriverState = DriverState.NOT_STARTED

    @property
    def total_written(self) -> int:
        return sum(level.written for level in self.levels)

    @property
    def failures(self) -> list[TileFailure]:
        return [f for level in self.levels for f in level.failures]

    def written_per_level(self) -> dict[int, int]:
        return {level.zoom: level.written for level in self.levels}
