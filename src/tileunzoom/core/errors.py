"""Error types raised while building unzoomed levels.

Per-tile errors (subclasses of :class:`TileError`) are caught and recorded so
that a level keeps going. The remaining errors are fatal and are raised before
anything is written.
"""

from __future__ import annotations

from tileunzoom.core.types import TileCoord


class UnzoomError(Exception):
    """Base class for all tileunzoom errors."""


class TileError(UnzoomError):
    """An error tied to a single tile coordinate."""

    def __init__(self, coord: TileCoord, message: str) -> None:
        super().__init__(f"{coord}: {message}")
        self.coord = coord
        self.reason = message

    def __reduce__(self):
        return (self.__class__, (self.coord, self.reason))


class DimensionMismatch(TileError):
    """A tile's pixel size differs from the pyramid's tile size."""

    def __init__(
        self,
        coord: TileCoord,
        actual: tuple[int, int],
        expected: tuple[int, int],
    ) -> None:
        super().__init__(
            coord,
            f"tile is {actual[0]}x{actual[1]}, expected {expected[0]}x{expected[1]}",
        )
        self.actual = actual
        self.expected = expected

    def __reduce__(self):
        return (self.__class__, (self.coord, self.actual, self.expected))


class TileReadFailure(TileError):
    """A tile file exists but cannot be decoded."""


class TileWriteFailure(TileError):
    """A tile could not be persisted."""


class EmptySource(UnzoomError):
    """No tiles exist at the source zoom level."""

    def __init__(self, zoom: int) -> None:
        super().__init__(f"No tiles found at zoom level {zoom}")
        self.zoom = zoom


class InvalidZoomRange(UnzoomError):
    """``min_zoom`` is greater than ``max_zoom`` (or a zoom is negative)."""

    def __init__(self, min_zoom: int, max_zoom: int) -> None:
        super().__init__(f"Invalid zoom range: min_zoom={min_zoom}, max_zoom={max_zoom}")
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom


class InvalidTileSize(UnzoomError):
    """The tile size cannot be halved into quadrants."""


class InvalidRoot(UnzoomError):
    """The tile root folder is missing or unreadable."""
