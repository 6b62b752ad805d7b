"""Core types, errors and filesystem helpers for tileunzoom."""

from .errors import (
    DimensionMismatch,
    EmptySource,
    InvalidRoot,
    InvalidTileSize,
    InvalidZoomRange,
    TileError,
    TileReadFailure,
    TileWriteFailure,
    UnzoomError,
)
from .types import (
    DriverState,
    LevelResult,
    PyramidResult,
    Quadrant,
    TileCoord,
    TileFailure,
)

__all__ = [
    "DimensionMismatch",
    "DriverState",
    "EmptySource",
    "InvalidRoot",
    "InvalidTileSize",
    "InvalidZoomRange",
    "LevelResult",
    "PyramidResult",
    "Quadrant",
    "TileCoord",
    "TileError",
    "TileFailure",
    "TileReadFailure",
    "TileWriteFailure",
    "UnzoomError",
]
