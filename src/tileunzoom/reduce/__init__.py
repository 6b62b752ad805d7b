"""Pyramid reduction: build lower zoom levels from the most detailed one."""

from .backends import PillowBackend, get_backend, get_backend_name
from .compositor import composite_quadrants, downscale_box, downscale_half
from .pyramid import (
    PyramidDriver,
    build_unzoomed_levels,
    find_last_zoom_level,
    validate_zoom_range,
)
from .reducer import LevelReducer, parent_coords
from .store import TileStore

__all__ = [
    "LevelReducer",
    "PillowBackend",
    "PyramidDriver",
    "TileStore",
    "build_unzoomed_levels",
    "composite_quadrants",
    "downscale_box",
    "downscale_half",
    "find_last_zoom_level",
    "get_backend",
    "get_backend_name",
    "parent_coords",
    "validate_zoom_range",
]
