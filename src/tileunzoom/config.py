"""Centralized configuration for tileunzoom.

All tunable parameters are defined here with sensible defaults.
Values can be overridden via environment variables.

Environment Variables:
    TILEUNZOOM_MAX_ZOOM: Most detailed zoom level (default: 18)
    TILEUNZOOM_MIN_ZOOM: Least detailed zoom level (default: 0)
    TILEUNZOOM_WORKERS: Worker processes per level (default: CPU count)
    TILEUNZOOM_CHUNK_SIZE: Parent tiles per worker task (default: 64)
    TILEUNZOOM_EXTENSION: Tile file extension (default: png)
    TILEUNZOOM_RESAMPLE: Downscale filter, box or lanczos (default: box)
    TILEUNZOOM_PNG_COMPRESS_LEVEL: zlib level for written PNG tiles (default: 6)
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def _get_env_int(name: str, default: int) -> int:
    """Get an integer from environment variable with fallback."""
    value = os.environ.get(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            logger.warning(
                "Invalid integer for %s: %r, using default %d", name, value, default
            )
    return default


def _get_env_str(name: str, default: str) -> str:
    """Get a string from environment variable with fallback."""
    return os.environ.get(name, default)


# =============================================================================
# Zoom Range Defaults
# =============================================================================

#: Most detailed zoom level; treated as the authoritative source level
DEFAULT_MAX_ZOOM: int = _get_env_int("TILEUNZOOM_MAX_ZOOM", 18)

#: Least detailed zoom level to build
DEFAULT_MIN_ZOOM: int = _get_env_int("TILEUNZOOM_MIN_ZOOM", 0)


# =============================================================================
# Tile Store Configuration
# =============================================================================

#: Extensions that can hold RGBA losslessly
SUPPORTED_EXTENSIONS: frozenset[str] = frozenset({"png", "webp"})

#: Default tile file extension (without the dot)
DEFAULT_EXTENSION: str = _get_env_str("TILEUNZOOM_EXTENSION", "png").lower().lstrip(".")

#: zlib compression level for PNG output
PNG_COMPRESS_LEVEL: int = _get_env_int("TILEUNZOOM_PNG_COMPRESS_LEVEL", 6)

#: Suffix for in-flight writes; never matches a tile extension
TEMP_SUFFIX: str = ".tmp"


# =============================================================================
# Compositing Configuration
# =============================================================================

#: Available downscale filters
RESAMPLE_METHODS: tuple[str, ...] = ("box", "lanczos")

#: Default downscale filter
DEFAULT_RESAMPLE: str = _get_env_str("TILEUNZOOM_RESAMPLE", "box").lower()

#: Fill value for quadrants without a child tile
TRANSPARENT: tuple[int, int, int, int] = (0, 0, 0, 0)

#: Channels per pixel (RGBA)
CHANNELS: int = 4


# =============================================================================
# Parallelism
# =============================================================================

#: Worker processes per level
DEFAULT_WORKERS: int = _get_env_int("TILEUNZOOM_WORKERS", os.cpu_count() or 1)

#: Parent tiles handed to a worker process per task
DEFAULT_CHUNK_SIZE: int = _get_env_int("TILEUNZOOM_CHUNK_SIZE", 64)


# =============================================================================
# Validation
# =============================================================================


def _validate_config() -> None:
    """Validate configuration values and log warnings for out-of-range settings."""
    global DEFAULT_WORKERS, PNG_COMPRESS_LEVEL, DEFAULT_EXTENSION, DEFAULT_RESAMPLE
    global DEFAULT_MAX_ZOOM, DEFAULT_MIN_ZOOM, DEFAULT_CHUNK_SIZE

    if DEFAULT_WORKERS < 1:
        logger.warning("DEFAULT_WORKERS=%d is too low, clamping to 1", DEFAULT_WORKERS)
        DEFAULT_WORKERS = 1

    if DEFAULT_CHUNK_SIZE < 1:
        logger.warning("DEFAULT_CHUNK_SIZE=%d is too low, clamping to 1", DEFAULT_CHUNK_SIZE)
        DEFAULT_CHUNK_SIZE = 1

    if not 0 <= PNG_COMPRESS_LEVEL <= 9:
        clamped = min(max(PNG_COMPRESS_LEVEL, 0), 9)
        logger.warning(
            "PNG_COMPRESS_LEVEL=%d is out of range, clamping to %d",
            PNG_COMPRESS_LEVEL,
            clamped,
        )
        PNG_COMPRESS_LEVEL = clamped

    if DEFAULT_EXTENSION not in SUPPORTED_EXTENSIONS:
        logger.warning(
            "Unsupported tile extension %r, falling back to 'png'", DEFAULT_EXTENSION
        )
        DEFAULT_EXTENSION = "png"

    if DEFAULT_RESAMPLE not in RESAMPLE_METHODS:
        logger.warning(
            "Unknown resample method %r, falling back to 'box'", DEFAULT_RESAMPLE
        )
        DEFAULT_RESAMPLE = "box"

    if DEFAULT_MIN_ZOOM < 0:
        logger.warning("DEFAULT_MIN_ZOOM=%d is negative, clamping to 0", DEFAULT_MIN_ZOOM)
        DEFAULT_MIN_ZOOM = 0

    if DEFAULT_MAX_ZOOM < 0:
        logger.warning("DEFAULT_MAX_ZOOM=%d is negative, clamping to 0", DEFAULT_MAX_ZOOM)
        DEFAULT_MAX_ZOOM = 0


_validate_config()
