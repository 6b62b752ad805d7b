"""Image codec backend using Pillow.

Tiles travel through the engine as ``(H, W, 4)`` uint8 numpy arrays in RGBA
order. This module is the only place that knows how they are decoded from and
encoded to files.

Usage:
    from tileunzoom.reduce.backends import PillowBackend

    arr = PillowBackend.load(Path("12/2048/1361.png"))
    half = PillowBackend.resize_lanczos(arr, (128, 128))
    with open("out.png", "wb") as f:
        PillowBackend.save(half, f, "png")
"""

from __future__ import annotations

from pathlib import Path
from typing import IO

import numpy as np
from PIL import Image, UnidentifiedImageError

from tileunzoom.config import CHANNELS, PNG_COMPRESS_LEVEL

#: Pillow format names by file extension
PIL_FORMATS: dict[str, str] = {"png": "PNG", "webp": "WEBP"}

#: Exceptions Pillow raises for unreadable or truncated image data
DECODE_ERRORS: tuple[type[Exception], ...] = (
    UnidentifiedImageError,
    OSError,
    ValueError,
    SyntaxError,
    Image.DecompressionBombError,
)


class PillowBackend:
    """Pillow-based tile codec.

    Decoding always yields RGBA so every tile in the pyramid shares one
    channel layout regardless of how the source PNG was stored (palette,
    grayscale, RGB).
    """

    @staticmethod
    def load(path: Path) -> np.ndarray:
        """Decode an image file to an RGBA array.

        Args:
            path: Path to the tile file

        Returns:
            numpy array (H, W, 4) uint8

        Raises:
            FileNotFoundError: If the file does not exist
            One of ``DECODE_ERRORS`` if the data cannot be decoded
        """
        with Image.open(path) as img:
            img.load()
            if img.mode != "RGBA":
                img = img.convert("RGBA")
            return np.array(img, dtype=np.uint8)

    @staticmethod
    def read_size(path: Path) -> tuple[int, int]:
        """Read ``(width, height)`` from the file header without decoding pixels."""
        with Image.open(path) as img:
            return img.size

    @staticmethod
    def to_image(arr: np.ndarray) -> Image.Image:
        """Wrap an RGBA array as a Pillow image."""
        if arr.ndim != 3 or arr.shape[2] != CHANNELS:
            raise ValueError(f"Expected (H, W, {CHANNELS}) array, got {arr.shape}")
        return Image.fromarray(np.ascontiguousarray(arr, dtype=np.uint8))

    @staticmethod
    def save(arr: np.ndarray, fp: IO[bytes], extension: str) -> None:
        """Encode an RGBA array into ``fp``.

        Encoder settings are fixed so that identical pixels always produce
        identical bytes.

        Args:
            arr: numpy array (H, W, 4) uint8
            fp: Binary file object to write to
            extension: Tile extension, one of ``PIL_FORMATS``
        """
        img = PillowBackend.to_image(arr)
        fmt = PIL_FORMATS[extension]
        if fmt == "PNG":
            img.save(fp, format=fmt, compress_level=PNG_COMPRESS_LEVEL, optimize=False)
        else:
            # exact keeps RGB under fully transparent pixels
            img.save(fp, format=fmt, lossless=True, exact=True, quality=100, method=4)

    @staticmethod
    def resize_lanczos(arr: np.ndarray, size: tuple[int, int]) -> np.ndarray:
        """Resize an RGBA array using Lanczos resampling.

        Pillow premultiplies alpha for RGBA resizes, so transparent pixels do
        not bleed color into their neighbours.

        Args:
            arr: numpy array (H, W, 4) uint8
            size: Target size as (width, height)

        Returns:
            Resized numpy array (height, width, 4) uint8
        """
        img = PillowBackend.to_image(arr)
        resized = img.resize(size, Image.Resampling.LANCZOS)
        return np.array(resized, dtype=np.uint8)

    @staticmethod
    def new_transparent(width: int, height: int) -> np.ndarray:
        """Create a fully transparent RGBA array."""
        return np.zeros((height, width, CHANNELS), dtype=np.uint8)


def get_backend() -> type[PillowBackend]:
    """Get the image codec backend."""
    return PillowBackend


def get_backend_name() -> str:
    """Get the name of the backend.

    Returns:
        "Pillow"
    """
    return "Pillow"
