"""Test fixtures for tileunzoom tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Callable, Generator

import numpy as np
import pytest
from PIL import Image

from tileunzoom.core.types import TileCoord
from tileunzoom.reduce.store import TileStore

TILE = 8

RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)
WHITE = (255, 255, 255, 255)


def solid(color: tuple[int, int, int, int], size: int = TILE) -> np.ndarray:
    """A ``size`` x ``size`` RGBA array filled with ``color``."""
    return np.full((size, size, 4), color, dtype=np.uint8)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_dir: Path) -> TileStore:
    return TileStore(temp_dir / "tiles")


@pytest.fixture
def write_tile(store: TileStore) -> Callable[..., Path]:
    """Write a solid-colour PNG tile directly with Pillow."""

    def _write(
        zoom: int,
        x: int,
        y: int,
        color: tuple[int, int, int, int] = RED,
        size: int | tuple[int, int] = TILE,
    ) -> Path:
        width, height = (size, size) if isinstance(size, int) else size
        path = store.path_for(TileCoord(zoom, x, y))
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGBA", (width, height), color).save(path)
        return path

    return _write


@pytest.fixture
def four_colour_source(write_tile) -> None:
    """Zoom 2 tiles (0,0) red, (1,0) green, (0,1) blue, (1,1) white."""
    write_tile(2, 0, 0, RED)
    write_tile(2, 1, 0, GREEN)
    write_tile(2, 0, 1, BLUE)
    write_tile(2, 1, 1, WHITE)


def snapshot(root: Path) -> dict[str, bytes]:
    """Relative path -> file bytes for every file under ``root``."""
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }
