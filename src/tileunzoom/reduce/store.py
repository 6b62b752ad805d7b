"""Directory tile store: ``root/<zoom>/<x>/<y>.<ext>``."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import numpy as np

from tileunzoom.config import DEFAULT_EXTENSION, SUPPORTED_EXTENSIONS
from tileunzoom.core.errors import InvalidRoot, TileReadFailure, TileWriteFailure
from tileunzoom.core.paths import atomic_write
from tileunzoom.core.types import TileCoord

from .backends import DECODE_ERRORS, PillowBackend

logger = logging.getLogger(__name__)


def _as_index(name: str) -> int | None:
    """Parse a directory or file stem as a non-negative tile index."""
    if not name.isdigit():
        return None
    return int(name)


class TileStore:
    """Key-value store of tile images keyed by :class:`TileCoord`.

    Reading a coordinate with no file returns ``None``; that is the normal
    "absent" answer, not an error. Writes create intermediate directories and
    go through a temp file plus atomic rename.

    Args:
        root: Folder holding the ``<zoom>/`` directories
        extension: Tile file extension without the dot
    """

    def __init__(self, root: Path, extension: str = DEFAULT_EXTENSION) -> None:
        extension = extension.lower().lstrip(".")
        if extension not in SUPPORTED_EXTENSIONS:
            raise ValueError(
                f"Unsupported tile extension {extension!r}; "
                f"expected one of {sorted(SUPPORTED_EXTENSIONS)}"
            )
        self.root = Path(root)
        self.extension = extension

    def check_root(self) -> None:
        """Raise :class:`InvalidRoot` unless the root is a listable directory."""
        if not self.root.is_dir():
            raise InvalidRoot(f"Folder does not exist: {self.root}")
        try:
            next(self.root.iterdir(), None)
        except OSError as e:
            raise InvalidRoot(f"Folder is not readable: {self.root} ({e})") from e

    def path_for(self, coord: TileCoord) -> Path:
        return self.root / str(coord.zoom) / str(coord.x) / f"{coord.y}.{self.extension}"

    def exists(self, coord: TileCoord) -> bool:
        return self.path_for(coord).is_file()

    def read(self, coord: TileCoord) -> np.ndarray | None:
        """Load a tile as an RGBA array, or ``None`` if it does not exist.

        Raises:
            TileReadFailure: If the file exists but cannot be decoded
        """
        path = self.path_for(coord)
        try:
            return PillowBackend.load(path)
        except (FileNotFoundError, NotADirectoryError):
            # No tile file can exist under a missing or non-directory <x> entry
            return None
        except DECODE_ERRORS as e:
            raise TileReadFailure(coord, f"cannot decode {path}: {e}") from e

    def read_size(self, coord: TileCoord) -> tuple[int, int]:
        """Pixel ``(width, height)`` of an existing tile."""
        path = self.path_for(coord)
        try:
            return PillowBackend.read_size(path)
        except DECODE_ERRORS as e:
            raise TileReadFailure(coord, f"cannot read header of {path}: {e}") from e

    def write(self, coord: TileCoord, image: np.ndarray) -> Path:
        """Persist a tile atomically.

        Raises:
            TileWriteFailure: If the file cannot be written
        """
        path = self.path_for(coord)
        try:
            atomic_write(path, lambda f: PillowBackend.save(image, f, self.extension))
        except (OSError, ValueError) as e:
            raise TileWriteFailure(coord, f"cannot write {path}: {e}") from e
        return path

    def delete(self, coord: TileCoord) -> None:
        self.path_for(coord).unlink(missing_ok=True)

    def iter_zoom(self, zoom: int) -> Iterator[TileCoord]:
        """Yield every tile present at ``zoom``.

        Entries that are not ``<int>/<int>.<ext>`` files are ignored, which
        also skips in-flight ``.tmp`` files.
        """
        zoom_dir = self.root / str(zoom)
        if not zoom_dir.is_dir():
            return
        suffix = f".{self.extension}"
        for x_dir in zoom_dir.iterdir():
            x = _as_index(x_dir.name)
            if x is None or not x_dir.is_dir():
                continue
            for tile_path in x_dir.iterdir():
                if tile_path.suffix.lower() != suffix:
                    continue
                y = _as_index(tile_path.stem)
                if y is None or not tile_path.is_file():
                    continue
                yield TileCoord(zoom, x, y)

    def list_zoom(self, zoom: int) -> list[TileCoord]:
        """Sorted list of tiles present at ``zoom``."""
        return sorted(self.iter_zoom(zoom))

    def has_tiles(self, zoom: int) -> bool:
        return next(self.iter_zoom(zoom), None) is not None

    def zoom_levels(self) -> list[int]:
        """Zoom levels with a directory under the root, ascending."""
        if not self.root.is_dir():
            return []
        levels = []
        for entry in self.root.iterdir():
            zoom = _as_index(entry.name)
            if zoom is not None and entry.is_dir():
                levels.append(zoom)
        return sorted(levels)

    def __repr__(self) -> str:
        return f"TileStore(root={str(self.root)!r}, extension={self.extension!r})"
