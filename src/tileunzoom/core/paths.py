"""Filesystem helpers for the tile store."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Callable, IO

from tileunzoom.config import TEMP_SUFFIX


def atomic_write(path: Path, write: Callable[[IO[bytes]], None]) -> None:
    """Atomically write a file through ``write(fileobj)``.

    Writes to a temp file in the same directory, then replaces the target.
    ``os.replace()`` is atomic on both POSIX and Windows (same filesystem).
    An interrupted write leaves only a ``.tmp`` file behind, never a
    truncated file at ``path``.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent, suffix=TEMP_SUFFIX, prefix=f".{path.stem}."
    )
    try:
        with os.fdopen(fd, "wb") as f:
            write(f)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
