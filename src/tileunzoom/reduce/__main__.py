"""CLI entry point for tileunzoom."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from tqdm import tqdm

from tileunzoom.config import (
    DEFAULT_EXTENSION,
    DEFAULT_MAX_ZOOM,
    DEFAULT_MIN_ZOOM,
    DEFAULT_RESAMPLE,
    DEFAULT_WORKERS,
    RESAMPLE_METHODS,
    SUPPORTED_EXTENSIONS,
)
from tileunzoom.core.errors import UnzoomError
from tileunzoom.core.types import PyramidResult

from .pyramid import PyramidDriver, validate_zoom_range
from .store import TileStore

logger = logging.getLogger(__name__)


def parse_tile_size(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> tuple[int, int] | None:
    """Parse ``256`` or ``256x512`` into ``(width, height)``."""
    if value is None:
        return None
    parts = value.lower().split("x")
    try:
        if len(parts) == 1:
            size = (int(parts[0]), int(parts[0]))
        elif len(parts) == 2:
            size = (int(parts[0]), int(parts[1]))
        else:
            raise ValueError(value)
    except ValueError:
        raise click.BadParameter(f"expected N or WxH, got {value!r}")
    if size[0] <= 0 or size[1] <= 0:
        raise click.BadParameter(f"tile size must be positive, got {value!r}")
    return size


class LevelProgress:
    """Progress callback that shows one tqdm bar per zoom level."""

    def __init__(self) -> None:
        self._bar: tqdm | None = None
        self._stage: str | None = None

    def __call__(self, stage: str, current: int, total: int) -> None:
        if stage != self._stage:
            self.close()
            self._stage = stage
            self._bar = tqdm(total=total, desc=f"Generating {stage}", unit="tile")
        if self._bar is not None:
            self._bar.update(current - self._bar.n)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _print_header(
    folder: Path, min_zoom: int, max_zoom: int, method: str, workers: int
) -> None:
    """Print the CLI banner with processing parameters."""
    click.echo(click.style("tileunzoom", fg="cyan", bold=True))
    click.echo(click.style("=" * 40, fg="cyan"))
    click.echo(f"Tile folder: {folder}")
    click.echo(f"Zoom range: {min_zoom}..{max_zoom} | Filter: {method} | Workers: {workers}")
    click.echo()


def _print_summary(result: PyramidResult) -> None:
    """Print the per-level counts and any failed tiles."""
    click.echo()
    click.echo(click.style("=" * 40, fg="cyan"))
    for level in result.levels:
        line = f"  zoom {level.zoom}: {level.written} written"
        if level.failures:
            line += click.style(f", {len(level.failures)} failed", fg="red")
        if level.pruned:
            line += f", {level.pruned} pruned"
        click.echo(line)

    summary = click.style(f"{result.total_written} tiles written", fg="green")
    if result.failures:
        summary += ", " + click.style(f"{len(result.failures)} failed", fg="red")
    elif not result.levels:
        summary = "Nothing to build"
    click.echo(click.style("Completed: ", bold=True) + summary)

    if result.failures:
        click.echo()
        click.echo(click.style("Failed tiles:", fg="red"))
        for failure in result.failures:
            click.echo(f"  {failure.coord} [{failure.kind}]: {failure.message}")


@click.command()
@click.argument("folder", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--max-zoom",
    type=click.IntRange(min=0),
    default=DEFAULT_MAX_ZOOM,
    show_default=True,
    help="Most detailed zoom level (the source level)",
)
@click.option(
    "--min-zoom",
    type=click.IntRange(min=0),
    default=DEFAULT_MIN_ZOOM,
    show_default=True,
    help="Least detailed zoom level to build",
)
@click.option(
    "--detect-max-zoom",
    is_flag=True,
    help="Reduce --max-zoom until a populated zoom level is found",
)
@click.option(
    "--tile-size",
    "-t",
    callback=parse_tile_size,
    help="Tile size as N or WxH (default: read from the source level)",
)
@click.option(
    "--resample",
    type=click.Choice(RESAMPLE_METHODS),
    default=DEFAULT_RESAMPLE,
    show_default=True,
    help="Downscale filter",
)
@click.option(
    "--ext",
    "extension",
    type=click.Choice(sorted(SUPPORTED_EXTENSIONS)),
    default=DEFAULT_EXTENSION,
    show_default=True,
    help="Tile file extension",
)
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(min=1),
    default=DEFAULT_WORKERS,
    show_default=True,
    help="Worker processes per zoom level",
)
@click.option(
    "--prune",
    is_flag=True,
    help="Delete tiles at rebuilt levels that no source tile covers",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(
    folder: str,
    max_zoom: int,
    min_zoom: int,
    detect_max_zoom: bool,
    tile_size: tuple[int, int] | None,
    resample: str,
    extension: str,
    workers: int,
    prune: bool,
    verbose: bool,
) -> None:
    """Generate unzoomed levels for the map tiles in FOLDER.

    FOLDER must contain tiles laid out as <zoom>/<x>/<y>.png. Every level
    from --max-zoom minus one down to --min-zoom is rebuilt by combining
    four tiles of the level above into one.

    Examples:

        # Build zoom 17..0 from zoom 18
        python -m tileunzoom.reduce ./tiles

        # Start from whatever the most detailed level is, up to 24
        python -m tileunzoom.reduce ./tiles --max-zoom 24 --detect-max-zoom

        # Only build zoom 10..14 from zoom 15
        python -m tileunzoom.reduce ./tiles --max-zoom 15 --min-zoom 10
    """
    _configure_logging(verbose)
    folder_path = Path(folder)

    try:
        validate_zoom_range(min_zoom, max_zoom)
    except UnzoomError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    _print_header(folder_path, min_zoom, max_zoom, resample, workers)

    driver = PyramidDriver(
        TileStore(folder_path, extension),
        min_zoom=min_zoom,
        max_zoom=max_zoom,
        tile_size=tile_size,
        method=resample,
        workers=workers,
        detect_max_zoom=detect_max_zoom,
        prune=prune,
    )
    progress = LevelProgress()
    try:
        result = driver.run(progress)
    except UnzoomError as e:
        logger.error("Aborted: %s", e)
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)
    finally:
        progress.close()

    _print_summary(result)


if __name__ == "__main__":
    main()
