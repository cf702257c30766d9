"""
CLI interface using Click.
"""

import sys
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.table import Table

from screen_finder import __version__
from screen_finder.config import (
    ConfigurationError,
    FinderConfig,
    load_config,
    save_config,
)
from screen_finder.errors import FinderError
from screen_finder.imaging import OverlayRenderer, load_buffer, save_buffer
from screen_finder.logging import get_logger, setup_logging
from screen_finder.matching import MatchResult, QuadrantScheduler, Rectangle

console = Console()
logger = get_logger(__name__)

EXIT_NOT_FOUND = 1
EXIT_ERROR = 2


class AreaParam(click.ParamType):
    """x,y,width,height on the command line."""

    name = "area"

    def convert(self, value, param, ctx):
        if isinstance(value, Rectangle):
            return value
        try:
            return Rectangle.parse(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


AREA = AreaParam()


def _load(ctx: click.Context, config_path: Optional[str]) -> FinderConfig:
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        ctx.exit(EXIT_ERROR)
    # -v only raises the level; the configured log file is always kept
    level = "DEBUG" if ctx.obj.get("verbose") else config.logging.level
    setup_logging(level=level, log_file=config.log_file)
    return config


def _results_table(results: List[MatchResult]) -> Table:
    table = Table(title=f"{len(results)} match(es)")
    table.add_column("#", justify="right")
    table.add_column("X", justify="right")
    table.add_column("Y", justify="right")
    table.add_column("Width", justify="right")
    table.add_column("Height", justify="right")
    table.add_column("Center")
    table.add_column("Quadrant")
    for i, result in enumerate(results, 1):
        rect = result.rect
        table.add_row(
            str(i),
            str(rect.x),
            str(rect.y),
            str(rect.width),
            str(rect.height),
            f"{rect.center[0]}, {rect.center[1]}",
            "-" if result.quadrant is None else str(result.quadrant),
        )
    return table


def _search(
    scheduler: QuadrantScheduler,
    source,
    target,
    area: Optional[Rectangle],
    tolerance: float,
    find_all: bool,
) -> List[MatchResult]:
    if find_all:
        return scheduler.find_all(source, target, area, tolerance)
    result = scheduler.find(source, target, area, tolerance)
    return [result] if result.found else []


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version and exit")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, version: bool, verbose: bool) -> None:
    """screen-finder - locate a reference image inside a larger image or the screen."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    setup_logging(level="DEBUG" if verbose else "WARNING")

    if version:
        console.print(f"screen-finder v{__version__}")
        sys.exit(0)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.argument("target", type=click.Path(exists=True, dir_okay=False))
@click.option("--tolerance", "-t", type=float, default=None, help="Brightness tolerance 0-1 (default: from config)")
@click.option("--area", "-a", type=AREA, default=None, help="Search area as x,y,width,height")
@click.option("--all", "find_all", is_flag=True, help="Report every match instead of the first")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write SOURCE with matches outlined")
@click.option("--color", default=None, help="Outline colour (default: from config)")
@click.option("--thickness", type=int, default=None, help="Outline thickness in pixels")
@click.option("--config", "-c", type=click.Path(), help="Path to config file")
@click.pass_context
def find(
    ctx: click.Context,
    source: str,
    target: str,
    tolerance: Optional[float],
    area: Optional[Rectangle],
    find_all: bool,
    output: Optional[str],
    color: Optional[str],
    thickness: Optional[int],
    config: Optional[str],
) -> None:
    """Find TARGET inside the SOURCE image."""
    finder_config = _load(ctx, config)
    if tolerance is None:
        tolerance = finder_config.search.tolerance

    source_buffer = load_buffer(source)
    target_buffer = load_buffer(target)
    scheduler = QuadrantScheduler.from_config(finder_config.search)

    try:
        results = _search(scheduler, source_buffer, target_buffer, area, tolerance, find_all)
    except (FinderError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        ctx.exit(EXIT_ERROR)

    if not results:
        console.print("[yellow]No match found.[/yellow]")
        ctx.exit(EXIT_NOT_FOUND)

    console.print(_results_table(results))

    if output:
        renderer = OverlayRenderer(
            color=color or finder_config.overlay.color,
            thickness=thickness or finder_config.overlay.thickness,
        )
        renderer.draw_all(source_buffer, results)
        path = save_buffer(source_buffer, output)
        console.print(f"[green]✓ Annotated image written to {path}[/green]")


@main.command()
@click.argument("target", type=click.Path(exists=True, dir_okay=False))
@click.option("--tolerance", "-t", type=float, default=None, help="Brightness tolerance 0-1 (default: from config)")
@click.option("--area", "-a", type=AREA, default=None, help="Search area as x,y,width,height")
@click.option("--all", "find_all", is_flag=True, help="Report every match instead of the first")
@click.option("--click", "do_click", is_flag=True, help="Move to and click the centre of the first match")
@click.option("--save", type=click.Path(dir_okay=False), help="Also save the captured screen")
@click.option("--dry-run", is_flag=True, help="Log input actions without executing")
@click.option("--config", "-c", type=click.Path(), help="Path to config file")
@click.pass_context
def screen(
    ctx: click.Context,
    target: str,
    tolerance: Optional[float],
    area: Optional[Rectangle],
    find_all: bool,
    do_click: bool,
    save: Optional[str],
    dry_run: bool,
    config: Optional[str],
) -> None:
    """Capture the screen and find TARGET on it."""
    from screen_finder.platform import PlatformServices

    finder_config = _load(ctx, config)
    if tolerance is None:
        tolerance = finder_config.search.tolerance
    if dry_run:
        finder_config.capture.dry_run = True

    services = PlatformServices.from_config(finder_config.capture)
    source_buffer = services.capture()
    target_buffer = load_buffer(target)
    if save:
        save_buffer(source_buffer, save)

    scheduler = QuadrantScheduler.from_config(finder_config.search)
    try:
        results = _search(scheduler, source_buffer, target_buffer, area, tolerance, find_all)
    except (FinderError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        ctx.exit(EXIT_ERROR)

    if not results:
        console.print("[yellow]No match found on screen.[/yellow]")
        ctx.exit(EXIT_NOT_FOUND)

    console.print(_results_table(results))

    if do_click:
        point = services.to_screen(results[0].rect.center)
        services.cursor = point
        services.click()
        console.print(f"Clicked at {point[0]}, {point[1]}")


@main.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
def fingerprint(image: str) -> None:
    """Print the 16x16 brightness fingerprint of IMAGE."""
    click.echo(load_buffer(image).fingerprint())


@main.command(name="config")
@click.option("--show", "-s", is_flag=True, help="Print the effective configuration")
@click.option("--init", "init_path", type=click.Path(dir_okay=False), help="Write a default config file")
@click.option("--config", "-c", type=click.Path(), help="Path to config file")
@click.pass_context
def config_command(
    ctx: click.Context,
    show: bool,
    init_path: Optional[str],
    config: Optional[str],
) -> None:
    """Show or initialise configuration."""
    if init_path:
        path = Path(init_path)
        if path.exists() and not click.confirm(f"{path} exists. Overwrite?"):
            console.print("Cancelled.")
            return
        save_config(FinderConfig(), str(path))
        console.print(f"[green]✓ Default config written to {path}[/green]")
        return

    finder_config = _load(ctx, config)
    table = Table(show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for section, values in finder_config.model_dump(mode="json").items():
        for key, value in values.items():
            table.add_row(f"{section}.{key}", str(value))
    console.print(table)


if __name__ == "__main__":
    main()
