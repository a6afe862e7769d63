"""Command-line interface for VectorForge.

Provides commands for converting images to SVG, refining and remixing
existing SVG files, converting many images at once, and listing the
built-in presets and transformations.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from vectorforge.batch import BatchItem, convert_batch
from vectorforge.config import RunConfig, load_config, resolve_settings
from vectorforge.errors import VectorForgeError
from vectorforge.image_io import load_image_data
from vectorforge.iterative import (
    IterationResult,
    IterativeConfig,
    run_iterative_conversion,
)
from vectorforge.logging import setup_logging
from vectorforge.models import ConversionResult, ConversionSettings, ImageData
from vectorforge.pipeline import ConversionPipeline, convert_image_data, create_pipeline
from vectorforge.presets import BUILT_IN_PRESETS, list_presets
from vectorforge.svg.refinement import (
    TRANSFORMATIONS,
    BorderOptions,
    RefinementOptions,
    apply_transformations,
    inspect_svg,
    refine_svg,
)
from vectorforge.svg.remix import BackgroundOptions

console = Console()

PIPELINE_CHOICES = ("default", "minimal", "high_quality")
PRESET_CHOICES = tuple(p.id for p in BUILT_IN_PRESETS)
TRANSFORMATION_CHOICES = tuple(t.id for t in TRANSFORMATIONS)


def _setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    if verbose:
        setup_logging(level=logging.DEBUG, verbose=True)
    else:
        setup_logging(level=logging.INFO)


def _fail(action: str, exc: BaseException, verbose: bool) -> None:
    console.print(f"[bold red]✗[/] {action} failed: {exc}")
    if verbose:
        console.print_exception()
    sys.exit(1)


def _run_guarded(action: str, verbose: bool, body: Callable[[], None]) -> None:
    """Run a command body with the CLI's error-to-exit-code mapping."""
    try:
        body()
    except (VectorForgeError, ValidationError) as e:
        _fail(action, e, verbose)
    except KeyboardInterrupt:
        console.print(f"\n[bold yellow]⚠[/] {action} interrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print(f"[bold red]✗[/] Unexpected error: {e}")
        if verbose:
            console.print_exception()
        sys.exit(1)


# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------


def refinement_flags(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the SVG refinement flags shared by ``convert`` and ``refine``."""
    options = [
        click.option(
            "--remove-background",
            is_flag=True,
            help="Drop a near-white rectangle covering the canvas",
        ),
        click.option(
            "--merge-colors",
            is_flag=True,
            help="Merge sibling paths with near-identical fills",
        ),
        click.option(
            "--merge-threshold",
            type=click.FloatRange(min=0),
            default=None,
            help="RGB distance below which fills merge (default 20)",
        ),
        click.option(
            "--remove-empty",
            is_flag=True,
            help="Remove empty groups and paths that draw nothing",
        ),
        click.option(
            "--precision",
            type=click.IntRange(0, 8),
            default=None,
            help="Round path coordinates to this many decimals",
        ),
        click.option(
            "--flatten-groups",
            is_flag=True,
            help="Collapse groups that wrap a single shape",
        ),
        click.option(
            "--remove-color",
            multiple=True,
            help="Delete shapes filled with this color (repeatable)",
        ),
        click.option("--grayscale", is_flag=True, help="Convert colors to gray"),
        click.option("--invert", is_flag=True, help="Invert fill and stroke colors"),
        click.option(
            "--background",
            default=None,
            help="Put a solid backdrop of this color behind the artwork",
        ),
        click.option(
            "--border",
            type=click.Choice(["rectangle", "rounded", "circle"]),
            default=None,
            help="Draw a frame around the artwork",
        ),
        click.option(
            "--border-padding",
            type=click.FloatRange(min=0),
            default=None,
            help="Space between artwork and frame (default 10)",
        ),
    ]

    for option in reversed(options):
        func = option(func)
    return func


def build_refinement(
    base: RefinementOptions,
    *,
    remove_background: bool = False,
    merge_colors: bool = False,
    merge_threshold: float | None = None,
    remove_empty: bool = False,
    precision: int | None = None,
    flatten_groups: bool = False,
    remove_color: tuple[str, ...] = (),
    grayscale: bool = False,
    invert: bool = False,
    background: str | None = None,
    border: str | None = None,
    border_padding: float | None = None,
) -> RefinementOptions:
    """Layer command-line refinement flags over configured options.

    Colors given with ``remove_color`` add to the configured ones; a
    ``background`` color keeps the configured backdrop opacity.
    """
    update: dict[str, Any] = {}
    if remove_background:
        update["remove_background"] = True
    if merge_colors:
        update["merge_color_blocks"] = True
    if merge_threshold is not None:
        update["merge_threshold"] = merge_threshold
    if remove_empty:
        update["remove_empty_elements"] = True
    if precision is not None:
        update["round_precision"] = True
        update["precision"] = precision
    if flatten_groups:
        update["flatten_groups"] = True
    if remove_color:
        update["remove_colors"] = [*base.remove_colors, *remove_color]
    if grayscale:
        update["grayscale"] = True
    if invert:
        update["invert_colors"] = True
    if background is not None:
        backdrop = base.background or BackgroundOptions()
        update["background"] = BackgroundOptions(
            **{**backdrop.model_dump(), "color": background}
        )
    if border is not None or border_padding is not None:
        frame = base.border or BorderOptions()
        frame_update: dict[str, Any] = {}
        if border is not None:
            frame_update["shape"] = border
        if border_padding is not None:
            frame_update["padding"] = border_padding
        update["border"] = BorderOptions(**{**frame.model_dump(), **frame_update})
    if not update:
        return base
    return RefinementOptions(**{**base.model_dump(), **update})


def _describe_settings(settings: ConversionSettings) -> str:
    return (
        f"complexity={settings.complexity:.2f}, "
        f"color_simplification={settings.color_simplification:.2f}, "
        f"path_smoothing={settings.path_smoothing:.2f}"
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="vectorforge")
def main() -> None:
    """VectorForge — convert raster images into layered SVG paths."""
    pass


@main.command()
@click.argument(
    "image_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output SVG path (default: next to the image, .svg suffix)",
)
@click.option("--preset", type=click.Choice(PRESET_CHOICES), help="Start from a preset")
@click.option("--complexity", type=click.FloatRange(0, 1), help="Detail level 0-1")
@click.option(
    "--color-simplification",
    type=click.FloatRange(0, 1),
    help="Color reduction 0-1 (higher = fewer colors)",
)
@click.option(
    "--path-smoothing", type=click.FloatRange(0, 1), help="Curve smoothing 0-1"
)
@click.option(
    "--pipeline",
    "pipeline_kind",
    type=click.Choice(PIPELINE_CHOICES),
    default=None,
    help="Stage set to run (default: default)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML run configuration",
)
@click.option(
    "--iterations",
    "max_iterations",
    type=click.IntRange(min=1),
    default=None,
    help="Re-run the conversion, nudging settings towards more detail each time",
)
@refinement_flags
@click.option("--verbose", "-v", is_flag=True, help="Enable detailed logging")
def convert(
    image_path: Path,
    output: Path | None,
    preset: str | None,
    complexity: float | None,
    color_simplification: float | None,
    path_smoothing: float | None,
    pipeline_kind: str | None,
    config_path: Path | None,
    max_iterations: int | None,
    verbose: bool,
    **refine_flags: Any,
) -> None:
    """Convert a raster image into an SVG file.

    IMAGE_PATH: PNG, JPEG, or any other format Pillow can read.

    Command-line values override the config file; an explicit --preset
    replaces the configured preset and settings.  With --iterations (or an
    ``iterations`` config section) the image is converted repeatedly and
    the last attempt is written.

    Example:

        \b
        vectorforge convert logo.png --preset logo --remove-background
        vectorforge convert photo.jpg -o out.svg --complexity 0.9 --precision 1
    """
    _setup_logging(verbose)

    def body() -> None:
        run_config = load_config(config_path) if config_path else RunConfig()
        settings = (
            resolve_settings(preset) if preset is not None else run_config.settings
        )
        overrides = {
            "complexity": complexity,
            "color_simplification": color_simplification,
            "path_smoothing": path_smoothing,
        }
        overrides = {k: v for k, v in overrides.items() if v is not None}
        if overrides:
            settings = ConversionSettings(**{**settings.model_dump(), **overrides})

        refinement = build_refinement(run_config.refinement, **refine_flags)
        pipeline = create_pipeline(pipeline_kind or run_config.pipeline)
        output_path = output or image_path.with_suffix(".svg")

        with console.status(f"[bold blue]Loading {image_path}..."):
            image_data = load_image_data(image_path)
        console.print(
            f"[bold green]✓[/] Loaded [bold]{image_path.name}[/] "
            f"({image_data.width}×{image_data.height})"
        )
        console.print(f"  Settings: {_describe_settings(settings)}")
        console.print(f"  Pipeline: {escape(repr(pipeline))}")

        iterations = run_config.iterations
        if max_iterations is not None:
            configured = iterations.model_dump() if iterations else {}
            iterations = IterativeConfig(
                **{**configured, "max_iterations": max_iterations}
            )

        if iterations is None:
            result = asyncio.run(_run_conversion(image_data, settings, pipeline))
        else:
            result = asyncio.run(
                _run_iterations(image_data, settings, pipeline, iterations)
            )
        svg = refine_svg(result.svg, refinement)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(svg, encoding="utf-8")
        console.print(
            f"[bold green]✓[/] Wrote [bold]{output_path}[/] "
            f"({result.metadata.get('path_count', 0)} paths, {len(svg)} bytes)"
        )

    _run_guarded("Conversion", verbose, body)


async def _run_conversion(
    image_data: ImageData,
    settings: ConversionSettings,
    pipeline: ConversionPipeline,
) -> ConversionResult:
    """Run one conversion with a per-stage progress bar."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("[cyan]Converting...", total=max(len(pipeline), 1))

        def on_progress(stage_name: str, current: int, total: int) -> None:
            progress.update(
                task, description=f"[cyan]{stage_name}", completed=current - 1
            )

        result = await convert_image_data(
            image_data, settings, on_progress=on_progress, pipeline=pipeline
        )
        progress.update(task, description="[green]Done", completed=len(pipeline))
    return result


async def _run_iterations(
    image_data: ImageData,
    settings: ConversionSettings,
    pipeline: ConversionPipeline,
    config: IterativeConfig,
) -> ConversionResult:
    """Run the iterative loop with the fallback nudge; keep the last attempt."""

    def on_iteration(record: IterationResult) -> None:
        console.print(
            f"  Iteration {record.iteration}/{config.max_iterations}: "
            f"{_describe_settings(record.settings)} → "
            f"{record.result.metadata.get('path_count', 0)} paths, "
            f"{record.result.size} bytes"
        )

    with console.status("[bold blue]Converting iteratively..."):
        results = await run_iterative_conversion(
            image_data,
            settings,
            None,
            config=config,
            pipeline=pipeline,
            on_iteration=on_iteration,
        )
    return results[-1].result


@main.command()
@click.argument(
    "svg_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output path (default: <name>.refined.svg next to the input)",
)
@refinement_flags
@click.option("--verbose", "-v", is_flag=True, help="Enable detailed logging")
def refine(
    svg_path: Path,
    output: Path | None,
    verbose: bool,
    **refine_flags: Any,
) -> None:
    """Apply refinement passes to an existing SVG file.

    SVG_PATH: The SVG document to refine.

    Example:

        \b
        vectorforge refine drawing.svg --remove-empty --flatten-groups
        vectorforge refine logo.svg -o framed.svg --border circle
    """
    _setup_logging(verbose)

    def body() -> None:
        options = build_refinement(RefinementOptions(), **refine_flags)
        source = svg_path.read_text(encoding="utf-8")
        before = inspect_svg(source)
        refined = refine_svg(source, options)
        after = inspect_svg(refined)

        output_path = output or svg_path.with_name(f"{svg_path.stem}.refined.svg")
        output_path.write_text(refined, encoding="utf-8")
        console.print(f"[bold green]✓[/] Wrote [bold]{output_path}[/]")
        console.print(
            f"  Paths: {before.path_count} → {after.path_count}, "
            f"groups: {before.group_count} → {after.group_count}, "
            f"size: {len(source)} → {len(refined)} bytes"
        )

    _run_guarded("Refinement", verbose, body)


@main.command()
@click.argument(
    "image_paths",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--output-dir",
    "-d",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory receiving one SVG per image",
)
@click.option(
    "--max-concurrent",
    "-c",
    type=click.IntRange(min=0),
    default=0,
    help="Maximum images converted at once (0 = unlimited)",
)
@click.option("--preset", type=click.Choice(PRESET_CHOICES), help="Start from a preset")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML run configuration",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable detailed logging")
def batch(
    image_paths: tuple[Path, ...],
    output_dir: Path,
    max_concurrent: int,
    preset: str | None,
    config_path: Path | None,
    verbose: bool,
) -> None:
    """Convert several images concurrently.

    Example:

        \b
        vectorforge batch icons/*.png --output-dir svg/ --max-concurrent 4
    """
    _setup_logging(verbose)

    def body() -> None:
        run_config = load_config(config_path) if config_path else RunConfig()
        settings = (
            resolve_settings(preset) if preset is not None else run_config.settings
        )

        items: list[BatchItem] = []
        load_failures = 0
        for path in image_paths:
            try:
                image_data = load_image_data(path)
                items.append(BatchItem(name=path.name, image_data=image_data))
            except VectorForgeError as exc:
                load_failures += 1
                console.print(f"[bold red]✗[/] {exc}")

        kind = run_config.pipeline
        with console.status(f"[bold blue]Converting {len(items)} image(s)..."):
            result = asyncio.run(
                convert_batch(
                    items,
                    settings,
                    max_concurrent=max_concurrent,
                    pipeline_factory=lambda: create_pipeline(kind),
                    refinement=run_config.refinement,
                )
            )

        output_dir.mkdir(parents=True, exist_ok=True)
        table = Table(title="Batch results")
        table.add_column("Image")
        table.add_column("Status")
        table.add_column("Output / error")
        for job in result.jobs:
            if job.result is not None:
                target = output_dir / f"{Path(job.name).stem}.svg"
                target.write_text(job.result.svg, encoding="utf-8")
                table.add_row(job.name, "[green]completed[/]", str(target))
            else:
                table.add_row(job.name, "[red]failed[/]", job.error or "")
        console.print(table)
        console.print(
            f"[bold]{result.completed}[/] completed, "
            f"[bold]{result.failed + load_failures}[/] failed"
        )
        if result.failed or load_failures:
            sys.exit(1)

    _run_guarded("Batch conversion", verbose, body)


@main.command()
@click.argument(
    "svg_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--transformation",
    "-t",
    "transformation_ids",
    multiple=True,
    required=True,
    type=click.Choice(TRANSFORMATION_CHOICES),
    help="Transformation to apply (repeatable, applied in order)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output path (default: <name>.remixed.svg next to the input)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable detailed logging")
def remix(
    svg_path: Path,
    transformation_ids: tuple[str, ...],
    output: Path | None,
    verbose: bool,
) -> None:
    """Apply one-click transformations to an SVG file.

    SVG_PATH: The SVG document to remix.

    Example:

        \b
        vectorforge remix logo.svg -t grayscale -t add-circle-border
        vectorforge remix art.svg -t flip-horizontal -o mirrored.svg
    """
    _setup_logging(verbose)

    def body() -> None:
        source = svg_path.read_text(encoding="utf-8")
        remixed = apply_transformations(source, transformation_ids)
        output_path = output or svg_path.with_name(f"{svg_path.stem}.remixed.svg")
        output_path.write_text(remixed, encoding="utf-8")
        console.print(
            f"[bold green]✓[/] Applied {', '.join(transformation_ids)}; "
            f"wrote [bold]{output_path}[/]"
        )

    _run_guarded("Remix", verbose, body)


@main.command()
def transformations() -> None:
    """List the one-click transformations available to ``remix``."""
    table = Table(title="Transformations")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Description")
    for transformation in TRANSFORMATIONS:
        table.add_row(
            transformation.id,
            transformation.name,
            transformation.category,
            transformation.description,
        )
    console.print(table)


@main.command()
def presets() -> None:
    """List the built-in conversion presets."""
    table = Table(title="Built-in presets")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Description")
    table.add_column("Complexity", justify="right")
    table.add_column("Color simpl.", justify="right")
    table.add_column("Smoothing", justify="right")
    for preset in list_presets():
        table.add_row(
            preset.id,
            preset.name,
            preset.description,
            f"{preset.settings.complexity:.2f}",
            f"{preset.settings.color_simplification:.2f}",
            f"{preset.settings.path_smoothing:.2f}",
        )
    console.print(table)


if __name__ == "__main__":
    main()
