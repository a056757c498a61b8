from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from ..core.errors import ConfigurationError
from ..examples.synthetic import PRESETS, generate_scene
from ..sdk.run import render_from_config

app = typer.Typer(help="Point-sampled surface rendering utilities")
scene_app = typer.Typer(help="Synthetic scenario helpers")
app.add_typer(scene_app, name="scene")


def _configure_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric, format="[%(levelname)s] %(message)s")
    logging.getLogger("pointrender").setLevel(numeric)


def _execute_render(
    config: Path,
    output_override: Optional[Path],
    corner_bias: Optional[float],
    include_center: Optional[bool],
    executor: Optional[str],
    workers: Optional[int],
    log_level: str,
) -> None:
    _configure_logging(log_level)
    if output_override is not None and output_override.suffix.lower() not in {".las", ".laz", ".npz", ".ply"}:
        raise typer.BadParameter(
            f"Unsupported output extension '{output_override.suffix.lower()}'", param_hint="--output"
        )
    try:
        result = render_from_config(
            config,
            output=output_override,
            corner_bias=corner_bias,
            include_center=include_center,
            executor=executor,
            workers=workers,
        )
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except ValueError as exc:
        # pydantic validation errors are ValueErrors too
        raise typer.BadParameter(str(exc), param_hint="CONFIG") from exc
    stats = result.stats
    typer.echo(
        f"Completed {stats['pixels']} pixels from {stats['samples']} samples "
        f"({stats['hits']} hits) → {result.output_path}"
    )


@app.command("render")
def render(
    config: Path = typer.Argument(..., exists=True, readable=True, help="Path to YAML configuration file."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Override output path (extension sets format)."),
    corner_bias: Optional[float] = typer.Option(None, "--corner-bias", help="Override corner sample bias in [0, 1]."),
    include_center: Optional[bool] = typer.Option(
        None, "--include-center/--no-center", help="Override whether the cell center is sampled."
    ),
    executor: Optional[str] = typer.Option(None, "--executor", help="Override executor (serial, thread, process)."),
    workers: Optional[int] = typer.Option(None, "--workers", help="Override worker count."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Render a scenario specified by a YAML config."""

    _execute_render(config, output, corner_bias, include_center, executor, workers, log_level)


@app.command("run")
def run(
    config: Path = typer.Argument(..., exists=True, readable=True, help="Path to YAML configuration file."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Override output path (extension sets format)."),
    corner_bias: Optional[float] = typer.Option(None, "--corner-bias", help="Override corner sample bias in [0, 1]."),
    include_center: Optional[bool] = typer.Option(
        None, "--include-center/--no-center", help="Override whether the cell center is sampled."
    ),
    executor: Optional[str] = typer.Option(None, "--executor", help="Override executor (serial, thread, process)."),
    workers: Optional[int] = typer.Option(None, "--workers", help="Override worker count."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Alias for `render`"""

    _execute_render(config, output, corner_bias, include_center, executor, workers, log_level)


@scene_app.command("generate")
def scene_generate(
    output: Path = typer.Argument(..., help="Output scenario path (.yaml)."),
    preset: str = typer.Option("quad", "--preset", help="Synthetic scenario preset (quad, edge, demo)."),
    resolution: int = typer.Option(16, "--resolution", help="Screen resolution (pixels per side)."),
) -> None:
    """Generate a synthetic scenario useful for rendering demos."""

    if preset not in PRESETS:
        raise typer.BadParameter(f"preset must be one of {list(PRESETS)}.", param_hint="--preset")
    if resolution <= 0:
        raise typer.BadParameter("resolution must be positive.", param_hint="--resolution")
    out = output.resolve()
    generate_scene(preset=preset, path=out, resolution=resolution)
    typer.echo(f"Wrote synthetic scenario to {out}")


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
