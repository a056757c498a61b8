from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np

from ..config import ScenarioConfig, load_config
from ..core.pixels import PixelBatch
from ..core.renderer import Renderer
from ..runtime.builders import (
    build_cells,
    build_lights,
    build_settings,
    build_store,
    build_writer,
)

OUTPUT_EXTENSIONS = {".npz", ".ply", ".las", ".laz"}


@dataclass(frozen=True)
class RenderRunResult:
    """Summary of a render driven by a configuration file."""

    stats: Dict[str, int]
    output_path: Path
    config: ScenarioConfig
    colors: Dict[int, np.ndarray]


def apply_output_override(cfg: ScenarioConfig, output: Path) -> None:
    out_path = Path(output).resolve()
    ext = out_path.suffix.lower()
    if ext not in OUTPUT_EXTENSIONS:
        raise ValueError(f"Unsupported output extension '{ext}'")
    cfg.output.path = out_path
    cfg.output.format = ext.lstrip(".")
    if ext == ".las":
        cfg.output.compress = False
    elif ext == ".laz":
        cfg.output.compress = True if cfg.output.compress is None else cfg.output.compress


def render_from_config(
    config: Union[str, Path, ScenarioConfig],
    *,
    output: Optional[Path] = None,
    corner_bias: Optional[float] = None,
    include_center: Optional[bool] = None,
    executor: Optional[str] = None,
    workers: Optional[int] = None,
) -> RenderRunResult:
    """Render a scenario described by a configuration file or object.

    Parameters
    ----------
    config:
        Path to a YAML file or a pre-loaded :class:`~pointrender.config.schema.ScenarioConfig`.
    output:
        Optional override for the output file. The extension drives the
        format (``.npz``, ``.ply``, ``.las`` or ``.laz``).
    corner_bias, include_center:
        Optional overrides of the per-cell sampling pattern.
    executor, workers:
        Optional overrides of the parallel map (``serial``, ``thread`` or ``process``).

    Returns
    -------
    RenderRunResult
        Render statistics (pixels, samples, hits, misses), the resolved output
        path, the configuration used and the per-pixel colors.
    """

    cfg = load_config(config) if not isinstance(config, ScenarioConfig) else config.model_copy(deep=True)

    if corner_bias is not None:
        cfg.render.corner_bias = float(corner_bias)
    if include_center is not None:
        cfg.render.include_center = bool(include_center)
    if executor:
        cfg.render.executor = executor  # type: ignore[assignment]
    if workers is not None:
        cfg.render.workers = int(workers)

    if output is not None:
        apply_output_override(cfg, output)
    else:
        cfg.output.path = Path(cfg.output.path).resolve()
    cfg.output.path.parent.mkdir(parents=True, exist_ok=True)

    store = build_store(cfg)
    lights = build_lights(cfg)
    cells = build_cells(cfg)
    renderer = Renderer(store, lights, cfg.camera.origin, build_settings(cfg))
    result = renderer.render(cells)

    writer = build_writer(cfg)
    try:
        writer.write_batch(PixelBatch.from_render(cells, result.colors))
    finally:
        close = getattr(writer, "close", None)
        if callable(close):
            close()

    return RenderRunResult(
        stats=result.stats,
        output_path=Path(cfg.output.path),
        config=cfg,
        colors=result.colors,
    )
