from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

import laspy
import matplotlib
import matplotlib.pyplot as plt
import numpy as np

from pointrender.examples.synthetic import generate_scene
from pointrender.sdk import render_from_config

matplotlib.use("Agg")


@dataclass(frozen=True)
class ExampleSpec:
    name: str
    preset: str
    resolution: int
    corner_bias: float = 0.5
    include_center: bool = True


PREVIEW_EXAMPLES: List[ExampleSpec] = [
    ExampleSpec(name="quad", preset="quad", resolution=32),
    ExampleSpec(name="edge_center_only", preset="edge", resolution=16, corner_bias=0.0),
    ExampleSpec(name="edge_quincunx", preset="edge", resolution=16),
    ExampleSpec(name="demo", preset="demo", resolution=48),
]

FULL_EXAMPLES: List[ExampleSpec] = [
    ExampleSpec(name="quad", preset="quad", resolution=128),
    ExampleSpec(name="edge_center_only", preset="edge", resolution=64, corner_bias=0.0),
    ExampleSpec(name="edge_quincunx", preset="edge", resolution=64),
    ExampleSpec(name="edge_grid", preset="edge", resolution=64, corner_bias=1.0, include_center=False),
    ExampleSpec(name="demo", preset="demo", resolution=192),
]

CONFIG_DIR = Path("examples/configs")
OUTPUT_DIR = Path("examples/outputs")
IMAGE_DIR = Path("examples/images")


def _ensure_dirs() -> None:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    IMAGE_DIR.mkdir(parents=True, exist_ok=True)


def run_example(example: ExampleSpec, overwrite: bool = True, executor: str = "serial", workers: int = 1) -> Path:
    out_path = OUTPUT_DIR / f"{example.name}.npz"
    if out_path.exists() and not overwrite:
        logging.info("Skipping %s (output exists)", example.name)
        return out_path
    cfg_path = generate_scene(example.preset, CONFIG_DIR / f"{example.name}.yaml", resolution=example.resolution)
    result = render_from_config(
        cfg_path,
        output=out_path,
        corner_bias=example.corner_bias,
        include_center=example.include_center,
        executor=executor,
        workers=workers,
    )
    logging.info("Rendered %d pixels (%d samples)", result.stats["pixels"], result.stats["samples"])
    return result.output_path


def _load_pixels(path: Path) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    ext = path.suffix.lower()
    if ext == ".npz":
        with np.load(path) as data:
            rgb = data["rgb"].astype(np.float64)
            cols = data["pixel_u"].astype(np.int64)
            rows = data["pixel_v"].astype(np.int64)
    elif ext in {".las", ".laz"}:
        with laspy.open(path) as reader:
            points = reader.read()
            rgb = np.column_stack([points["RadianceR"], points["RadianceG"], points["RadianceB"]]).astype(np.float64)
            cols = np.asarray(points["pixel_u"]).astype(np.int64)
            rows = np.asarray(points["pixel_v"]).astype(np.int64)
    else:
        raise ValueError(f"Unsupported output format for preview: {path}")
    return rgb, rows, cols


def render_image(name: str, rgb: np.ndarray, rows: np.ndarray, cols: np.ndarray) -> Path:
    if rgb.size == 0:
        raise ValueError(f"No pixels to preview for {name}")
    image = np.zeros((int(rows.max()) + 1, int(cols.max()) + 1, 3), dtype=np.float64)
    image[rows, cols] = np.clip(rgb, 0.0, 1.0)

    fig = plt.figure(figsize=(6, 6), dpi=150)
    ax = fig.add_subplot(1, 1, 1)
    # row 0 lies along the screen corner, i.e. the bottom edge
    ax.imshow(image, origin="lower", interpolation="nearest")
    ax.set_title(name.replace("_", " ").title())
    ax.set_xlabel("pixel u")
    ax.set_ylabel("pixel v")

    fig.tight_layout()
    out_path = IMAGE_DIR / f"{name}.png"
    fig.savefig(out_path)
    plt.close(fig)
    return out_path


def generate_examples(
    names: List[str],
    overwrite_outputs: bool,
    *,
    full: bool = False,
    executor: str = "serial",
    workers: int = 1,
) -> None:
    _ensure_dirs()
    example_list = FULL_EXAMPLES if full else PREVIEW_EXAMPLES
    selected = example_list if not names else [example for example in example_list if example.name in names]
    if not selected:
        raise ValueError("No matching examples selected.")
    for example in selected:
        logging.info("Running example '%s'", example.name)
        out_path = run_example(example, overwrite=overwrite_outputs, executor=executor, workers=workers)
        if not out_path.exists():
            logging.warning("Output %s missing, skipping preview", out_path)
            continue
        rgb, rows, cols = _load_pixels(out_path)
        image_path = render_image(example.name, rgb, rows, cols)
        logging.info("Saved %s", image_path)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate pointrender example outputs and preview images.")
    parser.add_argument("--example", "-e", action="append", help="Example name to run (default: all).")
    parser.add_argument("--no-overwrite", action="store_true", help="Skip generating outputs if they already exist.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO).")
    parser.add_argument("--full", action="store_true", help="Use full-resolution scenes instead of quick previews.")
    parser.add_argument("--executor", default="serial", choices=["serial", "thread", "process"], help="Parallel executor.")
    parser.add_argument("--workers", type=int, default=1, help="Worker count for thread/process executors.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format="[%(levelname)s] %(message)s")
    generate_examples(
        args.example or [],
        overwrite_outputs=not args.no_overwrite,
        full=args.full,
        executor=args.executor,
        workers=args.workers,
    )


if __name__ == "__main__":
    main()
