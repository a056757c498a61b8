from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import pathlib

import numpy as np
import laspy  # type: ignore

from .pixels import PixelBatch
from .utils import get_logger

_log = get_logger()

# batch attribute -> (LAS extra dimension names, dtype)
PIXEL_EXTRA_DIMS: Dict[str, Tuple[Tuple[str, ...], str]] = {
    "pixel_id": (("pixel_id",), "int64"),
    "rgb": (("RadianceR", "RadianceG", "RadianceB"), "float32"),
    "pixel_u": (("pixel_u",), "float32"),
    "pixel_v": (("pixel_v",), "float32"),
}


def _display_rgb(rgb: np.ndarray) -> np.ndarray:
    """Clamp linear render colors to [0, 1] for presentation formats."""
    return np.clip(np.asarray(rgb, dtype=np.float64), 0.0, 1.0)


def _quantize(rgb: np.ndarray, max_value: int, dtype) -> np.ndarray:
    return (_display_rgb(rgb) * float(max_value) + 0.5).astype(dtype)


@dataclass
class LasWriter:
    """Streaming LAS/LAZ writer using laspy (v2+).

    Each pixel becomes a point at its cell center carrying 16-bit RGB
    (clamped) plus ExtraBytes for the identity and the unclamped radiance.
    The header is created from the first batch; later batches must carry
    the same attributes.
    """
    path: str
    point_format: int = 7
    compress: bool = False
    scale: Tuple[float, float, float] = (1e-4, 1e-4, 1e-4)
    offset: Optional[Tuple[float, float, float]] = None
    _writer: Optional["laspy.LasWriter"] = field(default=None, init=False, repr=False)
    _header: Optional["laspy.LasHeader"] = field(default=None, init=False, repr=False)
    _extras: Tuple[str, ...] = field(default=(), init=False, repr=False)

    def write_batch(self, batch: PixelBatch) -> None:
        if self._writer is None:
            self._open(batch)
        missing = [k for k in self._extras if k not in batch.attrs]
        if missing:
            raise ValueError(f"Batch lacks attributes {missing} declared in the LAS header.")
        self._writer.write_points(self._to_points(batch))

    def close(self) -> None:
        if self._writer is None:
            return
        self._writer.close()
        self._writer = None

    def _open(self, batch: PixelBatch) -> None:
        header = laspy.LasHeader(point_format=laspy.PointFormat(self.point_format), version="1.4")
        header.scales = self.scale
        origin = np.min(batch.xyz, axis=0) if self.offset is None else np.asarray(self.offset)
        header.offsets = tuple(float(v) for v in origin)

        self._extras = tuple(k for k in PIXEL_EXTRA_DIMS if k in batch.attrs)
        for key in self._extras:
            names, dtype = PIXEL_EXTRA_DIMS[key]
            for name in names:
                header.add_extra_dim(laspy.ExtraBytesParams(name=name, type=dtype))

        out = pathlib.Path(self.path)
        out.parent.mkdir(parents=True, exist_ok=True)
        self._header = header
        self._writer = laspy.open(out, mode="w", header=header, do_compress=self.compress)
        _log.info("Opened %s (PF=%d, compress=%s, extras=%s)", out.name, self.point_format, self.compress, list(self._extras))

    def _to_points(self, batch: PixelBatch) -> "laspy.ScaleAwarePointRecord":
        points = laspy.ScaleAwarePointRecord.zeros(len(batch.xyz), header=self._header)
        points.x, points.y, points.z = batch.xyz[:, 0], batch.xyz[:, 1], batch.xyz[:, 2]

        has_color = {"red", "green", "blue"} <= set(points.point_format.dimension_names)
        if has_color and "rgb" in batch.attrs:
            rgb16 = _quantize(batch.attrs["rgb"], 65535, np.uint16)
            points.red, points.green, points.blue = rgb16[:, 0], rgb16[:, 1], rgb16[:, 2]

        for key in self._extras:
            names, dtype = PIXEL_EXTRA_DIMS[key]
            values = np.asarray(batch.attrs[key]).astype(dtype, copy=False).reshape(len(batch.xyz), -1)
            for col, name in enumerate(names):
                points[name] = values[:, col]
        return points


class _BufferedWriter:
    """Collects batches and writes one file on close."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._pending: List[PixelBatch] = []

    def write_batch(self, batch: PixelBatch) -> None:
        self._pending.append(batch)

    def close(self) -> None:
        if not self._pending:
            return
        out = pathlib.Path(self.path)
        out.parent.mkdir(parents=True, exist_ok=True)
        self._flush(out, self._pending)
        _log.info("Wrote %d pixels to %s", sum(len(b.xyz) for b in self._pending), out.name)
        self._pending = []

    def _flush(self, out: pathlib.Path, batches: List[PixelBatch]) -> None:  # pragma: no cover - abstract
        raise NotImplementedError


class PlyWriter(_BufferedWriter):
    """ASCII PLY with cell centers, display colors and pixel identities."""

    def _flush(self, out: pathlib.Path, batches: List[PixelBatch]) -> None:
        xyz = np.concatenate([b.xyz for b in batches], axis=0)
        rgb = np.concatenate(
            [b.attrs.get("rgb", np.zeros((len(b.xyz), 3))) for b in batches], axis=0
        )
        ids = np.concatenate(
            [b.attrs.get("pixel_id", np.full(len(b.xyz), -1, dtype=np.int64)) for b in batches]
        )
        rgb8 = _quantize(rgb, 255, np.uint8)
        header = "\n".join([
            "ply",
            "format ascii 1.0",
            f"element vertex {len(xyz)}",
            "property float x",
            "property float y",
            "property float z",
            "property uchar red",
            "property uchar green",
            "property uchar blue",
            "property int pixel_id",
            "end_header",
        ])
        with open(out, "w", encoding="utf-8") as f:
            f.write(header + "\n")
            for p, c, pid in zip(xyz, rgb8, ids):
                f.write(f"{p[0]:.6f} {p[1]:.6f} {p[2]:.6f} {c[0]} {c[1]} {c[2]} {int(pid)}\n")


class NpzWriter(_BufferedWriter):
    """Lossless output: unclamped float colors keyed by pixel identity."""

    def _flush(self, out: pathlib.Path, batches: List[PixelBatch]) -> None:
        arrays: Dict[str, np.ndarray] = {"xyz": np.concatenate([b.xyz for b in batches], axis=0)}
        for key in sorted({k for b in batches for k in b.attrs}):
            for idx, b in enumerate(batches):
                if key not in b.attrs:
                    raise ValueError(f"Attribute '{key}' is missing from batch {idx}.")
            arrays[key] = np.concatenate([b.attrs[key] for b in batches], axis=0)
        np.savez_compressed(out, **arrays)
