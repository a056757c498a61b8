from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
import numpy as np
from .errors import ConfigurationError
from .utils import as_vec3, frozen


@dataclass(frozen=True, eq=False)
class PixelCell:
    """One logical screen cell: identity, center and four corner positions."""

    pixel_id: int
    center: np.ndarray     # (3,)
    corners: np.ndarray    # (4, 3)
    row: Optional[int] = None
    col: Optional[int] = None

    @staticmethod
    def create(
        pixel_id: int,
        center,
        corners,
        row: Optional[int] = None,
        col: Optional[int] = None,
    ) -> "PixelCell":
        c = as_vec3(center, "center")
        k = np.asarray(corners, dtype=np.float64)
        if k.shape != (4, 3):
            raise ConfigurationError(f"Pixel {pixel_id}: expected 4 corners of 3 components, got {k.shape}.")
        return PixelCell(pixel_id=int(pixel_id), center=frozen(c), corners=frozen(k), row=row, col=col)


@dataclass(frozen=True, eq=False)
class Sample:
    position: np.ndarray   # (3,)
    pixel_id: int


@dataclass(frozen=True)
class PatternConfig:
    """Per-cell sampling pattern.

    ``corner_bias`` interpolates each corner sample between the center (0)
    and the corner itself (1). ``0.5`` with the center is the five-point
    quincunx, ``1`` without the center is the four-point grid.
    """

    include_center: bool = True
    corner_bias: float = 0.5

    def __post_init__(self) -> None:
        bias = float(self.corner_bias)
        if not math.isfinite(bias) or bias < 0.0 or bias > 1.0:
            raise ConfigurationError(f"corner_bias must be within [0, 1], got {self.corner_bias}.")
        if not self.include_center and bias == 0.0:
            raise ConfigurationError("Pattern emits no samples: include_center=False with corner_bias=0.")

    @classmethod
    def quincunx(cls) -> "PatternConfig":
        return cls(include_center=True, corner_bias=0.5)

    @classmethod
    def grid(cls) -> "PatternConfig":
        return cls(include_center=False, corner_bias=1.0)

    @classmethod
    def center_only(cls) -> "PatternConfig":
        return cls(include_center=True, corner_bias=0.0)

    @property
    def samples_per_cell(self) -> int:
        corners = 4 if self.corner_bias > 0.0 else 0
        return corners + (1 if self.include_center else 0)


def generate_samples(cell: PixelCell, pattern: PatternConfig) -> Tuple[Sample, ...]:
    """Emit the sample positions of one cell, center first, then corners in cell order."""
    samples: List[Sample] = []
    if pattern.include_center:
        samples.append(Sample(position=cell.center, pixel_id=cell.pixel_id))
    bias = float(pattern.corner_bias)
    # bias 0 would only repeat the center four times
    if bias > 0.0:
        for corner in cell.corners:
            pos = cell.center + bias * (corner - cell.center)
            samples.append(Sample(position=frozen(pos), pixel_id=cell.pixel_id))
    return tuple(samples)


def generate_all_samples(cells: Iterable[PixelCell], pattern: PatternConfig) -> List[Sample]:
    out: List[Sample] = []
    for cell in cells:
        out.extend(generate_samples(cell, pattern))
    return out
