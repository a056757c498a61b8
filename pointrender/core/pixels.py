from __future__ import annotations
from dataclasses import dataclass, field
import numpy as np
from typing import Dict, Mapping, Sequence

from .sampler import PixelCell

@dataclass
class PixelBatch:
    """Rendered pixels laid out as points: cell centers plus per-pixel attributes."""
    xyz: np.ndarray                       # (N, 3)
    attrs: Dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.xyz = self.xyz.astype(np.float32, copy=False)
        # Ensure attributes are 1D or 2D with matching length
        n = len(self.xyz)
        for k, v in list(self.attrs.items()):
            if v.ndim == 1 and len(v) != n:
                raise ValueError(f"Attribute '{k}' length {len(v)} != {n}")
            if v.ndim == 2 and v.shape[0] != n:
                raise ValueError(f"Attribute '{k}' first dim {v.shape[0]} != {n}")

    @staticmethod
    def from_render(cells: Sequence[PixelCell], colors: Mapping[int, np.ndarray]) -> "PixelBatch":
        xyz = np.asarray([c.center for c in cells], dtype=np.float64).reshape(-1, 3)
        rgb = np.asarray([colors[c.pixel_id] for c in cells], dtype=np.float32).reshape(-1, 3)
        attrs: Dict[str, np.ndarray] = {
            "pixel_id": np.asarray([c.pixel_id for c in cells], dtype=np.int64),
            "rgb": rgb,
        }
        if cells and all(c.row is not None and c.col is not None for c in cells):
            attrs["pixel_u"] = np.asarray([c.col for c in cells], dtype=np.float32)
            attrs["pixel_v"] = np.asarray([c.row for c in cells], dtype=np.float32)
        return PixelBatch(xyz=xyz, attrs=attrs)
