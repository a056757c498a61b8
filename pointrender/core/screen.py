from __future__ import annotations

from typing import List

import numpy as np

from .errors import ConfigurationError
from .sampler import PixelCell
from .utils import as_vec3


class ScreenGrid:
    """Regular grid of pixel cells on a planar projection screen.

    The screen spans ``corner + s*edge_u + t*edge_v`` for ``s, t`` in [0, 1].
    Columns run along ``edge_u`` and rows along ``edge_v``; identities are
    assigned row-major starting at ``first_id``.
    """

    def __init__(
        self,
        corner,
        edge_u,
        edge_v,
        resolution_px: tuple[int, int],
        first_id: int = 0,
    ) -> None:
        width, height = resolution_px
        if width <= 0 or height <= 0:
            raise ConfigurationError("resolution_px must be positive")
        self.corner = as_vec3(corner, "corner")
        self.edge_u = as_vec3(edge_u, "edge_u")
        self.edge_v = as_vec3(edge_v, "edge_v")
        if np.linalg.norm(np.cross(self.edge_u, self.edge_v)) <= 1e-12:
            raise ConfigurationError("Screen edges must span a plane.")
        self.width = int(width)
        self.height = int(height)
        self.first_id = int(first_id)

    def __len__(self) -> int:
        return self.width * self.height

    def point(self, s: float, t: float) -> np.ndarray:
        return self.corner + s * self.edge_u + t * self.edge_v

    def pixel_id(self, row: int, col: int) -> int:
        return self.first_id + row * self.width + col

    def cells(self) -> List[PixelCell]:
        cells: List[PixelCell] = []
        du = 1.0 / self.width
        dv = 1.0 / self.height
        for row in range(self.height):
            for col in range(self.width):
                s0, s1 = col * du, (col + 1) * du
                t0, t1 = row * dv, (row + 1) * dv
                corners = np.stack(
                    [
                        self.point(s0, t0),
                        self.point(s1, t0),
                        self.point(s1, t1),
                        self.point(s0, t1),
                    ]
                )
                center = self.point(0.5 * (s0 + s1), 0.5 * (t0 + t1))
                cells.append(PixelCell.create(self.pixel_id(row, col), center, corners, row=row, col=col))
        return cells
