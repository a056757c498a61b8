"""Ray and hit records shared by the surface store, intersector and shader."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple, Union
import numpy as np


@dataclass(frozen=True, eq=False)
class Ray:
    """A ray with an origin point and a unit direction."""

    origin: np.ndarray      # (3,)
    direction: np.ndarray   # (3,) unit

    def at(self, t: float) -> np.ndarray:
        return self.origin + t * self.direction


class Miss:
    """Sentinel for a ray that hit nothing within the far clip."""

    _instance = None

    def __new__(cls) -> "Miss":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISS"

    def __reduce__(self):
        # keep the singleton across process-pool pickling
        return (Miss, ())


MISS = Miss()


@dataclass(frozen=True, eq=False)
class Hit:
    """Nearest ray/surface intersection.

    ``normal`` is the primitive's interpolated ``normal`` attribute at
    ``parametric_coord``; it is not derived from the geometry.
    """

    primitive_id: int
    position: np.ndarray
    parametric_coord: Tuple[float, float]
    normal: np.ndarray
    distance: float


HitResult = Union[Hit, Miss]


def is_miss(hit: HitResult) -> bool:
    return hit is MISS or isinstance(hit, Miss)
