from __future__ import annotations
import math
from typing import Protocol
import numpy as np
from .errors import ConfigurationError
from .ray import MISS, Hit, HitResult, Miss, Ray, is_miss
from .utils import as_vec3, frozen

__all__ = ["Ray", "Hit", "Miss", "MISS", "HitResult", "is_miss", "make_ray", "Intersector", "NearestHitQuery"]

DEFAULT_MAX_RAY_DISTANCE = 1e6


def make_ray(camera_origin, sample_position) -> Ray:
    """Ray from a screen sample, pointing away from the camera."""
    cam = as_vec3(camera_origin, "camera_origin")
    pos = as_vec3(sample_position, "sample_position")
    delta = pos - cam
    length = float(np.linalg.norm(delta))
    if length == 0.0 or not math.isfinite(length):
        raise ConfigurationError(
            f"Camera origin {cam.tolist()} coincides with sample position {pos.tolist()}."
        )
    return Ray(origin=frozen(pos), direction=frozen(delta / length))


class NearestHitQuery(Protocol):
    def nearest_intersection(self, ray: Ray, max_distance: float = ...) -> HitResult: ...


class Intersector:
    """Nearest-hit queries against a SurfaceStore, clipped at ``max_ray_distance``."""

    def __init__(self, store: NearestHitQuery, max_ray_distance: float = DEFAULT_MAX_RAY_DISTANCE) -> None:
        max_ray_distance = float(max_ray_distance)
        if not math.isfinite(max_ray_distance) or max_ray_distance <= 0.0:
            raise ConfigurationError(f"max_ray_distance must be finite and > 0, got {max_ray_distance}.")
        self.store = store
        self.max_ray_distance = max_ray_distance

    def intersect(self, ray: Ray) -> HitResult:
        hit = self.store.nearest_intersection(ray, self.max_ray_distance)
        if not isinstance(hit, Hit) or hit.distance > self.max_ray_distance:
            return MISS
        return hit
