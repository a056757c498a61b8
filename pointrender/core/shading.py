from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Sequence, Tuple
import numpy as np
from .errors import ConfigurationError
from .ray import HitResult, is_miss
from .scene import SurfaceStore
from .utils import as_vec3, frozen, get_logger, normalize

_log = get_logger()

BLACK = np.zeros(3, dtype=np.float64)
BLACK.flags.writeable = False


@dataclass(frozen=True, eq=False)
class Light:
    """Point light. ``color`` is unit-range RGB, ``power`` a non-negative scale."""

    position: np.ndarray
    color: np.ndarray = (1.0, 1.0, 1.0)  # type: ignore[assignment]
    power: float = 1.0

    def __post_init__(self) -> None:
        position = as_vec3(self.position, "light position")
        color = as_vec3(self.color, "light color")
        power = float(self.power)
        if not np.all(np.isfinite(position)):
            raise ConfigurationError(f"Light position must be finite, got {position.tolist()}.")
        if not np.all(np.isfinite(color)) or np.any(color < 0.0) or np.any(color > 1.0):
            raise ConfigurationError(f"Light color must lie in [0, 1], got {color.tolist()}.")
        if not math.isfinite(power) or power < 0.0:
            raise ConfigurationError(f"Light power must be finite and >= 0, got {self.power}.")
        object.__setattr__(self, "position", frozen(position))
        object.__setattr__(self, "color", frozen(color))
        object.__setattr__(self, "power", power)


def blinn_phong_terms(L: np.ndarray, N: np.ndarray, V: np.ndarray, shininess: float) -> Tuple[float, float]:
    """Return ``(lambertian, specular)`` for unit light, normal and view vectors.

    The specular power is only evaluated for surfaces facing the light.
    """
    lambertian = min(max(float(np.dot(L, N)), 0.0), 1.0)
    if lambertian <= 0.0:
        return 0.0, 0.0
    H = normalize(L + V)
    spec_angle = max(float(np.dot(H, N)), 0.0)
    return lambertian, spec_angle ** shininess


class BlinnPhongShader:
    """Direct illumination of a nearest hit by a list of point lights.

    Light terms fall off with the squared distance and are summed without
    clamping; emissive and ambient colors are added once per sample.
    """

    def __init__(self, store: SurfaceStore) -> None:
        self.store = store

    def shade(self, hit: HitResult, lights: Sequence[Light], view_origin) -> np.ndarray:
        if is_miss(hit):
            return BLACK.copy()

        prim = self.store.primitive(hit.primitive_id)
        coord = hit.parametric_coord
        diffuse = prim.attribute_at(coord, "diffuse_color")
        specular_color = prim.attribute_at(coord, "specular_color")
        shininess = prim.attribute_at(coord, "shininess")

        position = hit.position
        N = normalize(hit.normal)
        V = normalize(as_vec3(view_origin, "view_origin") - position)

        color = np.zeros(3, dtype=np.float64)
        for light in lights:
            to_light = light.position - position
            distance2 = float(np.dot(to_light, to_light))
            if distance2 == 0.0:
                _log.warning(
                    "Light at %s coincides with primitive %d; skipping its contribution.",
                    light.position.tolist(), hit.primitive_id,
                )
                continue
            L = to_light / math.sqrt(distance2)
            lambertian, specular = blinn_phong_terms(L, N, V, shininess)
            if lambertian == 0.0:
                continue
            scale = light.color * (light.power / distance2)
            color += diffuse * lambertian * scale + specular_color * specular * scale

        color += prim.attribute_at(coord, "emit_color")
        color += prim.attribute_at(coord, "ambient_color")
        return color
