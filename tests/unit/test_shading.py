from __future__ import annotations

import logging

import numpy as np
import pytest

from pointrender.core.errors import ConfigurationError
from pointrender.core.intersector import MISS, make_ray
from pointrender.core.scene import SurfaceStore
from pointrender.core.shading import BlinnPhongShader, Light, blinn_phong_terms
from pointrender.core.surfaces import QuadSurface

CAMERA = np.array([0.0, 0.0, 10.0])


def make_store(**overrides) -> SurfaceStore:
    attrs = {
        "diffuse_color": (1.0, 1.0, 1.0),
        "specular_color": (0.0, 0.0, 0.0),
        "shininess": 1.0,
        "normal": (0.0, 0.0, 1.0),
    }
    attrs.update(overrides)
    return SurfaceStore([QuadSurface(0, (-1.0, -1.0, 0.0), (2.0, 0.0, 0.0), (0.0, 2.0, 0.0), attrs)])


def shade_center(store: SurfaceStore, lights) -> np.ndarray:
    hit = store.nearest_intersection(make_ray(CAMERA, (0.0, 0.0, 9.0)))
    return BlinnPhongShader(store).shade(hit, lights, CAMERA)


def test_miss_shades_black() -> None:
    store = make_store()
    rgb = BlinnPhongShader(store).shade(MISS, [Light(position=(0.0, 0.0, 2.0))], CAMERA)
    np.testing.assert_array_equal(rgb, np.zeros(3))


def test_single_light_falls_off_with_squared_distance() -> None:
    rgb = shade_center(make_store(), [Light(position=(0.0, 0.0, 2.0), power=8.0)])
    # power / d^2 = 8 / 4, and the result is not clamped to [0, 1]
    np.testing.assert_allclose(rgb, [2.0, 2.0, 2.0])


def test_specular_adds_on_top_of_diffuse() -> None:
    store = make_store(specular_color=(1.0, 1.0, 1.0), shininess=10.0)
    rgb = shade_center(store, [Light(position=(0.0, 0.0, 2.0), power=8.0)])
    np.testing.assert_allclose(rgb, [4.0, 4.0, 4.0])


def test_light_color_scales_contribution() -> None:
    rgb = shade_center(make_store(), [Light(position=(0.0, 0.0, 2.0), color=(1.0, 0.0, 0.5), power=8.0)])
    np.testing.assert_allclose(rgb, [2.0, 0.0, 1.0])


def test_back_facing_surface_skips_specular_even_with_zero_shininess() -> None:
    store = make_store(normal=(0.0, 0.0, -1.0), specular_color=(1.0, 1.0, 1.0), shininess=0.0)
    rgb = shade_center(store, [Light(position=(0.0, 0.0, 2.0), power=8.0)])
    np.testing.assert_array_equal(rgb, np.zeros(3))


def test_blinn_phong_terms_short_circuit() -> None:
    N = np.array([0.0, 0.0, 1.0])
    V = np.array([0.0, 0.0, 1.0])
    assert blinn_phong_terms(np.array([0.0, 0.0, -1.0]), N, V, 0.0) == (0.0, 0.0)
    lambertian, specular = blinn_phong_terms(np.array([0.0, 0.0, 1.0]), N, V, 5.0)
    assert lambertian == pytest.approx(1.0)
    assert specular == pytest.approx(1.0)


def test_lambertian_term_stays_in_unit_range() -> None:
    rng = np.random.default_rng(3)
    for _ in range(200):
        L, N, V = (v / np.linalg.norm(v) for v in rng.normal(size=(3, 3)))
        lambertian, specular = blinn_phong_terms(L, N, V, 8.0)
        assert 0.0 <= lambertian <= 1.0
        assert 0.0 <= specular <= 1.0


def test_emit_and_ambient_added_once() -> None:
    store = make_store(emit_color=(0.1, 0.0, 0.0), ambient_color=(0.0, 0.2, 0.0))
    lights = [Light(position=(0.0, 0.0, 2.0), power=8.0), Light(position=(0.0, 0.0, 2.0), power=8.0)]
    rgb = shade_center(store, lights)
    np.testing.assert_allclose(rgb, [4.1, 4.2, 4.0])


def test_emit_and_ambient_without_lights() -> None:
    store = make_store(emit_color=(0.1, 0.0, 0.0), ambient_color=(0.0, 0.2, 0.0))
    np.testing.assert_allclose(shade_center(store, []), [0.1, 0.2, 0.0])


def test_coincident_light_is_skipped_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    lights = [Light(position=(0.0, 0.0, 0.0), power=5.0), Light(position=(0.0, 0.0, 2.0), power=8.0)]
    with caplog.at_level(logging.WARNING, logger="pointrender"):
        rgb = shade_center(make_store(), lights)
    np.testing.assert_allclose(rgb, [2.0, 2.0, 2.0])
    assert any("coincides" in rec.getMessage() for rec in caplog.records)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"color": (1.5, 0.0, 0.0)},
        {"color": (-0.1, 0.0, 0.0)},
        {"power": -1.0},
        {"power": float("nan")},
    ],
)
def test_invalid_lights_rejected(kwargs) -> None:
    with pytest.raises(ConfigurationError):
        Light(position=(0.0, 0.0, 1.0), **kwargs)
