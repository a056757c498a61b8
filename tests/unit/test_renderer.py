from __future__ import annotations

import threading
from typing import List

import numpy as np
import pytest

from pointrender.core.errors import ConfigurationError, RenderCancelledError
from pointrender.core.renderer import Renderer, RenderSettings
from pointrender.core.sampler import PixelCell
from pointrender.core.scene import SurfaceStore
from pointrender.core.screen import ScreenGrid
from pointrender.core.shading import Light
from pointrender.core.surfaces import QuadSurface

CAMERA = (0.0, 0.0, 10.0)


def make_attrs(diffuse=(1.0, 1.0, 1.0)) -> dict:
    return {
        "diffuse_color": diffuse,
        "specular_color": (0.0, 0.0, 0.0),
        "shininess": 1.0,
        "normal": (0.0, 0.0, 1.0),
    }


def ground(half: float = 10.0, diffuse=(1.0, 1.0, 1.0)) -> SurfaceStore:
    return SurfaceStore([
        QuadSurface(0, (-half, -half, 0.0), (2 * half, 0.0, 0.0), (0.0, 2 * half, 0.0), make_attrs(diffuse))
    ])


def screen_cells(resolution=(4, 4)) -> List[PixelCell]:
    grid = ScreenGrid((-1.0, -1.0, 9.0), (2.0, 0.0, 0.0), (0.0, 2.0, 0.0), resolution)
    return grid.cells()


def square_cell(pixel_id: int, cx: float, cy: float, half: float = 0.05, z: float = 9.0) -> PixelCell:
    corners = [
        (cx - half, cy - half, z),
        (cx + half, cy - half, z),
        (cx + half, cy + half, z),
        (cx - half, cy + half, z),
    ]
    return PixelCell.create(pixel_id, (cx, cy, z), corners)


LIGHTS = [Light(position=(0.0, 0.0, 2.0), power=8.0)]


def test_one_color_per_pixel_identity() -> None:
    cells = screen_cells()
    result = Renderer(ground(), LIGHTS, CAMERA).render(cells)
    assert list(result.colors) == [c.pixel_id for c in cells]
    assert result.stats == {"pixels": 16, "samples": 80, "hits": 80, "misses": 0}
    assert result.as_array().shape == (16, 3)


def test_single_quad_center_sample_matches_inverse_square() -> None:
    settings = RenderSettings(corner_bias=0.0, include_center=True)
    store = ground(half=1.0)
    result = Renderer(store, LIGHTS, CAMERA, settings).render([square_cell(0, 0.0, 0.0)])
    np.testing.assert_allclose(result.colors[0], [2.0, 2.0, 2.0])


@pytest.mark.parametrize("bias, include_center", [(0.0, True), (1.0, False), (1.0, True)])
def test_render_is_deterministic(bias: float, include_center: bool) -> None:
    settings = RenderSettings(corner_bias=bias, include_center=include_center)
    renderer = Renderer(ground(), LIGHTS, CAMERA, settings)
    first = renderer.render(screen_cells()).as_array()
    second = renderer.render(screen_cells()).as_array()
    np.testing.assert_array_equal(first, second)


def test_neighbouring_pixels_do_not_bleed() -> None:
    # pixel 0 looks at a green quad, pixel 1 at empty space
    store = SurfaceStore([
        QuadSurface(3, (2.0, -3.0, 0.0), (6.0, 0.0, 0.0), (0.0, 6.0, 0.0), make_attrs((0.0, 1.0, 0.0)))
    ])
    lights = [Light(position=(5.0, 0.0, 5.0), power=25.0)]
    cells = [square_cell(0, 0.5, 0.0), square_cell(1, -0.5, 0.0)]
    result = Renderer(store, lights, CAMERA).render(cells)
    green = result.colors[0]
    assert green[1] > 0.0
    assert green[0] == 0.0 and green[2] == 0.0
    np.testing.assert_array_equal(result.colors[1], np.zeros(3))
    assert result.stats["misses"] == 5


def _edge_row(bias: float) -> np.ndarray:
    # a quad edge at screen x = 0.07 cuts through one pixel of a 10-pixel row
    store = SurfaceStore([
        QuadSurface(0, (0.7, -10.0, 0.0), (20.0, 0.0, 0.0), (0.0, 20.0, 0.0), make_attrs())
    ])
    lights = [Light(position=(0.0, 0.0, 100.0), power=1e4)]
    grid = ScreenGrid((-1.0, -0.1, 9.0), (2.0, 0.0, 0.0), (0.0, 0.2, 0.0), (10, 1))
    settings = RenderSettings(corner_bias=bias, include_center=True)
    result = Renderer(store, lights, CAMERA, settings).render(grid.cells())
    return result.as_array()[:, 0]


def test_supersampling_softens_edges() -> None:
    center_only = _edge_row(0.0)
    quincunx = _edge_row(0.5)
    rough = float(np.sum(np.diff(center_only) ** 2))
    smooth = float(np.sum(np.diff(quincunx) ** 2))
    assert rough > 0.9
    assert smooth < rough
    # three of the five samples of the edge pixel land on the quad
    assert quincunx[5] == pytest.approx(0.6 * center_only[5], rel=1e-2)


@pytest.mark.parametrize("executor", ["thread", "process"])
def test_parallel_executors_match_serial(executor: str) -> None:
    cells = screen_cells((6, 5))
    serial = Renderer(ground(), LIGHTS, CAMERA, RenderSettings(chunk_size=7)).render(cells)
    parallel_settings = RenderSettings(executor=executor, workers=2, chunk_size=7)
    parallel = Renderer(ground(), LIGHTS, CAMERA, parallel_settings).render(cells)
    assert list(parallel.colors) == list(serial.colors)
    np.testing.assert_array_equal(parallel.as_array(), serial.as_array())
    assert parallel.stats == serial.stats


@pytest.mark.parametrize("executor", ["serial", "thread", "process"])
def test_cancelled_pass_raises(executor: str) -> None:
    cancel = threading.Event()
    cancel.set()
    renderer = Renderer(ground(), LIGHTS, CAMERA, RenderSettings(executor=executor, workers=2, chunk_size=4))
    with pytest.raises(RenderCancelledError):
        renderer.render(screen_cells(), cancel_event=cancel)


def stacked_quads(count: int = 40) -> SurfaceStore:
    return SurfaceStore([
        QuadSurface(pid, (-10.0, -10.0, 0.1 * pid), (20.0, 0.0, 0.0), (0.0, 20.0, 0.0), make_attrs())
        for pid in range(count)
    ])


@pytest.mark.parametrize("executor", ["serial", "thread"])
def test_timed_out_pass_raises(executor: str) -> None:
    settings = RenderSettings(executor=executor, workers=2, chunk_size=64, timeout_s=0.05)
    renderer = Renderer(stacked_quads(), [Light(position=(0.0, 0.0, 20.0), power=8.0)], CAMERA, settings)
    with pytest.raises(RenderCancelledError, match="partial results discarded"):
        renderer.render(screen_cells((40, 40)))


def test_generous_timeout_completes() -> None:
    settings = RenderSettings(executor="thread", workers=2, chunk_size=8, timeout_s=60.0)
    result = Renderer(ground(), LIGHTS, CAMERA, settings).render(screen_cells())
    assert result.stats["pixels"] == 16


def test_camera_on_screen_rejected() -> None:
    cells = [square_cell(0, 0.0, 0.0, z=10.0)]
    with pytest.raises(ConfigurationError):
        Renderer(ground(), LIGHTS, CAMERA).render(cells)


def test_empty_and_duplicate_cells_rejected() -> None:
    renderer = Renderer(ground(), LIGHTS, CAMERA)
    with pytest.raises(ConfigurationError):
        renderer.render([])
    with pytest.raises(ConfigurationError):
        renderer.render([square_cell(1, 0.0, 0.0), square_cell(1, 0.5, 0.0)])


def test_render_without_lights_is_black() -> None:
    result = Renderer(ground(), [], CAMERA).render(screen_cells((2, 2)))
    np.testing.assert_array_equal(result.as_array(), np.zeros((4, 3)))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"executor": "gpu"},
        {"workers": 0},
        {"chunk_size": 0},
        {"timeout_s": 0.0},
    ],
)
def test_invalid_settings_rejected(kwargs) -> None:
    with pytest.raises(ConfigurationError):
        RenderSettings(**kwargs)


def test_invalid_pattern_rejected_at_construction() -> None:
    with pytest.raises(ConfigurationError):
        Renderer(ground(), LIGHTS, CAMERA, RenderSettings(corner_bias=1.5))
    with pytest.raises(ConfigurationError):
        Renderer(ground(), LIGHTS, CAMERA, RenderSettings(max_ray_distance=-1.0))
