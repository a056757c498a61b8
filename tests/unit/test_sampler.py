import math

import numpy as np
import pytest

from pointrender.core.errors import ConfigurationError
from pointrender.core.sampler import (
    PatternConfig,
    PixelCell,
    generate_all_samples,
    generate_samples,
)


def make_cell(pixel_id: int = 7, cx: float = 0.0, cy: float = 0.0, half: float = 0.5) -> PixelCell:
    center = (cx, cy, 0.0)
    corners = [
        (cx - half, cy - half, 0.0),
        (cx + half, cy - half, 0.0),
        (cx + half, cy + half, 0.0),
        (cx - half, cy + half, 0.0),
    ]
    return PixelCell.create(pixel_id, center, corners)


def test_quincunx_emits_center_then_half_way_corners() -> None:
    cell = make_cell()
    samples = generate_samples(cell, PatternConfig.quincunx())
    assert len(samples) == 5
    np.testing.assert_allclose(samples[0].position, cell.center)
    for sample, corner in zip(samples[1:], cell.corners):
        np.testing.assert_allclose(sample.position, 0.5 * (cell.center + corner))


def test_grid_emits_the_four_corners() -> None:
    cell = make_cell()
    samples = generate_samples(cell, PatternConfig.grid())
    assert len(samples) == 4
    np.testing.assert_allclose(np.stack([s.position for s in samples]), cell.corners)


def test_zero_bias_skips_corner_samples() -> None:
    samples = generate_samples(make_cell(), PatternConfig.center_only())
    assert len(samples) == 1
    assert PatternConfig.center_only().samples_per_cell == 1


def test_samples_carry_cell_identity() -> None:
    samples = generate_samples(make_cell(pixel_id=42), PatternConfig(include_center=True, corner_bias=0.3))
    assert {s.pixel_id for s in samples} == {42}


@pytest.mark.parametrize(
    "include_center, bias",
    [(True, -0.1), (True, 1.5), (True, math.nan), (True, math.inf), (False, 0.0)],
)
def test_invalid_patterns_rejected(include_center: bool, bias: float) -> None:
    with pytest.raises(ConfigurationError):
        PatternConfig(include_center=include_center, corner_bias=bias)


def test_generation_is_deterministic() -> None:
    cells = [make_cell(i, cx=float(i)) for i in range(3)]
    pattern = PatternConfig(include_center=False, corner_bias=0.8)
    first = generate_all_samples(cells, pattern)
    second = generate_all_samples(cells, pattern)
    assert len(first) == len(cells) * pattern.samples_per_cell == 12
    for a, b in zip(first, second):
        assert a.pixel_id == b.pixel_id
        np.testing.assert_array_equal(a.position, b.position)


def test_pixel_cell_rejects_bad_corners() -> None:
    with pytest.raises(ConfigurationError):
        PixelCell.create(1, (0.0, 0.0, 0.0), [(0.0, 0.0, 0.0)] * 3)
