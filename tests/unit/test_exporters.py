import numpy as np
import pytest

from pointrender.core.exporter import LasWriter, NpzWriter, PlyWriter
from pointrender.core.pixels import PixelBatch
from pointrender.core.sampler import PixelCell
from pointrender.core.screen import ScreenGrid


def make_batch() -> PixelBatch:
    grid = ScreenGrid((0.0, 0.0, 1.0), (2.0, 0.0, 0.0), (0.0, 1.0, 0.0), (2, 1), first_id=10)
    cells = grid.cells()
    colors = {10: np.array([2.0, 0.5, -1.0]), 11: np.array([0.0, 0.25, 1.0])}
    return PixelBatch.from_render(cells, colors)


def test_pixel_batch_from_render_layout() -> None:
    batch = make_batch()
    np.testing.assert_allclose(batch.xyz, [[0.5, 0.5, 1.0], [1.5, 0.5, 1.0]])
    np.testing.assert_array_equal(batch.attrs["pixel_id"], [10, 11])
    np.testing.assert_array_equal(batch.attrs["pixel_u"], [0, 1])
    np.testing.assert_array_equal(batch.attrs["pixel_v"], [0, 0])


def test_pixel_batch_without_grid_positions() -> None:
    cell = PixelCell.create(3, (0.0, 0.0, 0.0), [(0.0, 0.0, 0.0)] * 4)
    batch = PixelBatch.from_render([cell], {3: np.zeros(3)})
    assert "pixel_u" not in batch.attrs
    assert "pixel_v" not in batch.attrs


def test_pixel_batch_rejects_mismatched_attribute_lengths() -> None:
    xyz = np.zeros((2, 3), dtype=np.float32)
    with pytest.raises(ValueError):
        PixelBatch(xyz=xyz, attrs={"pixel_id": np.array([1], dtype=np.int64)})


def test_npz_writer_keeps_unclamped_colors(tmp_path) -> None:
    path = tmp_path / "render.npz"
    writer = NpzWriter(str(path))
    writer.write_batch(make_batch())
    writer.close()

    with np.load(path) as data:
        rgb = data["rgb"]
        ids = data["pixel_id"]
    np.testing.assert_allclose(rgb[0], [2.0, 0.5, -1.0])
    np.testing.assert_array_equal(ids, [10, 11])


def test_npz_writer_rejects_inconsistent_batches(tmp_path) -> None:
    writer = NpzWriter(str(tmp_path / "render.npz"))
    writer.write_batch(make_batch())
    writer.write_batch(PixelBatch(xyz=np.zeros((1, 3)), attrs={}))
    with pytest.raises(ValueError, match="missing"):
        writer.close()


def test_ply_writer_clamps_display_colors(tmp_path) -> None:
    path = tmp_path / "render.ply"
    writer = PlyWriter(str(path))
    writer.write_batch(make_batch())
    writer.close()

    with open(path, "r", encoding="utf-8") as f:
        lines = [line.strip() for line in f.readlines()]
    assert "element vertex 2" in lines
    assert "property int pixel_id" in lines
    end_idx = lines.index("end_header")
    rows = [row.split() for row in lines[end_idx + 1 :]]
    assert [int(v) for v in rows[0][3:]] == [255, 128, 0, 10]
    assert [int(v) for v in rows[1][3:]] == [0, 64, 255, 11]


def test_las_writer_roundtrip(tmp_path) -> None:
    import laspy

    path = tmp_path / "render.las"
    writer = LasWriter(str(path))
    writer.write_batch(make_batch())
    writer.close()

    with laspy.open(path) as reader:
        points = reader.read()
        extra = set(reader.header.point_format.extra_dimension_names)
    assert {"pixel_id", "RadianceR", "RadianceG", "RadianceB", "pixel_u", "pixel_v"} <= extra
    np.testing.assert_array_equal(np.asarray(points["pixel_id"]), [10, 11])
    np.testing.assert_array_equal(np.asarray(points.red), [65535, 0])
    np.testing.assert_allclose(np.asarray(points["RadianceR"]), [2.0, 0.0])
    np.testing.assert_allclose(np.asarray(points.x), [0.5, 1.5], atol=1e-3)
