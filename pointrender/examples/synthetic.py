from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

import numpy as np
import yaml

PRESETS = ("quad", "edge", "demo")


def _grid_plane(size: float, divisions: int, z: float, color: Tuple[int, int, int]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    lin = np.linspace(-size / 2.0, size / 2.0, divisions + 1, dtype=np.float64)
    xv, yv = np.meshgrid(lin, lin, indexing="ij")
    vertices = np.column_stack([xv.ravel(), yv.ravel(), np.full_like(xv.ravel(), z)])

    faces = []
    for i in range(divisions):
        for j in range(divisions):
            idx0 = i * (divisions + 1) + j
            idx2 = idx0 + (divisions + 1)
            # counter-clockwise seen from +z
            faces.append([idx0, idx2, idx2 + 1])
            faces.append([idx0, idx2 + 1, idx0 + 1])
    colors = np.tile(np.asarray(color, dtype=np.uint8), (vertices.shape[0], 1))
    return vertices, np.asarray(faces, dtype=np.int64), colors


def _box(center: Tuple[float, float, float], size: Tuple[float, float, float], color: Tuple[int, int, int]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    cx, cy, cz = center
    hx, hy, hz = size[0] / 2.0, size[1] / 2.0, size[2] / 2.0
    vertices = np.array([
        [cx - hx, cy - hy, cz - hz],
        [cx + hx, cy - hy, cz - hz],
        [cx + hx, cy + hy, cz - hz],
        [cx - hx, cy + hy, cz - hz],
        [cx - hx, cy - hy, cz + hz],
        [cx + hx, cy - hy, cz + hz],
        [cx + hx, cy + hy, cz + hz],
        [cx - hx, cy + hy, cz + hz],
    ], dtype=np.float64)
    # the bottom face is hidden by the ground plane
    faces = np.array([
        [4, 5, 6], [4, 6, 7],  # top
        [0, 1, 5], [0, 5, 4],  # front
        [1, 2, 6], [1, 6, 5],  # right
        [2, 3, 7], [2, 7, 6],  # back
        [3, 0, 4], [3, 4, 7],  # left
    ], dtype=np.int64)
    colors = np.tile(np.asarray(color, dtype=np.uint8), (vertices.shape[0], 1))
    return vertices, faces, colors


def _merge_parts(parts: Iterable[Tuple[np.ndarray, np.ndarray, np.ndarray]]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    vertices: List[np.ndarray] = []
    faces: List[np.ndarray] = []
    colors: List[np.ndarray] = []
    offset = 0
    for verts, tri, col in parts:
        vertices.append(verts)
        colors.append(col)
        faces.append(tri + offset)
        offset += verts.shape[0]
    return np.vstack(vertices), np.vstack(faces), np.vstack(colors)


def _write_ascii_ply(path: Path, vertices: np.ndarray, faces: np.ndarray, colors: np.ndarray) -> None:
    """Write a triangle mesh with per-vertex colors; normals are left to the loader."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write("ply\n")
        f.write("format ascii 1.0\n")
        f.write(f"element vertex {len(vertices)}\n")
        f.write("property float x\nproperty float y\nproperty float z\n")
        f.write("property uchar red\nproperty uchar green\nproperty uchar blue\n")
        f.write(f"element face {len(faces)}\n")
        f.write("property list uchar int vertex_indices\n")
        f.write("end_header\n")
        for (x, y, z), (r, g, b) in zip(vertices, colors):
            f.write(f"{x:.6f} {y:.6f} {z:.6f} {int(r)} {int(g)} {int(b)}\n")
        for tri in faces:
            f.write(f"3 {tri[0]} {tri[1]} {tri[2]}\n")


def _quad(pid: int, origin, edge_u, edge_v, diffuse, specular=(0.0, 0.0, 0.0), shininess: float = 1.0) -> Dict[str, Any]:
    return {
        "kind": "quad",
        "id": pid,
        "origin": list(origin),
        "edge_u": list(edge_u),
        "edge_v": list(edge_v),
        "attributes": {
            "diffuse_color": list(diffuse),
            "specular_color": list(specular),
            "shininess": shininess,
            "normal": [0.0, 0.0, 1.0],
        },
    }


def _overhead_scenario(
    resolution: int,
    camera_z: float,
    half_extent: float,
    output_name: str,
) -> Dict[str, Any]:
    """Camera looking straight down -z through a square screen one unit below it."""
    screen_z = camera_z - 1.0
    return {
        "camera": {"origin": [0.0, 0.0, camera_z]},
        "screen": {
            "kind": "grid",
            "corner": [-half_extent, -half_extent, screen_z],
            "edge_u": [2.0 * half_extent, 0.0, 0.0],
            "edge_v": [0.0, 2.0 * half_extent, 0.0],
            "resolution_px": [resolution, resolution],
        },
        "render": {"corner_bias": 0.5, "include_center": True, "executor": "serial"},
        "output": {"path": output_name, "format": "npz"},
    }


def generate_scene(preset: str, path: Path, resolution: int = 16) -> Path:
    """Write a scenario YAML for ``preset``; ``demo`` also writes a PLY mesh beside it."""
    preset = preset.lower()
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    output_name = f"{path.stem}_render.npz"

    if preset == "quad":
        data = _overhead_scenario(resolution, camera_z=10.0, half_extent=0.5, output_name=output_name)
        data["primitives"] = [
            _quad(0, (-6.0, -6.0, 0.0), (12.0, 0.0, 0.0), (0.0, 12.0, 0.0), (0.8, 0.3, 0.2), (0.3, 0.3, 0.3), 32.0),
        ]
        data["lights"] = [{"position": [0.0, 0.0, 5.0], "color": [1.0, 1.0, 1.0], "power": 25.0}]
    elif preset == "edge":
        # the boundary sits off the pixel lattice so cells straddle it
        edge_x = 0.35
        data = _overhead_scenario(resolution, camera_z=10.0, half_extent=0.5, output_name=output_name)
        data["primitives"] = [
            _quad(0, (-6.0, -6.0, 0.0), (6.0 + edge_x, 0.0, 0.0), (0.0, 12.0, 0.0), (1.0, 0.0, 0.0)),
            _quad(1, (edge_x, -6.0, 0.0), (6.0 - edge_x, 0.0, 0.0), (0.0, 12.0, 0.0), (0.0, 1.0, 0.0)),
        ]
        data["lights"] = [{"position": [0.0, 0.0, 10.0], "power": 100.0}]
    elif preset == "demo":
        size = 10.0
        mesh_path = path.with_name(f"{path.stem}_mesh.ply")
        parts = [
            _grid_plane(size=size, divisions=10, z=0.0, color=(180, 200, 180)),
            _box(center=(size * 0.15, size * 0.2, size * 0.25), size=(size * 0.3, size * 0.3, size * 0.5), color=(180, 180, 240)),
            _box(center=(-size * 0.3, -size * 0.1, size * 0.15), size=(size * 0.2, size * 0.2, size * 0.3), color=(240, 180, 180)),
        ]
        vertices, faces, colors = _merge_parts(parts)
        _write_ascii_ply(mesh_path, vertices, faces, colors)
        data = _overhead_scenario(resolution, camera_z=25.0, half_extent=0.18, output_name=output_name)
        data["meshes"] = [
            {
                "path": mesh_path.name,
                "first_id": 0,
                "specular_color": [0.2, 0.2, 0.2],
                "shininess": 16.0,
                "ambient_color": [0.05, 0.05, 0.05],
            }
        ]
        data["lights"] = [
            {"position": [8.0, -8.0, 20.0], "color": [1.0, 0.95, 0.9], "power": 400.0},
            {"position": [-6.0, 6.0, 15.0], "color": [0.6, 0.7, 1.0], "power": 150.0},
        ]
    else:
        raise ValueError(f"Unknown synthetic scenario preset '{preset}'.")

    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False)
    return path
