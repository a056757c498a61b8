from __future__ import annotations
import math
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple
import numpy as np
import trimesh  # type: ignore
from .attributes import check_attribute_name
from .errors import ConfigurationError
from .ray import MISS, Hit, HitResult, Ray
from .surfaces import SurfacePrimitive, TriangleSurface
from .utils import ensure_unit_vectors, frozen, get_logger

_log = get_logger()

DEFAULT_MESH_ATTRIBUTES: Dict[str, Any] = {
    "diffuse_color": (0.8, 0.8, 0.8),
    "specular_color": (0.0, 0.0, 0.0),
    "shininess": 1.0,
}


class SurfaceStore:
    """Holds the renderable primitives and answers nearest-hit queries.

    Primitives are validated once when the store is built (unique ids,
    attribute schema) and are read-only afterwards, so one store can be
    shared by any number of concurrent render workers.
    """

    def __init__(self, primitives: Iterable[SurfacePrimitive], tie_epsilon: float = 1e-9) -> None:
        prims = list(primitives)
        by_id: Dict[int, SurfacePrimitive] = {}
        for prim in prims:
            if prim.primitive_id in by_id:
                raise ConfigurationError(f"Duplicate primitive id {prim.primitive_id}.")
            by_id[prim.primitive_id] = prim
        # ascending id order makes the first of two equidistant hits the lower id
        self._primitives: Tuple[SurfacePrimitive, ...] = tuple(sorted(prims, key=lambda p: p.primitive_id))
        self._by_id = by_id
        self.tie_epsilon = float(tie_epsilon)
        _log.info("SurfaceStore: loaded %d primitives.", len(self._primitives))

    # -- API --
    def __len__(self) -> int:
        return len(self._primitives)

    def __iter__(self) -> Iterator[SurfacePrimitive]:
        return iter(self._primitives)

    @property
    def ids(self) -> Tuple[int, ...]:
        return tuple(p.primitive_id for p in self._primitives)

    def primitive(self, primitive_id: int) -> SurfacePrimitive:
        try:
            return self._by_id[int(primitive_id)]
        except KeyError:
            raise KeyError(f"No primitive with id {primitive_id} in the scene.") from None

    def nearest_intersection(self, ray: Ray, max_distance: float = math.inf) -> HitResult:
        origin = ray.origin
        direction = ray.direction
        best_prim: Optional[SurfacePrimitive] = None
        best = None
        for prim in self._primitives:
            result = prim.intersect(origin, direction, max_distance)
            if result is None:
                continue
            if best is None or result[0] < best[0] - self.tie_epsilon:
                best = result
                best_prim = prim

        if best is None or best_prim is None:
            return MISS

        dist, point, coord = best
        normal = best_prim.attribute_at(coord, "normal")
        return Hit(
            primitive_id=best_prim.primitive_id,
            position=frozen(point),
            parametric_coord=coord,
            normal=frozen(normal),
            distance=float(dist),
        )

    def attribute_at(self, primitive_id: int, parametric_coord: Tuple[float, float], name: str) -> np.ndarray | float:
        check_attribute_name(name)
        return self.primitive(primitive_id).attribute_at(parametric_coord, name)

    def bounds(self) -> tuple[float, float, float, float, float, float]:
        if not self._primitives:
            raise RuntimeError("Scene is empty.")
        b = np.array([p.bounds() for p in self._primitives], dtype=np.float64)
        return (
            float(b[:, 0].min()), float(b[:, 1].max()),
            float(b[:, 2].min()), float(b[:, 3].max()),
            float(b[:, 4].min()), float(b[:, 5].max()),
        )

    # -- construction helpers --
    @classmethod
    def from_mesh(
        cls,
        path: str | Path,
        first_id: int = 0,
        defaults: Optional[Mapping[str, Any]] = None,
    ) -> "SurfaceStore":
        return cls(load_mesh_triangles(path, first_id=first_id, defaults=defaults))


def load_mesh_triangles(
    path: str | Path,
    first_id: int = 0,
    defaults: Optional[Mapping[str, Any]] = None,
) -> List[TriangleSurface]:
    """Build triangle primitives from a mesh file (PLY, OBJ, ...) via trimesh.

    Polygon faces are triangulated on load. Vertex normals come from the
    file when present, otherwise trimesh derives them from the faces.
    Per-vertex colors become ``diffuse_color`` unless ``defaults`` sets an
    explicit ``diffuse_color``, which then wins. Everything else comes from
    ``defaults``. Triangle ids are ``first_id + face_index``.
    """
    vertices, faces, colors, normals = _load_mesh(Path(path))

    base: Dict[str, Any] = dict(DEFAULT_MESH_ATTRIBUTES)
    if defaults:
        base.update({k: v for k, v in defaults.items() if v is not None})
    use_vertex_colors = colors is not None and not (defaults and defaults.get("diffuse_color") is not None)

    prims: List[TriangleSurface] = []
    for face_idx, tri in enumerate(faces):
        attrs = dict(base)
        attrs["normal"] = normals[tri]
        if use_vertex_colors:
            attrs["diffuse_color"] = colors[tri]
        prims.append(
            TriangleSurface(
                first_id + face_idx,
                vertices[tri[0]],
                vertices[tri[1]],
                vertices[tri[2]],
                attrs,
            )
        )
    _log.info("Loaded %d triangles from %s.", len(prims), Path(path).name)
    return prims


def _load_mesh(path: Path) -> tuple[np.ndarray, np.ndarray, Optional[np.ndarray], np.ndarray]:
    if not path.exists():
        raise ConfigurationError(f"Mesh file {path} does not exist.")
    try:
        mesh = trimesh.load_mesh(str(path), process=True)
    except Exception as exc:
        raise ConfigurationError(f"Could not read mesh {path}: {exc}") from exc
    if isinstance(mesh, trimesh.Scene):
        geometries = [g for g in mesh.geometry.values() if isinstance(g, trimesh.Trimesh)]
        if not geometries:
            raise ConfigurationError(f"{path} contains no triangle geometry.")
        mesh = trimesh.util.concatenate(geometries)
    if not isinstance(mesh, trimesh.Trimesh) or len(mesh.faces) == 0:
        raise ConfigurationError(f"{path} contains no triangle geometry.")

    vertices = np.asarray(mesh.vertices, dtype=np.float64)
    faces = np.asarray(mesh.faces, dtype=np.int64).reshape(-1, 3)
    normals = ensure_unit_vectors(np.asarray(mesh.vertex_normals, dtype=np.float64))
    colors = None
    if mesh.visual.kind == "vertex":
        colors = np.asarray(mesh.visual.vertex_colors[:, :3], dtype=np.float64) / 255.0
    return vertices, faces, colors, normals
