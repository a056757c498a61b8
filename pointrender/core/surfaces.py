from __future__ import annotations
from typing import Any, Mapping, Optional, Tuple
import numpy as np
from .attributes import AttributeTable
from .errors import ConfigurationError
from .utils import as_vec3, frozen

# (distance along the ray, hit position, parametric coordinate)
SurfaceHit = Tuple[float, np.ndarray, Tuple[float, float]]


class SurfacePrimitive:
    """Base class for intersectable primitives held by the SurfaceStore.

    A primitive owns its corner positions and an AttributeTable with one row
    per corner. ``corner_weights`` maps a parametric coordinate onto those rows.
    """

    kind: str = "base"
    n_corners: int = 0

    def __init__(self, primitive_id: int, corners: np.ndarray, attributes: Mapping[str, Any]) -> None:
        self.primitive_id = int(primitive_id)
        self.corners = frozen(np.asarray(corners, dtype=np.float64).reshape(self.n_corners, 3))
        self.attributes = AttributeTable(attributes, self.n_corners, self.primitive_id)

    def intersect(
        self, origin: np.ndarray, direction: np.ndarray, max_distance: float
    ) -> Optional[SurfaceHit]:  # pragma: no cover - abstract
        raise NotImplementedError

    def corner_weights(self, coord: Tuple[float, float]) -> np.ndarray:  # pragma: no cover - abstract
        raise NotImplementedError

    def attribute_at(self, coord: Tuple[float, float], name: str) -> np.ndarray | float:
        return self.attributes.interpolate(name, self.corner_weights(coord))

    def bounds(self) -> tuple[float, float, float, float, float, float]:
        mn = self.corners.min(axis=0)
        mx = self.corners.max(axis=0)
        return (float(mn[0]), float(mx[0]), float(mn[1]), float(mx[1]), float(mn[2]), float(mx[2]))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.primitive_id})"


class QuadSurface(SurfacePrimitive):
    """Parallelogram spanning ``origin + a*edge_u + b*edge_v`` for ``a, b`` in [0, 1].

    Corner order for per-corner attributes: origin, origin+u, origin+u+v, origin+v.
    """

    kind = "quad"
    n_corners = 4

    def __init__(
        self,
        primitive_id: int,
        origin,
        edge_u,
        edge_v,
        attributes: Mapping[str, Any],
        epsilon: float = 1e-8,
    ) -> None:
        q = as_vec3(origin, "origin")
        u = as_vec3(edge_u, "edge_u")
        v = as_vec3(edge_v, "edge_v")
        super().__init__(primitive_id, np.stack([q, q + u, q + u + v, q + v]), attributes)
        self.origin = frozen(q)
        self.edge_u = frozen(u)
        self.edge_v = frozen(v)
        self.epsilon = float(epsilon)

        n = np.cross(u, v)
        n_dot_n = float(np.dot(n, n))
        if n_dot_n <= 1e-20:
            raise ConfigurationError(f"Primitive {self.primitive_id}: quad edges are parallel or zero.")
        self._plane_normal = n / np.sqrt(n_dot_n)
        self._plane_d = float(np.dot(self._plane_normal, q))
        # dot(w_u, P - Q) = a, dot(w_v, P - Q) = b
        self._w_u = np.cross(v, n) / n_dot_n
        self._w_v = np.cross(n, u) / n_dot_n

    def intersect(
        self, origin: np.ndarray, direction: np.ndarray, max_distance: float
    ) -> Optional[SurfaceHit]:
        denom = float(np.dot(self._plane_normal, direction))
        if abs(denom) < self.epsilon:
            return None
        t = (self._plane_d - float(np.dot(self._plane_normal, origin))) / denom
        if t < 0.0 or t > max_distance:
            return None
        point = origin + direction * t
        rel = point - self.origin
        a = float(np.dot(self._w_u, rel))
        b = float(np.dot(self._w_v, rel))
        if a < 0.0 or a > 1.0 or b < 0.0 or b > 1.0:
            return None
        return float(t), point, (a, b)

    def corner_weights(self, coord: Tuple[float, float]) -> np.ndarray:
        a, b = float(coord[0]), float(coord[1])
        return np.array([(1.0 - a) * (1.0 - b), a * (1.0 - b), a * b, (1.0 - a) * b], dtype=np.float64)


class TriangleSurface(SurfacePrimitive):
    """Triangle with barycentric parametric coordinate ``(u, v)``.

    Per-vertex weights are ``(1 - u - v, u, v)`` for ``(v0, v1, v2)``.
    """

    kind = "triangle"
    n_corners = 3

    def __init__(
        self,
        primitive_id: int,
        v0,
        v1,
        v2,
        attributes: Mapping[str, Any],
        epsilon: float = 1e-8,
    ) -> None:
        p0 = as_vec3(v0, "v0")
        p1 = as_vec3(v1, "v1")
        p2 = as_vec3(v2, "v2")
        super().__init__(primitive_id, np.stack([p0, p1, p2]), attributes)
        self.epsilon = float(epsilon)
        self._edge1 = p1 - p0
        self._edge2 = p2 - p0
        if float(np.linalg.norm(np.cross(self._edge1, self._edge2))) <= 1e-12:
            raise ConfigurationError(f"Primitive {self.primitive_id}: triangle is degenerate.")

    def intersect(
        self, origin: np.ndarray, direction: np.ndarray, max_distance: float
    ) -> Optional[SurfaceHit]:
        v0 = self.corners[0]
        edge1 = self._edge1
        edge2 = self._edge2
        pvec = np.cross(direction, edge2)
        det = np.dot(edge1, pvec)
        if abs(det) < self.epsilon:
            return None
        inv_det = 1.0 / det
        tvec = origin - v0
        u = np.dot(tvec, pvec) * inv_det
        if u < 0.0 or u > 1.0:
            return None
        qvec = np.cross(tvec, edge1)
        v = np.dot(direction, qvec) * inv_det
        if v < 0.0 or (u + v) > 1.0:
            return None
        t = np.dot(edge2, qvec) * inv_det
        if t < 0.0 or t > max_distance:
            return None
        point = origin + direction * t
        return float(t), point, (float(u), float(v))

    def corner_weights(self, coord: Tuple[float, float]) -> np.ndarray:
        u, v = float(coord[0]), float(coord[1])
        return np.array([1.0 - u - v, u, v], dtype=np.float64)
