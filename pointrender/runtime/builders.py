from __future__ import annotations

from typing import Any, Dict, List

from ..config import ScenarioConfig
from ..config.schema import CellListScreenConfig, GridScreenConfig, MeshConfig
from ..core.exporter import LasWriter, NpzWriter, PlyWriter
from ..core.renderer import RenderSettings
from ..core.sampler import PixelCell
from ..core.scene import SurfaceStore, load_mesh_triangles
from ..core.screen import ScreenGrid
from ..core.shading import Light
from ..core.surfaces import QuadSurface, SurfacePrimitive, TriangleSurface


def _mesh_defaults(mesh_cfg: MeshConfig) -> Dict[str, Any]:
    return {
        "diffuse_color": mesh_cfg.diffuse_color,
        "specular_color": mesh_cfg.specular_color,
        "shininess": mesh_cfg.shininess,
        "emit_color": mesh_cfg.emit_color,
        "ambient_color": mesh_cfg.ambient_color,
    }


def build_store(cfg: ScenarioConfig) -> SurfaceStore:
    prims: List[SurfacePrimitive] = []
    for prim_cfg in cfg.primitives:
        if prim_cfg.kind == "quad":
            prims.append(
                QuadSurface(
                    prim_cfg.id,
                    prim_cfg.origin,
                    prim_cfg.edge_u,
                    prim_cfg.edge_v,
                    prim_cfg.attributes,
                )
            )
        elif prim_cfg.kind == "triangle":
            v0, v1, v2 = prim_cfg.vertices
            prims.append(TriangleSurface(prim_cfg.id, v0, v1, v2, prim_cfg.attributes))
        else:
            raise ValueError(f"Unsupported primitive kind: {prim_cfg.kind}")
    for mesh_cfg in cfg.meshes:
        prims.extend(load_mesh_triangles(mesh_cfg.path, first_id=mesh_cfg.first_id, defaults=_mesh_defaults(mesh_cfg)))
    return SurfaceStore(prims)


def build_lights(cfg: ScenarioConfig) -> List[Light]:
    return [Light(position=l.position, color=l.color, power=l.power) for l in cfg.lights]


def build_cells(cfg: ScenarioConfig) -> List[PixelCell]:
    screen_cfg = cfg.screen
    if isinstance(screen_cfg, GridScreenConfig):
        grid = ScreenGrid(
            corner=screen_cfg.corner,
            edge_u=screen_cfg.edge_u,
            edge_v=screen_cfg.edge_v,
            resolution_px=screen_cfg.resolution_px,
            first_id=screen_cfg.first_id,
        )
        return grid.cells()
    if isinstance(screen_cfg, CellListScreenConfig):
        return [PixelCell.create(c.id, c.center, c.corners) for c in screen_cfg.cells]
    raise ValueError(f"Unsupported screen kind: {screen_cfg.kind}")


def build_settings(cfg: ScenarioConfig) -> RenderSettings:
    r = cfg.render
    return RenderSettings(
        corner_bias=r.corner_bias,
        include_center=r.include_center,
        max_ray_distance=r.max_ray_distance,
        executor=r.executor,
        workers=r.workers,
        chunk_size=r.chunk_size,
        timeout_s=r.timeout_s,
    )


def build_writer(cfg: ScenarioConfig):
    out_cfg = cfg.output
    format_lower = out_cfg.format.lower()
    if format_lower in {"las", "laz"}:
        compress = out_cfg.compress
        if compress is None:
            compress = format_lower == "laz"
        return LasWriter(
            str(out_cfg.path),
            point_format=out_cfg.point_format,
            compress=compress,
        )
    if format_lower == "npz":
        return NpzWriter(str(out_cfg.path))
    if format_lower == "ply":
        return PlyWriter(str(out_cfg.path))
    raise ValueError(f"Unsupported output format: {out_cfg.format}")
