"""Pointrender: point-sampled surface renderer.

Casts rays from a camera through sample positions on a projection screen,
finds the nearest surface hit, shades it with Blinn-Phong lighting and
averages the samples of each pixel cell:
- SurfaceStore and surface primitives (core.scene, core.surfaces)
- Sample pattern generation (core.sampler) and screen grids (core.screen)
- Ray construction and nearest-hit queries (core.intersector)
- Blinn-Phong shading (core.shading)
- Per-pixel reduction (core.aggregator)
- Parallel map/barrier/reduce orchestration (core.renderer)
- NPZ / PLY / LAS writers (core.exporter)
"""

from .core.errors import AggregationError, ConfigurationError, RenderCancelledError
from .core.scene import SurfaceStore, load_mesh_triangles
from .core.surfaces import QuadSurface, SurfacePrimitive, TriangleSurface
from .core.sampler import PatternConfig, PixelCell, Sample, generate_samples
from .core.screen import ScreenGrid
from .core.intersector import Hit, Intersector, MISS, Ray, make_ray
from .core.shading import BlinnPhongShader, Light
from .core.aggregator import ShadedSample, reduce_samples
from .core.renderer import Renderer, RenderResult, RenderSettings
from .core.pixels import PixelBatch
from .core.exporter import LasWriter, NpzWriter, PlyWriter
