from __future__ import annotations

from pathlib import Path
from typing import Annotated, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

Vec3 = tuple[float, float, float]
# constant value, or one value per corner/vertex
AttributeValue = Union[float, List[float], List[List[float]]]


class CameraConfig(BaseModel):
    origin: Vec3


class GridScreenConfig(BaseModel):
    kind: Literal["grid"]
    corner: Vec3
    edge_u: Vec3
    edge_v: Vec3
    resolution_px: tuple[int, int]
    first_id: int = 0

    @field_validator("resolution_px")
    @classmethod
    def _positive_resolution(cls, value: tuple[int, int]) -> tuple[int, int]:
        if value[0] <= 0 or value[1] <= 0:
            raise ValueError("resolution_px must be positive")
        return value


class CellConfig(BaseModel):
    id: int
    center: Vec3
    corners: tuple[Vec3, Vec3, Vec3, Vec3]


class CellListScreenConfig(BaseModel):
    kind: Literal["cells"]
    cells: List[CellConfig]

    @model_validator(mode="after")
    def _unique_ids(self) -> "CellListScreenConfig":
        ids = [c.id for c in self.cells]
        if not ids:
            raise ValueError("Screen requires at least one cell")
        if len(set(ids)) != len(ids):
            raise ValueError("Pixel cell ids must be unique")
        return self


ScreenConfig = Annotated[
    Union[GridScreenConfig, CellListScreenConfig],
    Field(discriminator="kind"),
]


class QuadPrimitiveConfig(BaseModel):
    kind: Literal["quad"]
    id: int
    origin: Vec3
    edge_u: Vec3
    edge_v: Vec3
    attributes: Dict[str, AttributeValue]


class TrianglePrimitiveConfig(BaseModel):
    kind: Literal["triangle"]
    id: int
    vertices: tuple[Vec3, Vec3, Vec3]
    attributes: Dict[str, AttributeValue]


PrimitiveConfig = Annotated[
    Union[QuadPrimitiveConfig, TrianglePrimitiveConfig],
    Field(discriminator="kind"),
]


class MeshConfig(BaseModel):
    """Triangle mesh imported through trimesh.

    An explicit ``diffuse_color`` takes precedence over per-vertex colors in
    the file. Without either, meshes render light gray.
    """

    path: Path
    first_id: int = 0
    diffuse_color: Optional[Vec3] = None
    specular_color: Vec3 = (0.0, 0.0, 0.0)
    shininess: float = 1.0
    emit_color: Optional[Vec3] = None
    ambient_color: Optional[Vec3] = None


class LightConfig(BaseModel):
    position: Vec3
    color: Vec3 = (1.0, 1.0, 1.0)
    power: float = Field(1.0, ge=0.0)


class RenderConfigModel(BaseModel):
    corner_bias: float = Field(0.5, ge=0.0, le=1.0)
    include_center: bool = True
    max_ray_distance: float = Field(1e6, gt=0.0)
    executor: Literal["serial", "thread", "process"] = "serial"
    workers: int = Field(1, ge=1)
    chunk_size: int = Field(1024, ge=1)
    timeout_s: Optional[float] = Field(None, gt=0.0)

    @model_validator(mode="after")
    def _emits_samples(self) -> "RenderConfigModel":
        if not self.include_center and self.corner_bias == 0.0:
            raise ValueError("include_center=false with corner_bias=0 produces no samples")
        return self


class OutputConfig(BaseModel):
    path: Path
    format: Literal["npz", "ply", "las", "laz"] = "npz"
    compress: Optional[bool] = None
    point_format: int = 7

    @model_validator(mode="after")
    def _validate_format(self) -> "OutputConfig":
        if self.format == "laz" and self.compress is False:
            raise ValueError("format 'laz' implies compress=True")
        return self


class ScenarioConfig(BaseModel):
    camera: CameraConfig
    screen: ScreenConfig
    primitives: List[PrimitiveConfig] = Field(default_factory=list)
    meshes: List[MeshConfig] = Field(default_factory=list)
    lights: List[LightConfig] = Field(default_factory=list)
    render: RenderConfigModel = RenderConfigModel()
    output: OutputConfig

    @model_validator(mode="after")
    def _ensure_geometry(self) -> "ScenarioConfig":
        if not self.primitives and not self.meshes:
            raise ValueError("Scenario requires at least one primitive or mesh")
        ids = [p.id for p in self.primitives]
        if len(set(ids)) != len(ids):
            raise ValueError("Primitive ids must be unique")
        return self


def load_config(path: str | Path) -> ScenarioConfig:
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError("Configuration root must be a mapping.")
    cfg = ScenarioConfig.model_validate(data)
    cfg.output.path = (path.parent / cfg.output.path).resolve()
    for mesh in cfg.meshes:
        if not mesh.path.is_absolute():
            mesh.path = (path.parent / mesh.path).resolve()
    return cfg
