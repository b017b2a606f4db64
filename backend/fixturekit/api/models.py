"""
Pydantic data models for the fixturekit API.

These models define the shapes of requests and responses used by the
backend.  Field names are camelCase to match the frontend.  Meshes
travel as flat, non‑indexed vertex buffers (9 floats per triangle);
ground‑plane points use ``x``/``z`` since the Y axis points up.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field

from ..services.mesh_types import DECIMATION_TARGET


class MeshData(BaseModel):
    """Non‑indexed triangle mesh as flat buffers."""

    vertices: List[float] = Field(..., description="Flat list of vertex positions (x, y, z …), 9 per triangle")
    normals: List[float] = Field(
        default_factory=list,
        description="Optional flat list of vertex normals matching ``vertices``",
    )


class MeshPayload(BaseModel):
    """Request body carrying a single mesh."""

    mesh: MeshData


class MeshBBox(BaseModel):
    """Axis‑aligned bounding box for a mesh."""

    min: List[float] = Field(..., description="Minimum x, y, z coordinates of the mesh")
    max: List[float] = Field(..., description="Maximum x, y, z coordinates of the mesh")
    size: List[float] = Field(..., description="Extent of the mesh along x, y, z")


class AnalysisResponse(BaseModel):
    isManifold: bool
    triangleCount: int
    vertexCount: int
    hasNonManifoldEdges: bool
    hasDegenerateFaces: bool
    degenerateFaceCount: int
    nonManifoldEdgeCount: int
    boundaryEdgeCount: int
    bbox: MeshBBox
    issues: List[str] = Field(default_factory=list, description="Human readable issues in detection order")


class RepairResponse(BaseModel):
    success: bool
    mesh: MeshData | None = None
    triangleCount: int
    actions: List[str] = Field(default_factory=list, description="Repair actions in execution order")
    error: str | None = None


class DecimateRequest(BaseModel):
    mesh: MeshData
    targetTriangles: int = Field(
        default=DECIMATION_TARGET,
        ge=0,
        description="Triangle budget; meshes already within budget are returned unchanged",
    )


class DecimationResponse(BaseModel):
    success: bool
    mesh: MeshData | None = None
    originalTriangles: int
    finalTriangles: int
    reductionPercent: float
    error: str | None = None


class PipelineRequest(BaseModel):
    mesh: MeshData
    autoRepair: bool = Field(default=True, description="Repair when analysis reports issues")
    decimate: bool = Field(default=False, description="Run the decimation stage")
    targetTriangles: int = Field(default=DECIMATION_TARGET, ge=0)


class ProgressEvent(BaseModel):
    stage: Literal["analyzing", "repairing", "decimating", "complete"]
    progress: float
    message: str


class PipelineResponse(BaseModel):
    analysis: AnalysisResponse
    repair: RepairResponse | None = None
    decimation: DecimationResponse | None = None
    finalMesh: MeshData
    progress: List[ProgressEvent] = Field(default_factory=list)
    cached: bool = Field(default=False, description="Whether the result was served from the cache")


class GroundPoint(BaseModel):
    """Point on the ground plane."""

    x: float
    z: float


class FootprintSource(BaseModel):
    """Mesh vertices contributing to a footprint."""

    vertices: List[float] = Field(..., description="Flat list of vertex positions (x, y, z …)")
    matrixWorld: List[float] | None = Field(
        default=None,
        description="Optional 4x4 world transform, 16 values in row-major order",
    )


class FootprintRequest(BaseModel):
    sources: List[FootprintSource] = Field(default_factory=list)
    additionalPoints: List[GroundPoint] = Field(
        default_factory=list,
        description="Extra ground points that must be enclosed, e.g. support outlines",
    )
    margin: float = Field(default=10.0, ge=0.0, description="Outward offset applied to the hull (mm)")
    offsetMode: Literal["radial", "miter"] = Field(default="radial")
    fallbackWidth: float = Field(default=100.0, description="Width of the fallback rectangle (mm)")
    fallbackHeight: float = Field(default=100.0, description="Depth of the fallback rectangle (mm)")


class FootprintResponse(BaseModel):
    points: List[GroundPoint]
    source: Literal["hull", "fallback"]
    area: float = Field(..., description="Unsigned polygon area (mm²)")
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SectionModel(BaseModel):
    """Axis‑aligned baseplate section."""

    id: str | None = Field(default=None, description="Identifier; generated when omitted")
    minX: float
    maxX: float
    minZ: float
    maxZ: float


class SectionsPayload(BaseModel):
    sections: List[SectionModel] = Field(default_factory=list)


class BaseplateCreateRequest(BaseModel):
    name: str = ""
    type: Literal[
        "rectangular",
        "convex-hull",
        "perforated-panel",
        "metal-wooden-plate",
        "multi-section",
    ] = "multi-section"
    depth: float = Field(default=10.0, gt=0.0, description="Plate thickness (mm)")
    sections: List[SectionModel] = Field(default_factory=list)


class BaseplateInfo(BaseModel):
    baseplateId: str
    name: str
    type: str
    depth: float
    createdAt: Any
    updatedAt: Any
    sections: List[SectionModel] = Field(default_factory=list)
    bounds: List[float] | None = Field(
        default=None, description="Overall [minX, maxX, minZ, maxZ] of the sections"
    )
