"""
API routes for mesh analysis, repair and decimation.

Meshes are posted as flat non‑indexed vertex buffers.  Analysis
rejects malformed buffers with HTTP 422.  Repair and decimation keep
the result‑object contract of the services: a failure inside the
stage is returned as ``success: false`` with an error message rather
than an HTTP error.  The pipeline endpoint additionally returns the
progress events emitted by each stage and caches its results.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from .models import (
    AnalysisResponse,
    DecimateRequest,
    DecimationResponse,
    MeshBBox,
    MeshData,
    MeshPayload,
    PipelineRequest,
    PipelineResponse,
    ProgressEvent,
    RepairResponse,
)
from ..services.mesh_analysis import analyze
from ..services.mesh_decimation import decimate
from ..services.mesh_pipeline import PipelineOptions, run_pipeline
from ..services.mesh_repair import repair
from ..services.mesh_types import (
    AnalysisResult,
    DecimationResult,
    MeshFormatError,
    ProgressRecorder,
    RepairResult,
    TriangleMesh,
)
from ..services.pipeline_cache import (
    PipelineCacheKey,
    get_pipeline_result_from_cache,
    put_pipeline_result_in_cache,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def mesh_from_payload(data: MeshData) -> TriangleMesh:
    """Convert a request mesh into a ``TriangleMesh`` or raise HTTP 422."""
    try:
        return TriangleMesh.from_flat(data.vertices, data.normals or None)
    except MeshFormatError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid mesh: {exc}")


def mesh_to_payload(mesh: TriangleMesh) -> MeshData:
    return MeshData(vertices=mesh.to_flat(), normals=mesh.normals_to_flat())


def analysis_to_response(result: AnalysisResult) -> AnalysisResponse:
    bbox = result.bounding_box
    return AnalysisResponse(
        isManifold=result.is_manifold,
        triangleCount=result.triangle_count,
        vertexCount=result.vertex_count,
        hasNonManifoldEdges=result.has_non_manifold_edges,
        hasDegenerateFaces=result.has_degenerate_faces,
        degenerateFaceCount=result.degenerate_face_count,
        nonManifoldEdgeCount=result.non_manifold_edge_count,
        boundaryEdgeCount=result.boundary_edge_count,
        bbox=MeshBBox(min=list(bbox.min), max=list(bbox.max), size=list(bbox.size)),
        issues=list(result.issues),
    )


def repair_to_response(result: RepairResult) -> RepairResponse:
    return RepairResponse(
        success=result.success,
        mesh=mesh_to_payload(result.mesh) if result.mesh is not None else None,
        triangleCount=result.triangle_count,
        actions=list(result.actions),
        error=result.error,
    )


def decimation_to_response(result: DecimationResult) -> DecimationResponse:
    return DecimationResponse(
        success=result.success,
        mesh=mesh_to_payload(result.mesh) if result.mesh is not None else None,
        originalTriangles=result.original_triangles,
        finalTriangles=result.final_triangles,
        reductionPercent=result.reduction_percent,
        error=result.error,
    )


@router.post("/mesh/analyze", response_model=AnalysisResponse)
def analyze_mesh(body: MeshPayload) -> AnalysisResponse:
    """Report manifold status, degenerate faces and edge topology of a mesh."""
    mesh = mesh_from_payload(body.mesh)
    try:
        result = analyze(mesh)
    except Exception as exc:
        logger.exception("analyze endpoint error: %s", exc)
        raise HTTPException(status_code=500, detail=f"Failed to analyze mesh: {exc}")
    return analysis_to_response(result)


@router.post("/mesh/repair", response_model=RepairResponse)
def repair_mesh(body: MeshPayload) -> RepairResponse:
    """Remove degenerate triangles and recompute normals."""
    try:
        mesh = TriangleMesh.from_flat(body.mesh.vertices, body.mesh.normals or None)
    except MeshFormatError as exc:
        return RepairResponse(success=False, mesh=None, triangleCount=0, actions=[], error=str(exc))
    return repair_to_response(repair(mesh))


@router.post("/mesh/decimate", response_model=DecimationResponse)
def decimate_mesh(body: DecimateRequest) -> DecimationResponse:
    """Reduce the triangle count of a mesh towards ``targetTriangles``."""
    try:
        mesh = TriangleMesh.from_flat(body.mesh.vertices, body.mesh.normals or None)
    except MeshFormatError as exc:
        return DecimationResponse(
            success=False,
            mesh=None,
            originalTriangles=0,
            finalTriangles=0,
            reductionPercent=0.0,
            error=str(exc),
        )
    return decimation_to_response(decimate(mesh, body.targetTriangles))


@router.post("/mesh/pipeline", response_model=PipelineResponse)
def process_mesh(body: PipelineRequest) -> PipelineResponse:
    """Analyze, optionally repair and optionally decimate a mesh.

    The progress events emitted by each stage are returned in order so
    the client can replay them.  Identical requests are served from an
    in‑memory cache.
    """
    mesh = mesh_from_payload(body.mesh)
    options = PipelineOptions(
        auto_repair=body.autoRepair,
        decimate=body.decimate,
        target_triangles=body.targetTriangles,
    )
    key = PipelineCacheKey.for_run(mesh, options)
    cached = get_pipeline_result_from_cache(key)
    if cached is not None:
        result, events = cached
        from_cache = True
    else:
        recorder = ProgressRecorder()
        try:
            result = run_pipeline(mesh, options, recorder)
        except Exception as exc:
            logger.exception("pipeline endpoint error: %s", exc)
            raise HTTPException(status_code=500, detail=f"Failed to process mesh: {exc}")
        events = tuple(recorder.events)
        put_pipeline_result_in_cache(key, (result, events))
        from_cache = False

    return PipelineResponse(
        analysis=analysis_to_response(result.analysis),
        repair=repair_to_response(result.repair) if result.repair is not None else None,
        decimation=decimation_to_response(result.decimation) if result.decimation is not None else None,
        finalMesh=mesh_to_payload(result.final_mesh),
        progress=[ProgressEvent(stage=e.stage, progress=e.progress, message=e.message) for e in events],
        cached=from_cache,
    )
