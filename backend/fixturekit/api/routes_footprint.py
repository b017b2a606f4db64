"""
API route for baseplate footprints.

The client posts the world‑space vertices of the parts sitting on the
baseplate (or their local vertices plus a world matrix) and receives a
closed ground‑plane polygon: the offset convex hull of the parts, or a
rounded rectangle when no hull can be formed.  Extruding the polygon
into a plate happens on the client.
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException

from .models import FootprintRequest, FootprintResponse, GroundPoint
from ..services.footprint import Point2D, compute_footprint, polygon_signed_area, sample_ground_points

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/footprint", response_model=FootprintResponse)
def build_footprint_polygon(body: FootprintRequest) -> FootprintResponse:
    """Compute the footprint polygon for the posted sources."""
    ground: List[Point2D] = []
    for idx, source in enumerate(body.sources):
        if len(source.vertices) % 3 != 0:
            raise HTTPException(
                status_code=422,
                detail=f"Source {idx}: vertex buffer length must be a multiple of 3",
            )
        if source.matrixWorld is not None and len(source.matrixWorld) != 16:
            raise HTTPException(
                status_code=422,
                detail=f"Source {idx}: matrixWorld must contain 16 values",
            )
        if source.vertices:
            ground.extend(sample_ground_points(source.vertices, source.matrixWorld))
    ground.extend((p.x, p.z) for p in body.additionalPoints)

    try:
        # each source is sampled on its own above, so only pass projected points
        result = compute_footprint(
            [],
            margin=body.margin,
            fallback_width=body.fallbackWidth,
            fallback_height=body.fallbackHeight,
            offset_mode=body.offsetMode,
            extra_points=ground,
        )
    except Exception as exc:
        logger.exception("footprint endpoint error: %s", exc)
        raise HTTPException(status_code=500, detail=f"Failed to compute footprint: {exc}")

    return FootprintResponse(
        points=[GroundPoint(x=x, z=z) for x, z in result.polygon],
        source=result.source,
        area=abs(polygon_signed_area(result.polygon)),
        metadata={
            "hullSize": result.hull_size,
            "inputPoints": len(ground),
            "margin": body.margin,
            "offsetMode": body.offsetMode,
        },
    )
