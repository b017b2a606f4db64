"""
Mesh repair service.

The repair stage rebuilds a mesh from its non‑degenerate triangles and
recomputes vertex normals.  It does not close holes or resolve
non‑manifold edges; those issues are reported by analysis but left to
the user.  The caller's mesh is never modified: a new ``TriangleMesh``
is assembled from copies of the surviving triangles.

Errors raised while building the new arrays are caught at the stage
boundary and surfaced as ``RepairResult(success=False, error=...)``.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import numpy as np

from .mesh_types import (
    AnalysisResult,
    BoundsTreeBuilder,
    ProgressCallback,
    RepairResult,
    TriangleMesh,
    build_bounds_tree,
    compute_vertex_normals,
    degenerate_triangle_mask,
    report_progress,
)

logger = logging.getLogger(__name__)


def repair(
    mesh: TriangleMesh,
    analysis: Optional[AnalysisResult] = None,
    on_progress: Optional[ProgressCallback] = None,
    bounds_tree_builder: Optional[BoundsTreeBuilder] = None,
) -> RepairResult:
    """Remove degenerate triangles and recompute vertex normals.

    Args:
        mesh: Mesh to repair.  Left untouched.
        analysis: Optional prior analysis of ``mesh``.  Only used for
            diagnostics; the degeneracy scan always runs.
        on_progress: Optional progress callback.
        bounds_tree_builder: Optional acceleration structure builder run
            on the repaired mesh.  Its failures are ignored.

    Returns:
        RepairResult describing the repaired mesh and the actions taken,
        in execution order.
    """
    try:
        start = time.perf_counter()
        report_progress(on_progress, "repairing", 0, "Starting mesh repair...")

        positions = mesh.positions
        actions: list[str] = []

        report_progress(on_progress, "repairing", 20, "Removing degenerate triangles...")
        keep_tri = ~degenerate_triangle_mask(positions)
        removed = int(keep_tri.size - np.count_nonzero(keep_tri))
        if analysis is not None and analysis.degenerate_face_count != removed:
            logger.info(
                "repair: analysis reported %d degenerate triangles, scan found %d",
                analysis.degenerate_face_count,
                removed,
            )
        if removed == keep_tri.size:
            raise ValueError("every triangle is degenerate; nothing left to rebuild")
        if removed > 0:
            actions.append(f"Removed {removed} degenerate triangles")

        report_progress(on_progress, "repairing", 60, "Rebuilding geometry...")
        # boolean indexing copies, the input buffers stay untouched
        valid_positions = positions[np.repeat(keep_tri, 3)]

        report_progress(on_progress, "repairing", 80, "Recomputing normals...")
        repaired = TriangleMesh(
            positions=valid_positions,
            normals=compute_vertex_normals(valid_positions),
        )
        actions.append("Recomputed vertex normals")

        build_bounds_tree(repaired, bounds_tree_builder)

        report_progress(on_progress, "repairing", 100, "Repair complete")
        logger.debug(
            "repair: kept %d of %d triangles in %.3f s",
            repaired.triangle_count,
            mesh.triangle_count,
            time.perf_counter() - start,
        )
        return RepairResult(
            success=True,
            mesh=repaired,
            triangle_count=repaired.triangle_count,
            actions=tuple(actions),
        )
    except Exception as exc:
        logger.exception("Mesh repair failed: %s", exc)
        return RepairResult(
            success=False,
            mesh=None,
            triangle_count=0,
            actions=(),
            error=str(exc) or exc.__class__.__name__,
        )
