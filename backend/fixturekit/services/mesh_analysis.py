"""
Mesh analysis service.

``analyze`` inspects a non‑indexed triangle mesh and reports whether it
is a closed 2‑manifold surface.  Three checks are performed:

- degenerate faces: triangles whose squared cross product length falls
  below ``MIN_TRIANGLE_AREA_SQ``;
- edge topology: each triangle contributes three edge keys (unordered
  pairs of global vertex indices).  An edge used once is a boundary
  edge (the surface has a hole), an edge used more than twice is
  non‑manifold;
- bounding box and triangle/vertex counts.

Vertex indices are obtained by welding identical positions, since a
non‑indexed buffer duplicates every shared vertex.  The function is
pure: it never mutates the mesh and performs no I/O.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Optional

import numpy as np

from .mesh_types import (
    DECIMATION_THRESHOLD,
    AnalysisResult,
    ProgressCallback,
    TriangleMesh,
    compute_bounding_box,
    degenerate_triangle_mask,
    report_progress,
    weld_vertices,
)

logger = logging.getLogger(__name__)


def count_degenerate_faces(positions: np.ndarray) -> int:
    """Return the number of zero‑area triangles in a non‑indexed buffer."""
    return int(np.count_nonzero(degenerate_triangle_mask(positions)))


def count_edge_usage(positions: np.ndarray) -> tuple[int, int]:
    """Count non‑manifold and boundary edges.

    Returns:
        ``(non_manifold_count, boundary_count)``.
    """
    vertex_ids, unique_count = weld_vertices(positions)
    tris = vertex_ids.reshape(-1, 3)
    # Three edges per triangle: (0,1), (1,2), (2,0)
    a = np.concatenate([tris[:, 0], tris[:, 1], tris[:, 2]])
    b = np.concatenate([tris[:, 1], tris[:, 2], tris[:, 0]])
    lo = np.minimum(a, b)
    hi = np.maximum(a, b)
    keys = lo * np.int64(unique_count) + hi
    _, counts = np.unique(keys, return_counts=True)
    non_manifold = int(np.count_nonzero(counts > 2))
    boundary = int(np.count_nonzero(counts == 1))
    return non_manifold, boundary


def analyze(mesh: TriangleMesh, on_progress: Optional[ProgressCallback] = None) -> AnalysisResult:
    """Analyse a mesh for manifoldness and degenerate geometry.

    Args:
        mesh: The mesh to inspect.  Left untouched.
        on_progress: Optional callback receiving progress events.

    Returns:
        An :class:`AnalysisResult` whose ``issues`` list the degenerate
        face, non‑manifold edge and boundary edge counts (in that order,
        only when non‑zero), followed by a high triangle count advisory
        when the mesh exceeds ``DECIMATION_THRESHOLD``.
    """
    start = time.perf_counter()
    report_progress(on_progress, "analyzing", 0, "Starting mesh analysis...")

    positions = mesh.positions
    triangle_count = mesh.triangle_count
    vertex_count = mesh.vertex_count
    issues: list[str] = []

    report_progress(on_progress, "analyzing", 10, "Computing bounding box...")
    bbox = compute_bounding_box(positions)

    report_progress(on_progress, "analyzing", 30, "Checking for degenerate faces...")
    degenerate_count = count_degenerate_faces(positions)
    if degenerate_count > 0:
        issues.append(f"Found {degenerate_count} degenerate (zero-area) triangles")

    report_progress(on_progress, "analyzing", 60, "Analyzing edge topology...")
    non_manifold_count, boundary_count = count_edge_usage(positions)
    if non_manifold_count > 0:
        issues.append(
            f"Found {non_manifold_count} non-manifold edges (shared by more than 2 faces)"
        )
    if boundary_count > 0:
        issues.append(f"Found {boundary_count} boundary edges (mesh has holes)")

    if triangle_count > DECIMATION_THRESHOLD:
        issues.append(f"High triangle count ({triangle_count}) may impact performance")

    report_progress(on_progress, "analyzing", 100, "Analysis complete")

    has_degenerate = degenerate_count > 0
    has_non_manifold = non_manifold_count > 0
    is_manifold = not has_non_manifold and boundary_count == 0 and not has_degenerate

    if os.getenv("MESH_DEBUG"):
        logger.debug(
            "analyze: %d triangles, %d degenerate, %d non-manifold, %d boundary, bbox=%s",
            triangle_count,
            degenerate_count,
            non_manifold_count,
            boundary_count,
            bbox,
        )
    logger.debug("analyze finished in %.3f s", time.perf_counter() - start)

    return AnalysisResult(
        is_manifold=is_manifold,
        triangle_count=triangle_count,
        vertex_count=vertex_count,
        has_non_manifold_edges=has_non_manifold,
        has_degenerate_faces=has_degenerate,
        degenerate_face_count=degenerate_count,
        non_manifold_edge_count=non_manifold_count,
        boundary_edge_count=boundary_count,
        bounding_box=bbox,
        issues=tuple(issues),
    )
