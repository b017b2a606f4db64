"""
Mesh decimation by uniform spatial‑hash vertex clustering.

When a mesh exceeds its triangle budget every vertex is snapped to a
3D grid whose cell size grows with the requested reduction.  The first
vertex that lands in a cell becomes the representative of that cell and
all later vertices in the same cell are remapped to it.  Triangles that
collapse (two or more corners in the same cell) or that remain
degenerate after remapping are discarded.

This is a best‑effort simplification: the final triangle count is never
larger than the original but is not guaranteed to match the target.
The result is converted back to the canonical non‑indexed layout
before it is returned.
"""

from __future__ import annotations

import logging
import math
import os
import time
from typing import Optional, Sequence

import numpy as np

from .mesh_types import (
    DECIMATION_TARGET,
    BoundsTreeBuilder,
    DecimationResult,
    ProgressCallback,
    TriangleMesh,
    build_bounds_tree,
    compute_bounding_box,
    compute_vertex_normals,
    degenerate_triangle_mask,
    report_progress,
)

logger = logging.getLogger(__name__)

# Scale applied to the largest bounding box dimension when deriving the
# clustering cell size.
CELL_SIZE_FACTOR: float = 0.01


def compute_cell_size(bbox_size: Sequence[float], original_triangles: int, target_triangles: int) -> float:
    """Return the clustering cell size for a given reduction ratio.

    ``max_dim * sqrt(1 - target / original) * CELL_SIZE_FACTOR``; a more
    aggressive reduction yields larger cells and therefore more merging.
    """
    ratio = target_triangles / original_triangles
    max_dim = max(bbox_size)
    return max_dim * math.sqrt(max(0.0, 1.0 - ratio)) * CELL_SIZE_FACTOR


def cluster_vertices(positions: np.ndarray, cell_size: float) -> tuple[np.ndarray, np.ndarray]:
    """Merge vertices that share a grid cell.

    Args:
        positions: ``(N, 3)`` vertex positions.
        cell_size: Edge length of the cubic grid cells.  A non‑positive
            size places every vertex in a single cell.

    Returns:
        ``(merged_positions, remap)`` where ``merged_positions`` holds one
        representative per occupied cell (in order of first appearance)
        and ``remap[i]`` is the merged index of original vertex ``i``.
    """
    if cell_size > 0.0:
        keys = np.floor(positions.astype(np.float64) / cell_size).astype(np.int64)
    else:
        keys = np.zeros((positions.shape[0], 3), dtype=np.int64)
    _, first_index, inverse = np.unique(keys, axis=0, return_index=True, return_inverse=True)
    inverse = np.asarray(inverse).reshape(-1)
    # np.unique orders cells by key; renumber them by first appearance
    order = np.argsort(first_index, kind="stable")
    rank = np.empty_like(order)
    rank[order] = np.arange(order.size)
    remap = rank[inverse]
    merged_positions = positions[first_index[order]].copy()
    return merged_positions, remap


def rebuild_triangles(merged_positions: np.ndarray, remap: np.ndarray) -> np.ndarray:
    """Return the ``(T, 3)`` index array of triangles that survive clustering."""
    tris = remap.reshape(-1, 3)
    i0, i1, i2 = tris[:, 0], tris[:, 1], tris[:, 2]
    collapsed = (i0 == i1) | (i1 == i2) | (i2 == i0)
    tris = tris[~collapsed]
    if tris.size == 0:
        return tris
    degenerate = degenerate_triangle_mask(merged_positions, tris)
    return tris[~degenerate]


def decimate(
    mesh: TriangleMesh,
    target_triangles: int = DECIMATION_TARGET,
    on_progress: Optional[ProgressCallback] = None,
    bounds_tree_builder: Optional[BoundsTreeBuilder] = None,
) -> DecimationResult:
    """Reduce the triangle count of ``mesh`` towards ``target_triangles``.

    A mesh already at or below the target is returned as a verbatim copy
    with ``reduction_percent == 0``.  Any failure is reported through the
    result object rather than raised.
    """
    try:
        start = time.perf_counter()
        report_progress(on_progress, "decimating", 0, "Starting decimation...")

        if target_triangles < 0:
            raise ValueError(f"target triangle count must be non-negative, got {target_triangles}")

        positions = mesh.positions
        original = mesh.triangle_count

        if original <= target_triangles:
            return DecimationResult(
                success=True,
                mesh=mesh.copy(),
                original_triangles=original,
                final_triangles=original,
                reduction_percent=0.0,
            )

        report_progress(on_progress, "decimating", 10, "Computing spatial grid...")
        bbox = compute_bounding_box(positions)
        cell_size = compute_cell_size(bbox.size, original, target_triangles)

        report_progress(on_progress, "decimating", 20, "Merging vertices...")
        merged_positions, remap = cluster_vertices(positions, cell_size)

        report_progress(on_progress, "decimating", 50, "Rebuilding triangles...")
        tris = rebuild_triangles(merged_positions, remap)
        if tris.shape[0] == 0:
            raise ValueError("vertex clustering collapsed every triangle")

        report_progress(on_progress, "decimating", 75, "Creating optimized geometry...")
        merged_normals = compute_vertex_normals(merged_positions, tris)

        report_progress(on_progress, "decimating", 85, "Finalizing...")
        flat_index = tris.reshape(-1)
        decimated = TriangleMesh(
            positions=merged_positions[flat_index].astype(np.float32),
            normals=merged_normals[flat_index],
        )
        build_bounds_tree(decimated, bounds_tree_builder)

        report_progress(on_progress, "decimating", 100, "Decimation complete")

        final = decimated.triangle_count
        reduction = (original - final) / original * 100.0
        if os.getenv("MESH_DEBUG"):
            logger.debug(
                "decimate: cell=%.6g, %d -> %d vertices",
                cell_size,
                positions.shape[0],
                merged_positions.shape[0],
            )
        logger.debug(
            "decimate: %d -> %d triangles (%.1f%%) in %.3f s",
            original,
            final,
            reduction,
            time.perf_counter() - start,
        )
        return DecimationResult(
            success=True,
            mesh=decimated,
            original_triangles=original,
            final_triangles=final,
            reduction_percent=reduction,
        )
    except Exception as exc:
        logger.exception("Mesh decimation failed: %s", exc)
        return DecimationResult(
            success=False,
            mesh=None,
            original_triangles=0,
            final_triangles=0,
            reduction_percent=0.0,
            error=str(exc) or exc.__class__.__name__,
        )
