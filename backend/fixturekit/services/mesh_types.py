"""
Core mesh types and shared geometry helpers.

Every stage of the mesh processing pipeline (analysis, repair and
decimation) consumes and produces the same canonical representation: a
*non‑indexed* triangle mesh in which each triangle owns its three
vertices.  Positions are stored as a ``float32`` array of shape
``(vertex_count, 3)`` so that ``vertex_count == 3 * triangle_count``.
Indexed meshes only exist transiently inside the decimation stage.

This module also hosts the value types returned by the stages, the
progress reporting side channel and a handful of vectorised numpy
helpers (degeneracy test, vertex normals, bounding box, vertex
welding) shared by several services.

The numeric thresholds below are scale dependent heuristics that assume
millimetre‑scale input.  They are kept as named constants rather than
being derived from the mesh extent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Literal, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# Squared cross product length below which a triangle counts as degenerate.
MIN_TRIANGLE_AREA_SQ: float = 1e-12

# Triangle count above which analysis recommends decimation.
DECIMATION_THRESHOLD: int = 500_000

# Default target triangle count for decimation.
DECIMATION_TARGET: int = 500_000


class MeshFormatError(ValueError):
    """Raised when a vertex buffer cannot form a non‑indexed triangle mesh."""


Stage = Literal["analyzing", "repairing", "decimating", "complete"]


@dataclass(frozen=True)
class ProcessingProgress:
    """Single progress event emitted by a processing stage."""

    stage: Stage
    progress: float
    message: str


ProgressCallback = Callable[[ProcessingProgress], None]

# Optional acceleration structure builder invoked after a stage produces a
# new mesh.  The returned object is opaque to the core.
BoundsTreeBuilder = Callable[["TriangleMesh"], Any]


def report_progress(
    callback: Optional[ProgressCallback],
    stage: Stage,
    progress: float,
    message: str,
) -> None:
    """Deliver a progress event to ``callback`` if one was supplied."""
    if callback is not None:
        callback(ProcessingProgress(stage=stage, progress=progress, message=message))


class ProgressRecorder:
    """Progress callback that keeps every event it receives.

    Used by the HTTP layer to return the progress log of a pipeline run
    and handy in tests.  Instances are cheap and should not be shared
    between concurrent pipelines.
    """

    def __init__(self) -> None:
        self.events: list[ProcessingProgress] = []

    def __call__(self, event: ProcessingProgress) -> None:
        self.events.append(event)

    @property
    def stages(self) -> list[str]:
        return [e.stage for e in self.events]


@dataclass(frozen=True)
class BoundingBox:
    """Axis‑aligned bounding box of a mesh."""

    min: Tuple[float, float, float]
    max: Tuple[float, float, float]
    size: Tuple[float, float, float]


@dataclass(frozen=True, eq=False)
class TriangleMesh:
    """Non‑indexed triangle mesh.

    Attributes:
        positions: ``float32`` array of shape ``(vertex_count, 3)``.
        normals: Optional ``float32`` array with the same shape as
            ``positions``.
    """

    positions: np.ndarray
    normals: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        pos = self.positions
        if not isinstance(pos, np.ndarray) or pos.ndim != 2 or pos.shape[1] != 3:
            raise MeshFormatError("positions must be an array of shape (N, 3)")
        if pos.shape[0] < 3 or pos.shape[0] % 3 != 0:
            raise MeshFormatError(
                f"vertex count must be a positive multiple of 3, got {pos.shape[0]}"
            )
        if self.normals is not None and self.normals.shape != pos.shape:
            raise MeshFormatError(
                f"normals shape {self.normals.shape} does not match positions {pos.shape}"
            )

    @classmethod
    def from_flat(
        cls,
        values: Iterable[float] | np.ndarray,
        normals: Iterable[float] | np.ndarray | None = None,
    ) -> "TriangleMesh":
        """Build a mesh from a flat coordinate buffer (9 floats per triangle).

        An ``(N, 3)`` array is accepted as well.  The data is copied into
        new ``float32`` arrays so the caller's buffer is never aliased.

        Raises:
            MeshFormatError: If the buffer length is not a multiple of 9,
                holds fewer than one triangle or contains non‑finite values.
        """
        flat = np.array(values, dtype=np.float32).reshape(-1)
        if flat.size == 0 or flat.size % 9 != 0:
            raise MeshFormatError(
                f"vertex buffer length must be a positive multiple of 9, got {flat.size}"
            )
        if not np.all(np.isfinite(flat)):
            raise MeshFormatError("vertex buffer contains non-finite coordinates")
        normals_arr = None
        if normals is not None:
            normals_flat = np.array(normals, dtype=np.float32).reshape(-1)
            if normals_flat.size:
                if normals_flat.size != flat.size:
                    raise MeshFormatError(
                        f"normal buffer length {normals_flat.size} does not match "
                        f"vertex buffer length {flat.size}"
                    )
                normals_arr = normals_flat.reshape(-1, 3)
        return cls(positions=flat.reshape(-1, 3), normals=normals_arr)

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def triangle_count(self) -> int:
        return self.vertex_count // 3

    def copy(self) -> "TriangleMesh":
        return TriangleMesh(
            positions=self.positions.copy(),
            normals=None if self.normals is None else self.normals.copy(),
        )

    def to_flat(self) -> list[float]:
        return self.positions.reshape(-1).tolist()

    def normals_to_flat(self) -> list[float]:
        if self.normals is None:
            return []
        return self.normals.reshape(-1).tolist()


@dataclass(frozen=True)
class AnalysisResult:
    """Immutable result of :func:`mesh_analysis.analyze`."""

    is_manifold: bool
    triangle_count: int
    vertex_count: int
    has_non_manifold_edges: bool
    has_degenerate_faces: bool
    degenerate_face_count: int
    non_manifold_edge_count: int
    boundary_edge_count: int
    bounding_box: BoundingBox
    issues: Tuple[str, ...]


@dataclass(frozen=True)
class RepairResult:
    success: bool
    mesh: Optional[TriangleMesh]
    triangle_count: int
    actions: Tuple[str, ...]
    error: Optional[str] = None


@dataclass(frozen=True)
class DecimationResult:
    success: bool
    mesh: Optional[TriangleMesh]
    original_triangles: int
    final_triangles: int
    reduction_percent: float
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Vectorised helpers
# ---------------------------------------------------------------------------

def triangle_cross_products(positions: np.ndarray, indices: np.ndarray | None = None) -> np.ndarray:
    """Return the per‑triangle cross product ``(v1 - v0) x (v2 - v0)``.

    ``positions`` holds one row per vertex.  Without ``indices`` the rows
    are taken three at a time (non‑indexed mesh); otherwise ``indices`` is
    an ``(T, 3)`` integer array into ``positions``.  The computation is
    carried out in float64.
    """
    pos = np.asarray(positions, dtype=np.float64)
    if indices is None:
        tri = pos.reshape(-1, 3, 3)
        v0, v1, v2 = tri[:, 0], tri[:, 1], tri[:, 2]
    else:
        v0 = pos[indices[:, 0]]
        v1 = pos[indices[:, 1]]
        v2 = pos[indices[:, 2]]
    return np.cross(v1 - v0, v2 - v0)


def degenerate_triangle_mask(positions: np.ndarray, indices: np.ndarray | None = None) -> np.ndarray:
    """Boolean mask of triangles whose squared cross length is below the threshold."""
    cross = triangle_cross_products(positions, indices)
    return np.einsum("ij,ij->i", cross, cross) < MIN_TRIANGLE_AREA_SQ


def compute_vertex_normals(positions: np.ndarray, indices: np.ndarray | None = None) -> np.ndarray:
    """Area‑weighted vertex normals.

    Each face contributes its unnormalised cross product (twice its area
    times its unit normal) to every vertex it references; the sums are
    then normalised.  Vertices whose sum vanishes keep a zero normal.
    For a non‑indexed mesh every vertex belongs to exactly one triangle
    so the result equals the flat face normal.
    """
    pos = np.asarray(positions, dtype=np.float64)
    if indices is None:
        indices = np.arange(pos.shape[0], dtype=np.int64).reshape(-1, 3)
    face_normals = triangle_cross_products(pos, indices)
    vert_normals = np.zeros((pos.shape[0], 3), dtype=np.float64)
    for i in range(3):
        np.add.at(vert_normals, indices[:, i], face_normals)
    lengths = np.linalg.norm(vert_normals, axis=1, keepdims=True)
    lengths[lengths == 0] = 1.0
    return (vert_normals / lengths).astype(np.float32)


def compute_bounding_box(positions: np.ndarray) -> BoundingBox:
    """Compute the bounding box with a single min/max reduction."""
    mins = positions.min(axis=0).astype(np.float64)
    maxs = positions.max(axis=0).astype(np.float64)
    size = maxs - mins
    return BoundingBox(
        min=tuple(float(v) for v in mins),
        max=tuple(float(v) for v in maxs),
        size=tuple(float(v) for v in size),
    )


def weld_vertices(positions: np.ndarray) -> tuple[np.ndarray, int]:
    """Assign one global index per distinct vertex position.

    Returns ``(vertex_ids, unique_count)`` where ``vertex_ids[i]`` is the
    index shared by every vertex located exactly at ``positions[i]``.
    """
    # fold -0.0 into 0.0 so both signs weld together
    pos = np.ascontiguousarray(positions, dtype=np.float32) + np.float32(0.0)
    _, inverse = np.unique(pos, axis=0, return_inverse=True)
    inverse = np.asarray(inverse).reshape(-1)
    return inverse.astype(np.int64), int(inverse.max()) + 1 if inverse.size else 0


def build_bounds_tree(mesh: TriangleMesh, builder: Optional[BoundsTreeBuilder]) -> Any:
    """Invoke an optional bounding‑volume hierarchy builder.

    The acceleration structure is a convenience for raycasting in the
    viewport; failing to build it never fails the calling stage.
    """
    if builder is None:
        return None
    try:
        return builder(mesh)
    except Exception as exc:
        logger.warning("Bounds tree construction failed (ignored): %r", exc)
        return None
