"""
Footprint builder for baseplates.

A baseplate footprint is a closed 2D polygon on the ground plane.  The
ground plane is spanned by the world X and Z axes (Y points up), so a
3D vertex ``(x, y, z)`` projects to the 2D point ``(x, z)``.

The builder samples the vertices of one or more meshes (already placed
in world space, or with a world matrix to apply), deduplicates the
projected points on a 0.01 grid, computes their convex hull with the
monotone chain algorithm and pushes the hull outward by a margin.  Two
offset strategies are available:

- ``"radial"``: every vertex moves away from the hull centroid by the
  margin.  Cheap and always expanding, but only approximate.
- ``"miter"``: every vertex moves along the bisector of its two
  adjacent edge normals, by ``margin / cos(half angle)`` clamped to
  ``MITER_LIMIT * margin``.  Sides end up exactly ``margin`` away.

Whenever no usable hull exists (fewer than three distinct points,
collinear input) a rounded rectangle of the caller supplied size is
returned instead so the baseplate can always be rendered.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Literal, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

Point2D = Tuple[float, float]
Polygon = List[Point2D]
OffsetMode = Literal["radial", "miter"]

# Grid used to deduplicate projected points.
FOOTPRINT_QUANTUM: float = 0.01

# Upper bound on the number of vertices sampled from a single mesh.
MAX_FOOTPRINT_SAMPLES: int = 5000

# Averaged normals shorter than this mark a straight (parallel) corner.
PARALLEL_EDGE_EPS: float = 0.001

# Maximum miter length as a multiple of the offset distance.
MITER_LIMIT: float = 4.0

# Below this cosine the miter length falls back to the plain distance.
MIN_MITER_DOT: float = 0.1

# Edges shorter than this have no defined outward normal.
MIN_EDGE_LENGTH: float = 0.01

FALLBACK_CORNER_RATIO: float = 0.1
DEFAULT_FALLBACK_SIZE: float = 100.0


@dataclass(frozen=True)
class FootprintResult:
    """Polygon produced by :func:`compute_footprint`.

    Attributes:
        polygon: Closed loop of ``(x, z)`` points (last point not repeated).
        source: ``"hull"`` when derived from the points, ``"fallback"``
            for the rounded rectangle.
        hull_size: Number of convex hull vertices (0 for the fallback).
    """

    polygon: Polygon
    source: Literal["hull", "fallback"]
    hull_size: int


# ---------------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------------

def sample_ground_points(
    positions: Sequence[Sequence[float]] | np.ndarray,
    world_matrix: Optional[Sequence[Sequence[float]] | np.ndarray] = None,
    max_points: int = MAX_FOOTPRINT_SAMPLES,
) -> Polygon:
    """Project mesh vertices onto the ground plane.

    Args:
        positions: Vertex positions, flat or of shape ``(N, 3)``.
        world_matrix: Optional 4x4 transform (row major, column vectors,
            translation in the last column) applied before projecting.
        max_points: Sampling stride is chosen so that roughly this many
            vertices are considered; small meshes use every vertex.

    Returns:
        List of ``(x, z)`` points in sampling order.
    """
    pts = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    if pts.shape[0] == 0:
        return []
    stride = max(1, pts.shape[0] // max(1, max_points))
    pts = pts[::stride]
    if world_matrix is not None:
        m = np.asarray(world_matrix, dtype=np.float64).reshape(4, 4)
        pts = pts @ m[:3, :3].T + m[:3, 3]
    return [(float(x), float(z)) for x, z in pts[:, [0, 2]]]


def dedupe_points(points: Iterable[Point2D], quantum: float = FOOTPRINT_QUANTUM) -> Polygon:
    """Drop points that fall on the same ``quantum`` grid cell.

    The first point seen in a cell is kept; input order is preserved.
    """
    seen: set[tuple[int, int]] = set()
    result: Polygon = []
    for x, z in points:
        key = (math.floor(x / quantum + 0.5), math.floor(z / quantum + 0.5))
        if key in seen:
            continue
        seen.add(key)
        result.append((x, z))
    return result


# ---------------------------------------------------------------------------
# Hull and winding
# ---------------------------------------------------------------------------

def _cross(o: Point2D, a: Point2D, b: Point2D) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def convex_hull(points: Iterable[Point2D]) -> Polygon:
    """Andrew's monotone chain convex hull.

    Collinear points on the hull boundary are dropped.  The hull is
    returned counter‑clockwise (positive signed area).  Degenerate input
    yields fewer than three points.
    """
    pts = sorted(set(points))
    if len(pts) < 3:
        return list(pts)

    lower: Polygon = []
    for p in pts:
        while len(lower) >= 2 and _cross(lower[-2], lower[-1], p) <= 0:
            lower.pop()
        lower.append(p)

    upper: Polygon = []
    for p in reversed(pts):
        while len(upper) >= 2 and _cross(upper[-2], upper[-1], p) <= 0:
            upper.pop()
        upper.append(p)

    # last point of each chain is the first point of the other
    return lower[:-1] + upper[:-1]


def polygon_signed_area(polygon: Sequence[Point2D]) -> float:
    """Shoelace signed area; positive for counter‑clockwise loops."""
    n = len(polygon)
    if n < 3:
        return 0.0
    area = 0.0
    for i in range(n):
        x0, z0 = polygon[i]
        x1, z1 = polygon[(i + 1) % n]
        area += x0 * z1 - x1 * z0
    return 0.5 * area


def is_clockwise(polygon: Sequence[Point2D]) -> bool:
    return polygon_signed_area(polygon) < 0


def ensure_clockwise(polygon: Sequence[Point2D]) -> Polygon:
    """Return ``polygon`` with clockwise winding, reversing it if needed."""
    if len(polygon) >= 3 and polygon_signed_area(polygon) > 0:
        return list(reversed(polygon))
    return list(polygon)


def edge_outward_normal(p1: Point2D, p2: Point2D, clockwise: bool) -> Point2D:
    """Unit outward normal of edge ``p1 -> p2`` for the given winding.

    Edges shorter than ``MIN_EDGE_LENGTH`` return ``(0.0, 0.0)``.
    """
    dx = p2[0] - p1[0]
    dz = p2[1] - p1[1]
    length = math.hypot(dx, dz)
    if length < MIN_EDGE_LENGTH:
        return (0.0, 0.0)
    if clockwise:
        return (-dz / length, dx / length)
    return (dz / length, -dx / length)


# ---------------------------------------------------------------------------
# Offsets
# ---------------------------------------------------------------------------

def offset_polygon_radial(polygon: Sequence[Point2D], margin: float) -> Polygon:
    """Push every vertex away from the vertex centroid by ``margin``.

    Raises:
        ValueError: If ``margin`` is negative.
    """
    if margin < 0:
        raise ValueError(f"Offset margin must be non-negative, got {margin}")
    if margin == 0 or len(polygon) == 0:
        return list(polygon)
    cx = sum(p[0] for p in polygon) / len(polygon)
    cz = sum(p[1] for p in polygon) / len(polygon)
    result: Polygon = []
    for x, z in polygon:
        dx = x - cx
        dz = z - cz
        dist = math.hypot(dx, dz)
        if dist < PARALLEL_EDGE_EPS:
            result.append((x, z))
            continue
        s = (dist + margin) / dist
        result.append((cx + dx * s, cz + dz * s))
    return result


def offset_polygon_miter(polygon: Sequence[Point2D], distance: float) -> Polygon:
    """Offset a polygon outward with mitered corners.

    Works for either winding: the orientation is detected from the
    signed area and the edge normals are rotated accordingly.  At
    corners where the two edges are nearly parallel the vertex is moved
    along the single normal of the incoming edge.

    Raises:
        ValueError: If ``distance`` is negative.
    """
    if distance < 0:
        raise ValueError(f"Offset distance must be non-negative, got {distance}")
    n = len(polygon)
    if n < 3 or distance == 0:
        return list(polygon)

    clockwise = is_clockwise(polygon)
    result: Polygon = []
    for i in range(n):
        cx, cz = polygon[i]
        o1x, o1z = edge_outward_normal(polygon[i - 1], polygon[i], clockwise)
        o2x, o2z = edge_outward_normal(polygon[i], polygon[(i + 1) % n], clockwise)

        ax, az = o1x + o2x, o1z + o2z
        avg_len = math.hypot(ax, az)
        if avg_len < PARALLEL_EDGE_EPS:
            result.append((cx + o1x * distance, cz + o1z * distance))
            continue

        ax /= avg_len
        az /= avg_len
        dot = o1x * ax + o1z * az
        miter = distance / dot if dot > MIN_MITER_DOT else distance
        miter = min(miter, distance * MITER_LIMIT)
        result.append((cx + ax * miter, cz + az * miter))
    return result


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------

def rounded_rectangle(width: float, height: float, corner_segments: int = 8) -> Polygon:
    """Rounded rectangle centred on the origin, counter‑clockwise.

    The corner radius is ``FALLBACK_CORNER_RATIO`` of the smaller side.
    Each quarter round is approximated by ``corner_segments`` chords.
    Non‑positive or non‑finite sizes are replaced by
    ``DEFAULT_FALLBACK_SIZE``.
    """
    w = width if width and width > 0 and math.isfinite(width) else DEFAULT_FALLBACK_SIZE
    h = height if height and height > 0 and math.isfinite(height) else DEFAULT_FALLBACK_SIZE
    segments = max(1, int(corner_segments))
    r = min(w, h) * FALLBACK_CORNER_RATIO
    hw, hh = w / 2.0, h / 2.0

    # corner centres in counter-clockwise order, with the start angle of
    # each quarter arc
    corners = [
        (hw - r, -hh + r, -0.5 * math.pi),
        (hw - r, hh - r, 0.0),
        (-hw + r, hh - r, 0.5 * math.pi),
        (-hw + r, -hh + r, math.pi),
    ]
    polygon: Polygon = []
    for ccx, ccz, a0 in corners:
        for k in range(segments + 1):
            a = a0 + (0.5 * math.pi) * k / segments
            polygon.append((ccx + r * math.cos(a), ccz + r * math.sin(a)))
    return polygon


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def compute_footprint(
    points: Iterable[Sequence[float]],
    margin: float,
    fallback_width: float,
    fallback_height: float,
    offset_mode: OffsetMode = "radial",
    extra_points: Optional[Iterable[Point2D]] = None,
) -> FootprintResult:
    """Build a footprint polygon and report how it was obtained.

    Args:
        points: 3D world‑space points ``(x, y, z)``.  Large clouds are
            sampled down to about ``MAX_FOOTPRINT_SAMPLES`` points.
        margin: Outward offset distance.
        fallback_width: Width (X) of the fallback rectangle.
        fallback_height: Depth (Z) of the fallback rectangle.
        offset_mode: ``"radial"`` or ``"miter"``.
        extra_points: Additional ground‑plane points that must lie inside
            the footprint, e.g. support outlines.

    Returns:
        FootprintResult; degenerate input yields the rounded rectangle.

    Raises:
        ValueError: For an unknown ``offset_mode`` or a negative margin.
    """
    if offset_mode not in ("radial", "miter"):
        raise ValueError(f"Unsupported offset mode: {offset_mode}")
    if margin < 0:
        raise ValueError(f"Footprint margin must be non-negative, got {margin}")

    ground: Polygon = []
    try:
        pts = np.asarray(list(points), dtype=np.float64)
        if pts.size:
            ground = sample_ground_points(pts)
    except ValueError as exc:
        logger.warning("Footprint points are malformed, using fallback: %s", exc)
        ground = []
    if extra_points is not None:
        ground.extend((float(x), float(z)) for x, z in extra_points)
    ground = [p for p in ground if math.isfinite(p[0]) and math.isfinite(p[1])]

    candidates = dedupe_points(ground)
    hull = convex_hull(candidates) if len(candidates) >= 3 else []
    if len(hull) < 3 or abs(polygon_signed_area(hull)) == 0.0:
        logger.info(
            "Footprint hull unavailable (%d distinct points), using %gx%g rounded rectangle",
            len(candidates),
            fallback_width,
            fallback_height,
        )
        return FootprintResult(
            polygon=rounded_rectangle(fallback_width, fallback_height),
            source="fallback",
            hull_size=0,
        )

    if offset_mode == "miter":
        polygon = offset_polygon_miter(hull, margin)
    else:
        polygon = offset_polygon_radial(hull, margin)
    return FootprintResult(polygon=polygon, source="hull", hull_size=len(hull))


def build_footprint(
    points: Iterable[Sequence[float]],
    margin: float,
    fallback_width: float,
    fallback_height: float,
    offset_mode: OffsetMode = "radial",
) -> Polygon:
    """Return only the footprint polygon of :func:`compute_footprint`."""
    return compute_footprint(points, margin, fallback_width, fallback_height, offset_mode).polygon
