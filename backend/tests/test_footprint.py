"""
Tests for the baseplate footprint builder.

Covers ground projection and sampling, the convex hull, both offset
strategies and the rounded rectangle fallback used when no hull can be
formed.
"""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fixturekit.services.footprint import (  # type: ignore
    build_footprint,
    compute_footprint,
    convex_hull,
    dedupe_points,
    edge_outward_normal,
    ensure_clockwise,
    is_clockwise,
    offset_polygon_miter,
    offset_polygon_radial,
    polygon_signed_area,
    rounded_rectangle,
    sample_ground_points,
)

SQUARE_3D = [(0.0, 0.0, 0.0), (10.0, 0.0, 0.0), (10.0, 0.0, 10.0), (0.0, 0.0, 10.0)]
RECT_CCW = [(0.0, 0.0), (10.0, 0.0), (10.0, 5.0), (0.0, 5.0)]


def _extents(polygon):
    xs = [p[0] for p in polygon]
    zs = [p[1] for p in polygon]
    return min(xs), max(xs), min(zs), max(zs)


def test_square_with_zero_margin_is_the_square() -> None:
    polygon = build_footprint(SQUARE_3D, margin=0, fallback_width=100, fallback_height=100)
    assert sorted(polygon) == [(0.0, 0.0), (0.0, 10.0), (10.0, 0.0), (10.0, 10.0)]


def test_margin_grows_the_footprint() -> None:
    result = compute_footprint(SQUARE_3D, margin=2, fallback_width=100, fallback_height=100)
    assert result.source == "hull"
    assert result.hull_size == 4
    assert abs(polygon_signed_area(result.polygon)) > 100.0
    for x, z in result.polygon:
        assert x < 0 or x > 10
        assert z < 0 or z > 10


def test_interior_points_do_not_change_the_hull() -> None:
    points = SQUARE_3D + [(5.0, 3.0, 5.0), (2.0, -1.0, 7.0)]
    result = compute_footprint(points, margin=0, fallback_width=1, fallback_height=1)
    assert result.hull_size == 4
    assert sorted(result.polygon) == [(0.0, 0.0), (0.0, 10.0), (10.0, 0.0), (10.0, 10.0)]


@pytest.mark.parametrize(
    "points",
    [
        [],
        [(1.0, 0.0, 1.0)],
        [(0.0, 0.0, 0.0), (1.0, 0.0, 1.0), (2.0, 0.0, 2.0), (3.0, 5.0, 3.0)],
    ],
)
def test_degenerate_input_falls_back_to_rounded_rectangle(points) -> None:
    result = compute_footprint(points, margin=5, fallback_width=40, fallback_height=20)
    assert result.source == "fallback"
    assert result.hull_size == 0
    assert _extents(result.polygon) == pytest.approx((-20.0, 20.0, -10.0, 10.0))


def test_extra_points_alone_form_a_hull() -> None:
    result = compute_footprint(
        [],
        margin=0,
        fallback_width=1,
        fallback_height=1,
        extra_points=[(0.0, 0.0), (4.0, 0.0), (0.0, 3.0)],
    )
    assert result.source == "hull"
    assert abs(polygon_signed_area(result.polygon)) == pytest.approx(6.0)


def test_unknown_offset_mode_is_rejected() -> None:
    with pytest.raises(ValueError):
        compute_footprint(SQUARE_3D, 1, 10, 10, offset_mode="chamfer")


def test_rounded_rectangle_shape() -> None:
    polygon = rounded_rectangle(40, 20)
    assert len(polygon) == 36
    assert _extents(polygon) == pytest.approx((-20.0, 20.0, -10.0, 10.0))
    area = polygon_signed_area(polygon)
    # ccw, slightly less than the sharp rectangle
    assert 0 < area < 800
    assert area > 800 - 4 * 2.0 * 2.0


def test_rounded_rectangle_replaces_bad_sizes() -> None:
    assert _extents(rounded_rectangle(0, -5)) == pytest.approx((-50.0, 50.0, -50.0, 50.0))


def test_convex_hull_is_counter_clockwise() -> None:
    hull = convex_hull([(0, 0), (2, 2), (2, 0), (0, 2), (1, 1), (1, 0)])
    assert len(hull) == 4
    assert polygon_signed_area(hull) == pytest.approx(4.0)
    assert not is_clockwise(hull)


def test_ensure_clockwise() -> None:
    cw = ensure_clockwise(RECT_CCW)
    assert is_clockwise(cw)
    assert cw == list(reversed(RECT_CCW))
    assert ensure_clockwise(cw) == cw


def test_edge_outward_normal() -> None:
    assert edge_outward_normal((0.0, 0.0), (10.0, 0.0), clockwise=False) == (0.0, -1.0)
    assert edge_outward_normal((0.0, 0.0), (10.0, 0.0), clockwise=True) == (0.0, 1.0)
    assert edge_outward_normal((0.0, 0.0), (0.001, 0.0), clockwise=True) == (0.0, 0.0)


@pytest.mark.parametrize("polygon", [RECT_CCW, list(reversed(RECT_CCW))])
def test_miter_offset_keeps_sides_at_distance(polygon) -> None:
    offset = offset_polygon_miter(polygon, 2.0)
    assert _extents(offset) == pytest.approx((-2.0, 12.0, -2.0, 7.0))
    assert np.sign(polygon_signed_area(offset)) == np.sign(polygon_signed_area(polygon))


def test_miter_offset_straight_corner() -> None:
    polygon = [(0.0, 0.0), (5.0, 0.0), (10.0, 0.0), (10.0, 5.0), (0.0, 5.0)]
    offset = offset_polygon_miter(polygon, 1.0)
    assert offset[1] == pytest.approx((5.0, -1.0))


def test_radial_offset_moves_away_from_centroid() -> None:
    offset = offset_polygon_radial([(1.0, 0.0), (0.0, 1.0), (-1.0, 0.0), (0.0, -1.0)], 1.0)
    flat = [v for p in offset for v in p]
    assert flat == pytest.approx([2.0, 0.0, 0.0, 2.0, -2.0, 0.0, 0.0, -2.0])


def test_dedupe_keeps_first_point_per_cell() -> None:
    points = [(0.0, 0.0), (0.001, 0.002), (1.0, 1.0), (1.004, 0.999)]
    assert dedupe_points(points) == [(0.0, 0.0), (1.0, 1.0)]


def test_large_meshes_are_strided() -> None:
    positions = np.zeros((12_000, 3))
    positions[:, 0] = np.arange(12_000)
    ground = sample_ground_points(positions)
    assert len(ground) == 6000
    assert ground[1] == (2.0, 0.0)


def test_world_matrix_is_applied() -> None:
    matrix = [
        [1.0, 0.0, 0.0, 5.0],
        [0.0, 1.0, 0.0, 0.0],
        [0.0, 0.0, 1.0, -3.0],
        [0.0, 0.0, 0.0, 1.0],
    ]
    ground = sample_ground_points([1.0, 7.0, 2.0], world_matrix=matrix)
    assert ground == [(6.0, -1.0)]


@pytest.mark.parametrize("offset", [offset_polygon_radial, offset_polygon_miter])
def test_negative_offsets_are_rejected(offset) -> None:
    square = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]
    with pytest.raises(ValueError):
        offset(square, -1.0)


@pytest.mark.parametrize("mode", ["radial", "miter"])
def test_negative_margin_is_rejected_in_both_modes(mode) -> None:
    with pytest.raises(ValueError):
        compute_footprint(SQUARE_3D, -1.0, 10, 10, offset_mode=mode)


def test_miter_offset_skips_zero_length_edges() -> None:
    polygon = [(0.0, 0.0), (10.0, 0.0), (10.0, 0.0), (10.0, 5.0), (0.0, 5.0)]
    offset = offset_polygon_miter(polygon, 1.0)
    assert _extents(offset) == pytest.approx((-1.0, 11.0, -1.0, 6.0))
