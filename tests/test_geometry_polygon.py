"""
Pytest for polygon helpers: Douglas–Peucker, gift-wrap hull, quad reduction.
"""
from __future__ import annotations
import numpy as np
import pytest

from cardscan.geometry.polygon import (
    contour_perimeter,
    convex_hull,
    douglas_peucker,
    order_corners_by_angle,
    order_ring,
    perimeter,
    polygon_area,
    reduce_to_quad,
    simplify_closed,
)

# ---------- Utilities ---------- #

def _rect_ring(x0=20, y0=30, x1=220, y1=170) -> np.ndarray:
    """Every integer point on the rectangle outline, in walking order."""
    top = [(x, y0) for x in range(x0, x1)]
    right = [(x1, y) for y in range(y0, y1)]
    bottom = [(x, y1) for x in range(x1, x0, -1)]
    left = [(x0, y) for y in range(y1, y0, -1)]
    return np.array(top + right + bottom + left, np.float32)

def _as_set(pts) -> set:
    return {tuple(np.round(p, 3)) for p in np.asarray(pts, np.float64)}

# ---------- Measures ---------- #

def test_area_and_perimeter_of_rectangle():
    rect = np.array([(0, 0), (30, 0), (30, 20), (0, 20)], np.float32)
    assert polygon_area(rect) == pytest.approx(600.0)
    assert perimeter(rect) == pytest.approx(100.0)
    assert perimeter(rect, closed=False) == pytest.approx(80.0)

def test_order_corners_by_angle_from_shuffled():
    pts = np.array([[100, 50], [400, 60], [420, 500], [90, 480]], dtype=np.float32)
    np.random.default_rng(0).shuffle(pts)
    tl, tr, br, bl = order_corners_by_angle(pts)
    assert tuple(tl) == (100, 50)
    assert tuple(tr) == (400, 60)
    assert tuple(br) == (420, 500)
    assert tuple(bl) == (90, 480)

# ---------- Douglas–Peucker ---------- #

def test_simplifying_a_convex_quad_is_idempotent():
    quad = np.array([(0, 0), (100, 5), (110, 90), (-5, 80)], np.float32)
    # every interior vertex sits more than 50px off its chord
    for eps in (0.5, 1.0, 10.0, 30.0):
        out = douglas_peucker(quad, eps)
        assert np.allclose(out, quad)

def test_collinear_points_collapse_to_endpoints():
    line = np.array([(x, 2 * x) for x in range(50)], np.float32)
    out = douglas_peucker(line, 0.5)
    assert out.shape == (2, 2)
    assert np.allclose(out, [line[0], line[-1]])

def test_iterative_simplification_handles_long_zigzag():
    # deep enough that a naive recursive split would be very deep
    n = 5000
    xs = np.arange(n, dtype=np.float32)
    ys = np.where(np.arange(n) % 2 == 0, 0.0, 3.0).astype(np.float32)
    out = douglas_peucker(np.stack([xs, ys], axis=1), 1.0)
    assert len(out) == n

def test_closed_ring_simplifies_to_four_corners():
    ring = order_ring(_rect_ring())
    eps = 0.02 * contour_perimeter(ring)
    out = simplify_closed(ring, eps)
    assert len(out) == 4
    assert _as_set(out) == _as_set([(20, 30), (220, 30), (220, 170), (20, 170)])

def test_contour_perimeter_ignores_point_order():
    ring = _rect_ring()
    shuffled = ring.copy()
    np.random.default_rng(3).shuffle(shuffled)
    assert contour_perimeter(shuffled) == pytest.approx(contour_perimeter(ring))
    assert contour_perimeter(ring) == pytest.approx(2 * (200 + 140))

# ---------- Convex hull ---------- #

def test_hull_drops_interior_and_collinear_points():
    pts = np.array([(0, 0), (5, 0), (10, 0), (10, 10), (0, 10), (5, 5), (3, 7), (0, 5)], np.float32)
    hull = convex_hull(pts)
    assert _as_set(hull) == _as_set([(0, 0), (10, 0), (10, 10), (0, 10)])

def test_hull_of_collinear_points_is_segment():
    pts = np.array([(x, x) for x in range(10)], np.float32)
    hull = convex_hull(pts)
    assert _as_set(hull) == _as_set([(0, 0), (9, 9)])

def test_hull_handles_duplicates():
    pts = np.array([(0, 0), (0, 0), (4, 0), (4, 0), (2, 3)], np.float32)
    assert len(convex_hull(pts)) == 3

# ---------- Rectangle reduction ---------- #

def test_reduce_always_returns_four_points():
    rng = np.random.default_rng(11)
    for n in range(4, 60, 3):
        pts = rng.uniform(0, 500, size=(n, 2)).astype(np.float32)
        out = reduce_to_quad(pts)
        assert out.shape == (4, 2)
        assert np.isfinite(out).all()

def test_reduce_degenerate_inputs_still_give_four():
    line = np.array([(x, 3.0) for x in range(8)], np.float32)
    assert reduce_to_quad(line).shape == (4, 2)
    same = np.array([(5, 5)] * 6, np.float32)
    assert reduce_to_quad(same).shape == (4, 2)

def test_reduce_uses_four_point_hull_directly():
    pts = np.array([(0, 0), (100, 0), (100, 140), (0, 140), (50, 70), (20, 30)], np.float32)
    out = reduce_to_quad(pts)
    assert np.allclose(out, [(0, 0), (100, 0), (100, 140), (0, 140)])

def test_reduce_picks_farthest_point_per_quadrant():
    # cut-corner box with the top-left corner pulled out; hull has 7 points
    pts = np.array([(10, 0), (90, 0), (100, 10), (100, 130), (90, 140), (10, 140), (0, 130), (0, 10),
                    (-3, -3)], np.float32)
    assert len(convex_hull(pts)) == 7
    out = reduce_to_quad(pts)
    assert np.allclose(out, [(-3, -3), (90, 0), (90, 140), (10, 140)])

def test_empty_quadrant_takes_neighbor_midpoint():
    # triangle hull; the apex sits straight below the centroid, leaving bottom-right empty
    pts = np.array([(0, 0), (10, 0), (5, 10), (5, 3)], np.float32)
    out = reduce_to_quad(pts)
    assert np.allclose(out[0], (0, 0))
    assert np.allclose(out[1], (10, 0))
    assert np.allclose(out[2], (7.5, 5.0))
    assert np.allclose(out[3], (5, 10))

def test_reduce_rejects_empty_input():
    with pytest.raises(ValueError):
        reduce_to_quad(np.empty((0, 2), np.float32))
