"""
Pytest for the flood-fill contour tracer and its size/shape filters.
"""
from __future__ import annotations
import numpy as np

from cardscan.core.config import merge_cfg
from cardscan.geometry.contours import flood_fill_components, keep_contour, trace_contours

CFG = merge_cfg(None)["contours"]

# ---------- Utilities ---------- #

def _outline(edges: np.ndarray, x0: int, y0: int, x1: int, y1: int) -> np.ndarray:
    edges[y0, x0:x1 + 1] = 255
    edges[y1, x0:x1 + 1] = 255
    edges[y0:y1 + 1, x0] = 255
    edges[y0:y1 + 1, x1] = 255
    return edges

# ---------- Flood fill ---------- #

def test_points_are_x_y():
    edges = np.zeros((10, 10), np.uint8)
    edges[3, 7] = 255
    comps = flood_fill_components(edges)
    assert len(comps) == 1
    assert comps[0].dtype == np.float32
    assert comps[0].tolist() == [[7.0, 3.0]]

def test_two_separate_outlines_are_two_components():
    edges = np.zeros((200, 200), np.uint8)
    _outline(edges, 10, 10, 70, 70)
    _outline(edges, 100, 100, 180, 190)
    comps = flood_fill_components(edges)
    assert len(comps) == 2
    assert sorted(len(c) for c in comps) == [240, 340]

def test_diagonal_pixels_connect():
    edges = np.zeros((50, 50), np.uint8)
    idx = np.arange(5, 45)
    edges[idx, idx] = 255
    comps = flood_fill_components(edges)
    assert len(comps) == 1
    assert len(comps[0]) == 40

def test_every_edge_pixel_lands_in_exactly_one_component():
    rng = np.random.default_rng(5)
    edges = np.where(rng.random((60, 80)) > 0.7, 255, 0).astype(np.uint8)
    comps = flood_fill_components(edges)
    seen = np.concatenate(comps).astype(int)
    assert len(seen) == int((edges > 0).sum())
    assert len({tuple(p) for p in seen.tolist()}) == len(seen)

def test_large_component_does_not_recurse():
    edges = np.full((200, 200), 255, np.uint8)
    comps = flood_fill_components(edges)
    assert len(comps) == 1 and len(comps[0]) == 200 * 200

# ---------- Filters ---------- #

def test_small_component_is_dropped():
    edges = np.zeros((200, 200), np.uint8)
    _outline(edges, 10, 10, 30, 30)  # 80 points
    assert trace_contours(edges, CFG) == []

def test_min_points_scales_with_frame():
    pts = np.zeros((150, 2), np.float32)
    pts[:, 0] = np.linspace(0, 300, 150)
    pts[:, 1] = np.linspace(0, 300, 150)
    assert keep_contour(pts, 300, 300, CFG)          # needs more than 100 points
    assert not keep_contour(pts, 400, 400, CFG)      # needs more than 160 points

def test_narrow_or_flat_component_is_dropped():
    edges = np.zeros((200, 200), np.uint8)
    _outline(edges, 10, 10, 190, 15)   # wide but flat
    _outline(edges, 10, 40, 15, 190)   # tall but narrow
    assert trace_contours(edges, CFG) == []

def test_aspect_filter():
    edges = np.zeros((300, 300), np.uint8)
    _outline(edges, 10, 10, 290, 100)  # 281 x 91, ratio above 2
    assert trace_contours(edges, CFG) == []
    assert len(trace_contours(edges, {**CFG, "aspect_range": (0.5, 4.0)})) == 1

def test_contours_are_sorted_largest_first():
    edges = np.zeros((300, 300), np.uint8)
    _outline(edges, 10, 10, 60, 60)
    _outline(edges, 100, 100, 280, 280)
    found = trace_contours(edges, CFG)
    assert len(found) == 2
    assert len(found[0]) > len(found[1])
    assert found[0][:, 0].min() == 100

def test_empty_edge_map():
    assert trace_contours(np.zeros((0, 0), np.uint8), CFG) == []
