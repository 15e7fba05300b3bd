# cardscan/geometry/polygon.py
from __future__ import annotations
from typing import Tuple
import math
import numpy as np

_EPS = 1e-9


# ----------------------------------------------------------------------------- #
# Measures                                                                       #
# ----------------------------------------------------------------------------- #

def polygon_area(poly: np.ndarray) -> float:
    """Shoelace area (absolute)."""
    p = np.asarray(poly, np.float64).reshape(-1, 2)
    if len(p) < 3:
        return 0.0
    x, y = p[:, 0], p[:, 1]
    return 0.5 * abs(float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))))


def perimeter(poly: np.ndarray, closed: bool = True) -> float:
    p = np.asarray(poly, np.float64).reshape(-1, 2)
    if len(p) < 2:
        return 0.0
    seg = np.diff(np.vstack([p, p[:1]]) if closed else p, axis=0)
    return float(np.hypot(seg[:, 0], seg[:, 1]).sum())


def bounding_box(pts: np.ndarray) -> Tuple[float, float, float, float]:
    p = np.asarray(pts, np.float64).reshape(-1, 2)
    return float(p[:, 0].min()), float(p[:, 1].min()), float(p[:, 0].max()), float(p[:, 1].max())


def order_corners_by_angle(pts: np.ndarray) -> np.ndarray:
    """
    Sort points by angle about their centroid, starting from -pi. For an upright
    card this yields TL, TR, BR, BL; an upside-down card gets the same labels on
    the opposite physical corners.
    """
    p = np.asarray(pts, np.float32).reshape(-1, 2)
    c = p.mean(axis=0)
    ang = np.arctan2(p[:, 1] - c[1], p[:, 0] - c[0])
    return p[np.argsort(ang, kind="stable")]


def order_ring(points: np.ndarray) -> np.ndarray:
    """Put a flood-fill point set into a closed sequence by angle about its centroid."""
    return order_corners_by_angle(points)


# ----------------------------------------------------------------------------- #
# Douglas–Peucker                                                                #
# ----------------------------------------------------------------------------- #

def _distances_to_line(pts: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    d = b - a
    norm = math.hypot(float(d[0]), float(d[1]))
    if norm < _EPS:
        return np.hypot(pts[:, 0] - a[0], pts[:, 1] - a[1])
    return np.abs(d[0] * (pts[:, 1] - a[1]) - d[1] * (pts[:, 0] - a[0])) / norm


def douglas_peucker(points: np.ndarray, epsilon: float) -> np.ndarray:
    """
    Simplify an open polyline. Works off an explicit stack of (start, end)
    index ranges so deep contours cannot exhaust the call stack.
    """
    pts = np.asarray(points, np.float64).reshape(-1, 2)
    n = len(pts)
    if n < 3:
        return pts.astype(np.float32)
    keep = np.zeros(n, bool)
    keep[0] = keep[-1] = True
    stack = [(0, n - 1)]
    while stack:
        start, end = stack.pop()
        if end - start < 2:
            continue
        d = _distances_to_line(pts[start + 1:end], pts[start], pts[end])
        i = int(np.argmax(d))
        if d[i] > epsilon:
            split = start + 1 + i
            keep[split] = True
            stack.append((start, split))
            stack.append((split, end))
    return pts[keep].astype(np.float32)


def simplify_closed(ring: np.ndarray, epsilon: float) -> np.ndarray:
    """
    Douglas–Peucker on a closed ring: split at the point farthest from the
    centroid and the point farthest from that one, simplify both halves.
    """
    r = np.asarray(ring, np.float64).reshape(-1, 2)
    if len(r) < 4:
        return r.astype(np.float32)
    c = r.mean(axis=0)
    a = int(np.argmax(((r - c) ** 2).sum(axis=1)))
    r = np.roll(r, -a, axis=0)
    b = int(np.argmax(((r - r[0]) ** 2).sum(axis=1)))
    if b == 0:
        return r[:1].astype(np.float32)
    first = douglas_peucker(r[:b + 1], epsilon)
    second = douglas_peucker(np.vstack([r[b:], r[:1]]), epsilon)
    return np.vstack([first[:-1], second[:-1]]).astype(np.float32)


# ----------------------------------------------------------------------------- #
# Convex hull (gift wrapping) + quadrant reduction                               #
# ----------------------------------------------------------------------------- #

def _next_hull_point(pts: np.ndarray, cur: int) -> int:
    d = pts - pts[cur]
    dist = d[:, 0] ** 2 + d[:, 1] ** 2
    cand = (cur + 1) % len(pts)
    while True:
        c = d[cand]
        cross = c[0] * d[:, 1] - c[1] * d[:, 0]
        j = int(np.argmin(cross))
        if cross[j] < -_EPS:
            cand = j
            continue
        collinear = np.where(np.abs(cross) <= _EPS, dist, -1.0)
        far = int(np.argmax(collinear))
        return far if collinear[far] > dist[cand] else cand


def convex_hull(points: np.ndarray) -> np.ndarray:
    """Gift wrapping, O(n·h). Collinear boundary points are dropped."""
    pts = np.unique(np.asarray(points, np.float64).reshape(-1, 2), axis=0)
    n = len(pts)
    if n < 3:
        return pts.astype(np.float32)
    # np.unique sorts lexicographically, so pts[0] is the leftmost (then topmost) point
    hull = [0]
    cur = 0
    for _ in range(n):
        nxt = _next_hull_point(pts, cur)
        if nxt == 0:
            break
        hull.append(nxt)
        cur = nxt
    return pts[hull].astype(np.float32)


def contour_perimeter(points: np.ndarray) -> float:
    """Perimeter of the hull; independent of the order the points were collected in."""
    return perimeter(convex_hull(points))


def reduce_to_quad(points: np.ndarray) -> np.ndarray:
    """
    Exactly four corners for any non-empty point set, in TL, TR, BR, BL order.

    A 4-point hull is used as is. Otherwise hull points are split into angular
    quadrants about the centroid and the farthest point of each quadrant wins.
    An empty quadrant takes the midpoint of its two neighbors, or the matching
    bounding-box corner when a neighbor is empty too.
    """
    pts = np.asarray(points, np.float64).reshape(-1, 2)
    if len(pts) == 0:
        raise ValueError("reduce_to_quad needs at least one point")
    hull = convex_hull(pts).astype(np.float64)
    if len(hull) == 4:
        return order_corners_by_angle(hull)

    c = hull.mean(axis=0)
    d = hull - c
    ang = np.arctan2(d[:, 1], d[:, 0])
    dist = np.hypot(d[:, 0], d[:, 1])
    quadrant = np.select([ang < -math.pi / 2, ang < 0, ang < math.pi / 2], [0, 1, 2], default=3)

    picked = [None, None, None, None]
    for q in range(4):
        idx = np.flatnonzero(quadrant == q)
        if idx.size:
            picked[q] = hull[idx[np.argmax(dist[idx])]]

    x0, y0, x1, y1 = bounding_box(pts)
    box = [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]
    out = np.zeros((4, 2), np.float64)
    for q in range(4):
        if picked[q] is not None:
            out[q] = picked[q]
            continue
        prev, nxt = picked[(q - 1) % 4], picked[(q + 1) % 4]
        out[q] = (prev + nxt) / 2.0 if prev is not None and nxt is not None else box[q]
    return out.astype(np.float32)
