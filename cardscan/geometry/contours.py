# cardscan/geometry/contours.py
from __future__ import annotations
from typing import Dict, List, Optional
import numpy as np

_NEIGHBORS = ((-1, -1), (0, -1), (1, -1), (-1, 0), (1, 0), (-1, 1), (0, 1), (1, 1))


def flood_fill_components(edges: np.ndarray) -> List[np.ndarray]:
    """
    8-connected components of the edge map, as (N, 2) float32 arrays of (x, y).

    Iterative fill with an explicit stack; the visited mask lives only for the
    duration of this call. Point order follows the traversal and is not a walk
    along the boundary.
    """
    e = np.asarray(edges)
    H, W = e.shape[:2]
    on = e > 0
    visited = np.zeros((H, W), bool)
    comps: List[np.ndarray] = []
    ys, xs = np.nonzero(on)
    for sy, sx in zip(ys.tolist(), xs.tolist()):
        if visited[sy, sx]:
            continue
        visited[sy, sx] = True
        stack = [(sx, sy)]
        pts = []
        while stack:
            x, y = stack.pop()
            pts.append((x, y))
            for dx, dy in _NEIGHBORS:
                nx, ny = x + dx, y + dy
                if 0 <= nx < W and 0 <= ny < H and on[ny, nx] and not visited[ny, nx]:
                    visited[ny, nx] = True
                    stack.append((nx, ny))
        comps.append(np.asarray(pts, dtype=np.float32))
    return comps


def keep_contour(pts: np.ndarray, frame_w: int, frame_h: int, cfg: Dict) -> bool:
    min_pts = max(float(cfg.get("min_points", 100)), float(cfg.get("min_points_ratio", 0.001)) * frame_w * frame_h)
    if len(pts) <= min_pts:
        return False
    bw = float(pts[:, 0].max() - pts[:, 0].min() + 1)
    bh = float(pts[:, 1].max() - pts[:, 1].min() + 1)
    ext = float(cfg.get("min_extent_ratio", 0.10))
    if bw <= ext * frame_w or bh <= ext * frame_h:
        return False
    a_min, a_max = cfg.get("aspect_range", (0.5, 2.0))
    return a_min <= bw / bh <= a_max


def trace_contours(edges: np.ndarray, cfg: Optional[Dict] = None) -> List[np.ndarray]:
    """
    Candidate contours from an edge map: components big enough, wide and tall
    enough, and roughly card shaped, largest first.
    """
    cfg = cfg or {}
    H, W = np.asarray(edges).shape[:2]
    if H == 0 or W == 0:
        return []
    kept = [c for c in flood_fill_components(edges) if keep_contour(c, W, H, cfg)]
    kept.sort(key=len, reverse=True)
    return kept
