# cardscan/geometry/detect.py
from __future__ import annotations
from typing import Dict, List, Optional, Tuple
import math
import cv2
import numpy as np

from cardscan.core.config import DEFAULT_CFG, merge_cfg
from cardscan.core.contracts import Candidate, Corners
from cardscan.core.events import EventSink, PipelineEvent, null_sink, resolve_sink
from cardscan.geometry.contours import trace_contours
from cardscan.geometry.edges import detect_edges
from cardscan.geometry.polygon import (
    bounding_box,
    contour_perimeter,
    order_corners_by_angle,
    order_ring,
    polygon_area,
    reduce_to_quad,
    simplify_closed,
)
from cardscan.geometry.preprocess import preprocess


# ----------------------------------------------------------------------------- #
# Scoring                                                                        #
# ----------------------------------------------------------------------------- #

def convexity_score(poly: np.ndarray) -> float:
    """
    Share of turns (consecutive edge cross products) agreeing with the dominant
    turn direction, minus 0.1 per vertex beyond four.
    """
    p = np.asarray(poly, np.float64).reshape(-1, 2)
    n = len(p)
    if n < 3:
        return 0.0
    e1 = np.roll(p, -1, axis=0) - p
    e2 = np.roll(p, -2, axis=0) - np.roll(p, -1, axis=0)
    cross = e1[:, 0] * e2[:, 1] - e1[:, 1] * e2[:, 0]
    pos = int((cross > 0).sum())
    neg = int((cross < 0).sum())
    frac = max(pos, neg) / float(n)
    return float(np.clip(frac - 0.1 * max(0, n - 4), 0.0, 1.0))


def score_components(poly: np.ndarray, frame_w: int, frame_h: int, scfg: Optional[Dict] = None) -> Dict[str, float]:
    """Per-term scores in [0, 1]. Empty dict means rejected on size."""
    scfg = {**DEFAULT_CFG["score"], **(scfg or {})}
    p = np.asarray(poly, np.float64).reshape(-1, 2)
    n = len(p)
    frame_area = float(frame_w * frame_h)
    if n < 3 or frame_area <= 0:
        return {}

    x0, y0, x1, y1 = bounding_box(p)
    bw, bh = x1 - x0, y1 - y0
    bbox_area = bw * bh
    size_ratio = bbox_area / frame_area
    if size_ratio < float(scfg["min_size_ratio"]):
        return {}

    target = float(scfg["aspect_target"])
    a_min, a_max = scfg["aspect_range"]
    aspect = 0.0
    if bh > 0:
        ratio = bw / bh
        if a_min <= ratio <= a_max:
            aspect = max(0.3, 1.0 - 0.5 * abs(ratio - target) / target)

    return {
        "size": min(1.0, size_ratio),
        "convexity": convexity_score(p),
        "quad": 1.0 if n <= 6 else max(0.0, 1.0 - 0.1 * (n - 6)),
        "aspect": aspect,
        "fill": min(1.2 * polygon_area(p) / bbox_area, 1.0) if bbox_area > 0 else 0.0,
    }


def score_polygon(poly: np.ndarray, frame_w: int, frame_h: int, scfg: Optional[Dict] = None) -> float:
    """Weighted rectangularity score in [0, 1]; 0 for polygons under the size floor."""
    scfg = {**DEFAULT_CFG["score"], **(scfg or {})}
    parts = score_components(poly, frame_w, frame_h, scfg)
    if not parts:
        return 0.0
    weights = scfg["weights"]
    total = sum(float(weights[k]) * v for k, v in parts.items())
    return float(np.clip(total, 0.0, 1.0))


# ----------------------------------------------------------------------------- #
# Candidate search                                                               #
# ----------------------------------------------------------------------------- #

def contour_candidates(contour: np.ndarray, frame_w: int, frame_h: int, cfg: Dict) -> List[Candidate]:
    """Simplify one contour at every epsilon and score each usable result."""
    pcfg, scfg = cfg["polygon"], cfg["score"]
    ring = order_ring(contour)
    perim = contour_perimeter(contour)
    if perim <= 0:
        return []
    out: List[Candidate] = []
    for frac in pcfg["epsilons"]:
        eps = float(frac) * perim
        poly = simplify_closed(ring, eps)
        n = len(poly)
        if n < int(pcfg["min_vertices"]) or n > int(pcfg["max_vertices"]):
            continue
        score = score_polygon(poly, frame_w, frame_h, scfg)
        quad = order_corners_by_angle(poly) if n == 4 else reduce_to_quad(poly)
        out.append(Candidate(polygon=quad, score=score, area=polygon_area(quad), epsilon=eps, vertices=n))
    return out


def find_best_candidate(contours: List[np.ndarray], frame_w: int, frame_h: int,
                        cfg: Optional[Dict] = None,
                        sink: EventSink = null_sink) -> Tuple[Optional[Candidate], List[Candidate]]:
    """
    Walk contours in order and epsilons ascending; a candidate replaces the
    current best only with a strictly higher score, so ties keep the first.
    """
    cfg = merge_cfg(cfg)
    scfg = cfg["score"]
    min_area = float(scfg["min_area_ratio"]) * frame_w * frame_h
    best: Optional[Candidate] = None
    best_score = float(scfg.get("min_score", 0.0))
    generated: List[Candidate] = []
    for ci, contour in enumerate(contours):
        for cand in contour_candidates(contour, frame_w, frame_h, cfg):
            cand.contour = ci
            generated.append(cand)
            if cand.area > min_area and cand.score > best_score:
                best, best_score = cand, cand.score
                sink(PipelineEvent("candidates", "new best", {
                    "contour": ci, "vertices": cand.vertices, "eps": cand.epsilon,
                    "score": cand.score, "area": cand.area}))
    return best, generated


# ----------------------------------------------------------------------------- #
# Corner refinement                                                              #
# ----------------------------------------------------------------------------- #

def _intersect(l1: Tuple[np.ndarray, np.ndarray], l2: Tuple[np.ndarray, np.ndarray]) -> Optional[np.ndarray]:
    (p, r), (q, s) = l1, l2
    denom = r[0] * s[1] - r[1] * s[0]
    if abs(denom) < 1e-9:
        return None
    t = ((q[0] - p[0]) * s[1] - (q[1] - p[1]) * s[0]) / denom
    return p + t * r


def _fit_side(a: np.ndarray, b: np.ndarray, pts: np.ndarray, rcfg: Dict) -> Tuple[np.ndarray, np.ndarray]:
    """Least-squares line through contour points hugging side a→b; falls back to a→b itself."""
    d = b - a
    length = float(math.hypot(d[0], d[1]))
    if length < 1e-6:
        return a, d
    u = d / length
    rel = pts - a
    along = rel @ u
    across = np.abs(rel[:, 0] * u[1] - rel[:, 1] * u[0])
    band = max(float(rcfg["band_px"]), float(rcfg["band_ratio"]) * length)
    trim = float(rcfg["end_trim"]) * length
    sel = pts[(across <= band) & (along >= trim) & (along <= length - trim)]
    if len(sel) < int(rcfg["min_points"]):
        return a, d
    vx, vy, x0, y0 = cv2.fitLine(sel.astype(np.float32).reshape(-1, 1, 2), cv2.DIST_L2, 0, 0.01, 0.01).ravel()
    return np.array([x0, y0], np.float64), np.array([vx, vy], np.float64)


def refine_corners(quad: np.ndarray, contour: np.ndarray, frame_w: int, frame_h: int,
                   cfg: Optional[Dict] = None) -> np.ndarray:
    """
    Snap the quad onto the contour: fit a line to each side's supporting points
    and intersect neighbors. Thick (unthinned) edge bands and rounded corners
    otherwise pull corners outward.
    """
    rcfg = merge_cfg(cfg)["refine"]
    q = np.asarray(quad, np.float64).reshape(4, 2)
    pts = np.asarray(contour, np.float64).reshape(-1, 2)
    sides = [_fit_side(q[i], q[(i + 1) % 4], pts, rcfg) for i in range(4)]
    shortest = min(float(np.linalg.norm(q[(i + 1) % 4] - q[i])) for i in range(4))
    max_shift = float(rcfg["max_shift"]) * shortest
    out = q.copy()
    for i in range(4):
        # corner i joins side i-1 (ending at i) and side i (starting at i)
        p = _intersect(sides[(i - 1) % 4], sides[i])
        if p is not None and float(np.linalg.norm(p - q[i])) <= max_shift:
            out[i] = p
    out[:, 0] = np.clip(out[:, 0], 0, max(0, frame_w - 1))
    out[:, 1] = np.clip(out[:, 1], 0, max(0, frame_h - 1))
    return order_corners_by_angle(out.astype(np.float32))


# ----------------------------------------------------------------------------- #
# Entry point                                                                    #
# ----------------------------------------------------------------------------- #

def select_corners(contours: List[np.ndarray], frame_w: int, frame_h: int,
                   cfg: Optional[Dict] = None,
                   sink: EventSink = null_sink) -> Tuple[Optional[Corners], Optional[Candidate], List[Candidate]]:
    """Best candidate over the contours, refit onto its own contour, as Corners."""
    cfg = merge_cfg(cfg)
    best, generated = find_best_candidate(contours, frame_w, frame_h, cfg, sink)
    sink(PipelineEvent("candidates", "scored", {"generated": len(generated),
                                                "best": best.score if best else 0.0}))
    if best is None:
        return None, None, generated
    pts = best.polygon
    if cfg["refine"].get("enabled", True):
        # the winner's own contour supports the refit
        pts = refine_corners(pts, contours[best.contour], frame_w, frame_h, cfg)
        sink(PipelineEvent("refine", "corners refit", {"shift": float(np.abs(pts - best.polygon).max())}))
    return Corners(pts=np.asarray(pts, np.float32)), best, generated


def detect(frame: np.ndarray, cfg: Optional[Dict] = None, sink: Optional[EventSink] = None) -> Optional[Corners]:
    """Card corners in an RGBA frame, or None when nothing card-like is found."""
    cfg = merge_cfg(cfg)
    sink = resolve_sink(sink, cfg)
    img = np.asarray(frame)
    if img.ndim < 2 or img.shape[0] == 0 or img.shape[1] == 0:
        return None
    H, W = img.shape[:2]
    _, blurred = preprocess(img, float(cfg["blur"]["sigma"]))
    edges = detect_edges(blurred, float(cfg["edges"]["low"]), float(cfg["edges"]["high"]))
    contours = trace_contours(edges, cfg["contours"])
    sink(PipelineEvent("contours", "traced", {"kept": len(contours)}))
    if not contours:
        return None
    corners, _, _ = select_corners(contours, W, H, cfg, sink)
    return corners
