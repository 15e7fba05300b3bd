# cardscan/geometry/edges.py
from __future__ import annotations
from typing import Tuple
import numpy as np


def sobel_gradients(gray: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    3×3 Sobel Gx, Gy. Only interior pixels get a value; the outer ring has no
    full neighborhood and stays 0.
    """
    g = np.asarray(gray, dtype=np.float32)
    H, W = g.shape[:2]
    gx = np.zeros((H, W), np.float32)
    gy = np.zeros((H, W), np.float32)
    if H < 3 or W < 3:
        return gx, gy
    tl, tc, tr = g[:-2, :-2], g[:-2, 1:-1], g[:-2, 2:]
    ml, mr = g[1:-1, :-2], g[1:-1, 2:]
    bl, bc, br = g[2:, :-2], g[2:, 1:-1], g[2:, 2:]
    gx[1:-1, 1:-1] = (tr + 2.0 * mr + br) - (tl + 2.0 * ml + bl)
    gy[1:-1, 1:-1] = (bl + 2.0 * bc + br) - (tl + 2.0 * tc + tr)
    return gx, gy


def gradient_magnitude(gray: np.ndarray) -> np.ndarray:
    gx, gy = sobel_gradients(gray)
    return np.sqrt(gx * gx + gy * gy)


def _any_neighbor(mask: np.ndarray) -> np.ndarray:
    """True where any of the 8 neighbors is set."""
    H, W = mask.shape
    padded = np.zeros((H + 2, W + 2), bool)
    padded[1:-1, 1:-1] = mask
    out = np.zeros((H, W), bool)
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            if dx == 0 and dy == 0:
                continue
            out |= padded[1 + dy:1 + dy + H, 1 + dx:1 + dx + W]
    return out


def detect_edges(blurred: np.ndarray, low: float = 30.0, high: float = 80.0) -> np.ndarray:
    """
    Binary (0/255) edge map. Strong pixels (> high) are edges; weak pixels
    (> low, <= high) become edges only if an 8-neighbor is strong. Single pass,
    no chained tracing.
    """
    mag = gradient_magnitude(blurred)
    H, W = mag.shape
    edges = np.zeros((H, W), np.uint8)
    if H < 3 or W < 3:
        return edges
    interior = np.zeros((H, W), bool)
    interior[1:-1, 1:-1] = True
    strong = (mag > high) & interior
    weak = (mag > low) & (mag <= high) & interior
    keep = strong | (weak & _any_neighbor(strong))
    edges[keep] = 255
    return edges
