# cardscan/geometry/rectify.py
from __future__ import annotations
from typing import Tuple, Optional
import cv2
import numpy as np

# Card aspect (W/H). 63×88 mm ≈ 0.716; 800×1118 keeps that.
CARD_ASPECT = 0.716
_DEFAULT_SIZE = (800, 1118)


def compute_target_size(
    *,
    width: Optional[int] = None,
    height: Optional[int] = None,
    aspect: float = CARD_ASPECT,
) -> Tuple[int, int]:
    """
    Pick (W, H) matching the requested aspect (W/H).
    Provide either side and the other is derived; with neither, 800×1118.
    """
    if width is None and height is None:
        return _DEFAULT_SIZE
    if width is not None and height is not None:
        return int(width), int(height)
    if width is not None:
        return int(width), max(1, int(round(float(width) / max(1e-6, aspect))))
    return max(1, int(round(float(height) * aspect))), int(height)


def _dest_grid(dst_w: int, dst_h: int) -> Tuple[np.ndarray, np.ndarray]:
    dy, dx = np.mgrid[0:dst_h, 0:dst_w]
    return dx.astype(np.float64), dy.astype(np.float64)


def bilinear_source_coords(corners: np.ndarray, dst_w: int, dst_h: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Source (x, y) for every destination pixel by blending the four corners:
    src = C0(1-u)(1-v) + C1·u(1-v) + C2·uv + C3(1-u)v with u = dx/W, v = dy/H.

    Exact for parallelograms; under strong perspective it drifts from the true
    projective mapping (see homography_source_coords).
    """
    c = np.asarray(corners, np.float64).reshape(4, 2)
    dx, dy = _dest_grid(dst_w, dst_h)
    u = dx / float(dst_w)
    v = dy / float(dst_h)
    w0 = (1 - u) * (1 - v)
    w1 = u * (1 - v)
    w2 = u * v
    w3 = (1 - u) * v
    sx = c[0, 0] * w0 + c[1, 0] * w1 + c[2, 0] * w2 + c[3, 0] * w3
    sy = c[0, 1] * w0 + c[1, 1] * w1 + c[2, 1] * w2 + c[3, 1] * w3
    return sx, sy


def homography_source_coords(corners: np.ndarray, dst_w: int, dst_h: int) -> Tuple[np.ndarray, np.ndarray]:
    """Source (x, y) per destination pixel through the 8-parameter perspective matrix."""
    src = np.asarray(corners, np.float32).reshape(4, 2)
    dst = np.array([[0, 0], [dst_w, 0], [dst_w, dst_h], [0, dst_h]], dtype=np.float32)
    # destination -> source, so we can pull pixels
    M = cv2.getPerspectiveTransform(dst, src).astype(np.float64)
    dx, dy = _dest_grid(dst_w, dst_h)
    X = M[0, 0] * dx + M[0, 1] * dy + M[0, 2]
    Y = M[1, 0] * dx + M[1, 1] * dy + M[1, 2]
    Z = M[2, 0] * dx + M[2, 1] * dy + M[2, 2]
    Z = np.where(np.abs(Z) < 1e-12, 1e-12, Z)
    return X / Z, Y / Z


def sample_nearest(image: np.ndarray, sx: np.ndarray, sy: np.ndarray) -> np.ndarray:
    """Nearest-pixel pull. Samples falling outside the source stay zero."""
    img = np.asarray(image)
    H, W = img.shape[:2]
    out = np.zeros(sx.shape + img.shape[2:], dtype=img.dtype)
    ix = np.rint(sx).astype(np.int64)
    iy = np.rint(sy).astype(np.int64)
    inside = (ix >= 0) & (ix < W) & (iy >= 0) & (iy < H)
    out[inside] = img[iy[inside], ix[inside]]
    return out


def warp_card(
    image: np.ndarray,
    corners: np.ndarray,
    *,
    width: Optional[int] = None,
    height: Optional[int] = None,
    method: str = "bilinear",
) -> np.ndarray:
    """
    Map the quad (TL, TR, BR, BL) onto a fresh (H, W, C) canonical card image.

    method: "bilinear" blends corners directly (fast, approximate);
            "homography" solves the true perspective transform.
    """
    dst_w, dst_h = compute_target_size(width=width, height=height)
    if method == "bilinear":
        sx, sy = bilinear_source_coords(corners, dst_w, dst_h)
    elif method == "homography":
        sx, sy = homography_source_coords(corners, dst_w, dst_h)
    else:
        raise ValueError(f"Unknown rectify method: {method!r}")
    return sample_nearest(image, sx, sy)
