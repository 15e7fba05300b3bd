from __future__ import annotations
from dataclasses import dataclass
import numpy as np


@dataclass
class RoiOut:
    name: str
    xyxy_px: tuple[int, int, int, int]
    crop: np.ndarray


def _safe_crop(img, xyxy):
    x0, y0, x1, y1 = xyxy
    h, w = img.shape[:2]
    x0 = max(0, min(x0, w)); x1 = max(0, min(x1, w))
    y0 = max(0, min(y0, h)); y1 = max(0, min(y1, h))
    if x1 <= x0 or y1 <= y0:
        return None
    return img[y0:y1, x0:x1].copy()


def extract_title_roi(rectified: np.ndarray, top_fraction: float = 0.12) -> RoiOut:
    """Top band of the rectified card, where the name line sits."""
    h, w = rectified.shape[:2]
    y1 = max(1, int(round(top_fraction * h)))
    xyxy = (0, 0, w, y1)
    return RoiOut(name="title", xyxy_px=xyxy, crop=_safe_crop(rectified, xyxy))


def extract_guide_box_roi(frame: np.ndarray, width_ratio: float = 0.60, height_ratio: float = 0.30) -> RoiOut:
    """Centred box of the raw frame the scanner overlay asks the user to fill with the title."""
    h, w = frame.shape[:2]
    bw, bh = int(w * width_ratio), int(h * height_ratio)
    x0, y0 = (w - bw) // 2, (h - bh) // 2
    xyxy = (x0, y0, x0 + bw, y0 + bh)
    return RoiOut(name="guide_box", xyxy_px=xyxy, crop=_safe_crop(frame, xyxy))
