"""
Simple I/O helpers: read images as RGBA and validate raw frame buffers.
"""

from __future__ import annotations
import cv2
import numpy as np

from cardscan.core.contracts import FrameShapeError


def load_image(path: str) -> np.ndarray:
    """
    Load an image from disk as RGBA uint8 (H, W, 4).
    Raises FileNotFoundError if not found.
    """
    img = cv2.imread(path, cv2.IMREAD_COLOR)
    if img is None:
        raise FileNotFoundError(f"Could not read image at: {path}")
    return frame_from_bgr(img)


def frame_from_bgr(bgr: np.ndarray) -> np.ndarray:
    """OpenCV BGR (or grayscale) image -> RGBA."""
    if bgr.ndim == 2:
        return cv2.cvtColor(bgr, cv2.COLOR_GRAY2RGBA)
    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGBA)


def save_rgba(path: str, rgba: np.ndarray) -> bool:
    return bool(cv2.imwrite(path, cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA)))


def as_rgba(buffer, width: int, height: int) -> np.ndarray:
    """
    View a camera buffer (flat bytes/array or an (H, W, 4) array) as (H, W, 4) uint8.

    A buffer whose size disagrees with width×height×4 is a caller bug and raises
    FrameShapeError. Zero-sized frames come back as empty arrays.
    """
    width, height = int(width), int(height)
    if isinstance(buffer, np.ndarray):
        arr = buffer
    else:
        arr = np.frombuffer(bytes(buffer), dtype=np.uint8)
    if arr.ndim == 3:
        if arr.shape != (height, width, 4):
            raise FrameShapeError(f"Frame shape {arr.shape} does not match declared {width}x{height} RGBA")
        return arr.astype(np.uint8, copy=False)
    expected = max(0, width) * max(0, height) * 4
    if arr.size != expected:
        raise FrameShapeError(f"Buffer holds {arr.size} samples, expected {expected} for {width}x{height} RGBA")
    if width <= 0 or height <= 0:
        return np.zeros((max(0, height), max(0, width), 4), np.uint8)
    return arr.astype(np.uint8, copy=False).reshape(height, width, 4)
