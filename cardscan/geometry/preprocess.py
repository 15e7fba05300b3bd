# cardscan/geometry/preprocess.py
from __future__ import annotations
import math
import numpy as np

# ITU-R 601 luma weights
_LUMA = np.array([0.299, 0.587, 0.114], dtype=np.float32)


def to_grayscale(rgba: np.ndarray) -> np.ndarray:
    """RGBA (or RGB) uint8 image -> float32 intensity, same height/width. Alpha is ignored."""
    img = np.asarray(rgba)
    if img.ndim == 2:
        return img.astype(np.float32)
    rgb = img[..., :3].astype(np.float32)
    return rgb @ _LUMA


def gaussian_kernel_1d(sigma: float) -> np.ndarray:
    """Unnormalized 1-D Gaussian with radius ceil(3*sigma)."""
    radius = int(math.ceil(3.0 * sigma))
    dx = np.arange(-radius, radius + 1, dtype=np.float64)
    return np.exp(-(dx * dx) / (2.0 * sigma * sigma))


def _convolve_axis(img: np.ndarray, kernel: np.ndarray, axis: int) -> np.ndarray:
    """
    Convolve along one axis, dividing by the sum of kernel weights that actually
    landed inside the image. Near the border the kernel is truncated and
    renormalized rather than zero-padded.
    """
    radius = len(kernel) // 2
    n = img.shape[axis]
    acc = np.zeros_like(img, dtype=np.float64)
    wsum = np.zeros(n, dtype=np.float64)
    for i, w in enumerate(kernel):
        off = i - radius
        lo, hi = max(0, -off), min(n, n - off)
        if hi <= lo:
            continue
        if axis == 0:
            acc[lo:hi, :] += w * img[lo + off:hi + off, :]
        else:
            acc[:, lo:hi] += w * img[:, lo + off:hi + off]
        wsum[lo:hi] += w
    shape = (n, 1) if axis == 0 else (1, n)
    return acc / wsum.reshape(shape)


def gaussian_blur(gray: np.ndarray, sigma: float = 1.0) -> np.ndarray:
    """
    Separable Gaussian smoothing. The 2-D kernel exp(-(dx²+dy²)/2σ²) factorizes,
    and since the in-bounds window is a rectangle the per-axis renormalization
    equals renormalizing the truncated 2-D kernel.
    """
    g = np.asarray(gray, dtype=np.float64)
    if g.size == 0 or sigma <= 0:
        return g.astype(np.float32)
    k = gaussian_kernel_1d(sigma)
    out = _convolve_axis(g, k, axis=1)
    out = _convolve_axis(out, k, axis=0)
    return out.astype(np.float32)


def preprocess(rgba: np.ndarray, sigma: float = 1.0) -> tuple[np.ndarray, np.ndarray]:
    """Return (grayscale, blurred grayscale)."""
    gray = to_grayscale(rgba)
    return gray, gaussian_blur(gray, sigma)
