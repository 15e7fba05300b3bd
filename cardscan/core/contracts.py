"""
Core contracts and simple data types shared across stages.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import numpy as np


class FrameShapeError(ValueError):
    """A caller handed us a buffer whose size disagrees with its declared width/height."""


@dataclass
class Corners:
    """
    The four card corners in image coordinates (pixels), ordered by angle
    about their centroid: [top-left, top-right, bottom-right, bottom-left]
    for an upright card.

    pts: np.ndarray with shape (4, 2), dtype float32
    """
    pts: np.ndarray

    def as_tuple(self) -> Tuple[Tuple[float, float], Tuple[float, float], Tuple[float, float], Tuple[float, float]]:
        return tuple(map(tuple, self.pts.astype(float)))  # type: ignore[return-value]


@dataclass
class Candidate:
    """A 4-point polygon with its rectangularity score and shoelace area."""
    polygon: np.ndarray
    score: float
    area: float
    epsilon: float = 0.0
    vertices: int = 4
    contour: int = -1


@dataclass
class OcrResult:
    """What the OCR collaborator hands back: raw text and a 0..100 confidence."""
    text: str
    confidence: float


@dataclass
class ScanResult:
    corners: Optional[Corners] = None
    score: float = 0.0
    rectified: Optional[np.ndarray] = None
    title_crop: Optional[np.ndarray] = None
    ocr: Optional[OcrResult] = None
    title: Optional[str] = None
    candidates: List[Candidate] = field(default_factory=list)

    @property
    def detected(self) -> bool:
        return self.corners is not None
