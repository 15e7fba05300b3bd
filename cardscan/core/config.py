# cardscan/core/config.py
from __future__ import annotations
from pathlib import Path
from typing import Dict, Optional
import yaml

# Defaults tuned for a single phone/webcam frame with one card roughly filling the view
DEFAULT_CFG: Dict = {
    "debug": False,
    "blur": {"sigma": 1.0},
    "edges": {"low": 30.0, "high": 80.0},
    "contours": {
        "min_points": 100,
        "min_points_ratio": 0.001,     # relative to frame area
        "min_extent_ratio": 0.10,      # bbox side vs frame side
        "aspect_range": (0.5, 2.0),
    },
    "polygon": {
        # fractions of contour perimeter; rounded corners need different strengths
        "epsilons": (0.01, 0.02, 0.03, 0.04, 0.05, 0.06, 0.07, 0.08),
        "min_vertices": 4,
        "max_vertices": 12,
    },
    "score": {
        "weights": {"size": 0.25, "convexity": 0.30, "quad": 0.20, "aspect": 0.15, "fill": 0.10},
        "min_size_ratio": 0.02,
        "min_area_ratio": 0.03,
        "aspect_target": 0.716,
        "aspect_range": (0.3, 3.0),
        "min_score": 0.0,
    },
    "refine": {
        "enabled": True,
        "band_px": 6.0,          # floor on the side band
        "band_ratio": 0.03,      # band grows with side length
        "end_trim": 0.15,        # ignore this fraction at each end of a side (rounded corners)
        "min_points": 10,
        "max_shift": 0.10,       # of the shortest side
    },
    "rectify": {"width": 800, "height": 1118, "method": "bilinear"},
    "title": {
        "top_fraction": 0.12,
        "min_confidence": 30.0,
        "max_lines": 5,
        "min_length": 3,
        "max_length": 50,
    },
    # centred region the scanner screen asks the user to put the title in
    "guide_box": {"enabled": False, "width_ratio": 0.60, "height_ratio": 0.30},
}


def merge_cfg(cfg: Optional[Dict]) -> Dict:
    merged = {k: (dict(v) if isinstance(v, dict) else v) for k, v in DEFAULT_CFG.items()}
    if not cfg:
        return merged
    for k, v in cfg.items():
        if isinstance(v, dict) and k in merged and isinstance(merged[k], dict):
            merged[k] = {**merged[k], **v}
        else:
            merged[k] = v
    return merged


def load_cfg(path: str | Path) -> Dict:
    """Read a YAML config file and overlay it on the defaults."""
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config at {path} must be a mapping, got {type(raw).__name__}")
    return merge_cfg(raw)
