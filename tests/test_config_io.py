"""
Pytest for config loading and frame/image I/O helpers.
"""
from __future__ import annotations
from pathlib import Path

import numpy as np
import cv2
import pytest

from cardscan.core.config import DEFAULT_CFG, load_cfg, merge_cfg
from cardscan.core.contracts import FrameShapeError
from cardscan.io.ingest import as_rgba, frame_from_bgr, load_image, save_rgba

REPO_CFG = Path(__file__).resolve().parents[1] / "config" / "pipeline.yaml"

# ---------- Config ---------- #

def test_merge_keeps_defaults_for_missing_keys():
    cfg = merge_cfg({"edges": {"high": 90}, "debug": True})
    assert cfg["edges"] == {"low": 30.0, "high": 90}
    assert cfg["debug"] is True
    assert cfg["rectify"] == DEFAULT_CFG["rectify"]

def test_merge_does_not_mutate_defaults():
    cfg = merge_cfg(None)
    cfg["title"]["max_lines"] = 99
    assert DEFAULT_CFG["title"]["max_lines"] == 5

def test_load_yaml(tmp_path):
    p = tmp_path / "scan.yaml"
    p.write_text("rectify:\n  method: homography\ntitle:\n  min_confidence: 50\n")
    cfg = load_cfg(p)
    assert cfg["rectify"]["method"] == "homography"
    assert cfg["rectify"]["width"] == 800
    assert cfg["title"]["min_confidence"] == 50

def test_empty_yaml_is_defaults(tmp_path):
    p = tmp_path / "empty.yaml"
    p.write_text("")
    assert load_cfg(p) == merge_cfg(None)

def test_non_mapping_yaml_raises(tmp_path):
    p = tmp_path / "list.yaml"
    p.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        load_cfg(p)

def test_shipped_config_matches_defaults():
    cfg = load_cfg(REPO_CFG)
    assert cfg["rectify"] == DEFAULT_CFG["rectify"]
    assert cfg["edges"] == DEFAULT_CFG["edges"]
    assert list(cfg["polygon"]["epsilons"]) == list(DEFAULT_CFG["polygon"]["epsilons"])
    assert cfg["guide_box"]["enabled"] is False

# ---------- Frame buffers ---------- #

def test_as_rgba_reshapes_flat_buffer():
    raw = bytes(range(24))
    arr = as_rgba(raw, 3, 2)
    assert arr.shape == (2, 3, 4)
    assert arr[1, 0].tolist() == [12, 13, 14, 15]

def test_as_rgba_accepts_matching_array():
    frame = np.zeros((5, 7, 4), np.uint8)
    assert as_rgba(frame, 7, 5) is frame

@pytest.mark.parametrize("buf,w,h", [
    (b"\x00" * 23, 3, 2),
    (np.zeros((5, 7, 4), np.uint8), 5, 7),
    (np.zeros((5, 7, 3), np.uint8), 7, 5),
])
def test_as_rgba_rejects_mismatch(buf, w, h):
    with pytest.raises(FrameShapeError):
        as_rgba(buf, w, h)

def test_zero_sized_frame_is_empty():
    assert as_rgba(b"", 0, 0).shape == (0, 0, 4)
    assert as_rgba(b"", 10, 0).shape == (0, 10, 4)

# ---------- Images ---------- #

def test_bgr_to_rgba_channel_order():
    bgr = np.zeros((2, 2, 3), np.uint8)
    bgr[..., 0] = 200  # blue
    rgba = frame_from_bgr(bgr)
    assert rgba[0, 0].tolist() == [0, 0, 200, 255]
    assert frame_from_bgr(np.full((2, 2), 9, np.uint8))[0, 0].tolist() == [9, 9, 9, 255]

def test_load_missing_image_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_image(str(tmp_path / "nope.png"))

def test_save_and_load_round_trip(tmp_path):
    rgba = np.zeros((6, 8, 4), np.uint8)
    rgba[..., 0] = 255
    rgba[..., 3] = 255
    path = str(tmp_path / "red.png")
    assert save_rgba(path, rgba)
    back = load_image(path)
    assert back.shape == (6, 8, 4)
    assert back[0, 0].tolist() == [255, 0, 0, 255]
    assert cv2.imread(path)[0, 0].tolist() == [0, 0, 255]
