"""
One pass of the scanner over a single camera frame.

A PipelineRun owns every intermediate of that pass (grayscale, edge map,
contours, candidates, rectified card). Stages are plain functions; the run
just threads their outputs forward. Nothing is shared between runs.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import numpy as np

from cardscan.core.config import merge_cfg
from cardscan.core.contracts import Candidate, Corners, OcrResult, ScanResult
from cardscan.core.events import EventSink, PipelineEvent, resolve_sink
from cardscan.geometry.contours import trace_contours
from cardscan.geometry.detect import select_corners
from cardscan.geometry.edges import detect_edges
from cardscan.geometry.preprocess import preprocess
from cardscan.geometry.rectify import warp_card
from cardscan.io.ingest import as_rgba
from cardscan.ocr.title import TextRecognizer, parse_title
from cardscan.roi.title import extract_guide_box_roi, extract_title_roi


@dataclass
class PipelineRun:
    frame: np.ndarray
    cfg: Dict
    sink: EventSink
    gray: Optional[np.ndarray] = None
    blurred: Optional[np.ndarray] = None
    edges: Optional[np.ndarray] = None
    contours: List[np.ndarray] = field(default_factory=list)
    candidates: List[Candidate] = field(default_factory=list)
    best: Optional[Candidate] = None
    corners: Optional[Corners] = None
    rectified: Optional[np.ndarray] = None
    title_crop: Optional[np.ndarray] = None
    ocr: Optional[OcrResult] = None
    title: Optional[str] = None

    @property
    def width(self) -> int:
        return int(self.frame.shape[1])

    @property
    def height(self) -> int:
        return int(self.frame.shape[0])

    def emit(self, stage: str, message: str, **data) -> None:
        self.sink(PipelineEvent(stage, message, data))

    def result(self) -> ScanResult:
        return ScanResult(
            corners=self.corners,
            score=self.best.score if self.best is not None else 0.0,
            rectified=self.rectified,
            title_crop=self.title_crop,
            ocr=self.ocr,
            title=self.title,
            candidates=list(self.candidates),
        )


# ----------------------------------------------------------------------------- #
# Stages                                                                         #
# ----------------------------------------------------------------------------- #

def _stage_preprocess(run: PipelineRun) -> None:
    run.gray, run.blurred = preprocess(run.frame, float(run.cfg["blur"]["sigma"]))
    run.emit("preprocess", "blurred", sigma=float(run.cfg["blur"]["sigma"]))


def _stage_edges(run: PipelineRun) -> None:
    ecfg = run.cfg["edges"]
    run.edges = detect_edges(run.blurred, float(ecfg["low"]), float(ecfg["high"]))
    run.emit("edges", "edge map", pixels=int(np.count_nonzero(run.edges)))


def _stage_contours(run: PipelineRun) -> None:
    run.contours = trace_contours(run.edges, run.cfg["contours"])
    run.emit("contours", "traced", kept=len(run.contours),
             largest=len(run.contours[0]) if run.contours else 0)


def _stage_candidates(run: PipelineRun) -> None:
    run.corners, run.best, run.candidates = select_corners(run.contours, run.width, run.height, run.cfg, run.sink)


def _stage_rectify(run: PipelineRun) -> None:
    rcfg = run.cfg["rectify"]
    run.rectified = warp_card(run.frame, run.corners.pts, width=int(rcfg["width"]),
                              height=int(rcfg["height"]), method=str(rcfg.get("method", "bilinear")))
    run.emit("rectify", "card rectified", method=rcfg.get("method", "bilinear"),
             size=f"{run.rectified.shape[1]}x{run.rectified.shape[0]}")


def _stage_title_crop(run: PipelineRun) -> None:
    roi = extract_title_roi(run.rectified, float(run.cfg["title"]["top_fraction"]))
    run.title_crop = roi.crop
    run.emit("title", "title band cropped", rows=roi.xyxy_px[3])


def _stage_ocr(run: PipelineRun, recognizer: TextRecognizer) -> None:
    try:
        run.ocr = recognizer.recognize(run.title_crop)
    except Exception as e:
        run.emit("ocr", "recognizer failed", error=repr(e))
        return
    run.title = parse_title(run.ocr, run.cfg["title"])
    run.emit("ocr", "title parsed", confidence=float(run.ocr.confidence), title=run.title)


# ----------------------------------------------------------------------------- #
# Entry point                                                                    #
# ----------------------------------------------------------------------------- #

def run_pipeline(
    buffer,
    width: int,
    height: int,
    recognizer: Optional[TextRecognizer] = None,
    cfg: Optional[Dict] = None,
    sink: Optional[EventSink] = None,
) -> ScanResult:
    """
    Detect, rectify and (optionally) read the title of the card in one frame.

    Best effort: a frame with no card, or one whose processing blows up,
    returns an empty ScanResult. Only a buffer that disagrees with its declared
    size raises (FrameShapeError).
    """
    cfg = merge_cfg(cfg)
    sink = resolve_sink(sink, cfg)
    frame = as_rgba(buffer, width, height)
    run = PipelineRun(frame=frame, cfg=cfg, sink=sink)
    if frame.size == 0:
        run.emit("frame", "empty frame skipped", width=width, height=height)
        return run.result()

    run.emit("frame", "start", width=run.width, height=run.height)
    try:
        _stage_preprocess(run)
        _stage_edges(run)
        _stage_contours(run)
        if run.contours:
            _stage_candidates(run)
        if run.corners is not None:
            _stage_rectify(run)
            _stage_title_crop(run)
    except Exception as e:
        run.emit("pipeline", "frame dropped", error=repr(e))
        return PipelineRun(frame=frame, cfg=cfg, sink=sink).result()

    if recognizer is not None:
        if run.title_crop is not None:
            _stage_ocr(run, recognizer)
        elif cfg["guide_box"].get("enabled", False):
            gcfg = cfg["guide_box"]
            roi = extract_guide_box_roi(frame, float(gcfg["width_ratio"]), float(gcfg["height_ratio"]))
            run.title_crop = roi.crop
            run.emit("title", "no card, reading guide box", box=roi.xyxy_px)
            if run.title_crop is not None:
                _stage_ocr(run, recognizer)

    run.emit("pipeline", "done", detected=run.corners is not None, title=run.title)
    return run.result()
