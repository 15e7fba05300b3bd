# cardscan/core/scanner.py
from __future__ import annotations
import threading
from typing import Dict, Optional

from cardscan.core.config import merge_cfg
from cardscan.core.contracts import ScanResult
from cardscan.core.events import EventSink, PipelineEvent, resolve_sink
from cardscan.core.pipeline import run_pipeline
from cardscan.ocr.title import TextRecognizer


class CardScanner:
    """
    Feeds camera frames to the pipeline one at a time.

    A frame that arrives while a run is in flight is skipped (scan() returns
    None), never queued. The scanner remembers how many runs it started and
    the last title it accepted, for display.
    """

    def __init__(self, recognizer: Optional[TextRecognizer] = None, cfg: Optional[Dict] = None,
                 sink: Optional[EventSink] = None):
        self.cfg = merge_cfg(cfg)
        self.recognizer = recognizer
        self.sink = resolve_sink(sink, self.cfg)
        self.scan_count = 0
        self.last_title: Optional[str] = None
        self.last_result: Optional[ScanResult] = None
        self._active = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._active.locked()

    def scan(self, buffer, width: int, height: int) -> Optional[ScanResult]:
        if not self._active.acquire(blocking=False):
            self.sink(PipelineEvent("frame", "run active, frame skipped"))
            return None
        try:
            self.scan_count += 1
            result = run_pipeline(buffer, width, height, self.recognizer, self.cfg, self.sink)
            self.last_result = result
            if result.title:
                self.last_title = result.title
            return result
        finally:
            self._active.release()

    def reset(self) -> None:
        self.scan_count = 0
        self.last_title = None
        self.last_result = None
