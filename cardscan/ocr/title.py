# cardscan/ocr/title.py
from __future__ import annotations
import re
from typing import Dict, Optional, Protocol
import cv2
import numpy as np
import pytesseract

from cardscan.core.config import DEFAULT_CFG
from cardscan.core.contracts import OcrResult
from cardscan.ocr.tess_config import default_config, try_set_fast_models

# anything that is not a word character, whitespace or an apostrophe
RX_NOT_TITLE = re.compile(r"[^\w\s']")
RX_SPACES = re.compile(r"\s+")


class TextRecognizer(Protocol):
    def recognize(self, image: np.ndarray) -> OcrResult: ...


def clean_title_line(line: str) -> str:
    s = RX_NOT_TITLE.sub("", line or "")
    return RX_SPACES.sub(" ", s).strip().lower()


def parse_title(ocr: Optional[OcrResult], cfg: Optional[Dict] = None) -> Optional[str]:
    """
    Candidate card name from raw OCR output, or None.

    Low-confidence reads are dropped outright. Otherwise the first of the
    leading lines that still has text after cleanup is the title, if its
    length is plausible for a card name.
    """
    tcfg = {**DEFAULT_CFG["title"], **(cfg or {})}
    if ocr is None or float(ocr.confidence) < float(tcfg["min_confidence"]):
        return None
    lines = (ocr.text or "").splitlines()[: int(tcfg["max_lines"])]
    for line in lines:
        cleaned = clean_title_line(line)
        if not cleaned:
            continue
        if int(tcfg["min_length"]) <= len(cleaned) <= int(tcfg["max_length"]):
            return cleaned
        return None
    return None


# ===================================
# Tesseract-backed recognizer
# ===================================

def _to_gray(img: np.ndarray) -> np.ndarray:
    if img.ndim == 2:
        return img.astype(np.uint8)
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(img, cv2.COLOR_RGB2GRAY)


def _prep(img: np.ndarray, scale: int = 2) -> np.ndarray:
    """
    Preprocess for OCR: grayscale -> upscale -> binarize (OTSU) -> dark text on light ground.
    """
    g = _to_gray(np.ascontiguousarray(img))
    g = cv2.GaussianBlur(g, (3, 3), 0)
    if scale > 1:
        g = cv2.resize(g, (g.shape[1] * scale, g.shape[0] * scale), interpolation=cv2.INTER_CUBIC)
    _, th = cv2.threshold(g, 0, 255, cv2.THRESH_BINARY | cv2.THRESH_OTSU)
    # the background is the majority; keep it white
    if (th == 0).sum() > (th == 255).sum():
        th = cv2.bitwise_not(th)
    return th


def _conf_value(c) -> float:
    try:
        return float(c)
    except (TypeError, ValueError):
        return -1.0


def data_to_result(d: Dict) -> OcrResult:
    """Rebuild text lines from image_to_data output; confidence is the mean word conf (0..100)."""
    lines: Dict[tuple, list] = {}
    confs = []
    for i, word in enumerate(d.get("text", [])):
        conf = _conf_value(d["conf"][i])
        if not (word or "").strip() or conf < 0:
            continue
        key = (d["block_num"][i], d["par_num"][i], d["line_num"][i])
        lines.setdefault(key, []).append(word.strip())
        confs.append(conf)
    text = "\n".join(" ".join(words) for _, words in sorted(lines.items()))
    return OcrResult(text=text, confidence=float(np.mean(confs)) if confs else 0.0)


class TesseractRecognizer:
    """OCR collaborator backed by the tesseract binary (via pytesseract)."""

    def __init__(self, psm: int = 6, scale: int = 2, lang: str = "eng", fast_models: bool = True):
        if fast_models:
            try_set_fast_models()
        self.config = default_config(psm=psm)
        self.scale = scale
        self.lang = lang

    def recognize(self, image: np.ndarray) -> OcrResult:
        img_bin = _prep(image, scale=self.scale)
        d = pytesseract.image_to_data(img_bin, lang=self.lang, config=self.config,
                                      output_type=pytesseract.Output.DICT)
        return data_to_result(d)
