from __future__ import annotations
import os


# Centralized Tesseract configuration helpers.
# Prefer fast models if present; otherwise fall back to default.

_FAST_MODEL_DIRS = (
    "/usr/share/tesseract-ocr/5/tessdata_fast",
    "/usr/share/tesseract-ocr/tessdata_fast",
    "/usr/share/tesseract-ocr/4.00/tessdata_fast",
)


def default_config(psm: int = 7, extra: dict[str, str] | None = None) -> str:
    cfg = ["--oem", "1", "--psm", str(psm), "-c", "preserve_interword_spaces=1"]
    if extra:
        for k, v in extra.items():
            cfg += ["-c", f"{k}={v}"]
    return " ".join(cfg)


def try_set_fast_models() -> str | None:
    """If tessdata_fast is installed, point TESSDATA_PREFIX to it.

    Safe to call multiple times; never overrides a prefix the user already set.
    """
    for p in _FAST_MODEL_DIRS:
        if os.path.isdir(p):
            os.environ.setdefault("TESSDATA_PREFIX", p)
            return p
    return None
