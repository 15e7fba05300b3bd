#!/usr/bin/env python3
import sys, argparse, cv2
from pathlib import Path

from cardscan.core.config import load_cfg, merge_cfg
from cardscan.io.ingest import load_image
from cardscan.ocr.title import TesseractRecognizer, parse_title
from cardscan.roi.title import extract_title_roi


def main():
    ap = argparse.ArgumentParser(description="OCR the title band of an already rectified card image.")
    ap.add_argument("rectified")
    ap.add_argument("--config", help="YAML config (see config/pipeline.yaml).")
    ap.add_argument("--resize", action="store_true", help="Resize to the canonical card size first.")
    ap.add_argument("--dump", action="store_true", help="Write the title crop next to the input.")
    args = ap.parse_args()

    cfg = load_cfg(args.config) if args.config else merge_cfg(None)
    p = Path(args.rectified)
    try:
        img = load_image(str(p))
    except FileNotFoundError as e:
        print(f"[ERR] {e}"); sys.exit(2)

    Wc, Hc = int(cfg["rectify"]["width"]), int(cfg["rectify"]["height"])
    if args.resize and (img.shape[0] != Hc or img.shape[1] != Wc):
        img = cv2.resize(img, (Wc, Hc), interpolation=cv2.INTER_AREA)

    roi = extract_title_roi(img, float(cfg["title"]["top_fraction"]))
    if roi.crop is None:
        print("[ERR] Empty crop (check rectification size or title fraction)."); sys.exit(1)

    out = TesseractRecognizer().recognize(roi.crop)
    title = parse_title(out, cfg["title"])
    print(f"raw={out.text!r}  conf={out.confidence:.1f}")
    print(f"title={title!r}")

    if args.dump:
        dst = p.with_name(p.stem + "_title.png")
        cv2.imwrite(str(dst), cv2.cvtColor(roi.crop, cv2.COLOR_RGBA2BGR))
        print("[DBG] wrote", dst)


if __name__ == "__main__":
    main()
