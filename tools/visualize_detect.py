#!/usr/bin/env python3
from __future__ import annotations
import argparse, json, os
import cv2
import numpy as np

from cardscan.core.config import load_cfg, merge_cfg
from cardscan.core.events import EventLog, print_sink
from cardscan.core.pipeline import run_pipeline
from cardscan.io.ingest import load_image, save_rgba
from cardscan.ocr.title import TesseractRecognizer


def draw_quad(img, quad, color, thickness=2):
    q = np.rint(quad).astype(np.int32).reshape(-1, 1, 2)
    cv2.polylines(img, [q], True, color, thickness, lineType=cv2.LINE_AA)


def load_quad(path):
    # expects JSON: [[x,y],[x,y],[x,y],[x,y]]
    with open(path, "r") as f:
        arr = np.array(json.load(f), dtype=np.float32)
    return arr.reshape(4, 2)


def mask_from_quad(quad, shape):
    m = np.zeros(shape[:2], np.uint8)
    cv2.fillConvexPoly(m, np.rint(quad).astype(np.int32), 255)
    return m


def iou_quads(q1, q2, shape):
    m1 = mask_from_quad(q1, shape)
    m2 = mask_from_quad(q2, shape)
    inter = np.logical_and(m1 > 0, m2 > 0).sum()
    union = np.logical_or(m1 > 0, m2 > 0).sum()
    return inter / max(1, union)


def main():
    ap = argparse.ArgumentParser(description="Run the card pipeline on an image file, visualize, and rectify.")
    ap.add_argument("image", help="Path to input image.")
    ap.add_argument("--config", help="YAML config (see config/pipeline.yaml).")
    ap.add_argument("--out_dir", default="tests/output", help="Directory for outputs.")
    ap.add_argument("--method", choices=["bilinear", "homography"], default=None,
                    help="Rectification method (overrides config).")
    ap.add_argument("--ocr", action="store_true", help="Also OCR the title band with tesseract.")
    ap.add_argument("--gt", help="Path to ground-truth quad JSON [[x,y],...]. Optional.")
    ap.add_argument("--debug", action="store_true", help="Print pipeline events.")
    args = ap.parse_args()

    cfg = load_cfg(args.config) if args.config else merge_cfg(None)
    if args.method:
        cfg["rectify"] = {**cfg["rectify"], "method": args.method}

    rgba = load_image(args.image)
    H, W = rgba.shape[:2]
    log = EventLog()

    def sink(ev):
        log(ev)
        if args.debug:
            print_sink(ev)

    recognizer = TesseractRecognizer() if args.ocr else None
    res = run_pipeline(rgba, W, H, recognizer=recognizer, cfg=cfg, sink=sink)

    os.makedirs(args.out_dir, exist_ok=True)
    base = os.path.splitext(os.path.basename(args.image))[0]
    viz = cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGR)
    if res.candidates:
        for c in res.candidates:
            draw_quad(viz, c.polygon, (255, 160, 0), 1)
    if res.corners is None:
        print(f"[detect] no card found ({len(res.candidates)} candidates)")
    else:
        draw_quad(viz, res.corners.pts, (0, 0, 255), 2)
        print(f"[detect] corners={np.round(res.corners.pts, 1).tolist()} score={res.score:.3f}")
        save_rgba(os.path.join(args.out_dir, f"{base}_rect.png"), res.rectified)
        save_rgba(os.path.join(args.out_dir, f"{base}_title.png"), res.title_crop)
        if args.gt:
            gt = load_quad(args.gt)
            draw_quad(viz, gt, (0, 255, 0), 2)
            print(f"[detect] IoU vs GT: {iou_quads(gt, res.corners.pts, viz.shape):.3f}")

    out_viz = os.path.join(args.out_dir, f"{base}_viz.png")
    cv2.imwrite(out_viz, viz)
    print(f"[OK] viz saved to: {out_viz} ({len(log.events)} events)")
    if args.ocr:
        conf = res.ocr.confidence if res.ocr else 0.0
        print(f"[ocr] title={res.title!r} conf={conf:.1f}")


if __name__ == "__main__":
    main()
