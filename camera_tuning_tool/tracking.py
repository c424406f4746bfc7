from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from camera_tuning_tool.config import CFG, Config


@dataclass(frozen=True)
class Detection:
    label: str
    confidence: float
    bbox: Tuple[float, float, float, float]


@dataclass(frozen=True)
class TrackingBox:
    # centre and size in percent of the frame
    x: float
    y: float
    width: float = 20.0
    height: float = 20.0


def select_detection(
    detections: Iterable[Detection],
    box: TrackingBox,
    frame_w: int,
    frame_h: int,
    cfg: Config = CFG,
) -> Optional[Detection]:
    cx = box.x / 100.0 * frame_w
    cy = box.y / 100.0 * frame_h
    half = max(frame_w, frame_h) * cfg.detect_size_frac / 2.0
    if half <= 0:
        return None

    best = None
    best_score = 0.0
    for det in detections:
        if det.confidence < cfg.min_detection_score:
            continue
        bx, by, bw, bh = det.bbox
        dist = math.hypot(bx + bw / 2.0 - cx, by + bh / 2.0 - cy)
        score = det.confidence * (1.0 - dist / half * 0.5)
        if score > best_score:
            best_score = score
            best = det
    return best


def follow(
    box: TrackingBox, det: Detection, frame_w: int, frame_h: int, cfg: Config = CFG
) -> TrackingBox:
    bx, by, bw, bh = det.bbox
    k = cfg.track_smoothing
    lo, hi = cfg.track_size_min, cfg.track_size_max

    obj_x = (bx + bw / 2.0) / frame_w * 100.0
    obj_y = (by + bh / 2.0) / frame_h * 100.0
    obj_w = min(hi, max(lo, bw / frame_w * 100.0 + cfg.track_padding))
    obj_h = min(hi, max(lo, bh / frame_h * 100.0 + cfg.track_padding))

    return TrackingBox(
        x=box.x + (obj_x - box.x) * k,
        y=box.y + (obj_y - box.y) * k,
        width=box.width + (obj_w - box.width) * k,
        height=box.height + (obj_h - box.height) * k,
    )


def region_for_box(
    box: TrackingBox, frame_w: int, frame_h: int
) -> Tuple[int, int, int, int]:
    rw = box.width / 100.0 * frame_w
    rh = box.height / 100.0 * frame_h
    x0 = max(0.0, box.x / 100.0 * frame_w - rw / 2.0)
    y0 = max(0.0, box.y / 100.0 * frame_h - rh / 2.0)
    x1 = min(float(frame_w), x0 + rw)
    y1 = min(float(frame_h), y0 + rh)

    x, y = int(x0), int(y0)
    return x, y, max(0, int(round(x1)) - x), max(0, int(round(y1)) - y)

