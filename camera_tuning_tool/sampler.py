from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

import cv2
import numpy as np

from camera_tuning_tool.config import CFG, Config

Region = Tuple[int, int, int, int]


@dataclass(frozen=True)
class SceneSample:
    brightness: int
    env_brightness: int
    dynamic_range: int
    color_temp: int  # red minus blue, scaled to [-100, 100]
    saturation: int
    is_backlit: bool
    is_low_light: bool
    is_warm_tone: bool
    is_cool_tone: bool
    color_vibrancy: str
    dominant_hue: int
    hue_distribution: Dict[str, int] = field(default_factory=dict)


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def luma_from_bgr(bgr: np.ndarray) -> np.ndarray:
    return 0.299 * bgr[..., 2] + 0.587 * bgr[..., 1] + 0.114 * bgr[..., 0]


def default_region(frame_shape: Tuple[int, ...], cfg: Config = CFG) -> Region:
    h, w = int(frame_shape[0]), int(frame_shape[1])
    rw = int(round(w * cfg.default_region_frac))
    rh = int(round(h * cfg.default_region_frac))
    return (w - rw) // 2, (h - rh) // 2, rw, rh


def region_statistics(roi_bgr8: np.ndarray, cfg: Config = CFG) -> Dict[str, Any]:
    px = roi_bgr8.reshape(-1, 3).astype(np.float64)
    n = px.shape[0]
    b, g, r = px[:, 0], px[:, 1], px[:, 2]

    Y = luma_from_bgr(px)

    mx = px.max(axis=1)
    mn = px.min(axis=1)
    sat = np.where(mx > 0, (mx - mn) / np.maximum(mx, 1.0), 0.0)

    avg = (r + g + b) / 3.0
    tinted = (r > avg + cfg.hue_margin) | (g > avg + cfg.hue_margin)
    warm = int(np.count_nonzero(tinted & (r > g)))
    cool = int(np.count_nonzero(tinted & ~(r > g)))

    hue = np.select(
        [(r > g) & (r > b), (g > r) & (g > b), (b > r) & (b > g)],
        [0.0, 120.0, 240.0],
        default=avg,
    )

    return {
        "pixels": n,
        "brightness": float(Y.mean()),
        "luma_min": float(Y.min()),
        "luma_max": float(Y.max()),
        "mean_bgr": [float(b.mean()), float(g.mean()), float(r.mean())],
        "saturation": float(sat.mean()) * 100.0,
        "hue_distribution": {"warm": warm, "cool": cool, "neutral": n - warm - cool},
        "dominant_hue": float(hue.mean()),
    }


def ambient_brightness(frame_bgr8: np.ndarray, cfg: Config = CFG) -> float:
    h, w = frame_bgr8.shape[:2]
    k = max(int(cfg.ambient_downsample), 1)
    small = cv2.resize(
        np.ascontiguousarray(frame_bgr8),
        (max(1, w // k), max(1, h // k)),
        interpolation=cv2.INTER_AREA,
    )
    return float(luma_from_bgr(small.astype(np.float64)).mean())


def sample_scene(
    frame_bgr8: np.ndarray, region: Region, cfg: Config = CFG
) -> SceneSample:
    if frame_bgr8 is None or frame_bgr8.ndim != 3 or frame_bgr8.size == 0:
        raise ValueError("empty frame")

    x, y, w, h = (int(v) for v in region)
    if w <= 0 or h <= 0:
        raise ValueError(f"zero-area sampling region {region}")

    fh, fw = frame_bgr8.shape[:2]
    x0, x1 = max(x, 0), min(max(x + w, 0), fw)
    y0, y1 = max(y, 0), min(max(y + h, 0), fh)
    roi = frame_bgr8[y0:y1, x0:x1]
    if roi.size == 0:
        raise ValueError(f"sampling region {region} lies outside the frame")

    st = region_statistics(roi, cfg)
    env = ambient_brightness(frame_bgr8, cfg)

    brightness = st["brightness"]
    mean_b, _, mean_r = st["mean_bgr"]
    dist = st["hue_distribution"]
    saturation = st["saturation"]

    if saturation > cfg.vibrancy_high:
        vibrancy = "high"
    elif saturation > cfg.vibrancy_medium:
        vibrancy = "medium"
    else:
        vibrancy = "low"

    return SceneSample(
        brightness=round_half_up(brightness),
        env_brightness=round_half_up(env),
        dynamic_range=round_half_up(st["luma_max"] - st["luma_min"]),
        color_temp=round_half_up((mean_r - mean_b) / 255.0 * 100.0),
        saturation=round_half_up(saturation),
        is_backlit=bool(env > brightness + cfg.backlit_margin),
        is_low_light=bool(env < cfg.low_light_ambient),
        is_warm_tone=dist["warm"] > dist["cool"],
        is_cool_tone=dist["cool"] > dist["warm"],
        color_vibrancy=vibrancy,
        dominant_hue=round_half_up(st["dominant_hue"]),
        hue_distribution=dict(dist),
    )
