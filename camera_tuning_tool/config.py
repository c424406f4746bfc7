from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Config:
    jpeg_quality: int = 95

    raw_use_auto_wb: bool = False
    raw_no_auto_bright: bool = True
    raw_highlight_mode: int = 1

    default_region_frac: float = 0.20
    ambient_downsample: int = 8
    hue_margin: float = 20.0
    backlit_margin: float = 30.0
    low_light_ambient: float = 80.0
    vibrancy_high: float = 50.0
    vibrancy_medium: float = 30.0

    dark_brightness: float = 90.0
    bright_brightness: float = 190.0
    warm_color_temp: float = 25.0
    cool_color_temp: float = -25.0
    hdr_dynamic_range: float = 180.0
    flat_dynamic_range: float = 100.0
    harsh_dynamic_range: float = 200.0

    match_threshold: float = 0.70
    store_capacity: int = 100
    liked_weight: float = 3.0
    liked_blend: tuple = (8.0, 2.0)
    unliked_blend: tuple = (7.0, 3.0)
    auto_apply_preferences: bool = True

    min_detection_score: float = 0.35
    detect_size_frac: float = 0.30
    track_smoothing: float = 0.30
    track_padding: float = 5.0
    track_size_min: float = 10.0
    track_size_max: float = 50.0

    sample_interval: float = 0.5
    render_interval: float = 1.0 / 30.0


CFG = Config()
