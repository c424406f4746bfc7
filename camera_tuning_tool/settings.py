from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List

from camera_tuning_tool.config import CFG, Config
from camera_tuning_tool.sampler import SceneSample

FOOD_CLASSES = {
    "banana",
    "apple",
    "sandwich",
    "orange",
    "broccoli",
    "carrot",
    "hot dog",
    "pizza",
    "donut",
    "cake",
    "bowl",
    "cup",
    "fork",
    "knife",
    "spoon",
    "wine glass",
    "bottle",
    "dining table",
}

BAKED_CLASSES = {"pizza", "hot dog", "sandwich", "cake", "donut"}
PRODUCE_CLASSES = {"broccoli", "carrot", "banana", "apple", "orange"}
DRINK_CLASSES = {"cup", "wine glass", "bottle"}
BOWL_CLASSES = {"bowl"}

ANGLE_45 = "45°"
ANGLE_90 = "90° overhead"
ANGLE_15 = "15° tilt"
ANGLE_60 = "60° tilt"

TIP_NIGHT_MODE = "Low light: enable night mode or add a light source"


@dataclass
class RecommendedSettings:
    exposure_ev: float = 0.0
    exposure_desc: str = "normal"
    white_balance: str = "auto"
    white_balance_desc: str = "normal"
    hdr_recommended: bool = False
    contrast: float = 55.0
    contrast_desc: str = "normal"
    saturation: float = 55.0
    saturation_desc: str = "normal"
    warmth: float = 5.0
    angle: str = ANGLE_45
    tips: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecommendedSettings":
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        if "tips" in kwargs:
            kwargs["tips"] = list(kwargs["tips"] or [])
        return cls(**kwargs)


def generate_settings(
    sample: SceneSample, object_type: str, cfg: Config = CFG
) -> RecommendedSettings:
    s = RecommendedSettings()

    if sample.is_backlit:
        s.exposure_ev = 1.5
        s.exposure_desc = "backlit"
    elif sample.is_low_light:
        s.exposure_ev = 1.2
        s.exposure_desc = "low_light"
        s.tips.append(TIP_NIGHT_MODE)
    elif sample.brightness < cfg.dark_brightness:
        s.exposure_ev = 0.8
        s.exposure_desc = "dark"
    elif sample.brightness > cfg.bright_brightness:
        s.exposure_ev = -0.7
        s.exposure_desc = "bright"

    if sample.color_temp > cfg.warm_color_temp:
        s.white_balance = "cloudy"
        s.white_balance_desc = "warm"
        s.warmth = -10.0
    elif sample.color_temp < cfg.cool_color_temp:
        s.white_balance = "tungsten"
        s.white_balance_desc = "cold"
        s.warmth = 25.0
    elif object_type in FOOD_CLASSES:
        s.warmth = 15.0

    if sample.dynamic_range > cfg.hdr_dynamic_range or sample.is_backlit:
        s.hdr_recommended = True

    if sample.dynamic_range < cfg.flat_dynamic_range:
        s.contrast = 65.0
        s.contrast_desc = "increase"
    elif sample.dynamic_range > cfg.harsh_dynamic_range:
        s.contrast = 40.0
        s.contrast_desc = "decrease"

    if object_type in BAKED_CLASSES:
        s.saturation = 65.0
        s.saturation_desc = "food"
        s.warmth = max(s.warmth, 20.0)
        s.angle = ANGLE_90 if object_type == "pizza" else ANGLE_45
    elif object_type in PRODUCE_CLASSES:
        s.saturation = 70.0
        s.saturation_desc = "fruit"
    elif object_type in DRINK_CLASSES:
        s.saturation = 45.0
        s.saturation_desc = "drink"
        s.angle = ANGLE_15
    elif object_type in BOWL_CLASSES:
        s.saturation = 60.0
        s.saturation_desc = "bowl"
        s.angle = ANGLE_60

    return s
