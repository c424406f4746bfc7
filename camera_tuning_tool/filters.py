from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, Tuple

import numpy as np

from camera_tuning_tool.sampler import SceneSample
from camera_tuning_tool.settings import RecommendedSettings

MANUAL_LIMIT = 50.0
MANUAL_KEYS = ("brightness", "contrast", "saturation", "warmth")


@dataclass(frozen=True)
class FilterLimits:
    brightness: Tuple[float, float]
    contrast: Tuple[float, float]
    saturate: Tuple[float, float]
    warmth: Tuple[float, float]


LIVE_LIMITS = FilterLimits((50.0, 200.0), (50.0, 200.0), (50.0, 300.0), (-75.0, 75.0))
VARIANT_LIMITS = FilterLimits((50.0, 150.0), (50.0, 150.0), (50.0, 200.0), (-50.0, 50.0))
READJUST_LIMITS = FilterLimits((50.0, 200.0), (50.0, 200.0), (50.0, 250.0), (-75.0, 75.0))


def _clip(v: float, lo_hi: Tuple[float, float]) -> float:
    return float(min(max(v, lo_hi[0]), lo_hi[1]))


@dataclass(frozen=True)
class FilterParams:
    brightness: float = 100.0
    contrast: float = 100.0
    saturate: float = 100.0
    warmth: float = 0.0

    def clamped(self, limits: FilterLimits = LIVE_LIMITS) -> "FilterParams":
        return FilterParams(
            brightness=_clip(self.brightness, limits.brightness),
            contrast=_clip(self.contrast, limits.contrast),
            saturate=_clip(self.saturate, limits.saturate),
            warmth=_clip(self.warmth, limits.warmth),
        )

    def within(self, limits: FilterLimits = LIVE_LIMITS) -> bool:
        return self == self.clamped(limits)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FilterParams":
        return cls(
            brightness=float(data["brightness"]),
            contrast=float(data["contrast"]),
            saturate=float(data["saturate"]),
            warmth=float(data["warmth"]),
        )


@dataclass(frozen=True)
class ManualAdjustments:
    brightness: float = 0.0
    contrast: float = 0.0
    saturation: float = 0.0
    warmth: float = 0.0

    def with_value(self, name: str, value: float) -> "ManualAdjustments":
        if name not in MANUAL_KEYS:
            raise ValueError(f"unknown manual adjustment {name!r}")
        value = float(value)
        if not -MANUAL_LIMIT <= value <= MANUAL_LIMIT:
            raise ValueError(f"{name} adjustment {value} outside [-50, 50]")
        return replace(self, **{name: value})

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ManualAdjustments":
        return cls(**{k: float(data.get(k, 0.0)) for k in MANUAL_KEYS})


class FilterOrigin(enum.Enum):
    MODE = "mode"
    REGION = "region"
    AI = "ai"
    LEARNED = "learned"


MANUAL_SCALES: Dict[FilterOrigin, Tuple[float, float, float, float]] = {
    FilterOrigin.MODE: (1.0, 1.0, 1.0, 1.0),
    FilterOrigin.AI: (1.0, 1.0, 1.0, 1.0),
    FilterOrigin.REGION: (1.5, 1.5, 2.0, 1.5),
    FilterOrigin.LEARNED: (1.5, 1.5, 2.0, 1.5),
}


def scaled_manual(
    manual: ManualAdjustments, origin: FilterOrigin
) -> Tuple[float, float, float, float]:
    kb, kc, ks, kw = MANUAL_SCALES[origin]
    return (
        manual.brightness * kb,
        manual.contrast * kc,
        manual.saturation * ks,
        manual.warmth * kw,
    )


@dataclass(frozen=True)
class ModePreset:
    mode_id: str
    name: str
    filters: FilterParams
    settings: Dict[str, float]


MODE_PRESETS: Dict[str, ModePreset] = {
    "normal": ModePreset(
        "normal",
        "Normal",
        FilterParams(100, 100, 100, 0),
        {"exposure_ev": 0.0, "contrast": 55.0, "saturation": 55.0, "warmth": 5.0},
    ),
    "vintage": ModePreset(
        "vintage",
        "Vintage",
        FilterParams(95, 110, 80, 25),
        {"exposure_ev": -0.3, "contrast": 65.0, "saturation": 45.0, "warmth": 30.0},
    ),
    "dreamy": ModePreset(
        "dreamy",
        "Dreamy",
        FilterParams(105, 90, 110, 15),
        {"exposure_ev": 0.5, "contrast": 45.0, "saturation": 70.0, "warmth": 20.0},
    ),
    "vibrant": ModePreset(
        "vibrant",
        "Vibrant",
        FilterParams(100, 110, 130, 10),
        {"exposure_ev": 0.0, "contrast": 70.0, "saturation": 80.0, "warmth": 15.0},
    ),
    "moody": ModePreset(
        "moody",
        "Moody",
        FilterParams(85, 120, 90, -10),
        {"exposure_ev": -0.5, "contrast": 75.0, "saturation": 50.0, "warmth": -5.0},
    ),
    "warm": ModePreset(
        "warm",
        "Warm",
        FilterParams(100, 100, 105, 35),
        {"exposure_ev": 0.0, "contrast": 55.0, "saturation": 60.0, "warmth": 40.0},
    ),
}


def mode_ids() -> List[str]:
    return list(MODE_PRESETS)


def get_mode(mode_id: str) -> ModePreset:
    try:
        return MODE_PRESETS[mode_id]
    except KeyError:
        raise ValueError(f"unknown mode {mode_id!r}") from None


def compose_mode_filters(
    preset: ModePreset,
    manual: ManualAdjustments,
    origin: FilterOrigin = FilterOrigin.MODE,
) -> FilterParams:
    db, dc, ds, dw = scaled_manual(manual, origin)
    base = preset.filters
    return FilterParams(
        brightness=base.brightness + db,
        contrast=base.contrast + dc,
        saturate=base.saturate + ds,
        warmth=base.warmth + dw,
    ).clamped(LIVE_LIMITS)


def ai_nudges(sample: SceneSample, settings: RecommendedSettings) -> Tuple[float, float]:
    sat = 0.0
    if sample.color_vibrancy == "low":
        sat = 15.0
    elif sample.color_vibrancy == "high":
        sat = -5.0

    warmth = 0.0
    if sample.is_warm_tone and settings.warmth < 20:
        warmth = 10.0
    elif sample.is_cool_tone and settings.warmth > -10:
        warmth = -15.0

    hue = sample.dominant_hue
    if hue < 60 or hue > 300:
        warmth += 8.0
    elif 150 < hue < 270:
        warmth -= 10.0

    return sat, warmth


def compose_ai_filters(
    settings: RecommendedSettings,
    sample: SceneSample,
    preset: ModePreset,
    manual: ManualAdjustments,
) -> FilterParams:
    sat_nudge, warmth_nudge = ai_nudges(sample, settings)
    db, dc, ds, dw = scaled_manual(manual, FilterOrigin.AI)
    mf = preset.filters
    return FilterParams(
        brightness=100 + settings.exposure_ev * 8 + (mf.brightness - 100) + db,
        contrast=100 + (settings.contrast - 50) * 0.6 + (mf.contrast - 100) + dc,
        saturate=100
        + (settings.saturation - 50) * 0.8
        + (mf.saturate - 100)
        + sat_nudge
        + ds,
        warmth=settings.warmth + mf.warmth + warmth_nudge + dw,
    ).clamped(LIVE_LIMITS)


def compose_learned_filters(
    stored: FilterParams, manual: ManualAdjustments
) -> FilterParams:
    db, dc, ds, dw = scaled_manual(manual, FilterOrigin.LEARNED)
    return FilterParams(
        brightness=stored.brightness + db,
        contrast=stored.contrast + dc,
        saturate=stored.saturate + ds,
        warmth=stored.warmth + dw,
    ).clamped(LIVE_LIMITS)


def _num(v: float) -> str:
    s = f"{v:.4f}".rstrip("0").rstrip(".")
    return "0" if s in ("", "-0") else s


def filter_string(params: FilterParams) -> str:
    f = params.clamped(LIVE_LIMITS)
    out = (
        f"brightness({_num(f.brightness / 100)}) "
        f"contrast({_num(f.contrast / 100)}) "
        f"saturate({_num(f.saturate / 100)})"
    )
    if f.warmth > 0:
        out += f" sepia({_num(f.warmth * 0.004)})"
    elif f.warmth < 0:
        out += f" hue-rotate({_num(f.warmth * 0.6)}deg)"
    return out


def apply_filter_params(bgr8: np.ndarray, params: FilterParams) -> np.ndarray:
    if bgr8.ndim != 3 or bgr8.shape[2] != 3 or bgr8.size == 0:
        raise ValueError(f"expected a non-empty HxWx3 frame, got {bgr8.shape}")

    img = bgr8.astype(np.float32)
    img *= np.float32(params.brightness / 100.0)

    c = np.float32(params.contrast / 100.0)
    img = ((img / 255.0 - 0.5) * c + 0.5) * 255.0

    gray = 0.2989 * img[..., 2] + 0.5870 * img[..., 1] + 0.1140 * img[..., 0]
    s = np.float32(params.saturate / 100.0)
    img = gray[..., None] + (img - gray[..., None]) * s

    w = float(params.warmth)
    if w > 0:
        img[..., 2] += w * 0.8
        img[..., 1] += w * 0.4
    elif w < 0:
        img[..., 0] -= w * 0.8
        img[..., 1] -= w * 0.4

    return np.clip(img + 0.5, 0, 255).astype(np.uint8)
