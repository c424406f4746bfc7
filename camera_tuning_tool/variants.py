from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List

import numpy as np

from camera_tuning_tool import filters as flt
from camera_tuning_tool.filters import (
    READJUST_LIMITS,
    VARIANT_LIMITS,
    FilterParams,
    ManualAdjustments,
)


@dataclass(frozen=True)
class CaptureVariant:
    variant_id: str
    name: str
    delta: FilterParams


# deltas are applied on top of the AI base, not on the neutral 100/100/100/0
CAPTURE_VARIANTS: List[CaptureVariant] = [
    CaptureVariant("natural", "Natural", FilterParams(0, 0, 0, 0)),
    CaptureVariant("vibrant", "Vibrant", FilterParams(5, 10, 25, 15)),
    CaptureVariant("cool", "Cool", FilterParams(0, 5, -5, -20)),
    CaptureVariant("soft", "Soft", FilterParams(10, -15, -10, 5)),
    CaptureVariant("dramatic", "Dramatic", FilterParams(-5, 25, 15, 10)),
]


@dataclass
class VariantResult:
    variant_id: str
    name: str
    image: np.ndarray
    raw_base: np.ndarray
    base_filters: FilterParams
    user_adjustments: ManualAdjustments = field(default_factory=ManualAdjustments)

    @property
    def effective_filters(self) -> FilterParams:
        u = self.user_adjustments
        b = self.base_filters
        return FilterParams(
            brightness=b.brightness + u.brightness,
            contrast=b.contrast + u.contrast,
            saturate=b.saturate + u.saturation,
            warmth=b.warmth + u.warmth,
        ).clamped(READJUST_LIMITS)


def ai_base(live: FilterParams, manual: ManualAdjustments) -> FilterParams:
    return FilterParams(
        brightness=live.brightness - manual.brightness,
        contrast=live.contrast - manual.contrast,
        saturate=live.saturate - manual.saturation,
        warmth=live.warmth - manual.warmth,
    )


def variant_filters(base: FilterParams, variant: CaptureVariant) -> FilterParams:
    d = variant.delta
    return FilterParams(
        brightness=base.brightness + d.brightness,
        contrast=base.contrast + d.contrast,
        saturate=base.saturate + d.saturate,
        warmth=base.warmth + d.warmth,
    ).clamped(VARIANT_LIMITS)


def render_variants(
    raw_bgr8: np.ndarray, live: FilterParams, manual: ManualAdjustments
) -> List[VariantResult]:
    if raw_bgr8 is None or raw_bgr8.ndim != 3 or raw_bgr8.size == 0:
        print("[WARN] Variant capture skipped: empty frame")
        return []

    raw = raw_bgr8.copy()
    raw.flags.writeable = False
    base = ai_base(live, manual)

    out: List[VariantResult] = []
    for variant in CAPTURE_VARIANTS:
        params = variant_filters(base, variant)
        try:
            image = flt.apply_filter_params(raw, params)
        except Exception as e:
            print(f"[WARN] Variant {variant.variant_id} failed: {e}")
            continue
        out.append(
            VariantResult(
                variant_id=variant.variant_id,
                name=variant.name,
                image=image,
                raw_base=raw,
                base_filters=params,
            )
        )

    print(f"[INFO] Generated {len(out)}/{len(CAPTURE_VARIANTS)} variants")
    return out


def readjust_variant(
    result: VariantResult, adjustments: ManualAdjustments
) -> VariantResult:
    updated = replace(result, user_adjustments=adjustments)
    image = flt.apply_filter_params(result.raw_base, updated.effective_filters)
    return replace(updated, image=image)
