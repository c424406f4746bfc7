from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from camera_tuning_tool.config import CFG, Config
from camera_tuning_tool.filters import (
    FilterOrigin,
    FilterParams,
    ManualAdjustments,
    apply_filter_params,
    compose_ai_filters,
    compose_learned_filters,
    compose_mode_filters,
    filter_string,
    get_mode,
    scaled_manual,
)
from camera_tuning_tool.preferences import (
    ContextVector,
    PreferenceRecord,
    PreferenceResult,
    PreferenceStore,
)
from camera_tuning_tool.sampler import SceneSample, sample_scene
from camera_tuning_tool.settings import RecommendedSettings, generate_settings
from camera_tuning_tool.tracking import (
    Detection,
    TrackingBox,
    follow,
    region_for_box,
    select_detection,
)
from camera_tuning_tool.variants import VariantResult, readjust_variant, render_variants


@dataclass
class CaptureResult:
    image: np.ndarray
    raw: np.ndarray
    filters: FilterParams
    manual_adjustments: ManualAdjustments
    mode: str
    filter_string: str
    context: Optional[ContextVector] = None
    settings: Optional[RecommendedSettings] = None
    record: Optional[PreferenceRecord] = None


def _usable_frame(frame: Optional[np.ndarray]) -> bool:
    return (
        frame is not None
        and frame.ndim == 3
        and frame.shape[0] > 0
        and frame.shape[1] > 0
    )


class CaptureSession:
    def __init__(
        self, store: PreferenceStore, cfg: Config = CFG, mode: str = "normal"
    ):
        get_mode(mode)
        self.store = store
        self.cfg = cfg
        self.mode = mode
        self.manual = ManualAdjustments()
        self.box: Optional[TrackingBox] = None
        self.label = "unknown"
        self.sample: Optional[SceneSample] = None
        self.context: Optional[ContextVector] = None
        self.settings: Optional[RecommendedSettings] = None
        self.heuristic: Optional[RecommendedSettings] = None
        self.suggestion: Optional[PreferenceResult] = None
        self.learned: Optional[FilterParams] = None
        self.closed = False
        self.filters = compose_mode_filters(get_mode(mode), self.manual)
        self.origin = FilterOrigin.MODE

    @property
    def filter_string(self) -> str:
        return filter_string(self.filters)

    def _recompose(self) -> None:
        preset = get_mode(self.mode)
        if self.origin is FilterOrigin.LEARNED and self.learned is not None:
            self.filters = compose_learned_filters(self.learned, self.manual)
        elif self.box is not None and self.sample is not None and self.settings is not None:
            self.filters = compose_ai_filters(self.settings, self.sample, preset, self.manual)
            self.origin = FilterOrigin.AI
        else:
            self.filters = compose_mode_filters(preset, self.manual, FilterOrigin.MODE)
            self.origin = FilterOrigin.MODE

    def set_mode(self, mode_id: str) -> FilterParams:
        get_mode(mode_id)
        self.mode = mode_id
        self._recompose()
        return self.filters

    def _apply_sliders(self) -> FilterParams:
        if self.origin is FilterOrigin.LEARNED and self.learned is not None:
            self.filters = compose_learned_filters(self.learned, self.manual)
        elif self.box is not None:
            self.filters = compose_mode_filters(
                get_mode(self.mode), self.manual, FilterOrigin.REGION
            )
            self.origin = FilterOrigin.REGION
        else:
            self.filters = compose_mode_filters(
                get_mode(self.mode), self.manual, FilterOrigin.MODE
            )
            self.origin = FilterOrigin.MODE
        return self.filters

    def set_manual_adjustment(self, name: str, value: float) -> FilterParams:
        self.manual = self.manual.with_value(name, value)
        return self._apply_sliders()

    def reset_adjustments(self) -> FilterParams:
        self.manual = ManualAdjustments()
        return self._apply_sliders()

    def place_marker(
        self, x: float, y: float, width: float = 20.0, height: float = 20.0
    ) -> None:
        self.box = TrackingBox(
            x=float(x), y=float(y), width=float(width), height=float(height)
        )

    def clear_marker(self) -> None:
        self.box = None
        self.label = "unknown"
        self.sample = None
        self.context = None
        self.settings = None
        self.heuristic = None
        self.suggestion = None
        self.learned = None
        self.origin = FilterOrigin.MODE
        self._recompose()

    def _track(
        self, detections: Optional[Sequence[Detection]], w: int, h: int
    ) -> None:
        detections = [
            d for d in detections or () if d.confidence >= self.cfg.min_detection_score
        ]
        if not detections:
            self.label = "unknown"
            return

        if self.box is None:
            bx, by, bw, bh = max(detections, key=lambda d: d.confidence).bbox
            self.box = TrackingBox(x=(bx + bw / 2.0) / w * 100.0, y=(by + bh / 2.0) / h * 100.0)

        det = select_detection(detections, self.box, w, h, self.cfg)
        if det is None:
            self.label = "unknown"
            return
        self.box = follow(self.box, det, w, h, self.cfg)
        self.label = det.label

    def sample_tick(
        self,
        frame: Optional[np.ndarray],
        detections: Optional[Sequence[Detection]] = None,
    ) -> Optional[FilterParams]:
        if self.closed or not _usable_frame(frame):
            return None

        h, w = frame.shape[:2]
        self._track(detections, w, h)

        if self.box is None:
            self.learned = None
            self.origin = FilterOrigin.MODE
            self._recompose()
            return self.filters

        region = region_for_box(self.box, w, h)
        if region[2] <= 0 or region[3] <= 0:
            return None

        sample = sample_scene(frame, region, self.cfg)
        context = ContextVector.from_sample(sample, self.label)
        baseline = generate_settings(sample, self.label, self.cfg)
        result = self.store.apply_preference(context, baseline)

        self.sample = sample
        self.context = context
        self.heuristic = baseline

        if result.source == "user" and self.cfg.auto_apply_preferences:
            self.suggestion = None
            self.settings = result.settings
            self.learned = result.filters
            self.origin = FilterOrigin.LEARNED
            self.filters = compose_learned_filters(result.filters, self.manual)
            return self.filters

        self.suggestion = result if result.source == "user" else None
        self.settings = baseline
        self.learned = None
        self.origin = FilterOrigin.AI
        self.filters = compose_ai_filters(baseline, sample, get_mode(self.mode), self.manual)
        return self.filters

    def apply_suggestion(self) -> bool:
        sug = self.suggestion
        if sug is None or sug.filters is None:
            return False

        if sug.manual_adjustments is not None:
            self.manual = sug.manual_adjustments
        # keep the learned base such that base + scaled sliders == stored filters
        db, dc, ds, dw = scaled_manual(self.manual, FilterOrigin.LEARNED)
        self.learned = FilterParams(
            brightness=sug.filters.brightness - db,
            contrast=sug.filters.contrast - dc,
            saturate=sug.filters.saturate - ds,
            warmth=sug.filters.warmth - dw,
        )
        self.settings = sug.settings
        self.origin = FilterOrigin.LEARNED
        self.filters = compose_learned_filters(self.learned, self.manual)
        self.suggestion = None
        return True

    def capture(
        self, frame: Optional[np.ndarray], liked: bool = False
    ) -> Optional[CaptureResult]:
        if self.closed or not _usable_frame(frame):
            return None

        filters = self.filters
        manual = self.manual
        image = apply_filter_params(frame, filters)

        record = None
        if self.context is not None and self.heuristic is not None:
            record = self.store.record(
                self.context, self.heuristic, filters, self.mode, manual, liked
            )

        result = CaptureResult(
            image=image,
            raw=frame.copy(),
            filters=filters,
            manual_adjustments=manual,
            mode=self.mode,
            filter_string=filter_string(filters),
            context=self.context,
            settings=self.heuristic,
            record=record,
        )
        self.clear_marker()
        return result

    def like(self, capture: CaptureResult) -> Optional[PreferenceRecord]:
        if capture.context is None or capture.settings is None:
            return None
        record = self.store.record(
            capture.context,
            capture.settings,
            capture.filters,
            capture.mode,
            capture.manual_adjustments,
            liked=True,
        )
        capture.record = record
        return record

    def capture_variants(self, frame: Optional[np.ndarray]) -> List[VariantResult]:
        if self.closed or not _usable_frame(frame):
            return []
        variants = render_variants(frame, self.filters, self.manual)
        self.clear_marker()
        return variants

    def readjust_variant(
        self, variant: VariantResult, name: str, value: float
    ) -> VariantResult:
        return readjust_variant(variant, variant.user_adjustments.with_value(name, value))

    def close(self) -> None:
        self.closed = True
        self.box = None
        self.sample = None
        self.context = None
        self.settings = None
        self.heuristic = None
        self.suggestion = None
        self.learned = None
        self.manual = ManualAdjustments()
        self.filters = FilterParams()
        self.origin = FilterOrigin.MODE
