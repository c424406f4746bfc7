from __future__ import annotations

import numbers
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from camera_tuning_tool.config import CFG, Config
from camera_tuning_tool.filters import FilterParams, ManualAdjustments
from camera_tuning_tool.sampler import SceneSample
from camera_tuning_tool.settings import RecommendedSettings
from camera_tuning_tool.storage import PersistenceWorker, PreferenceBackend

VIBRANCY_LEVELS = ("low", "medium", "high")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_number(v: Any) -> bool:
    return isinstance(v, numbers.Real) and not isinstance(v, bool)


@dataclass(frozen=True)
class ContextVector:
    object_type: str
    brightness: float
    color_temp: float
    saturation: float = 50.0
    is_backlit: bool = False
    is_low_light: bool = False
    is_warm_tone: bool = False
    is_cool_tone: bool = False
    color_vibrancy: str = "medium"

    def __post_init__(self):
        if not isinstance(self.object_type, str) or not self.object_type:
            raise TypeError(f"object_type must be a non-empty str, got {self.object_type!r}")
        for name in ("brightness", "color_temp", "saturation"):
            if not _is_number(getattr(self, name)):
                raise TypeError(f"{name} must be a number, got {getattr(self, name)!r}")
        for name in ("is_backlit", "is_low_light", "is_warm_tone", "is_cool_tone"):
            if not isinstance(getattr(self, name), bool):
                raise TypeError(f"{name} must be a bool, got {getattr(self, name)!r}")
        if self.color_vibrancy not in VIBRANCY_LEVELS:
            raise ValueError(f"unknown color_vibrancy {self.color_vibrancy!r}")

    @classmethod
    def from_sample(cls, sample: SceneSample, object_type: str) -> "ContextVector":
        return cls(
            object_type=object_type or "unknown",
            brightness=sample.brightness,
            color_temp=sample.color_temp,
            saturation=sample.saturation,
            is_backlit=sample.is_backlit,
            is_low_light=sample.is_low_light,
            is_warm_tone=sample.is_warm_tone,
            is_cool_tone=sample.is_cool_tone,
            color_vibrancy=sample.color_vibrancy,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContextVector":
        return cls(
            object_type=data["object_type"],
            brightness=data["brightness"],
            color_temp=data["color_temp"],
            saturation=data.get("saturation", 50.0),
            is_backlit=bool(data.get("is_backlit", False)),
            is_low_light=bool(data.get("is_low_light", False)),
            is_warm_tone=bool(data.get("is_warm_tone", False)),
            is_cool_tone=bool(data.get("is_cool_tone", False)),
            color_vibrancy=data.get("color_vibrancy", "medium"),
        )


def similarity(a: ContextVector, b: ContextVector) -> float:
    score = 0.0
    total = 0.0

    if a.object_type == b.object_type:
        score += 0.35
    total += 0.35

    score += max(0.0, 1.0 - abs(a.brightness - b.brightness) / 120.0) * 0.15
    total += 0.15

    score += max(0.0, 1.0 - abs(a.color_temp - b.color_temp) / 60.0) * 0.15
    total += 0.15

    score += max(0.0, 1.0 - abs(a.saturation - b.saturation) / 100.0) * 0.10
    total += 0.10

    if a.is_warm_tone == b.is_warm_tone:
        score += 0.05
    if a.is_cool_tone == b.is_cool_tone:
        score += 0.05
    total += 0.10

    if a.is_backlit == b.is_backlit:
        score += 0.05
    if a.is_low_light == b.is_low_light:
        score += 0.05
    total += 0.10

    return score / total


def merge_values(
    old: Dict[str, Any], new: Dict[str, Any], old_weight: float, new_weight: float
) -> Dict[str, Any]:
    if not _is_number(old_weight) or not _is_number(new_weight):
        raise TypeError("merge weights must be numbers")
    if old_weight <= 0 or new_weight <= 0:
        raise ValueError(f"merge weights must be positive, got {old_weight}/{new_weight}")

    total = old_weight + new_weight
    merged = dict(old)
    for k, v in new.items():
        if _is_number(v) and _is_number(old.get(k)):
            merged[k] = (old[k] * old_weight + v * new_weight) / total
        else:
            merged[k] = v
    return merged


@dataclass
class PreferenceRecord:
    id: str
    context: ContextVector
    settings: Dict[str, Any]
    filters: FilterParams
    mode: str = "normal"
    manual_adjustments: ManualAdjustments = field(default_factory=ManualAdjustments)
    usage_count: float = 1.0
    is_liked: bool = False
    created: str = field(default_factory=_now)
    last_used: str = field(default_factory=_now)

    def merge(
        self,
        settings: Dict[str, Any],
        filters: FilterParams,
        mode: Optional[str],
        manual: Optional[ManualAdjustments],
        weight: float,
        liked: bool,
    ) -> None:
        old = self.usage_count
        self.settings = merge_values(self.settings, settings, old, weight)
        self.filters = FilterParams.from_dict(
            merge_values(self.filters.to_dict(), filters.to_dict(), old, weight)
        )
        if manual is not None:
            self.manual_adjustments = ManualAdjustments.from_dict(
                merge_values(
                    self.manual_adjustments.to_dict(), manual.to_dict(), old, weight
                )
            )
        if mode:
            self.mode = mode
        self.usage_count = old + weight
        self.is_liked = self.is_liked or liked
        self.last_used = _now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "context": self.context.to_dict(),
            "settings": dict(self.settings),
            "filters": self.filters.to_dict(),
            "mode": self.mode,
            "manual_adjustments": self.manual_adjustments.to_dict(),
            "usage_count": self.usage_count,
            "is_liked": self.is_liked,
            "created": self.created,
            "last_used": self.last_used,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PreferenceRecord":
        for key in ("id", "context", "settings", "filters"):
            if key not in data:
                raise KeyError(f"preference record missing {key!r}")
        usage = data.get("usage_count", 1.0)
        if not _is_number(usage) or usage < 1:
            raise ValueError(f"invalid usage_count {usage!r}")
        return cls(
            id=str(data["id"]),
            context=ContextVector.from_dict(data["context"]),
            settings=dict(data["settings"]),
            filters=FilterParams.from_dict(data["filters"]),
            mode=data.get("mode", "normal"),
            manual_adjustments=ManualAdjustments.from_dict(
                data.get("manual_adjustments") or {}
            ),
            usage_count=float(usage),
            is_liked=bool(data.get("is_liked", False)),
            created=data.get("created", _now()),
            last_used=data.get("last_used", _now()),
        )


@dataclass
class PreferenceResult:
    settings: RecommendedSettings
    source: str
    filters: Optional[FilterParams] = None
    record_id: Optional[str] = None
    is_liked: bool = False
    mode: Optional[str] = None
    manual_adjustments: Optional[ManualAdjustments] = None


class PreferenceStore:
    # first match in insertion order wins, not the best match
    def __init__(
        self,
        backend: Optional[PreferenceBackend] = None,
        cfg: Config = CFG,
        worker: Optional[PersistenceWorker] = None,
    ):
        self.cfg = cfg
        self.backend = backend
        self.learning_enabled = True
        self._records: List[PreferenceRecord] = []
        self._worker = worker
        if backend is not None and worker is None:
            self._worker = PersistenceWorker(backend)
        if backend is not None:
            self._records = self._load(backend)

    @staticmethod
    def _load(backend: PreferenceBackend) -> List[PreferenceRecord]:
        try:
            raw = backend.load() or []
        except Exception as e:
            print(f"[WARN] Could not load preferences, starting empty: {e}")
            return []

        records: List[PreferenceRecord] = []
        for item in raw:
            try:
                records.append(PreferenceRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                print(f"[WARN] Skipping malformed preference record: {e}")
        return records

    @property
    def records(self) -> List[PreferenceRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def find_similar(self, context: ContextVector) -> Optional[PreferenceRecord]:
        if not isinstance(context, ContextVector):
            raise TypeError(f"expected ContextVector, got {type(context).__name__}")
        for rec in self._records:
            if similarity(rec.context, context) >= self.cfg.match_threshold:
                return rec
        return None

    def record(
        self,
        context: ContextVector,
        settings: RecommendedSettings,
        filters: FilterParams,
        mode: str = "normal",
        manual: Optional[ManualAdjustments] = None,
        liked: bool = False,
    ) -> Optional[PreferenceRecord]:
        if not self.learning_enabled:
            return None

        weight = self.cfg.liked_weight if liked else 1.0
        settings_d = settings.to_dict()

        rec = self.find_similar(context)
        if rec is not None:
            rec.merge(settings_d, filters, mode, manual, weight, liked)
        else:
            rec = PreferenceRecord(
                id=uuid.uuid4().hex,
                context=context,
                settings=settings_d,
                filters=filters,
                mode=mode,
                manual_adjustments=manual or ManualAdjustments(),
                usage_count=weight,
                is_liked=liked,
            )
            self._records.append(rec)
            self._evict()

        self._persist()
        return rec

    def _evict(self) -> None:
        cap = int(self.cfg.store_capacity)
        if len(self._records) <= cap:
            return
        self._records.sort(key=lambda r: (not r.is_liked, -r.usage_count))
        del self._records[cap:]

    def apply_preference(
        self, context: ContextVector, baseline: RecommendedSettings
    ) -> PreferenceResult:
        if not self.learning_enabled:
            return PreferenceResult(settings=baseline, source="ai")

        rec = self.find_similar(context)
        if rec is None:
            return PreferenceResult(settings=baseline, source="ai")

        user_w, ai_w = self.cfg.liked_blend if rec.is_liked else self.cfg.unliked_blend
        blended = merge_values(rec.settings, baseline.to_dict(), user_w, ai_w)
        return PreferenceResult(
            settings=RecommendedSettings.from_dict(blended),
            source="user",
            filters=rec.filters,
            record_id=rec.id,
            is_liked=rec.is_liked,
            mode=rec.mode,
            manual_adjustments=rec.manual_adjustments,
        )

    def set_learning_enabled(self, enabled: bool) -> None:
        self.learning_enabled = bool(enabled)

    def clear(self) -> None:
        self._records = []
        self._persist()

    def stats(self) -> Dict[str, Any]:
        most_used = sorted(self._records, key=lambda r: -r.usage_count)[:5]
        return {
            "total": len(self._records),
            "liked": sum(1 for r in self._records if r.is_liked),
            "most_used": [r.to_dict() for r in most_used],
            "learning_enabled": self.learning_enabled,
        }

    def _persist(self) -> None:
        if self._worker is None:
            return
        self._worker.submit([r.to_dict() for r in self._records])

    def flush(self, timeout: Optional[float] = None) -> None:
        if self._worker is not None:
            self._worker.flush(timeout)

    def close(self) -> None:
        if self._worker is not None:
            self._worker.shutdown()
