import numpy as np
import pytest

from camera_tuning_tool.filters import (
    LIVE_LIMITS,
    FilterOrigin,
    FilterParams,
    ManualAdjustments,
    ai_nudges,
    apply_filter_params,
    compose_ai_filters,
    compose_learned_filters,
    compose_mode_filters,
    filter_string,
    get_mode,
    mode_ids,
)
from camera_tuning_tool.settings import RecommendedSettings


def test_mode_presets():
    assert mode_ids() == ["normal", "vintage", "dreamy", "vibrant", "moody", "warm"]
    assert get_mode("moody").filters == FilterParams(85, 120, 90, -10)
    with pytest.raises(ValueError):
        get_mode("sepia")


def test_mode_only_sliders_are_one_to_one():
    manual = ManualAdjustments(brightness=10, saturation=10)
    f = compose_mode_filters(get_mode("normal"), manual)
    assert f == FilterParams(110, 100, 110, 0)


def test_region_sliders_are_scaled():
    manual = ManualAdjustments(brightness=10, saturation=10, warmth=-10)
    f = compose_mode_filters(get_mode("normal"), manual, FilterOrigin.REGION)
    assert f == FilterParams(115, 100, 120, -15)


def test_learned_sliders_are_scaled_and_clamped():
    stored = FilterParams(190, 60, 120, 70)
    manual = ManualAdjustments(brightness=50, contrast=-50, saturation=20, warmth=50)
    f = compose_learned_filters(stored, manual)
    assert f == FilterParams(200, 50, 160, 75)
    assert f.within(LIVE_LIMITS)


def test_ai_filters_from_default_settings(make_sample):
    f = compose_ai_filters(
        RecommendedSettings(), make_sample(), get_mode("normal"), ManualAdjustments()
    )
    assert f.brightness == pytest.approx(100)
    assert f.contrast == pytest.approx(103)
    assert f.saturate == pytest.approx(104)
    assert f.warmth == pytest.approx(5)


def test_ai_filters_include_mode_offsets(make_sample):
    settings = RecommendedSettings(exposure_ev=0.8)
    f = compose_ai_filters(
        settings, make_sample(), get_mode("vintage"), ManualAdjustments()
    )
    assert f.brightness == pytest.approx(100 + 6.4 - 5)
    assert f.contrast == pytest.approx(103 + 10)
    assert f.saturate == pytest.approx(104 - 20)
    assert f.warmth == pytest.approx(5 + 25)


def test_ai_nudges(make_sample):
    warm = make_sample(color_vibrancy="low", is_warm_tone=True, dominant_hue=0)
    assert ai_nudges(warm, RecommendedSettings(warmth=15)) == (15.0, 18.0)

    cool = make_sample(color_vibrancy="high", is_cool_tone=True, dominant_hue=200)
    assert ai_nudges(cool, RecommendedSettings(warmth=5)) == (-5.0, -25.0)

    # already warm enough: only the hue nudge applies
    assert ai_nudges(warm, RecommendedSettings(warmth=20)) == (15.0, 8.0)


def test_filter_string():
    assert filter_string(FilterParams()) == "brightness(1) contrast(1) saturate(1)"
    assert (
        filter_string(FilterParams(110, 95, 120, 25))
        == "brightness(1.1) contrast(0.95) saturate(1.2) sepia(0.1)"
    )
    assert filter_string(FilterParams(warmth=-10)).endswith(" hue-rotate(-6deg)")


def test_filter_string_clamps():
    assert filter_string(FilterParams(brightness=500)).startswith("brightness(2) ")


def test_manual_adjustment_bounds():
    m = ManualAdjustments().with_value("contrast", -50)
    assert m.contrast == -50
    with pytest.raises(ValueError):
        m.with_value("contrast", 51)
    with pytest.raises(ValueError):
        m.with_value("exposure", 1)


def test_apply_neutral_is_identity():
    rng = np.random.default_rng(7)
    img = rng.integers(0, 256, size=(16, 16, 3), dtype=np.uint8)
    np.testing.assert_array_equal(apply_filter_params(img, FilterParams()), img)


def test_apply_brightness():
    img = np.full((4, 4, 3), 200, dtype=np.uint8)
    out = apply_filter_params(img, FilterParams(brightness=50))
    assert (out == 100).all()


def test_apply_warmth_shifts_red_or_blue():
    img = np.full((4, 4, 3), 100, dtype=np.uint8)
    warm = apply_filter_params(img, FilterParams(warmth=50))
    assert tuple(warm[0, 0]) == (100, 120, 140)
    cool = apply_filter_params(img, FilterParams(warmth=-50))
    assert tuple(cool[0, 0]) == (140, 120, 100)


def test_apply_rejects_bad_shape():
    with pytest.raises(ValueError):
        apply_filter_params(np.zeros((4, 4), dtype=np.uint8), FilterParams())
