import numpy as np

from camera_tuning_tool.sampler import default_region, sample_scene
from camera_tuning_tool.settings import (
    ANGLE_15,
    ANGLE_45,
    ANGLE_60,
    ANGLE_90,
    TIP_NIGHT_MODE,
    RecommendedSettings,
    generate_settings,
)


def test_dark_pizza(make_sample):
    s = generate_settings(
        make_sample(brightness=60, env_brightness=55, color_temp=0), "pizza"
    )
    assert s.exposure_ev >= 0.8
    assert s.exposure_desc == "dark"
    assert s.saturation == 65
    assert s.angle == ANGLE_90
    assert s.warmth == 20


def test_dark_pizza_from_real_frame():
    frame = np.full((100, 100, 3), 60, dtype=np.uint8)
    sample = sample_scene(frame, default_region(frame.shape))
    s = generate_settings(sample, "pizza")
    assert s.exposure_ev >= 0.8
    assert s.saturation == 65
    assert s.angle == ANGLE_90


def test_backlit_wins_over_low_light(make_sample):
    s = generate_settings(make_sample(is_backlit=True, is_low_light=True), "cake")
    assert s.exposure_ev == 1.5
    assert s.hdr_recommended
    assert TIP_NIGHT_MODE not in s.tips


def test_low_light_adds_tip(make_sample):
    s = generate_settings(make_sample(is_low_light=True), "unknown")
    assert s.exposure_ev == 1.2
    assert s.tips == [TIP_NIGHT_MODE]


def test_bright_scene(make_sample):
    assert generate_settings(make_sample(brightness=200), "unknown").exposure_ev == -0.7


def test_white_balance(make_sample):
    warm = generate_settings(make_sample(color_temp=30), "unknown")
    assert warm.white_balance == "cloudy"
    assert warm.warmth == -10

    cold = generate_settings(make_sample(color_temp=-30), "unknown")
    assert cold.white_balance == "tungsten"
    assert cold.warmth == 25

    food = generate_settings(make_sample(color_temp=0), "fork")
    assert food.white_balance == "auto"
    assert food.warmth == 15


def test_baked_food_keeps_minimum_warmth(make_sample):
    s = generate_settings(make_sample(color_temp=40), "donut")
    assert s.white_balance == "cloudy"
    assert s.warmth == 20
    assert s.angle == ANGLE_45


def test_dynamic_range_drives_contrast_and_hdr(make_sample):
    flat = generate_settings(make_sample(dynamic_range=50), "unknown")
    assert flat.contrast == 65 and flat.contrast_desc == "increase"
    assert not flat.hdr_recommended

    wide = generate_settings(make_sample(dynamic_range=190), "unknown")
    assert wide.contrast == 55
    assert wide.hdr_recommended

    harsh = generate_settings(make_sample(dynamic_range=210), "unknown")
    assert harsh.contrast == 40 and harsh.contrast_desc == "decrease"


def test_category_table(make_sample):
    sample = make_sample()
    assert generate_settings(sample, "banana").saturation == 70
    drink = generate_settings(sample, "wine glass")
    assert (drink.saturation, drink.angle) == (45, ANGLE_15)
    bowl = generate_settings(sample, "bowl")
    assert (bowl.saturation, bowl.angle) == (60, ANGLE_60)


def test_unknown_label_gets_defaults(make_sample):
    assert generate_settings(make_sample(), "laptop") == RecommendedSettings()


def test_from_dict_ignores_unknown_keys():
    s = RecommendedSettings.from_dict({"exposure_ev": 0.4, "legacy": 1, "tips": None})
    assert s.exposure_ev == 0.4
    assert s.tips == []
