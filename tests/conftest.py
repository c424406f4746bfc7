import numpy as np
import pytest

from camera_tuning_tool.sampler import SceneSample


@pytest.fixture
def make_sample():
    def _make(**kw):
        base = dict(
            brightness=128,
            env_brightness=128,
            dynamic_range=150,
            color_temp=0,
            saturation=40,
            is_backlit=False,
            is_low_light=False,
            is_warm_tone=False,
            is_cool_tone=False,
            color_vibrancy="medium",
            dominant_hue=120,
        )
        base.update(kw)
        return SceneSample(**base)

    return _make


@pytest.fixture
def gray_frame():
    return np.full((100, 100, 3), 60, dtype=np.uint8)


@pytest.fixture
def warm_frame():
    frame = np.zeros((100, 100, 3), dtype=np.uint8)
    frame[...] = (50, 100, 200)
    return frame
