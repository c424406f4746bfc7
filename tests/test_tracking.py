import pytest

from camera_tuning_tool.tracking import (
    Detection,
    TrackingBox,
    follow,
    region_for_box,
    select_detection,
)


def test_select_prefers_nearby_detection():
    box = TrackingBox(50, 50)
    near = Detection("pizza", 0.9, (45, 45, 10, 10))
    far = Detection("cup", 0.95, (80, 80, 10, 10))
    assert select_detection([far, near], box, 100, 100) is near


def test_select_ignores_low_confidence():
    box = TrackingBox(50, 50)
    assert select_detection([Detection("cake", 0.3, (45, 45, 10, 10))], box, 100, 100) is None


def test_follow_smooths_towards_detection():
    box = follow(TrackingBox(50, 50, 20, 20), Detection("cake", 0.9, (60, 60, 20, 20)), 100, 100)
    assert box.x == pytest.approx(56)
    assert box.y == pytest.approx(56)
    assert box.width == pytest.approx(21.5)
    assert box.height == pytest.approx(21.5)


def test_follow_clamps_target_size():
    tiny = follow(TrackingBox(50, 50, 10, 10), Detection("cup", 0.9, (50, 50, 1, 1)), 100, 100)
    assert tiny.width == pytest.approx(10)

    huge = follow(TrackingBox(50, 50, 50, 50), Detection("bowl", 0.9, (0, 0, 100, 100)), 100, 100)
    assert huge.width == pytest.approx(50)


def test_region_for_box():
    assert region_for_box(TrackingBox(50, 50, 20, 20), 100, 100) == (40, 40, 20, 20)
    assert region_for_box(TrackingBox(0, 0, 20, 20), 100, 100) == (0, 0, 20, 20)
    x, y, w, h = region_for_box(TrackingBox(99, 99, 20, 20), 100, 100)
    assert x + w <= 100 and y + h <= 100
