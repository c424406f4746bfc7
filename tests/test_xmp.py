import cv2
import numpy as np
import pytest

from camera_tuning_tool.filters import FilterParams, ManualAdjustments
from camera_tuning_tool.xmp import (
    XMP_ID,
    embed_filter_tags_jpeg,
    extract_xmp,
    read_filter_tags,
    sidecar_path,
    write_filter_tags,
)

FILTERS = FilterParams(112.5, 95, 130, -12)
MANUAL = ManualAdjustments(brightness=5, warmth=-8)


@pytest.fixture
def jpeg(tmp_path):
    path = tmp_path / "shot.jpg"
    img = np.full((16, 24, 3), 128, dtype=np.uint8)
    assert cv2.imwrite(str(path), img)
    return path


def test_jpeg_tags_round_trip(jpeg):
    assert read_filter_tags(jpeg) is None
    assert write_filter_tags(jpeg, FILTERS, MANUAL, "moody")

    filters, manual, mode = read_filter_tags(jpeg)
    assert filters == FILTERS
    assert manual == MANUAL
    assert mode == "moody"
    assert cv2.imread(str(jpeg)).shape == (16, 24, 3)
    assert not sidecar_path(jpeg).exists()


def test_retagging_replaces_packet(jpeg):
    write_filter_tags(jpeg, FILTERS, MANUAL, "moody")
    write_filter_tags(jpeg, FilterParams(), ManualAdjustments())

    data = jpeg.read_bytes()
    assert data.count(XMP_ID) == 1
    assert b"ProcessedWith:camera-tuning" in extract_xmp(data)

    filters, manual, mode = read_filter_tags(jpeg)
    assert filters == FilterParams()
    assert mode == "moody"


def test_png_gets_sidecar(tmp_path):
    png = tmp_path / "shot.png"
    cv2.imwrite(str(png), np.zeros((4, 4, 3), dtype=np.uint8))
    assert write_filter_tags(png, FILTERS, MANUAL)

    side = sidecar_path(png)
    assert side.name == "shot.png.xmp"
    filters, manual, mode = read_filter_tags(png)
    assert filters == FILTERS
    assert mode is None


def test_not_a_jpeg(tmp_path):
    bogus = tmp_path / "fake.jpg"
    bogus.write_bytes(b"not an image")
    assert not embed_filter_tags_jpeg(bogus, FILTERS, MANUAL)
    assert bogus.read_bytes() == b"not an image"
