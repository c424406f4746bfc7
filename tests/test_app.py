import json
import sys

import cv2
import numpy as np
import pytest

from camera_tuning_tool import app
from camera_tuning_tool.xmp import read_filter_tags


@pytest.fixture
def input_dir(tmp_path):
    d = tmp_path / "in"
    (d / "sub").mkdir(parents=True)
    img = np.zeros((64, 64, 3), dtype=np.uint8)
    img[...] = (50, 100, 200)
    cv2.imwrite(str(d / "plate.png"), img)
    cv2.imwrite(str(d / "sub" / "bowl.jpg"), img)
    (d / "notes.txt").write_text("skip me")
    return d


def run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["camera-tuning", *argv])
    app.main()


def test_iter_images_filters_extensions(input_dir):
    names = sorted(p.name for p in app.iter_images(input_dir))
    assert names == ["bowl.jpg", "plate.png"]


def test_parse_box():
    assert app.parse_box("1,2,30,40") == (1.0, 2.0, 30.0, 40.0)
    assert app.parse_box(None) is None


def test_batch_writes_tagged_jpegs_and_learns(monkeypatch, tmp_path, input_dir):
    out = tmp_path / "out"
    store = tmp_path / "prefs.json"
    run(
        monkeypatch,
        "--input", str(input_dir),
        "--output", str(out),
        "--label", "pizza",
        "--store", str(store),
        "--warmth", "10",
    )

    plate = out / "plate.jpg"
    assert plate.exists()
    assert (out / "sub" / "bowl.jpg").exists()

    filters, manual, mode = read_filter_tags(plate)
    assert manual.warmth == 10
    assert mode == "normal"
    assert filters.warmth > 0

    records = json.loads(store.read_text("utf-8"))
    assert len(records) == 1
    assert records[0]["usage_count"] == 2
    assert records[0]["context"]["object_type"] == "pizza"


def test_batch_variants(monkeypatch, tmp_path, input_dir):
    out = tmp_path / "out"
    run(monkeypatch, "--input", str(input_dir), "--output", str(out), "--variants", "--no-tags")

    written = sorted(p.name for p in out.rglob("*.jpg"))
    assert len(written) == 10
    assert "plate_natural.jpg" in written
    assert "bowl_dramatic.jpg" in written
    assert read_filter_tags(out / "plate_vibrant.jpg") is None


def test_missing_input_exits(monkeypatch, tmp_path):
    with pytest.raises(SystemExit):
        run(monkeypatch, "--input", str(tmp_path / "nope"))


def _session(**cfg):
    from camera_tuning_tool.config import Config
    from camera_tuning_tool.preferences import PreferenceStore
    from camera_tuning_tool.session import CaptureSession

    return CaptureSession(PreferenceStore(), cfg=Config(**cfg))


def test_default_box_follows_session_config():
    frame = np.full((100, 100, 3), 60, dtype=np.uint8)
    frame[25:75, 25:75] = (50, 100, 200)
    frame[38:62, 38:62] = (200, 180, 60)

    res = app.process_frame(_session(default_region_frac=0.5), frame, "cake", None, False, False)
    assert res["sample"].is_warm_tone

    res = app.process_frame(_session(), frame, "cake", None, False, False)
    assert not res["sample"].is_warm_tone


def test_explicit_box_sets_sampled_size():
    frame = np.full((100, 100, 3), 60, dtype=np.uint8)
    frame[20:60, 20:60] = (50, 100, 200)

    res = app.process_frame(_session(), frame, "cake", (20, 20, 40, 40), False, False)
    dist = res["sample"].hue_distribution
    assert sum(dist.values()) == 42 * 42
    assert dist["warm"] == 40 * 40
