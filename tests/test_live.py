import time

import numpy as np
import pytest

from camera_tuning_tool.config import Config
from camera_tuning_tool.live import LiveLoop
from camera_tuning_tool.preferences import PreferenceStore
from camera_tuning_tool.session import CaptureSession
from camera_tuning_tool.tracking import Detection

FAST = Config(sample_interval=0.01, render_interval=0.005)


def wait_for(cond, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if cond():
            return True
        time.sleep(0.005)
    return False


@pytest.fixture
def frame():
    f = np.zeros((60, 60, 3), dtype=np.uint8)
    f[...] = (50, 100, 200)
    return f


@pytest.fixture
def loop(frame):
    rendered = []
    session = CaptureSession(PreferenceStore(), cfg=FAST)
    lp = LiveLoop(
        session,
        lambda: frame,
        lambda img, filters, css: rendered.append((filters, css)),
        lambda: [Detection("cake", 0.9, (20, 20, 20, 20))],
    )
    lp.rendered = rendered
    yield lp
    lp.close()


def test_loops_render_and_sample(loop):
    loop.start()
    assert wait_for(lambda: loop.ticks > 0 and loop.frames_rendered > 0)
    assert wait_for(lambda: loop.session.label == "cake")
    filters, css = loop.rendered[-1]
    assert css.startswith("brightness(")


def test_capture_pauses_loops(loop):
    loop.start()
    assert wait_for(lambda: loop.ticks > 0)
    cap = loop.capture(liked=True)
    assert cap is not None
    assert cap.record is not None and cap.record.is_liked

    with loop.suspended():
        rendered, ticks = loop.frames_rendered, loop.ticks
        time.sleep(0.05)
        assert (loop.frames_rendered, loop.ticks) == (rendered, ticks)

    assert wait_for(lambda: loop.frames_rendered > rendered)


def test_capture_variants_through_loop(loop):
    loop.start()
    assert wait_for(lambda: loop.ticks > 0)
    assert len(loop.capture_variants()) == 5


def test_failing_sink_does_not_stop_sampling(frame):
    def broken_sink(img, filters, css):
        raise RuntimeError("display gone")

    session = CaptureSession(PreferenceStore(), cfg=FAST)
    lp = LiveLoop(session, lambda: frame, broken_sink)
    lp.start()
    try:
        assert wait_for(lambda: lp.ticks > 2)
        assert lp.frames_rendered == 0
    finally:
        lp.close()
    assert session.closed


def test_close_joins_threads(loop):
    loop.start()
    loop.close()
    assert loop.session.closed
    assert not loop._threads
