from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Sequence

import numpy as np

from camera_tuning_tool.filters import FilterParams, filter_string
from camera_tuning_tool.session import CaptureResult, CaptureSession
from camera_tuning_tool.tracking import Detection
from camera_tuning_tool.variants import VariantResult

FrameSource = Callable[[], Optional[np.ndarray]]
RenderSink = Callable[[np.ndarray, FilterParams, str], None]
DetectionSource = Callable[[], Optional[Sequence[Detection]]]


class LiveLoop:
    def __init__(
        self,
        session: CaptureSession,
        frame_source: FrameSource,
        render_sink: RenderSink,
        detection_source: Optional[DetectionSource] = None,
    ):
        self.session = session
        self.frame_source = frame_source
        self.render_sink = render_sink
        self.detection_source = detection_source

        self._stop = threading.Event()
        self._running = threading.Event()
        self._render_lock = threading.Lock()
        self._sample_lock = threading.Lock()
        self._threads: List[threading.Thread] = []
        self.frames_rendered = 0
        self.ticks = 0

    def start(self) -> None:
        if self._threads:
            return
        self._stop.clear()
        self._running.set()
        cfg = self.session.cfg
        self._threads = [
            threading.Thread(
                target=self._run,
                args=(self._render_once, cfg.render_interval, self._render_lock),
                name="preview-loop",
                daemon=True,
            ),
            threading.Thread(
                target=self._run,
                args=(self._sample_once, cfg.sample_interval, self._sample_lock),
                name="sampling-loop",
                daemon=True,
            ),
        ]
        for t in self._threads:
            t.start()

    def _run(
        self, step: Callable[[], None], interval: float, lock: threading.Lock
    ) -> None:
        while not self._stop.is_set():
            if not self._running.wait(timeout=interval):
                continue
            if self._stop.is_set():
                break
            t0 = time.perf_counter()
            with lock:
                if self._running.is_set() and not self._stop.is_set():
                    try:
                        step()
                    except Exception as e:
                        print(f"[WARN] {threading.current_thread().name} tick failed: {e}")
            spent = time.perf_counter() - t0
            self._stop.wait(max(0.0, interval - spent))

    def _render_once(self) -> None:
        frame = self.frame_source()
        if frame is None:
            return
        filters = self.session.filters
        self.render_sink(frame, filters, filter_string(filters))
        self.frames_rendered += 1

    def _sample_once(self) -> None:
        frame = self.frame_source()
        detections = self.detection_source() if self.detection_source else None
        self.session.sample_tick(frame, detections)
        self.ticks += 1

    @contextmanager
    def suspended(self) -> Iterator[None]:
        self._running.clear()
        self._render_lock.acquire()
        self._sample_lock.acquire()
        try:
            yield
        finally:
            self._sample_lock.release()
            self._render_lock.release()
            if not self._stop.is_set():
                self._running.set()

    def capture(self, liked: bool = False) -> Optional[CaptureResult]:
        with self.suspended():
            return self.session.capture(self.frame_source(), liked)

    def capture_variants(self) -> List[VariantResult]:
        with self.suspended():
            return self.session.capture_variants(self.frame_source())

    def close(self) -> None:
        self._stop.set()
        self._running.set()
        for t in self._threads:
            t.join()
        self._threads = []
        self._running.clear()
        self.session.close()
