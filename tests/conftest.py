from __future__ import annotations

from typing import Any, Callable, Iterable

import numpy as np
import pytest

from core.clock import FrameClock
from core.config import TrackerConfig
from core.coordinator import FrameCoordinator
from core.errors import CaptureError
from core.models import Keypoint, NormalizedBox, ScoredBox
from services.base import DetectionService, PoseService


def scored(score: float, y: float = 0.1, x: float = 0.2, h: float = 0.1, w: float = 0.1) -> ScoredBox:
    return ScoredBox(score=score, box=NormalizedBox(y=y, x=x, height=h, width=w))


def pose_keypoints(offset: float = 0.0) -> list[Keypoint]:
    return [Keypoint(x=10.0 * i + offset, y=5.0 * i + offset, score=0.9) for i in range(17)]


class FakeDetector(DetectionService):
    service_id = "fake_detector"
    display_name = "Fake Detector"

    def __init__(self, outputs: Iterable[Any] = (), ready: bool = True) -> None:
        self._outputs = list(outputs)
        self._ready = ready
        self.calls: list[float] = []
        self.on_detect: Callable[[], None] | None = None

    @staticmethod
    def default_settings() -> dict[str, Any]:
        return {"max_results": 10}

    def init(self, settings: dict[str, Any]) -> None:
        self._ready = True

    @property
    def ready(self) -> bool:
        return self._ready

    def detect(self, frame_bgr: np.ndarray, timestamp_ms: float) -> list[ScoredBox]:
        self.calls.append(timestamp_ms)
        if self.on_detect is not None:
            self.on_detect()
        out = self._outputs.pop(0) if self._outputs else []
        if isinstance(out, Exception):
            raise out
        return out

    def close(self) -> None:
        self._ready = False


class FakePose(PoseService):
    service_id = "fake_pose"
    display_name = "Fake Pose"

    def __init__(self, outputs: Iterable[Any] = (), ready: bool = True) -> None:
        self._outputs = list(outputs)
        self._ready = ready
        self.on_estimate: Callable[[], None] | None = None

    @staticmethod
    def default_settings() -> dict[str, Any]:
        return {"min_pose_detection_confidence": 0.5}

    def init(self, settings: dict[str, Any]) -> None:
        self._ready = True

    @property
    def ready(self) -> bool:
        return self._ready

    def estimate(self, frame_bgr: np.ndarray, timestamp_ms: float) -> list[Keypoint] | None:
        if self.on_estimate is not None:
            self.on_estimate()
        out = self._outputs.pop(0) if self._outputs else None
        if isinstance(out, Exception):
            raise out
        return out

    def close(self) -> None:
        self._ready = False


class FakeCapture:
    """Stands in for VideoCaptureSource; frames=None means an endless camera."""

    def __init__(self, frames: list[np.ndarray] | None = None, fail: bool = False) -> None:
        self._frames = frames
        self._fail = fail
        self.opened = False
        self.start_calls = 0
        self.stop_calls = 0

    def start(self, camera_index: int = 0) -> None:
        self.start_calls += 1
        if self._fail:
            raise CaptureError("permission denied")
        self.opened = True

    def stop(self) -> None:
        if self.opened:
            self.stop_calls += 1
        self.opened = False

    def read(self) -> np.ndarray | None:
        if not self.opened:
            return None
        if self._frames is None:
            return np.full((240, 320, 3), 127, dtype=np.uint8)
        if not self._frames:
            return None
        return self._frames.pop(0)


class ManualClock(FrameClock):
    """Frame clock driven by the test: fire() runs the pending callback."""

    def __init__(self) -> None:
        self.pending: Callable[[], Any] | None = None
        self.requests = 0
        self.closed = False

    def request_frame(self, callback: Callable[[], Any]) -> None:
        self.requests += 1
        self.pending = callback

    def cancel(self) -> None:
        self.pending = None

    def close(self) -> None:
        self.closed = True
        self.pending = None

    def fire(self) -> Any:
        assert self.pending is not None, "no frame requested"
        callback, self.pending = self.pending, None
        return callback()


class StepClock:
    """Millisecond time source returning preset values, then repeating the last one."""

    def __init__(self, values: Iterable[float]) -> None:
        self._values = list(values)
        self._last = 0.0

    def __call__(self) -> float:
        if self._values:
            self._last = self._values.pop(0)
        return self._last


@pytest.fixture
def config() -> TrackerConfig:
    return TrackerConfig(surface_width=100, surface_height=100)


@pytest.fixture
def make_coordinator(config):
    created: list[FrameCoordinator] = []

    def _make(
        detector: DetectionService | None = None,
        pose: PoseService | None = None,
        capture: FakeCapture | None = None,
        clock: ManualClock | None = None,
        times: Iterable[float] = (),
        results: list | None = None,
        stopped: list | None = None,
    ) -> FrameCoordinator:
        coord = FrameCoordinator(
            detector=detector or FakeDetector(),
            pose=pose or FakePose(),
            capture=capture or FakeCapture(),
            clock=clock or ManualClock(),
            config=config,
            on_result=results.append if results is not None else None,
            on_stopped=stopped.append if stopped is not None else None,
            now_ms=StepClock(times),
        )
        created.append(coord)
        return coord

    yield _make
    for coord in created:
        coord.close()
