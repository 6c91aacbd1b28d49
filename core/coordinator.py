"""
Frame coordinator: owns a tracking session and runs the per-frame
capture -> detect/pose -> history -> velocity -> draw cycle.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Callable, Sequence

from core.clock import FrameClock
from core.config import TrackerConfig
from core.errors import CaptureError, InferenceError, ModelLoadError
from core.models import (
    ArmJoints,
    Keypoint,
    ObservationHistory,
    Readout,
    ScoredBox,
    SessionState,
    TickResult,
    VelocityEstimate,
    select_best_box,
)
from core.render import copy_into, draw_overlays, new_surface
from core.velocity import velocity_from_history

if TYPE_CHECKING:
    import numpy as np

    from core.capture import VideoCaptureSource
    from services.base import DetectionService, PoseService

logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class FrameCoordinator:
    """
    Single coordinating loop for one tracker.

    start()/stop() are called from the UI thread; on_tick() runs on the frame
    clock's thread. A tick checks that its session is still the live one
    before doing any work and again before committing results, so stop() is
    just a state flip as far as ticks are concerned.
    """

    def __init__(
        self,
        detector: DetectionService,
        pose: PoseService,
        capture: VideoCaptureSource,
        clock: FrameClock,
        config: TrackerConfig | None = None,
        on_result: Callable[[TickResult], None] | None = None,
        on_stopped: Callable[[Readout], None] | None = None,
        now_ms: Callable[[], float] = monotonic_ms,
    ) -> None:
        self._detector = detector
        self._pose = pose
        self._capture = capture
        self._clock = clock
        self._config = config or TrackerConfig()
        self._on_result = on_result
        self._on_stopped = on_stopped
        self._now_ms = now_ms

        self._state = SessionState.IDLE
        self._session_ids = itertools.count(1)
        self._session_id = 0
        self._history = ObservationHistory()
        self._readout = Readout()
        self._buffer: np.ndarray | None = None
        # Settings frozen for the running session.
        self._session_config = self._config
        # Guards the capture handle and session fields shared with the tick thread.
        self._lock = threading.RLock()
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="inference")

    # --- properties ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is SessionState.ACTIVE

    @property
    def history(self) -> ObservationHistory:
        return self._history

    @property
    def readout(self) -> Readout:
        return self._readout

    @property
    def config(self) -> TrackerConfig:
        return self._config

    @property
    def session_id(self) -> int:
        return self._session_id

    def set_config(self, config: TrackerConfig) -> None:
        """New settings apply from the next start()."""
        with self._lock:
            self._config = config

    # --- lifecycle ---

    def start(self) -> None:
        """
        Begin a new session. Raises ModelLoadError when a model is not ready
        and CaptureError when the camera cannot be opened. A model error changes
        nothing; a capture error leaves the coordinator Idle.
        """
        not_ready = [s.display_name or s.service_id for s in (self._detector, self._pose) if not s.ready]
        if not_ready:
            raise ModelLoadError(f"Model not loaded yet: {', '.join(not_ready)}. Please wait for it to load.")

        with self._lock:
            if self.is_active:
                logger.info("Restarting session %d", self._session_id)
                self._end_session()
            try:
                self._capture.start(self._config.camera_index)
            except CaptureError:
                logger.error("Could not start capture", exc_info=True)
                raise
            self._history.clear()
            self._session_config = self._config
            self._readout = Readout()
            self._buffer = new_surface(self._config)
            self._session_id = next(self._session_ids)
            self._state = SessionState.ACTIVE
            session_id = self._session_id
            self._schedule(session_id)
        logger.info("Tracking session %d started", session_id)

    def stop(self) -> None:
        """End the session; no-op when already Idle."""
        with self._lock:
            if not self.is_active:
                return
            session_id = self._session_id
            self._end_session()
            if len(self._history) >= 2:
                self._update_velocity()
            readout = self._readout
        logger.info("Tracking session %d stopped after %d observations", session_id, len(self._history))
        if self._on_stopped is not None:
            self._on_stopped(readout)

    def close(self) -> None:
        """Stop and shut down the inference pool."""
        self.stop()
        self._executor.shutdown(wait=True)

    def _end_session(self) -> None:
        self._state = SessionState.IDLE
        self._clock.cancel()
        self._capture.stop()

    def _schedule(self, session_id: int) -> None:
        self._clock.request_frame(lambda: self.on_tick(session_id))

    def _is_live(self, session_id: int) -> bool:
        return self.is_active and self._session_id == session_id

    # --- per frame ---

    def on_tick(self, session_id: int) -> TickResult | None:
        """One capture/detect/draw iteration. Returns None when the tick was discarded."""
        with self._lock:
            if not self._is_live(session_id):
                return None
            frame = self._capture.read()
            timestamp_ms = self._now_ms()
            if frame is None:
                ended = True
            else:
                ended = False
                buffer = self._buffer
                copy_into(frame, buffer)
        if ended:
            logger.info("Capture stream ended")
            self.stop()
            return None

        det_future = self._executor.submit(self._run_detection, buffer, timestamp_ms)
        pose_future = self._executor.submit(self._run_pose, buffer, timestamp_ms)
        candidates = det_future.result()
        keypoints = pose_future.result()

        with self._lock:
            if not self._is_live(session_id):
                logger.debug("Discarding tick for ended session %d", session_id)
                return None
            cfg = self._session_config
            box = select_best_box(
                candidates, cfg.confidence_threshold, cfg.surface_width, cfg.surface_height
            )
            velocity = None
            if box is not None:
                self._history.append(box, timestamp_ms)
                self._readout = self._readout.with_box(box)
                if len(self._history) >= 2:
                    velocity = self._update_velocity()
            arms = self._arms_from(keypoints)
            if arms is not None:
                self._readout = self._readout.with_arms(arms)
            surface = draw_overlays(buffer.copy(), box, arms, cfg)
            result = TickResult(
                session_id=session_id,
                timestamp_ms=timestamp_ms,
                box=box,
                arms=arms,
                velocity=velocity,
                readout=self._readout,
                frame=surface,
                history_length=len(self._history),
            )
            # start()/stop() must not interleave between the live check and request_frame.
            if self._on_result is not None:
                self._on_result(result)
            if self._is_live(session_id):
                self._schedule(session_id)
        return result

    def _update_velocity(self) -> VelocityEstimate | None:
        estimate = velocity_from_history(self._history)
        if estimate is None:
            logger.debug("Zero elapsed time between observations; keeping previous velocity")
            return None
        self._readout = self._readout.with_velocity(estimate)
        return estimate

    def _run_detection(self, buffer: np.ndarray, timestamp_ms: float) -> Sequence[ScoredBox]:
        try:
            return self._detector.detect(buffer, timestamp_ms)
        except Exception:  # noqa: BLE001
            logger.exception("Detection failed; treating frame as no detection")
            return ()

    def _run_pose(self, buffer: np.ndarray, timestamp_ms: float) -> Sequence[Keypoint] | None:
        try:
            return self._pose.estimate(buffer, timestamp_ms)
        except Exception:  # noqa: BLE001
            logger.exception("Pose estimation failed; treating frame as no pose")
            return None

    @staticmethod
    def _arms_from(keypoints: Sequence[Keypoint] | None) -> ArmJoints | None:
        if not keypoints:
            return None
        try:
            return ArmJoints.from_keypoints(keypoints)
        except InferenceError:
            logger.exception("Pose output does not follow the 17-keypoint order")
            return None
