"""
Frame clock: paces tick callbacks at a display-like refresh rate.

A callback is registered for the next frame with request_frame(); after it
runs, nothing else happens until someone requests another frame. That keeps
exactly one tick in flight when the tick re-arms the clock only after its own
work is done.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)

FrameCallback = Callable[[], None]


class FrameClock(ABC):
    """Interface for frame-paced schedulers."""

    @abstractmethod
    def request_frame(self, callback: FrameCallback) -> None:
        """Run callback once on the next frame. Replaces any pending callback."""
        ...

    @abstractmethod
    def cancel(self) -> None:
        """Drop the pending callback, if any."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Stop the clock; pending callbacks never run."""
        ...


class ThreadFrameClock(FrameClock):
    """Runs callbacks on one worker thread, at most once every 1/fps seconds."""

    def __init__(self, fps: float = 30.0, name: str = "frame-clock") -> None:
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self._interval_s = 1.0 / fps
        self._cond = threading.Condition()
        self._pending: FrameCallback | None = None
        self._last_frame: float | None = None
        self._closed = False
        self._thread = threading.Thread(target=self._run_loop, name=name, daemon=True)
        self._thread.start()

    @property
    def interval_s(self) -> float:
        return self._interval_s

    def set_fps(self, fps: float) -> None:
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        with self._cond:
            self._interval_s = 1.0 / fps
            self._cond.notify_all()

    def request_frame(self, callback: FrameCallback) -> None:
        with self._cond:
            if self._closed:
                return
            self._pending = callback
            self._cond.notify_all()

    def cancel(self) -> None:
        with self._cond:
            self._pending = None
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._pending = None
            self._cond.notify_all()
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout=2.0)

    def _next_callback(self) -> FrameCallback | None:
        """Block until a callback is pending and its frame slot has arrived."""
        with self._cond:
            while True:
                if self._closed:
                    return None
                if self._pending is None:
                    self._cond.wait()
                    continue
                now = time.perf_counter()
                if self._last_frame is not None:
                    remaining = self._last_frame + self._interval_s - now
                    if remaining > 0:
                        # Woken early by cancel/close/set_fps: re-check everything.
                        self._cond.wait(remaining)
                        continue
                callback = self._pending
                self._pending = None
                self._last_frame = now
                return callback

    def _run_loop(self) -> None:
        while True:
            callback = self._next_callback()
            if callback is None:
                return
            try:
                callback()
            except Exception:  # noqa: BLE001
                logger.exception("Frame callback failed")
