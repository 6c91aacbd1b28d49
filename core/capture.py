"""
Video capture: webcam by index or a recorded video file. Yields BGR frames.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import cv2
import numpy as np

from core.errors import CaptureError

logger = logging.getLogger(__name__)


class VideoCaptureSource:
    """Capture device: start() acquires the stream, stop() releases it."""

    def __init__(self) -> None:
        self._cap: cv2.VideoCapture | None = None
        self._file_path: str | None = None  # None = webcam
        self._camera_index: int = 0

    def select_file(self, path: str | Path | None) -> None:
        """Use a video file on the next start() (None switches back to the camera)."""
        self._file_path = str(path) if path is not None else None

    def start(self, camera_index: int = 0) -> None:
        """Open the selected file, or the camera at camera_index. Raises CaptureError."""
        self.stop()
        if self._file_path is not None:
            cap = cv2.VideoCapture(self._file_path)
            what = f"video file {self._file_path!r}"
        else:
            # On Windows, use DirectShow so index order matches enumerated camera list (pygrabber)
            if sys.platform == "win32":
                cap = cv2.VideoCapture(camera_index, cv2.CAP_DSHOW)
            else:
                cap = cv2.VideoCapture(camera_index)
            what = f"camera {camera_index}"
            self._camera_index = camera_index
        if not cap.isOpened():
            cap.release()
            raise CaptureError(
                f"Could not open {what}. Check that it is connected and that camera access is permitted."
            )
        self._cap = cap
        logger.info("Opened %s", what)

    def stop(self) -> None:
        """Release the stream. Safe to call when nothing is open."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Released capture device")

    def is_opened(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def read(self) -> np.ndarray | None:
        """Next BGR frame, or None when the stream ended or is closed."""
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        if not ok:
            return None
        return frame

    def get_fps(self) -> float:
        """Source FPS, 30 when unknown."""
        if self._cap is None:
            return 30.0
        fps = self._cap.get(cv2.CAP_PROP_FPS)
        return fps if fps > 0 else 30.0

    def get_size(self) -> tuple[int, int]:
        """(width, height) of the stream."""
        if self._cap is None:
            return 0, 0
        w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        return w, h

    @property
    def file_path(self) -> str | None:
        return self._file_path

    @property
    def camera_index(self) -> int:
        return self._camera_index
