"""
Camera enumeration for the device picker. On Windows, DirectShow names via
pygrabber when it is installed (same order as OpenCV with CAP_DSHOW).
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

import cv2

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CameraInfo:
    index: int
    name: str


def _probe_opencv(max_cameras: int = 8) -> list[CameraInfo]:
    """Try indices 0..max_cameras-1 and keep the ones that open."""
    found: list[CameraInfo] = []
    for i in range(max_cameras):
        cap = cv2.VideoCapture(i)
        try:
            if cap.isOpened():
                found.append(CameraInfo(i, f"Camera {i}"))
        finally:
            cap.release()
    return found


def _directshow_names() -> list[str]:
    try:
        from pygrabber.dshow_graph import FilterGraph
    except ImportError:
        logger.debug("pygrabber not installed; falling back to OpenCV probing")
        return []
    return list(FilterGraph().get_input_devices())


def get_camera_list() -> list[CameraInfo]:
    """Cameras available to capture, in OpenCV index order."""
    if sys.platform == "win32":
        names = _directshow_names()
        if names:
            return [CameraInfo(i, name) for i, name in enumerate(names)]
    return _probe_opencv()
