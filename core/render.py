"""
Render surface helpers: copy a camera frame into the shared pixel buffer and
draw the bar box and arm polylines on it.
"""

from __future__ import annotations

import cv2
import numpy as np

from core.config import TrackerConfig
from core.models import ArmJoints, BoundingBox, Keypoint


def new_surface(config: TrackerConfig) -> np.ndarray:
    """Allocate a BGR buffer of the configured render-surface size."""
    return np.zeros((config.surface_height, config.surface_width, 3), dtype=np.uint8)


def copy_into(frame_bgr: np.ndarray, buffer: np.ndarray) -> np.ndarray:
    """Write frame into buffer in place, scaling to the buffer size when they differ."""
    h, w = buffer.shape[:2]
    if frame_bgr.ndim == 2:
        frame_bgr = cv2.cvtColor(frame_bgr, cv2.COLOR_GRAY2BGR)
    if frame_bgr.shape[:2] == (h, w):
        np.copyto(buffer, frame_bgr)
    else:
        buffer[...] = cv2.resize(frame_bgr, (w, h), interpolation=cv2.INTER_LINEAR)
    return buffer


def _point(kp: Keypoint) -> tuple[int, int]:
    return kp.rounded()


def draw_box(surface: np.ndarray, box: BoundingBox, color: tuple[int, int, int], thickness: int) -> None:
    top_left = (int(round(box.x)), int(round(box.y)))
    bottom_right = (int(round(box.x + box.width)), int(round(box.y + box.height)))
    cv2.rectangle(surface, top_left, bottom_right, color, thickness)


def draw_arm(
    surface: np.ndarray,
    joints: tuple[Keypoint, Keypoint, Keypoint],
    color: tuple[int, int, int],
    thickness: int,
) -> None:
    pts = np.array([_point(kp) for kp in joints], dtype=np.int32).reshape(-1, 1, 2)
    cv2.polylines(surface, [pts], isClosed=False, color=color, thickness=thickness)


def draw_overlays(
    surface: np.ndarray,
    box: BoundingBox | None,
    arms: ArmJoints | None,
    config: TrackerConfig,
) -> np.ndarray:
    """Draw whatever is present this tick; returns surface for chaining."""
    if box is not None:
        draw_box(surface, box, config.box_color, config.line_width)
    if arms is not None:
        draw_arm(surface, arms.left_arm, config.left_arm_color, config.line_width)
        draw_arm(surface, arms.right_arm, config.right_arm_color, config.line_width)
    return surface
