"""
MediaPipe Pose Landmarker as the pose service, reduced to the 17-keypoint
COCO body order.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import cv2
import mediapipe as mp
import numpy as np

from core.errors import InferenceError, ModelLoadError
from core.model_loader import POSE_MODEL, get_model_path
from core.models import Keypoint
from services.base import PoseService, VideoTimestamps

logger = logging.getLogger(__name__)

# MediaPipe pose landmark index for each COCO keypoint:
# nose, eyes, ears, shoulders, elbows, wrists, hips, knees, ankles (left before right).
MEDIAPIPE_TO_COCO = (0, 2, 5, 7, 8, 11, 12, 13, 14, 15, 16, 23, 24, 25, 26, 27, 28)
MEDIAPIPE_LANDMARK_COUNT = 33


def landmarks_to_coco(landmarks: Sequence[Any], width: int, height: int) -> list[Keypoint]:
    """Pick the COCO subset of normalized MediaPipe landmarks and scale to pixels."""
    if len(landmarks) != MEDIAPIPE_LANDMARK_COUNT:
        raise InferenceError(
            f"expected {MEDIAPIPE_LANDMARK_COUNT} pose landmarks, got {len(landmarks)}"
        )
    keypoints = []
    for idx in MEDIAPIPE_TO_COCO:
        lm = landmarks[idx]
        visibility = lm.visibility if lm.visibility is not None else 0.0
        keypoints.append(Keypoint(x=lm.x * width, y=lm.y * height, score=float(visibility)))
    return keypoints


class MediaPipePoseEstimator(PoseService):
    service_id = "pose"
    display_name = "Pose"

    def __init__(self) -> None:
        self._landmarker: mp.tasks.vision.PoseLandmarker | None = None
        self._timestamps = VideoTimestamps()

    @staticmethod
    def default_settings() -> dict[str, Any]:
        return {
            "min_pose_detection_confidence": 0.5,
            "min_pose_presence_confidence": 0.5,
            "min_tracking_confidence": 0.5,
        }

    def init(self, settings: dict[str, Any]) -> None:
        self.close()
        model_path = str(get_model_path(POSE_MODEL))
        base_options = mp.tasks.BaseOptions(model_asset_path=model_path)
        try:
            options = mp.tasks.vision.PoseLandmarkerOptions(
                base_options=base_options,
                running_mode=mp.tasks.vision.RunningMode.VIDEO,
                num_poses=1,
                min_pose_detection_confidence=float(
                    settings.get("min_pose_detection_confidence", 0.5)
                ),
                min_pose_presence_confidence=float(
                    settings.get("min_pose_presence_confidence", 0.5)
                ),
                min_tracking_confidence=float(settings.get("min_tracking_confidence", 0.5)),
            )
            self._landmarker = mp.tasks.vision.PoseLandmarker.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            raise ModelLoadError(f"{self.display_name} failed to initialize: {e}") from e
        self._timestamps.reset()
        logger.info("%s ready (%s)", self.display_name, POSE_MODEL)

    @property
    def ready(self) -> bool:
        return self._landmarker is not None

    def estimate(self, frame_bgr: np.ndarray, timestamp_ms: float) -> list[Keypoint] | None:
        if self._landmarker is None:
            return None
        h, w = frame_bgr.shape[:2]
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        result = self._landmarker.detect_for_video(mp_image, self._timestamps.next(timestamp_ms))
        if not result.pose_landmarks:
            return None
        return landmarks_to_coco(result.pose_landmarks[0], w, h)

    def close(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
