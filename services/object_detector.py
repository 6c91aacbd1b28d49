"""
MediaPipe Object Detector (EfficientDet-Lite0, COCO classes) as the bar detection service.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

import cv2
import mediapipe as mp
import numpy as np

from core.errors import ModelLoadError
from core.model_loader import DETECTOR_MODEL, get_model_path
from core.models import NormalizedBox, ScoredBox
from services.base import DetectionService, VideoTimestamps

logger = logging.getLogger(__name__)


def _clamp01(v: float) -> float:
    return max(0.0, min(v, 1.0))


def boxes_from_detections(detections: Iterable[Any], width: int, height: int) -> list[ScoredBox]:
    """
    Convert MediaPipe detections (pixel bounding_box + categories) into
    normalized candidates. Boxes are clipped to the frame.
    """
    out: list[ScoredBox] = []
    if width <= 0 or height <= 0:
        return out
    for det in detections:
        label = ""
        score = 0.0
        if det.categories:
            c = det.categories[0]
            label = c.category_name or ""
            score = c.score or 0.0
        box = det.bounding_box
        x0 = _clamp01(box.origin_x / width)
        y0 = _clamp01(box.origin_y / height)
        x1 = _clamp01((box.origin_x + box.width) / width)
        y1 = _clamp01((box.origin_y + box.height) / height)
        out.append(
            ScoredBox(
                score=float(score),
                box=NormalizedBox(y=y0, x=x0, height=y1 - y0, width=x1 - x0),
                label=label,
            )
        )
    return out


class MediaPipeObjectDetector(DetectionService):
    service_id = "object_detector"
    display_name = "Object Detector"

    def __init__(self) -> None:
        self._detector: mp.tasks.vision.ObjectDetector | None = None
        self._timestamps = VideoTimestamps()

    @staticmethod
    def default_settings() -> dict[str, Any]:
        return {
            "max_results": 10,
            "category_allowlist": [],
        }

    def init(self, settings: dict[str, Any]) -> None:
        self.close()
        model_path = str(get_model_path(DETECTOR_MODEL))
        base_options = mp.tasks.BaseOptions(model_asset_path=model_path)
        allowlist = list(settings.get("category_allowlist") or [])
        option_kwargs: dict[str, Any] = {
            "base_options": base_options,
            "running_mode": mp.tasks.vision.RunningMode.VIDEO,
            "max_results": int(settings.get("max_results", 10)),
            # The tracker applies its own strict threshold.
            "score_threshold": 0.0,
        }
        if allowlist:
            option_kwargs["category_allowlist"] = allowlist
        try:
            options = mp.tasks.vision.ObjectDetectorOptions(**option_kwargs)
            self._detector = mp.tasks.vision.ObjectDetector.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            raise ModelLoadError(f"{self.display_name} failed to initialize: {e}") from e
        self._timestamps.reset()
        logger.info("%s ready (%s)", self.display_name, DETECTOR_MODEL)

    @property
    def ready(self) -> bool:
        return self._detector is not None

    def detect(self, frame_bgr: np.ndarray, timestamp_ms: float) -> list[ScoredBox]:
        if self._detector is None:
            return []
        h, w = frame_bgr.shape[:2]
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        result = self._detector.detect_for_video(mp_image, self._timestamps.next(timestamp_ms))
        return boxes_from_detections(result.detections or [], w, h)

    def close(self) -> None:
        if self._detector is not None:
            self._detector.close()
            self._detector = None
