"""
Base interfaces for the two inference services the tracker consumes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import numpy as np

    from core.models import Keypoint, ScoredBox


class InferenceService(ABC):
    """A pretrained model behind init/ready/close. Subclass and implement all methods."""

    service_id: str = ""
    display_name: str = ""

    @staticmethod
    @abstractmethod
    def default_settings() -> dict[str, Any]:
        """Return default settings dict (e.g. min_pose_detection_confidence)."""
        ...

    @abstractmethod
    def init(self, settings: dict[str, Any]) -> None:
        """Load the model with the given settings. Raises ModelLoadError."""
        ...

    @property
    @abstractmethod
    def ready(self) -> bool:
        """True once init() succeeded and until close()."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the model."""
        ...


class DetectionService(InferenceService):
    @abstractmethod
    def detect(self, frame_bgr: np.ndarray, timestamp_ms: float) -> list[ScoredBox]:
        """
        Detect objects in one frame. Returns every candidate with its score
        and a box normalized to the frame size; filtering is up to the caller.
        """
        ...


class PoseService(InferenceService):
    @abstractmethod
    def estimate(self, frame_bgr: np.ndarray, timestamp_ms: float) -> list[Keypoint] | None:
        """
        Estimate one body pose. Returns 17 pixel keypoints in COCO order,
        or None when nobody is found.
        """
        ...


class VideoTimestamps:
    """Strictly increasing integer timestamps, as the VIDEO running mode requires."""

    def __init__(self) -> None:
        self._last: int | None = None

    def next(self, timestamp_ms: float) -> int:
        ts = int(timestamp_ms)
        if self._last is not None and ts <= self._last:
            ts = self._last + 1
        self._last = ts
        return ts

    def reset(self) -> None:
        self._last = None
