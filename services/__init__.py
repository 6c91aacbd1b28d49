"""
Inference services: the bar detector and the pose estimator.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from core.errors import ModelLoadError

if TYPE_CHECKING:
    from core.config import TrackerConfig
    from services.base import DetectionService, InferenceService, PoseService

logger = logging.getLogger(__name__)


def create_services() -> tuple[DetectionService, PoseService]:
    """Build the default MediaPipe-backed detector and pose estimator (not yet initialized)."""
    from services.object_detector import MediaPipeObjectDetector
    from services.pose import MediaPipePoseEstimator

    return MediaPipeObjectDetector(), MediaPipePoseEstimator()


def service_settings(service: InferenceService, config: TrackerConfig) -> dict[str, Any]:
    """Default settings for a service, overridden by the matching config fields."""
    settings = service.default_settings()
    overrides = {
        "max_results": config.detector_max_results,
        "category_allowlist": list(config.category_allowlist),
        "min_pose_detection_confidence": config.min_pose_detection_confidence,
        "min_pose_presence_confidence": config.min_pose_presence_confidence,
        "min_tracking_confidence": config.min_tracking_confidence,
    }
    for key in settings:
        if key in overrides:
            settings[key] = overrides[key]
    return settings


def init_services(services: tuple[InferenceService, ...], config: TrackerConfig) -> None:
    """Initialize every service; the first failure raises ModelLoadError naming that service."""
    for service in services:
        try:
            service.init(service_settings(service, config))
        except ModelLoadError:
            logger.error("Could not load %s", service.display_name, exc_info=True)
            raise
        except Exception as e:  # noqa: BLE001
            logger.error("Could not load %s", service.display_name, exc_info=True)
            raise ModelLoadError(f"{service.display_name} failed to initialize: {e}") from e
