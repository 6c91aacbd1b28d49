# Core: session coordination, velocity, capture, config, rendering

from core.config import TrackerConfig, load_config
from core.coordinator import FrameCoordinator
from core.errors import CaptureError, InferenceError, ModelLoadError, TrackerError
from core.models import BoundingBox, Keypoint, ObservationHistory
from core.velocity import compute_velocity

__all__ = [
    "TrackerConfig",
    "load_config",
    "FrameCoordinator",
    "TrackerError",
    "ModelLoadError",
    "CaptureError",
    "InferenceError",
    "BoundingBox",
    "Keypoint",
    "ObservationHistory",
    "compute_velocity",
]
