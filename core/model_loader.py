"""
Locates the MediaPipe Tasks model files for the bar detector and the pose
estimator, downloading them from Google storage on first use.
"""

from __future__ import annotations

import logging
import urllib.error
import urllib.request
from pathlib import Path

from core.errors import ModelLoadError

logger = logging.getLogger(__name__)

# Directory for cached models (next to project root)
MODELS_DIR = Path(__file__).resolve().parent.parent / "models"

DETECTOR_MODEL = "efficientdet_lite0.tflite"
POSE_MODEL = "pose_landmarker_lite.task"

_MODEL_URLS = {
    DETECTOR_MODEL: "https://storage.googleapis.com/mediapipe-models/object_detector/efficientdet_lite0/float16/latest/efficientdet_lite0.tflite",
    POSE_MODEL: "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_lite/float16/latest/pose_landmarker_lite.task",
}


def get_model_path(filename: str, models_dir: Path | None = None) -> Path:
    """Return path to the model file, downloading it if missing. Raises ModelLoadError."""
    directory = models_dir or MODELS_DIR
    path = directory / filename
    if path.is_file():
        return path
    url = _MODEL_URLS.get(filename)
    if not url:
        raise ModelLoadError(f"Unknown model: {filename}. Known: {list(_MODEL_URLS)}")
    directory.mkdir(parents=True, exist_ok=True)
    partial = path.with_suffix(path.suffix + ".part")
    logger.info("Downloading %s", url)
    try:
        urllib.request.urlretrieve(url, partial)
    except (urllib.error.URLError, OSError) as e:
        partial.unlink(missing_ok=True)
        raise ModelLoadError(f"Could not download {filename}: {e}") from e
    partial.replace(path)
    return path
