"""
Tracker configuration: defaults, JSON file loading, UI overrides.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "BAR_TRACKER_CONFIG"

Color = tuple[int, int, int]


@dataclass(frozen=True)
class TrackerConfig:
    # Detection candidates must score strictly above this.
    confidence_threshold: float = 0.5
    # Render surface (pixel buffer) size; detections are scaled to it.
    surface_width: int = 640
    surface_height: int = 480
    target_fps: float = 30.0
    camera_index: int = 0
    # BGR
    box_color: Color = (0, 255, 0)
    left_arm_color: Color = (255, 0, 0)
    right_arm_color: Color = (0, 0, 255)
    line_width: int = 2
    detector_max_results: int = 10
    category_allowlist: tuple[str, ...] = ()
    min_pose_detection_confidence: float = 0.5
    min_pose_presence_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    log_level: str = "INFO"

    def with_settings(self, settings: dict[str, Any]) -> TrackerConfig:
        """Return a copy with known keys from a settings dict applied (unknown keys ignored)."""
        known = {f.name for f in dataclasses.fields(self)}
        updates = {k: v for k, v in settings.items() if k in known}
        if not updates:
            return self
        return _coerce(dataclasses.replace(self, **updates))


def _repo_root() -> Path:
    # core/config.py -> repo root is one level up.
    return Path(__file__).resolve().parents[1]


def get_default_config_path() -> Path:
    return _repo_root() / "config.json"


def _as_float(v: Any, default: float) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return float(default)


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return int(default)


def _as_color(v: Any, default: Color) -> Color:
    if isinstance(v, (list, tuple)) and len(v) == 3:
        try:
            b, g, r = (max(0, min(255, int(c))) for c in v)
            return (b, g, r)
        except (TypeError, ValueError):
            pass
    return default


def _as_str_tuple(v: Any) -> tuple[str, ...]:
    if isinstance(v, str):
        v = [v]
    if not isinstance(v, (list, tuple)):
        return ()
    return tuple(str(item).strip() for item in v if str(item).strip())


def _coerce(cfg: TrackerConfig) -> TrackerConfig:
    """Clamp and convert every field to its expected type, falling back to defaults."""
    d = TrackerConfig()
    threshold = _as_float(cfg.confidence_threshold, d.confidence_threshold)
    width = _as_int(cfg.surface_width, d.surface_width)
    height = _as_int(cfg.surface_height, d.surface_height)
    fps = _as_float(cfg.target_fps, d.target_fps)
    return TrackerConfig(
        confidence_threshold=max(0.0, min(threshold, 1.0)),
        surface_width=width if width > 0 else d.surface_width,
        surface_height=height if height > 0 else d.surface_height,
        target_fps=fps if fps > 0 else d.target_fps,
        camera_index=max(0, _as_int(cfg.camera_index, d.camera_index)),
        box_color=_as_color(cfg.box_color, d.box_color),
        left_arm_color=_as_color(cfg.left_arm_color, d.left_arm_color),
        right_arm_color=_as_color(cfg.right_arm_color, d.right_arm_color),
        line_width=max(1, _as_int(cfg.line_width, d.line_width)),
        detector_max_results=max(1, _as_int(cfg.detector_max_results, d.detector_max_results)),
        category_allowlist=_as_str_tuple(cfg.category_allowlist),
        min_pose_detection_confidence=_as_float(
            cfg.min_pose_detection_confidence, d.min_pose_detection_confidence
        ),
        min_pose_presence_confidence=_as_float(
            cfg.min_pose_presence_confidence, d.min_pose_presence_confidence
        ),
        min_tracking_confidence=_as_float(cfg.min_tracking_confidence, d.min_tracking_confidence),
        log_level=str(cfg.log_level or d.log_level).upper(),
    )


def load_config(path: str | Path | None = None) -> TrackerConfig:
    """
    Load config from a JSON object file. Lookup order: explicit path,
    $BAR_TRACKER_CONFIG, config.json at the repo root. Missing file or
    malformed JSON gives defaults; bad individual values fall back per field.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or get_default_config_path()
    p = Path(path).expanduser().resolve()
    if not p.exists():
        return TrackerConfig()
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable config %s: %s", p, e)
        return TrackerConfig()
    if not isinstance(raw, dict):
        logger.warning("Ignoring config %s: top level is not an object", p)
        return TrackerConfig()
    return TrackerConfig().with_settings(raw)
