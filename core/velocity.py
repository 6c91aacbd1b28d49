"""
Two-point finite-difference bar velocity.
"""

from __future__ import annotations

import math

from core.models import BoundingBox, ObservationHistory, VelocityEstimate


def compute_velocity(
    prev_box: BoundingBox,
    prev_timestamp_ms: float,
    box: BoundingBox,
    timestamp_ms: float,
) -> VelocityEstimate | None:
    """
    Speed of the box center in px/s between two observations.
    Returns None when the elapsed time is zero or negative.
    """
    elapsed_s = (timestamp_ms - prev_timestamp_ms) / 1000
    if elapsed_s <= 0:
        return None
    (px, py), (cx, cy) = prev_box.center, box.center
    distance = math.hypot(cx - px, cy - py)
    return VelocityEstimate(speed_px_s=distance / elapsed_s, elapsed_s=elapsed_s)


def velocity_from_history(history: ObservationHistory) -> VelocityEstimate | None:
    """Velocity over the two most recent observations, None with fewer than two."""
    if len(history) < 2:
        return None
    (prev_box, prev_ts), (box, ts) = history.last_two()
    return compute_velocity(prev_box, prev_ts, box, ts)
