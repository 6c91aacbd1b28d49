"""
Shared data models: boxes, keypoints, observation history, readouts and the
per-tick results schema.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator, Sequence

from core.errors import InferenceError

if TYPE_CHECKING:
    import numpy as np

# Number of keypoints in the COCO body order used by the pose service.
COCO_KEYPOINT_COUNT = 17

PLACEHOLDER = "—"


class SessionState(enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in render-surface pixels."""

    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class NormalizedBox:
    """Detection box relative to the input buffer, fields in [0, 1], wire order y, x, height, width."""

    y: float
    x: float
    height: float
    width: float

    def __post_init__(self) -> None:
        for name in ("y", "x", "height", "width"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"NormalizedBox.{name}={value!r} outside [0, 1]")

    def to_pixels(self, width: int, height: int) -> BoundingBox:
        return BoundingBox(
            x=self.x * width,
            y=self.y * height,
            width=self.width * width,
            height=self.height * height,
        )


@dataclass(frozen=True)
class ScoredBox:
    score: float
    box: NormalizedBox
    label: str = ""


@dataclass(frozen=True)
class Keypoint:
    x: float
    y: float
    score: float = 0.0

    def rounded(self) -> tuple[int, int]:
        return round_half_up(self.x), round_half_up(self.y)


@dataclass(frozen=True)
class ArmJoints:
    """The six arm joints, read once from a 17-keypoint COCO list."""

    left_shoulder: Keypoint
    right_shoulder: Keypoint
    left_elbow: Keypoint
    right_elbow: Keypoint
    left_wrist: Keypoint
    right_wrist: Keypoint

    @classmethod
    def from_keypoints(cls, keypoints: Sequence[Keypoint]) -> ArmJoints:
        """
        Indices 5..10 are left shoulder, right shoulder, left elbow,
        right elbow, left wrist, right wrist. Raises InferenceError on a list
        that is not exactly 17 long.
        """
        if len(keypoints) != COCO_KEYPOINT_COUNT:
            raise InferenceError(
                f"expected {COCO_KEYPOINT_COUNT} keypoints, got {len(keypoints)}"
            )
        return cls(
            left_shoulder=keypoints[5],
            right_shoulder=keypoints[6],
            left_elbow=keypoints[7],
            right_elbow=keypoints[8],
            left_wrist=keypoints[9],
            right_wrist=keypoints[10],
        )

    @property
    def left_arm(self) -> tuple[Keypoint, Keypoint, Keypoint]:
        return self.left_shoulder, self.left_elbow, self.left_wrist

    @property
    def right_arm(self) -> tuple[Keypoint, Keypoint, Keypoint]:
        return self.right_shoulder, self.right_elbow, self.right_wrist

    def to_dict(self) -> dict[str, dict[str, float]]:
        return {
            name: {"x": kp.x, "y": kp.y, "score": kp.score}
            for name, kp in (
                ("left_shoulder", self.left_shoulder),
                ("right_shoulder", self.right_shoulder),
                ("left_elbow", self.left_elbow),
                ("right_elbow", self.right_elbow),
                ("left_wrist", self.left_wrist),
                ("right_wrist", self.right_wrist),
            )
        }


class ObservationHistory:
    """Append-only bar boxes with their capture timestamps (ms), kept in lockstep."""

    def __init__(self) -> None:
        self._boxes: list[BoundingBox] = []
        self._timestamps_ms: list[float] = []

    def append(self, box: BoundingBox, timestamp_ms: float) -> None:
        self._boxes.append(box)
        self._timestamps_ms.append(timestamp_ms)

    def clear(self) -> None:
        self._boxes.clear()
        self._timestamps_ms.clear()

    def last_two(self) -> tuple[tuple[BoundingBox, float], tuple[BoundingBox, float]]:
        if len(self._boxes) < 2:
            raise IndexError("need at least two observations")
        return (
            (self._boxes[-2], self._timestamps_ms[-2]),
            (self._boxes[-1], self._timestamps_ms[-1]),
        )

    @property
    def boxes(self) -> tuple[BoundingBox, ...]:
        return tuple(self._boxes)

    @property
    def timestamps_ms(self) -> tuple[float, ...]:
        return tuple(self._timestamps_ms)

    def __len__(self) -> int:
        return len(self._boxes)

    def __iter__(self) -> Iterator[tuple[BoundingBox, float]]:
        return iter(zip(self._boxes, self._timestamps_ms))


@dataclass(frozen=True)
class VelocityEstimate:
    speed_px_s: float
    elapsed_s: float


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def select_best_box(
    candidates: Sequence[ScoredBox],
    threshold: float,
    width: int,
    height: int,
) -> BoundingBox | None:
    """
    Highest-scoring candidate strictly above threshold, in pixels of a
    width x height surface. Ties keep the earlier candidate.
    """
    best: ScoredBox | None = None
    for cand in candidates:
        if cand.score > threshold and (best is None or cand.score > best.score):
            best = cand
    if best is None:
        return None
    return best.box.to_pixels(width, height)


@dataclass(frozen=True)
class Readout:
    """Text shown in the readout panel."""

    bar_coordinates: str = PLACEHOLDER
    velocity: str = PLACEHOLDER
    elapsed: str = PLACEHOLDER
    arm_joints: str = PLACEHOLDER

    def with_box(self, box: BoundingBox) -> Readout:
        return Readout(
            bar_coordinates=format_bar_coordinates(box),
            velocity=self.velocity,
            elapsed=self.elapsed,
            arm_joints=self.arm_joints,
        )

    def with_velocity(self, estimate: VelocityEstimate) -> Readout:
        return Readout(
            bar_coordinates=self.bar_coordinates,
            velocity=f"{estimate.speed_px_s:.2f} px/s",
            elapsed=f"{estimate.elapsed_s:.3f} seconds",
            arm_joints=self.arm_joints,
        )

    def with_arms(self, arms: ArmJoints) -> Readout:
        return Readout(
            bar_coordinates=self.bar_coordinates,
            velocity=self.velocity,
            elapsed=self.elapsed,
            arm_joints=format_arm_joints(arms),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "bar_coordinates": self.bar_coordinates,
            "velocity": self.velocity,
            "elapsed": self.elapsed,
            "arm_joints": self.arm_joints,
        }


def format_bar_coordinates(box: BoundingBox) -> str:
    return f"x: {round_half_up(box.x)}, y: {round_half_up(box.y)}"


def format_arm_joints(arms: ArmJoints) -> str:
    lines = []
    for side, (shoulder, elbow, wrist) in (("L", arms.left_arm), ("R", arms.right_arm)):
        lines.append(
            f"{side}: shoulder {shoulder.rounded()}, elbow {elbow.rounded()}, wrist {wrist.rounded()}"
        )
    return "\n".join(lines)


@dataclass
class TickResult:
    """Output of one processed tick."""

    session_id: int
    timestamp_ms: float
    box: BoundingBox | None
    arms: ArmJoints | None
    velocity: VelocityEstimate | None
    readout: Readout
    frame: np.ndarray | None = field(default=None, repr=False, compare=False)
    history_length: int = 0

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly summary (no pixels)."""
        return {
            "session_id": self.session_id,
            "timestamp_ms": self.timestamp_ms,
            "box": self.box.to_dict() if self.box is not None else None,
            "arms": self.arms.to_dict() if self.arms is not None else None,
            "velocity": (
                {"speed_px_s": self.velocity.speed_px_s, "elapsed_s": self.velocity.elapsed_s}
                if self.velocity is not None
                else None
            ),
            "history_length": self.history_length,
            "readout": self.readout.to_dict(),
        }
