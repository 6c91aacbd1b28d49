import pytest

from conftest import pose_keypoints, scored
from core.errors import InferenceError
from core.models import (
    ArmJoints,
    BoundingBox,
    Keypoint,
    NormalizedBox,
    ObservationHistory,
    PLACEHOLDER,
    Readout,
    TickResult,
    VelocityEstimate,
    round_half_up,
    select_best_box,
)


def test_select_best_box_picks_highest_score():
    cands = [scored(0.6, x=0.1), scored(0.9, x=0.5), scored(0.7, x=0.3)]
    box = select_best_box(cands, 0.5, 200, 100)
    assert box.x == pytest.approx(100.0)


def test_select_best_box_threshold_is_strict():
    assert select_best_box([scored(0.5)], 0.5, 100, 100) is None
    assert select_best_box([scored(0.5000001)], 0.5, 100, 100) is not None


def test_select_best_box_none_above_threshold():
    assert select_best_box([scored(0.1), scored(0.49)], 0.5, 100, 100) is None
    assert select_best_box([], 0.5, 100, 100) is None


def test_select_best_box_tie_keeps_first():
    box = select_best_box([scored(0.8, x=0.1), scored(0.8, x=0.6)], 0.5, 100, 100)
    assert box.x == pytest.approx(10.0)


def test_normalized_box_wire_order_and_pixels():
    nb = NormalizedBox(y=0.25, x=0.5, height=0.5, width=0.1)
    box = nb.to_pixels(640, 480)
    assert box == BoundingBox(x=320.0, y=120.0, width=64.0, height=240.0)


@pytest.mark.parametrize("field", ["y", "x", "height", "width"])
def test_normalized_box_rejects_out_of_range(field):
    values = {"y": 0.1, "x": 0.1, "height": 0.1, "width": 0.1}
    values[field] = 1.5
    with pytest.raises(ValueError):
        NormalizedBox(**values)


def test_arm_joints_read_fixed_indices():
    kps = pose_keypoints()
    arms = ArmJoints.from_keypoints(kps)
    assert arms.left_shoulder == kps[5]
    assert arms.right_shoulder == kps[6]
    assert arms.left_elbow == kps[7]
    assert arms.right_elbow == kps[8]
    assert arms.left_wrist == kps[9]
    assert arms.right_wrist == kps[10]
    assert arms.left_arm == (kps[5], kps[7], kps[9])
    assert arms.right_arm == (kps[6], kps[8], kps[10])


@pytest.mark.parametrize("count", [0, 11, 16, 33])
def test_arm_joints_reject_wrong_length(count):
    with pytest.raises(InferenceError):
        ArmJoints.from_keypoints([Keypoint(0, 0)] * count)


def test_history_keeps_lists_parallel():
    history = ObservationHistory()
    for i in range(5):
        history.append(BoundingBox(i, i, 1, 1), i * 10.0)
        assert len(history.boxes) == len(history.timestamps_ms) == len(history)
    (b1, t1), (b2, t2) = history.last_two()
    assert (b1.x, t1, b2.x, t2) == (3, 30.0, 4, 40.0)
    history.clear()
    assert len(history) == 0
    with pytest.raises(IndexError):
        history.last_two()


def test_round_half_up_matches_display_rounding():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(-0.5) == 0
    assert round_half_up(12.49) == 12


def test_readout_formatting():
    readout = Readout()
    assert readout.velocity == PLACEHOLDER
    readout = readout.with_box(BoundingBox(12.5, 33.2, 10, 10))
    readout = readout.with_velocity(VelocityEstimate(speed_px_s=5.0, elapsed_s=1.0))
    assert readout.bar_coordinates == "x: 13, y: 33"
    assert readout.velocity == "5.00 px/s"
    assert readout.elapsed == "1.000 seconds"
    readout = readout.with_arms(ArmJoints.from_keypoints(pose_keypoints()))
    assert readout.arm_joints.splitlines() == [
        "L: shoulder (50, 25), elbow (70, 35), wrist (90, 45)",
        "R: shoulder (60, 30), elbow (80, 40), wrist (100, 50)",
    ]
    # Other fields survive each update.
    assert readout.velocity == "5.00 px/s"


def test_tick_result_to_dict_has_no_pixels():
    result = TickResult(
        session_id=1,
        timestamp_ms=10.0,
        box=BoundingBox(1, 2, 3, 4),
        arms=None,
        velocity=None,
        readout=Readout(),
        history_length=1,
    )
    d = result.to_dict()
    assert d["box"] == {"x": 1, "y": 2, "width": 3, "height": 4}
    assert d["arms"] is None and d["velocity"] is None
    assert "frame" not in d
