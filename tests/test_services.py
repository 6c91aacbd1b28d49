from types import SimpleNamespace

import pytest

from conftest import FakeDetector, FakePose
from core.config import TrackerConfig
from core.errors import InferenceError, ModelLoadError
from services import init_services, service_settings
from services.base import VideoTimestamps
from services.object_detector import MediaPipeObjectDetector, boxes_from_detections
from services.pose import MEDIAPIPE_TO_COCO, MediaPipePoseEstimator, landmarks_to_coco


def _detection(x, y, w, h, score, name="sports ball"):
    return SimpleNamespace(
        bounding_box=SimpleNamespace(origin_x=x, origin_y=y, width=w, height=h),
        categories=[SimpleNamespace(category_name=name, score=score)],
    )


def test_boxes_from_detections_normalizes_in_wire_order():
    [cand] = boxes_from_detections([_detection(64, 48, 128, 96, 0.8)], 640, 480)
    assert cand.score == pytest.approx(0.8)
    assert cand.label == "sports ball"
    assert (cand.box.y, cand.box.x, cand.box.height, cand.box.width) == pytest.approx((0.1, 0.1, 0.2, 0.2))


def test_boxes_from_detections_clips_to_frame():
    [cand] = boxes_from_detections([_detection(-10, 400, 100, 200, 0.9)], 100, 500)
    assert cand.box.x == 0.0
    assert cand.box.width == pytest.approx(0.9)
    assert cand.box.y + cand.box.height == pytest.approx(1.0)


def test_boxes_from_detections_without_categories_scores_zero():
    det = SimpleNamespace(
        bounding_box=SimpleNamespace(origin_x=0, origin_y=0, width=1, height=1), categories=[]
    )
    [cand] = boxes_from_detections([det], 10, 10)
    assert cand.score == 0.0


def _landmarks():
    return [SimpleNamespace(x=i / 100, y=i / 50, visibility=0.5) for i in range(33)]


def test_landmarks_to_coco_picks_arm_joints_at_five_to_ten():
    kps = landmarks_to_coco(_landmarks(), 200, 100)
    assert len(kps) == 17
    # COCO 5..10 come from MediaPipe 11..16.
    for coco_idx, mp_idx in zip(range(5, 11), range(11, 17)):
        assert kps[coco_idx].x == pytest.approx(mp_idx / 100 * 200)
        assert kps[coco_idx].y == pytest.approx(mp_idx / 50 * 100)
    assert MEDIAPIPE_TO_COCO[0] == 0


def test_landmarks_to_coco_handles_missing_visibility():
    lms = _landmarks()
    lms[11] = SimpleNamespace(x=0.5, y=0.5, visibility=None)
    assert landmarks_to_coco(lms, 10, 10)[5].score == 0.0


def test_landmarks_to_coco_rejects_wrong_count():
    with pytest.raises(InferenceError):
        landmarks_to_coco(_landmarks()[:17], 10, 10)


def test_video_timestamps_strictly_increase():
    ts = VideoTimestamps()
    assert [ts.next(t) for t in (10.4, 10.9, 9.0, 50.0)] == [10, 11, 12, 50]
    ts.reset()
    assert ts.next(1.0) == 1


def test_services_not_ready_before_init():
    assert not MediaPipeObjectDetector().ready
    assert not MediaPipePoseEstimator().ready


def test_service_settings_take_config_values():
    cfg = TrackerConfig(detector_max_results=3, category_allowlist=("sports ball",), min_tracking_confidence=0.7)
    assert service_settings(MediaPipeObjectDetector(), cfg) == {
        "max_results": 3,
        "category_allowlist": ["sports ball"],
    }
    assert service_settings(MediaPipePoseEstimator(), cfg)["min_tracking_confidence"] == 0.7


class _BrokenService(FakePose):
    display_name = "Broken"

    def init(self, settings):
        raise OSError("disk on fire")


def test_init_services_wraps_failures_as_model_load_error():
    detector = FakeDetector(ready=False)
    init_services((detector,), TrackerConfig())
    assert detector.ready
    with pytest.raises(ModelLoadError, match="Broken"):
        init_services((_BrokenService(ready=False),), TrackerConfig())
