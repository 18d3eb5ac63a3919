import numpy as np
import pytest

from runcatcher.capture.detector import HaarFaceDetector, YOLOFaceDetector, boxes_from_result, load_detector
from runcatcher.config import DetectorConfig
from runcatcher.errors import DetectorLoadError


def test_haar_detector_finds_nothing_in_blank_frame():
    detector = HaarFaceDetector()
    assert detector.detect(np.zeros((240, 320, 3), dtype=np.uint8)) == []


def test_missing_yolo_model():
    with pytest.raises(DetectorLoadError):
        YOLOFaceDetector("/nonexistent/yolov8n-face.pt")


def test_unloadable_models_fall_back_to_haar():
    config = DetectorConfig(backend="yolo", model_sources=["/nonexistent/a.pt", "/nonexistent/b.pt"])
    assert isinstance(load_detector(config), HaarFaceDetector)


def test_broken_cascade_raises(monkeypatch):
    def broken(*args, **kwargs):
        raise DetectorLoadError("Cannot load Haar cascade")

    monkeypatch.setattr("runcatcher.capture.detector.HaarFaceDetector", broken)

    with pytest.raises(DetectorLoadError):
        load_detector(DetectorConfig())


class _FakeYoloBox:

    def __init__(self, xyxy, conf):
        self.xyxy = [xyxy]
        self.conf = [conf]


class _FakeKeypoints:

    def __init__(self, xy):
        self.xy = xy


class _FakeResult:

    def __init__(self, boxes, keypoints=None):
        self.boxes = boxes
        self.keypoints = keypoints


def test_yolo_result_keeps_face_keypoints():
    result = _FakeResult(
        [_FakeYoloBox([10.0, 20.0, 110.0, 140.0], 0.87)],
        _FakeKeypoints([[(40.0, 60.0), (80.0, 60.0), (60.0, 90.0)]]),
    )

    (box,) = boxes_from_result(result)

    assert (box.x, box.y, box.width, box.height) == (10.0, 20.0, 100.0, 120.0)
    assert box.score == pytest.approx(0.87)
    assert box.landmarks == ((40.0, 60.0), (80.0, 60.0), (60.0, 90.0))


def test_yolo_result_without_keypoints():
    (box,) = boxes_from_result(_FakeResult([_FakeYoloBox([0.0, 0.0, 50.0, 50.0], 0.5)]))
    assert box.landmarks is None
