import cv2
import numpy as np
import pytest

from runcatcher.capture import pipeline as pipeline_module
from runcatcher.capture.pipeline import CapturePipeline, compute_crop_rect
from runcatcher.capture.types import Box, CaptureSession


@pytest.mark.parametrize("box,padding", [
    (Box(0, 0, 50, 50), 50),
    (Box(600, 440, 40, 40), 50),
    (Box(-30, -30, 100, 100), 10),
    (Box(100, 100, 1000, 1000), 0),
    (Box(700, 500, 20, 20), 50),
    (Box(320.7, 240.2, 64.9, 64.1), 25),
])
def test_crop_rect_stays_inside_frame(box, padding):
    x, y, w, h = compute_crop_rect(box, padding, 640, 480)

    assert 0 <= x <= 640 and 0 <= y <= 480
    assert w >= 0 and h >= 0
    assert x + w <= 640
    assert y + h <= 480


def test_crop_rect_adds_padding_on_every_side():
    assert compute_crop_rect(Box(200, 150, 120, 150), 50, 640, 480) == (150, 100, 220, 250)


def test_crop_rect_clamps_at_origin():
    assert compute_crop_rect(Box(20, 10, 100, 100), 50, 640, 480) == (0, 0, 200, 200)


def test_second_capture_inside_cooldown_is_rejected(frame, face):
    pipeline = CapturePipeline(cooldown=2.0)
    session = CaptureSession()

    first = pipeline.maybe_capture(frame, face, 300.0, session, now=10.0)
    second = pipeline.maybe_capture(frame, face, 300.0, session, now=11.0)

    assert first is not None
    assert second is None
    assert session.runner_count == 1


def test_cooldown_scenario(frame, face):
    pipeline = CapturePipeline(cooldown=2.0)
    session = CaptureSession()

    accepted = [
        pipeline.maybe_capture(frame, face, 250.0, session, now=t) is not None
        for t in (100.0, 100.5, 102.5)
    ]

    assert accepted == [True, False, True]
    assert session.runner_count == 2
    assert session.last_capture_time == 102.5


def test_event_contains_decodable_crop(frame, face):
    event = CapturePipeline(padding=50).maybe_capture(frame, face, 420.0, CaptureSession(), now=1.0)

    image = cv2.imdecode(np.frombuffer(event.image_bytes, np.uint8), cv2.IMREAD_COLOR)
    assert image.shape[:2] == (250, 220)
    assert event.crop == (150, 100, 220, 250)
    assert event.motion_speed == 420.0
    assert event.number == 1
    assert event.label == "Runner #1"
    assert event.data_uri.startswith("data:image/jpeg;base64,")


def test_encode_failure_drops_event(frame, face, monkeypatch):
    def broken(image, quality=80):
        raise ValueError("JPEG encoding failed")

    monkeypatch.setattr(pipeline_module, "encode_jpeg", broken)
    pipeline = CapturePipeline(cooldown=2.0)
    session = CaptureSession()

    assert pipeline.maybe_capture(frame, face, 500.0, session, now=1.0) is None
    # the cooldown slot is still consumed
    assert session.last_capture_time == 1.0
    assert pipeline.maybe_capture(frame, face, 500.0, session, now=1.5) is None


def test_box_outside_frame_is_not_captured(frame):
    event = CapturePipeline(padding=0).maybe_capture(
        frame, Box(900, 900, 40, 40), 500.0, CaptureSession(), now=1.0
    )
    assert event is None
