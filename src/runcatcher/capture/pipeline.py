"""
Capture pipeline: cooldown gate, face crop and JPEG encoding.

Runs synchronously inside the detection loop, so a slow encode delays the
next detection cycle.
"""

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from .types import Box, CaptureEvent, CaptureSession


logger = logging.getLogger(__name__)


def compute_crop_rect(
    box: Box,
    padding: int,
    frame_width: int,
    frame_height: int
) -> Tuple[int, int, int, int]:
    """
    Expand a face box by ``padding`` on every side and clamp it to the frame.

    Returns:
        tuple: (x, y, width, height) in integer pixels, always inside
        [0, frame_width] x [0, frame_height]
    """
    crop_x = min(max(0, int(box.x) - padding), frame_width)
    crop_y = min(max(0, int(box.y) - padding), frame_height)
    crop_w = min(frame_width - crop_x, int(box.width) + padding * 2)
    crop_h = min(frame_height - crop_y, int(box.height) + padding * 2)
    return crop_x, crop_y, max(0, crop_w), max(0, crop_h)


def crop_frame(frame: np.ndarray, rect: Tuple[int, int, int, int]) -> np.ndarray:
    x, y, w, h = rect
    crop = frame[y:y + h, x:x + w]
    if crop.size == 0:
        raise ValueError(f"Empty crop region: {rect}")
    return crop


def encode_jpeg(image: np.ndarray, quality: int = 80) -> bytes:
    """Encode a BGR image as JPEG bytes."""
    encode_params = [cv2.IMWRITE_JPEG_QUALITY, quality]
    success, jpeg = cv2.imencode('.jpg', image, encode_params)
    if not success:
        raise ValueError("JPEG encoding failed")
    return jpeg.tobytes()


class CapturePipeline:
    """
    Turns a running face into a CaptureEvent, at most once per cooldown.

    Usage:
        pipeline = CapturePipeline(cooldown=2.0, padding=50)
        session = CaptureSession()

        event = pipeline.maybe_capture(frame, box, speed, session, time.time())
        if event:
            uploader.send(event)
    """

    def __init__(self, cooldown: float = 2.0, padding: int = 50, jpeg_quality: int = 80):
        """
        Args:
            cooldown: Minimum seconds between two accepted captures
            padding: Pixels added around the face box before cropping
            jpeg_quality: JPEG quality (1-100)
        """
        self.cooldown = cooldown
        self.padding = padding
        self.jpeg_quality = jpeg_quality

    def in_cooldown(self, session: CaptureSession, now: float) -> bool:
        if session.last_capture_time is None:
            return False
        return now - session.last_capture_time < self.cooldown

    def maybe_capture(
        self,
        frame: np.ndarray,
        box: Box,
        speed: float,
        session: CaptureSession,
        now: float
    ) -> Optional[CaptureEvent]:
        """
        Crop and encode ``box`` from ``frame`` unless still cooling down.

        The cooldown slot is taken before encoding; an encoding failure is
        logged and drops the event without retry.

        Returns:
            CaptureEvent or None if rejected or failed
        """
        if self.in_cooldown(session, now):
            return None

        session.last_capture_time = now
        session.runner_count += 1

        try:
            frame_height, frame_width = frame.shape[:2]
            rect = compute_crop_rect(box, self.padding, frame_width, frame_height)
            jpeg = encode_jpeg(crop_frame(frame, rect), self.jpeg_quality)
        except Exception as e:
            logger.error("Error capturing runner #%d: %s", session.runner_count, e)
            return None

        logger.info(
            "Runner #%d captured (%.2f px/s, %d bytes)",
            session.runner_count, speed, len(jpeg)
        )
        return CaptureEvent(
            image_bytes=jpeg,
            motion_speed=speed,
            timestamp=now,
            number=session.runner_count,
            crop=rect,
        )
