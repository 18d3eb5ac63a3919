"""
Webcam detection loop.

Each cycle runs, in order:
1. Frame capture from the camera
2. Face detection
3. Motion classification against the previous frame
4. Capture of running faces (cooldown gated)
5. Upload of accepted captures
6. Overlay drawing (bounding boxes, labels)

Cycles never overlap. Stopping only prevents the next cycle from being
scheduled; a cycle already in progress runs to completion.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

import cv2
import numpy as np

from ..config import ClientConfig
from ..errors import CameraError, DetectorLoadError
from .detector import FaceDetector, load_detector
from .motion import MotionClassifier, create_matcher
from .pipeline import CapturePipeline
from .types import Box, CaptureEvent, CaptureSession, ClassifierState, MotionReading
from .uploader import CaptureUploader


logger = logging.getLogger(__name__)


# Overlay colors (BGR format)
RUNNING_COLOR = (60, 76, 231)      # #e74c3c
FACE_COLOR = (43, 57, 192)         # #c0392b

OFFLINE_INSTRUCTIONS = """\
Face Detection Models Failed to Load
This usually happens due to:
  - Missing or unreadable model files
  - opencv-python installed without its bundled cascades
  - ultralytics not installed for the yolo backend
Solutions:
  1. Check the configured model paths (--model / MODEL_PATH)
  2. Reinstall opencv-python
  3. Install the yolo extra: pip install runcatcher[yolo]
  4. Switch to the basic detector: --detector haar
"""


@dataclass
class FrameResult:
    """Outcome of a single detection cycle."""
    boxes: List[Box] = field(default_factory=list)
    readings: List[MotionReading] = field(default_factory=list)
    running: List[MotionReading] = field(default_factory=list)
    events: List[CaptureEvent] = field(default_factory=list)
    frame: Optional[np.ndarray] = None     # annotated frame


def parse_source(source: str):
    """Camera index for numeric sources, otherwise a URL or file path."""
    return int(source) if str(source).isdigit() else source


class StreamCapture:
    """
    Captures webcam frames and catches running faces.

    Usage:
        config = load_config().client
        uploader = CaptureUploader(config.server_url)

        capture = StreamCapture(config, uploader=uploader)
        capture.start()

        # Later...
        capture.stop()
    """

    def __init__(
        self,
        config: ClientConfig,
        detector: Optional[FaceDetector] = None,
        uploader: Optional[CaptureUploader] = None,
        on_capture: Optional[Callable[[CaptureEvent], None]] = None
    ):
        """
        Initialize the detection loop.

        Args:
            config: Client configuration
            detector: Face detector (loaded from config on start if None)
            uploader: Capture uploader (captures are kept locally if None)
            on_capture: Callback for every accepted capture (optional)
        """
        self.config = config
        self.detector = detector
        self.uploader = uploader
        self.on_capture = on_capture

        self.classifier = MotionClassifier(
            threshold=config.motion.threshold,
            matcher=create_matcher(config.motion.matcher),
        )
        self.pipeline = CapturePipeline(
            cooldown=config.capture.cooldown,
            padding=config.capture.padding,
            jpeg_quality=config.capture.jpeg_quality,
        )
        self.state = ClassifierState()
        self.session = CaptureSession()

        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._status = "Stopped"
        self._error: Optional[str] = None
        self._recent: Deque[CaptureEvent] = deque(maxlen=config.capture.recent_limit)

        # Statistics
        self._frames_processed = 0
        self._faces_detected = 0
        self._detection_errors = 0

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> bool:
        """
        Start the detection loop in a background thread.

        Returns:
            bool: True if started successfully
        """
        if self._running:
            return True

        if not self._ensure_detector():
            return False

        self._running = True
        self._error = None
        self._thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._thread.start()
        return True

    def run(self) -> None:
        """Run the detection loop in the calling thread until stopped."""
        if not self._ensure_detector():
            return
        self._running = True
        self._error = None
        self._capture_loop()

    def stop(self) -> None:
        """Stop scheduling new cycles."""
        self._running = False
        self._status = "Stopping..."

        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=3.0)

        self._status = "Detection stopped."

    @property
    def status(self) -> str:
        """Get current status string."""
        return self._status

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def error(self) -> Optional[str]:
        """Get last error message."""
        return self._error

    @property
    def recent_captures(self) -> List[CaptureEvent]:
        """Accepted captures, newest first."""
        return list(reversed(self._recent))

    def get_stats(self) -> Dict[str, Any]:
        """Get loop statistics."""
        stats = {
            'status': self._status,
            'frames_processed': self._frames_processed,
            'faces_detected': self._faces_detected,
            'detection_errors': self._detection_errors,
            'runner_count': self.session.runner_count,
            'motion_threshold': self.classifier.threshold,
            'detector': self.detector.name if self.detector else None,
        }
        if self.uploader:
            stats['upload'] = self.uploader.get_stats()
        return stats

    # =========================================================================
    # Detection cycle
    # =========================================================================

    def process_frame(self, frame: np.ndarray, now: Optional[float] = None) -> FrameResult:
        """
        Run one detect -> classify -> capture cycle on a frame.

        Detection errors are logged and yield an empty result; the
        classifier state is left untouched so the next frame compares
        against the last good one.
        """
        if now is None:
            now = time.time()
        self._frames_processed += 1
        result = FrameResult()

        try:
            result.boxes = self.detector.detect(frame)
        except Exception as e:
            self._detection_errors += 1
            logger.error("Error detecting faces: %s", e)
            result.frame = frame
            return result

        self._faces_detected += len(result.boxes)
        result.readings = self.classifier.classify(result.boxes, self.state, now)
        result.running = self.classifier.running(result.readings)

        for reading in result.running:
            event = self.pipeline.maybe_capture(frame, reading.box, reading.speed, self.session, now)
            if event is None:
                continue
            result.events.append(event)
            self._handle_capture(event)

        result.frame = self._draw_overlay(frame.copy(), result)
        return result

    def _handle_capture(self, event: CaptureEvent) -> None:
        if self.uploader:
            if self.uploader.send(event) is None:
                self._status = "Error saving runner image."
            else:
                self._status = (
                    f"{event.label} captured! Motion speed: {event.motion_speed:.2f} px/s"
                )
        self._recent.append(event)

        if self.on_capture:
            try:
                self.on_capture(event)
            except Exception as e:
                logger.error("Capture callback error: %s", e)

    def _draw_overlay(self, frame: np.ndarray, result: FrameResult) -> np.ndarray:
        running_boxes = {id(r.box) for r in result.running}

        for box in result.boxes:
            is_running = id(box) in running_boxes
            color = RUNNING_COLOR if is_running else FACE_COLOR
            label = "RUNNING!" if is_running else "Face Detected"
            x1, y1, x2, y2 = box.xyxy

            cv2.rectangle(frame, (x1, y1), (x2, y2), color, 3)
            for px, py in box.landmarks or ():
                cv2.circle(frame, (int(px), int(py)), 2, color, -1)
            cv2.putText(
                frame, label,
                (x1, max(y1 - 10, 15)),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.6, color, 2
            )
        return frame

    # =========================================================================
    # Camera loop
    # =========================================================================

    def _ensure_detector(self) -> bool:
        if self.detector is not None:
            return True

        self._status = "Loading face detection models..."
        try:
            self.detector = load_detector(self.config.detector)
        except DetectorLoadError as e:
            self._error = str(e)
            self._status = (
                "Unable to load face detection models. "
                "Please check your installation and model paths."
            )
            logger.error("Error loading face detection models: %s", e)
            print(OFFLINE_INSTRUCTIONS)
            return False

        self._status = "Models loaded. Ready to start detection."
        return True

    def _open_camera(self) -> cv2.VideoCapture:
        camera = self.config.camera
        cap = cv2.VideoCapture(parse_source(camera.source))

        if camera.width > 0:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, camera.width)
        if camera.height > 0:
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, camera.height)

        if not cap.isOpened():
            cap.release()
            raise CameraError(f"Cannot open: {camera.source}")
        return cap

    def _capture_loop(self) -> None:
        """Main detection loop."""
        try:
            cap = self._open_camera()
        except CameraError as e:
            self._running = False
            self._error = str(e)
            self._status = "Error accessing camera. Please check permissions."
            logger.error("Error accessing camera: %s", e)
            return

        self._status = "Detection active - looking for running faces..."
        logger.info(self._status)

        try:
            while self._running:
                ret, frame = cap.read()
                if not ret:
                    self._error = "Frame capture failed"
                    self._status = "Error accessing camera. Please check permissions."
                    logger.error("Frame capture failed")
                    break

                result = self.process_frame(frame)

                if self.config.camera.display:
                    cv2.imshow("RunCatcher", result.frame)
                    if cv2.waitKey(1) & 0xFF == ord('q'):
                        break
        finally:
            cap.release()
            if self.config.camera.display:
                cv2.destroyAllWindows()
            self._running = False
            if self._status.startswith("Detection active"):
                self._status = "Detection stopped."
