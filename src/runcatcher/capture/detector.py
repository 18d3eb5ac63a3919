"""
Face detector adapters.

The detection model is an external black box: a frame goes in, a list of
Box comes out. Two backends are available:
- haar: frontal face cascade bundled with opencv-python (no download)
- yolo: ultralytics YOLO face model loaded from a weights file
"""

import logging
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np

from ..config import DetectorConfig
from ..errors import DetectorLoadError
from .types import Box


logger = logging.getLogger(__name__)


HAAR_CASCADE = "haarcascade_frontalface_default.xml"


class FaceDetector:
    """Base class: all detectors return a list of Box per frame."""

    name = "base"

    def detect(self, frame: np.ndarray) -> List[Box]:
        raise NotImplementedError


class HaarFaceDetector(FaceDetector):
    """OpenCV Viola-Jones frontal face detector."""

    name = "haar"

    def __init__(
        self,
        cascade_path: Optional[str] = None,
        scale_factor: float = 1.1,
        min_neighbors: int = 5,
        min_size: int = 40
    ):
        cascade_path = cascade_path or str(Path(cv2.data.haarcascades) / HAAR_CASCADE)
        self._cascade = cv2.CascadeClassifier(cascade_path)
        if self._cascade.empty():
            raise DetectorLoadError(f"Cannot load Haar cascade: {cascade_path}")
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = (min_size, min_size)

    def detect(self, frame: np.ndarray) -> List[Box]:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY) if frame.ndim == 3 else frame
        gray = cv2.equalizeHist(gray)
        faces = self._cascade.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=self.min_size,
        )
        return [Box(float(x), float(y), float(w), float(h)) for (x, y, w, h) in faces]


class YOLOFaceDetector(FaceDetector):
    """Face detector backed by an ultralytics YOLO model."""

    name = "yolo"

    def __init__(self, model_path: str, confidence: float = 0.4):
        if not Path(model_path).exists():
            raise DetectorLoadError(f"Model not found: {model_path}")

        try:
            from ultralytics import YOLO
        except ImportError:
            raise DetectorLoadError(
                "ultralytics not installed. Run: pip install runcatcher[yolo]"
            ) from None

        try:
            self._model = YOLO(model_path)
            # Warm up the model with a dummy image
            self._model(np.zeros((640, 640, 3), dtype=np.uint8), verbose=False)
        except Exception as e:
            raise DetectorLoadError(f"Failed to load model {model_path}: {e}") from e

        self.model_path = model_path
        self.confidence = confidence

    def detect(self, frame: np.ndarray) -> List[Box]:
        results = self._model(frame, conf=self.confidence, verbose=False)

        boxes = []
        for result in results:
            boxes.extend(boxes_from_result(result))
        return boxes


def boxes_from_result(result) -> List[Box]:
    """Convert one ultralytics result to Box, keeping face keypoints when the model has them."""
    keypoints = getattr(result, 'keypoints', None)
    points = keypoints.xy if keypoints is not None else None

    boxes = []
    for i, box in enumerate(result.boxes):
        x1, y1, x2, y2 = map(float, box.xyxy[0])
        landmarks = None
        if points is not None and i < len(points):
            landmarks = tuple((float(px), float(py)) for px, py in points[i])
        boxes.append(Box(x1, y1, x2 - x1, y2 - y1, score=float(box.conf[0]), landmarks=landmarks))
    return boxes


def load_detector(config: DetectorConfig) -> FaceDetector:
    """
    Load the configured detector.

    For the yolo backend every model source is tried in order. When none
    loads, the basic Haar cascade is used instead. DetectorLoadError is raised
    only when even the fallback fails.
    """
    if config.backend == "yolo":
        for source in config.model_sources:
            try:
                logger.info("Trying to load models from: %s", source)
                detector = YOLOFaceDetector(source, confidence=config.confidence)
                logger.info("Models loaded successfully from: %s", source)
                return detector
            except DetectorLoadError as e:
                logger.warning("Failed to load from %s: %s", source, e)
        logger.error("All model sources failed, loading basic face detection model")

    try:
        detector = HaarFaceDetector()
    except Exception as e:
        raise DetectorLoadError(f"Unable to load face detection models: {e}") from e

    logger.info("Basic model loaded (%s)", detector.name)
    return detector
