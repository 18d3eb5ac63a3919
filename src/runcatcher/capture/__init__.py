"""
Capture module for face detection and runner snapshots.

Components:
- FaceDetector: Detector adapters (Haar cascade, YOLO)
- MotionClassifier: Frame-to-frame speed estimate per face
- CapturePipeline: Cooldown gate, crop and JPEG encoding
- CaptureUploader: HTTP client for the capture service
- StreamCapture: Webcam detection loop tying the above together
"""

from .types import Box, TrackedFace, MotionReading, CaptureEvent, ClassifierState, CaptureSession
from .motion import MotionClassifier, GreedyNearestMatcher, center_distance, motion_speed
from .pipeline import CapturePipeline, compute_crop_rect
from .detector import FaceDetector, HaarFaceDetector, YOLOFaceDetector, load_detector
from .uploader import CaptureUploader
from .stream_capture import StreamCapture, FrameResult

__all__ = [
    'Box', 'TrackedFace', 'MotionReading', 'CaptureEvent', 'ClassifierState', 'CaptureSession',
    'MotionClassifier', 'GreedyNearestMatcher', 'center_distance', 'motion_speed',
    'CapturePipeline', 'compute_crop_rect',
    'FaceDetector', 'HaarFaceDetector', 'YOLOFaceDetector', 'load_detector',
    'CaptureUploader',
    'StreamCapture', 'FrameResult',
]
