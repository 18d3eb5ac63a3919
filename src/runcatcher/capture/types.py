"""
Data containers passed between the detector, classifier and capture pipeline.
"""

import base64
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple


DATA_URI_PREFIX = "data:image/jpeg;base64,"


@dataclass(frozen=True)
class Box:
    """Axis-aligned face rectangle in frame pixel coordinates."""
    x: float
    y: float
    width: float
    height: float
    score: float = 1.0
    landmarks: Optional[Tuple[Tuple[float, float], ...]] = None

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def xyxy(self) -> Tuple[int, int, int, int]:
        """Integer corner coordinates for drawing."""
        return (
            int(self.x),
            int(self.y),
            int(self.x + self.width),
            int(self.y + self.height),
        )


@dataclass(frozen=True)
class TrackedFace:
    """A box remembered from the previous frame together with its capture time."""
    box: Box
    timestamp: float               # seconds (time.time() scale)


@dataclass(frozen=True)
class MotionReading:
    """Speed estimate for one box of the current frame."""
    box: Box
    speed: float                   # pixels per second
    matched: Optional[TrackedFace] = None


@dataclass
class ClassifierState:
    """Faces remembered between two classification calls."""
    previous_faces: List[TrackedFace] = field(default_factory=list)


@dataclass
class CaptureSession:
    """Cooldown bookkeeping for one camera session."""
    last_capture_time: Optional[float] = None
    runner_count: int = 0          # display label only, not an identity key


@dataclass
class CaptureEvent:
    """An accepted, encoded face snapshot waiting to be uploaded."""
    image_bytes: bytes             # JPEG encoded crop
    motion_speed: float            # pixels per second
    timestamp: float               # capture time (Unix timestamp)
    number: int = 0                # "Runner #N" label
    crop: Tuple[int, int, int, int] = (0, 0, 0, 0)

    @property
    def data_uri(self) -> str:
        return DATA_URI_PREFIX + base64.b64encode(self.image_bytes).decode('ascii')

    @property
    def iso_timestamp(self) -> str:
        return isoformat_utc(self.timestamp)

    @property
    def label(self) -> str:
        return f"Runner #{self.number}"


def isoformat_utc(timestamp: float) -> str:
    """Format a Unix timestamp as ``2024-05-01T12:30:45.123Z``."""
    if not math.isfinite(timestamp):
        raise ValueError(f"Invalid timestamp: {timestamp}")
    dt = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return dt.isoformat(timespec='milliseconds').replace('+00:00', 'Z')
