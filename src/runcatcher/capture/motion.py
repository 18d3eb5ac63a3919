"""
Frame-to-frame motion classification for detected faces.

Each current box is paired with the nearest box of the previous frame and its
speed is the center displacement divided by the elapsed time. There is no
persistent identity: the remembered set is replaced on every call.

Usage:
    classifier = MotionClassifier(threshold=100.0)
    state = ClassifierState()

    for frame_boxes, now in frames:
        for reading in classifier.classify(frame_boxes, state, now):
            if classifier.is_running(reading.speed):
                ...
"""

import logging
import math
from typing import Dict, List, Optional, Sequence, Type

from .types import Box, ClassifierState, MotionReading, TrackedFace


logger = logging.getLogger(__name__)


def center_distance(box1: Box, box2: Box) -> float:
    """Euclidean distance between two box centers."""
    x1, y1 = box1.center
    x2, y2 = box2.center
    return math.hypot(x1 - x2, y1 - y2)


def motion_speed(current_box: Box, previous_box: Box, elapsed: float) -> float:
    """
    Center displacement per second.

    Returns 0.0 when no time has elapsed (or the clock went backwards)
    instead of dividing by zero.
    """
    if elapsed <= 0:
        return 0.0
    return center_distance(current_box, previous_box) / elapsed


class FaceMatcher:
    """Pairs boxes of the current frame with faces remembered from the last one."""

    def assign(
        self,
        current_boxes: Sequence[Box],
        previous_faces: Sequence[TrackedFace]
    ) -> List[Optional[TrackedFace]]:
        """Return one previous face (or None) per current box, in order."""
        raise NotImplementedError


class GreedyNearestMatcher(FaceMatcher):
    """
    Nearest previous face per current box, chosen independently.

    Not a bipartite matching: two current boxes may pick the same previous
    face, and there is no distance gate, so a face entering the frame is
    paired with whatever face is closest. Ties keep the first candidate.
    """

    def assign(self, current_boxes, previous_faces):
        return [self._nearest(box, previous_faces) for box in current_boxes]

    @staticmethod
    def _nearest(box: Box, previous_faces: Sequence[TrackedFace]) -> Optional[TrackedFace]:
        closest = None
        min_distance = math.inf
        for face in previous_faces:
            distance = center_distance(box, face.box)
            if distance < min_distance:
                min_distance = distance
                closest = face
        return closest


MATCHERS: Dict[str, Type[FaceMatcher]] = {
    'greedy': GreedyNearestMatcher,
}


def create_matcher(name: str) -> FaceMatcher:
    try:
        return MATCHERS[name]()
    except KeyError:
        raise ValueError(f"Unknown matcher: {name}") from None


class MotionClassifier:
    """Estimates per-face speed and decides whether a face is running."""

    def __init__(self, threshold: float = 100.0, matcher: Optional[FaceMatcher] = None):
        """
        Args:
            threshold: Speed in pixels/second above which a face is running
            matcher: Pairing strategy (greedy nearest neighbour by default)
        """
        self.threshold = threshold
        self.matcher = matcher or GreedyNearestMatcher()

    def classify(
        self,
        current_boxes: Sequence[Box],
        state: ClassifierState,
        now: float
    ) -> List[MotionReading]:
        """
        Compute a speed for every current box that has a previous match.

        The first frame (empty state) yields no readings and only seeds the
        state. The state always ends up holding exactly ``current_boxes``
        stamped with ``now``.
        """
        readings: List[MotionReading] = []

        if state.previous_faces:
            matches = self.matcher.assign(current_boxes, state.previous_faces)
            for box, matched in zip(current_boxes, matches):
                if matched is None:
                    continue
                speed = motion_speed(box, matched.box, now - matched.timestamp)
                readings.append(MotionReading(box=box, speed=speed, matched=matched))

        state.previous_faces = [TrackedFace(box=box, timestamp=now) for box in current_boxes]

        if readings:
            logger.debug(
                "Speeds: %s",
                ", ".join(f"{r.speed:.1f}" for r in readings)
            )
        return readings

    def is_running(self, speed: float) -> bool:
        return speed > self.threshold

    def running(self, readings: Sequence[MotionReading]) -> List[MotionReading]:
        """Readings above the running threshold."""
        return [r for r in readings if self.is_running(r.speed)]
