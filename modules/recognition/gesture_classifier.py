"""
Rule-based static gesture classification over 21 hand landmarks.

Each rule is a geometric predicate over normalized image coordinates
(y grows downward, so "above" means a smaller y). A finger counts as
extended when its tip is above its distal joint and as curled when the
tip is below it; a tip level with the joint is neither.

Rules are evaluated in a fixed priority order and the first match wins:

    THUMBS_UP > PEACE > OK > STOP

classify() is a pure per-frame function: no smoothing, no history.
Temporal de-duplication lives in GestureStabilizer.
"""

import logging
from typing import Callable, Tuple

from core.types import HAND_LANDMARK_COUNT, GestureLabel, HandLandmarkSet, LandmarkIndex

logger = logging.getLogger(__name__)

# Max thumb-tip/index-tip offset (per axis, normalized) for the OK circle.
OK_TOLERANCE = 0.05

# (tip, distal joint) per finger; the thumb uses its interphalangeal joint.
_FINGER_JOINTS = {
    "thumb": (LandmarkIndex.THUMB_TIP, LandmarkIndex.THUMB_IP),
    "index": (LandmarkIndex.INDEX_TIP, LandmarkIndex.INDEX_DIP),
    "middle": (LandmarkIndex.MIDDLE_TIP, LandmarkIndex.MIDDLE_DIP),
    "ring": (LandmarkIndex.RING_TIP, LandmarkIndex.RING_DIP),
    "pinky": (LandmarkIndex.PINKY_TIP, LandmarkIndex.PINKY_DIP),
}


def is_extended(landmarks: HandLandmarkSet, finger: str) -> bool:
    tip, joint = _FINGER_JOINTS[finger]
    return landmarks[tip].y < landmarks[joint].y


def is_curled(landmarks: HandLandmarkSet, finger: str) -> bool:
    tip, joint = _FINGER_JOINTS[finger]
    return landmarks[tip].y > landmarks[joint].y


def is_thumbs_up(landmarks: HandLandmarkSet, ok_tolerance: float = OK_TOLERANCE) -> bool:
    """Thumb up, the four fingers curled."""
    return (is_extended(landmarks, "thumb")
            and all(is_curled(landmarks, f) for f in ("index", "middle", "ring", "pinky")))


def is_peace(landmarks: HandLandmarkSet, ok_tolerance: float = OK_TOLERANCE) -> bool:
    """Index and middle extended, ring and pinky curled."""
    return (is_extended(landmarks, "index") and is_extended(landmarks, "middle")
            and is_curled(landmarks, "ring") and is_curled(landmarks, "pinky"))


def is_ok(landmarks: HandLandmarkSet, ok_tolerance: float = OK_TOLERANCE) -> bool:
    """Thumb and index tips touching, the other three fingers extended."""
    thumb_tip = landmarks[LandmarkIndex.THUMB_TIP]
    index_tip = landmarks[LandmarkIndex.INDEX_TIP]
    touching = (abs(thumb_tip.x - index_tip.x) < ok_tolerance
                and abs(thumb_tip.y - index_tip.y) < ok_tolerance)
    return touching and all(is_extended(landmarks, f) for f in ("middle", "ring", "pinky"))


def is_stop(landmarks: HandLandmarkSet, ok_tolerance: float = OK_TOLERANCE) -> bool:
    """All four fingers extended (open palm)."""
    return all(is_extended(landmarks, f) for f in ("index", "middle", "ring", "pinky"))


# Priority order, first match wins.
GESTURE_RULES: Tuple[Tuple[GestureLabel, Callable[..., bool]], ...] = (
    (GestureLabel.THUMBS_UP, is_thumbs_up),
    (GestureLabel.PEACE, is_peace),
    (GestureLabel.OK, is_ok),
    (GestureLabel.STOP, is_stop),
)


def classify(landmarks: HandLandmarkSet, ok_tolerance: float = OK_TOLERANCE) -> GestureLabel:
    """Classify one hand in one frame.

    Args:
        landmarks: 21 landmarks ordered by LandmarkIndex
        ok_tolerance: per-axis thumb/index distance for the OK sign

    Returns:
        The first matching GestureLabel, or GestureLabel.NONE when no rule
        matches or the landmark set is incomplete
    """
    if not landmarks or len(landmarks) < HAND_LANDMARK_COUNT:
        return GestureLabel.NONE

    for label, rule in GESTURE_RULES:
        if rule(landmarks, ok_tolerance):
            return label
    return GestureLabel.NONE
