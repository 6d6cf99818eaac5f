"""
Shared domain types for the multimodal assistant input engine.

Centralizes enums, value objects and display tables used across modules
to eliminate circular imports and ensure type consistency.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, List, NamedTuple, Optional, Sequence


# =============================================================================
# Modalities & Lifecycle
# =============================================================================

class Modality(Enum):
    """Channel a domain event came from."""
    VOICE = "voice"
    GESTURE = "gesture"
    TEXT = "text"


class LifecycleState(Enum):
    """Acquisition lifecycle of one media modality."""
    IDLE = "idle"
    ACQUIRING = "acquiring"
    ACTIVE = "active"
    ERROR = "error"
    STOPPED = "stopped"


class Capability(Enum):
    """Result of probing the platform for a media capability."""
    AVAILABLE = "available"
    UNSUPPORTED = "unsupported"


# =============================================================================
# Hand Landmarks
# =============================================================================

HAND_LANDMARK_COUNT = 21


class LandmarkIndex(IntEnum):
    """Hand landmark indices following MediaPipe convention."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


class Landmark(NamedTuple):
    """A single landmark point with normalized coordinates."""
    x: float  # 0.0 to 1.0, normalized by image width
    y: float  # 0.0 to 1.0, normalized by image height, grows downward
    z: float = 0.0  # Depth relative to wrist


# One detected hand in one frame, 21 points ordered by LandmarkIndex.
HandLandmarkSet = Sequence[Landmark]


# =============================================================================
# Gesture Labels
# =============================================================================

class GestureLabel(Enum):
    """Closed vocabulary produced by the geometric gesture classifier."""
    NONE = "none"
    THUMBS_UP = "thumbs_up"
    PEACE = "peace"
    STOP = "stop"
    OK = "ok"


# Phrase handed to the application when the camera recognizes a gesture.
GESTURE_DISPLAY: Dict[GestureLabel, str] = {
    GestureLabel.THUMBS_UP: "👍 Pouce levé",
    GestureLabel.PEACE: "✌️ Victoire",
    GestureLabel.OK: "👌 OK",
    GestureLabel.STOP: "✋ Stop",
}


class DemoGesture(NamedTuple):
    """Entry of the manual (camera-free) gesture menu."""
    name: str
    emoji: str
    description: str

    @property
    def confirmation(self) -> str:
        return f"{self.emoji} {self.name}"

    @property
    def event_text(self) -> str:
        return f"{self.emoji} {self.description}"


DEMO_GESTURES: List[DemoGesture] = [
    DemoGesture("Pouce levé", "👍", "Pouce levé - Super!"),
    DemoGesture("Victoire", "✌️", "Victoire - Bravo!"),
    DemoGesture("Stop", "✋", "Stop - D'accord!"),
    DemoGesture("OK", "👌", "OK - Parfait!"),
    DemoGesture("Bonjour", "👋", "Bonjour - Salut!"),
    DemoGesture("Cœur", "❤️", "Cœur - Je t'aime!"),
]


def find_demo_gesture(name: str) -> Optional[DemoGesture]:
    """Look up a demo menu entry by name (case-insensitive)."""
    wanted = name.strip().casefold()
    for gesture in DEMO_GESTURES:
        if gesture.name.casefold() == wanted:
            return gesture
    return None


# =============================================================================
# Data Containers
# =============================================================================

@dataclass(frozen=True)
class SpeechResultFragment:
    """One recognition result from the speech engine.

    Interim fragments are provisional and superseded by later fragments
    with the same or a higher index; a final fragment closes its segment.
    """
    text: str
    is_final: bool
    index: int


@dataclass(frozen=True)
class DomainEvent:
    """Discrete, de-duplicated unit of meaning handed to the application."""
    text: str
    source_modality: Modality
    timestamp: float = field(default_factory=time.time, compare=False)
