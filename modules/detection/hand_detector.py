"""
Hand landmark detection with the MediaPipe Tasks API (HandLandmarker).

Produces up to max_num_hands HandLandmarks per RGB frame, each holding the
21 normalized landmarks the gesture classifier works on. The model file is
downloaded on first use when it is not already on disk.
"""

import time
import logging
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np
import mediapipe as mp
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

from core.types import Landmark

logger = logging.getLogger(__name__)

HAND_LANDMARKER_MODEL_URL = "https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task"
DEFAULT_MODEL_PATH = Path(__file__).parent.parent.parent / "models" / "hand_landmarker.task"


@dataclass
class HandLandmarkerConfig:
    """Configuration for the hand landmark model."""
    model_path: str = ""
    max_num_hands: int = 2
    min_detection_confidence: float = 0.5
    min_presence_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    @classmethod
    def from_dict(cls, d: dict) -> "HandLandmarkerConfig":
        """Create config from dictionary (YAML parsed)."""
        return cls(
            model_path=d.get("model_path", ""),
            max_num_hands=d.get("max_num_hands", 2),
            min_detection_confidence=d.get("min_detection_confidence", 0.5),
            min_presence_confidence=d.get("min_presence_confidence", 0.5),
            min_tracking_confidence=d.get("min_tracking_confidence", 0.5),
        )


@dataclass
class HandLandmarks:
    """One detected hand."""
    landmarks: List[Landmark]
    handedness: str  # "Left" or "Right"
    confidence: float


def download_model(url: str, save_path: Path) -> bool:
    """Download the hand landmarker model if not present."""
    if save_path.exists():
        logger.debug("Model already exists at %s", save_path)
        return True

    try:
        save_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading hand landmarker model to %s...", save_path)
        urllib.request.urlretrieve(url, str(save_path))
        logger.info("Model download complete")
        return True
    except OSError as e:
        logger.error("Failed to download model: %s", e)
        return False


class HandDetector:
    """
    Wrapper around MediaPipe's HandLandmarker in VIDEO running mode.

    Example:
        >>> detector = HandDetector(HandLandmarkerConfig())
        >>> detector.start()
        >>> hands = detector.detect(rgb_image)  # RGB format!
        >>> detector.stop()
    """

    def __init__(self, config: Optional[HandLandmarkerConfig] = None):
        self.config = config or HandLandmarkerConfig()
        self._landmarker: Optional[vision.HandLandmarker] = None
        self._last_timestamp_ms = -1

    def start(self) -> bool:
        """Load the model. Returns False when it cannot be loaded."""
        model_path = Path(self.config.model_path) if self.config.model_path else DEFAULT_MODEL_PATH
        if not model_path.exists() and not download_model(HAND_LANDMARKER_MODEL_URL, model_path):
            logger.error("Could not download hand landmarker model")
            return False

        options = vision.HandLandmarkerOptions(
            base_options=python.BaseOptions(model_asset_path=str(model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_hands=self.config.max_num_hands,
            min_hand_detection_confidence=self.config.min_detection_confidence,
            min_hand_presence_confidence=self.config.min_presence_confidence,
            min_tracking_confidence=self.config.min_tracking_confidence,
        )
        try:
            self._landmarker = vision.HandLandmarker.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            logger.error("Failed to initialize HandLandmarker: %s", e)
            return False

        logger.info("HandLandmarker initialized with model: %s (max hands %d)",
                    model_path, self.config.max_num_hands)
        return True

    def stop(self):
        """Release the model."""
        if self._landmarker:
            self._landmarker.close()
            self._landmarker = None
            logger.info("HandLandmarker stopped")

    def detect(self, image: np.ndarray) -> List[HandLandmarks]:
        """
        Detect hands in the given image.

        Args:
            image: RGB image as numpy array (H, W, 3)

        Returns:
            List of HandLandmarks for each detected hand
        """
        if self._landmarker is None:
            logger.warning("HandLandmarker not initialized. Call start() first.")
            return []

        # VIDEO mode needs strictly increasing timestamps.
        timestamp_ms = max(int(time.monotonic() * 1000), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=image)
        result = self._landmarker.detect_for_video(mp_image, timestamp_ms)

        hands = []
        for i, hand_landmarks in enumerate(result.hand_landmarks):
            handedness, confidence = "Right", 0.0
            if result.handedness and len(result.handedness) > i:
                handedness = result.handedness[i][0].category_name
                confidence = result.handedness[i][0].score

            hands.append(HandLandmarks(
                landmarks=[Landmark(x=lm.x, y=lm.y, z=lm.z) for lm in hand_landmarks],
                handedness=handedness,
                confidence=confidence,
            ))
        return hands

    @property
    def is_running(self) -> bool:
        return self._landmarker is not None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
