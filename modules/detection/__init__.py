"""Hand landmark detection using MediaPipe."""
from .hand_detector import HandDetector, HandLandmarkerConfig, HandLandmarks

__all__ = ["HandDetector", "HandLandmarkerConfig", "HandLandmarks"]
