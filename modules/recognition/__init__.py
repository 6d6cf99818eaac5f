"""Gesture classification and stabilization."""
from .gesture_classifier import classify
from .stabilizer import GestureStabilizer

__all__ = ["classify", "GestureStabilizer"]
