"""Microphone capture and utterance segmentation."""
from .segmenter import SpeechSegmenter

__all__ = ["SpeechSegmenter"]
