#!/usr/bin/env python3
"""
Device detection utility.
Lists working cameras and microphones and suggests config.yaml values.
"""

import os
import sys

import cv2
import speech_recognition as sr

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from modules.speech.microphone import probe_microphone
from core.types import Capability


def test_camera(device_id):
    """Test if camera at device_id works."""
    print("Testing camera {}...".format(device_id))
    cap = cv2.VideoCapture(device_id)

    if not cap.isOpened():
        print("  ✗ Failed to open")
        return False

    ret, frame = cap.read()
    cap.release()

    if ret and frame is not None:
        height, width = frame.shape[:2]
        print("  ✓ Works! Resolution: {}x{}".format(width, height))
        return True
    else:
        print("  ✗ Opened but can't read frames")
        return False


def list_microphones():
    """List input devices known to PyAudio."""
    if probe_microphone() is Capability.UNSUPPORTED:
        print("  ✗ PyAudio is not installed (pip install pyaudio)")
        return []
    names = sr.Microphone.list_microphone_names()
    working = sr.Microphone.list_working_microphones()
    for index, name in enumerate(names):
        mark = "✓" if index in working else " "
        print("  {} [{}] {}".format(mark, index, name))
    return sorted(working)


def main():
    print("=" * 60)
    print("DEVICE DETECTION")
    print("=" * 60)

    print("\nCameras:")
    working_cameras = [i for i in range(5) if test_camera(i)]

    print("\nMicrophones (✓ = hears audio):")
    working_mics = list_microphones()

    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)

    if working_cameras:
        print("\n✓ Found {} working camera(s)".format(len(working_cameras)))
        print("\nTo use in config.yaml:")
        print("  camera:")
        print("    device_id: {}".format(working_cameras[0]))
    else:
        print("\n✗ No cameras detected! Use /demo gestures instead.")

    if working_mics:
        print("\n✓ Found {} working microphone(s)".format(len(working_mics)))
        print("\nTo use in config.yaml:")
        print("  speech:")
        print("    device_index: {}".format(working_mics[0]))
    else:
        print("\n✗ No working microphone! Typed text still works.")


if __name__ == "__main__":
    main()
