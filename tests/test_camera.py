"""
Tests for Camera Module
========================
"""

import asyncio
import pytest
import numpy as np
import sys
from pathlib import Path
from unittest.mock import Mock, MagicMock, patch

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import (
    ConstraintUnsatisfiableError, DeviceBusyError, DeviceNotFoundError, ErrorKind, MediaError,
)
from core.types import Capability, Landmark
from modules.capture.camera_manager import (
    CameraAcquirer, CameraConfig, CameraFrameSource, CameraHandle,
    make_camera_source_factory, probe_camera,
)
from modules.detection.hand_detector import HandLandmarks


def mock_capture(mock_cv2, opened=True, size=(640, 480), read_ok=True):
    """Configure mock_cv2.VideoCapture to return a capture with the given behaviour."""
    cap = MagicMock()
    cap.isOpened.return_value = opened
    props = {mock_cv2.CAP_PROP_FRAME_WIDTH: size[0], mock_cv2.CAP_PROP_FRAME_HEIGHT: size[1]}
    cap.get.side_effect = lambda prop: props.get(prop, 0)
    frame = np.zeros((size[1], size[0], 3), dtype=np.uint8)
    cap.read.return_value = (True, frame) if read_ok else (False, None)
    mock_cv2.VideoCapture.return_value = cap
    return cap


class TestCameraConfig:
    """Test suite for CameraConfig."""

    def test_default_values(self):
        config = CameraConfig()

        assert config.device_id == 0
        assert config.width == 640
        assert config.height == 480
        assert config.acquire_timeout_s == 5.0

    def test_from_dict_partial(self):
        config = CameraConfig.from_dict({"device_id": 2, "max_width": 800})

        assert config.device_id == 2
        assert config.max_width == 800
        assert config.width == 640  # Default


class TestCameraAcquirer:
    """Acquisition failures map to typed media errors; the capture is always released."""

    @patch("modules.capture.camera_manager.cv2")
    def test_unopened_device(self, mock_cv2):
        cap = mock_capture(mock_cv2, opened=False)

        with pytest.raises(DeviceNotFoundError):
            CameraAcquirer(CameraConfig())._open()
        cap.release.assert_called_once()

    @patch("modules.capture.camera_manager.cv2")
    def test_resolution_above_max(self, mock_cv2):
        cap = mock_capture(mock_cv2, size=(3840, 2160))

        with pytest.raises(ConstraintUnsatisfiableError):
            CameraAcquirer(CameraConfig())._open()
        cap.release.assert_called_once()

    @patch("modules.capture.camera_manager.cv2")
    def test_first_read_fails(self, mock_cv2):
        cap = mock_capture(mock_cv2, read_ok=False)

        with pytest.raises(DeviceBusyError):
            CameraAcquirer(CameraConfig())._open()
        cap.release.assert_called_once()

    @patch("modules.capture.camera_manager.cv2")
    def test_success(self, mock_cv2):
        cap = mock_capture(mock_cv2)

        handle = asyncio.run(CameraAcquirer(CameraConfig(warmup_frames=3)).acquire())

        assert isinstance(handle, CameraHandle)
        assert handle.resolution == (640, 480)
        assert cap.read.call_count == 3
        cap.release.assert_not_called()

        handle.release()
        handle.release()
        cap.release.assert_called_once()


class TestCameraHandle:

    @patch("modules.capture.camera_manager.cv2")
    def test_read_flips_when_configured(self, mock_cv2):
        cap = MagicMock()
        cap.read.return_value = (True, "frame")
        mock_cv2.flip.return_value = "flipped"

        assert CameraHandle(cap, (640, 480), flip_horizontal=True).read() == (True, "flipped")
        assert CameraHandle(cap, (640, 480), flip_horizontal=False).read() == (True, "frame")

    def test_failed_read(self):
        cap = MagicMock()
        cap.read.return_value = (False, None)

        assert CameraHandle(cap, (640, 480)).read() == (False, None)


class FakeCameraHandle:
    def __init__(self, ok=True):
        self.ok = ok

    def read(self):
        if self.ok:
            return True, np.zeros((48, 64, 3), dtype=np.uint8)
        return False, None


class TestCameraFrameSource:

    def test_delivers_hands_on_loop(self):
        hand = HandLandmarks([Landmark(0.5, 0.5)] * 21, "Right", 0.9)
        detector = Mock()
        detector.detect.return_value = [hand]

        async def scenario():
            received = asyncio.Event()
            samples = []

            def on_sample(hands):
                samples.append(hands)
                received.set()

            source = CameraFrameSource(FakeCameraHandle(), detector)
            unsubscribe = source.subscribe(on_sample, Mock())
            await asyncio.wait_for(received.wait(), timeout=2.0)
            unsubscribe()

            assert samples[0] == [hand.landmarks]
            assert source.frames_delivered >= 1

        asyncio.run(scenario())

    def test_repeated_read_failures_report_device_busy(self):
        async def scenario():
            failed = asyncio.Event()
            errors = []

            def on_error(exc):
                errors.append(exc)
                failed.set()

            source = CameraFrameSource(FakeCameraHandle(ok=False), Mock(), max_read_failures=3)
            unsubscribe = source.subscribe(Mock(), on_error)
            await asyncio.wait_for(failed.wait(), timeout=2.0)
            unsubscribe()

            assert len(errors) == 1
            assert errors[0].kind == ErrorKind.DEVICE_BUSY

        asyncio.run(scenario())

    def test_close_stops_detector(self):
        detector = Mock()
        CameraFrameSource(FakeCameraHandle(), detector).close()

        detector.stop.assert_called_once()


class TestSourceFactory:

    @patch("modules.capture.camera_manager.HandDetector")
    def test_model_unavailable(self, mock_detector_cls):
        mock_detector_cls.return_value.start.return_value = False
        factory = make_camera_source_factory()

        with pytest.raises(MediaError):
            factory(FakeCameraHandle())

    @patch("modules.capture.camera_manager.HandDetector")
    def test_builds_source(self, mock_detector_cls):
        mock_detector_cls.return_value.start.return_value = True

        source = make_camera_source_factory()(FakeCameraHandle())

        assert isinstance(source, CameraFrameSource)


class TestProbe:

    @patch("modules.capture.camera_manager.cv2")
    def test_probe(self, mock_cv2):
        mock_cv2.error = Exception
        mock_cv2.videoio_registry.getCameraBackends.return_value = [200]
        assert probe_camera() == Capability.AVAILABLE

        mock_cv2.videoio_registry.getCameraBackends.return_value = []
        assert probe_camera() == Capability.UNSUPPORTED


@pytest.mark.skip(reason="Requires physical camera")
class TestCameraHardware:

    def test_real_camera_opens(self):
        handle = asyncio.run(CameraAcquirer(CameraConfig()).acquire())
        try:
            ok, frame = handle.read()
            assert ok and frame is not None
        finally:
            handle.release()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
