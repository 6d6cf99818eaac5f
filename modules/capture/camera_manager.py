"""
OpenCV camera acquisition and the threaded landmark frame source.

CameraAcquirer opens the device in an executor thread and classifies
failures into MediaError kinds. CameraFrameSource runs capture and hand
landmark inference on a worker thread and hands each frame's hands back
to the asyncio loop with call_soon_threadsafe.
"""

import asyncio
import time
import threading
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

import cv2
import numpy as np

from core.errors import (
    ConstraintUnsatisfiableError, DeviceBusyError, DeviceNotFoundError, MediaError,
)
from core.types import Capability, HandLandmarkSet
from modules.detection.hand_detector import HandDetector, HandLandmarkerConfig

logger = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    """Camera configuration settings."""
    device_id: int = 0
    width: int = 640
    height: int = 480
    fps: int = 30
    max_width: int = 1920
    max_height: int = 1080
    flip_horizontal: bool = True
    warmup_frames: int = 5
    acquire_timeout_s: float = 5.0
    max_read_failures: int = 30

    @classmethod
    def from_dict(cls, config: dict) -> "CameraConfig":
        """Create config from dictionary (YAML parsed)."""
        return cls(
            device_id=config.get("device_id", 0),
            width=config.get("width", 640),
            height=config.get("height", 480),
            fps=config.get("fps", 30),
            max_width=config.get("max_width", 1920),
            max_height=config.get("max_height", 1080),
            flip_horizontal=config.get("flip_horizontal", True),
            warmup_frames=config.get("warmup_frames", 5),
            acquire_timeout_s=config.get("acquire_timeout_s", 5.0),
            max_read_failures=config.get("max_read_failures", 30),
        )


def probe_camera() -> Capability:
    """Report whether this OpenCV build can capture from cameras at all."""
    try:
        backends = cv2.videoio_registry.getCameraBackends()
    except (AttributeError, cv2.error) as e:
        logger.warning("Camera backend query failed: %s", e)
        return Capability.UNSUPPORTED
    return Capability.AVAILABLE if backends else Capability.UNSUPPORTED


class CameraHandle:
    """An opened VideoCapture. Owned by the lifecycle once acquired."""

    def __init__(self, cap: "cv2.VideoCapture", resolution: Tuple[int, int], flip_horizontal: bool = True):
        self._cap = cap
        self._resolution = resolution
        self._flip_h = flip_horizontal

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        """Blocking read of the next BGR frame."""
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return False, None
        if self._flip_h:
            frame = cv2.flip(frame, 1)
        return True, frame

    def release(self):
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Camera released")

    @property
    def resolution(self) -> Tuple[int, int]:
        return self._resolution


class CameraAcquirer:
    """Opens the configured camera without blocking the event loop."""

    def __init__(self, config: Optional[CameraConfig] = None):
        self.config = config or CameraConfig()

    async def acquire(self) -> CameraHandle:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._open)

    def _open(self) -> CameraHandle:
        cfg = self.config
        logger.info("Opening camera %d (%dx%d@%dfps)", cfg.device_id, cfg.width, cfg.height, cfg.fps)

        cap = cv2.VideoCapture(cfg.device_id)
        if not cap.isOpened():
            cap.release()
            raise DeviceNotFoundError(f"camera {cfg.device_id} could not be opened")

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.height)
        cap.set(cv2.CAP_PROP_FPS, cfg.fps)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        actual_w = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_h = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        if actual_w > cfg.max_width or actual_h > cfg.max_height:
            cap.release()
            raise ConstraintUnsatisfiableError(
                f"camera negotiated {actual_w}x{actual_h}, above {cfg.max_width}x{cfg.max_height}"
            )

        ok, _ = cap.read()
        if not ok:
            cap.release()
            raise DeviceBusyError(f"camera {cfg.device_id} opened but delivers no frames")

        # Let auto-exposure settle.
        for _ in range(max(cfg.warmup_frames - 1, 0)):
            cap.read()

        logger.info("Camera opened: %dx%d", actual_w, actual_h)
        return CameraHandle(cap, (actual_w, actual_h), cfg.flip_horizontal)


class CameraFrameSource:
    """Capture + landmark inference thread feeding the event loop.

    Each delivered sample is the list of HandLandmarkSets found in one
    frame (empty when no hand is visible).
    """

    def __init__(self, handle: CameraHandle, detector: HandDetector, max_read_failures: int = 30):
        self._handle = handle
        self._detector = detector
        self._max_read_failures = max_read_failures

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._frames = 0

    def subscribe(self, on_sample: Callable[[List[HandLandmarkSet]], None],
                  on_error: Callable[[BaseException], None]) -> Callable[[], None]:
        if self._thread is not None:
            raise RuntimeError("CameraFrameSource supports a single subscription")
        self._loop = asyncio.get_running_loop()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._capture_loop, args=(on_sample, on_error),
            name="camera-frames", daemon=True,
        )
        self._thread.start()
        logger.info("Camera frame source started")
        return self._unsubscribe

    def _capture_loop(self, on_sample, on_error):
        failures = 0
        while not self._stop_event.is_set():
            ok, frame = self._handle.read()
            if not ok:
                failures += 1
                if failures >= self._max_read_failures:
                    self._post(on_error, DeviceBusyError(
                        f"camera stopped delivering frames ({failures} failed reads)"
                    ))
                    return
                time.sleep(0.01)
                continue
            failures = 0

            try:
                rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                hands = self._detector.detect(rgb)
            except Exception as e:
                self._post(on_error, MediaError(f"hand landmark detection failed: {e}"))
                return

            self._frames += 1
            self._post(on_sample, [hand.landmarks for hand in hands])

    def _post(self, callback: Callable[[Any], None], arg: Any):
        if self._stop_event.is_set():
            return
        try:
            self._loop.call_soon_threadsafe(callback, arg)
        except RuntimeError:
            # Loop already closed.
            self._stop_event.set()

    def _unsubscribe(self):
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
            if thread.is_alive():
                logger.warning("Camera thread did not stop within 2s")
        logger.info("Camera frame source stopped after %d frames", self._frames)

    def close(self):
        """Release the landmark model."""
        self._detector.stop()

    @property
    def frames_delivered(self) -> int:
        return self._frames


def make_camera_source_factory(
    camera_config: Optional[CameraConfig] = None,
    landmarker_config: Optional[HandLandmarkerConfig] = None,
) -> Callable[[CameraHandle], CameraFrameSource]:
    """Build the per-session source factory handed to GesturePipeline."""
    camera_config = camera_config or CameraConfig()

    def factory(handle: CameraHandle) -> CameraFrameSource:
        detector = HandDetector(landmarker_config)
        if not detector.start():
            raise MediaError("hand landmark model unavailable")
        return CameraFrameSource(handle, detector, camera_config.max_read_failures)

    return factory
