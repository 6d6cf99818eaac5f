"""
Microphone acquisition and speech recognition via SpeechRecognition.

The acquirer opens the microphone once (ambient-noise calibration) so that
missing or busy devices fail during acquisition. The source then runs
Recognizer.listen_in_background, whose stopper is the unsubscribe handle;
every recognized phrase becomes a final SpeechResultFragment.
"""

import asyncio
import importlib.util
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import speech_recognition as sr

from core.errors import (
    DeviceBusyError, DeviceNotFoundError, MediaError, NoSignalError,
    PermissionDeniedError, UnsupportedError, from_platform_code,
)
from core.types import Capability, SpeechResultFragment

logger = logging.getLogger(__name__)

# PortAudio: paDeviceUnavailable
_PA_DEVICE_UNAVAILABLE = "-9985"


@dataclass
class SpeechConfig:
    """Microphone and recognizer settings."""
    language: str = "fr-FR"
    device_index: Optional[int] = None
    acquire_timeout_s: float = 5.0
    ambient_noise_s: float = 0.5
    pause_threshold: float = 0.8
    phrase_time_limit_s: float = 8.0
    no_signal_limit: int = 3

    @classmethod
    def from_dict(cls, config: dict) -> "SpeechConfig":
        """Create config from dictionary (YAML parsed)."""
        return cls(
            language=config.get("language", "fr-FR"),
            device_index=config.get("device_index"),
            acquire_timeout_s=config.get("acquire_timeout_s", 5.0),
            ambient_noise_s=config.get("ambient_noise_s", 0.5),
            pause_threshold=config.get("pause_threshold", 0.8),
            phrase_time_limit_s=config.get("phrase_time_limit_s", 8.0),
            no_signal_limit=config.get("no_signal_limit", 3),
        )


def probe_microphone() -> Capability:
    """Microphone capture needs the PyAudio backend."""
    if importlib.util.find_spec("pyaudio") is None:
        logger.warning("PyAudio not installed: voice input unavailable")
        return Capability.UNSUPPORTED
    return Capability.AVAILABLE


class MicrophoneHandle:
    """A calibrated microphone plus its recognizer."""

    def __init__(self, microphone: "sr.Microphone", recognizer: "sr.Recognizer"):
        self.microphone = microphone
        self.recognizer = recognizer
        self._released = False

    def release(self):
        # The audio stream is only open inside the listener thread, which
        # closes it when the background listener exits.
        if not self._released:
            self._released = True
            logger.info("Microphone released")

    @property
    def released(self) -> bool:
        return self._released


class MicrophoneAcquirer:
    """Opens and calibrates the microphone in an executor thread."""

    def __init__(self, config: Optional[SpeechConfig] = None):
        self.config = config or SpeechConfig()

    async def acquire(self) -> MicrophoneHandle:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._open)

    def _open(self) -> MicrophoneHandle:
        cfg = self.config
        try:
            microphone = sr.Microphone(device_index=cfg.device_index)
        except AttributeError as e:
            # Raised by SpeechRecognition when PyAudio is missing.
            raise UnsupportedError(str(e))
        except AssertionError as e:
            raise DeviceNotFoundError(f"microphone {cfg.device_index}: {e}")

        recognizer = sr.Recognizer()
        recognizer.pause_threshold = cfg.pause_threshold
        try:
            with microphone as source:
                recognizer.adjust_for_ambient_noise(source, duration=cfg.ambient_noise_s)
        except PermissionError as e:
            raise PermissionDeniedError(str(e))
        except OSError as e:
            message = str(e)
            if _PA_DEVICE_UNAVAILABLE in message or "unavailable" in message.lower():
                raise DeviceBusyError(message)
            raise DeviceNotFoundError(message or "no input device")

        logger.info("Microphone ready (energy threshold %.0f, language %s)",
                    recognizer.energy_threshold, cfg.language)
        return MicrophoneHandle(microphone, recognizer)


class SpeechSource:
    """Background listener turning phrases into final fragments."""

    def __init__(self, handle: MicrophoneHandle, config: Optional[SpeechConfig] = None):
        self._handle = handle
        self.config = config or SpeechConfig()

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stopper: Optional[Callable[..., None]] = None
        self._stopped = False
        self._index = 0
        self._misses = 0

    def subscribe(self, on_sample: Callable[[SpeechResultFragment], None],
                  on_error: Callable[[BaseException], None]) -> Callable[[], None]:
        if self._stopper is not None:
            raise RuntimeError("SpeechSource supports a single subscription")
        self._loop = asyncio.get_running_loop()
        self._stopped = False
        self._on_sample = on_sample
        self._on_error = on_error
        self._stopper = self._handle.recognizer.listen_in_background(
            self._handle.microphone, self._on_audio,
            phrase_time_limit=self.config.phrase_time_limit_s,
        )
        logger.info("Listening (%s)...", self.config.language)
        return self._unsubscribe

    def _on_audio(self, recognizer: "sr.Recognizer", audio: "sr.AudioData"):
        """Runs on the listener thread for every captured phrase."""
        if self._stopped:
            return
        try:
            text = recognizer.recognize_google(audio, language=self.config.language)
        except sr.UnknownValueError:
            self._misses += 1
            logger.debug("No intelligible speech (%d/%d)", self._misses, self.config.no_signal_limit)
            if self._misses >= self.config.no_signal_limit:
                self._post(self._on_error, NoSignalError(
                    f"no speech recognized in {self._misses} consecutive phrases"
                ))
            return
        except sr.RequestError as e:
            self._post(self._on_error, from_platform_code("network", str(e)))
            return
        except Exception as e:
            self._post(self._on_error, MediaError(f"speech recognition failed: {e}"))
            return

        self._misses = 0
        fragment = SpeechResultFragment(text=text, is_final=True, index=self._index)
        self._index += 1
        self._post(self._on_sample, fragment)

    def _post(self, callback: Callable[[Any], None], arg: Any):
        if self._stopped:
            return
        try:
            self._loop.call_soon_threadsafe(callback, arg)
        except RuntimeError:
            # Loop already closed.
            self._stopped = True

    def _unsubscribe(self):
        self._stopped = True
        stopper, self._stopper = self._stopper, None
        if stopper is not None:
            # A phrase being recognized may take seconds; do not block the loop on it.
            stopper(wait_for_stop=False)
        logger.info("Stopped listening")

    def close(self):
        """The Google recognizer keeps no local model; nothing to free."""
        self._stopped = True


def make_speech_source_factory(config: Optional[SpeechConfig] = None) -> Callable[[MicrophoneHandle], SpeechSource]:
    def factory(handle: MicrophoneHandle) -> SpeechSource:
        return SpeechSource(handle, config)

    return factory
