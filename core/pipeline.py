"""
Input pipelines turning raw camera and microphone samples into DomainEvents.

Architecture:
    Camera -> HandLandmarker -> classify() -> GestureStabilizer -> DomainEvent
    Microphone -> SpeechRecognition -> SpeechSegmenter -> DomainEvent

Each pipeline owns one MediaLifecycle for acquisition and teardown, plus its
own stabilizer or segmenter; nothing is shared between modalities. Events
are published on the instance-scoped EventBus:

    Events.DOMAIN_EVENT     event=DomainEvent
    Events.LIVE_TRANSCRIPT  text=str          (voice only; stays empty with
                                               SpeechRecognition, which only
                                               yields final phrases)
    Events.CONFIRMATION     text=str, modality=Modality
"""

import time
import logging
from typing import Callable, Iterable, Optional

from core.errors import ErrorRecord
from core.events import EventBus, Events
from core.lifecycle import Acquirer, MediaLifecycle, SourceFactory
from core.types import (
    Capability, DomainEvent, GestureLabel, HandLandmarkSet, LifecycleState,
    Modality, SpeechResultFragment, find_demo_gesture,
)
from modules.control.feedback_manager import ConfirmationDisplay
from modules.recognition.gesture_classifier import OK_TOLERANCE, classify
from modules.recognition.stabilizer import GestureStabilizer
from modules.speech.segmenter import SpeechSegmenter

logger = logging.getLogger(__name__)

DEFAULT_CONFIRMATION_S = 2.0


class _MediaPipeline:
    """Shared lifecycle plumbing for the camera and microphone pipelines."""

    modality: Modality

    def __init__(self, acquirer: Acquirer, source_factory: SourceFactory,
                 event_bus: Optional[EventBus], capability: Capability,
                 acquire_timeout_s: float):
        self._bus = event_bus or EventBus()
        self._lifecycle = MediaLifecycle(
            self.modality, acquirer, source_factory, self._on_sample,
            capability=capability,
            acquire_timeout_s=acquire_timeout_s,
            event_bus=self._bus,
        )

    def _on_sample(self, sample):
        raise NotImplementedError

    def _publish(self, event: DomainEvent):
        logger.info("[%s] %s", event.source_modality.value, event.text)
        self._bus.emit(Events.DOMAIN_EVENT, event=event)

    def _is_streaming(self) -> bool:
        return self._lifecycle.state in (LifecycleState.ACQUIRING, LifecycleState.ACTIVE)

    def stop(self):
        self._lifecycle.stop()

    @property
    def state(self) -> LifecycleState:
        return self._lifecycle.state

    @property
    def error(self) -> Optional[ErrorRecord]:
        return self._lifecycle.error

    @property
    def lifecycle(self) -> MediaLifecycle:
        return self._lifecycle


class GesturePipeline(_MediaPipeline):
    """Camera frames -> one gesture label per frame -> fire-once DomainEvents.

    Also hosts the manual demo menu, which works whatever the camera state.
    """

    modality = Modality.GESTURE

    def __init__(
        self,
        acquirer: Acquirer,
        source_factory: SourceFactory,
        event_bus: Optional[EventBus] = None,
        capability: Capability = Capability.AVAILABLE,
        config: Optional[dict] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        config = config or {}
        super().__init__(acquirer, source_factory, event_bus, capability,
                         config.get("acquire_timeout_s", 5.0))
        self._ok_tolerance = config.get("ok_tolerance", OK_TOLERANCE)
        self._confirmation_s = config.get("confirmation_s", DEFAULT_CONFIRMATION_S)

        self._stabilizer = GestureStabilizer()
        self._confirmation = ConfirmationDisplay(clock)
        self._frame_count = 0

    async def start(self) -> LifecycleState:
        """Open the camera and start recognizing gestures."""
        if not self._is_streaming():
            self._stabilizer.reset()
            self._frame_count = 0
        return await self._lifecycle.start()

    def stop(self):
        super().stop()
        self._confirmation.clear()

    def trigger_demo(self, name: str) -> DomainEvent:
        """Emit a demo gesture from the manual menu, bypassing the camera.

        Raises:
            ValueError: name is not on the demo menu
        """
        gesture = find_demo_gesture(name)
        if gesture is None:
            raise ValueError(f"Unknown demo gesture: {name!r}")

        self._confirmation.show(gesture.confirmation, self._confirmation_s)
        self._bus.emit(Events.CONFIRMATION, text=gesture.confirmation, modality=self.modality)

        event = DomainEvent(text=gesture.event_text, source_modality=Modality.GESTURE)
        self._publish(event)
        return event

    def _on_sample(self, hands: Iterable[HandLandmarkSet]):
        """One camera frame: zero or more detected hands, one label."""
        self._frame_count += 1
        event = self._stabilizer.stabilize(self._frame_label(hands))
        if event is None:
            return
        self._confirmation.show(event.text)
        self._bus.emit(Events.CONFIRMATION, text=event.text, modality=self.modality)
        self._publish(event)

    def _frame_label(self, hands: Iterable[HandLandmarkSet]) -> GestureLabel:
        # First hand showing a gesture, in detection order.
        for hand in hands:
            label = classify(hand, self._ok_tolerance)
            if label is not GestureLabel.NONE:
                return label
        return GestureLabel.NONE

    @property
    def confirmation(self) -> Optional[str]:
        """Text currently confirmed to the user, or None."""
        return self._confirmation.text

    @property
    def last_emitted_label(self) -> GestureLabel:
        return self._stabilizer.last_emitted_label

    @property
    def frame_count(self) -> int:
        return self._frame_count


class VoicePipeline(_MediaPipeline):
    """Speech fragments -> live transcript + one DomainEvent per utterance."""

    modality = Modality.VOICE

    def __init__(
        self,
        acquirer: Acquirer,
        source_factory: SourceFactory,
        event_bus: Optional[EventBus] = None,
        capability: Capability = Capability.AVAILABLE,
        config: Optional[dict] = None,
    ):
        config = config or {}
        super().__init__(acquirer, source_factory, event_bus, capability,
                         config.get("acquire_timeout_s", 5.0))
        self._segmenter = SpeechSegmenter()

    async def start(self) -> LifecycleState:
        """Open the microphone and begin a fresh listening session."""
        if not self._is_streaming():
            self._segmenter.reset()
        return await self._lifecycle.start()

    def stop(self):
        super().stop()
        self._segmenter.reset()

    def submit(self, text: str) -> Optional[DomainEvent]:
        """Inject a phrase as if it had been spoken (suggestion chips, tests).

        Returns None for blank text.
        """
        text = text.strip()
        if not text:
            return None
        event = DomainEvent(text=text, source_modality=Modality.VOICE)
        self._publish(event)
        return event

    def _on_sample(self, fragment: SpeechResultFragment):
        event = self._segmenter.feed(fragment)
        self._bus.emit(Events.LIVE_TRANSCRIPT, text=self._segmenter.live_transcript)
        if event is not None:
            self._publish(event)

    @property
    def live_transcript(self) -> str:
        """Interim text of the current utterance; empty for sources that only
        deliver final phrases (SpeechRecognition).
        """
        return self._segmenter.live_transcript
