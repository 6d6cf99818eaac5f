#!/usr/bin/env python3
"""
Multimodal Assistant - voice and hand-gesture input for a children's assistant.
Main application entry point.

Architecture:
    - core.pipeline.GesturePipeline: camera -> landmarks -> gesture events
    - core.pipeline.VoicePipeline: microphone -> speech -> utterance events
    - core.EventBus (one per assistant) carries events to the responder,
      transcript and interaction log

Usage:
    python main.py                    # Demo mode: typed text and demo gestures
    python main.py --mode gesture     # Start the camera immediately
    python main.py --mode voice       # Start the microphone immediately

Commands while running:
    /demo <name>       Trigger a demo gesture (e.g. /demo Victoire)
    /start gesture     Start camera (or: /start voice)
    /stop voice        Stop microphone (or: /stop gesture)
    /say <phrase>      Send a phrase as if spoken
    /stats             Show interaction statistics
    /quit              Exit
    anything else      Sent as typed text
"""

import sys
import os
import asyncio
import argparse
import logging
import threading
from typing import Optional

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from modules.utils.config import Config
from modules.utils.logger import setup_logging, InteractionLogger
from modules.capture.camera_manager import (
    CameraAcquirer, CameraConfig, make_camera_source_factory, probe_camera,
)
from modules.detection.hand_detector import HandLandmarkerConfig
from modules.speech.microphone import (
    MicrophoneAcquirer, SpeechConfig, make_speech_source_factory, probe_microphone,
)
from modules.dialogue.responder import Responder
from modules.dialogue.transcript import Transcript

from core.errors import ErrorRecord
from core.events import EventBus, Events
from core.pipeline import GesturePipeline, VoicePipeline
from core.types import DEMO_GESTURES, DomainEvent, LifecycleState, Modality

logger = logging.getLogger(__name__)


class MultimodalAssistant:
    """Wires both input pipelines, the responder and the transcript to one bus."""

    def __init__(
        self,
        gesture: GesturePipeline,
        voice: VoicePipeline,
        event_bus: EventBus,
        responder: Optional[Responder] = None,
        transcript: Optional[Transcript] = None,
    ):
        self._bus = event_bus
        self.gesture = gesture
        self.voice = voice
        self.responder = responder or Responder()
        self.transcript = transcript or Transcript()
        self.interactions = InteractionLogger()
        self._start_tasks = set()

        self._subscriptions = [
            self._bus.subscribe(Events.DOMAIN_EVENT, self._on_domain_event, priority=10),
            self._bus.subscribe(Events.MEDIA_ERROR, self._on_media_error),
        ]

    @classmethod
    def from_config(cls, config: Config) -> "MultimodalAssistant":
        """Build an assistant on the real camera and microphone."""
        bus = EventBus()
        camera_cfg = CameraConfig.from_dict(config.camera)
        speech_cfg = SpeechConfig.from_dict(config.speech)

        gesture = GesturePipeline(
            CameraAcquirer(camera_cfg),
            make_camera_source_factory(camera_cfg, HandLandmarkerConfig.from_dict(config.hand_landmarker)),
            event_bus=bus,
            capability=probe_camera(),
            config=config.gesture_pipeline,
        )
        voice = VoicePipeline(
            MicrophoneAcquirer(speech_cfg),
            make_speech_source_factory(speech_cfg),
            event_bus=bus,
            capability=probe_microphone(),
            config={"acquire_timeout_s": speech_cfg.acquire_timeout_s},
        )
        return cls(gesture, voice, bus)

    # ------------------------------------------------------------------
    # Host operations
    # ------------------------------------------------------------------

    def pipeline(self, modality: Modality):
        if modality is Modality.GESTURE:
            return self.gesture
        if modality is Modality.VOICE:
            return self.voice
        raise ValueError(f"No input pipeline for {modality.value}")

    async def start(self, modality: Modality) -> LifecycleState:
        return await self.pipeline(modality).start()

    def start_background(self, modality: Modality) -> asyncio.Task:
        """Start acquisition without waiting for it; stop() can still cancel it.

        The outcome is reported through STATE_CHANGED and MEDIA_ERROR.
        """
        task = asyncio.ensure_future(self.pipeline(modality).start())
        self._start_tasks.add(task)
        task.add_done_callback(self._start_tasks.discard)
        return task

    def stop(self, modality: Modality):
        self.pipeline(modality).stop()

    def send_text(self, text: str) -> Optional[DomainEvent]:
        """Typed chat input."""
        text = text.strip()
        if not text:
            return None
        event = DomainEvent(text=text, source_modality=Modality.TEXT)
        self._bus.emit(Events.DOMAIN_EVENT, event=event)
        return event

    def shutdown(self):
        self.gesture.stop()
        self.voice.stop()
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions = []

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _on_domain_event(self, event: DomainEvent):
        self.interactions.log_event(event)
        self.transcript.add_user(event)
        reply = self.responder.reply(event.text)
        self.transcript.add_reply(reply)
        self._bus.emit(Events.REPLY, text=reply, event=event)

    def _on_media_error(self, modality: Modality, error: ErrorRecord):
        self.interactions.log_error(modality, error)


# =============================================================================
# Command line
# =============================================================================

def _print_demo_menu():
    print("Gestes démo:", "  ".join(g.confirmation for g in DEMO_GESTURES))


def _attach_console(assistant: MultimodalAssistant):
    bus = assistant.event_bus
    bus.subscribe(Events.DOMAIN_EVENT,
                  lambda event: print(f"[{event.source_modality.value}] {event.text}"),
                  priority=20)
    bus.subscribe(Events.REPLY, lambda text, event: print(f"  -> {text}"))
    bus.subscribe(Events.CONFIRMATION, lambda text, modality: print(f"  ({text})"))
    bus.subscribe(Events.MEDIA_ERROR,
                  lambda modality, error: print(f"  [{modality.value}] {error.hint}"))
    bus.subscribe(Events.STATE_CHANGED,
                  lambda modality, old, new, error: print(f"  {modality.value}: {new.value}"))


def _read_stdin(loop: asyncio.AbstractEventLoop, lines: asyncio.Queue):
    """Feed console lines into the loop; None marks end of input."""
    def reader():
        try:
            for line in sys.stdin:
                loop.call_soon_threadsafe(lines.put_nowait, line)
            loop.call_soon_threadsafe(lines.put_nowait, None)
        except RuntimeError:
            # Loop closed while waiting for input.
            return

    threading.Thread(target=reader, name="stdin", daemon=True).start()


async def _handle_command(assistant: MultimodalAssistant, line: str) -> bool:
    """Run one console line. Returns False when the user asked to quit."""
    command, _, arg = line.strip().partition(" ")
    arg = arg.strip()

    if command == "/quit":
        return False
    if command == "/demo":
        try:
            assistant.gesture.trigger_demo(arg)
        except ValueError as e:
            print(f"  {e}")
            _print_demo_menu()
    elif command in ("/start", "/stop"):
        try:
            modality = Modality(arg)
            if command == "/start":
                assistant.start_background(modality)
            else:
                assistant.stop(modality)
        except ValueError:
            print("  usage: /start gesture|voice, /stop gesture|voice")
    elif command == "/say":
        assistant.voice.submit(arg)
    elif command == "/stats":
        for key, value in assistant.transcript.get_summary().items():
            print(f"  {key}: {value}")
    elif line.strip():
        assistant.send_text(line)
    return True


async def run(assistant: MultimodalAssistant, mode: str):
    _attach_console(assistant)
    print(assistant.transcript.messages[0].text)
    _print_demo_menu()

    if mode in ("gesture", "voice"):
        assistant.start_background(Modality(mode))

    lines = asyncio.Queue()
    _read_stdin(asyncio.get_running_loop(), lines)
    try:
        while True:
            line = await lines.get()
            if line is None:
                break
            if not await _handle_command(assistant, line):
                break
    finally:
        assistant.shutdown()
        logger.info("Session: %s", assistant.transcript.get_summary())


def parse_args():
    parser = argparse.ArgumentParser(
        description="Multimodal Assistant - voice and gesture input"
    )
    parser.add_argument(
        "--mode", choices=["gesture", "voice", "demo"],
        default="demo", help="Input to start with"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to config.yaml"
    )
    parser.add_argument(
        "--log-level", type=str, default=None,
        help="Override logging.level (DEBUG, INFO, ...)"
    )
    return parser.parse_args()


def main():
    args = parse_args()

    config = Config()
    config.load(config_path=args.config)

    log_cfg = config.log_config
    setup_logging(
        level=args.log_level or log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    logger.info("=" * 60)
    logger.info("  MULTIMODAL ASSISTANT")
    logger.info("  Mode: %s", args.mode)
    logger.info("=" * 60)

    assistant = MultimodalAssistant.from_config(config)
    try:
        asyncio.run(run(assistant, args.mode))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    logger.info("Shutdown complete.")


if __name__ == "__main__":
    main()
