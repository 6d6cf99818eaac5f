"""
Conversation transcript and interaction statistics.
Tracks user/assistant messages in insertion order, per-modality counts,
hourly activity and the encouragement badges shown on the dashboard.
"""

import time
from collections import Counter
from dataclasses import dataclass, field
from typing import List

from core.types import DomainEvent, Modality

GREETING = ("Bonjour! Je suis ton assistant virtuel. "
            "Tu peux me parler avec ta voix ou utiliser des gestes! 👋")


@dataclass(frozen=True)
class Message:
    """One line of the conversation."""
    text: str
    sender: str  # "user" or "assistant"
    modality: Modality
    timestamp: float = field(default_factory=time.time)


class Transcript:
    """Insertion-ordered conversation log, seeded with the greeting."""

    def __init__(self, greeting: str = GREETING):
        self._messages: List[Message] = []
        self._counts = Counter()
        if greeting:
            self._messages.append(Message(greeting, "assistant", Modality.TEXT))

    def add_user(self, event: DomainEvent) -> Message:
        message = Message(event.text, "user", event.source_modality, event.timestamp)
        self._messages.append(message)
        self._counts[event.source_modality] += 1
        return message

    def add_reply(self, text: str) -> Message:
        message = Message(text, "assistant", Modality.TEXT)
        self._messages.append(message)
        return message

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    def recent(self, last_n: int = 10) -> List[Message]:
        return self._messages[-last_n:]

    @property
    def total_interactions(self) -> int:
        return sum(self._counts.values())

    @property
    def voice_commands(self) -> int:
        return self._counts[Modality.VOICE]

    @property
    def gestures_recognized(self) -> int:
        return self._counts[Modality.GESTURE]

    def activity_by_hour(self) -> dict:
        """User messages per local hour of day, hours without activity omitted."""
        hours = Counter(
            time.localtime(m.timestamp).tm_hour
            for m in self._messages if m.sender == "user"
        )
        return dict(sorted(hours.items()))

    def badges(self) -> List[str]:
        """Encouragement badges earned so far."""
        if self.total_interactions == 0:
            return ["👋 Bienvenue!"]
        earned = []
        if self.total_interactions >= 10:
            earned.append("🌟 Explorateur!")
        if self.voice_commands >= 5:
            earned.append("🎤 Champion de la Voix!")
        if self.gestures_recognized >= 5:
            earned.append("✋ Expert des Gestes!")
        return earned

    def get_summary(self) -> dict:
        return {
            "total_interactions": self.total_interactions,
            "voice_commands": self.voice_commands,
            "gestures_recognized": self.gestures_recognized,
            "activity_by_hour": self.activity_by_hour(),
            "badges": self.badges(),
        }
