"""
Lightweight event bus for decoupled communication between the input
pipelines and the host application.

One bus per application instance; nothing is process-wide, so several
assistants (or tests) can run side by side.

Usage:
    bus = EventBus()
    unsubscribe = bus.subscribe(Events.DOMAIN_EVENT, my_handler)
    bus.emit(Events.DOMAIN_EVENT, event=DomainEvent("Bonjour", Modality.VOICE))
    unsubscribe()
"""

import time
import logging
import threading
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Thread-safe publish/subscribe event bus with priority ordering."""

    def __init__(self, max_history: int = 100):
        self._listeners = defaultdict(list)  # event_name -> [(priority, callback)]
        self._lock = threading.Lock()
        self._event_history = []
        self._max_history = max_history

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0) -> Callable[[], None]:
        """Register a listener for an event.

        Args:
            event_name: Event to listen for
            callback: Function to call. Receives **kwargs from emit().
            priority: Higher priority callbacks run first (default 0)

        Returns:
            Zero-argument function removing this listener again
        """
        with self._lock:
            self._listeners[event_name].append((priority, callback))
            # Sort by priority descending (highest first)
            self._listeners[event_name].sort(key=lambda x: -x[0])
        logger.debug("Subscribed to '%s': %s (priority=%d)",
                     event_name, getattr(callback, "__name__", callback), priority)

        def unsubscribe():
            self.unsubscribe(event_name, callback)

        return unsubscribe

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove a listener for an event."""
        with self._lock:
            self._listeners[event_name] = [
                (p, cb) for p, cb in self._listeners[event_name] if cb is not callback
            ]

    def emit(self, event_name: str, **kwargs):
        """Emit an event to all registered listeners.

        A failing listener is logged and does not stop dispatch to the others.
        """
        with self._lock:
            listeners = list(self._listeners.get(event_name, []))

        self._event_history.append({
            "event": event_name,
            "time": time.time(),
            "data_keys": list(kwargs.keys()),
        })
        if len(self._event_history) > self._max_history:
            self._event_history = self._event_history[-self._max_history:]

        for priority, callback in listeners:
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", callback), e)

    def clear(self, event_name: str = None):
        """Remove all listeners, optionally for a specific event."""
        with self._lock:
            if event_name:
                self._listeners.pop(event_name, None)
            else:
                self._listeners.clear()

    @property
    def registered_events(self) -> list:
        """List all events with registered listeners."""
        with self._lock:
            return [name for name, cbs in self._listeners.items() if cbs]

    @property
    def listener_count(self) -> int:
        """Total number of registered listeners."""
        with self._lock:
            return sum(len(cbs) for cbs in self._listeners.values())

    def get_history(self, last_n: int = 10) -> list:
        """Get recent event history."""
        return self._event_history[-last_n:]


# =============================================================================
# Standard Event Names (constants to avoid typos)
# =============================================================================

class Events:
    """Standard event names used throughout the system."""

    # Interaction
    DOMAIN_EVENT = "domain_event"          # event=DomainEvent
    LIVE_TRANSCRIPT = "live_transcript"    # text=str
    CONFIRMATION = "confirmation"          # text=str, modality=Modality
    REPLY = "reply"                        # text=str, event=DomainEvent

    # Lifecycle
    STATE_CHANGED = "state_changed"        # modality, old, new, error
    MEDIA_ERROR = "media_error"            # modality, error=ErrorRecord
