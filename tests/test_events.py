"""
Tests for the instance-scoped event bus.
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.events import EventBus, Events


class TestEventBus:

    def test_emit_passes_kwargs(self):
        bus = EventBus()
        received = []
        bus.subscribe(Events.LIVE_TRANSCRIPT, lambda text: received.append(text))

        bus.emit(Events.LIVE_TRANSCRIPT, text="Bon")

        assert received == ["Bon"]

    def test_priority_order(self):
        bus = EventBus()
        order = []
        bus.subscribe("ping", lambda: order.append("low"), priority=0)
        bus.subscribe("ping", lambda: order.append("high"), priority=10)

        bus.emit("ping")

        assert order == ["high", "low"]

    def test_unsubscribe_handle(self):
        bus = EventBus()
        received = []
        unsubscribe = bus.subscribe("ping", lambda: received.append(1))

        unsubscribe()
        bus.emit("ping")

        assert received == []
        assert bus.listener_count == 0

    def test_failing_listener_does_not_block_others(self):
        bus = EventBus()
        received = []

        def broken():
            raise RuntimeError("listener bug")

        bus.subscribe("ping", broken, priority=5)
        bus.subscribe("ping", lambda: received.append(1))

        bus.emit("ping")

        assert received == [1]

    def test_buses_are_independent(self):
        a, b = EventBus(), EventBus()
        received = []
        a.subscribe("ping", lambda: received.append("a"))

        b.emit("ping")

        assert received == []

    def test_history(self):
        bus = EventBus(max_history=2)
        for name in ("one", "two", "three"):
            bus.emit(name, value=1)

        history = bus.get_history()
        assert [h["event"] for h in history] == ["two", "three"]
        assert history[-1]["data_keys"] == ["value"]

    def test_clear(self):
        bus = EventBus()
        bus.subscribe("a", lambda: None)
        bus.subscribe("b", lambda: None)

        bus.clear("a")
        assert bus.registered_events == ["b"]

        bus.clear()
        assert bus.listener_count == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
