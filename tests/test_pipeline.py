"""
Tests for the gesture and voice input pipelines.
"""

import asyncio
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.events import EventBus, Events
from core.pipeline import GesturePipeline, VoicePipeline
from core.types import GestureLabel, LifecycleState, Modality, SpeechResultFragment
from fakes import FakeAcquirer, FakeClock, SourceFactory, make_hand


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def domain_events(bus):
    events = []
    bus.subscribe(Events.DOMAIN_EVENT, lambda event: events.append(event))
    return events


class TestDemoGestures:

    def test_demo_victoire(self, bus, domain_events):
        """Demo "Victoire" emits its event and the confirmation clears at exactly 2s."""
        clock = FakeClock()
        pipeline = GesturePipeline(FakeAcquirer(), SourceFactory(), bus, clock=clock)

        event = pipeline.trigger_demo("Victoire")

        assert "Victoire" in event.text
        assert event.text == "✌️ Victoire - Bravo!"
        assert event.source_modality == Modality.GESTURE
        assert domain_events == [event]
        assert pipeline.confirmation == "✌️ Victoire"

        clock.advance(1.75)
        assert pipeline.confirmation == "✌️ Victoire"

        clock.advance(0.25)
        assert pipeline.confirmation is None

    def test_demo_works_without_camera(self, bus, domain_events):
        pipeline = GesturePipeline(FakeAcquirer(), SourceFactory(), bus)

        pipeline.trigger_demo("Cœur")

        assert pipeline.state == LifecycleState.IDLE
        assert domain_events[0].text == "❤️ Cœur - Je t'aime!"

    def test_demo_name_is_case_insensitive(self, bus):
        pipeline = GesturePipeline(FakeAcquirer(), SourceFactory(), bus)

        assert pipeline.trigger_demo("bonjour").text == "👋 Bonjour - Salut!"

    def test_unknown_demo_gesture(self, bus, domain_events):
        pipeline = GesturePipeline(FakeAcquirer(), SourceFactory(), bus)

        with pytest.raises(ValueError):
            pipeline.trigger_demo("Licorne")
        assert domain_events == []

    def test_confirmation_duration_from_config(self, bus):
        clock = FakeClock()
        pipeline = GesturePipeline(FakeAcquirer(), SourceFactory(), bus,
                                   config={"confirmation_s": 0.5}, clock=clock)
        pipeline.trigger_demo("OK")

        clock.advance(0.5)
        assert pipeline.confirmation is None

    def test_confirmation_event(self, bus):
        confirmations = []
        bus.subscribe(Events.CONFIRMATION, lambda text, modality: confirmations.append(text))
        pipeline = GesturePipeline(FakeAcquirer(), SourceFactory(), bus)

        pipeline.trigger_demo("Stop")

        assert confirmations == ["✋ Stop"]


class TestGestureFrames:

    def test_frames_become_events(self, bus, domain_events):
        async def scenario():
            factory = SourceFactory()
            pipeline = GesturePipeline(FakeAcquirer(), factory, bus)
            assert await pipeline.start() == LifecycleState.ACTIVE
            source = factory.last

            thumbs_up = make_hand(thumb="up")
            source.emit([thumbs_up])
            source.emit([thumbs_up])
            source.emit([make_hand(index="up", middle="up")])

            assert [e.text for e in domain_events] == ["👍 Pouce levé", "✌️ Victoire"]
            assert pipeline.confirmation == "✌️ Victoire"
            assert pipeline.last_emitted_label == GestureLabel.PEACE
            assert pipeline.frame_count == 3

        asyncio.run(scenario())

    def test_empty_frame_rearms(self, bus, domain_events):
        async def scenario():
            factory = SourceFactory()
            pipeline = GesturePipeline(FakeAcquirer(), factory, bus)
            await pipeline.start()
            source = factory.last

            thumbs_up = make_hand(thumb="up")
            for hands in ([thumbs_up], [thumbs_up], [], [thumbs_up]):
                source.emit(hands)

            assert len(domain_events) == 2

        asyncio.run(scenario())

    def test_relaxed_second_hand_does_not_rearm(self, bus, domain_events):
        async def scenario():
            factory = SourceFactory()
            pipeline = GesturePipeline(FakeAcquirer(), factory, bus)
            await pipeline.start()

            frame = [make_hand(thumb="up"), make_hand()]
            for _ in range(30):
                factory.last.emit(frame)

            assert [e.text for e in domain_events] == ["👍 Pouce levé"]

        asyncio.run(scenario())

    def test_two_gesturing_hands_fire_once(self, bus, domain_events):
        async def scenario():
            factory = SourceFactory()
            pipeline = GesturePipeline(FakeAcquirer(), factory, bus)
            await pipeline.start()

            frame = [make_hand(thumb="up"), make_hand(index="up", middle="up")]
            for _ in range(30):
                factory.last.emit(frame)

            # First gesturing hand in detection order wins.
            assert [e.text for e in domain_events] == ["👍 Pouce levé"]
            assert pipeline.last_emitted_label == GestureLabel.THUMBS_UP

        asyncio.run(scenario())

    def test_restart_resets_stabilizer(self, bus, domain_events):
        async def scenario():
            factory = SourceFactory()
            pipeline = GesturePipeline(FakeAcquirer(), factory, bus)
            await pipeline.start()
            factory.last.emit([make_hand(thumb="up")])

            pipeline.stop()
            assert pipeline.confirmation is None
            await pipeline.start()
            factory.last.emit([make_hand(thumb="up")])

            assert len(domain_events) == 2

        asyncio.run(scenario())

    def test_ok_tolerance_from_config(self, bus, domain_events):
        async def scenario():
            factory = SourceFactory()
            pipeline = GesturePipeline(FakeAcquirer(), factory, bus, config={"ok_tolerance": 0.5})
            await pipeline.start()

            # Thumb and index tips 0.15 apart, inside the widened tolerance.
            factory.last.emit([make_hand(thumb="up", index="up", middle="up", ring="up", pinky="up")])

            assert domain_events[0].text == "👌 OK"

        asyncio.run(scenario())


class TestVoicePipeline:

    def test_fragments_become_one_event(self, bus, domain_events):
        async def scenario():
            live = []
            bus.subscribe(Events.LIVE_TRANSCRIPT, lambda text: live.append(text))
            factory = SourceFactory()
            pipeline = VoicePipeline(FakeAcquirer(), factory, bus)
            assert await pipeline.start() == LifecycleState.ACTIVE

            factory.last.emit(SpeechResultFragment("Bon", False, 0))
            assert pipeline.live_transcript == "Bon"
            factory.last.emit(SpeechResultFragment("Bonjour", True, 0))
            factory.last.emit(SpeechResultFragment("Comment", False, 1))

            assert [(e.text, e.source_modality) for e in domain_events] == [("Bonjour", Modality.VOICE)]
            assert live == ["Bon", "", "Comment"]

        asyncio.run(scenario())

    def test_start_begins_fresh_session(self, bus, domain_events):
        async def scenario():
            factory = SourceFactory()
            pipeline = VoicePipeline(FakeAcquirer(), factory, bus)
            await pipeline.start()
            factory.last.emit(SpeechResultFragment("Bonjour", True, 0))
            pipeline.stop()

            await pipeline.start()
            factory.last.emit(SpeechResultFragment("Salut", True, 0))

            assert [e.text for e in domain_events] == ["Bonjour", "Salut"]

        asyncio.run(scenario())

    def test_submit_suggestion(self, bus, domain_events):
        pipeline = VoicePipeline(FakeAcquirer(), SourceFactory(), bus)

        event = pipeline.submit("  Quel temps fait-il?  ")

        assert event.text == "Quel temps fait-il?"
        assert event.source_modality == Modality.VOICE
        assert domain_events == [event]
        assert pipeline.submit("   ") is None

    def test_modalities_do_not_share_state(self, bus, domain_events):
        async def scenario():
            camera_factory, mic_factory = SourceFactory(), SourceFactory()
            gesture = GesturePipeline(FakeAcquirer(), camera_factory, bus)
            voice = VoicePipeline(FakeAcquirer(), mic_factory, bus)
            await gesture.start()
            await voice.start()

            voice.stop()
            camera_factory.last.emit([make_hand(thumb="up")])

            assert gesture.state == LifecycleState.ACTIVE
            assert voice.state == LifecycleState.IDLE
            assert [e.source_modality for e in domain_events] == [Modality.GESTURE]

        asyncio.run(scenario())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
