"""
Tests for speech utterance segmentation.
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.types import Modality, SpeechResultFragment
from modules.speech.segmenter import SpeechSegmenter


def interim(text, index):
    return SpeechResultFragment(text=text, is_final=False, index=index)


def final(text, index):
    return SpeechResultFragment(text=text, is_final=True, index=index)


@pytest.fixture
def segmenter():
    return SpeechSegmenter()


class TestSpeechSegmenter:

    def test_interim_then_final_emits_once(self, segmenter):
        assert segmenter.feed(interim("Bon", 0)) is None
        assert segmenter.live_transcript == "Bon"

        event = segmenter.feed(final("Bonjour", 0))

        assert event.text == "Bonjour"
        assert event.source_modality == Modality.VOICE
        assert segmenter.live_transcript == ""

    def test_later_interim_does_not_emit(self, segmenter):
        segmenter.feed(interim("Bon", 0))
        segmenter.feed(final("Bonjour", 0))

        assert segmenter.feed(interim("Comment", 1)) is None
        assert segmenter.live_transcript == "Comment"

    def test_same_index_supersedes(self, segmenter):
        segmenter.feed(interim("Bo", 0))
        segmenter.feed(interim("Bon", 0))

        assert segmenter.live_transcript == "Bon"

    def test_live_transcript_concatenates_interims(self, segmenter):
        segmenter.feed(interim("Bon", 0))
        segmenter.feed(interim("jour", 1))

        assert segmenter.live_transcript == "Bonjour"

    def test_final_is_trimmed(self, segmenter):
        event = segmenter.feed(final("  Bonjour  ", 0))
        assert event.text == "Bonjour"

    def test_empty_final_emits_nothing(self, segmenter):
        assert segmenter.feed(final("   ", 0)) is None
        # The window still moves on.
        assert segmenter.feed(final("Salut", 1)).text == "Salut"

    def test_finals_in_window_join_in_index_order(self, segmenter):
        segmenter.feed(interim("euh", 0))
        event = segmenter.feed(final("ça va", 1))

        assert event.text == "ça va"
        # Index 0 is now behind the window.
        assert segmenter.feed(final("trop tard", 0)) is None

    def test_each_utterance_emits_separately(self, segmenter):
        texts = []
        for index, text in enumerate(["Bonjour", "merci", "au revoir"]):
            texts.append(segmenter.feed(final(text, index)).text)

        assert texts == ["Bonjour", "merci", "au revoir"]

    def test_fragment_behind_window_is_ignored(self, segmenter):
        segmenter.feed(final("Bonjour", 0))

        assert segmenter.feed(interim("Bon", 0)) is None
        assert segmenter.live_transcript == ""

    def test_reset_starts_fresh_session(self, segmenter):
        segmenter.feed(final("Bonjour", 0))
        segmenter.feed(interim("Com", 1))
        segmenter.reset()

        assert segmenter.live_transcript == ""
        assert segmenter.feed(final("Salut", 0)).text == "Salut"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
