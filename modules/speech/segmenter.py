"""
Turns the speech engine's fragment stream into whole utterances.

Fragments are kept by index within the current window. Interim fragments
only feed the live transcript. A final fragment closes the window: every
final fragment in it is joined (single space, index order), trimmed and
emitted as one DomainEvent, then the window moves past the highest final
index and the live transcript is cleared.
"""

import logging
from typing import Dict, Optional

from core.types import DomainEvent, Modality, SpeechResultFragment

logger = logging.getLogger(__name__)


class SpeechSegmenter:
    """Per-session utterance segmentation."""

    def __init__(self):
        self._fragments: Dict[int, SpeechResultFragment] = {}
        self._window_start = 0
        self._live = ""

    def feed(self, fragment: SpeechResultFragment) -> Optional[DomainEvent]:
        """Consume one fragment.

        Returns:
            A DomainEvent when the fragment completes a non-empty utterance,
            otherwise None
        """
        if fragment.index < self._window_start:
            logger.debug("Dropping fragment %d behind window start %d",
                         fragment.index, self._window_start)
            return None

        # A later fragment at the same index supersedes the earlier one.
        self._fragments[fragment.index] = fragment
        ordered = [self._fragments[i] for i in sorted(self._fragments)]

        if not fragment.is_final:
            self._live = "".join(f.text for f in ordered if not f.is_final)
            return None

        finals = [f for f in ordered if f.is_final]
        utterance = " ".join(f.text for f in finals).strip()

        self._window_start = max(f.index for f in finals) + 1
        self._fragments = {i: f for i, f in self._fragments.items() if i >= self._window_start}
        self._live = ""

        if not utterance:
            logger.debug("Empty final utterance ignored")
            return None
        return DomainEvent(text=utterance, source_modality=Modality.VOICE)

    def reset(self):
        """Start a fresh session: empty window, index back to zero."""
        self._fragments = {}
        self._window_start = 0
        self._live = ""

    @property
    def live_transcript(self) -> str:
        return self._live
