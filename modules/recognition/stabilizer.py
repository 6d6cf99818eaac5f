"""
Fire-once stabilizer turning per-frame gesture labels into domain events.

A label fires when it differs from the last emitted label. A frame with
no recognized gesture (GestureLabel.NONE) never fires and never clears the
last emitted label, but it re-arms the stabilizer: the next recognized
gesture fires even if it repeats the previous one. A gesture held across
frames therefore fires once, while a gesture that briefly drops out
(occlusion, one missed frame) fires again when it reappears.
"""

import logging
from typing import Dict, Optional

from core.types import GESTURE_DISPLAY, DomainEvent, GestureLabel, Modality

logger = logging.getLogger(__name__)


class GestureStabilizer:
    """Per-pipeline de-duplication of classifier output."""

    def __init__(self, display: Optional[Dict[GestureLabel, str]] = None):
        self._display = display or GESTURE_DISPLAY
        self._last_emitted = GestureLabel.NONE
        self._rearmed = False

    def stabilize(self, label: GestureLabel) -> Optional[DomainEvent]:
        """Feed one frame's label.

        Returns:
            A DomainEvent when the label fires, otherwise None
        """
        if label is GestureLabel.NONE:
            self._rearmed = True
            return None

        if label is self._last_emitted and not self._rearmed:
            return None

        logger.debug("Gesture fired: %s (previous %s)", label.value, self._last_emitted.value)
        self._last_emitted = label
        self._rearmed = False
        return DomainEvent(text=self._display.get(label, label.value),
                           source_modality=Modality.GESTURE)

    def reset(self):
        """Forget the last emitted label (new camera session)."""
        self._last_emitted = GestureLabel.NONE
        self._rearmed = False

    @property
    def last_emitted_label(self) -> GestureLabel:
        return self._last_emitted
