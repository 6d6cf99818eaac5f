"""
Transient on-screen confirmation for recognized or demo gestures.
"""

import time
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ConfirmationDisplay:
    """Holds at most one confirmation text, optionally with an expiry.

    The clock is injectable so expiry can be tested without sleeping.
    A confirmation shown with duration=None stays until clear() or the
    next show().
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._text: Optional[str] = None
        self._shown_at = 0.0
        self._duration: Optional[float] = None

    def show(self, text: str, duration: Optional[float] = None):
        self._text = text
        self._shown_at = self._clock()
        self._duration = duration
        logger.debug("Confirmation: %s (%s)", text,
                     f"{duration:.1f}s" if duration is not None else "until cleared")

    def clear(self):
        self._text = None
        self._duration = None

    @property
    def text(self) -> Optional[str]:
        """Current confirmation, or None once cleared or expired."""
        if self._text is None:
            return None
        if self._duration is not None and self._clock() - self._shown_at >= self._duration:
            self.clear()
        return self._text

    @property
    def is_active(self) -> bool:
        return self.text is not None
