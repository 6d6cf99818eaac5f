"""
Logging setup and the interaction log of emitted domain events.
"""

import os
import logging
import logging.handlers
from typing import List, Optional

from core.errors import ErrorRecord
from core.types import DomainEvent, Modality


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure console (and optional rotating file) logging for the application."""
    # Clean console format, compact and readable
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    # Verbose format for log file
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-25s | %(message)s"
    date_format = "%H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    # Remove existing handlers
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(root_logger.level)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    return root_logger


class InteractionLogger:
    """Records every domain event and media error the assistant sees."""

    def __init__(self):
        self.logger = logging.getLogger("interactions")
        self._history: List[DomainEvent] = []
        self._errors: List[ErrorRecord] = []

    def log_event(self, event: DomainEvent):
        self._history.append(event)
        self.logger.info("Event: %-8s | %s", event.source_modality.value, event.text)

    def log_error(self, modality: Modality, error: ErrorRecord):
        self._errors.append(error)
        self.logger.warning("Error: %-8s | %-24s | %s",
                            modality.value, error.kind.value, error.message)

    def get_history(self, last_n: Optional[int] = None) -> List[DomainEvent]:
        """Get recent events, oldest first."""
        if last_n:
            return self._history[-last_n:]
        return self._history.copy()

    @property
    def errors(self) -> List[ErrorRecord]:
        return self._errors.copy()

    @property
    def total_events(self) -> int:
        return len(self._history)
