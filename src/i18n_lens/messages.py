"""User-facing warning and error reporting.

The engine never talks to a UI directly. Recoverable problems (a bad
pattern, an unparsable resource file) are reported as warnings, fatal ones
as errors, through whichever notifier the host application supplies.
"""

import logging
import threading
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class UserNotifier(Protocol):
    """Receives messages meant to be shown to the user."""

    def warn(self, message: str) -> None:
        """Show a non-blocking warning."""
        ...

    def error(self, message: str) -> None:
        """Show an error that blocks the affected functionality."""
        ...


class LoggingUserNotifier:
    """Default notifier that only writes messages to the log."""

    def warn(self, message: str) -> None:
        logger.warning(message)

    def error(self, message: str) -> None:
        logger.error(message)


class RecordingUserNotifier:
    """Notifier that keeps every message, for tests and CLI summaries."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.warnings: list[str] = []
        self.errors: list[str] = []

    def warn(self, message: str) -> None:
        logger.warning(message)
        with self._lock:
            self.warnings.append(message)

    def error(self, message: str) -> None:
        logger.error(message)
        with self._lock:
            self.errors.append(message)

    def clear(self) -> None:
        with self._lock:
            self.warnings.clear()
            self.errors.clear()
