"""Progress sink implementations."""

import logging

from .protocols import ProgressSink

logger = logging.getLogger(__name__)


class NullProgress:
    """Progress sink that discards every notification."""

    def setup(self, total: int | None, label: str) -> None:
        pass

    def progress(self, current: int) -> None:
        pass


class LoggingProgress:
    """Progress sink that reports to the logging facility.

    Logs the start of each unit and every ``step`` percent of progress when the
    total is known.
    """

    def __init__(self, step: int = 10):
        self.step = step
        self.total: int | None = None
        self.label = ""
        self._last_percent: int | None = None

    def setup(self, total: int | None, label: str) -> None:
        self.total = total
        self.label = label
        self._last_percent = None
        logger.info(f"{label or 'Working'}: starting ({total if total is not None else 'unknown'} total)")

    def progress(self, current: int) -> None:
        if not self.total:
            logger.debug(f"{self.label}: {current}")
            return

        percent = current * 100 // self.total
        if self._last_percent is None or percent >= self._last_percent + self.step or current >= self.total:
            self._last_percent = percent
            logger.info(f"{self.label}: {percent}% ({current}/{self.total})")


_NULL_PROGRESS = NullProgress()


def resolve_progress(progress: ProgressSink | None) -> ProgressSink:
    """Return ``progress`` or the shared no-op sink when None."""
    return progress if progress is not None else _NULL_PROGRESS
