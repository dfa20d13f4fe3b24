"""
Host callbacks, run progress and cooperative cancellation.

Worker threads never talk to the host directly about progress: they report
completions to a ProgressAggregator, which serialises the counter update and
the resulting progress message under one lock.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

PROGRESS_LABEL = "Progress"


class HostCallbacks(Protocol):
    """Capabilities the invoking host offers to an interpolation run."""

    def report_feedback(self, message: str) -> None: ...

    def report_progress(self, label: str, percent: int) -> None: ...

    def report_result(self, path: str) -> None: ...

    def signal_complete(self) -> None: ...


class LoggingHost:
    """Host that routes every callback to the package logger."""

    def __init__(self, logger_: Optional[logging.Logger] = None):
        self.logger = logger_ or logger
        self.results: list[str] = []

    def report_feedback(self, message: str) -> None:
        self.logger.warning(message)

    def report_progress(self, label: str, percent: int) -> None:
        self.logger.info(f"{label}: {percent}%")

    def report_result(self, path: str) -> None:
        self.results.append(path)
        self.logger.info(f"Result available: {path}")

    def signal_complete(self) -> None:
        self.logger.info("Operation complete")


# Process-wide cancellation flag, set by the host and polled by workers
_cancel_event = threading.Event()


def request_cancel() -> None:
    _cancel_event.set()


def clear_cancel() -> None:
    _cancel_event.clear()


def is_cancelled() -> bool:
    return _cancel_event.is_set()


class ProgressAggregator:
    """
    Lock-guarded count of completed files.

    Percentages are forwarded to the host only when the (label, percent)
    pair differs from the previous report.
    """

    def __init__(self, total: int, host: HostCallbacks, label: str = PROGRESS_LABEL):
        if total < 1:
            raise ValueError(f"total must be at least 1, got {total}")
        self.total = int(total)
        self.host = host
        self.label = label
        self._lock = threading.Lock()
        self._completed = 0
        self._previous: Tuple[str, int] = ("", 0)
        self._cancel_reported = False

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    def complete(self) -> int:
        """Record one finished file and return the run percentage."""
        with self._lock:
            self._completed += 1
            percent = (100 * self._completed) // self.total
            self._report(self.label, percent)
            return percent

    def report(self, label: str, percent: int) -> None:
        with self._lock:
            self._report(label, percent)

    def notify_cancelled(self) -> None:
        """Tell the host about a cancellation, once per run."""
        with self._lock:
            if self._cancel_reported:
                return
            self._cancel_reported = True
            self.host.report_feedback("Operation cancelled.")
            self._report(self.label, 0)

    def _report(self, label: str, percent: int) -> None:
        if (label, percent) != self._previous:
            self.host.report_progress(label, percent)
        self._previous = (label, percent)
