"""Progress observers and cancellation for import batches.

Progress updates are fire-and-forget: observers only need the latest
value, and the fraction reported never goes backwards.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from aac_icon_import.utils.logging import StructuredLogger, get_logger

logger = get_logger(__name__)


def clamp_fraction(value: float) -> float:
    return min(1.0, max(0.0, value))


@runtime_checkable
class ImportProgressReporter(Protocol):
    """Observer of one import batch."""

    def report(self, fraction: float, status_text: str) -> None: ...

    def finish(self, summary_text: str) -> None: ...


class MonotonicProgress:
    """Mixin keeping the highest fraction seen so far."""

    _fraction: float = 0.0

    def _advance(self, fraction: float) -> float:
        self._fraction = max(self._fraction, clamp_fraction(fraction))
        return self._fraction


class NullProgressReporter:
    """Discards all updates."""

    def report(self, fraction: float, status_text: str) -> None:
        pass

    def finish(self, summary_text: str) -> None:
        pass


class LoggingProgressReporter(MonotonicProgress):
    """Logs progress at INFO, at most once per ``step`` of fraction."""

    def __init__(self, log: StructuredLogger | None = None, step: float = 0.1) -> None:
        self._logger = log or logger
        self._step = step
        self._last_logged = -1.0

    def report(self, fraction: float, status_text: str) -> None:
        value = self._advance(fraction)
        if value >= 1.0 or value - self._last_logged >= self._step:
            self._last_logged = value
            self._logger.info(
                "Import progress", percentage=f"{value * 100:.1f}%", status=status_text
            )

    def finish(self, summary_text: str) -> None:
        self._advance(1.0)
        self._logger.info(summary_text)


@dataclass
class RecordingProgressReporter(MonotonicProgress):
    """Keeps the latest update and the full history of reported values."""

    fraction: float = 0.0
    status_text: str = ""
    summary_text: str | None = None
    history: list[tuple[float, str]] = field(default_factory=list)

    def report(self, fraction: float, status_text: str) -> None:
        self.fraction = self._advance(fraction)
        self.status_text = status_text
        self.history.append((self.fraction, status_text))

    def finish(self, summary_text: str) -> None:
        self.fraction = self._advance(1.0)
        self.summary_text = summary_text


class CancellationToken:
    """Thread-safe flag checked by the pipeline between records."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
