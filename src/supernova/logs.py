"""Structured operation events: (message, component, severity) records for observability."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

_LEVELS = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class LogSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class LogEvent:
    """One structured event emitted by a core operation."""

    message: str
    component: str
    severity: LogSeverity = LogSeverity.INFO
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class LogSink(Protocol):
    """Receiver of structured events (an in-app log viewer, a file, ...)."""

    def write(self, event: LogEvent) -> None: ...


class MemoryLogSink:
    """Keeps the most recent events in memory."""

    def __init__(self, capacity: int = 1000) -> None:
        self._events: deque[LogEvent] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def write(self, event: LogEvent) -> None:
        with self._lock:
            self._events.append(event)

    def events(
        self,
        *,
        component: str | None = None,
        severity: LogSeverity | None = None,
    ) -> list[LogEvent]:
        with self._lock:
            snapshot = list(self._events)
        return [
            e
            for e in snapshot
            if (component is None or e.component == component)
            and (severity is None or e.severity == severity)
        ]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        return len(self._events)


class EventLog:
    """Fans structured events out to stdlib logging and registered sinks.

    Sink failures are swallowed so that logging can never fail a core operation.
    """

    def __init__(self, sinks: list[LogSink] | None = None) -> None:
        self._sinks: list[LogSink] = list(sinks or [])

    def add_sink(self, sink: LogSink) -> None:
        self._sinks.append(sink)

    def remove_sink(self, sink: LogSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    def emit(
        self,
        message: str,
        component: str,
        severity: LogSeverity = LogSeverity.INFO,
    ) -> None:
        event = LogEvent(message=message, component=component, severity=severity)
        logging.getLogger(f"supernova.{component}").log(_LEVELS[severity.value], message)
        for sink in list(self._sinks):
            try:
                sink.write(event)
            except Exception:
                logger.debug("Log sink %r failed", sink, exc_info=True)

    def info(self, message: str, component: str) -> None:
        self.emit(message, component, LogSeverity.INFO)

    def warning(self, message: str, component: str) -> None:
        self.emit(message, component, LogSeverity.WARNING)

    def error(self, message: str, component: str) -> None:
        self.emit(message, component, LogSeverity.ERROR)

    def debug(self, message: str, component: str) -> None:
        """Write to stdlib logging only; sinks receive info and above."""
        logging.getLogger(f"supernova.{component}").debug(message)


class CallbackSink:
    """Adapts a plain callable into a LogSink."""

    def __init__(self, callback: Callable[[LogEvent], None]) -> None:
        self._callback = callback

    def write(self, event: LogEvent) -> None:
        self._callback(event)
