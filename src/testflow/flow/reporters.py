"""Ready-made :class:`EventSink` implementations.

:class:`EventRecordingReporter` keeps every event in memory and is what
the test suite asserts against.  :class:`LoggingReporter` writes events
to a logger, and :class:`CompositeSink` forwards each event to several
sinks in order.
"""

from __future__ import annotations

import logging
from typing import Any

from testflow.flow.events import (
    TERMINAL_EVENT_TYPES,
    EventSink,
    FlowEvent,
    FlowEventType,
)
from testflow.flow.models import IndentedText, Location

logger = logging.getLogger(__name__)


class EventRecordingReporter:
    """Records every callback it receives as a :class:`FlowEvent`."""

    def __init__(self) -> None:
        self._events: list[FlowEvent] = []

    @property
    def events(self) -> list[FlowEvent]:
        """Return all recorded events in the order received."""
        return list(self._events)

    def events_of(self, event_type: FlowEventType) -> list[FlowEvent]:
        return [e for e in self._events if e.type == event_type]

    @property
    def test_starting_events(self) -> list[FlowEvent]:
        return self.events_of(FlowEventType.TEST_STARTING)

    @property
    def test_succeeded_events(self) -> list[FlowEvent]:
        return self.events_of(FlowEventType.TEST_SUCCEEDED)

    @property
    def test_failed_events(self) -> list[FlowEvent]:
        return self.events_of(FlowEventType.TEST_FAILED)

    @property
    def test_canceled_events(self) -> list[FlowEvent]:
        return self.events_of(FlowEventType.TEST_CANCELED)

    @property
    def test_pending_events(self) -> list[FlowEvent]:
        return self.events_of(FlowEventType.TEST_PENDING)

    @property
    def terminal_events(self) -> list[FlowEvent]:
        """Return every non-starting event in the order received."""
        return [e for e in self._events if e.type in TERMINAL_EVENT_TYPES]

    def trace(self) -> list[tuple[str, str]]:
        """Return ``(event type, test name)`` pairs, handy for assertions."""
        return [(e.type.value, e.test_name) for e in self._events]

    def clear(self) -> None:
        self._events.clear()

    def _record(self, event: FlowEvent) -> None:
        event.ordinal = len(self._events) + 1
        self._events.append(event)

    def on_test_starting(
        self, name: str, text: str, location: Location | None
    ) -> None:
        self._record(FlowEvent(FlowEventType.TEST_STARTING, name, text, location))

    def on_test_succeeded(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        *,
        duration: float | None = None,
    ) -> None:
        self._record(
            FlowEvent(
                FlowEventType.TEST_SUCCEEDED,
                name,
                text,
                location,
                formatter=formatter,
                duration=duration,
            )
        )

    def on_test_failed(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        error: BaseException,
        *,
        duration: float | None = None,
    ) -> None:
        self._record(
            FlowEvent(
                FlowEventType.TEST_FAILED,
                name,
                text,
                location,
                formatter=formatter,
                error=error,
                duration=duration,
            )
        )

    def on_test_canceled(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        reason: str,
        *,
        duration: float | None = None,
    ) -> None:
        self._record(
            FlowEvent(
                FlowEventType.TEST_CANCELED,
                name,
                text,
                location,
                formatter=formatter,
                reason=reason,
                duration=duration,
            )
        )

    def on_test_pending(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        reason: str,
        *,
        duration: float | None = None,
    ) -> None:
        self._record(
            FlowEvent(
                FlowEventType.TEST_PENDING,
                name,
                text,
                location,
                formatter=formatter,
                reason=reason,
                duration=duration,
            )
        )


class LoggingReporter:
    """Writes each event to *logger* (``testflow.events`` by default)."""

    def __init__(
        self, logger: logging.Logger | None = None, level: int = logging.INFO
    ) -> None:
        self._logger = logger or logging.getLogger("testflow.events")
        self._level = level

    def on_test_starting(
        self, name: str, text: str, location: Location | None
    ) -> None:
        self._logger.log(self._level, "Test starting: %s (%s)", name, location)

    def on_test_succeeded(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        *,
        duration: float | None = None,
    ) -> None:
        self._logger.log(self._level, "%s succeeded%s", text, _took(duration))

    def on_test_failed(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        error: BaseException,
        *,
        duration: float | None = None,
    ) -> None:
        self._logger.log(
            max(self._level, logging.WARNING),
            "%s FAILED%s: %s",
            text,
            _took(duration),
            error,
        )

    def on_test_canceled(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        reason: str,
        *,
        duration: float | None = None,
    ) -> None:
        self._logger.log(self._level, "%s canceled: %s", text, reason)

    def on_test_pending(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        reason: str,
        *,
        duration: float | None = None,
    ) -> None:
        self._logger.log(self._level, "%s pending: %s", text, reason)


def _took(duration: float | None) -> str:
    return "" if duration is None else f" in {duration * 1000:.1f} ms"


class CompositeSink:
    """Forwards every callback to each wrapped sink, in order.

    A sink that raises is logged and skipped; the remaining sinks still
    receive the event.
    """

    def __init__(self, *sinks: EventSink) -> None:
        self._sinks = list(sinks)

    @property
    def sinks(self) -> list[EventSink]:
        return list(self._sinks)

    def _forward(self, method: str, *args: Any, **kwargs: Any) -> None:
        for sink in self._sinks:
            try:
                getattr(sink, method)(*args, **kwargs)
            except Exception as exc:
                logger.error(
                    "Sink %s failed in %s: %s", type(sink).__name__, method, exc
                )

    def on_test_starting(
        self, name: str, text: str, location: Location | None
    ) -> None:
        self._forward("on_test_starting", name, text, location)

    def on_test_succeeded(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        *,
        duration: float | None = None,
    ) -> None:
        self._forward(
            "on_test_succeeded", name, text, location, formatter, duration=duration
        )

    def on_test_failed(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        error: BaseException,
        *,
        duration: float | None = None,
    ) -> None:
        self._forward(
            "on_test_failed", name, text, location, formatter, error, duration=duration
        )

    def on_test_canceled(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        reason: str,
        *,
        duration: float | None = None,
    ) -> None:
        self._forward(
            "on_test_canceled", name, text, location, formatter, reason, duration=duration
        )

    def on_test_pending(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        reason: str,
        *,
        duration: float | None = None,
    ) -> None:
        self._forward(
            "on_test_pending", name, text, location, formatter, reason, duration=duration
        )
