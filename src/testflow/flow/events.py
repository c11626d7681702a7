"""Test lifecycle events.

The engine reports through an :class:`EventSink`, the only interface it
requires from its host.  :class:`FlowEventEmitter` sits between the two:
it turns a named node and its outcome into the matching sink callback,
numbers events in program order, and shields the walk from sinks that
raise.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from testflow.flow.models import (
    Canceled,
    Failed,
    FlowNode,
    IndentedText,
    Location,
    Outcome,
    Pending,
    Succeeded,
)

logger = logging.getLogger(__name__)


class FlowEventType(str, enum.Enum):
    """Typed event categories reported for named nodes."""

    TEST_STARTING = "test_starting"
    TEST_SUCCEEDED = "test_succeeded"
    TEST_FAILED = "test_failed"
    TEST_CANCELED = "test_canceled"
    TEST_PENDING = "test_pending"


TERMINAL_EVENT_TYPES = frozenset({
    FlowEventType.TEST_SUCCEEDED,
    FlowEventType.TEST_FAILED,
    FlowEventType.TEST_CANCELED,
    FlowEventType.TEST_PENDING,
})


@dataclass
class FlowEvent:
    """A single recorded lifecycle event.

    Attributes:
        type: The event category.
        test_name: Name of the test the event is about.
        test_text: Display text for the test.
        location: Where the test was declared.
        formatter: Rendering hint (terminal events only).
        error: The raised error (``TEST_FAILED`` only).
        reason: Cancel or pending reason.
        duration: Seconds between starting and this terminal event.
        ordinal: Position of the event within its run.
        timestamp: UNIX epoch when the event was recorded.
    """

    type: FlowEventType
    test_name: str
    test_text: str = ""
    location: Location | None = None
    formatter: IndentedText | None = None
    error: BaseException | None = None
    reason: str | None = None
    duration: float | None = None
    ordinal: int = 0
    timestamp: float = field(default_factory=time.time)


@runtime_checkable
class EventSink(Protocol):
    """Callbacks a host implements to observe a flow run."""

    def on_test_starting(
        self, name: str, text: str, location: Location | None
    ) -> None: ...

    def on_test_succeeded(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        *,
        duration: float | None = None,
    ) -> None: ...

    def on_test_failed(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        error: BaseException,
        *,
        duration: float | None = None,
    ) -> None: ...

    def on_test_canceled(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        reason: str,
        *,
        duration: float | None = None,
    ) -> None: ...

    def on_test_pending(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        reason: str,
        *,
        duration: float | None = None,
    ) -> None: ...


class FlowEventEmitter:
    """Reports the lifecycle of named nodes to an :class:`EventSink`.

    One emitter is created per run.  Anonymous nodes must never be passed
    in; the engine filters them out before calling.
    """

    def __init__(self, sink: EventSink) -> None:
        self._sink = sink
        self._ordinal = 0

    @property
    def ordinal(self) -> int:
        """Number of events emitted so far in this run."""
        return self._ordinal

    def test_starting(self, node: FlowNode) -> None:
        name = self._require_name(node)
        self._dispatch(
            FlowEventType.TEST_STARTING,
            self._sink.on_test_starting,
            name,
            name,
            node.location,
        )

    def test_finished(
        self,
        node: FlowNode,
        outcome: Outcome,
        duration: float | None = None,
    ) -> None:
        """Emit the terminal event matching *outcome*."""
        name = self._require_name(node)
        formatter = IndentedText.for_test(name)
        args: tuple[Any, ...] = (name, name, node.location, formatter)
        if isinstance(outcome, Succeeded):
            self._dispatch(
                FlowEventType.TEST_SUCCEEDED,
                self._sink.on_test_succeeded,
                *args,
                duration=duration,
            )
        elif isinstance(outcome, Failed):
            self._dispatch(
                FlowEventType.TEST_FAILED,
                self._sink.on_test_failed,
                *args,
                outcome.error,
                duration=duration,
            )
        elif isinstance(outcome, Canceled):
            self._dispatch(
                FlowEventType.TEST_CANCELED,
                self._sink.on_test_canceled,
                *args,
                outcome.reason,
                duration=duration,
            )
        elif isinstance(outcome, Pending):
            self._dispatch(
                FlowEventType.TEST_PENDING,
                self._sink.on_test_pending,
                *args,
                outcome.reason,
                duration=duration,
            )
        else:
            raise TypeError(f"Not an outcome: {outcome!r}")

    def _dispatch(
        self, event_type: FlowEventType, callback: Any, *args: Any, **kwargs: Any
    ) -> None:
        self._ordinal += 1
        try:
            callback(*args, **kwargs)
        except Exception as exc:
            logger.error(
                "Event sink error for %s of '%s': %s",
                event_type.value,
                args[0],
                exc,
            )

    @staticmethod
    def _require_name(node: FlowNode) -> str:
        if node.name is None:
            raise ValueError(f"Anonymous {node.kind.value} node cannot emit events")
        return node.name
