"""Suite-level wrapper around a flow.

:class:`TestFlow` lets a host treat a flow as a suite: it exposes the
test names up front and turns one run into a :class:`RunStatus`.  Only
failures fail a suite; canceled and pending tests do not.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from testflow.flow.engine import FlowEngine
from testflow.flow.events import EventSink, FlowEventType
from testflow.flow.graph import Flow
from testflow.flow.models import IndentedText, Location
from testflow.flow.reporters import CompositeSink

logger = logging.getLogger(__name__)


@dataclass
class RunStatus:
    """Summary of one suite run.

    Attributes:
        counts: Number of terminal events per event type.
        failed_tests: Names of the tests that failed, in run order.
    """

    counts: dict[FlowEventType, int] = field(default_factory=dict)
    failed_tests: list[str] = field(default_factory=list)

    @property
    def succeeds(self) -> bool:
        return not self.failed_tests

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def count(self, event_type: FlowEventType) -> int:
        return self.counts.get(event_type, 0)

    def to_dict(self) -> dict[str, int]:
        return {t.value: n for t, n in self.counts.items()}


class _StatusTracker:
    """Sink that tallies terminal events into a :class:`RunStatus`."""

    def __init__(self) -> None:
        self.status = RunStatus()

    def _bump(self, event_type: FlowEventType) -> None:
        self.status.counts[event_type] = self.status.counts.get(event_type, 0) + 1

    def on_test_starting(
        self, name: str, text: str, location: Location | None
    ) -> None:
        pass

    def on_test_succeeded(
        self,
        name: str,
        text: str,
        location: Location | None,
        formatter: IndentedText,
        *,
        duration: float | None = None,
    ) -> None:
        self._bump(FlowEventType.TEST_SUCCEEDED)

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
        self._bump(FlowEventType.TEST_FAILED)
        self.status.failed_tests.append(name)

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
        self._bump(FlowEventType.TEST_CANCELED)

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
        self._bump(FlowEventType.TEST_PENDING)


class TestFlow:
    """A suite whose tests are the named nodes of one flow."""

    # Keep pytest from collecting this class when it is imported by tests.
    __test__ = False

    def __init__(self, flow: Flow, suite_name: str | None = None) -> None:
        if not isinstance(flow, Flow):
            raise TypeError(f"TestFlow expects a Flow, got {type(flow).__name__}")
        self._flow = flow
        self._suite_name = suite_name or flow.name or "TestFlow"

    @property
    def flow(self) -> Flow:
        return self._flow

    @property
    def suite_name(self) -> str:
        return self._suite_name

    def test_names(self) -> tuple[str, ...]:
        return self._flow.test_names()

    def expected_test_count(self) -> int:
        return len(self._flow.test_names())

    async def run_tests(
        self, sink: EventSink, engine: FlowEngine | None = None
    ) -> RunStatus:
        """Run every test of the flow and summarize the outcome."""
        tracker = _StatusTracker()
        engine = engine or FlowEngine()
        logger.info(
            "Running suite '%s' (%d tests)",
            self._suite_name,
            self.expected_test_count(),
        )
        await engine.run(self._flow, CompositeSink(sink, tracker))
        status = tracker.status
        logger.info(
            "Suite '%s' finished: %s",
            self._suite_name,
            "succeeded" if status.succeeds else "failed",
        )
        return status
