"""Tests for the bundled EventSink implementations."""

import logging

import pytest

from testflow.flow.engine import FlowEngine
from testflow.flow.errors import cancel, pending
from testflow.flow.events import FlowEventType
from testflow.flow.graph import ChainedTest, RootTest
from testflow.flow.models import IndentedText
from testflow.flow.reporters import CompositeSink, EventRecordingReporter, LoggingReporter


def _boom(_v):
    raise RuntimeError("oops")


class BrokenSink(EventRecordingReporter):
    def on_test_succeeded(self, *args, **kwargs):
        raise RuntimeError("broken sink")


class TestEventRecordingReporter:
    def test_records_in_order_with_ordinals(self) -> None:
        rep = EventRecordingReporter()
        fmt = IndentedText.for_test("a")
        rep.on_test_starting("a", "a", None)
        rep.on_test_succeeded("a", "a", None, fmt, duration=0.1)

        assert [e.ordinal for e in rep.events] == [1, 2]
        assert rep.trace() == [("test_starting", "a"), ("test_succeeded", "a")]
        assert rep.test_succeeded_events[0].formatter is fmt

    def test_filters_by_type(self) -> None:
        rep = EventRecordingReporter()
        fmt = IndentedText.for_test("x")
        rep.on_test_failed("x", "x", None, fmt, ValueError("v"))
        rep.on_test_canceled("y", "y", None, fmt, "why")
        rep.on_test_pending("z", "z", None, fmt, "later")

        assert [e.test_name for e in rep.test_failed_events] == ["x"]
        assert [e.test_name for e in rep.test_canceled_events] == ["y"]
        assert [e.test_name for e in rep.test_pending_events] == ["z"]
        assert rep.events_of(FlowEventType.TEST_STARTING) == []
        assert [e.test_name for e in rep.terminal_events] == ["x", "y", "z"]

    def test_terminal_events_skip_starting(self) -> None:
        rep = EventRecordingReporter()
        rep.on_test_starting("a", "a", None)
        rep.on_test_succeeded("a", "a", None, IndentedText.for_test("a"))
        assert [e.type for e in rep.terminal_events] == [FlowEventType.TEST_SUCCEEDED]

    def test_events_returns_a_copy(self) -> None:
        rep = EventRecordingReporter()
        rep.on_test_starting("a", "a", None)
        rep.events.clear()
        assert len(rep.events) == 1

    def test_clear(self) -> None:
        rep = EventRecordingReporter()
        rep.on_test_starting("a", "a", None)
        rep.clear()
        assert rep.events == []


class TestLoggingReporter:
    @pytest.mark.asyncio
    async def test_logs_each_outcome(self, caplog) -> None:
        flow = RootTest("first", lambda: 1).and_then(
            ChainedTest("broken", _boom),
            ChainedTest("skipped", lambda v: cancel("not today")),
            ChainedTest("todo", lambda v: pending()),
        )
        with caplog.at_level(logging.INFO, logger="testflow.events"):
            await FlowEngine().run(flow, LoggingReporter())

        assert "Test starting: first" in caplog.text
        assert "first succeeded" in caplog.text
        assert "broken FAILED" in caplog.text
        assert "skipped canceled: not today" in caplog.text
        assert "todo pending" in caplog.text

    def test_failures_log_at_warning_or_above(self, caplog) -> None:
        logger = logging.getLogger("testflow.test.reporter")
        reporter = LoggingReporter(logger, level=logging.DEBUG)
        with caplog.at_level(logging.DEBUG, logger="testflow.test.reporter"):
            reporter.on_test_failed(
                "x", "x", None, IndentedText.for_test("x"), ValueError("bad")
            )
        (record,) = caplog.records
        assert record.levelno == logging.WARNING


class TestCompositeSink:
    def test_forwards_to_every_sink_in_order(self) -> None:
        first, second = EventRecordingReporter(), EventRecordingReporter()
        composite = CompositeSink(first, second)
        composite.on_test_starting("a", "a", None)
        composite.on_test_pending("a", "a", None, IndentedText.for_test("a"), "r")

        assert first.trace() == second.trace()
        assert second.test_pending_events[0].reason == "r"
        assert composite.sinks == [first, second]

    def test_broken_sink_does_not_starve_others(self, caplog) -> None:
        good = EventRecordingReporter()
        composite = CompositeSink(BrokenSink(), good)
        with caplog.at_level(logging.ERROR, logger="testflow.flow.reporters"):
            composite.on_test_succeeded(
                "a", "a", None, IndentedText.for_test("a"), duration=None
            )
        assert len(good.test_succeeded_events) == 1
        assert "broken sink" in caplog.text
