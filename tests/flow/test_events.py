"""Tests for FlowEventEmitter and the EventSink protocol."""

import logging

import pytest

from testflow.flow.engine import FlowEngine
from testflow.flow.events import EventSink, FlowEventEmitter, FlowEventType
from testflow.flow.graph import ChainedTest, Pass, RootTest
from testflow.flow.models import (
    Canceled,
    Failed,
    IndentedText,
    Pending,
    Succeeded,
)
from testflow.flow.reporters import EventRecordingReporter


class ExplodingSink(EventRecordingReporter):
    """Records events but raises on every starting callback."""

    def on_test_starting(self, name, text, location):
        super().on_test_starting(name, text, location)
        raise RuntimeError("sink exploded")


class TestFlowEventEmitter:
    def test_starting_uses_name_as_text_and_location(self) -> None:
        rep = EventRecordingReporter()
        node = RootTest("first", lambda: 1).root
        FlowEventEmitter(rep).test_starting(node)

        (event,) = rep.events
        assert event.type == FlowEventType.TEST_STARTING
        assert event.test_name == "first"
        assert event.test_text == "first"
        assert event.location == node.location
        assert event.formatter is None

    @pytest.mark.parametrize(
        ("outcome", "event_type"),
        [
            (Succeeded(1), FlowEventType.TEST_SUCCEEDED),
            (Failed(ValueError("x")), FlowEventType.TEST_FAILED),
            (Canceled("c"), FlowEventType.TEST_CANCELED),
            (Pending("p"), FlowEventType.TEST_PENDING),
        ],
    )
    def test_outcome_maps_to_terminal_event(self, outcome, event_type) -> None:
        rep = EventRecordingReporter()
        node = ChainedTest("t", lambda v: v).root
        FlowEventEmitter(rep).test_finished(node, outcome, duration=0.5)

        (event,) = rep.events
        assert event.type == event_type
        assert event.duration == 0.5
        assert event.formatter == IndentedText("- t", "t", 1)

    def test_failed_event_carries_error(self) -> None:
        rep = EventRecordingReporter()
        error = KeyError("missing")
        FlowEventEmitter(rep).test_finished(
            RootTest("t", lambda: 1).root, Failed(error)
        )
        assert rep.test_failed_events[0].error is error

    def test_anonymous_node_is_rejected(self) -> None:
        emitter = FlowEventEmitter(EventRecordingReporter())
        with pytest.raises(ValueError):
            emitter.test_starting(Pass(lambda v: v).root)

    def test_non_outcome_is_rejected(self) -> None:
        emitter = FlowEventEmitter(EventRecordingReporter())
        with pytest.raises(TypeError):
            emitter.test_finished(RootTest("t", lambda: 1).root, "done")  # type: ignore[arg-type]

    def test_ordinal_counts_events(self) -> None:
        emitter = FlowEventEmitter(EventRecordingReporter())
        node = RootTest("t", lambda: 1).root
        emitter.test_starting(node)
        emitter.test_finished(node, Succeeded(1))
        assert emitter.ordinal == 2

    def test_sink_error_is_logged_not_raised(self, caplog) -> None:
        sink = ExplodingSink()
        emitter = FlowEventEmitter(sink)
        node = RootTest("t", lambda: 1).root

        with caplog.at_level(logging.ERROR, logger="testflow.flow.events"):
            emitter.test_starting(node)
            emitter.test_finished(node, Succeeded(1))

        assert "sink exploded" in caplog.text
        assert [e.type for e in sink.events] == [
            FlowEventType.TEST_STARTING,
            FlowEventType.TEST_SUCCEEDED,
        ]


class TestSinkDuringRun:
    @pytest.mark.asyncio
    async def test_raising_sink_does_not_stop_walk(self) -> None:
        sink = ExplodingSink()
        flow = RootTest("a", lambda: 1).and_then(ChainedTest("b", lambda v: v))
        await FlowEngine().run(flow, sink)
        assert len(sink.test_succeeded_events) == 2

    def test_recording_reporter_satisfies_protocol(self) -> None:
        assert isinstance(EventRecordingReporter(), EventSink)
