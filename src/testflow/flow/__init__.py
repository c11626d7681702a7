"""Testflow engine - composable, event-reporting test flows.

Independently declared test steps are wired into an immutable tree with
``and_then`` and ``compose``, then walked by an asynchronous engine that
reports each named step's lifecycle to an event sink and cancels
everything downstream of a failure.
"""

from testflow.flow.engine import FlowEngine, run_flow
from testflow.flow.errors import (
    DuplicateTestNameError,
    FlowCanceled,
    FlowError,
    FlowLoadError,
    FlowPending,
    cancel,
    pending,
)
from testflow.flow.events import EventSink, FlowEvent, FlowEventEmitter, FlowEventType
from testflow.flow.graph import ChainedTest, Flow, Pass, RootTest, Setup, Teardown
from testflow.flow.models import (
    Canceled,
    Failed,
    FlowConfig,
    FlowNode,
    IndentedText,
    Location,
    NodeKind,
    Outcome,
    OutcomeKind,
    Pending,
    Succeeded,
    TeardownPolicy,
)
from testflow.flow.reporters import CompositeSink, EventRecordingReporter, LoggingReporter
from testflow.flow.suite import RunStatus, TestFlow

__all__ = [
    "Canceled",
    "ChainedTest",
    "CompositeSink",
    "DuplicateTestNameError",
    "EventRecordingReporter",
    "EventSink",
    "Failed",
    "Flow",
    "FlowCanceled",
    "FlowConfig",
    "FlowEngine",
    "FlowError",
    "FlowEvent",
    "FlowEventEmitter",
    "FlowEventType",
    "FlowLoadError",
    "FlowNode",
    "FlowPending",
    "IndentedText",
    "Location",
    "LoggingReporter",
    "NodeKind",
    "Outcome",
    "OutcomeKind",
    "Pass",
    "Pending",
    "RootTest",
    "RunStatus",
    "Setup",
    "Succeeded",
    "Teardown",
    "TeardownPolicy",
    "TestFlow",
    "cancel",
    "pending",
    "run_flow",
]
