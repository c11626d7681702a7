"""Test flow execution engine.

Walks a :class:`Flow` tree depth-first in declaration order, threading
each node's successful value into its children and turning an upstream
failure, cancellation or pending marker into a ``Canceled`` outcome one
hop downstream.  Named nodes report their lifecycle through a
:class:`FlowEventEmitter`; anonymous nodes compute and propagate
silently.
"""

from __future__ import annotations

import copy
import inspect
import logging
import time
from typing import Any, Callable

from testflow.flow.errors import FlowCanceled, FlowPending
from testflow.flow.events import EventSink, FlowEventEmitter
from testflow.flow.graph import Flow
from testflow.flow.models import (
    Canceled,
    Failed,
    FlowConfig,
    FlowNode,
    NodeKind,
    Outcome,
    Pending,
    Succeeded,
    TeardownPolicy,
    is_outcome,
)

logger = logging.getLogger(__name__)


class FlowEngine:
    """Single-walk, cooperatively suspending flow executor.

    The engine holds no per-run state, so one instance (and one flow)
    may serve any number of runs, including concurrent ones.  Within a
    run each node body is awaited to completion before the next node is
    started, which keeps events in declaration order no matter how long
    individual bodies take.
    """

    def __init__(
        self,
        config: FlowConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or FlowConfig()
        self._clock = clock

    @property
    def config(self) -> FlowConfig:
        return self._config

    async def run(
        self,
        flow: Flow,
        sink: EventSink,
        initial: Outcome | None = None,
    ) -> None:
        """Execute every node of *flow*, reporting named nodes to *sink*.

        Args:
            flow: The flow to execute.
            sink: Receives starting and terminal events for named nodes.
            initial: Upstream outcome seen by the root node
                (``Succeeded(None)`` if omitted).

        Raises:
            BaseException: Anything a body raises that is not an
                :class:`Exception` (``KeyboardInterrupt``,
                ``asyncio.CancelledError``...) aborts the walk.
        """
        emitter = FlowEventEmitter(sink)
        upstream_root: Outcome = initial if initial is not None else Succeeded(None)
        logger.info("Running flow with %d test(s)", len(flow.test_names()))

        # Pre-order walk with an explicit stack: (node, upstream, input value)
        stack: list[tuple[FlowNode, Outcome, Any]] = [
            (flow.root, upstream_root, _value_of(upstream_root))
        ]
        while stack:
            node, upstream, value = stack.pop()
            outcome = await self._execute_node(node, upstream, value, emitter)

            children = node.children
            isolate = self._config.isolate_fan_out and len(children) > 1
            child_value = _value_of(outcome)
            for child in reversed(children):
                child_input = _Isolated(child_value) if isolate else child_value
                stack.append((child, outcome, child_input))

        logger.info("Flow run finished after %d event(s)", emitter.ordinal)

    async def _execute_node(
        self,
        node: FlowNode,
        upstream: Outcome,
        value: Any,
        emitter: FlowEventEmitter,
    ) -> Outcome:
        """Compute one node's outcome and report it if the node is named."""
        label = node.name or node.kind.value
        if node.is_named:
            emitter.test_starting(node)
        started = self._clock()

        if upstream.succeeded:
            outcome = await self._invoke(node, value)
        else:
            outcome = self._propagate(upstream)
            if (
                node.kind is NodeKind.TEARDOWN
                and self._config.teardown_policy is TeardownPolicy.ALWAYS
            ):
                finalizer = await self._invoke(node, None)
                if isinstance(finalizer, Failed):
                    outcome = finalizer
            logger.debug("Node '%s' not executed: %s", label, outcome)

        if node.is_named:
            emitter.test_finished(node, outcome, self._clock() - started)
        logger.debug("Node '%s' -> %s", label, outcome.kind.value)
        return outcome

    async def _invoke(self, node: FlowNode, value: Any) -> Outcome:
        """Call *node*'s body and capture its result as an outcome."""
        try:
            if not node.takes_input:
                result = node.body()
            else:
                if isinstance(value, _Isolated):
                    value = copy.deepcopy(value.value)
                result = node.body(value)
            if inspect.isawaitable(result):
                result = await result
        except FlowCanceled as exc:
            return Canceled(exc.reason)
        except FlowPending as exc:
            return Pending(exc.reason)
        except Exception as exc:
            logger.debug(
                "Body of '%s' raised %s: %s",
                node.name or node.kind.value,
                type(exc).__name__,
                exc,
            )
            return Failed(exc)

        outcome = result if is_outcome(result) else Succeeded(result)
        if node.kind is NodeKind.TEARDOWN and isinstance(outcome, Succeeded):
            return Succeeded(None)
        return outcome

    def _propagate(self, upstream: Outcome) -> Canceled:
        """Return the outcome a child takes when *upstream* did not succeed."""
        if isinstance(upstream, Failed):
            return Canceled(self._config.upstream_failed_reason)
        if isinstance(upstream, Canceled):
            return Canceled(upstream.reason)
        if isinstance(upstream, Pending):
            return Canceled(self._config.upstream_pending_reason)
        raise TypeError(f"Not an outcome: {upstream!r}")


class _Isolated:
    """Marks an upstream value that must be copied before use."""

    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        self.value = value


def _value_of(outcome: Outcome) -> Any:
    return outcome.value if isinstance(outcome, Succeeded) else None


async def run_flow(
    flow: Flow,
    sink: EventSink,
    config: FlowConfig | None = None,
) -> None:
    """Run *flow* once with a fresh :class:`FlowEngine`."""
    await FlowEngine(config=config).run(flow, sink)
