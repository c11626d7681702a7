"""Test flow data models.

Defines the outcome sum type, the immutable node record that makes up a
flow tree, and the configuration consumed by the engine.
"""

from __future__ import annotations

import enum
import inspect
import os
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union


class OutcomeKind(str, enum.Enum):
    """Terminal status of one node's computation."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    PENDING = "pending"


@dataclass(frozen=True)
class Succeeded:
    """The body resolved to *value*."""

    value: Any = None

    kind = OutcomeKind.SUCCEEDED

    @property
    def succeeded(self) -> bool:
        return True


@dataclass(frozen=True)
class Failed:
    """The body raised *error* (or returned this outcome explicitly)."""

    error: BaseException

    kind = OutcomeKind.FAILED

    @property
    def succeeded(self) -> bool:
        return False


@dataclass(frozen=True)
class Canceled:
    """The node was canceled, by itself or by an upstream outcome."""

    reason: str = ""

    kind = OutcomeKind.CANCELED

    @property
    def succeeded(self) -> bool:
        return False


@dataclass(frozen=True)
class Pending:
    """The node is declared but not implemented yet."""

    reason: str = ""

    kind = OutcomeKind.PENDING

    @property
    def succeeded(self) -> bool:
        return False


Outcome = Union[Succeeded, Failed, Canceled, Pending]

OUTCOME_TYPES: tuple[type, ...] = (Succeeded, Failed, Canceled, Pending)


def is_outcome(value: Any) -> bool:
    """Return True if *value* is one of the four outcome variants."""
    return isinstance(value, OUTCOME_TYPES)


@dataclass(frozen=True)
class Location:
    """Source position at which a node or composition was declared."""

    file_name: str
    line_number: int
    file_path: str | None = None

    def __str__(self) -> str:
        return f"{self.file_name}:{self.line_number}"


_PACKAGE = "testflow.flow"


def _is_internal(module_name: str) -> bool:
    return module_name == _PACKAGE or module_name.startswith(_PACKAGE + ".")


def caller_location() -> Location | None:
    """Return the :class:`Location` of the nearest frame outside this package.

    Frames inside the ``testflow.flow`` package are skipped so that
    subclass constructors report the user's line, not ours.
    """
    frame = inspect.currentframe()
    while frame is not None and _is_internal(frame.f_globals.get("__name__", "")):
        frame = frame.f_back
    if frame is None:
        return None
    path = frame.f_code.co_filename
    return Location(
        file_name=os.path.basename(path),
        line_number=frame.f_lineno,
        file_path=path,
    )


@dataclass(frozen=True)
class IndentedText:
    """Rendering hint handed to sinks alongside terminal events."""

    formatted_text: str
    raw_text: str
    indentation_level: int

    @classmethod
    def for_test(cls, test_name: str, level: int = 1) -> IndentedText:
        indent = "  " * (level - 1)
        return cls(
            formatted_text=f"{indent}- {test_name}",
            raw_text=test_name,
            indentation_level=level,
        )


class NodeKind(str, enum.Enum):
    """The five node shapes a flow tree is built from."""

    ROOT_TEST = "root_test"
    CHAINED_TEST = "chained_test"
    SETUP = "setup"
    PASS = "pass"
    TEARDOWN = "teardown"


# A body is called with zero or one argument and returns a value, an
# Outcome, or an awaitable of either.
Body = Callable[..., Union[Any, Awaitable[Any]]]


@dataclass(frozen=True, eq=False)
class FlowNode:
    """One immutable node of a flow tree.

    Attributes:
        kind: Which of the five node shapes this is.
        body: The lazily invoked computation.
        name: Test name; ``None`` for anonymous nodes.
        children: Child nodes in declaration order.
        takes_input: Whether *body* is called with the upstream value.
        location: Where the node was declared.
    """

    kind: NodeKind
    body: Body
    name: str | None = None
    children: tuple[FlowNode, ...] = ()
    takes_input: bool = True
    location: Location | None = None

    @property
    def is_named(self) -> bool:
        return self.name is not None

    @property
    def attachable(self) -> bool:
        """Whether this node may appear below another node."""
        return self.kind is not NodeKind.ROOT_TEST

    def with_children(self, children: tuple[FlowNode, ...]) -> FlowNode:
        return FlowNode(
            kind=self.kind,
            body=self.body,
            name=self.name,
            children=children,
            takes_input=self.takes_input,
            location=self.location,
        )


class TeardownPolicy(str, enum.Enum):
    """When a ``Teardown`` body runs relative to its upstream outcome."""

    ON_SUCCESS = "on_success"
    ALWAYS = "always"


UPSTREAM_FAILED_REASON = "upstream failed"
UPSTREAM_PENDING_REASON = "upstream pending"


@dataclass
class FlowConfig:
    """Engine configuration.

    Attributes:
        teardown_policy: Whether teardown bodies run after a failed,
            canceled or pending upstream.
        isolate_fan_out: Deep-copy the upstream value for each sibling
            when a node has more than one child.
        upstream_failed_reason: Cancel reason given below a failure.
        upstream_pending_reason: Cancel reason given below a pending node.
    """

    teardown_policy: TeardownPolicy = TeardownPolicy.ON_SUCCESS
    isolate_fan_out: bool = True
    upstream_failed_reason: str = UPSTREAM_FAILED_REASON
    upstream_pending_reason: str = UPSTREAM_PENDING_REASON
