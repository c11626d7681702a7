"""Flow graph construction.

A :class:`Flow` is an immutable handle on a tree of :class:`FlowNode`
records plus its ordered test-name index.  Flows are assembled with
:meth:`Flow.and_then` and :meth:`Flow.compose`; both return a new flow
and leave their operands untouched.  Test-name uniqueness across the
whole tree is checked here, before anything runs.
"""

from __future__ import annotations

import logging
from typing import Iterator

from testflow.flow.errors import DuplicateTestNameError
from testflow.flow.models import (
    Body,
    FlowNode,
    Location,
    NodeKind,
    caller_location,
)

logger = logging.getLogger(__name__)


def iter_nodes(root: FlowNode) -> Iterator[FlowNode]:
    """Yield every node of the tree rooted at *root* in pre-order.

    Siblings are visited left to right, so the order matches both
    declaration order and execution order.
    """
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def collect_test_names(root: FlowNode) -> tuple[str, ...]:
    """Return the test names of the tree in pre-order.

    Raises:
        DuplicateTestNameError: If two named nodes share a name.
    """
    names: list[str] = []
    seen: set[str] = set()
    duplicates: set[str] = set()
    for node in iter_nodes(root):
        if node.name is None:
            continue
        if node.name in seen:
            duplicates.add(node.name)
            continue
        seen.add(node.name)
        names.append(node.name)
    if duplicates:
        raise DuplicateTestNameError(duplicates, root.location)
    return tuple(names)


def attach_to_last_branch(
    root: FlowNode, children: tuple[FlowNode, ...]
) -> FlowNode:
    """Return a copy of *root* with *children* appended to its deepest-right node.

    Only the nodes on the path from the root to the attachment point are
    rebuilt; every other subtree is shared with *root*.
    """
    path = [root]
    while path[-1].children:
        path.append(path[-1].children[-1])

    rebuilt = path[-1].with_children(path[-1].children + children)
    for parent in reversed(path[:-1]):
        rebuilt = parent.with_children(parent.children[:-1] + (rebuilt,))
    return rebuilt


class Flow:
    """An immutable tree of test flow nodes.

    Build flows from :class:`RootTest`, :class:`ChainedTest`,
    :class:`Setup`, :class:`Pass` and :class:`Teardown` and combine them
    with :meth:`and_then` or :meth:`compose`.
    """

    def __init__(self, root: FlowNode) -> None:
        self._root = root
        self._test_names = collect_test_names(root)

    @property
    def root(self) -> FlowNode:
        """Return the root node of the tree."""
        return self._root

    @property
    def name(self) -> str | None:
        """Return the root node's test name, or ``None`` if it is anonymous."""
        return self._root.name

    @property
    def takes_input(self) -> bool:
        """Whether this flow can be attached below another flow."""
        return self._root.attachable

    def test_names(self) -> tuple[str, ...]:
        """Return every test name in the tree, in declaration order."""
        return self._test_names

    def nodes(self) -> Iterator[FlowNode]:
        """Iterate over every node of the tree in execution order."""
        return iter_nodes(self._root)

    def and_then(self, *nexts: Flow) -> Flow:
        """Attach *nexts* below the deepest-right node of this flow.

        With more than one argument each flow becomes an independent
        sibling that receives the same upstream value.

        Raises:
            TypeError: If no flow is given, or one of them cannot take an
                input (a :class:`RootTest`).
            DuplicateTestNameError: If any test name would appear twice.
        """
        return self._attach(nexts, caller_location())

    def compose(self, prev: Flow) -> Flow:
        """Return ``prev.and_then(self)``.

        The resulting test-name index follows execution order, so the
        names of *prev* come first.
        """
        if not isinstance(prev, Flow):
            raise TypeError(f"compose() expects a Flow, got {type(prev).__name__}")
        return prev._attach((self,), caller_location())

    def _attach(self, nexts: tuple[Flow, ...], location: Location | None) -> Flow:
        if not nexts:
            raise TypeError("and_then() requires at least one flow")
        for nxt in nexts:
            if not isinstance(nxt, Flow):
                raise TypeError(
                    f"and_then() expects Flow arguments, got {type(nxt).__name__}"
                )
            if not nxt.takes_input:
                raise TypeError(
                    f"{nxt.root.kind.value} '{nxt.name}' takes no input and "
                    "cannot follow another node"
                )

        seen = set(self._test_names)
        collisions: set[str] = set()
        for nxt in nexts:
            for test_name in nxt.test_names():
                if test_name in seen:
                    collisions.add(test_name)
                seen.add(test_name)
        if collisions:
            raise DuplicateTestNameError(collisions, location)

        root = attach_to_last_branch(self._root, tuple(n.root for n in nexts))
        logger.debug(
            "Attached %d flow(s) below '%s' (%d test names)",
            len(nexts),
            self._root.name or self._root.kind.value,
            len(seen),
        )
        return Flow(root)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(test_names={list(self._test_names)!r})"


class RootTest(Flow):
    """A named test that starts a flow; its body takes no arguments."""

    def __init__(self, name: str, body: Body) -> None:
        if not isinstance(name, str):
            raise TypeError(f"test name must be a string, got {type(name).__name__}")
        super().__init__(
            FlowNode(
                kind=NodeKind.ROOT_TEST,
                body=body,
                name=name,
                takes_input=False,
                location=caller_location(),
            )
        )


class ChainedTest(Flow):
    """A named test whose body receives the upstream value."""

    def __init__(self, name: str, body: Body) -> None:
        if not isinstance(name, str):
            raise TypeError(f"test name must be a string, got {type(name).__name__}")
        super().__init__(
            FlowNode(
                kind=NodeKind.CHAINED_TEST,
                body=body,
                name=name,
                location=caller_location(),
            )
        )


class Setup(Flow):
    """Anonymous fixture setup.

    The body takes no arguments unless *takes_input* is set, in which
    case it is called with the upstream value (``None`` at the root).
    """

    def __init__(self, body: Body, *, takes_input: bool = False) -> None:
        super().__init__(
            FlowNode(
                kind=NodeKind.SETUP,
                body=body,
                takes_input=takes_input,
                location=caller_location(),
            )
        )


class Pass(Flow):
    """Anonymous relay stage between two tests."""

    def __init__(self, body: Body) -> None:
        super().__init__(
            FlowNode(kind=NodeKind.PASS, body=body, location=caller_location())
        )


class Teardown(Flow):
    """Anonymous fixture teardown; its output is always ``None``."""

    def __init__(self, body: Body) -> None:
        super().__init__(
            FlowNode(kind=NodeKind.TEARDOWN, body=body, location=caller_location())
        )
