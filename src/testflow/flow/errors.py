"""Error hierarchy for test flows.

Construction errors derive from :class:`FlowError`.  The two signal
exceptions, :class:`FlowCanceled` and :class:`FlowPending`, are raised
from inside node bodies and converted by the engine into ``Canceled``
and ``Pending`` outcomes; they never escape a run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, NoReturn

if TYPE_CHECKING:
    from testflow.flow.models import Location


class FlowError(Exception):
    """Base exception for flow construction and loading errors."""


class DuplicateTestNameError(FlowError):
    """Two named nodes in one flow share a test name.

    Attributes:
        names: Every test name that collided.
        location: Where the offending composition was written, if known.
    """

    def __init__(
        self,
        names: Iterable[str],
        location: Location | None = None,
    ) -> None:
        self.names: frozenset[str] = frozenset(names)
        self.location = location
        listed = ", ".join(repr(n) for n in sorted(self.names))
        where = f" at {location}" if location else ""
        super().__init__(f"Duplicate test name(s) {listed}{where}")


class FlowLoadError(FlowError):
    """A ``module:attribute`` target could not be resolved to a flow."""


class FlowCanceled(Exception):
    """Signal raised by a node body to cancel itself."""

    def __init__(self, reason: str = "") -> None:
        super().__init__(reason)
        self.reason = reason


class FlowPending(Exception):
    """Signal raised by a node body that is not implemented yet."""

    def __init__(self, reason: str = "") -> None:
        super().__init__(reason)
        self.reason = reason


def cancel(reason: str = "") -> NoReturn:
    """Cancel the currently executing node."""
    raise FlowCanceled(reason)


def pending(reason: str = "") -> NoReturn:
    """Mark the currently executing node as pending."""
    raise FlowPending(reason)
