"""Resolve ``module:attribute`` targets into suites for the CLI."""

from __future__ import annotations

import importlib
import logging
import os
import sys

from testflow.flow.errors import FlowLoadError
from testflow.flow.graph import Flow
from testflow.flow.suite import TestFlow

logger = logging.getLogger(__name__)


def load_suite(target: str) -> TestFlow:
    """Import *target* and return it as a :class:`TestFlow`.

    *target* has the form ``package.module:attribute``.  The attribute
    may be a :class:`Flow`, a :class:`TestFlow`, or a zero-argument
    callable returning either.

    Raises:
        FlowLoadError: If the module or attribute cannot be found, or
            the attribute is not a flow.
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise FlowLoadError(f"Expected 'module:attribute', got {target!r}")

    cwd = os.getcwd()
    if cwd not in sys.path:
        logger.debug("Adding %s to sys.path", cwd)
        sys.path.insert(0, cwd)

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise FlowLoadError(f"Cannot import module '{module_name}': {exc}") from exc

    obj = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise FlowLoadError(
                f"Module '{module_name}' has no attribute '{attr}'"
            ) from exc

    if not isinstance(obj, (Flow, TestFlow)) and callable(obj):
        logger.debug("Calling factory %s to build the flow", target)
        obj = obj()

    if isinstance(obj, TestFlow):
        return obj
    if isinstance(obj, Flow):
        return TestFlow(obj, suite_name=attr)
    raise FlowLoadError(f"'{target}' is not a Flow or TestFlow: {type(obj).__name__}")
