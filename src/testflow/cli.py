"""CLI entry point for testflow.

Provides ``run`` and ``list`` sub-commands using Click and Rich for
output formatting.

Usage::

    testflow list mypkg.flows:checkout
    testflow run mypkg.flows:checkout --verbose
    testflow run mypkg.flows:checkout --teardown-policy always
"""

from __future__ import annotations

import asyncio
import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from testflow.flow.engine import FlowEngine
from testflow.flow.errors import FlowLoadError
from testflow.flow.events import FlowEventType
from testflow.flow.loader import load_suite
from testflow.flow.models import FlowConfig, IndentedText, Location, TeardownPolicy
from testflow.flow.suite import RunStatus, TestFlow

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    # Debug output is limited to our own loggers.
    logging.getLogger("testflow").setLevel(
        logging.DEBUG if verbose else logging.NOTSET
    )


class ConsoleReporter:
    """Prints test results to a Rich console as they arrive."""

    def __init__(self, console: Console) -> None:
        self._console = console

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
        self._console.print(f"[green]{escape(formatter.formatted_text)}[/green]")

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
        self._console.print(
            f"[red]{escape(formatter.formatted_text)} *** FAILED ***[/red]", highlight=False
        )
        where = f" ({location})" if location else ""
        self._console.print(f"  [red]{type(error).__name__}: {escape(str(error))}{where}[/red]")

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
        suffix = f": {escape(reason)}" if reason else ""
        self._console.print(
            f"[yellow]{escape(formatter.formatted_text)} !!! CANCELED !!!{suffix}[/yellow]"
        )

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
        self._console.print(f"[yellow]{escape(formatter.formatted_text)} (pending)[/yellow]")


def _load(target: str) -> TestFlow:
    try:
        return load_suite(target)
    except FlowLoadError as exc:
        console.print(f"[red]Failed to load flow:[/red] {exc}")
        raise SystemExit(1) from exc


@click.group()
@click.version_option(package_name="testflow")
def main() -> None:
    """Compose and run dependent test steps."""


@main.command(name="list")
@click.argument("target")
def list_tests(target: str) -> None:
    """List the test names of a flow in execution order."""
    suite = _load(target)

    table = Table(title=f"Tests in {suite.suite_name}")
    table.add_column("#", justify="right")
    table.add_column("Test name", style="cyan")
    for index, name in enumerate(suite.test_names(), start=1):
        table.add_row(str(index), name)

    console.print(table)


@main.command()
@click.argument("target")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option(
    "--teardown-policy",
    type=click.Choice([p.value for p in TeardownPolicy]),
    default=TeardownPolicy.ON_SUCCESS.value,
    help="Whether teardown steps run after an upstream failure.",
)
@click.option(
    "--no-isolate",
    is_flag=True,
    help="Share one upstream value between fan-out siblings instead of copying it.",
)
def run(target: str, verbose: bool, teardown_policy: str, no_isolate: bool) -> None:
    """Run a flow given as MODULE:ATTRIBUTE."""
    _setup_logging(verbose)
    suite = _load(target)

    config = FlowConfig(
        teardown_policy=TeardownPolicy(teardown_policy),
        isolate_fan_out=not no_isolate,
    )
    engine = FlowEngine(config=config)

    console.print(f"[bold green]Running flow:[/bold green] {suite.suite_name}")
    status = asyncio.run(suite.run_tests(ConsoleReporter(console), engine=engine))
    _print_summary(status)

    if not status.succeeds:
        raise SystemExit(1)


def _print_summary(status: RunStatus) -> None:
    """Print per-outcome counts in a table."""
    table = Table(title="Summary")
    table.add_column("Outcome", style="bold")
    table.add_column("Tests", justify="right")

    styles = {
        FlowEventType.TEST_SUCCEEDED: "green",
        FlowEventType.TEST_FAILED: "red",
        FlowEventType.TEST_CANCELED: "yellow",
        FlowEventType.TEST_PENDING: "yellow",
    }
    for event_type, style in styles.items():
        label = event_type.value.removeprefix("test_")
        table.add_row(f"[{style}]{label}[/{style}]", str(status.count(event_type)))

    console.print(table)


if __name__ == "__main__":
    main()
