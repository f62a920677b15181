"""Run report and its line-oriented output sink.

The execution engine builds a `Report` incrementally while it runs, and
notifies a `Reporter` about every outcome so results appear on standard
output as soon as they are known.
"""

from os import linesep
from traceback import format_exception

from click import echo, style
from pydantic import Field

from loco_runner.models import MutableModel, SchemaModel

PASS_MARKER = '✓'
FAIL_MARKER = '✕'

MESSAGE_INDENT = '    '


class TestResult(SchemaModel):
    """Outcome of a single test case."""

    __test__ = False

    name: str
    passed: bool
    error: str | None = None
    duration: float = 0.0


class HookFailure(SchemaModel):
    """Failure of a run-level hook."""

    hook: str
    error: str


class Report(MutableModel):
    """Ordered outcomes of a script run.

    Results are appended in execution order; aggregates are computed
    from them on access.
    """

    results: list[TestResult] = Field(default_factory=list)
    hook_failures: list[HookFailure] = Field(default_factory=list)
    load_error: str | None = None
    elapsed: float = 0.0

    @property
    def passed(self) -> int:
        """Number of passed tests."""
        return sum(1 for result in self.results if result.passed)

    @property
    def failed(self) -> int:
        """Number of failed tests."""
        return sum(1 for result in self.results if not result.passed)

    @property
    def total(self) -> int:
        """Number of executed tests."""
        return len(self.results)

    @property
    def success(self) -> bool:
        """Whether the run loaded, all hooks succeeded and no test failed."""
        return self.load_error is None and not self.hook_failures and self.failed == 0

    def summary(self) -> str:
        """Render the summary line."""
        return (
            f'Tests: {self.passed} passed, {self.failed} failed, '
            f'{self.total} total ({self.elapsed:.0f} ms)'
        )


class Reporter:
    """Writes outcomes to standard output as they happen."""

    def __init__(self, *, color: bool = True, tracebacks: bool = False) -> None:
        """Initialize the reporter.

        Args:
            color: Whether to colorize markers.
            tracebacks: Whether to print full tracebacks below failures.
        """
        self.color = color
        self.tracebacks = tracebacks

    def on_test_result(self, result: TestResult, error: Exception | None = None) -> None:
        """Print a pass or fail marker for a test, with the failure below it."""
        if result.passed:
            echo(self._style(f'{PASS_MARKER} {result.name}', fg='green'))
            return

        echo(self._style(f'{FAIL_MARKER} {result.name}', fg='red'))
        self._echo_error(result.error, error)

    def on_hook_failure(self, failure: HookFailure, error: Exception | None = None) -> None:
        """Print a run-level hook failure."""
        echo(self._style(f'{FAIL_MARKER} {failure.hook} hook', fg='red'))
        self._echo_error(failure.error, error)

    def on_load_error(self, message: str, error: Exception | None = None) -> None:
        """Print a script loading failure."""
        echo(self._style(f'{FAIL_MARKER} script could not be loaded', fg='red'))
        self._echo_error(message, error)

    def on_run_complete(self, report: Report) -> None:
        """Print the summary line."""
        echo(self._style(report.summary(), fg='green' if report.success else 'red', bold=True))

    def _echo_error(self, message: str | None, error: Exception | None) -> None:
        """Print an indented failure message and an optional traceback."""
        if message:
            echo(self._indent(message))

        if self.tracebacks and error is not None:
            echo(self._indent(''.join(format_exception(error)).rstrip()))

    def _style(self, text: str, **styles: object) -> str:
        """Apply click styles when color is enabled."""
        if not self.color:
            return text

        return style(text, **styles)

    @staticmethod
    def _indent(text: str) -> str:
        """Indent every line of a message."""
        return linesep.join(f'{MESSAGE_INDENT}{line}' for line in text.splitlines())
