"""Lifecycle scheduling of registered hooks and tests.

The engine walks an execution state in a fixed order:

1. every `before_all` hook;
2. for each test case: its `before_each` hooks, the body, and every
   `after_each` hook regardless of the outcome;
3. every `after_all` hook.

Hooks and bodies may return awaitables; each one is awaited before the
next step starts, so no two callables ever overlap. Failures are caught
at the test boundary (per-test hooks and bodies) or at the run boundary
(run-level hooks) and never abort the remaining steps.
"""

from asyncio import run
from inspect import isawaitable
from logging import getLogger
from time import perf_counter
from typing import TYPE_CHECKING, Any

from loco_runner.errors import AssertionMismatch, HookError
from loco_runner.report import HookFailure, Report, TestResult

if TYPE_CHECKING:
    from collections.abc import Sequence

if TYPE_CHECKING:
    from loco_runner.report import Reporter
    from loco_runner.state import Body, ExecutionState, TestCase

logger = getLogger(__name__)


async def invoke(body: 'Body') -> Any:  # noqa: ANN401
    """Call a hook or test body and wait for its completion.

    Args:
        body: Zero-argument callable, possibly returning an awaitable.

    Returns:
        The returned value, or the awaited result.
    """
    result = body()
    if isawaitable(result):
        result = await result

    return result


class ExecutionEngine:
    """Run the registrations of one script.

    Attributes:
        state: Registrations collected while loading the script.
        reporter: Optional sink notified about every outcome.
        report: Report built during the run.
    """

    def __init__(self, state: 'ExecutionState', *,
                 reporter: 'Reporter | None' = None,
                 report: Report | None = None) -> None:
        """Initialize the engine.

        Args:
            state: Execution state to consume.
            reporter: Optional output sink.
            report: Report to append to. A new one is created by default.
        """
        self.state = state
        self.reporter = reporter
        self.report = report if report is not None else Report()

    def execute(self) -> Report:
        """Run the whole plan on a new event loop.

        Returns:
            The report with every test outcome.
        """
        return run(self.run())

    async def run(self) -> Report:
        """Run the whole plan.

        The registrations are read once, so entries appended while the
        plan runs are never executed.

        Returns:
            The report with every test outcome.
        """
        hooks = self.state.hooks
        cases = tuple(self.state.test_cases)
        after_all = tuple(hooks.after_all)

        await self.run_run_hooks(tuple(hooks.before_all), 'before_all')

        for case in cases:
            await self.run_test(case)

        await self.run_run_hooks(after_all, 'after_all')

        return self.report

    async def run_run_hooks(self, hooks: 'Sequence[Body]', kind: str) -> None:
        """Run run-level hooks, reporting each failure and continuing.

        Args:
            hooks: Hooks in registration order.
            kind: Hook kind for diagnostics.
        """
        for hook_num, hook in enumerate(hooks):
            logger.debug('Run %s hook #%d', kind, hook_num + 1)
            try:
                await invoke(hook)

            except Exception as base:  # noqa: BLE001
                error = HookError.from_error(base, hook=kind, hook_num=hook_num)
                error.__cause__ = base
                failure = HookFailure(hook=kind, error=str(error))
                self.report.hook_failures.append(failure)
                if self.reporter:
                    self.reporter.on_hook_failure(failure, error)

    async def run_test(self, case: 'TestCase') -> TestResult:
        """Run one test case surrounded by its per-test hooks.

        A failing `before_each` hook skips the remaining `before_each`
        hooks and the body. `after_each` hooks always run, and the first
        failure of the test (hook or body) is the one reported.

        Args:
            case: Registered test case.

        Returns:
            The outcome appended to the report.
        """
        hooks = self.state.hooks
        error: Exception | None = None

        logger.debug('Run test %r', case.name)
        started = perf_counter()

        try:
            await self.run_test_hooks(tuple(hooks.before_each), 'before_each', case)
            await invoke(case.body)

        except Exception as base:  # noqa: BLE001
            error = base

        for hook_num, hook in enumerate(tuple(hooks.after_each)):
            try:
                await invoke(hook)

            except Exception as base:  # noqa: BLE001
                if error is None:
                    error = HookError.from_error(
                        base,
                        hook='after_each',
                        hook_num=hook_num,
                        test_name=case.name,
                    )
                    error.__cause__ = base

        result = TestResult(
            name=case.name,
            passed=error is None,
            error=None if error is None else self.describe_error(error),
            duration=(perf_counter() - started) * 1000,
        )

        self.report.results.append(result)
        if self.reporter:
            self.reporter.on_test_result(result, error)

        return result

    @staticmethod
    async def run_test_hooks(hooks: 'Sequence[Body]', kind: str, case: 'TestCase') -> None:
        """Run per-test hooks, stopping at the first failure.

        Raises:
            HookError: If a hook raises or its awaitable fails.
        """
        for hook_num, hook in enumerate(hooks):
            try:
                await invoke(hook)

            except Exception as base:
                raise HookError.from_error(
                    base,
                    hook=kind,
                    hook_num=hook_num,
                    test_name=case.name,
                ) from base

    @staticmethod
    def describe_error(error: Exception) -> str:
        """Render a failure with its type name when it is not self-describing."""
        message = str(error)
        if isinstance(error, (AssertionMismatch, HookError)):
            return message

        if not message:
            return type(error).__name__

        return f'{type(error).__name__}: {message}'
