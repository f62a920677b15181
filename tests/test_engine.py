"""Tests for lifecycle scheduling."""

import asyncio
from typing import TYPE_CHECKING

import pytest

from loco_runner.core import ExecutionEngine
from loco_runner.core.engine import invoke
from loco_runner.errors import AssertionMismatch, HookError
from loco_runner.report import Report
from loco_runner.state import Dispatcher, EventType

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


def recorder(log: list[str], entry: str):
    """Create a body appending an entry to the log."""
    def body() -> None:
        log.append(entry)
    return body


def failing(log: list[str], entry: str, error: Exception):
    """Create a body appending an entry to the log and raising."""
    def body() -> None:
        log.append(entry)
        raise error
    return body


def test_invoke_awaits_coroutines() -> None:
    """Await awaitable results and pass plain results through."""
    async def body() -> int:
        await asyncio.sleep(0)
        return 1

    assert asyncio.run(invoke(body)) == 1
    assert asyncio.run(invoke(lambda: 2)) == 2


def test_lifecycle_order(dispatcher: Dispatcher) -> None:
    """Interleave per-test hooks around every test body."""
    log: list[str] = []

    dispatcher.emit(EventType.BEFORE_ALL, body=recorder(log, 'before_all'))
    dispatcher.emit(EventType.BEFORE_EACH, body=recorder(log, 'H'))
    dispatcher.emit(EventType.AFTER_EACH, body=recorder(log, 'K'))
    dispatcher.emit(EventType.ADD_TEST, name='a', body=recorder(log, 'A'))
    dispatcher.emit(EventType.ADD_TEST, name='b', body=recorder(log, 'B'))
    dispatcher.emit(EventType.AFTER_ALL, body=recorder(log, 'after_all'))

    report = ExecutionEngine(dispatcher.state).execute()

    assert log == ['before_all', 'H', 'A', 'K', 'H', 'B', 'K', 'after_all']
    assert [result.name for result in report.results] == ['a', 'b']
    assert report.success


def test_hooks_run_in_declaration_order(dispatcher: Dispatcher) -> None:
    """Run several hooks of one kind in the order they were declared."""
    log: list[str] = []

    dispatcher.emit(EventType.BEFORE_EACH, body=recorder(log, 'H1'))
    dispatcher.emit(EventType.BEFORE_EACH, body=recorder(log, 'H2'))
    dispatcher.emit(EventType.AFTER_EACH, body=recorder(log, 'K1'))
    dispatcher.emit(EventType.AFTER_EACH, body=recorder(log, 'K2'))
    dispatcher.emit(EventType.ADD_TEST, name='a', body=recorder(log, 'A'))

    ExecutionEngine(dispatcher.state).execute()

    assert log == ['H1', 'H2', 'A', 'K1', 'K2']


def test_failure_isolation(dispatcher: Dispatcher) -> None:
    """Keep running tests after one of them fails."""
    log: list[str] = []

    def bad() -> None:
        log.append('bad')
        raise AssertionMismatch('1 is not identical to 2', expected=2, received=1)

    dispatcher.emit(EventType.ADD_TEST, name='bad', body=bad)
    dispatcher.emit(EventType.ADD_TEST, name='good', body=recorder(log, 'good'))
    dispatcher.emit(EventType.ADD_TEST, name='broken', body=failing(log, 'broken', KeyError('k')))

    report = ExecutionEngine(dispatcher.state).execute()

    assert log == ['bad', 'good', 'broken']
    assert [result.passed for result in report.results] == [False, True, False]
    assert report.results[0].error.startswith('1 is not identical to 2')
    assert report.results[2].error == "KeyError: 'k'"
    assert report.failed == 2
    assert not report.success


def test_async_callables_run_sequentially(dispatcher: Dispatcher) -> None:
    """Await every hook and body before the next one starts."""
    log: list[str] = []

    def slow(entry: str, delay: float):
        async def body() -> None:
            log.append(f'{entry}:start')
            await asyncio.sleep(delay)
            log.append(f'{entry}:end')
        return body

    dispatcher.emit(EventType.BEFORE_EACH, body=slow('H', 0.02))
    dispatcher.emit(EventType.AFTER_EACH, body=slow('K', 0.01))
    dispatcher.emit(EventType.ADD_TEST, name='a', body=slow('A', 0.01))
    dispatcher.emit(EventType.ADD_TEST, name='b', body=slow('B', 0))

    report = ExecutionEngine(dispatcher.state).execute()

    assert log == [
        'H:start', 'H:end', 'A:start', 'A:end', 'K:start', 'K:end',
        'H:start', 'H:end', 'B:start', 'B:end', 'K:start', 'K:end',
    ]
    assert report.passed == 2
    assert report.results[0].duration >= 30


def test_async_failure(dispatcher: Dispatcher) -> None:
    """Fail a test whose awaitable raises."""
    async def body() -> None:
        await asyncio.sleep(0)
        raise ValueError('late')

    dispatcher.emit(EventType.ADD_TEST, name='async', body=body)

    report = ExecutionEngine(dispatcher.state).execute()

    assert report.results[0].error == 'ValueError: late'


def test_before_each_failure_skips_body(dispatcher: Dispatcher) -> None:
    """Skip the body, but not the after-each hooks, when setup fails."""
    log: list[str] = []

    dispatcher.emit(EventType.BEFORE_EACH, body=failing(log, 'H1', RuntimeError('setup')))
    dispatcher.emit(EventType.BEFORE_EACH, body=recorder(log, 'H2'))
    dispatcher.emit(EventType.AFTER_EACH, body=recorder(log, 'K'))
    dispatcher.emit(EventType.ADD_TEST, name='a', body=recorder(log, 'A'))
    dispatcher.emit(EventType.ADD_TEST, name='b', body=recorder(log, 'B'))

    report = ExecutionEngine(dispatcher.state).execute()

    assert log == ['H1', 'K', 'H1', 'K']
    assert report.failed == 2

    error = report.results[0].error.splitlines()
    assert error[0] == "Hook failed: RuntimeError('setup')"
    assert error[1].strip() == 'in before_each hook #1 of "a"'


def test_after_each_failure_fails_test(dispatcher: Dispatcher) -> None:
    """Fail the test when cleanup fails, running the remaining cleanups."""
    log: list[str] = []

    dispatcher.emit(EventType.AFTER_EACH, body=failing(log, 'K1', RuntimeError('cleanup')))
    dispatcher.emit(EventType.AFTER_EACH, body=recorder(log, 'K2'))
    dispatcher.emit(EventType.ADD_TEST, name='a', body=recorder(log, 'A'))

    report = ExecutionEngine(dispatcher.state).execute()

    assert log == ['A', 'K1', 'K2']
    assert not report.results[0].passed
    assert report.results[0].error.startswith("Hook failed: RuntimeError('cleanup')")


def test_body_failure_wins_over_after_each(dispatcher: Dispatcher) -> None:
    """Report the first failure of a test."""
    dispatcher.emit(EventType.AFTER_EACH, body=failing([], 'K', RuntimeError('cleanup')))
    dispatcher.emit(EventType.ADD_TEST, name='a', body=failing([], 'A', ValueError('body')))

    report = ExecutionEngine(dispatcher.state).execute()

    assert report.results[0].error == 'ValueError: body'


def test_run_hook_failures_are_recorded(dispatcher: Dispatcher) -> None:
    """Record run-level hook failures and keep running."""
    log: list[str] = []

    dispatcher.emit(EventType.BEFORE_ALL, body=failing(log, 'before_all', RuntimeError('boom')))
    dispatcher.emit(EventType.BEFORE_ALL, body=recorder(log, 'before_all_2'))
    dispatcher.emit(EventType.ADD_TEST, name='a', body=recorder(log, 'A'))
    dispatcher.emit(EventType.AFTER_ALL, body=failing(log, 'after_all', RuntimeError('done')))

    report = ExecutionEngine(dispatcher.state).execute()

    assert log == ['before_all', 'before_all_2', 'A', 'after_all']
    assert report.passed == 1
    assert [failure.hook for failure in report.hook_failures] == ['before_all', 'after_all']
    assert report.hook_failures[0].error.startswith("Hook failed: RuntimeError('boom')")
    assert not report.success


def test_empty_state(dispatcher: Dispatcher) -> None:
    """Produce an empty successful report without tests."""
    report = ExecutionEngine(dispatcher.state).execute()

    assert report.total == 0
    assert report.success


def test_appends_to_given_report(dispatcher: Dispatcher) -> None:
    """Append outcomes to a report supplied by the caller."""
    report = Report()
    dispatcher.emit(EventType.ADD_TEST, name='a', body=lambda: None)

    result = ExecutionEngine(dispatcher.state, report=report).execute()

    assert result is report
    assert report.total == 1


def test_notifies_reporter(dispatcher: Dispatcher, mocker: 'MockerFixture') -> None:
    """Notify the reporter about every outcome."""
    reporter = mocker.Mock()
    dispatcher.emit(EventType.ADD_TEST, name='a', body=lambda: None)
    dispatcher.emit(EventType.AFTER_ALL, body=failing([], 'after_all', RuntimeError('x')))

    ExecutionEngine(dispatcher.state, reporter=reporter).execute()

    reporter.on_test_result.assert_called_once()
    result, error = reporter.on_test_result.call_args.args
    assert result.passed
    assert error is None

    reporter.on_hook_failure.assert_called_once()
    failure, error = reporter.on_hook_failure.call_args.args
    assert failure.hook == 'after_all'
    assert isinstance(error, HookError)


@pytest.mark.parametrize('error, message', (
    pytest.param(ValueError('bad'), 'ValueError: bad', id='message'),
    pytest.param(ValueError(), 'ValueError', id='no message'),
    pytest.param(AssertionMismatch('mismatch'), 'mismatch', id='mismatch'),
))
def test_describe_error(error: Exception, message: str) -> None:
    """Render failures with their type name unless self-describing."""
    assert ExecutionEngine.describe_error(error).splitlines()[0] == message


def test_registrations_during_run_are_ignored(dispatcher: Dispatcher) -> None:
    """Run only the entries present when the run starts."""
    log: list[str] = []

    def grow() -> None:
        log.append('K')
        dispatcher.emit(EventType.AFTER_EACH, body=grow)

    def outer() -> None:
        log.append('outer')
        dispatcher.emit(EventType.ADD_TEST, name='inner', body=recorder(log, 'inner'))
        dispatcher.emit(EventType.AFTER_ALL, body=recorder(log, 'after_all'))

    dispatcher.emit(EventType.AFTER_EACH, body=grow)
    dispatcher.emit(EventType.ADD_TEST, name='outer', body=outer)

    report = ExecutionEngine(dispatcher.state).execute()

    assert log == ['outer', 'K']
    assert [result.name for result in report.results] == ['outer']
