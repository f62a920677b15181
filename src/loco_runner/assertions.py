"""Assertion library exposed to scripts as `expect`.

Every matcher either returns `None` or raises `AssertionMismatch`.
Failures are reported through exceptions because the execution engine
isolates test failures by catching what a test body raises.
"""

from typing import TYPE_CHECKING

from loco_runner.errors import AssertionMismatch
from loco_runner.mocks import MockFunction
from loco_runner.values import deep_equal, is_identical

if TYPE_CHECKING:
    from loco_runner.values import RuntimeValue


class Expectation:
    """Set of matchers bound to an actual value.

    Matchers are available in snake_case and camelCase spelling.
    """

    def __init__(self, actual: 'RuntimeValue') -> None:
        """Bind the expectation to a value.

        Args:
            actual: Value produced by the script under test.
        """
        self.actual = actual

    def to_be(self, expected: 'RuntimeValue') -> None:
        """Require the actual value to be identical to the expected one.

        Identity means the same object, or scalars of the exact same type
        with equal values. No implicit coercion takes place, so `1` is not
        `1.0` and two equal dictionaries are not identical.

        Args:
            expected: Expected value.

        Raises:
            AssertionMismatch: If the values are not identical.
        """
        if not is_identical(self.actual, expected):
            raise AssertionMismatch(
                f'{self.actual!r} is not identical to {expected!r}',
                expected=expected,
                received=self.actual,
            )

    def to_equal(self, expected: 'RuntimeValue') -> None:
        """Require the actual value to be structurally equal to the expected one.

        Args:
            expected: Expected value.

        Raises:
            AssertionMismatch: If the values are not deeply equal.
        """
        if not deep_equal(self.actual, expected):
            raise AssertionMismatch(
                f'{self.actual!r} is not equal to {expected!r}',
                expected=expected,
                received=self.actual,
            )

    def to_have_been_called(self) -> None:
        """Require a mock function to have been called at least once.

        Raises:
            AssertionMismatch: If the mock was never called or the actual
                value is not a mock function.
        """
        mock = self._ensure_mock()

        if not mock.calls:
            raise AssertionMismatch(
                f'expected {mock!r} to be called, but it was never called',
                expected='at least 1 call',
                received=0,
            )

    def to_have_been_called_times(self, times: int) -> None:
        """Require a mock function to have been called an exact number of times.

        Args:
            times: Expected number of calls.

        Raises:
            AssertionMismatch: If the call count differs or the actual
                value is not a mock function.
        """
        mock = self._ensure_mock()
        count = len(mock.calls)

        if count != times:
            raise AssertionMismatch(
                f'expected {mock!r} to be called {times} times, but it was called {count} times',
                expected=times,
                received=count,
            )

    def to_have_been_called_with(self, *args: 'RuntimeValue', **kwargs: 'RuntimeValue') -> None:
        """Require every call of a mock function to receive the given arguments.

        A mock that was never called does not satisfy this matcher.

        Args:
            *args: Expected positional arguments.
            **kwargs: Expected keyword arguments.

        Raises:
            AssertionMismatch: If any recorded call differs, no call was
                recorded, or the actual value is not a mock function.
        """
        mock = self._ensure_mock()
        expected = {'args': list(args), 'kwargs': kwargs}
        received = [
            {'args': list(call.args), 'kwargs': call.kwargs}
            for call in mock.calls
        ]

        if not received:
            raise AssertionMismatch(
                f'expected {mock!r} to be called with {_format_args(args, kwargs)}, '
                'but it was never called',
                expected=expected,
                received=received,
            )

        for call in mock.calls:
            if not (deep_equal(call.args, args) and deep_equal(call.kwargs, kwargs)):
                raise AssertionMismatch(
                    f'expected {mock!r} to be called with {_format_args(args, kwargs)}, '
                    f'but it was called with {_format_args(call.args, call.kwargs)}',
                    expected=expected,
                    received=received,
                )

    def _ensure_mock(self) -> MockFunction:
        """Return the actual value if it is a mock function."""
        if not isinstance(self.actual, MockFunction):
            raise AssertionMismatch(
                f'{self.actual!r} is not a mock function',
                expected='mock function',
                received=self.actual,
            )

        return self.actual

    toBe = to_be  # noqa: N815
    toEqual = to_equal  # noqa: N815
    toHaveBeenCalled = to_have_been_called  # noqa: N815
    toHaveBeenCalledTimes = to_have_been_called_times  # noqa: N815
    toHaveBeenCalledWith = to_have_been_called_with  # noqa: N815


def _format_args(args: tuple, kwargs: dict) -> str:
    """Render call arguments the way they would be written in a call."""
    return '({})'.format(', '.join((
        *(repr(arg) for arg in args),
        *(f'{key}={value!r}' for key, value in kwargs.items()),
    )))


def expect(actual: 'RuntimeValue') -> Expectation:
    """Create an expectation for a value.

    Args:
        actual: Value produced by the script under test.

    Returns:
        An `Expectation` exposing the matchers.
    """
    return Expectation(actual)
