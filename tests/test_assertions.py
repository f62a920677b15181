"""Tests for the assertion library."""

import pytest

from loco_runner.assertions import expect
from loco_runner.errors import AssertionMismatch
from loco_runner.mocks import create_mock_function


def test_to_be_passes_on_identical_values() -> None:
    """Accept identical scalars and the same object."""
    value = {'a': 1}

    assert expect(1).to_be(1) is None
    assert expect('ok').toBe('ok') is None
    assert expect(value).to_be(value) is None


@pytest.mark.parametrize('actual, expected', (
    pytest.param({'a': 1}, {'a': 1}, id='structural only'),
    pytest.param(1, 1.0, id='no coercion'),
    pytest.param(1, 2, id='different values'),
))
def test_to_be_fails(actual: object, expected: object) -> None:
    """Reject values that are not identical."""
    with pytest.raises(AssertionMismatch, match=r'is not identical to') as info:
        expect(actual).to_be(expected)

    assert info.value.expected == expected
    assert info.value.received == actual


def test_to_be_message_names_both_values() -> None:
    """Mention the received and expected values in the message."""
    with pytest.raises(AssertionMismatch, match=r'^1 is not identical to 2'):
        expect(1).to_be(2)


def test_to_equal() -> None:
    """Compare composite values structurally."""
    assert expect({'a': 1}).to_equal({'a': 1}) is None
    assert expect([{'a': (1, 2)}]).toEqual([{'a': (1, 2)}]) is None

    with pytest.raises(AssertionMismatch, match=r"^\{'a': 1\} is not equal to \{'a': 2\}"):
        expect({'a': 1}).to_equal({'a': 2})


def test_to_have_been_called_times() -> None:
    """Count recorded calls of a mock function."""
    tracked = create_mock_function()
    tracked(1)
    tracked(2)
    tracked(3)

    assert len(tracked.calls) == 3
    assert expect(tracked).to_have_been_called_times(3) is None
    assert expect(tracked).toHaveBeenCalledTimes(3) is None

    with pytest.raises(AssertionMismatch, match=r'to be called 2 times, but it was called 3 times') as info:
        expect(tracked).to_have_been_called_times(2)

    assert info.value.expected == 2
    assert info.value.received == 3


def test_to_have_been_called() -> None:
    """Require at least one call."""
    tracked = create_mock_function()

    with pytest.raises(AssertionMismatch, match=r'never called'):
        expect(tracked).to_have_been_called()

    tracked()
    assert expect(tracked).toHaveBeenCalled() is None


def test_to_have_been_called_with_all_calls() -> None:
    """Require every recorded call to match the expected arguments."""
    add = create_mock_function(lambda a, b: a + b)
    add(3, 7)
    add(3, 7)

    assert expect(add).to_have_been_called_with(3, 7) is None
    assert expect(add).toHaveBeenCalledWith(3, 7) is None

    add(1, 2)
    with pytest.raises(AssertionMismatch, match=r'but it was called with \(1, 2\)'):
        expect(add).to_have_been_called_with(3, 7)


def test_to_have_been_called_with_keywords() -> None:
    """Compare keyword arguments as well."""
    send = create_mock_function()
    send('hello', retries=2)

    assert expect(send).to_have_been_called_with('hello', retries=2) is None

    with pytest.raises(AssertionMismatch, match=r"called with \('hello', retries=3\)"):
        expect(send).to_have_been_called_with('hello', retries=3)


def test_to_have_been_called_with_without_calls() -> None:
    """Reject a mock that was never called."""
    with pytest.raises(AssertionMismatch, match=r'but it was never called'):
        expect(create_mock_function()).to_have_been_called_with()


@pytest.mark.parametrize('matcher, args', (
    pytest.param('to_have_been_called', (), id='called'),
    pytest.param('to_have_been_called_times', (1,), id='times'),
    pytest.param('to_have_been_called_with', (1,), id='with'),
))
def test_call_matchers_require_mock(matcher: str, args: tuple) -> None:
    """Reject call matchers on regular callables."""
    with pytest.raises(AssertionMismatch, match=r'is not a mock function'):
        getattr(expect(print), matcher)(*args)
