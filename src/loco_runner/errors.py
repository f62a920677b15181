"""Core exception hierarchy.

This module defines the error types used across the runner to report
script loading failures, malformed registrations, lifecycle hook
failures, and violated expectations in a structured way.
"""

from os import linesep
from typing import TYPE_CHECKING, Any, TypedDict

from yaml import dump

from loco_runner.values import displayable

if TYPE_CHECKING:
    from pathlib import Path
    from typing import Self

FORMAT_FILENAME = '<script>'
FORMAT_INDENT = 4

SNIPPET_INDENT = 2


class ErrorContext(TypedDict, total=False):
    """Container describing contextual information for error formatting.

    All fields are optional; the formatter adapts output based on
    provided values.
    """

    #: Name of the script file where the error occurred.
    filename: str | None

    #: Line number in the script file (zero-based).
    line_num: int | None
    #: Column number in the script file (zero-based).
    column_num: int | None

    #: Full name of the test case being executed.
    test_name: str | None
    #: Lifecycle hook kind, for example `before_each`.
    hook: str | None
    #: Position of the hook within its kind.
    hook_num: int | None

    #: Values rendered as a snippet below the message.
    values: dict[str, Any] | None


class ErrorFormatter:
    """Utility class for formatting runner errors.

    Produces human-readable messages with an optional location line
    and a YAML snippet of the values involved in the failure.
    """

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Format an error message using contextual information.

        Args:
            message: Base human-readable error message.
            context: Optional error context with location and values.

        Returns:
            A fully formatted error message suitable for display.
        """
        if not context:
            return message

        location = cls.get_location_string(context, indent=FORMAT_INDENT)
        snippet = cls.get_snippet_string(context, indent=FORMAT_INDENT)

        for part in (location, snippet):
            if part:
                message += f'{linesep}{part}'

        return message

    @classmethod
    def get_location_string(cls, context: ErrorContext, *,
                            indent: str | int | None = None) -> str:
        """Format source and execution location information.

        Args:
            context: Error context containing location metadata.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A location string with filename, line, column, hook and test
            when available, otherwise an empty string.
        """
        indent = cls._ensure_indent(indent)
        lines = []

        filename = context.get('filename')
        if filename or context.get('line_num') is not None:
            line = f'{indent}in "{filename or FORMAT_FILENAME}"'
            if (line_num := context.get('line_num')) is not None:
                line += f', line {line_num + 1}'
                if (column_num := context.get('column_num')) is not None:
                    line += f', column {column_num + 1}'
            lines.append(line)

        if hook := context.get('hook'):
            line = f'{indent}in {hook} hook'
            if (hook_num := context.get('hook_num')) is not None:
                line += f' #{hook_num + 1}'
            if test_name := context.get('test_name'):
                line += f' of "{test_name}"'
            lines.append(line)

        return linesep.join(lines)

    @classmethod
    def get_snippet_string(cls, context: ErrorContext, *,
                           indent: str | int | None = None) -> str:
        """Render context values as an indented YAML snippet.

        Args:
            context: Error context containing values.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted multi-line snippet, or an empty string.
        """
        values = context.get('values')
        if not values:
            return ''

        data = dump(
            displayable(values),
            indent=SNIPPET_INDENT,
            sort_keys=False,
            allow_unicode=True,
        )

        return cls._make_indent(data, cls._ensure_indent(indent))

    @staticmethod
    def _make_indent(value: str, indent: str) -> str:
        """Apply indentation to a multi-line string.

        Empty or whitespace-only lines are omitted.
        """
        return linesep.join(
            f'{indent}{line}'
            for line in value.splitlines()
            if line.strip()
        )

    @staticmethod
    def _ensure_indent(indent: str | int | None = None) -> str:
        """Normalize indentation input."""
        if isinstance(indent, int) and indent > 0:
            return ' ' * indent

        if isinstance(indent, str):
            return indent

        return ''


class RunnerError(Exception, ErrorFormatter):
    """Base exception for all loco-runner errors.

    All custom exceptions raised by the library inherit from this class
    to allow unified error handling by callers.
    """

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize an error.

        Args:
            message: Human-readable error description.
            context: Error context with location and values.
        """
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return self.format(self.message, self.context)


class DispatchError(RunnerError):
    """Error raised for malformed or unknown registration events."""


class ScriptLoadError(RunnerError):
    """Error raised when a script can not be loaded.

    Covers unreadable files, syntax errors, and exceptions raised by
    top-level script statements. It is fatal to the run: no test can be
    registered from a script that failed to load.
    """

    @classmethod
    def from_os_error(cls, error: OSError, path: 'Path') -> 'Self':
        """Create a load error for an unreadable script file.

        Args:
            error: Exception raised while reading the file.
            path: Path of the script.

        Returns:
            ScriptLoadError describing the read failure.
        """
        reason = error.strerror or type(error).__name__

        return cls(
            f'Can not read script: {reason}',
            context=ErrorContext(filename=str(path)),
        )

    @classmethod
    def from_syntax_error(cls, error: SyntaxError) -> 'Self':
        """Create a load error from a compilation failure.

        Args:
            error: Exception raised by `compile`.

        Returns:
            ScriptLoadError with the position of the invalid syntax.
        """
        error_context = ErrorContext(filename=error.filename)

        if error.lineno is not None:
            error_context['line_num'] = error.lineno - 1
            if error.offset is not None:
                error_context['column_num'] = max(error.offset - 1, 0)

        return cls(f'Invalid syntax: {error.msg}', context=error_context)

    @classmethod
    def from_execution_error(cls, error: Exception, path: 'Path') -> 'Self':
        """Create a load error from an exception raised by script statements.

        Args:
            error: Exception raised while executing the script body.
            path: Path of the script.

        Returns:
            ScriptLoadError naming the original exception.
        """
        error_context = ErrorContext(filename=str(path))

        frame = error.__traceback__
        while frame is not None:
            if frame.tb_frame.f_code.co_filename == str(path):
                error_context['line_num'] = frame.tb_lineno - 1
            frame = frame.tb_next

        return cls(f'Script execution failed: {error!r}', context=error_context)


class HookError(RunnerError):
    """Error raised when a lifecycle hook fails.

    Hooks scoped to a test (`before_each`, `after_each`) fail that test;
    run-level hooks (`before_all`, `after_all`) are reported against the
    whole run. Neither prevents the remaining tests from running.
    """

    def __init__(self, message: str, *, hook: str,
                 context: ErrorContext | None = None) -> None:
        """Initialize a hook error.

        Args:
            message: Human-readable error description.
            hook: Lifecycle hook kind.
            context: Error context with hook position and test name.
        """
        self.hook = hook

        super().__init__(message, context=ErrorContext(hook=hook, **(context or {})))

    @classmethod
    def from_error(cls, error: Exception, *, hook: str, hook_num: int,
                   test_name: str | None = None) -> 'Self':
        """Wrap an exception raised by a hook.

        Args:
            error: Exception raised by the hook or its awaitable.
            hook: Lifecycle hook kind.
            hook_num: Position of the hook within its kind.
            test_name: Name of the wrapped test, for per-test hooks.

        Returns:
            HookError describing the failure.
        """
        return cls(
            f'Hook failed: {error}' if isinstance(error, RunnerError) else f'Hook failed: {error!r}',
            hook=hook,
            context=ErrorContext(hook_num=hook_num, test_name=test_name),
        )


class AssertionMismatch(RunnerError, AssertionError):
    """Error raised when an expectation is violated.

    The expected and received values are kept on the instance and
    rendered below the message for display.
    """

    def __init__(self, message: str, *,
                 expected: Any = None,  # noqa: ANN401
                 received: Any = None,  # noqa: ANN401
                 context: ErrorContext | None = None) -> None:
        """Initialize an assertion mismatch.

        Args:
            message: Human-readable description of the violation.
            expected: Value the expectation required.
            received: Value that was actually observed.
            context: Optional additional error context.
        """
        self.expected = expected
        self.received = received

        values = {'expected': expected, 'received': received}

        super().__init__(message, context=ErrorContext(values=values, **(context or {})))
