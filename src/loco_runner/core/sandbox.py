"""Namespace construction for executed scripts.

A sandbox is the globals mapping a script is executed with. It contains
only the test primitives, the assertion and mock entry points, the
dependency loader and a console, plus a whitelisted `__builtins__`.

Notes:
    This is namespace isolation, not a security boundary. Objects
    reachable from the exposed bindings can still be introspected by
    the script. Intended for trusted test scripts.
"""

import builtins
from inspect import isawaitable
from logging import getLogger
from typing import TYPE_CHECKING, Any

from click import echo

from loco_runner.assertions import expect
from loco_runner.errors import DispatchError
from loco_runner.mocks import MockFactory
from loco_runner.state import EventType

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import IO

if TYPE_CHECKING:
    from loco_runner.core.loader import DependencyLoader
    from loco_runner.state import Body, Dispatcher

logger = getLogger(__name__)

#: Builtins available to scripts, together with every builtin exception
#: class. Notably absent: `open`, `eval`, `exec`, `compile`, `input`,
#: `globals`, `locals`, `vars`, `breakpoint`.
SAFE_BUILTINS = frozenset({
    '__build_class__',
    'abs', 'aiter', 'all', 'anext', 'any', 'ascii', 'bin', 'bool',
    'bytearray', 'bytes', 'callable', 'chr', 'classmethod', 'complex',
    'delattr', 'dict', 'divmod', 'enumerate', 'filter', 'float', 'format',
    'frozenset', 'getattr', 'hasattr', 'hash', 'hex', 'id', 'int',
    'isinstance', 'issubclass', 'iter', 'len', 'list', 'map', 'max', 'min',
    'next', 'object', 'oct', 'ord', 'pow', 'property', 'range', 'repr',
    'reversed', 'round', 'set', 'setattr', 'slice', 'sorted', 'staticmethod',
    'str', 'sum', 'super', 'tuple', 'type', 'zip',
    'Ellipsis', 'NotImplemented',
}) | frozenset(
    name for name, value in vars(builtins).items()
    if isinstance(value, type) and issubclass(value, BaseException)
)

#: camelCase spellings bound to the same primitives.
PRIMITIVE_ALIASES = {
    'beforeAll': 'before_all',
    'beforeEach': 'before_each',
    'afterEach': 'after_each',
    'afterAll': 'after_all',
}

#: Value of `__name__` inside executed scripts.
SCRIPT_MODULE_NAME = '__script__'


class Console:
    """Console-like output sink exposed to scripts."""

    def log(self, *values: Any, sep: str = ' ') -> None:  # noqa: ANN401
        """Write values to standard output."""
        echo(sep.join(str(value) for value in values))

    info = log
    debug = log

    def warn(self, *values: Any, sep: str = ' ') -> None:  # noqa: ANN401
        """Write values to standard error."""
        echo(sep.join(str(value) for value in values), err=True)

    error = warn

    def print(self, *values: Any, sep: str | None = ' ', end: str | None = '\n',  # noqa: ANN401
              file: 'IO[str] | None' = None, flush: bool = False) -> None:  # noqa: ARG002
        """Replacement for the `print` builtin.

        Writes to standard output unless `file` is given. Output is
        always flushed, so `flush` has no additional effect.
        """
        sep = ' ' if sep is None else sep
        end = '\n' if end is None else end

        echo(sep.join(str(value) for value in values) + end, file=file, nl=False)


class SandboxBuilder:
    """Build script namespaces bound to a dispatcher and a loader.

    Building a namespace has no effect on the execution state; only
    calling the primitives it contains dispatches events.
    """

    def __init__(self, loader: 'DependencyLoader', dispatcher: 'Dispatcher', *,
                 console: Console | None = None,
                 unsafe_builtins: bool = False) -> None:
        """Initialize the builder.

        Args:
            loader: Dependency loader exposed to scripts.
            dispatcher: Dispatcher receiving registration events.
            console: Output sink. A new `Console` is created by default.
            unsafe_builtins: Whether to expose all builtins instead of
                the whitelist.
        """
        self.loader = loader
        self.dispatcher = dispatcher
        self.console = console or Console()
        self.unsafe_builtins = unsafe_builtins

    def build_builtins(self) -> dict[str, Any]:
        """Build the `__builtins__` mapping for a script."""
        if self.unsafe_builtins:
            namespace = dict(vars(builtins))
        else:
            namespace = {
                name: getattr(builtins, name)
                for name in SAFE_BUILTINS
            }

        namespace['__import__'] = self.loader.import_hook
        namespace['print'] = self.console.print

        return namespace

    def build(self, name: str = SCRIPT_MODULE_NAME) -> dict[str, Any]:
        """Build a fresh script namespace.

        Args:
            name: Value of `__name__` inside the script.

        Returns:
            Globals mapping to execute the script with.
        """
        context: dict[str, Any] = {
            '__builtins__': self.build_builtins(),
            '__name__': name,
            'test': self.test,
            'describe': self.describe,
            'before_all': self.hook(EventType.BEFORE_ALL),
            'before_each': self.hook(EventType.BEFORE_EACH),
            'after_each': self.hook(EventType.AFTER_EACH),
            'after_all': self.hook(EventType.AFTER_ALL),
            'expect': expect,
            'mock': MockFactory(self.loader.registry),
            'load_dependency': self.loader.load,
            'console': self.console,
        }

        for alias, primitive in PRIMITIVE_ALIASES.items():
            context[alias] = context[primitive]

        return context

    def test(self, name: str, body: 'Body | None' = None) -> 'Any':  # noqa: ANN401
        """Register a test case.

        Usable as `test(name, body)` or as a decorator `@test(name)`.

        Args:
            name: Test title.
            body: Zero-argument callable, possibly asynchronous.

        Returns:
            The body, or a decorator when no body is given.
        """
        if body is None:
            def decorator(func: 'Body') -> 'Body':
                self.dispatcher.emit(EventType.ADD_TEST, name=name, body=func)
                return func
            return decorator

        self.dispatcher.emit(EventType.ADD_TEST, name=name, body=body)

        return body

    def describe(self, name: str, body: 'Callable[[], None] | None' = None) -> 'Any':  # noqa: ANN401
        """Group registrations under a name.

        The body is invoked immediately so that it can register nested
        tests and hooks; it is never queued itself. Usable as
        `describe(name, body)` or as a decorator `@describe(name)`.

        Args:
            name: Group name prefixed to nested test names.
            body: Synchronous zero-argument callable.

        Returns:
            The body, or a decorator when no body is given.

        Raises:
            DispatchError: If the body returns an awaitable.
        """
        if body is None:
            def decorator(func: 'Callable[[], None]') -> 'Callable[[], None]':
                return self.describe(name, func)
            return decorator

        self.dispatcher.emit(EventType.START_DESCRIBE, name=name)

        try:
            result = body()
            if isawaitable(result):
                if close := getattr(result, 'close', None):
                    close()
                raise DispatchError(f'Describe body of {name!r} must be synchronous')

        finally:
            self.dispatcher.emit(EventType.FINISH_DESCRIBE)

        return body

    def hook(self, type_: EventType) -> 'Callable[[Body], Body]':
        """Create a hook declaration primitive.

        Args:
            type_: Hook event type.

        Returns:
            A primitive registering its argument and returning it, so it
            also works as a decorator.
        """
        def register(body: 'Body') -> 'Body':
            self.dispatcher.emit(type_, body=body)
            return body

        register.__name__ = str(type_)

        return register
