"""Mock functions and process-wide dependency substitution.

This module provides:
- `MockFunction`, a recording callable wrapping an optional implementation;
- `MockRegistry`, a table of substitutes keyed by dependency identifier;
- `MockFactory`, the `mock` binding exposed to executed scripts.

Notes:
    Registry entries are process-wide and outlive a single script run.
    This is a shared mutable side channel: a host executing several
    scripts must either clear the registry between runs or give each
    run its own registry instance.
"""

from collections.abc import Mapping
from contextlib import contextmanager
from logging import getLogger
from sys import modules
from types import ModuleType
from typing import TYPE_CHECKING, Any, NamedTuple

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = getLogger(__name__)

_MISSING = object()


def _noop(*args: Any, **kwargs: Any) -> None:  # noqa: ANN401, ARG001
    """Default mock implementation."""
    return None


class MockCall(NamedTuple):
    """Arguments received by a single mock invocation."""

    args: tuple[Any, ...]
    kwargs: dict[str, Any]


class MockState:
    """Introspection record of a mock function."""

    def __init__(self) -> None:
        """Initialize an empty call log."""
        self.calls: list[MockCall] = []

    def __len__(self) -> int:
        return len(self.calls)


class MockFunction:
    """Callable that records every invocation before delegating.

    Each call appends the received arguments to `mock.calls`, then calls
    the wrapped implementation with the same arguments and returns its
    result unchanged, including awaitables.
    """

    def __init__(self, implementation: 'Callable[..., Any] | None' = None) -> None:
        """Initialize a mock function.

        Args:
            implementation: Callable to delegate to. Defaults to a no-op
                returning `None`.
        """
        self.implementation = implementation or _noop
        self.mock = MockState()

    def __call__(self, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
        """Record the call and delegate to the implementation."""
        self.mock.calls.append(MockCall(args, dict(kwargs)))

        return self.implementation(*args, **kwargs)

    def __repr__(self) -> str:
        """String representation."""
        name = getattr(self.implementation, '__qualname__', repr(self.implementation))
        return f'<mock function {name}>'

    @property
    def calls(self) -> list[MockCall]:
        """Recorded invocations in call order."""
        return self.mock.calls

    def mock_clear(self) -> None:
        """Forget all recorded invocations."""
        self.mock.calls.clear()


def create_mock_function(implementation: 'Callable[..., Any] | None' = None) -> MockFunction:
    """Create a recording mock function.

    Args:
        implementation: Optional callable to delegate to.

    Returns:
        A new `MockFunction` with an empty call log.
    """
    return MockFunction(implementation)


def as_module(identifier: str, substitute: Any) -> Any:  # noqa: ANN401
    """Expose a substitute through the import machinery.

    Mappings are wrapped into a module object so that statements like
    `from identifier import name` can read their items as attributes.
    Any other substitute is returned unchanged.

    Args:
        identifier: Dependency identifier the substitute is registered for.
        substitute: Registered substitute value.

    Returns:
        A module object for mappings, otherwise the substitute itself.
    """
    if isinstance(substitute, Mapping) and not isinstance(substitute, ModuleType):
        module = ModuleType(identifier)
        module.__dict__.update(substitute)
        return module

    return substitute


class MockRegistry:
    """Table of dependency substitutes.

    Once an identifier is registered, every dependency load for that
    identifier returns the substitute instead of the real module until
    the entry is removed.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._entries: dict[str, Any] = {}

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def identifiers(self) -> tuple[str, ...]:
        """Registered identifiers in registration order."""
        return tuple(self._entries)

    def register(self, identifier: str, substitute: Any) -> None:  # noqa: ANN401
        """Register a substitute for a dependency.

        Identifiers are not resolved: registering a name no module is
        known by is accepted and only takes effect if something loads it.

        Args:
            identifier: Dependency identifier (module name).
            substitute: Value to return instead of the real dependency.
        """
        logger.debug('Register substitute for %r', identifier)
        self._entries[identifier] = substitute

    def unregister(self, identifier: str) -> None:
        """Remove a substitute, if registered.

        Args:
            identifier: Dependency identifier (module name).
        """
        logger.debug('Unregister substitute for %r', identifier)
        self._entries.pop(identifier, None)

    def clear(self) -> None:
        """Remove all substitutes."""
        self._entries.clear()

    def get(self, identifier: str) -> Any:  # noqa: ANN401
        """Return the substitute registered for an identifier.

        Raises:
            KeyError: If nothing is registered for the identifier.
        """
        return self._entries[identifier]

    @contextmanager
    def installed(self) -> 'Iterator[None]':
        """Temporarily place substitutes into `sys.modules`.

        Used while importing real modules so that their own imports of a
        substituted dependency receive the substitute. Previous entries
        are restored on exit.
        """
        previous = {
            identifier: modules.get(identifier, _MISSING)
            for identifier in self._entries
        }

        for identifier, substitute in self._entries.items():
            modules[identifier] = as_module(identifier, substitute)

        try:
            yield

        finally:
            for identifier, module in previous.items():
                if module is _MISSING:
                    modules.pop(identifier, None)
                else:
                    modules[identifier] = module


#: Process-wide registry used when no registry is given explicitly.
default_registry = MockRegistry()


class MockFactory:
    """The `mock` binding exposed to executed scripts.

    Combines the mock function factory with dependency substitution
    against a registry.
    """

    def __init__(self, registry: MockRegistry) -> None:
        """Initialize the factory.

        Args:
            registry: Registry receiving module substitutes.
        """
        self.registry = registry

    def fn(self, implementation: 'Callable[..., Any] | None' = None) -> MockFunction:
        """Create a recording mock function."""
        return create_mock_function(implementation)

    def module(self, identifier: str, substitute: Any = _MISSING) -> Any:  # noqa: ANN401
        """Substitute a dependency for the rest of the process.

        Args:
            identifier: Dependency identifier (module name).
            substitute: Replacement value. Defaults to an empty mapping.

        Returns:
            The registered substitute.
        """
        if substitute is _MISSING:
            substitute = {}

        self.registry.register(identifier, substitute)

        return substitute

    def unmock(self, identifier: str) -> None:
        """Remove a dependency substitute."""
        self.registry.unregister(identifier)
