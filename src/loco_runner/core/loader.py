"""Dependency loading for executed scripts.

The loader is the only way an executed script can obtain modules. It
consults the mock registry first and falls back to the regular import
system, and it is installed as the script's `__import__` so that plain
`import` statements follow the same rules.
"""

from contextlib import contextmanager, suppress
from importlib import import_module
from logging import getLogger
from sys import path as sys_path
from types import ModuleType
from typing import TYPE_CHECKING, Any

from loco_runner.mocks import as_module

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence
    from pathlib import Path

if TYPE_CHECKING:
    from loco_runner.mocks import MockRegistry

logger = getLogger(__name__)


class DependencyLoader:
    """Resolve dependency identifiers for a script.

    Attributes:
        registry: Registry consulted before real resolution.
        search_paths: Directories searched first when importing real
            modules, typically the directory of the executed script.
    """

    def __init__(self, registry: 'MockRegistry', *,
                 search_paths: 'Sequence[Path | str]' = ()) -> None:
        """Initialize the loader.

        Args:
            registry: Registry of dependency substitutes.
            search_paths: Directories to search before `sys.path`.
        """
        self.registry = registry
        self.search_paths = tuple(str(item) for item in search_paths)

    def load(self, identifier: str) -> Any:  # noqa: ANN401
        """Load a dependency by identifier.

        Args:
            identifier: Absolute module name.

        Returns:
            The registered substitute if one exists, otherwise the real module.

        Raises:
            ImportError: If no substitute is registered and the real
                module can not be resolved.
        """
        if identifier in self.registry:
            logger.debug('Load substitute for %r', identifier)
            return self.registry.get(identifier)

        return self.import_real(identifier)

    def import_real(self, identifier: str) -> 'ModuleType':
        """Import a real module with substitutes visible to its own imports.

        Args:
            identifier: Absolute module name.

        Returns:
            The imported module.

        Raises:
            ImportError: If the module can not be resolved.
        """
        logger.debug('Import real module %r', identifier)

        with self.registry.installed(), self.extended_path():
            return import_module(identifier)

    def import_hook(self, name: str,
                    globals: 'Mapping[str, Any] | None' = None,  # noqa: A002
                    locals: 'Mapping[str, Any] | None' = None,  # noqa: A002
                    fromlist: 'Sequence[str] | None' = (),
                    level: int = 0) -> Any:  # noqa: ANN401
        """Replacement for `__import__` inside the sandbox.

        Follows the `__import__` protocol: without a `fromlist` the top
        level package is returned, otherwise the named module itself.
        Substituted submodules are bound as attributes on copies of
        their parent packages, so both `import pkg.sub` and
        `from pkg import sub` see the substitute.

        Args:
            name: Module name from the import statement.
            globals: Importing namespace (unused).
            locals: Importing local namespace (unused).
            fromlist: Names requested by a `from ... import` statement.
            level: Relative import level.

        Returns:
            A module object or a substitute.

        Raises:
            ImportError: For relative imports or unresolvable modules.
        """
        if level:
            raise ImportError('Relative imports are not supported in scripts')

        module = self.resolve(name)

        if fromlist:
            substitutes = {}
            for item in fromlist:
                identifier = f'{name}.{item}'
                if identifier in self.registry:
                    substitutes[item] = as_module(identifier, self.registry.get(identifier))
                elif item != '*' and hasattr(module, '__path__') and not hasattr(module, item):
                    with suppress(ModuleNotFoundError):
                        self.import_real(identifier)

            if substitutes:
                return self.with_attributes(module, name, substitutes)
            return module

        parts = name.split('.')
        substituted = name in self.registry
        for depth in range(len(parts) - 1, 0, -1):
            parent_name = '.'.join(parts[:depth])
            parent = self.resolve(parent_name)
            if substituted:
                parent = self.with_attributes(parent, parent_name, {parts[depth]: module})
            substituted = substituted or parent_name in self.registry
            module = parent

        return module

    def resolve(self, name: str) -> Any:  # noqa: ANN401
        """Resolve a module name used in an import statement.

        Registered names resolve to their substitute. A package that can
        not be found but has substituted submodules resolves to an empty
        module, so that a fake `pkg.sub` can be imported without `pkg`.

        Args:
            name: Absolute module name.

        Returns:
            A module object or a substitute.

        Raises:
            ImportError: If the module can not be resolved.
        """
        if name in self.registry:
            logger.debug('Import substitute for %r', name)
            return as_module(name, self.registry.get(name))

        try:
            return self.import_real(name)

        except ModuleNotFoundError as base:
            prefix = f'{name}.'
            if base.name != name or not any(
                identifier.startswith(prefix)
                for identifier in self.registry.identifiers
            ):
                raise

        logger.debug('Create empty package %r for substituted submodules', name)

        return ModuleType(name)

    @staticmethod
    def with_attributes(module: Any, name: str, attributes: 'Mapping[str, Any]') -> 'ModuleType':  # noqa: ANN401
        """Copy a module and bind extra attributes on the copy.

        The original module is left untouched, so substitutes bound to a
        real package stay visible to the importing script only.

        Args:
            module: Module or substitute to copy.
            name: Module name of the copy.
            attributes: Attributes to set on the copy.

        Returns:
            A new module object.
        """
        copy = ModuleType(name)
        copy.__dict__.update(getattr(module, '__dict__', {}))
        copy.__dict__.update(attributes)

        return copy

    @contextmanager
    def extended_path(self) -> 'Iterator[None]':
        """Temporarily prepend the search paths to `sys.path`."""
        added = [item for item in self.search_paths if item not in sys_path]
        sys_path[:0] = added

        try:
            yield

        finally:
            for item in added:
                if item in sys_path:
                    sys_path.remove(item)
