"""Tests configurations and fixtures."""

import sys
from typing import TYPE_CHECKING

import pytest

from loco_runner.core import DependencyLoader, ScriptRunner
from loco_runner.mocks import MockRegistry
from loco_runner.report import Reporter
from loco_runner.settings import RunnerSettings
from loco_runner.state import Dispatcher

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


@pytest.fixture
def registry() -> MockRegistry:
    """Provide an isolated mock registry.

    Tests never touch the process-wide registry so that substitutes
    registered by one test do not leak into another.
    """
    return MockRegistry()


@pytest.fixture
def dispatcher() -> Dispatcher:
    """Provide a dispatcher with an empty execution state."""
    return Dispatcher()


@pytest.fixture
def loader(registry: MockRegistry, tmp_path: 'Path') -> DependencyLoader:
    """Provide a dependency loader searching the temporary directory first."""
    return DependencyLoader(registry, search_paths=(tmp_path,))


@pytest.fixture
def runner(registry: MockRegistry) -> ScriptRunner:
    """Provide a script runner with plain output and an isolated registry."""
    settings = RunnerSettings(color=False)

    return ScriptRunner(
        settings,
        registry=registry,
        reporter=Reporter(color=False),
    )


@pytest.fixture
def write_script(tmp_path: 'Path') -> 'Callable[..., Path]':
    """Provide a factory writing files into the temporary directory.

    Returns a callable accepting the content and an optional file name
    and returning the absolute path of the written file.
    """
    def write(content: str, name: str = 'script.py') -> 'Path':
        path = tmp_path / name
        path.write_text(content, encoding='utf-8')
        return path

    return write


@pytest.fixture(autouse=True)
def isolate_modules(tmp_path: 'Path') -> 'Iterator[None]':
    """Forget modules imported from the temporary directory after a test."""
    yield

    root = str(tmp_path)
    for name, module in list(sys.modules.items()):
        if str(getattr(module, '__file__', None) or '').startswith(root):
            sys.modules.pop(name, None)
