"""Script run orchestration.

A run goes through the following states:

- Load: read the script, build a sandbox, execute the script body;
- Before-all, Per-test, After-all: delegated to `ExecutionEngine`;
- Report: compute elapsed time and print the summary.

A script that fails to load produces a report with a load error and no
results; the summary is printed in every case.
"""

from logging import getLogger
from pathlib import Path
from time import perf_counter
from typing import TYPE_CHECKING

from loco_runner.errors import ScriptLoadError
from loco_runner.mocks import default_registry
from loco_runner.report import Report, Reporter
from loco_runner.settings import RunnerSettings
from loco_runner.state import Dispatcher

from .engine import ExecutionEngine
from .loader import DependencyLoader
from .sandbox import SandboxBuilder

if TYPE_CHECKING:
    from types import CodeType

if TYPE_CHECKING:
    from loco_runner.mocks import MockRegistry
    from loco_runner.state import ExecutionState

logger = getLogger(__name__)


class ScriptRunner:
    """Load and run test scripts.

    Attributes:
        settings: Runtime settings.
        registry: Mock registry shared by every script this runner loads.
        reporter: Output sink.
        dispatcher: Dispatcher owning the state of the current run.
    """

    def __init__(self, settings: RunnerSettings | None = None, *,
                 registry: 'MockRegistry | None' = None,
                 reporter: Reporter | None = None) -> None:
        """Initialize the runner.

        Args:
            settings: Runtime settings. Resolved from the environment by default.
            registry: Mock registry. The process-wide registry by default.
            reporter: Output sink. Built from settings by default.
        """
        self.settings = settings if settings is not None else RunnerSettings()
        self.registry = registry if registry is not None else default_registry
        self.reporter = reporter or Reporter(
            color=self.settings.color,
            tracebacks=self.settings.tracebacks,
        )
        self.dispatcher = Dispatcher()

    def resolve(self, path: Path | str) -> Path:
        """Resolve a script path against the working directory."""
        return Path.cwd() / path

    def compile_script(self, path: Path) -> 'CodeType':
        """Read and compile a script.

        Args:
            path: Absolute script path.

        Returns:
            Compiled module code.

        Raises:
            ScriptLoadError: If the file can not be read or has invalid syntax.
        """
        try:
            source = path.read_text(encoding='utf-8')

        except OSError as base:
            raise ScriptLoadError.from_os_error(base, path) from base

        try:
            return compile(source, str(path), 'exec', dont_inherit=True)

        except SyntaxError as base:
            raise ScriptLoadError.from_syntax_error(base) from base

    def load(self, path: Path | str) -> 'ExecutionState':
        """Execute a script body and collect its registrations.

        The execution state is reset first, so registrations from a
        previous script never leak into this one.

        Args:
            path: Script path, relative to the working directory.

        Returns:
            The execution state populated by the script.

        Raises:
            ScriptLoadError: If the script can not be read, compiled, or
                its top-level statements raise.
        """
        path = self.resolve(path)
        code = self.compile_script(path)

        state = self.dispatcher.reset_state()

        loader = DependencyLoader(
            self.registry,
            search_paths=(path.parent, *self.settings.search_paths),
        )
        context = SandboxBuilder(
            loader,
            self.dispatcher,
            unsafe_builtins=self.settings.unsafe_builtins,
        ).build()

        logger.debug('Execute script %s', path)
        try:
            exec(code, context)  # noqa: S102

        except Exception as base:
            raise ScriptLoadError.from_execution_error(base, path) from base

        self.dispatcher.close()
        logger.debug('Collected %d tests from %s', len(state.test_cases), path)

        return state

    def run(self, path: Path | str) -> Report:
        """Load a script, run its plan, and report the outcome.

        Args:
            path: Script path, relative to the working directory.

        Returns:
            The run report, including elapsed time in milliseconds.
        """
        report = Report()
        started = perf_counter()

        try:
            state = self.load(path)

        except ScriptLoadError as error:
            report.load_error = str(error)
            self.reporter.on_load_error(report.load_error, error)

        else:
            ExecutionEngine(state, reporter=self.reporter, report=report).execute()

        report.elapsed = (perf_counter() - started) * 1000
        self.reporter.on_run_complete(report)

        return report


def run_script(path: Path | str, settings: RunnerSettings | None = None, *,
               registry: 'MockRegistry | None' = None) -> Report:
    """Run a single script with a new runner.

    Args:
        path: Script path, relative to the working directory.
        settings: Runtime settings.
        registry: Mock registry. The process-wide registry by default.

    Returns:
        The run report.
    """
    return ScriptRunner(settings, registry=registry).run(path)
