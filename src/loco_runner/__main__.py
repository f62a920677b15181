"""Command-line entry point for loco-runner.

The command line is a thin host around `ScriptRunner`: it resolves
settings, configures logging, runs one script and maps the report to an
exit code.
"""

from logging import basicConfig, getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from click import Choice, argument, group, option, pass_context
from click import Path as PathParam

from loco_runner.core import ScriptRunner
from loco_runner.settings import RunnerSettings

if TYPE_CHECKING:
    from click import Context

#: Exit code of a run with failures.
EXIT_FAILURE = 1

LOG_FORMAT = '%(levelname)s %(name)s: %(message)s'

ScriptPath = PathParam(
    dir_okay=False,
    path_type=Path,
)


@group(help='Command-line utilities for loco-runner.')
def cli() -> None:
    """Root CLI group for loco-runner tools."""
    return None


@cli.command(
    name='run',
    help='Execute a test script and report its outcomes.',
)
@argument('script', type=ScriptPath)
@option(
    '--color/--no-color',
    default=None,
    help='Colorize pass and fail markers.',
)
@option(
    '--tracebacks',
    is_flag=True,
    default=None,
    help='Print full tracebacks below failures.',
)
@option(
    '--unsafe-builtins',
    is_flag=True,
    default=None,
    help=(
        'Expose all builtins to the script instead of the whitelist. '
        'Only use with trusted scripts.'
    ),
)
@option(
    '--log-level',
    type=Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
    default=None,
    help='Level of the loco-runner loggers.',
)
@pass_context
def run_command(ctx: 'Context', script: Path, **overrides: object) -> None:
    """Run a script and exit with a non-zero code on failures.

    Args:
        ctx: Click context.
        script: Script path.
        **overrides: Command-line values overriding environment settings.
    """
    options = {key: value for key, value in overrides.items() if value is not None}
    if 'log_level' in options:
        options['log_level'] = str(options['log_level']).upper()

    settings = RunnerSettings(**options)

    basicConfig(format=LOG_FORMAT)
    getLogger('loco_runner').setLevel(settings.log_level)

    report = ScriptRunner(settings).run(script)

    if not report.success:
        ctx.exit(EXIT_FAILURE)


if __name__ == '__main__':
    cli()
