"""Runtime settings resolved from the environment.

Every field can be set through an environment variable prefixed with
`LOCO_RUNNER_`, for example `LOCO_RUNNER_COLOR=false`. Explicit keyword
arguments (as passed by the command line) take precedence.
"""

from pathlib import Path  # noqa: TC003
from typing import Literal

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from loco_runner.models import SettingsModel

type LogLevel = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


class RunnerSettings(SettingsModel):
    """Settings of a script run."""

    model_config = SettingsConfigDict(
        env_prefix='LOCO_RUNNER_',
    )

    color: bool = Field(
        default=True,
        description='Colorize pass and fail markers.',
    )

    tracebacks: bool = Field(
        default=False,
        description='Print full tracebacks below failures.',
    )

    unsafe_builtins: bool = Field(
        default=False,
        description=(
            'Expose all builtins to executed scripts instead of the whitelist. '
            'Gives scripts access to `open`, `eval` and similar functions.'
        ),
    )

    log_level: LogLevel = Field(
        default='WARNING',
        description='Level of the `loco_runner` loggers.',
    )

    search_paths: list[Path] = Field(
        default_factory=list,
        description='Extra directories searched for real dependencies.',
    )
