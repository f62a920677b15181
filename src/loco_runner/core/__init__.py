"""Core runtime: dependency loading, sandboxing, scheduling.

The primary public entry point is `ScriptRunner`, which loads a script
into a sandbox, runs the collected plan with `ExecutionEngine` and
returns the resulting report.
"""

from .engine import ExecutionEngine
from .loader import DependencyLoader
from .runner import ScriptRunner, run_script
from .sandbox import Console, SandboxBuilder

__all__ = (
    'Console',
    'DependencyLoader',
    'ExecutionEngine',
    'SandboxBuilder',
    'ScriptRunner',
    'run_script',
)
