"""Adapters — the process-execution boundary.

Public re-exports for convenient access.
"""

from pipconverge.adapters.base import (
    CommandExecutionError,
    CommandResult,
    CommandRunner,
    CommandSpawnError,
    CommandTimeoutError,
    RunOptions,
)
from pipconverge.adapters.mock import MockRunner
from pipconverge.adapters.shell.command import ShellRunner

__all__ = [
    "CommandExecutionError",
    "CommandResult",
    "CommandRunner",
    "CommandSpawnError",
    "CommandTimeoutError",
    "MockRunner",
    "RunOptions",
    "ShellRunner",
]
