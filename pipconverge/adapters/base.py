"""
Runner base — the protocol contract between the engine and processes.

The convergence engine never calls subprocess directly. Every
external command (pip freeze, the candidate lookup, pip install)
goes through a CommandRunner so tests can swap in a MockRunner.

Two entry points:
    run()         returns a CommandResult for any exit status.
    run_strict()  raises CommandExecutionError on a non-zero exit.

Both raise CommandSpawnError / CommandTimeoutError when the process
could not be started or did not finish in time.
"""

from __future__ import annotations

import shlex
from abc import ABC, abstractmethod

from pydantic import BaseModel, Field


class RunOptions(BaseModel):
    """Execution context for a single command."""

    timeout: int | None = None
    user: str | None = None
    group: str | None = None
    environment: dict[str, str] = Field(default_factory=dict)


class CommandResult(BaseModel):
    """Captured outcome of a finished process."""

    command: list[str]
    stdout: str = ""
    stderr: str = ""
    exit_status: int = 0
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.exit_status == 0

    @property
    def command_line(self) -> str:
        return shlex.join(self.command)


class CommandExecutionError(Exception):
    """A command failed: non-zero exit, spawn failure or timeout."""

    def __init__(self, message: str, result: CommandResult | None = None):
        super().__init__(message)
        self.result = result


class CommandSpawnError(CommandExecutionError):
    """The process could not be started at all."""


class CommandTimeoutError(CommandExecutionError):
    """The process exceeded its timeout and was killed."""


class CommandRunner(ABC):
    """Abstract base class for process execution.

    To create a new runner:
        1. Subclass CommandRunner
        2. Implement name, is_available, run
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The runner identifier (e.g., 'shell', 'mock')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check whether commands can be executed at all. Never raises."""

    @abstractmethod
    def run(self, command: list[str], options: RunOptions | None = None) -> CommandResult:
        """Run a command and capture its output.

        A non-zero exit is NOT an error here; inspect ``result.ok``.

        Raises:
            CommandSpawnError: The executable could not be started.
            CommandTimeoutError: ``options.timeout`` was exceeded.
        """

    def run_strict(
        self, command: list[str], options: RunOptions | None = None
    ) -> CommandResult:
        """Run a command, raising if it exits non-zero.

        Raises:
            CommandExecutionError: On non-zero exit (plus everything run() raises).
        """
        result = self.run(command, options)
        if not result.ok:
            detail = result.stderr.strip() or result.stdout.strip()
            message = f"Command exited with code {result.exit_status}: {result.command_line}"
            if detail:
                message = f"{message}\n{detail}"
            raise CommandExecutionError(message, result=result)
        return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
