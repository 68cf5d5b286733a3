"""
Shell runner — execute commands with subprocess and capture output.

This is the SINGLE PLACE where ``subprocess.run`` is called. The
command is passed as an argv list (never through a shell), so
package specs containing ``+``, ``#`` or ``&`` reach pip unmangled.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time

from pipconverge.adapters.base import (
    CommandResult,
    CommandRunner,
    CommandSpawnError,
    CommandTimeoutError,
    RunOptions,
)

logger = logging.getLogger(__name__)


class ShellRunner(CommandRunner):
    """Run commands as local subprocesses.

    ``RunOptions.environment`` entries are layered over the current
    process environment. ``user`` and ``group`` are handed to
    subprocess, which requires sufficient privileges to switch.
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def run(self, command: list[str], options: RunOptions | None = None) -> CommandResult:
        options = options or RunOptions()

        env = os.environ.copy()
        env.update(options.environment)

        kwargs = {}
        if options.user:
            kwargs["user"] = options.user
        if options.group:
            kwargs["group"] = options.group

        logger.info("Executing: %s", " ".join(command))
        start = time.monotonic()

        try:
            proc = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=options.timeout,
                env=env,
                **kwargs,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandTimeoutError(
                f"Command timed out after {options.timeout}s: {' '.join(command)}"
            ) from e
        except (OSError, ValueError, KeyError) as e:
            raise CommandSpawnError(
                f"Cannot execute {' '.join(command)}: {e}"
            ) from e

        elapsed_ms = int((time.monotonic() - start) * 1000)
        result = CommandResult(
            command=list(command),
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            exit_status=proc.returncode,
            duration_ms=elapsed_ms,
        )
        logger.debug(
            "Exit %d after %dms: %s", result.exit_status, elapsed_ms, command[0]
        )
        return result
