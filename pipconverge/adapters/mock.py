"""
Mock runner — test double for the process boundary.

Used to simulate pip without touching a real environment. Responses
are registered against a substring of the command line; the most
recently registered matching pattern wins. Unmatched commands
succeed with empty output.
"""

from __future__ import annotations

from pipconverge.adapters.base import (
    CommandResult,
    CommandRunner,
    CommandSpawnError,
    CommandTimeoutError,
    RunOptions,
)


class MockRunner(CommandRunner):
    """Scriptable CommandRunner for tests.

    Example:
        runner = MockRunner()
        runner.set_response("freeze", stdout="requests==2.31.0\\n")
        runner.set_response("install", exit_status=1, stderr="boom")
    """

    def __init__(self, runner_name: str = "mock", available: bool = True):
        self._name = runner_name
        self._available = available
        self._responses: list[tuple[str, dict]] = []
        self._call_log: list[tuple[list[str], RunOptions]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[tuple[list[str], RunOptions]]:
        """Every (command, options) pair this runner has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def commands(self) -> list[str]:
        """Command lines received, joined with spaces."""
        return [" ".join(cmd) for cmd, _ in self._call_log]

    def is_available(self) -> bool:
        return self._available

    def set_response(
        self,
        match: str,
        stdout: str = "",
        stderr: str = "",
        exit_status: int = 0,
    ) -> None:
        """Return this output for commands containing ``match``."""
        self._responses.append(
            (match, {"stdout": stdout, "stderr": stderr, "exit_status": exit_status})
        )

    def set_spawn_error(self, match: str) -> None:
        """Fail commands containing ``match`` as if the binary were missing."""
        self._responses.append((match, {"raise": CommandSpawnError}))

    def set_timeout(self, match: str) -> None:
        """Fail commands containing ``match`` with a timeout."""
        self._responses.append((match, {"raise": CommandTimeoutError}))

    def run(self, command: list[str], options: RunOptions | None = None) -> CommandResult:
        options = options or RunOptions()
        self._call_log.append((list(command), options))
        line = " ".join(command)

        for match, response in reversed(self._responses):
            if match not in line:
                continue
            if "raise" in response:
                raise response["raise"](f"[mock] {line}")
            return CommandResult(command=list(command), **response)

        return CommandResult(command=list(command))

    def reset(self) -> None:
        """Clear call log and registered responses."""
        self._call_log.clear()
        self._responses.clear()
