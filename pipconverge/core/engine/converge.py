"""
Convergence controller — bring one package to its declared state.

Each public action (install, upgrade, remove) is a single
convergence call:

    probe installed version → (resolve candidate) → choose transition
        → build pip command → run it → report

Installed and candidate versions are computed lazily and memoized on
a per-call object, so one call runs each query at most once and no
call ever sees another call's view of the environment.

Probe failures (ProbeError) and mutating command failures
(CommandExecutionError) propagate to the caller. Nothing is retried.
"""

from __future__ import annotations

import logging
import shlex
import time
from dataclasses import dataclass
from functools import cached_property, wraps

from pipconverge.adapters.base import CommandRunner, RunOptions
from pipconverge.core.config.paths import DEFAULT_PATHS, PathResolver
from pipconverge.core.models.package import DesiredPackage
from pipconverge.core.models.result import ConvergeResult, Requested
from pipconverge.core.observability.logging_config import package_context
from pipconverge.core.services.command_builder import build, run_options
from pipconverge.core.services.probe import probe
from pipconverge.core.services.resolver import resolve_candidate

logger = logging.getLogger(__name__)


@dataclass
class _ConvergenceCall:
    """Memoized view of the environment for one convergence call."""

    package: DesiredPackage
    runner: CommandRunner
    pip_path: PathResolver
    python_path: PathResolver
    options: RunOptions

    @cached_property
    def current_version(self) -> str | None:
        return probe(self.package, self.runner, self.pip_path, self.options).version

    @cached_property
    def candidate_version(self) -> str:
        return resolve_candidate(self.package, self.runner, self.python_path, self.options)


def _in_package_context(action):
    """Log everything inside ``action`` under the package it converges."""

    @wraps(action)
    def wrapper(self, package: DesiredPackage) -> ConvergeResult:
        with package_context(package):
            return action(self, package)

    return wrapper


def removing_package(declared: str | None, installed: str | None) -> bool:
    """Whether remove should act.

    At most one version of a name is assumed to be installed, so an
    unset declared version means "remove whatever is there".
    """
    if installed is None:
        return False  # nothing to remove
    if declared is None:
        return True  # any version
    return declared == installed


class ConvergenceController:
    """Install, upgrade or remove a package idempotently.

    Args:
        runner: Process boundary used for every command.
        pip_path: Strategy returning the pip executable for a package.
        python_path: Strategy returning the matching interpreter.
        dry_run: Decide and describe the action but never run pip
            install/uninstall. Read-only probes still run.
    """

    def __init__(
        self,
        runner: CommandRunner,
        pip_path: PathResolver = DEFAULT_PATHS.pip,
        python_path: PathResolver = DEFAULT_PATHS.python,
        dry_run: bool = False,
    ):
        self.runner = runner
        self.pip_path = pip_path
        self.python_path = python_path
        self.dry_run = dry_run

    def converge(self, package: DesiredPackage, action: Requested) -> ConvergeResult:
        """Dispatch to :meth:`install`, :meth:`upgrade` or :meth:`remove`."""
        handlers = {
            "install": self.install,
            "upgrade": self.upgrade,
            "remove": self.remove,
        }
        if action not in handlers:
            raise ValueError(f"Unknown action '{action}'. Valid: {', '.join(handlers)}")
        return handlers[action](package)

    # ── Actions ─────────────────────────────────────────────────

    @_in_package_context
    def install(self, package: DesiredPackage) -> ConvergeResult:
        call = self._begin(package)
        current = call.current_version

        target: str | None = None
        if package.version is not None and package.version != current:
            target = package.version
        elif current is None:
            target = call.candidate_version

        if target is None:
            logger.debug("%s is already installed at %s", package, current)
            return ConvergeResult.unchanged(
                package.name, "install", current, dry_run=self.dry_run
            )

        return self._apply(
            call,
            requested="install",
            subcommand="install",
            package=package,
            target=target,
            description=f"install package {package} version {target}",
        )

    @_in_package_context
    def upgrade(self, package: DesiredPackage) -> ConvergeResult:
        call = self._begin(package)
        current = call.current_version
        candidate = call.candidate_version
        logger.debug(
            "current version: %s   candidate version: %s", current, candidate
        )

        if current == candidate:
            return ConvergeResult.unchanged(
                package.name, "upgrade", current, dry_run=self.dry_run
            )

        return self._apply(
            call,
            requested="upgrade",
            subcommand="install",
            package=package.with_options("--upgrade"),
            target=candidate,
            description=(
                f"upgrade package {package} version from "
                f"{current or 'uninstalled'} to {candidate}"
            ),
        )

    @_in_package_context
    def remove(self, package: DesiredPackage) -> ConvergeResult:
        call = self._begin(package)
        current = call.current_version

        if not removing_package(package.version, current):
            return ConvergeResult.unchanged(
                package.name, "remove", current, dry_run=self.dry_run
            )

        return self._apply(
            call,
            requested="remove",
            subcommand="uninstall",
            package=package.with_options("--yes"),
            target=None,
            description=f"remove package {package}",
        )

    # ── Helpers ─────────────────────────────────────────────────

    def _begin(self, package: DesiredPackage) -> _ConvergenceCall:
        return _ConvergenceCall(
            package=package,
            runner=self.runner,
            pip_path=self.pip_path,
            python_path=self.python_path,
            options=run_options(package),
        )

    def _apply(
        self,
        call: _ConvergenceCall,
        requested: Requested,
        subcommand: str,
        package: DesiredPackage,
        target: str | None,
        description: str,
    ) -> ConvergeResult:
        command = build(subcommand, target, package, pip=self.pip_path(package))

        result = ConvergeResult(
            package=package.name,
            requested=requested,
            action=requested,
            current_version=call.current_version,
            target_version=target,
            command=shlex.join(command),
            description=description,
            dry_run=self.dry_run,
        )

        if self.dry_run:
            logger.info("Would %s", description)
            return result

        logger.info("Converging: %s", description)
        start = time.monotonic()
        completed = self.runner.run_strict(command, call.options)

        result.changed = True
        result.output = completed.stdout.strip()
        result.duration_ms = int((time.monotonic() - start) * 1000)
        return result
