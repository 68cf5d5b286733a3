"""
Converge use case — apply declarations to the environment.

This is the top-level orchestrator: it loads packages.yml, converges
each declared package in order through the controller, records every
outcome in the audit ledger and returns a serializable report.

A failing package (probe error or failed pip command) is recorded
and the remaining packages are still converged. Nothing is retried.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from pipconverge.adapters.base import CommandExecutionError, CommandRunner
from pipconverge.core.config.loader import (
    ConfigError,
    find_declarations_file,
    load_declarations,
    resolve_audit_path,
)
from pipconverge.core.config.paths import DEFAULT_PATHS, ManagerPaths
from pipconverge.core.engine.converge import ConvergenceController
from pipconverge.core.models.package import DesiredPackage
from pipconverge.core.models.result import ConvergeResult, Requested
from pipconverge.core.persistence.audit import AuditEntry, AuditWriter
from pipconverge.core.services.probe import ProbeError

logger = logging.getLogger(__name__)


@dataclass
class PackageOutcome:
    """Result of converging one declared package."""

    name: str
    requested: str
    result: ConvergeResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        data: dict = {"name": self.name, "requested": self.requested, "ok": self.ok}
        if self.result is not None:
            data["result"] = self.result.model_dump(mode="json")
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class ConvergeRunResult:
    """Result of a convergence run over one or more packages."""

    operation_id: str = ""
    config_path: Path | None = None
    dry_run: bool = False
    outcomes: list[PackageOutcome] = field(default_factory=list)
    error: str | None = None

    @property
    def changed(self) -> int:
        return sum(1 for o in self.outcomes if o.result and o.result.changed)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

    @property
    def ok(self) -> bool:
        return self.error is None and self.failed == 0

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "operation_id": self.operation_id,
            "config_path": str(self.config_path) if self.config_path else None,
            "dry_run": self.dry_run,
            "total": len(self.outcomes),
            "changed": self.changed,
            "failed": self.failed,
            "packages": [o.to_dict() for o in self.outcomes],
        }


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"


def _default_runner() -> CommandRunner:
    from pipconverge.adapters.shell.command import ShellRunner

    return ShellRunner()


def converge_one(
    controller: ConvergenceController,
    package: DesiredPackage,
    action: Requested,
) -> PackageOutcome:
    """Converge a single package, capturing failures in the outcome."""
    outcome = PackageOutcome(name=package.name, requested=action)
    try:
        outcome.result = controller.converge(package, action)
    except ProbeError as e:
        logger.error("Cannot determine state of %s: %s", package, e)
        outcome.error = str(e)
    except CommandExecutionError as e:
        logger.error("Failed to %s %s: %s", action, package, e)
        outcome.error = str(e)
    return outcome


def _record(
    writer: AuditWriter | None, operation_id: str, outcome: PackageOutcome
) -> None:
    if writer is None:
        return
    if outcome.result is not None:
        entry = AuditEntry.from_result(operation_id, outcome.result)
    else:
        entry = AuditEntry(
            operation_id=operation_id,
            package=outcome.name,
            requested=outcome.requested,
            status="failed",
            error=outcome.error,
        )
    writer.write(entry)


def converge_declarations(
    config_path: Path | None = None,
    only: list[str] | None = None,
    dry_run: bool = False,
    runner: CommandRunner | None = None,
) -> ConvergeRunResult:
    """Converge every package declared in packages.yml.

    Args:
        config_path: Optional explicit path to packages.yml.
        only: Optional list of names to converge. None = all.
        dry_run: Describe actions without running pip install/uninstall.
        runner: Optional process runner (default: ShellRunner).

    Returns:
        ConvergeRunResult with one outcome per converged package.
    """
    result = ConvergeRunResult(operation_id=generate_operation_id(), dry_run=dry_run)

    # ── Load declarations ────────────────────────────────────────
    try:
        if config_path is None:
            config_path = find_declarations_file()
        declarations = load_declarations(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    assert config_path is not None  # load_declarations raised otherwise
    result.config_path = config_path.resolve()

    targets = declarations.packages
    if only:
        targets = [p for p in targets if p.name in only or p.package_name in only]
        missing = set(only) - {p.name for p in targets} - {p.package_name for p in targets}
        if missing:
            result.error = f"Not declared in {config_path.name}: {', '.join(sorted(missing))}"
            return result

    # ── Converge ────────────────────────────────────────────────
    settings = declarations.settings
    controller = ConvergenceController(
        runner or _default_runner(),
        pip_path=settings.pip,
        python_path=settings.python,
        dry_run=dry_run,
    )

    audit_path = resolve_audit_path(declarations, config_path)
    writer = AuditWriter(audit_path) if audit_path else None

    for declaration in targets:
        outcome = converge_one(controller, declaration.desired(), declaration.action)
        result.outcomes.append(outcome)
        _record(writer, result.operation_id, outcome)

    logger.info(
        "Converged %d packages: %d changed, %d failed",
        len(result.outcomes), result.changed, result.failed,
    )
    return result


def converge_package(
    package: DesiredPackage,
    action: Requested,
    paths: ManagerPaths = DEFAULT_PATHS,
    dry_run: bool = False,
    runner: CommandRunner | None = None,
) -> ConvergeRunResult:
    """Converge a single ad-hoc package (no declaration file)."""
    result = ConvergeRunResult(operation_id=generate_operation_id(), dry_run=dry_run)
    controller = ConvergenceController(
        runner or _default_runner(),
        pip_path=paths.pip,
        python_path=paths.python,
        dry_run=dry_run,
    )
    result.outcomes.append(converge_one(controller, package, action))
    return result
