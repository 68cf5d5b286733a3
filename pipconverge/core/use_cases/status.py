"""
Status use case — compare declared packages with what is installed.

Read-only: probes each declaration's environment and reports whether
it already matches its declared action. Never resolves candidates,
so upgrade declarations report the installed version only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pipconverge.adapters.base import CommandRunner
from pipconverge.core.config.loader import ConfigError, find_declarations_file, load_declarations
from pipconverge.core.engine.converge import removing_package
from pipconverge.core.models.declaration import PackageDeclaration
from pipconverge.core.services.command_builder import run_options
from pipconverge.core.services.probe import ProbeError, probe


@dataclass
class PackageStatus:
    """Declared vs installed for one package."""

    name: str
    action: str
    declared_version: str | None = None
    installed_version: str | None = None
    error: str | None = None

    @property
    def in_sync(self) -> bool | None:
        """Whether the declaration is satisfied. None when unknown."""
        if self.error:
            return None
        if self.action == "remove":
            return not removing_package(self.declared_version, self.installed_version)
        if self.installed_version is None:
            return False
        if self.action == "install" and self.declared_version is not None:
            return self.declared_version == self.installed_version
        return True

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "action": self.action,
            "declared_version": self.declared_version,
            "installed_version": self.installed_version,
            "in_sync": self.in_sync,
            "error": self.error,
        }


@dataclass
class StatusResult:
    """Aggregated declaration status."""

    config_path: Path | None = None
    packages: list[PackageStatus] = field(default_factory=list)
    error: str | None = None

    @property
    def out_of_sync(self) -> int:
        return sum(1 for p in self.packages if p.in_sync is False)

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "config_path": str(self.config_path) if self.config_path else None,
            "total": len(self.packages),
            "out_of_sync": self.out_of_sync,
            "packages": [p.to_dict() for p in self.packages],
        }


def get_status(
    config_path: Path | None = None,
    runner: CommandRunner | None = None,
) -> StatusResult:
    """Probe every declared package.

    Args:
        config_path: Optional explicit path to packages.yml.
        runner: Optional process runner (default: ShellRunner).
    """
    result = StatusResult()

    try:
        if config_path is None:
            config_path = find_declarations_file()
        declarations = load_declarations(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    result.config_path = config_path

    if runner is None:
        from pipconverge.adapters.shell.command import ShellRunner

        runner = ShellRunner()

    settings = declarations.settings
    for declaration in declarations.packages:
        result.packages.append(_package_status(declaration, runner, settings.pip))

    return result


def _package_status(declaration: PackageDeclaration, runner, pip_path) -> PackageStatus:
    status = PackageStatus(
        name=declaration.name,
        action=declaration.action,
        declared_version=declaration.version,
    )
    package = declaration.desired()
    try:
        status.installed_version = probe(
            package, runner, pip_path, run_options(package)
        ).version
    except ProbeError as e:
        status.error = str(e)
    return status
