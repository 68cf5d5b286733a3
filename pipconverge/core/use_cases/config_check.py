"""
Config check use case — validate packages.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pipconverge.core.config.loader import (
    DECLARATIONS_FILE,
    ConfigError,
    find_declarations_file,
    load_declarations,
)
from pipconverge.core.models.declaration import Declarations
from pipconverge.core.services.naming import is_direct_reference, normalize


@dataclass
class ConfigCheckResult:
    """Result of declaration validation."""

    valid: bool = False
    declarations: Declarations | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "package_count": len(self.declarations.packages) if self.declarations else 0,
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate package declarations and report issues.

    Args:
        config_path: Optional explicit path to packages.yml.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_declarations_file()
    if config_path is None:
        result.errors.append(f"No {DECLARATIONS_FILE} found.")
        return result
    result.config_path = config_path

    # Load and validate
    try:
        declarations = load_declarations(config_path)
        result.declarations = declarations
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    # Semantic checks
    if not declarations.packages:
        result.warnings.append("No packages declared. There is nothing to converge.")

    # One installed version per name: two declarations for the same
    # distribution would fight each other on every run.
    names = [normalize(p.package_name) for p in declarations.packages]
    dupes = {n for n in names if names.count(n) > 1}
    if dupes:
        result.errors.append(f"Duplicate package names: {', '.join(sorted(dupes))}")

    base = config_path.parent
    for pkg in declarations.packages:
        if pkg.version and is_direct_reference(pkg.name):
            result.warnings.append(
                f"'{pkg.name}' is a URL/VCS reference; version {pkg.version} "
                "is compared but never passed to pip."
            )
        if pkg.version and pkg.action == "upgrade":
            result.warnings.append(
                f"'{pkg.name}' declares version {pkg.version} but upgrade "
                "always targets the index candidate."
            )
        if pkg.requirements_path and not (base / pkg.requirements_path).exists():
            result.warnings.append(
                f"'{pkg.name}' requirements file does not exist: {pkg.requirements_path}"
            )
        if pkg.environment_root and not Path(pkg.environment_root, "bin", "pip").exists():
            result.warnings.append(
                f"'{pkg.name}' virtualenv has no bin/pip: {pkg.environment_root}"
            )

    result.valid = len(result.errors) == 0
    return result
