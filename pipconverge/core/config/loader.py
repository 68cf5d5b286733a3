"""
Declaration loader — reads packages.yml into domain models.

This is the primary entry point for loading package declarations.
It reads YAML, validates against Pydantic schemas, and returns
typed domain objects.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from pipconverge.core.models.declaration import Declarations

logger = logging.getLogger(__name__)

# Default declaration filename
DECLARATIONS_FILE = "packages.yml"


class ConfigError(Exception):
    """Raised when the declaration file is invalid or missing."""


def find_declarations_file(start_dir: Path | None = None) -> Path | None:
    """Search for packages.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to packages.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / DECLARATIONS_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_declarations(path: Path | None = None) -> Declarations:
    """Load and validate package declarations.

    Package entries without their own ``index_url`` inherit the one
    from ``settings``.

    Args:
        path: Explicit path to packages.yml. If None, searches upward.

    Returns:
        Validated Declarations model.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        path = find_declarations_file()

    if path is None:
        raise ConfigError(
            f"No {DECLARATIONS_FILE} found. Create one, or specify --config."
        )

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading declarations from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    settings = data.get("settings") or {}
    packages = data.get("packages") or []
    if not isinstance(settings, dict):
        raise ConfigError(f"'settings' in {path} must be a mapping")
    if not isinstance(packages, list):
        raise ConfigError(f"'packages' in {path} must be a list")

    index_url = settings.get("index_url")
    if index_url:
        packages = [
            {"index_url": index_url, **entry} if isinstance(entry, dict) else entry
            for entry in packages
        ]

    try:
        declarations = Declarations.model_validate(
            {"settings": settings, "packages": packages}
        )
    except Exception as e:
        raise ConfigError(f"Invalid package declarations: {e}") from e

    logger.info("Loaded %d package declarations from %s", len(declarations.packages), path)
    return declarations


def resolve_audit_path(declarations: Declarations, config_path: Path) -> Path | None:
    """Audit ledger path, relative paths anchored at the config file."""
    audit_log = declarations.settings.audit_log
    if not audit_log:
        return None
    path = Path(audit_log)
    if not path.is_absolute():
        path = config_path.parent.resolve() / path
    return path
