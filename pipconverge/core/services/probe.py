"""
Installed-state probing — what version is installed right now.

Reads ``pip freeze`` and picks the ``name==version`` line whose name
normalizes to the package's normalized name. pip itself is special:
listing pip with the pip that is running is unreliable, so its
version comes from ``pip --version`` instead.

A non-zero exit from the listing command means "not installed". Only
a failure to run the command at all is an error, because without the
true current state no action can safely be chosen.
"""

from __future__ import annotations

import logging

from pipconverge.adapters.base import CommandExecutionError, CommandRunner, RunOptions
from pipconverge.core.config.paths import DEFAULT_PATHS, PathResolver
from pipconverge.core.models.package import DesiredPackage, InstalledState
from pipconverge.core.services.naming import normalize

logger = logging.getLogger(__name__)

_SELF_NAME = "pip"


class ProbeError(Exception):
    """The installed-package listing could not be executed."""


def probe(
    package: DesiredPackage,
    runner: CommandRunner,
    pip_path: PathResolver = DEFAULT_PATHS.pip,
    options: RunOptions | None = None,
) -> InstalledState:
    """Return the currently installed version of ``package``.

    Raises:
        ProbeError: The listing command could not be spawned or timed out.
    """
    pip = pip_path(package)
    wanted = normalize(package.package_name)

    if wanted == _SELF_NAME:
        command = [pip, "--version"]
    else:
        command = [pip, "freeze"]

    logger.debug("Checking installed version with %s", " ".join(command))
    try:
        result = runner.run(command, options)
    except CommandExecutionError as e:
        raise ProbeError(f"Cannot probe {package.package_name}: {e}") from e

    if not result.ok:
        logger.debug(
            "%s exited %d, treating %s as not installed",
            " ".join(command), result.exit_status, package.package_name,
        )
        return InstalledState()

    if wanted == _SELF_NAME:
        version = _parse_self_version(result.stdout)
    else:
        version = _parse_freeze(result.stdout, wanted)

    logger.debug("Installed version of %s: %s", package.package_name, version)
    return InstalledState(version=version)


def _parse_self_version(stdout: str) -> str | None:
    """``pip 23.3.1 from /usr/lib/... (python 3.11)`` → ``23.3.1``."""
    fields = stdout.split()
    if len(fields) < 2:
        return None
    return fields[1].strip()


def _parse_freeze(stdout: str, wanted: str) -> str | None:
    """Find ``wanted`` in freeze output and return its pinned version."""
    for line in stdout.splitlines():
        name, sep, version = line.partition("==")
        if not sep:
            continue
        if normalize(name.strip()) == wanted:
            return version.strip() or None
    return None
