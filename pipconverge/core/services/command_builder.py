"""
pip command builder.

Produces the argv for a pip invocation:

    <pip> <subcommand> [--index URL] [--requirement PATH] [options...] <spec>

``spec`` is ``name==version`` unless the version is LATEST or the
name is a URL/VCS reference, which pip must receive untouched.
Uninstalling a URL/VCS reference names its ``package_name`` instead.
"""

from __future__ import annotations

import os
import shlex

from pipconverge.adapters.base import RunOptions
from pipconverge.core.models.package import LATEST, DesiredPackage
from pipconverge.core.services.naming import is_direct_reference

# Subcommands that reject --index.
INDEXLESS_SUBCOMMANDS = frozenset({"uninstall", "freeze", "show", "zip", "unzip"})


def requirement_spec(
    package: DesiredPackage, version: str | None, subcommand: str = "install"
) -> str:
    """The positional requirement pip is given for ``package``."""
    if is_direct_reference(package.name):
        # uninstall only accepts named requirements
        return package.package_name if subcommand == "uninstall" else package.name
    if not version or version == LATEST:
        return package.name
    return f"{package.name}=={version}"


def build(
    subcommand: str,
    version: str | None,
    package: DesiredPackage,
    pip: str = "pip",
) -> list[str]:
    """Assemble the pip argv for ``subcommand`` on ``package``."""
    command = [pip, subcommand]

    if subcommand not in INDEXLESS_SUBCOMMANDS:
        command.extend(["--index", package.index_url])

    if subcommand == "install" and package.requirements_path:
        command.extend(["--requirement", package.requirements_path])

    if package.options:
        command.extend(shlex.split(package.options))

    command.append(requirement_spec(package, version, subcommand))
    return command


def run_options(package: DesiredPackage) -> RunOptions:
    """Execution context for commands run on behalf of ``package``.

    When running as another user, HOME points at that user's home so
    pip's cache and config resolve for them rather than for us.
    """
    environment: dict[str, str] = {}
    if package.user:
        environment["HOME"] = os.path.expanduser(f"~{package.user}")
    return RunOptions(
        timeout=package.timeout,
        user=package.user,
        group=package.group,
        environment=environment,
    )
