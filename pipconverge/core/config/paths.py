"""
Manager path resolution — which pip and which python to run.

Precedence, identical for both executables:
    1. ``<environment_root>/bin/<exe>`` when the package targets a virtualenv
    2. ``<prefix_dir>/bin/<exe>`` when Python was installed from source
    3. the bare executable name, resolved through PATH

The controller takes these as plain callables so callers can inject
any other policy.
"""

from __future__ import annotations

import os
from typing import Callable, Literal

from pydantic import BaseModel

from pipconverge.core.models.package import DesiredPackage

PathResolver = Callable[[DesiredPackage], str]


class ManagerPaths(BaseModel):
    """How the managed Python was installed."""

    install_method: Literal["package", "source"] = "package"
    prefix_dir: str = "/usr/local"

    def pip(self, package: DesiredPackage) -> str:
        """Path to the pip executable for ``package``."""
        return self._which("pip", package)

    def python(self, package: DesiredPackage) -> str:
        """Path to the interpreter matching :meth:`pip`."""
        return self._which("python", package)

    def _which(self, executable: str, package: DesiredPackage) -> str:
        if package.environment_root:
            return os.path.join(package.environment_root, "bin", executable)
        if self.install_method == "source":
            return os.path.join(self.prefix_dir, "bin", executable)
        return executable


DEFAULT_PATHS = ManagerPaths()
