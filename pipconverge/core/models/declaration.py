"""
Declaration model — the contents of packages.yml.

A declaration file lists the packages to manage and the shared
settings that tell us where pip lives and which index to use.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from pipconverge.core.config.paths import ManagerPaths
from pipconverge.core.models.package import DEFAULT_INDEX_URL, DesiredPackage
from pipconverge.core.models.result import Requested


class Settings(ManagerPaths):
    """Shared settings for every declared package."""

    index_url: str = DEFAULT_INDEX_URL
    audit_log: str | None = None   # NDJSON ledger path, relative to the file


class PackageDeclaration(DesiredPackage):
    """A desired package plus the action that converges it."""

    action: Requested = "install"

    def desired(self) -> DesiredPackage:
        """The declaration without its action."""
        return DesiredPackage.model_validate(self.model_dump(exclude={"action"}))


class Declarations(BaseModel):
    """Root document of packages.yml."""

    settings: Settings = Field(default_factory=Settings)
    packages: list[PackageDeclaration] = Field(default_factory=list)

    def get_package(self, name: str) -> PackageDeclaration | None:
        """Look up a declaration by ``name`` or ``package_name``."""
        for pkg in self.packages:
            if name in (pkg.name, pkg.package_name):
                return pkg
        return None
