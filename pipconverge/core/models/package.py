"""
Package models — declared and observed package state.

A DesiredPackage is the caller's declaration of intent: "this package
should be present at this version, installed this way." It is frozen
so a single convergence call can never mutate the declaration it was
given. InstalledState is what the prober found on disk right now.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

# Marker meaning "let pip choose" when the index cannot tell us a version.
LATEST = "latest"

DEFAULT_INDEX_URL = "https://pypi.org/simple"
DEFAULT_TIMEOUT = 900


class DesiredPackage(BaseModel):
    """A package as it should be in the target environment.

    ``name`` is what pip is asked to install and may be a URL or a
    VCS spec (``git+https://...``). ``package_name`` is the
    distribution name used to find the package in ``pip freeze``;
    it defaults to ``name``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    package_name: str = ""
    version: str | None = None
    options: str = ""

    # Execution context
    timeout: int = DEFAULT_TIMEOUT
    user: str | None = None
    group: str | None = None

    environment_root: str | None = Field(
        default=None,
        validation_alias=AliasChoices("environment_root", "virtualenv"),
    )
    index_url: str = DEFAULT_INDEX_URL
    requirements_path: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_package_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("package_name"):
            data = {**data, "package_name": data.get("name", "")}
        return data

    def with_options(self, *extra: str) -> DesiredPackage:
        """Return a copy with ``extra`` flags appended to ``options``."""
        options = " ".join(part for part in (self.options, *extra) if part)
        return self.model_copy(update={"options": options})

    def __str__(self) -> str:
        return f"pip[{self.name}]"


class InstalledState(BaseModel):
    """What is installed right now. ``version`` is None when absent."""

    model_config = ConfigDict(frozen=True)

    version: str | None = None

    @property
    def installed(self) -> bool:
        return self.version is not None
