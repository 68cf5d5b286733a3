"""
Convergence result — what one convergence call decided and did.

The controller returns exactly one ConvergeResult per call. ``action``
is the transition actually selected (``noop`` when the package was
already in the desired state); ``requested`` is what the caller asked
for. ``changed`` is only True when a mutating pip command ran to
completion.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

Requested = Literal["install", "upgrade", "remove"]
Selected = Literal["install", "upgrade", "remove", "noop"]


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ConvergeResult(BaseModel):
    """Outcome of converging a single package."""

    package: str
    requested: Requested
    action: Selected = "noop"
    changed: bool = False
    dry_run: bool = False

    current_version: str | None = None
    target_version: str | None = None

    command: str = ""
    description: str = ""
    output: str = ""

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    @property
    def noop(self) -> bool:
        """Whether the package was already converged."""
        return self.action == "noop"

    @classmethod
    def unchanged(
        cls,
        package: str,
        requested: Requested,
        current_version: str | None = None,
        **kwargs: Any,
    ) -> ConvergeResult:
        """Create a no-op result."""
        return cls(
            package=package,
            requested=requested,
            action="noop",
            changed=False,
            current_version=current_version,
            **kwargs,
        )
