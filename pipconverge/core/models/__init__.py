"""
Domain models — Pydantic types for package convergence.

All models are re-exported here for convenient access:

    from pipconverge.core.models import DesiredPackage, InstalledState, ConvergeResult
"""

from pipconverge.core.models.package import (
    DEFAULT_INDEX_URL,
    DEFAULT_TIMEOUT,
    LATEST,
    DesiredPackage,
    InstalledState,
)
from pipconverge.core.models.result import ConvergeResult

__all__ = [
    "ConvergeResult",
    "DEFAULT_INDEX_URL",
    "DEFAULT_TIMEOUT",
    "DesiredPackage",
    "InstalledState",
    "LATEST",
]
