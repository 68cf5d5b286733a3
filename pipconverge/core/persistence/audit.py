"""
Audit ledger — append-only convergence log.

Every convergence run writes one entry per package to an NDJSON
(newline-delimited JSON) file when ``settings.audit_log`` is set.
The convergence engine itself never writes files; only the use-case
layer does.

The ledger is append-only: entries are never modified or deleted.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from pipconverge.core.models.result import ConvergeResult

logger = logging.getLogger(__name__)


class AuditEntry(BaseModel):
    """A single audit log entry."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""

    # What was asked, what happened
    package: str = ""
    requested: str = ""
    action: str = ""            # install, upgrade, remove, noop
    changed: bool = False
    dry_run: bool = False
    from_version: str | None = None
    to_version: str | None = None

    status: str = ""            # ok, failed
    duration_ms: int = 0
    error: str | None = None

    context: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_result(cls, operation_id: str, result: ConvergeResult) -> AuditEntry:
        return cls(
            operation_id=operation_id,
            package=result.package,
            requested=result.requested,
            action=result.action,
            changed=result.changed,
            dry_run=result.dry_run,
            from_version=result.current_version,
            to_version=result.target_version,
            status="ok",
            duration_ms=result.duration_ms,
        )


class AuditWriter:
    """Append-only audit ledger writer.

    Each call to write() appends a single JSON line to the ledger file.
    The file is created if it doesn't exist.
    """

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append an audit entry to the ledger."""
        self._path.parent.mkdir(parents=True, exist_ok=True)

        data = entry.model_dump(mode="json")
        line = json.dumps(data, ensure_ascii=False) + "\n"

        try:
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Audit entry written: %s/%s", entry.operation_id, entry.package)
        except OSError as e:
            logger.error("Failed to write audit entry: %s", e)

    def read_all(self) -> list[AuditEntry]:
        """Read all entries from the ledger, oldest first."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate(json.loads(line)))
                    except ValueError as e:
                        logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read audit ledger: %s", e)

        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        """Read the most recent N entries."""
        if n <= 0:
            return []
        return self.read_all()[-n:]
