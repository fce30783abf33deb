"""
Audit ledger — append-only record of install/uninstall transitions.

One NDJSON line per transition, including failed ones and no-ops.
Since there is only one backup slot, this ledger is the only place
that remembers which digest was installed when.

Writing is best-effort: a ledger that cannot be written is logged,
never fatal to the transition it describes.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class AuditEntry(BaseModel):
    """A single transition record."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""
    operation: str = ""            # install, uninstall
    outcome: str = ""              # installed, restored, removed, nothing_to_uninstall
    status: str = ""               # ok, failed, skipped

    invoking_user: str = ""
    install_path: str = ""
    backup_path: str = ""

    from_phase: str = ""
    to_phase: str = ""
    target_sha256_before: str | None = None
    backup_sha256_before: str | None = None
    artifact_sha256: str | None = None

    actions_total: int = 0
    actions_succeeded: int = 0
    actions_failed: int = 0

    errors: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)


class AuditWriter:
    """Append-only NDJSON ledger."""

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> bool:
        """Append an entry. Returns False if it could not be written."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.error("Failed to write audit entry to %s: %s", self._path, e)
            return False
        logger.debug("Audit entry written: %s/%s", entry.operation, entry.operation_id)
        return True

    def read_all(self) -> list[AuditEntry]:
        """All entries, oldest first. Corrupt lines are skipped."""
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
                    except (json.JSONDecodeError, ValidationError) as e:
                        logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read audit ledger %s: %s", self._path, e)

        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        """The most recent N entries, oldest first."""
        if n <= 0:
            return []
        return self.read_all()[-n:]
