"""
Observed state — what currently sits at the install and backup paths.

There is no state file: the filesystem is the state. Each run stats
both slots and derives a phase from what it finds.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel


class Phase(str, Enum):
    """Where the install/backup pair currently stands."""

    ABSENT = "absent"
    INSTALLED = "installed"
    INSTALLED_WITH_BACKUP = "installed_with_backup"
    BACKUP_ONLY = "backup_only"


class ObservedFile(BaseModel):
    """Result of stat-ing one path."""

    path: str
    exists: bool = False
    sha256: str | None = None
    mode: int | None = None
    size: int | None = None
    uid: int | None = None

    @classmethod
    def from_metadata(cls, path: str, metadata: dict[str, Any]) -> ObservedFile:
        return cls(
            path=path,
            exists=bool(metadata.get("exists")),
            sha256=metadata.get("sha256"),
            mode=metadata.get("mode"),
            size=metadata.get("size"),
            uid=metadata.get("uid"),
        )

    def short_digest(self) -> str:
        return self.sha256[:12] if self.sha256 else "-"


class ObservedState(BaseModel):
    """The install target and its single backup slot."""

    target: ObservedFile
    backup: ObservedFile

    @property
    def phase(self) -> Phase:
        if self.target.exists:
            return Phase.INSTALLED_WITH_BACKUP if self.backup.exists else Phase.INSTALLED
        return Phase.BACKUP_ONLY if self.backup.exists else Phase.ABSENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "target": self.target.model_dump(mode="json"),
            "backup": self.backup.model_dump(mode="json"),
        }
