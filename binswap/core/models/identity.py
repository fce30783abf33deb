"""
Identity model — who a command runs as.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Identity(BaseModel):
    """A resolved POSIX user."""

    model_config = ConfigDict(frozen=True)

    name: str
    uid: int
    gid: int
    home: str = ""
    shell: str = ""

    @property
    def is_root(self) -> bool:
        return self.uid == 0

    def __str__(self) -> str:
        return f"{self.name} (uid={self.uid})"
