"""
History use case — recent install/uninstall transitions from the audit ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from binswap.core.config.loader import ConfigError, load_config
from binswap.core.persistence.audit import AuditEntry, AuditWriter


@dataclass
class HistoryResult:
    ledger_path: Path | None = None
    entries: list[AuditEntry] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "ledger_path": str(self.ledger_path) if self.ledger_path else None,
            "entries": [e.model_dump(mode="json") for e in self.entries],
        }


def get_history(config_path: Path | None = None, limit: int = 10) -> HistoryResult:
    result = HistoryResult()

    try:
        loaded = load_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    audit_path = loaded.layout.audit_path
    if audit_path is None:
        if loaded.config_path is None:
            result.error = (
                "No binswap.yml found; transitions are only recorded for a configured project."
            )
        else:
            result.error = "Audit log is disabled (audit_log is empty in binswap.yml)."
        return result

    result.ledger_path = audit_path
    result.entries = AuditWriter(audit_path).read_recent(limit)
    return result
