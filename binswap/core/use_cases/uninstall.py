"""
Uninstall use case — restore the backup, or remove the installed binary.

Works purely from what is on disk; no build tooling is consulted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from binswap.adapters.registry import AdapterRegistry
from binswap.core.config.loader import ConfigError, LoadedConfig, load_config
from binswap.core.models.outcome import FailureKind
from binswap.core.reliability.lock import TransitionLock
from binswap.core.services.identity import current_identity, resolve_invoking_user
from binswap.core.services.transition import (
    LockFactory,
    TransitionResult,
    uninstall_transition,
)


@dataclass
class UninstallResult:
    loaded: LoadedConfig | None = None
    transition: TransitionResult | None = None
    error: str | None = None
    failure: FailureKind | None = None
    remediation: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def outcome(self) -> str | None:
        return self.transition.outcome if self.transition else None

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "dry_run": self.dry_run,
            "outcome": self.outcome,
            "error": self.error,
            "failure": self.failure.value if self.failure else None,
            "remediation": self.remediation,
            "transition": self.transition.to_dict() if self.transition else None,
        }


def run_uninstall(
    config_path: Path | None = None,
    *,
    registry: AdapterRegistry | None = None,
    environ: Mapping[str, str] | None = None,
    euid: int | None = None,
    dry_run: bool = False,
    lock_factory: LockFactory = TransitionLock,
) -> UninstallResult:
    """Undo the last install. See run_install for the parameters."""
    result = UninstallResult(dry_run=dry_run)

    try:
        loaded = load_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        result.failure = FailureKind.CONFIG_ERROR
        return result
    result.loaded = loaded

    transition = uninstall_transition(
        loaded.layout,
        registry or AdapterRegistry.default(),
        current_identity(euid, environ),
        invoking_user=resolve_invoking_user(environ, euid),
        dry_run=dry_run,
        lock_factory=lock_factory,
    )
    result.transition = transition
    if not transition.ok:
        result.error = transition.error
        result.failure = transition.failure
        result.remediation = transition.remediation

    return result
