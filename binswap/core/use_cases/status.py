"""
Status use case — report the install/backup phase without changing anything.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from binswap.adapters.registry import AdapterRegistry
from binswap.core.config.loader import ConfigError, LoadedConfig, load_config
from binswap.core.engine.executor import observe_state, probe
from binswap.core.models.identity import Identity
from binswap.core.models.state import ObservedFile, ObservedState
from binswap.core.services.identity import current_identity, resolve_invoking_user


@dataclass
class StatusResult:
    loaded: LoadedConfig | None = None
    state: ObservedState | None = None
    artifact: ObservedFile | None = None
    process: Identity | None = None
    invoking_user: Identity | None = None
    error: str | None = None

    @property
    def target_matches_artifact(self) -> bool | None:
        """True when the installed binary is the current build.

        None when either side is missing.
        """
        if not self.state or not self.artifact:
            return None
        if not self.state.target.exists or not self.artifact.exists:
            return None
        return self.state.target.sha256 == self.artifact.sha256

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        assert self.loaded is not None
        layout = self.loaded.layout
        return {
            "tool": self.loaded.config.tool,
            "target": self.loaded.config.target,
            "config_path": str(self.loaded.config_path) if self.loaded.config_path else None,
            "project_dir": str(self.loaded.project_dir),
            "install_path": str(layout.install_path),
            "backup_path": str(layout.backup_path),
            "lock_path": str(layout.lock_path),
            "state": self.state.to_dict() if self.state else None,
            "artifact": self.artifact.model_dump(mode="json") if self.artifact else None,
            "target_matches_artifact": self.target_matches_artifact,
            "elevated": self.process.is_root if self.process else False,
            "invoking_user": self.invoking_user.name if self.invoking_user else None,
        }


def get_status(
    config_path: Path | None = None,
    *,
    registry: AdapterRegistry | None = None,
    environ: Mapping[str, str] | None = None,
    euid: int | None = None,
) -> StatusResult:
    result = StatusResult()

    try:
        loaded = load_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result
    result.loaded = loaded

    registry = registry or AdapterRegistry.default()
    result.process = current_identity(euid, environ)
    result.invoking_user = resolve_invoking_user(environ, euid)

    state, error = observe_state(registry, loaded.layout)
    if state is None:
        result.error = error
        return result
    result.state = state
    result.artifact = probe(registry, str(loaded.layout.artifact_path), "observe:artifact")
    return result
