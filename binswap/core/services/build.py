"""
Build orchestration — compile as the invoking user, then find the binary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from binswap.adapters.registry import AdapterRegistry
from binswap.core.engine.executor import probe
from binswap.core.models.action import Receipt
from binswap.core.models.config import InstallerConfig, InstallLayout
from binswap.core.models.identity import Identity
from binswap.core.models.state import ObservedFile
from binswap.core.services.runner import CommandRunner

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    ok: bool
    command: list[str]
    receipt: Receipt | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "command": self.command,
            "error": self.error,
            "duration_ms": self.receipt.duration_ms if self.receipt else 0,
            "ran_as": self.receipt.metadata.get("ran_as") if self.receipt else None,
        }


def run_build(
    runner: CommandRunner,
    user: Identity,
    config: InstallerConfig,
    layout: InstallLayout,
) -> BuildResult:
    """Run the release build in the project directory as ``user``.

    Output goes straight to the terminal. The artifact is not checked
    here; see ``verify_artifact``.
    """
    command = config.expand_command(config.build_command)
    receipt = runner.run_as(
        user,
        command,
        action_id="build",
        description=f"Build {config.tool} for {config.target}",
        cwd=str(layout.project_dir),
        timeout=config.build_timeout,
        stream=True,
    )
    if receipt.failed:
        logger.error("Build failed: %s", receipt.error)
        return BuildResult(ok=False, command=command, receipt=receipt, error=receipt.error)
    return BuildResult(ok=True, command=command, receipt=receipt)


def verify_artifact(registry: AdapterRegistry, layout: InstallLayout) -> ObservedFile:
    """Check that the build left a binary at the documented path."""
    artifact = probe(registry, str(layout.artifact_path), "verify:artifact")
    if artifact is None:
        return ObservedFile(path=str(layout.artifact_path), exists=False)
    if artifact.exists:
        logger.info("Artifact %s (sha256 %s)", artifact.path, artifact.short_digest())
    else:
        logger.error("Artifact missing: %s", artifact.path)
    return artifact
