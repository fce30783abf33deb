"""
Install use case — preflight, build, and swap the binary into place.

    config → elevation → invoking user → preflight → build (unprivileged)
           → artifact check → install transition (privileged, locked)

Every gate is hard: the first failure ends the run with a result
carrying the failure kind and the remediation to print. Nothing at
the install target or backup slot changes before the transition.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from binswap.adapters.registry import AdapterRegistry
from binswap.core.config.loader import ConfigError, LoadedConfig, load_config
from binswap.core.models.identity import Identity
from binswap.core.models.outcome import FailureKind
from binswap.core.models.state import ObservedFile
from binswap.core.reliability.lock import TransitionLock
from binswap.core.services.build import BuildResult, run_build, verify_artifact
from binswap.core.services.identity import current_identity, resolve_invoking_user
from binswap.core.services.preflight import PreflightReport, run_preflight
from binswap.core.services.runner import CommandRunner
from binswap.core.services.transition import (
    LockFactory,
    TransitionResult,
    install_transition,
    privilege_remediation,
)

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    """Everything the CLI needs to report an install run."""

    loaded: LoadedConfig | None = None
    invoking_user: Identity | None = None
    preflight: PreflightReport | None = None
    build: BuildResult | None = None
    artifact: ObservedFile | None = None
    transition: TransitionResult | None = None
    error: str | None = None
    failure: FailureKind | None = None
    remediation: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        config_path: Path | None = self.loaded.config_path if self.loaded else None
        return {
            "ok": self.ok,
            "dry_run": self.dry_run,
            "error": self.error,
            "failure": self.failure.value if self.failure else None,
            "remediation": self.remediation,
            "config_path": str(config_path) if config_path else None,
            "invoking_user": self.invoking_user.name if self.invoking_user else None,
            "preflight": self.preflight.to_dict() if self.preflight else None,
            "build": self.build.to_dict() if self.build else None,
            "artifact": self.artifact.model_dump(mode="json") if self.artifact else None,
            "transition": self.transition.to_dict() if self.transition else None,
        }

    def fail(self, kind: FailureKind, error: str, remediation: list[str] | None = None) -> InstallResult:
        self.failure = kind
        self.error = error
        self.remediation = remediation or []
        return self


def run_install(
    config_path: Path | None = None,
    *,
    registry: AdapterRegistry | None = None,
    environ: Mapping[str, str] | None = None,
    euid: int | None = None,
    dry_run: bool = False,
    lock_factory: LockFactory = TransitionLock,
) -> InstallResult:
    """Run the full install sequence.

    Args:
        config_path: Explicit binswap.yml (default: search upward from cwd).
        registry: Adapter registry (default: real filesystem + subprocess).
        environ: Environment to resolve identities from (default: os.environ).
        euid: Effective uid to assume (default: os.geteuid()).
        dry_run: Check and plan only. No elevation needed; the build and
            any target installation are skipped.
        lock_factory: Context manager factory for the transition lock.
    """
    result = InstallResult(dry_run=dry_run)

    try:
        loaded = load_config(config_path)
    except ConfigError as e:
        return result.fail(FailureKind.CONFIG_ERROR, str(e))
    result.loaded = loaded
    config, layout = loaded.config, loaded.layout

    registry = registry or AdapterRegistry.default()
    process = current_identity(euid, environ)

    if not process.is_root and not dry_run:
        return result.fail(
            FailureKind.PRIVILEGE_REQUIRED,
            f"install requires root privileges (running as {process})",
            privilege_remediation("install"),
        )

    user = resolve_invoking_user(environ, euid)
    result.invoking_user = user
    logger.info("Installing %s as root on behalf of %s", config.tool, user)

    runner = CommandRunner(registry, process, config.toolchain, base_env=environ)

    result.preflight = run_preflight(runner, user, config, dry_run=dry_run)
    failed_check = result.preflight.first_failure
    if failed_check is not None:
        return result.fail(
            failed_check.failure or FailureKind.MISSING_TOOLCHAIN,
            failed_check.message,
            failed_check.remediation,
        )

    if not dry_run:
        result.build = run_build(runner, user, config, layout)
        if not result.build.ok:
            return result.fail(
                FailureKind.BUILD_FAILURE,
                f"Build failed: {result.build.error}",
                ["Fix the build errors above, then re-run:", "  sudo binswap install"],
            )

        result.artifact = verify_artifact(registry, layout)
        if not result.artifact.exists:
            return result.fail(
                FailureKind.BUILD_FAILURE,
                f"Build failed: binary not found at {layout.artifact_path}",
                [f"Check that the build writes {config.expand(config.artifact)}."],
            )

    transition = install_transition(
        layout,
        registry,
        process,
        invoking_user=user,
        dry_run=dry_run,
        lock_factory=lock_factory,
    )
    result.transition = transition
    if not transition.ok:
        return result.fail(
            transition.failure or FailureKind.TRANSITION_FAILURE,
            transition.error or "install failed",
            transition.remediation,
        )

    return result
