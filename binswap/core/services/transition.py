"""
Install and uninstall transitions — the privileged part of binswap.

Both transitions:
    1. refuse to run without elevation (no escalation is attempted)
    2. take the transition lock next to the install target
    3. observe target + backup, plan, execute, observe again
    4. append an audit entry

An uninstall that finds nothing to do returns before the lock and
leaves no ledger entry.

Dry runs skip the elevation check and the lock, and execute nothing.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from pathlib import Path

from binswap.adapters.registry import AdapterRegistry
from binswap.core.engine.executor import (
    TransitionReport,
    execute_plan,
    observe_state,
    probe,
)
from binswap.core.engine.planner import TransitionPlan, plan_install, plan_uninstall
from binswap.core.models.config import InstallLayout
from binswap.core.models.identity import Identity
from binswap.core.models.outcome import FailureKind
from binswap.core.models.state import ObservedFile, ObservedState
from binswap.core.persistence.audit import AuditEntry, AuditWriter
from binswap.core.reliability.lock import LockUnavailable, TransitionLock

logger = logging.getLogger(__name__)

LockFactory = Callable[[Path], AbstractContextManager]


@dataclass
class TransitionResult:
    """Outcome of one install or uninstall transition."""

    operation: str
    plan: TransitionPlan | None = None
    report: TransitionReport | None = None
    state_before: ObservedState | None = None
    state_after: ObservedState | None = None
    error: str | None = None
    failure: FailureKind | None = None
    remediation: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def outcome(self) -> str | None:
        return self.plan.outcome if self.plan else None

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "ok": self.ok,
            "dry_run": self.dry_run,
            "outcome": self.outcome,
            "error": self.error,
            "failure": self.failure.value if self.failure else None,
            "remediation": self.remediation,
            "plan": self.plan.to_dict() if self.plan else None,
            "report": self.report.to_dict() if self.report else None,
            "state_before": self.state_before.to_dict() if self.state_before else None,
            "state_after": self.state_after.to_dict() if self.state_after else None,
        }


def privilege_remediation(command: str) -> list[str]:
    return [
        f"This {command}er must be run with sudo.",
        "Example:",
        f"  sudo binswap {command}",
    ]


def install_transition(
    layout: InstallLayout,
    registry: AdapterRegistry,
    process: Identity,
    *,
    invoking_user: Identity | None = None,
    dry_run: bool = False,
    lock_factory: LockFactory = TransitionLock,
) -> TransitionResult:
    """Back up the current target and install the build artifact over it."""
    result = TransitionResult(operation="install", dry_run=dry_run)

    if not _require_elevation(result, process, "install"):
        return result

    try:
        with _transition_lock(layout, dry_run, lock_factory):
            state = _observe(result, registry, layout)
            if state is None:
                return result

            artifact = probe(registry, str(layout.artifact_path), "observe:artifact")
            if artifact is None or not artifact.exists:
                if not dry_run:
                    result.error = f"Build failed: binary not found at {layout.artifact_path}"
                    result.failure = FailureKind.BUILD_FAILURE
                    return result
                artifact = ObservedFile(path=str(layout.artifact_path), exists=False)

            result.plan = plan_install(state, artifact)
            _execute(result, registry, layout, invoking_user, artifact)
    except LockUnavailable as e:
        _lock_failure(result, e)

    if result.report and not result.report.ok:
        backup_done = any(
            r.ok and r.action_id.endswith(":backup") for r in result.report.receipts
        )
        if backup_done:
            result.remediation = [
                f"The previous {layout.install_path.name} is saved at {layout.backup_path}.",
                "Restore it with:",
                "  sudo binswap uninstall",
            ]
        else:
            result.remediation = [f"{layout.install_path} was not modified."]

    return result


def uninstall_transition(
    layout: InstallLayout,
    registry: AdapterRegistry,
    process: Identity,
    *,
    invoking_user: Identity | None = None,
    dry_run: bool = False,
    lock_factory: LockFactory = TransitionLock,
) -> TransitionResult:
    """Restore the backup over the target, or remove the target if there is none."""
    result = TransitionResult(operation="uninstall", dry_run=dry_run)

    if not _require_elevation(result, process, "uninstall"):
        return result

    # An absent target needs neither the lock nor a ledger entry
    state = _observe(result, registry, layout)
    if state is None:
        return result
    plan = plan_uninstall(state)
    if plan.noop:
        result.plan = plan
        for warning in plan.warnings:
            logger.warning(warning)
        return result

    try:
        with _transition_lock(layout, dry_run, lock_factory):
            state = _observe(result, registry, layout)
            if state is None:
                return result

            result.plan = plan_uninstall(state)
            _execute(result, registry, layout, invoking_user, None)
    except LockUnavailable as e:
        _lock_failure(result, e)

    if result.report and not result.report.ok:
        result.remediation = _inspect_remediation(layout)

    return result


# ── Internals ────────────────────────────────────────────────────


def _require_elevation(result: TransitionResult, process: Identity, command: str) -> bool:
    if process.is_root or result.dry_run:
        return True
    result.error = f"{command} requires root privileges (running as {process})"
    result.failure = FailureKind.PRIVILEGE_REQUIRED
    result.remediation = privilege_remediation(command)
    return False


def _transition_lock(
    layout: InstallLayout,
    dry_run: bool,
    lock_factory: LockFactory,
) -> AbstractContextManager:
    if dry_run:
        return contextlib.nullcontext()
    return lock_factory(layout.lock_path)


def _lock_failure(result: TransitionResult, error: LockUnavailable) -> None:
    result.error = str(error)
    result.failure = FailureKind.LOCK_HELD
    result.remediation = ["Wait for the other binswap run to finish, then retry."]


def _inspect_remediation(layout: InstallLayout) -> list[str]:
    return [
        "Inspect the paths manually:",
        f"  ls -l {layout.install_path} {layout.backup_path}",
    ]


def _observe(
    result: TransitionResult,
    registry: AdapterRegistry,
    layout: InstallLayout,
) -> ObservedState | None:
    state, error = observe_state(registry, layout)
    if state is None:
        result.error = error
        result.failure = FailureKind.TRANSITION_FAILURE
        result.remediation = _inspect_remediation(layout)
        return None
    result.state_before = state
    return state


def _execute(
    result: TransitionResult,
    registry: AdapterRegistry,
    layout: InstallLayout,
    invoking_user: Identity | None,
    artifact: ObservedFile | None,
) -> None:
    plan = result.plan
    assert plan is not None

    for warning in plan.warnings:
        logger.warning(warning)

    result.report = execute_plan(plan, registry, dry_run=result.dry_run)

    if not result.report.ok:
        failed = result.report.failed_action
        result.error = (
            f"{plan.operation} failed at "
            f"{failed.description if failed else 'unknown step'}: {result.report.error}"
        )
        result.failure = FailureKind.TRANSITION_FAILURE

    if result.dry_run:
        return

    after, _ = observe_state(registry, layout)
    result.state_after = after
    _audit(result, layout, invoking_user, artifact)


def _audit(
    result: TransitionResult,
    layout: InstallLayout,
    invoking_user: Identity | None,
    artifact: ObservedFile | None,
) -> None:
    if layout.audit_path is None or result.plan is None or result.plan.noop:
        return
    plan, report, before = result.plan, result.report, result.state_before
    entry = AuditEntry(
        operation_id=plan.operation_id,
        operation=plan.operation,
        outcome=plan.outcome,
        status=report.status if report else "skipped",
        invoking_user=invoking_user.name if invoking_user else "",
        install_path=str(layout.install_path),
        backup_path=str(layout.backup_path),
        from_phase=plan.from_phase.value,
        to_phase=(
            result.state_after.phase.value if result.state_after else plan.to_phase.value
        ),
        target_sha256_before=before.target.sha256 if before else None,
        backup_sha256_before=before.backup.sha256 if before else None,
        artifact_sha256=artifact.sha256 if artifact else None,
        actions_total=len(plan.actions),
        actions_succeeded=report.succeeded if report else 0,
        actions_failed=report.failed if report else 0,
        errors=[result.error] if result.error else [],
        context={"warnings": plan.warnings} if plan.warnings else {},
    )
    AuditWriter(layout.audit_path).write(entry)
