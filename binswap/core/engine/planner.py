"""
Transition planner — pure functions from observed state to actions.

Nothing here touches the filesystem. Given what is currently at the
install and backup paths, each planner returns the ordered list of
filesystem actions that moves the pair to its next phase:

    install:    absent                 → installed
                installed              → installed_with_backup
                installed_with_backup  → installed_with_backup  (backup replaced)
                backup_only            → installed_with_backup  (stale backup kept)

    uninstall:  installed_with_backup  → installed   (backup moved back)
                installed              → absent      (target removed)
                absent / backup_only   → unchanged   (nothing to uninstall)

The backup action always precedes the overwrite. There is a single
backup slot: a second install replaces it with whatever is installed
at that moment, including a previous replacement.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from binswap.core.models.action import Action
from binswap.core.models.outcome import (
    OUTCOME_INSTALLED,
    OUTCOME_NOTHING_TO_UNINSTALL,
    OUTCOME_REMOVED,
    OUTCOME_RESTORED,
)
from binswap.core.models.state import ObservedFile, ObservedState, Phase

EXECUTABLE_MODE = 0o755


@dataclass
class TransitionPlan:
    """Ordered actions plus the phase change they are expected to cause."""

    operation: str
    operation_id: str
    from_phase: Phase
    to_phase: Phase
    outcome: str
    actions: list[Action] = field(default_factory=list)
    message: str = ""
    warnings: list[str] = field(default_factory=list)

    @property
    def noop(self) -> bool:
        return not self.actions

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "operation_id": self.operation_id,
            "from_phase": self.from_phase.value,
            "to_phase": self.to_phase.value,
            "outcome": self.outcome,
            "noop": self.noop,
            "message": self.message,
            "warnings": self.warnings,
            "actions": [
                {"id": a.id, "description": a.description, "params": a.params}
                for a in self.actions
            ],
        }


def generate_operation_id() -> str:
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    return f"op-{now}-{uuid.uuid4().hex[:6]}"


def plan_install(
    state: ObservedState,
    artifact: ObservedFile,
    operation_id: str | None = None,
) -> TransitionPlan:
    """Back up the current target (if any), then copy the artifact over it."""
    op_id = operation_id or generate_operation_id()
    target, backup = state.target, state.backup
    phase = state.phase

    plan = TransitionPlan(
        operation="install",
        operation_id=op_id,
        from_phase=phase,
        to_phase=(
            Phase.INSTALLED
            if phase == Phase.ABSENT
            else Phase.INSTALLED_WITH_BACKUP
        ),
        outcome=OUTCOME_INSTALLED,
    )

    if target.exists:
        if backup.exists:
            plan.warnings.append(
                f"Existing backup {backup.path} (sha256 {backup.short_digest()}) will be "
                f"overwritten with the currently installed {target.path} "
                f"(sha256 {target.short_digest()}). Only one backup is kept."
            )
        if target.sha256 and target.sha256 == artifact.sha256:
            plan.warnings.append(
                f"{target.path} already matches the build artifact; "
                "the backup will hold the same bytes."
            )
        plan.actions.append(
            Action(
                id=f"{op_id}:backup",
                adapter="filesystem",
                description=f"Back up {target.path} → {backup.path}",
                params={
                    "operation": "copy",
                    "src": target.path,
                    "dst": backup.path,
                    "mode": None,
                    "expect_sha256": target.sha256,
                },
            )
        )
    elif backup.exists:
        plan.warnings.append(
            f"{target.path} is absent but a backup exists at {backup.path}; "
            "it is left untouched and will be restored by uninstall."
        )

    plan.actions.append(
        Action(
            id=f"{op_id}:install",
            adapter="filesystem",
            description=f"Install {artifact.path} → {target.path}",
            params={
                "operation": "copy",
                "src": artifact.path,
                "dst": target.path,
                "mode": EXECUTABLE_MODE,
                "expect_sha256": artifact.sha256,
            },
        )
    )

    if target.exists:
        plan.message = f"Replaced {target.path}; previous version saved to {backup.path}"
    else:
        plan.message = f"Installed {target.path}"
    return plan


def plan_uninstall(state: ObservedState, operation_id: str | None = None) -> TransitionPlan:
    """Restore the backup if there is one, otherwise remove the target."""
    op_id = operation_id or generate_operation_id()
    target, backup = state.target, state.backup
    phase = state.phase

    if not target.exists:
        plan = TransitionPlan(
            operation="uninstall",
            operation_id=op_id,
            from_phase=phase,
            to_phase=phase,
            outcome=OUTCOME_NOTHING_TO_UNINSTALL,
            message=f"No {target.path} found. Nothing to uninstall.",
        )
        if backup.exists:
            plan.warnings.append(
                f"A backup exists at {backup.path} but {target.path} is absent. "
                f"To restore it manually: sudo mv {backup.path} {target.path}"
            )
        return plan

    if backup.exists:
        return TransitionPlan(
            operation="uninstall",
            operation_id=op_id,
            from_phase=phase,
            to_phase=Phase.INSTALLED,
            outcome=OUTCOME_RESTORED,
            message=f"Restored {target.path} from backup.",
            actions=[
                Action(
                    id=f"{op_id}:restore",
                    adapter="filesystem",
                    description=f"Restore {backup.path} → {target.path}",
                    params={
                        "operation": "move",
                        "src": backup.path,
                        "dst": target.path,
                        "ensure_executable": True,
                    },
                )
            ],
        )

    return TransitionPlan(
        operation="uninstall",
        operation_id=op_id,
        from_phase=phase,
        to_phase=Phase.ABSENT,
        outcome=OUTCOME_REMOVED,
        message=f"No backup found. Removed {target.path}.",
        actions=[
            Action(
                id=f"{op_id}:remove",
                adapter="filesystem",
                description=f"Remove {target.path}",
                params={"operation": "remove", "path": target.path},
            )
        ],
    )
