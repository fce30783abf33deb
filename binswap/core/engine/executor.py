"""
Transition executor — observe the filesystem and run a plan.

Flow:
    observe (stat target + backup) → plan (pure) → execute in order

Execution stops at the first failed action. There is no rollback:
because every copy is atomic, a failure leaves the destination as it
was, and a failed backup means the target was never overwritten.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from binswap.adapters.registry import AdapterRegistry
from binswap.core.engine.planner import TransitionPlan
from binswap.core.models.action import Action, Receipt
from binswap.core.models.config import InstallLayout
from binswap.core.models.state import ObservedFile, ObservedState

logger = logging.getLogger(__name__)


@dataclass
class TransitionReport:
    """Receipts from executing a plan."""

    operation_id: str = ""
    operation: str = ""
    receipts: list[Receipt] = field(default_factory=list)
    failed_action: Action | None = None
    dry_run: bool = False

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.receipts if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    @property
    def error(self) -> str | None:
        for receipt in self.receipts:
            if receipt.failed:
                return receipt.error
        return None

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "operation": self.operation,
            "status": self.status,
            "dry_run": self.dry_run,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "failed_action": self.failed_action.id if self.failed_action else None,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


def probe(registry: AdapterRegistry, path: str, action_id: str) -> ObservedFile | None:
    """Stat one path through the filesystem adapter.

    Returns None when the probe itself failed (as opposed to the path
    being absent).
    """
    receipt = registry.execute_action(
        Action(
            id=action_id,
            adapter="filesystem",
            description=f"Inspect {path}",
            params={"operation": "stat", "path": path},
        )
    )
    if receipt.failed:
        logger.error("Cannot inspect %s: %s", path, receipt.error)
        return None
    return ObservedFile.from_metadata(path, receipt.metadata)


def observe_state(
    registry: AdapterRegistry,
    layout: InstallLayout,
) -> tuple[ObservedState | None, str | None]:
    """Observe the install target and backup slot.

    Returns:
        (state, None) on success, (None, error) if either probe failed.
        A failed probe must not be mistaken for "absent": that would
        skip the backup and lose the original.
    """
    target = probe(registry, str(layout.install_path), "observe:target")
    if target is None:
        return None, f"Cannot inspect {layout.install_path}"
    backup = probe(registry, str(layout.backup_path), "observe:backup")
    if backup is None:
        return None, f"Cannot inspect {layout.backup_path}"

    state = ObservedState(target=target, backup=backup)
    logger.debug(
        "Observed %s: target=%s backup=%s",
        state.phase.value,
        target.short_digest(),
        backup.short_digest(),
    )
    return state, None


def execute_plan(
    plan: TransitionPlan,
    registry: AdapterRegistry,
    dry_run: bool = False,
) -> TransitionReport:
    """Execute plan actions in order, stopping at the first failure."""
    report = TransitionReport(
        operation_id=plan.operation_id,
        operation=plan.operation,
        dry_run=dry_run,
    )

    for action in plan.actions:
        receipt = registry.execute_action(action, dry_run=dry_run)
        report.receipts.append(receipt)

        marker = "✓" if receipt.ok else "✗" if receipt.failed else "⊘"
        logger.info("%s %s → %s", marker, action.description or action.id, receipt.status)

        if receipt.failed:
            report.failed_action = action
            logger.error("%s failed: %s", action.id, receipt.error)
            break

    return report
