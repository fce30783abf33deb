"""
Adapter registry — central dispatch for actions.

The engine and services never call adapters directly; they hand an
Action to the registry, which validates it, honors dry-run, executes
it, and times it.
"""

from __future__ import annotations

import logging
import time

from binswap.adapters.base import Adapter, ExecutionContext
from binswap.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Name → adapter mapping plus the dispatch loop."""

    def __init__(self) -> None:
        self._adapters: dict[str, Adapter] = {}

    @classmethod
    def default(cls) -> AdapterRegistry:
        """Registry wired to the real filesystem and real subprocesses."""
        from binswap.adapters.shell.command import ShellCommandAdapter
        from binswap.adapters.shell.filesystem import FilesystemAdapter

        registry = cls()
        registry.register(FilesystemAdapter())
        registry.register(ShellCommandAdapter())
        return registry

    def register(self, adapter: Adapter) -> None:
        name = adapter.name
        if name in self._adapters:
            logger.debug("Replacing adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered adapter: %s", name)

    def execute_action(self, action: Action, dry_run: bool = False) -> Receipt:
        """Validate and execute one action. Never raises.

        In dry-run mode the action is validated and a skip receipt is
        returned. Read-only filesystem probes (``stat``) still run so
        that dry-run plans reflect the real state.
        """
        start_time = time.monotonic()

        context = ExecutionContext(action=action, dry_run=dry_run, params=action.params)

        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )
        if not adapter.is_available():
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Adapter '{action.adapter}' is not available on this host",
            )

        try:
            is_valid, error_msg = adapter.validate(context)
        except Exception as e:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation error: {e}",
            )
        if not is_valid:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation failed: {error_msg}",
            )

        if dry_run and action.operation != "stat":
            return Receipt.skip(
                adapter=action.adapter,
                action_id=action.id,
                reason=f"[dry-run] {action.description or action.id}",
                metadata={"dry_run": True},
            )

        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised during execution: %s", action.adapter, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )

        receipt.duration_ms = int((time.monotonic() - start_time) * 1000)
        return receipt
