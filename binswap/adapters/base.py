"""
Adapter base — the contract between the engine and the outside world.

Everything that touches the filesystem or spawns a process goes through
an adapter. The planner only produces Actions; adapters turn them into
side effects and report back with Receipts. Swapping the registered
adapter (e.g. an in-memory filesystem) is how the state machine gets
tested without root.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from binswap.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to execute an action."""

    action: Action
    dry_run: bool = False
    params: dict[str, Any] = Field(default_factory=dict)


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters NEVER raise — failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier ('filesystem', 'shell')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the adapter can run at all on this host."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Check the action's params.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Carry out the action and return a receipt. Never raises."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
