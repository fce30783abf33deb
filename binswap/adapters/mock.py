"""
Mock adapter — scripted stand-in for the shell adapter.

Returns success by default. Responses can be set per action id, and a
callback can be attached to simulate side effects (a build that drops
an artifact, a toolchain that gains a target).
"""

from __future__ import annotations

from collections.abc import Callable

from binswap.adapters.base import Adapter, ExecutionContext
from binswap.core.models.action import Receipt

SideEffect = Callable[[ExecutionContext], Receipt | None]


class MockAdapter(Adapter):
    """Records every call; replays configured receipts."""

    def __init__(
        self,
        adapter_name: str = "shell",
        available: bool = True,
        default_output: str = "[mock] executed",
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._responses: dict[str, Receipt] = {}
        self._effects: dict[str, SideEffect] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def is_available(self) -> bool:
        return self._available

    def set_output(self, action_id: str, output: str) -> None:
        self._responses[action_id] = Receipt.success(
            adapter=self._name, action_id=action_id, output=output
        )

    def set_failure(self, action_id: str, error: str = "Mock failure", return_code: int = 1) -> None:
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            metadata={"return_code": return_code},
        )

    def on(self, action_id: str, effect: SideEffect) -> None:
        """Run ``effect`` when ``action_id`` executes.

        If the effect returns a Receipt it is used as the response.
        """
        self._effects[action_id] = effect

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)
        action_id = context.action.id

        effect = self._effects.get(action_id)
        if effect is not None:
            receipt = effect(context)
            if receipt is not None:
                return receipt

        if action_id in self._responses:
            return self._responses[action_id].model_copy()

        return Receipt.success(
            adapter=self._name,
            action_id=action_id,
            output=self._default_output,
            metadata={"mock": True, "return_code": 0},
        )
