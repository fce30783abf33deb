"""
In-memory filesystem adapter — a virtual filesystem for tests and dry runs.

Implements the same operations as FilesystemAdapter over a dict, so the
install/uninstall state machine can be exercised without root and
without touching real paths. Failures can be injected per action.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from binswap.adapters.base import Adapter, ExecutionContext
from binswap.adapters.shell.filesystem import validate_params
from binswap.core.models.action import Action, Receipt


@dataclass
class MemoryFile:
    data: bytes
    mode: int = 0o644
    uid: int = 0

    @property
    def sha256(self) -> str:
        return hashlib.sha256(self.data).hexdigest()


class MemoryFilesystemAdapter(Adapter):
    """Dict-backed stand-in for the filesystem adapter."""

    def __init__(self, files: dict[str, bytes] | None = None):
        self._files: dict[str, MemoryFile] = {}
        self._failures: dict[str, str] = {}
        self._log: list[ExecutionContext] = []
        for path, data in (files or {}).items():
            self.write(path, data, mode=0o755)

    @property
    def name(self) -> str:
        return "filesystem"

    @property
    def call_log(self) -> list[ExecutionContext]:
        return self._log

    @property
    def mutations(self) -> list[str]:
        """Operations executed so far, excluding read-only stats."""
        return [c.action.operation for c in self._log if c.action.operation != "stat"]

    # ── Direct access for test setup / assertions ─────────────────

    def write(self, path: str, data: bytes, mode: int = 0o644, uid: int = 0) -> None:
        self._files[str(path)] = MemoryFile(data=data, mode=mode, uid=uid)

    def read(self, path: str) -> bytes | None:
        f = self._files.get(str(path))
        return f.data if f else None

    def mode(self, path: str) -> int | None:
        f = self._files.get(str(path))
        return f.mode if f else None

    def exists(self, path: str) -> bool:
        return str(path) in self._files

    def snapshot(self) -> dict[str, tuple[bytes, int]]:
        return {p: (f.data, f.mode) for p, f in self._files.items()}

    def set_failure(self, step: str, error: str = "Injected failure") -> None:
        """Fail the action whose id is ``step``.

        A bare step name such as ``backup`` also matches the planned
        mutation ``<operation id>:backup``, but never a ``stat`` probe.
        """
        self._failures[step] = error

    # ── Adapter protocol ─────────────────────────────────────────

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.action.params
        return validate_params(params.get("operation", ""), params)

    def execute(self, context: ExecutionContext) -> Receipt:
        self._log.append(context)
        action = context.action
        params = context.params

        injected = self._injected_failure(action)
        if injected:
            return Receipt.failure(adapter=self.name, action_id=action.id, error=injected)

        operation = action.operation
        if operation == "stat":
            path = str(params["path"])
            f = self._files.get(path)
            if f is None:
                return Receipt.success(
                    adapter=self.name,
                    action_id=action.id,
                    output="absent",
                    metadata={"path": path, "exists": False},
                )
            return Receipt.success(
                adapter=self.name,
                action_id=action.id,
                output="present",
                metadata={
                    "path": path,
                    "exists": True,
                    "sha256": f.sha256,
                    "mode": f.mode,
                    "size": len(f.data),
                    "uid": f.uid,
                },
            )

        if operation in ("copy", "move"):
            src, dst = str(params["src"]), str(params["dst"])
            source = self._files.get(src)
            if source is None:
                return Receipt.failure(
                    adapter=self.name, action_id=action.id, error=f"Source not found: {src}"
                )
            if operation == "copy":
                expected = params.get("expect_sha256")
                if expected and source.sha256 != expected:
                    return Receipt.failure(
                        adapter=self.name,
                        action_id=action.id,
                        error=f"Digest mismatch copying {src}",
                    )
                mode = params.get("mode")
                self._files[dst] = MemoryFile(
                    data=source.data, mode=source.mode if mode is None else mode
                )
            else:
                mode = source.mode | 0o111 if params.get("ensure_executable") else source.mode
                self._files[dst] = MemoryFile(data=source.data, mode=mode, uid=source.uid)
                del self._files[src]
            return Receipt.success(
                adapter=self.name,
                action_id=action.id,
                output=f"{operation} {src} → {dst}",
                metadata={"src": src, "dst": dst, "sha256": self._files[dst].sha256},
            )

        if operation == "remove":
            path = str(params["path"])
            if path not in self._files:
                return Receipt.failure(
                    adapter=self.name, action_id=action.id, error=f"Not found: {path}"
                )
            del self._files[path]
            return Receipt.success(adapter=self.name, action_id=action.id, output=f"Removed {path}")

        return Receipt.failure(
            adapter=self.name, action_id=action.id, error=f"Unknown operation: {operation}"
        )

    def _injected_failure(self, action: Action) -> str | None:
        for step, error in self._failures.items():
            if action.id == step:
                return error
            if action.operation != "stat" and action.id.endswith(f":{step}"):
                return error
        return None
