"""
Shell command adapter — spawn a child process and wait for it.

Commands are argv lists, never shell strings. When the action carries a
``run_as`` identity the child is started with that user's uid, gid and
supplementary groups. This is how root-invoked runs keep the build and
the toolchain unprivileged.

Action params:
    command (list[str]): argv to execute.
    env (dict): Complete environment for the child (default: inherit).
    cwd (str): Working directory.
    timeout (int): Seconds before the child is killed (default: 300).
    stream (bool): Let output go straight to the terminal instead of
        capturing it (default: False).
    run_as (dict): {"name", "uid", "gid"} to drop to before exec.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
from pathlib import Path
from typing import Any

from binswap.adapters.base import Adapter, ExecutionContext
from binswap.core.models.action import Receipt

logger = logging.getLogger(__name__)

_OUTPUT_TAIL = 4000


class ShellCommandAdapter(Adapter):
    """Run argv commands, optionally as another user."""

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        command = context.action.params.get("command")
        if not command or not isinstance(command, list):
            return False, "Missing required param: 'command' (argv list)"

        cwd = context.action.params.get("cwd")
        if cwd and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"

        run_as = context.action.params.get("run_as")
        if run_as is not None and not {"uid", "gid"} <= set(run_as):
            return False, "run_as needs 'uid' and 'gid'"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        command: list[str] = [str(part) for part in params["command"]]
        timeout = params.get("timeout", 300)
        stream = bool(params.get("stream", False))
        cwd = params.get("cwd")
        env = params.get("env")

        kwargs: dict[str, Any] = {}
        run_as = params.get("run_as")
        if run_as is not None:
            kwargs.update(_credentials(run_as))

        display = shlex.join(command)
        logger.debug("Executing: %s (cwd=%s, as=%s)", display, cwd, run_as or "self")
        start = time.monotonic()

        try:
            result = subprocess.run(
                command,
                cwd=cwd,
                env=env,
                capture_output=not stream,
                text=True,
                timeout=timeout,
                **kwargs,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command timed out after {timeout}s: {display}",
                metadata={"command": command, "timeout": timeout},
            )
        except FileNotFoundError:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command not found: {command[0]}",
                metadata={"command": command, "return_code": 127},
            )
        except (OSError, subprocess.SubprocessError) as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command execution error: {e}",
                metadata={"command": command},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stdout = (result.stdout or "").strip()[-_OUTPUT_TAIL:]
        stderr = (result.stderr or "").strip()[-_OUTPUT_TAIL:]
        metadata = {
            "command": command,
            "return_code": result.returncode,
            "stderr": stderr,
        }

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=stdout,
                duration_ms=elapsed_ms,
                metadata=metadata,
            )
        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=stderr or f"Command exited with code {result.returncode}: {display}",
            output=stdout,
            duration_ms=elapsed_ms,
            metadata=metadata,
        )


def _credentials(run_as: dict[str, Any]) -> dict[str, Any]:
    """subprocess.run kwargs that switch the child to ``run_as``."""
    uid = int(run_as["uid"])
    gid = int(run_as["gid"])
    groups = [gid]
    name = run_as.get("name")
    if name:
        try:
            groups = os.getgrouplist(name, gid)
        except OSError as e:
            logger.warning("Cannot resolve groups for %s: %s", name, e)
    return {"user": uid, "group": gid, "extra_groups": groups}
