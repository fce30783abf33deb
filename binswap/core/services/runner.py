"""
Privileged command runner — run a command as a given identity.

When the process is root and the target identity is somebody else,
the command is executed with that user's credentials. Otherwise it
runs directly in the current context.

No login shell is involved: the child gets an explicit environment
built from the user's passwd entry and the toolchain config, so
``~/.cargo/bin`` is found without sourcing profile scripts, and root's
own variables (SUDO_*, root's PATH) never leak into the build.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from binswap.adapters.registry import AdapterRegistry
from binswap.core.models.action import Action, Receipt
from binswap.core.models.config import ToolchainConfig
from binswap.core.models.identity import Identity

logger = logging.getLogger(__name__)

# Variables carried over from the caller's environment
_PASSTHROUGH = ("LANG", "LANGUAGE", "TERM", "COLORTERM", "NO_COLOR", "TZ")


def expand_user_dir(directory: str, home: str) -> str:
    """Expand a leading ``~`` against ``home`` (not the process's HOME)."""
    if home and (directory == "~" or directory.startswith("~/")):
        return home + directory[1:]
    return directory


def user_environment(
    identity: Identity,
    toolchain: ToolchainConfig,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Explicit environment for commands run on behalf of ``identity``."""
    base = os.environ if base_env is None else base_env
    env = {k: v for k, v in base.items() if k in _PASSTHROUGH or k.startswith("LC_")}

    home = identity.home or base.get("HOME", "")
    user_dirs = [expand_user_dir(d, home) for d in toolchain.user_path]
    user_dirs = [d for d in user_dirs if not d.startswith("~")]

    env["PATH"] = os.pathsep.join([*user_dirs, toolchain.system_path])
    env["USER"] = identity.name
    env["LOGNAME"] = identity.name
    if identity.shell:
        env["SHELL"] = identity.shell
    if home:
        env["HOME"] = home
        same_home = base.get("HOME") == home
        for key, default in (("CARGO_HOME", ".cargo"), ("RUSTUP_HOME", ".rustup")):
            if same_home and base.get(key):
                env[key] = base[key]
            else:
                env[key] = os.path.join(home, default)

    return env


class CommandRunner:
    """Dispatches commands through the shell adapter as a chosen identity."""

    def __init__(
        self,
        registry: AdapterRegistry,
        process: Identity,
        toolchain: ToolchainConfig,
        base_env: Mapping[str, str] | None = None,
    ):
        self.registry = registry
        self.process = process
        self.toolchain = toolchain
        self._base_env = base_env

    def should_drop(self, identity: Identity) -> bool:
        """Drop privilege only when root is running on someone else's behalf."""
        return self.process.is_root and identity.uid != self.process.uid

    def environment_for(self, identity: Identity) -> dict[str, str]:
        return user_environment(identity, self.toolchain, self._base_env)

    def run_as(
        self,
        identity: Identity,
        command: list[str],
        *,
        action_id: str,
        description: str = "",
        cwd: str | None = None,
        timeout: int = 300,
        stream: bool = False,
    ) -> Receipt:
        """Run ``command`` as ``identity`` and block until it exits."""
        params: dict = {
            "command": list(command),
            "env": self.environment_for(identity),
            "timeout": timeout,
            "stream": stream,
        }
        if cwd:
            params["cwd"] = cwd

        drop = self.should_drop(identity)
        if drop:
            params["run_as"] = {"name": identity.name, "uid": identity.uid, "gid": identity.gid}

        logger.info(
            "Running %s as %s%s",
            " ".join(command),
            identity.name,
            " (dropped from root)" if drop else "",
        )

        action = Action(
            id=action_id,
            adapter="shell",
            description=description or " ".join(command),
            params=params,
        )
        receipt = self.registry.execute_action(action)
        receipt.metadata.setdefault("ran_as", identity.name)
        receipt.metadata.setdefault("dropped_privileges", drop)
        return receipt
