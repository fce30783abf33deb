"""
Shared test fixtures — a sandboxed project over a virtual filesystem.

The install target and backup slot live in a MemoryFilesystemAdapter,
so the transitions run as "root" (euid=0 is injected) without touching
/usr/local/bin. The shell is a MockAdapter; the toolchain binaries that
preflight looks up with ``which`` are real stub scripts under tmp_path.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pytest
import yaml

from binswap.adapters.memory import MemoryFilesystemAdapter
from binswap.adapters.mock import MockAdapter
from binswap.adapters.registry import AdapterRegistry

TARGET = "x86_64-unknown-linux-musl"
INSTALL_PATH = "/usr/local/bin/ls"
BACKUP_PATH = "/usr/local/bin/ls.backup"

ORIGINAL = b"\x7fELF distro ls"
BUILT = b"\x7fELF static musl ls"

# A sudo context whose user has no passwd entry, so the SUDO_UID
# fallback is used and the uid is the same on every machine.
BUILDER = "binswap-test-builder"
BUILDER_UID = 4242
SUDO_ENV = {
    "SUDO_USER": BUILDER,
    "SUDO_UID": str(BUILDER_UID),
    "SUDO_GID": str(BUILDER_UID),
    "HOME": f"/home/{BUILDER}",
    "PATH": "/usr/sbin:/usr/bin:/sbin:/bin",
    "LANG": "C.UTF-8",
}


def write_executable(path: Path, body: str = "exit 0\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!/bin/sh\n{body}")
    path.chmod(0o755)
    return path


def calls_for(adapter: MockAdapter, action_id: str) -> list:
    return [c for c in adapter.call_log if c.action.id == action_id]


def called_ids(adapter: MockAdapter) -> list[str]:
    return [c.action.id for c in adapter.call_log]


@dataclass
class Sandbox:
    root: Path
    fs: MemoryFilesystemAdapter
    shell: MockAdapter
    registry: AdapterRegistry
    environ: dict[str, str]
    user_bin: Path
    system_bin: Path
    config_path: Path | None = None

    @property
    def artifact_path(self) -> str:
        return str(self.root / "target" / TARGET / "release" / "ls")

    @property
    def lock_path(self) -> Path:
        return self.root / "locks" / "ls.lock"

    @property
    def audit_path(self) -> Path:
        return self.root / ".state" / "audit.ndjson"

    def write_config(self, **overrides) -> Path:
        data = {
            "install_path": INSTALL_PATH,
            "backup_path": BACKUP_PATH,
            "lock_path": str(self.lock_path),
            "toolchain": {
                "user_path": [str(self.user_bin)],
                "system_path": str(self.system_bin),
            },
        }
        data.update(overrides)
        self.config_path = self.root / "binswap.yml"
        self.config_path.write_text(yaml.safe_dump(data))
        return self.config_path

    def build_produces_nothing(self) -> None:
        self.shell.on("build", lambda _ctx: None)

    def build_produces(self, data: bytes = BUILT) -> None:
        """Make the mocked build drop ``data`` at the artifact path."""
        artifact = self.artifact_path

        def _effect(_ctx):
            self.fs.write(artifact, data, mode=0o755)

        self.shell.on("build", _effect)

    def install(self, **kwargs):
        from binswap.core.use_cases.install import run_install

        kwargs.setdefault("euid", 0)
        return run_install(
            self.config_path, registry=self.registry, environ=self.environ, **kwargs
        )

    def uninstall(self, **kwargs):
        from binswap.core.use_cases.uninstall import run_uninstall

        kwargs.setdefault("euid", 0)
        return run_uninstall(
            self.config_path, registry=self.registry, environ=self.environ, **kwargs
        )


@pytest.fixture
def sandbox(tmp_path: Path) -> Sandbox:
    """A project whose toolchain is present and whose build succeeds."""
    user_bin = tmp_path / "home" / ".cargo" / "bin"
    system_bin = tmp_path / "system" / "bin"
    write_executable(user_bin / "cargo")
    write_executable(system_bin / "musl-gcc")

    fs = MemoryFilesystemAdapter()
    shell = MockAdapter("shell")
    registry = AdapterRegistry()
    registry.register(fs)
    registry.register(shell)

    sb = Sandbox(
        root=tmp_path,
        fs=fs,
        shell=shell,
        registry=registry,
        environ=dict(SUDO_ENV),
        user_bin=user_bin,
        system_bin=system_bin,
    )
    shell.set_output("preflight:target-list", f"{TARGET}\n")
    sb.build_produces()
    sb.write_config()
    return sb
