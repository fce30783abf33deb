"""
Installer configuration — what gets built, and where it gets installed.

Loaded from binswap.yml (all keys optional). The defaults describe
the Rust ``ls`` built as a static musl binary and installed over
/usr/local/bin/ls.
"""

from __future__ import annotations

import os
import string
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Placeholders allowed in artifact / command templates
TEMPLATE_FIELDS = frozenset({"tool", "target"})

DEFAULT_SYSTEM_PATH = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"


def template_fields(template: str) -> set[str]:
    """Names of the ``{placeholders}`` used in a template string."""
    return {name for _, name, _, _ in string.Formatter().parse(template) if name}


def _normalized(path: str) -> Path:
    return Path(os.path.normpath(path))


class ToolchainConfig(BaseModel):
    """External build tooling probed by preflight."""

    model_config = ConfigDict(extra="forbid")

    build_tool: str = "cargo"
    target_list_command: list[str] = Field(
        default_factory=lambda: ["rustup", "target", "list", "--installed"]
    )
    target_add_command: list[str] = Field(
        default_factory=lambda: ["rustup", "target", "add", "{target}"]
    )
    system_compiler: str = "musl-gcc"

    # Prepended to PATH for the invoking user; "~" is the user's home
    user_path: list[str] = Field(default_factory=lambda: ["~/.cargo/bin"])
    system_path: str = DEFAULT_SYSTEM_PATH


class RemediationConfig(BaseModel):
    """Commands printed when a preflight check fails."""

    model_config = ConfigDict(extra="forbid")

    build_tool: list[str] = Field(
        default_factory=lambda: [
            "Rust (cargo) not found. Install Rust first:",
            "  curl https://sh.rustup.rs -sSf | sh",
        ]
    )
    system_compiler: list[str] = Field(
        default_factory=lambda: [
            "musl-tools not found.",
            "On Ubuntu run:",
            "  sudo apt install musl-tools",
        ]
    )


class InstallLayout(BaseModel):
    """Absolute paths the transitions operate on."""

    model_config = ConfigDict(frozen=True)

    install_path: Path
    backup_path: Path
    artifact_path: Path
    lock_path: Path
    project_dir: Path
    audit_path: Path | None = None


class InstallerConfig(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1

    tool: str = "ls"
    target: str = "x86_64-unknown-linux-musl"

    install_path: str = "/usr/local/bin/ls"
    backup_path: str = "/usr/local/bin/ls.backup"

    project_dir: str | None = None
    artifact: str = "target/{target}/release/{tool}"
    build_command: list[str] = Field(
        default_factory=lambda: ["cargo", "build", "--release", "--target", "{target}"]
    )
    build_timeout: int = 1800

    lock_path: str | None = None
    audit_log: str = ".state/audit.ndjson"

    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    remediation: RemediationConfig = Field(default_factory=RemediationConfig)

    @field_validator("tool", "target")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("install_path", "backup_path")
    @classmethod
    def _absolute(cls, value: str) -> str:
        if not Path(value).is_absolute():
            raise ValueError(f"must be an absolute path, got {value!r}")
        return value

    @field_validator("lock_path")
    @classmethod
    def _absolute_or_unset(cls, value: str | None) -> str | None:
        if value and not Path(value).is_absolute():
            raise ValueError(f"must be an absolute path, got {value!r}")
        return value

    @field_validator("build_command")
    @classmethod
    def _command_not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("build_command must not be empty")
        return value

    @field_validator("build_timeout")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("build_timeout must be positive")
        return value

    @model_validator(mode="after")
    def _distinct_paths(self) -> InstallerConfig:
        """The install target, backup slot and lock file must be three files."""
        install = _normalized(self.install_path)
        backup = _normalized(self.backup_path)
        if install == backup:
            raise ValueError(f"install_path and backup_path are the same: {install}")
        lock = self.lock_file()
        if lock in (install, backup):
            raise ValueError(f"lock_path collides with an install/backup path: {lock}")
        return self

    # ── Template expansion ───────────────────────────────────────

    def expand(self, template: str) -> str:
        """Fill ``{tool}`` / ``{target}`` into a template string."""
        return template.format(tool=self.tool, target=self.target)

    def expand_command(self, command: list[str]) -> list[str]:
        return [self.expand(part) for part in command]

    def unknown_placeholders(self) -> set[str]:
        """Placeholders used in templates that expand() cannot fill."""
        used = template_fields(self.artifact)
        for command in (
            self.build_command,
            self.toolchain.target_list_command,
            self.toolchain.target_add_command,
        ):
            for part in command:
                used |= template_fields(part)
        return used - TEMPLATE_FIELDS

    # ── Layout ───────────────────────────────────────────────────

    def lock_file(self) -> Path:
        if self.lock_path:
            return _normalized(self.lock_path)
        install_path = _normalized(self.install_path)
        return install_path.parent / f".{install_path.name}.binswap.lock"

    def resolve_layout(self, project_dir: Path) -> InstallLayout:
        """Resolve every path against the project directory."""
        audit_path: Path | None = None
        if self.audit_log:
            audit_path = Path(self.audit_log)
            if not audit_path.is_absolute():
                audit_path = project_dir / audit_path

        return InstallLayout(
            install_path=Path(self.install_path),
            backup_path=Path(self.backup_path),
            artifact_path=project_dir / self.expand(self.artifact),
            lock_path=self.lock_file(),
            project_dir=project_dir,
            audit_path=audit_path,
        )
