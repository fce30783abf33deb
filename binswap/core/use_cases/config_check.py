"""
Config check use case — validate binswap.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from binswap.core.config.loader import ConfigError, LoadedConfig, load_config


@dataclass
class ConfigCheckResult:
    valid: bool = False
    loaded: LoadedConfig | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        config_path = self.loaded.config_path if self.loaded else None
        layout = self.loaded.layout if self.loaded and self.valid else None
        return {
            "valid": self.valid,
            "config_path": str(config_path) if config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "install_path": str(layout.install_path) if layout else None,
            "backup_path": str(layout.backup_path) if layout else None,
            "artifact_path": str(layout.artifact_path) if layout else None,
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate configuration and report semantic problems."""
    result = ConfigCheckResult()

    try:
        loaded = load_config(config_path)
    except ConfigError as e:
        result.errors.append(str(e))
        return result
    result.loaded = loaded

    if loaded.config_path is None:
        result.warnings.append("No binswap.yml found — using built-in defaults.")

    layout = loaded.layout
    install, backup = layout.install_path, layout.backup_path

    if install.parent != backup.parent:
        result.warnings.append(
            f"Backup directory {backup.parent} differs from install directory "
            f"{install.parent}; restoring may not be an atomic rename."
        )

    if not install.parent.is_dir():
        result.warnings.append(f"Install directory does not exist: {install.parent}")

    if not layout.project_dir.is_dir():
        result.errors.append(f"Project directory does not exist: {layout.project_dir}")

    result.valid = not result.errors
    return result
