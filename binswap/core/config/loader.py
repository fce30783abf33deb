"""
Configuration loader — reads binswap.yml into an InstallerConfig.

The file is optional. Without one, the built-in defaults apply, the
current directory is the project directory (where the build runs and
the artifact is expected), and no audit ledger is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError

from binswap.core.models.config import InstallerConfig, InstallLayout

logger = logging.getLogger(__name__)

CONFIG_FILE = "binswap.yml"


class ConfigError(Exception):
    """Raised when the configuration file is unreadable or invalid."""


@dataclass
class LoadedConfig:
    """A validated config plus where it came from."""

    config: InstallerConfig
    config_path: Path | None
    project_dir: Path

    @property
    def layout(self) -> InstallLayout:
        return self.config.resolve_layout(self.project_dir)


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for binswap.yml starting from the given directory, walking up."""
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_config(path: Path | None = None, start_dir: Path | None = None) -> LoadedConfig:
    """Load and validate configuration.

    Args:
        path: Explicit config file. If None, searches upward from start_dir.
        start_dir: Where to start searching (default: cwd).

    Returns:
        LoadedConfig. Defaults are used when no file is found.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None:
        path = find_config_file(start_dir)
        if path is None:
            project_dir = (start_dir or Path.cwd()).resolve()
            logger.debug("No %s found — using defaults (project dir %s)", CONFIG_FILE, project_dir)
            # No project file, no ledger
            config = InstallerConfig(audit_log="")
            return LoadedConfig(config=config, config_path=None, project_dir=project_dir)

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = InstallerConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    try:
        unknown = config.unknown_placeholders()
    except ValueError as e:
        raise ConfigError(f"Malformed template in {path}: {e}") from e
    if unknown:
        raise ConfigError(
            f"Unknown placeholders in {path}: {', '.join(sorted(unknown))} "
            "(only {tool} and {target} are supported)"
        )

    base = path.parent.resolve()
    if config.project_dir:
        project_dir = Path(config.project_dir).expanduser()
        if not project_dir.is_absolute():
            project_dir = (base / project_dir).resolve()
    else:
        project_dir = base

    logger.info("Loaded config for '%s' (%s) from %s", config.tool, config.target, path)
    return LoadedConfig(config=config, config_path=path, project_dir=project_dir)
