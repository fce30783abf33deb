"""
Failure kinds — why an install or uninstall stopped.
"""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Every hard gate maps to exactly one of these."""

    CONFIG_ERROR = "config_error"
    PRIVILEGE_REQUIRED = "privilege_required"
    MISSING_TOOLCHAIN = "missing_toolchain"
    TARGET_INSTALL_FAILURE = "target_install_failure"
    MISSING_SYSTEM_COMPILER = "missing_system_compiler"
    BUILD_FAILURE = "build_failure"
    LOCK_HELD = "lock_held"
    TRANSITION_FAILURE = "transition_failure"


# Outcome names reported by transitions
OUTCOME_INSTALLED = "installed"
OUTCOME_RESTORED = "restored"
OUTCOME_REMOVED = "removed"
OUTCOME_NOTHING_TO_UNINSTALL = "nothing_to_uninstall"
