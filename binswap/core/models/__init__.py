"""
Domain models — Pydantic types for binswap.

    from binswap.core.models import Action, Receipt, Identity, ObservedState
"""

from binswap.core.models.action import Action, Receipt
from binswap.core.models.config import (
    InstallerConfig,
    InstallLayout,
    RemediationConfig,
    ToolchainConfig,
)
from binswap.core.models.identity import Identity
from binswap.core.models.outcome import FailureKind
from binswap.core.models.state import ObservedFile, ObservedState, Phase

__all__ = [
    "Action",
    "FailureKind",
    "Identity",
    "InstallLayout",
    "InstallerConfig",
    "ObservedFile",
    "ObservedState",
    "Phase",
    "Receipt",
    "RemediationConfig",
    "ToolchainConfig",
]
