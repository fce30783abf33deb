"""Adapters — the filesystem and process boundary.

Public re-exports for convenient access.
"""

from binswap.adapters.base import Adapter, ExecutionContext
from binswap.adapters.memory import MemoryFilesystemAdapter
from binswap.adapters.mock import MockAdapter
from binswap.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MemoryFilesystemAdapter",
    "MockAdapter",
]
