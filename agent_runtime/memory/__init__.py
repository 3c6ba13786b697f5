"""Memory module."""

from .lifecycle import (
    MemoryLifecycleConfig,
    importance_score,
    memory_health_report,
    prune_agent_memories,
)
from .store import IMemoryStore, MemoryStore, estimate_tokens

__all__ = [
    "IMemoryStore",
    "MemoryStore",
    "MemoryLifecycleConfig",
    "estimate_tokens",
    "importance_score",
    "memory_health_report",
    "prune_agent_memories",
]
