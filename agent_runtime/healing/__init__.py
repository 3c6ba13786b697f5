"""Self-healing module."""

from .classifier import classify_error, repair_strategy
from .engine import ISelfHealingEngine, SelfHealingEngine, context_from_error
from .repair_log import RepairLog

__all__ = [
    "ISelfHealingEngine",
    "RepairLog",
    "SelfHealingEngine",
    "classify_error",
    "context_from_error",
    "repair_strategy",
]
