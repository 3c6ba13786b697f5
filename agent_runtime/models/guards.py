"""Guard decision and bookkeeping models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class ConflictPolicy(str, Enum):
    PRIORITY_BASED = "priority_based"
    FIRST_COME_FIRST_SERVED = "first_come_first_served"
    ESCALATE_TO_USER = "escalate_to_user"


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    reason: str


@dataclass(frozen=True)
class CircuitDecision(GuardDecision):
    state: CircuitState = CircuitState.CLOSED


@dataclass(frozen=True)
class BudgetDecision(GuardDecision):
    remaining_tokens: int | None = None
    remaining_cost_usd: float | None = None
    usage_pct: float = 0.0


@dataclass(frozen=True)
class LockDecision(GuardDecision):
    wait_ms: int = 0
    conflict_id: str | None = None
    holder_agent_id: str | None = None


@dataclass(frozen=True)
class PreflightResult:
    allowed: bool
    circuit: CircuitDecision
    budget: BudgetDecision | None = None
    lock: LockDecision | None = None
    blocking_reason: str | None = None


@dataclass
class AgentBudget:
    agent_id: str
    max_tokens: int
    max_cost_usd: float
    warning_threshold_pct: float = 80.0
    pause_threshold_pct: float = 95.0
    used_tokens: int = 0
    used_cost_usd: float = 0.0


@dataclass(frozen=True)
class CostEntry:
    agent_id: str
    tokens: int
    cost_usd: float
    source: str
    timestamp: datetime


@dataclass(frozen=True)
class ActionLock:
    resource: str
    kind: str
    agent_id: str
    priority: int
    acquired_at: float
    expires_at: float
    holds: int = 1


@dataclass
class LockConflict:
    id: str
    resource: str
    holder_agent_id: str
    contenders: list[str]
    created_at: datetime
    resolved: bool = False
