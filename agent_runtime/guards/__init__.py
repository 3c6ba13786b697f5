"""Guard subsystem: circuit breaker, budget ledger, action locks."""

from .budget import BudgetLedger, llm_cost
from .circuit_breaker import CircuitBreaker
from .governor import ActionGovernor
from .preflight import Guards, estimate_action_cost

__all__ = [
    "ActionGovernor",
    "BudgetLedger",
    "CircuitBreaker",
    "Guards",
    "estimate_action_cost",
    "llm_cost",
]
