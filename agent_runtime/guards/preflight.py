"""Combined pre-execution check: circuit breaker, then budget, then lock."""

from ..models import ActionType, CircuitState, PlannedAction, PreflightResult
from .budget import (
    CONNECTOR_CALL_COST,
    TOOL_CALL_COST,
    TOOL_CALL_TOKENS,
    BudgetLedger,
)
from .circuit_breaker import CircuitBreaker
from .governor import ActionGovernor


def estimate_action_cost(action: PlannedAction) -> tuple[int, float]:
    """(tokens, usd) charged for one action before it runs."""
    if action.type == ActionType.TOOL:
        return TOOL_CALL_TOKENS, TOOL_CALL_COST
    if action.type == ActionType.CONNECTOR:
        return 0, CONNECTOR_CALL_COST
    return 0, 0.0


class Guards:
    """The three independent guards, evaluated together before side effects."""

    def __init__(
        self,
        circuit_breaker: CircuitBreaker | None = None,
        budget: BudgetLedger | None = None,
        governor: ActionGovernor | None = None,
    ):
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self.budget = budget or BudgetLedger()
        self.governor = governor or ActionGovernor()

    def preflight(
        self,
        agent_id: str,
        action: PlannedAction,
        priority: int = 1,
        acquire_lock: bool = True,
    ) -> PreflightResult:
        """
        Evaluate guards in order; the first denial short-circuits.

        With ``acquire_lock`` the lock is taken on success and the caller must
        release it. Without it the lock and circuit are only inspected.
        """
        circuit = self.circuit_breaker.check(action.signature, consume=acquire_lock)
        if not circuit.allowed:
            return PreflightResult(
                allowed=False,
                circuit=circuit,
                blocking_reason=f"Circuit breaker: {circuit.reason}",
            )

        tokens, cost = estimate_action_cost(action)
        budget = self.budget.check_budget(agent_id, tokens, cost)
        if not budget.allowed:
            self._release_probe(action, circuit, acquire_lock)
            return PreflightResult(
                allowed=False,
                circuit=circuit,
                budget=budget,
                blocking_reason=f"Budget: {budget.reason}",
            )

        if acquire_lock:
            lock = self.governor.acquire(action.resource, action.type.value, agent_id, priority)
        else:
            lock = self.governor.check_resource(action.resource, agent_id, priority)
        if not lock.allowed:
            self._release_probe(action, circuit, acquire_lock)
            return PreflightResult(
                allowed=False,
                circuit=circuit,
                budget=budget,
                lock=lock,
                blocking_reason=f"Lock: {lock.reason}",
            )

        return PreflightResult(allowed=True, circuit=circuit, budget=budget, lock=lock)

    def _release_probe(self, action: PlannedAction, circuit, consumed: bool) -> None:
        if consumed and circuit.state == CircuitState.HALF_OPEN:
            self.circuit_breaker.release_probe(action.signature)

    def reset(self) -> None:
        self.circuit_breaker.reset()
        self.budget.reset()
        self.governor.reset()
