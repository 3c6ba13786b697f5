"""Tests for the combined preflight check."""

from agent_runtime.guards import estimate_action_cost
from agent_runtime.models import ActionType, CircuitState, PlannedAction

SEND = PlannedAction(
    type=ActionType.CONNECTOR,
    description="Post update",
    connector_id="slack",
    action_id="slack-send",
)


class TestEstimateActionCost:
    def test_per_type(self):
        assert estimate_action_cost(PlannedAction(type=ActionType.TOOL, tool_name="x")) == (50, 0.0001)
        assert estimate_action_cost(SEND) == (0, 0.001)
        assert estimate_action_cost(PlannedAction(type=ActionType.NONE)) == (0, 0.0)


class TestPreflight:
    """Tests for Guards.preflight()."""

    def test_allows_and_takes_lock(self, guards):
        result = guards.preflight("agent-1", SEND)

        assert result.allowed is True
        assert result.blocking_reason is None
        assert [lock.resource for lock in guards.governor.get_locks()] == ["slack"]

    def test_peek_takes_no_lock(self, guards):
        result = guards.preflight("agent-1", SEND, acquire_lock=False)

        assert result.allowed is True
        assert guards.governor.get_locks() == []

    def test_open_circuit_blocks_first(self, guards):
        guards.circuit_breaker.trip(SEND.signature)
        guards.budget.set_budget("agent-1", 0, 0.0)

        result = guards.preflight("agent-1", SEND)

        assert result.allowed is False
        assert result.blocking_reason.startswith("Circuit breaker:")
        assert result.budget is None

    def test_budget_blocks_before_lock(self, guards):
        guards.budget.set_budget("agent-1", max_tokens=100, max_cost_usd=0.0005)

        result = guards.preflight("agent-1", SEND)

        assert result.allowed is False
        assert result.blocking_reason == "Budget: Cost budget exhausted"
        assert guards.governor.get_locks() == []

    def test_lock_denial(self, guards):
        guards.governor.acquire("slack", "connector", "agent-2", priority=5)

        result = guards.preflight("agent-1", SEND, priority=1)

        assert result.allowed is False
        assert result.blocking_reason.startswith("Lock:")
        assert result.lock.holder_agent_id == "agent-2"

    def test_denial_returns_half_open_probe(self, guards, monotonic):
        guards.circuit_breaker.trip(SEND.signature)
        monotonic.advance(61)
        guards.governor.acquire("slack", "connector", "agent-2", priority=5)

        result = guards.preflight("agent-1", SEND)

        assert result.allowed is False
        assert result.circuit.state == CircuitState.HALF_OPEN
        assert guards.circuit_breaker.check(SEND.signature).allowed is True

    def test_reset(self, guards):
        guards.preflight("agent-1", SEND)
        guards.circuit_breaker.trip("tool:x")
        guards.reset()
        assert guards.governor.get_locks() == []
        assert guards.circuit_breaker.snapshot() == {}
