"""Tests for BudgetLedger."""

import pytest

from agent_runtime.guards import BudgetLedger, llm_cost


@pytest.fixture
def ledger():
    return BudgetLedger()


class TestLlmCost:
    def test_pricing(self):
        assert llm_cost(1000, 0) == pytest.approx(0.003)
        assert llm_cost(0, 1000) == pytest.approx(0.015)


class TestCheckBudget:
    """Tests for BudgetLedger.check_budget()."""

    def test_no_budget_allows(self, ledger):
        decision = ledger.check_budget("agent-1", 10**9, 10**6)
        assert decision.allowed is True
        assert decision.reason == "No budget set"

    def test_within_budget(self, ledger):
        ledger.set_budget("agent-1", max_tokens=1000, max_cost_usd=1.0)
        ledger.record_usage("agent-1", 100, 0.1)

        decision = ledger.check_budget("agent-1", 50, 0.05)

        assert decision.allowed is True
        assert decision.remaining_tokens == 900
        assert decision.usage_pct == pytest.approx(15.0)

    def test_token_exhaustion(self, ledger):
        ledger.set_budget("agent-1", max_tokens=100, max_cost_usd=10.0)
        ledger.record_usage("agent-1", 90, 0.0)

        decision = ledger.check_budget("agent-1", 20)

        assert decision.allowed is False
        assert decision.reason == "Token budget exhausted"

    def test_cost_exhaustion(self, ledger):
        ledger.set_budget("agent-1", max_tokens=10**6, max_cost_usd=1.0)
        ledger.record_usage("agent-1", 0, 0.99)

        decision = ledger.check_budget("agent-1", 0, 0.02)

        assert decision.allowed is False
        assert decision.reason == "Cost budget exhausted"

    def test_pause_threshold(self, ledger):
        ledger.set_budget("agent-1", max_tokens=100, max_cost_usd=100.0)
        ledger.record_usage("agent-1", 96, 0.0)

        decision = ledger.check_budget("agent-1")

        assert decision.allowed is False
        assert decision.reason == "Pause threshold reached"

    def test_raising_budget_keeps_usage(self, ledger):
        ledger.set_budget("agent-1", max_tokens=100, max_cost_usd=1.0)
        ledger.record_usage("agent-1", 96, 0.0)
        ledger.set_budget("agent-1", max_tokens=1000, max_cost_usd=1.0)

        assert ledger.get_budget("agent-1").used_tokens == 96
        assert ledger.check_budget("agent-1").allowed is True


class TestHistory:
    """Tests for cost history and totals."""

    def test_history_without_budget(self, ledger):
        ledger.record_usage("agent-1", 10, 0.01, source="llm:reason")
        ledger.record_usage("agent-2", 20, 0.02)

        history = ledger.get_cost_history("agent-1")
        assert len(history) == 1
        assert history[0].source == "llm:reason"
        assert ledger.get_total_cost() == pytest.approx(0.03)
        assert ledger.get_total_cost("agent-2") == pytest.approx(0.02)

    def test_history_limit_keeps_latest(self, ledger):
        for i in range(5):
            ledger.record_usage("agent-1", i, 0.0)
        assert [e.tokens for e in ledger.get_cost_history(limit=2)] == [3, 4]

    def test_reset(self, ledger):
        ledger.set_budget("agent-1", 10, 1.0)
        ledger.record_usage("agent-1", 1, 0.1)
        ledger.reset()
        assert ledger.get_budget("agent-1") is None
        assert ledger.get_cost_history() == []
