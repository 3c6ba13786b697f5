"""Token and cost ledger with per-agent ceilings."""

from datetime import datetime, timezone

from ..logging_config import get_logger
from ..models import AgentBudget, BudgetDecision, CostEntry

logger = get_logger(__name__)

# USD per 1K tokens
INPUT_COST_PER_1K = 0.003
OUTPUT_COST_PER_1K = 0.015
# Flat per-call estimates used before acting
TOOL_CALL_TOKENS = 50
TOOL_CALL_COST = 0.0001
CONNECTOR_CALL_COST = 0.001


def llm_cost(input_tokens: int, output_tokens: int) -> float:
    return (input_tokens * INPUT_COST_PER_1K + output_tokens * OUTPUT_COST_PER_1K) / 1000


class BudgetLedger:
    """Tracks consumption against optional per-agent budgets."""

    def __init__(self):
        self._budgets: dict[str, AgentBudget] = {}
        self._history: list[CostEntry] = []

    def set_budget(
        self,
        agent_id: str,
        max_tokens: int,
        max_cost_usd: float,
        warning_threshold_pct: float = 80.0,
        pause_threshold_pct: float = 95.0,
    ) -> None:
        existing = self._budgets.get(agent_id)
        self._budgets[agent_id] = AgentBudget(
            agent_id=agent_id,
            max_tokens=max_tokens,
            max_cost_usd=max_cost_usd,
            warning_threshold_pct=warning_threshold_pct,
            pause_threshold_pct=pause_threshold_pct,
            used_tokens=existing.used_tokens if existing else 0,
            used_cost_usd=existing.used_cost_usd if existing else 0.0,
        )

    def get_budget(self, agent_id: str) -> AgentBudget | None:
        return self._budgets.get(agent_id)

    def remove_budget(self, agent_id: str) -> None:
        self._budgets.pop(agent_id, None)

    def record_usage(self, agent_id: str, tokens: int, cost_usd: float, source: str = "llm") -> None:
        self._history.append(
            CostEntry(
                agent_id=agent_id,
                tokens=tokens,
                cost_usd=cost_usd,
                source=source,
                timestamp=datetime.now(timezone.utc),
            )
        )
        budget = self._budgets.get(agent_id)
        if budget is None:
            return
        budget.used_tokens += tokens
        budget.used_cost_usd += cost_usd

        pct = self._usage_pct(budget, 0, 0.0)
        if pct >= budget.warning_threshold_pct:
            logger.warning("Agent %s at %.1f%% of budget", agent_id, pct)

    def check_budget(
        self, agent_id: str, estimated_tokens: int = 0, estimated_cost_usd: float = 0.0
    ) -> BudgetDecision:
        budget = self._budgets.get(agent_id)
        if budget is None:
            return BudgetDecision(True, "No budget set")

        remaining_tokens = budget.max_tokens - budget.used_tokens
        remaining_cost = budget.max_cost_usd - budget.used_cost_usd
        pct = self._usage_pct(budget, estimated_tokens, estimated_cost_usd)

        if budget.used_tokens + estimated_tokens > budget.max_tokens:
            reason = "Token budget exhausted"
        elif budget.used_cost_usd + estimated_cost_usd > budget.max_cost_usd:
            reason = "Cost budget exhausted"
        elif pct >= budget.pause_threshold_pct:
            reason = "Pause threshold reached"
        else:
            return BudgetDecision(True, "Within budget", remaining_tokens, remaining_cost, pct)

        return BudgetDecision(False, reason, remaining_tokens, remaining_cost, pct)

    def get_cost_history(self, agent_id: str | None = None, limit: int = 100) -> list[CostEntry]:
        entries = [e for e in self._history if agent_id is None or e.agent_id == agent_id]
        return entries[-limit:]

    def get_total_cost(self, agent_id: str | None = None) -> float:
        return sum(e.cost_usd for e in self._history if agent_id is None or e.agent_id == agent_id)

    def reset(self) -> None:
        self._budgets.clear()
        self._history.clear()

    @staticmethod
    def _usage_pct(budget: AgentBudget, extra_tokens: int, extra_cost: float) -> float:
        token_pct = (budget.used_tokens + extra_tokens) / budget.max_tokens * 100 if budget.max_tokens > 0 else 100.0
        cost_pct = (budget.used_cost_usd + extra_cost) / budget.max_cost_usd * 100 if budget.max_cost_usd > 0 else 100.0
        return max(token_pct, cost_pct)
