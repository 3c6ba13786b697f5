"""Authoritative in-memory record of deployed agents and pending approvals."""

import dataclasses
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, Protocol

from ..logging_config import get_logger
from ..models import (
    Agent,
    AgentLifecycle,
    ApprovalKind,
    AutonomyMode,
    Goal,
    GoalStatus,
    PendingApproval,
    PlannedAction,
    ThinkingStep,
    ThinkingStepType,
)

logger = get_logger(__name__)

MAX_THINKING_STEPS = 200


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IAgentRuntimeState(Protocol):
    """Agent records and the approval queue."""

    def deploy(
        self,
        name: str,
        task: str,
        autonomy_mode: AutonomyMode = AutonomyMode.ASK_FIRST,
        capability_ids: Iterable[str] = (),
    ) -> str:
        """Create an agent and return its id."""
        ...

    def get_agent(self, agent_id: str) -> Agent | None:
        """Current snapshot of an agent."""
        ...

    def set_lifecycle(self, agent_id: str, lifecycle: AgentLifecycle) -> None:
        """Move an agent to a lifecycle state."""
        ...


class AgentRuntimeState:
    """
    Holds one immutable ``Agent`` snapshot per id.

    Every mutation builds a new snapshot and swaps it in, so a reader holding
    a snapshot never sees a half-applied change. Mutations on unknown agents
    are ignored.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = _utcnow,
        max_thinking_steps: int = MAX_THINKING_STEPS,
    ):
        self._clock = clock
        self._max_thinking_steps = max_thinking_steps
        self._agents: dict[str, Agent] = {}
        self._approvals: dict[str, PendingApproval] = {}

    # Agents

    def deploy(
        self,
        name: str,
        task: str,
        autonomy_mode: AutonomyMode = AutonomyMode.ASK_FIRST,
        capability_ids: Iterable[str] = (),
        agent_id: str | None = None,
    ) -> str:
        now = self._clock()
        agent = Agent(
            id=agent_id or str(uuid.uuid4()),
            name=name,
            task=task,
            autonomy_mode=AutonomyMode(autonomy_mode),
            lifecycle=AgentLifecycle.DEPLOYED,
            created_at=now,
            last_heartbeat=now,
            capability_ids=tuple(capability_ids),
        )
        self._agents[agent.id] = agent
        logger.info("Deployed agent %s (%s)", agent.id, name)
        return agent.id

    def retire(self, agent_id: str) -> None:
        """Mark retired. The record stays readable; its loop will not run again."""
        self._update(agent_id, lifecycle=AgentLifecycle.RETIRED)

    def remove(self, agent_id: str) -> None:
        self._agents.pop(agent_id, None)
        self._approvals = {
            k: v for k, v in self._approvals.items() if v.agent_id != agent_id
        }

    def get_agent(self, agent_id: str) -> Agent | None:
        return self._agents.get(agent_id)

    def list_agents(self) -> list[Agent]:
        return list(self._agents.values())

    def set_lifecycle(self, agent_id: str, lifecycle: AgentLifecycle) -> None:
        agent = self._agents.get(agent_id)
        if agent is None or agent.lifecycle == AgentLifecycle.RETIRED:
            return
        self._update(agent_id, lifecycle=AgentLifecycle(lifecycle))

    def set_autonomy_mode(self, agent_id: str, mode: AutonomyMode) -> None:
        self._update(agent_id, autonomy_mode=AutonomyMode(mode))

    def heartbeat(self, agent_id: str) -> None:
        self._update(agent_id, last_heartbeat=self._clock())

    def increment_error_count(self, agent_id: str) -> None:
        agent = self._agents.get(agent_id)
        if agent is None:
            return
        self._update(agent_id, error_count=agent.error_count + 1)

    # Goals

    def push_goal(self, agent_id: str, description: str, priority: int = 1) -> str | None:
        agent = self._agents.get(agent_id)
        if agent is None:
            return None
        goal = Goal(
            id=str(uuid.uuid4()),
            description=description,
            priority=priority,
            status=GoalStatus.ACTIVE,
            created_at=self._clock(),
        )
        self._update(agent_id, goal_stack=agent.goal_stack + (goal,))
        return goal.id

    def complete_goal(self, agent_id: str, goal_id: str) -> None:
        agent = self._agents.get(agent_id)
        if agent is None:
            return
        goals = tuple(
            dataclasses.replace(g, status=GoalStatus.COMPLETED) if g.id == goal_id else g
            for g in agent.goal_stack
        )
        self._update(agent_id, goal_stack=goals)

    def top_goal_priority(self, agent_id: str) -> int:
        agent = self._agents.get(agent_id)
        if agent is None or not agent.active_goals:
            return 1
        return max(g.priority for g in agent.active_goals)

    # Thinking log

    def add_thinking_step(
        self,
        agent_id: str,
        step_type: ThinkingStepType,
        content: str,
        duration_ms: int = 0,
    ) -> None:
        agent = self._agents.get(agent_id)
        if agent is None:
            return
        step = ThinkingStep(
            id=str(uuid.uuid4()),
            type=ThinkingStepType(step_type),
            content=content,
            duration_ms=duration_ms,
            timestamp=self._clock(),
        )
        log = (agent.thinking_log + (step,))[-self._max_thinking_steps:]
        self._update(agent_id, thinking_log=log)

    # Approvals

    def queue_approval(
        self,
        agent_id: str,
        action: ApprovalKind,
        description: str,
        actions: Iterable[PlannedAction] = (),
    ) -> str:
        approval = PendingApproval(
            id=str(uuid.uuid4()),
            agent_id=agent_id,
            action=ApprovalKind(action),
            description=description,
            created_at=self._clock(),
            actions=tuple(actions),
        )
        self._approvals[approval.id] = approval
        return approval.id

    def approve_action(self, approval_id: str) -> PendingApproval | None:
        """Remove and return the approval for execution."""
        return self._approvals.pop(approval_id, None)

    def reject_action(self, approval_id: str) -> bool:
        return self._approvals.pop(approval_id, None) is not None

    def get_approvals(self, agent_id: str | None = None) -> list[PendingApproval]:
        return [
            a for a in self._approvals.values() if agent_id is None or a.agent_id == agent_id
        ]

    def reset(self) -> None:
        self._agents.clear()
        self._approvals.clear()

    def _update(self, agent_id: str, **changes) -> None:
        agent = self._agents.get(agent_id)
        if agent is None:
            logger.debug("Ignoring update for unknown agent %s", agent_id)
            return
        self._agents[agent_id] = dataclasses.replace(agent, **changes)
