"""Agent runtime data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class AutonomyMode(str, Enum):
    """How planned actions are carried out."""

    FULL_AUTO = "full_auto"
    ASK_FIRST = "ask_first"
    SUGGEST = "suggest"


class AgentLifecycle(str, Enum):
    """Lifecycle states of an agent."""

    DEPLOYED = "deployed"
    THINKING = "thinking"
    ACTING = "acting"
    HEALING = "healing"
    WAITING = "waiting"
    PAUSED = "paused"
    RETIRED = "retired"


class GoalStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class ThinkingStepType(str, Enum):
    OBSERVE = "observe"
    REASON = "reason"
    PLAN = "plan"
    ACT = "act"
    REFLECT = "reflect"


class ActionType(str, Enum):
    """Kinds of action a plan may contain."""

    TOOL = "tool"
    CONNECTOR = "connector"
    WORKFLOW = "workflow"
    MESSAGE = "message"
    NONE = "none"


class ApprovalKind(str, Enum):
    EXECUTE_PLAN = "execute_plan"
    PREFLIGHT_BLOCKED = "preflight_blocked"


@dataclass(frozen=True)
class Goal:
    id: str
    description: str
    priority: int
    status: GoalStatus
    created_at: datetime


@dataclass(frozen=True)
class ThinkingStep:
    id: str
    type: ThinkingStepType
    content: str
    duration_ms: int
    timestamp: datetime


@dataclass(frozen=True)
class PlannedAction:
    """A single typed step proposed by the Plan phase."""

    type: ActionType
    description: str = "No description"
    params: dict = field(default_factory=dict)
    connector_id: str | None = None
    action_id: str | None = None
    tool_name: str | None = None
    workflow_id: str | None = None

    @property
    def topic(self) -> str:
        """Bus topic named in params; anything but a non-empty string means the handoff topic."""
        topic = self.params.get("topic")
        return topic if isinstance(topic, str) and topic else "coordination.handoff"

    @property
    def signature(self) -> str:
        """Circuit breaker key for this action."""
        if self.type == ActionType.CONNECTOR:
            return f"connector:{self.connector_id}:{self.action_id}"
        if self.type == ActionType.TOOL:
            return f"tool:{self.tool_name}"
        if self.type == ActionType.WORKFLOW:
            return f"workflow:{self.workflow_id}"
        if self.type == ActionType.MESSAGE:
            return f"message:{self.topic}"
        return "none"

    @property
    def resource(self) -> str:
        """Lock target for this action."""
        if self.type == ActionType.CONNECTOR:
            return self.connector_id or "unknown"
        if self.type == ActionType.TOOL:
            return self.tool_name or "unknown"
        if self.type == ActionType.WORKFLOW:
            return self.workflow_id or "unknown"
        return self.topic

    def summary(self) -> str:
        return f"[{self.type.value}] {self.description}"

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "description": self.description,
            "params": self.params,
            "connector_id": self.connector_id,
            "action_id": self.action_id,
            "tool_name": self.tool_name,
            "workflow_id": self.workflow_id,
        }


@dataclass(frozen=True)
class PendingApproval:
    """An action batch waiting for a user's decision."""

    id: str
    agent_id: str
    action: ApprovalKind
    description: str
    created_at: datetime
    actions: tuple[PlannedAction, ...] = ()


@dataclass(frozen=True)
class Agent:
    """Snapshot of one agent. Never mutated in place; updates replace the record."""

    id: str
    name: str
    task: str
    autonomy_mode: AutonomyMode
    lifecycle: AgentLifecycle
    created_at: datetime
    last_heartbeat: datetime
    goal_stack: tuple[Goal, ...] = ()
    thinking_log: tuple[ThinkingStep, ...] = ()
    error_count: int = 0
    capability_ids: tuple[str, ...] = ()

    @property
    def active_goals(self) -> list[Goal]:
        return [g for g in self.goal_stack if g.status == GoalStatus.ACTIVE]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "task": self.task,
            "autonomy_mode": self.autonomy_mode.value,
            "lifecycle": self.lifecycle.value,
            "created_at": self.created_at.isoformat(),
            "last_heartbeat": self.last_heartbeat.isoformat(),
            "goal_stack": [
                {
                    "id": g.id,
                    "description": g.description,
                    "priority": g.priority,
                    "status": g.status.value,
                    "created_at": g.created_at.isoformat(),
                }
                for g in self.goal_stack
            ],
            "thinking_log": [
                {
                    "id": s.id,
                    "type": s.type.value,
                    "content": s.content,
                    "duration_ms": s.duration_ms,
                    "timestamp": s.timestamp.isoformat(),
                }
                for s in self.thinking_log
            ],
            "error_count": self.error_count,
            "capability_ids": list(self.capability_ids),
        }
