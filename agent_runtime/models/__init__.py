"""Core data models for the agent runtime."""

from .agents import (
    ActionType,
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
from .capabilities import (
    AuthType,
    Capability,
    CapabilityAction,
    CapabilityStatus,
    Tool,
    ToolHandler,
)
from .guards import (
    ActionLock,
    AgentBudget,
    BudgetDecision,
    CircuitDecision,
    CircuitState,
    ConflictPolicy,
    CostEntry,
    GuardDecision,
    LockConflict,
    LockDecision,
    PreflightResult,
)
from .memory import SHARED_POOL_ID, MemoryEntry, MemoryScope
from .messages import DEFAULT_TOPICS, DIRECT_TOPIC, BusMessage, MessagePriority
from .repairs import (
    REPAIR_STATUS_ORDER,
    ErrorType,
    RepairContext,
    RepairOutcome,
    RepairRecord,
    RepairStatus,
)
from .tracing import TraceEvent
from .workflows import (
    ExecutionEvent,
    ExecutionEventType,
    NodeResult,
    Workflow,
    WorkflowConnection,
    WorkflowNode,
    WorkflowStatus,
)

__all__ = [
    # Agents
    "ActionType",
    "Agent",
    "AgentLifecycle",
    "ApprovalKind",
    "AutonomyMode",
    "Goal",
    "GoalStatus",
    "PendingApproval",
    "PlannedAction",
    "ThinkingStep",
    "ThinkingStepType",
    # Capabilities
    "AuthType",
    "Capability",
    "CapabilityAction",
    "CapabilityStatus",
    "Tool",
    "ToolHandler",
    # Guards
    "ActionLock",
    "AgentBudget",
    "BudgetDecision",
    "CircuitDecision",
    "CircuitState",
    "ConflictPolicy",
    "CostEntry",
    "GuardDecision",
    "LockConflict",
    "LockDecision",
    "PreflightResult",
    # Memory
    "SHARED_POOL_ID",
    "MemoryEntry",
    "MemoryScope",
    # Messages
    "DEFAULT_TOPICS",
    "DIRECT_TOPIC",
    "BusMessage",
    "MessagePriority",
    # Repairs
    "REPAIR_STATUS_ORDER",
    "ErrorType",
    "RepairContext",
    "RepairOutcome",
    "RepairRecord",
    "RepairStatus",
    # Tracing
    "TraceEvent",
    # Workflows
    "ExecutionEvent",
    "ExecutionEventType",
    "NodeResult",
    "Workflow",
    "WorkflowConnection",
    "WorkflowNode",
    "WorkflowStatus",
]
