"""Agent runtime: autonomous agents, a message bus, guards and workflows."""

from .app import Application, IApplication
from .capabilities import CapabilityRegistry
from .config import Settings
from .guards import Guards
from .healing import SelfHealingEngine
from .llm import HttpChatClient, ILLMProvider, LLMProvider
from .memory import IMemoryStore, MemoryStore
from .message_bus import IMessageBus, MessageBus
from .models import (
    Agent,
    AgentLifecycle,
    AutonomyMode,
    BusMessage,
    PlannedAction,
    RepairRecord,
    TraceEvent,
    Workflow,
)
from .runtime_state import AgentRuntimeState, IAgentRuntimeState
from .scheduler import AutonomousScheduler, CancellationToken, IAutonomousScheduler
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .workflow import IWorkflowEngine, WorkflowEngine, WorkflowRepository

__all__ = [
    # Application
    "Application",
    "IApplication",
    "Settings",
    # Models
    "Agent",
    "AgentLifecycle",
    "AutonomyMode",
    "BusMessage",
    "PlannedAction",
    "RepairRecord",
    "TraceEvent",
    "Workflow",
    # Components
    "IStorage",
    "Storage",
    "IMessageBus",
    "MessageBus",
    "ITracker",
    "Tracker",
    "ILLMProvider",
    "LLMProvider",
    "HttpChatClient",
    "IMemoryStore",
    "MemoryStore",
    "CapabilityRegistry",
    "Guards",
    "IAgentRuntimeState",
    "AgentRuntimeState",
    "SelfHealingEngine",
    "IWorkflowEngine",
    "WorkflowEngine",
    "WorkflowRepository",
    "IAutonomousScheduler",
    "AutonomousScheduler",
    "CancellationToken",
]
