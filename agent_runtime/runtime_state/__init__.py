"""Agent runtime state module."""

from .state import AgentRuntimeState, IAgentRuntimeState

__all__ = ["AgentRuntimeState", "IAgentRuntimeState"]
