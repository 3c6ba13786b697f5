"""Exception hierarchy shared across runtime components."""


class AgentRuntimeError(Exception):
    """Base class for errors raised by the runtime."""


# Capabilities


class CapabilityError(AgentRuntimeError):
    """Raised when a capability call cannot be completed."""

    def __init__(self, message: str, capability_id: str | None = None):
        super().__init__(message)
        self.capability_id = capability_id


class CapabilityNotFoundError(CapabilityError):
    def __init__(self, capability_id: str):
        super().__init__(f"Connector not found: {capability_id}", capability_id)


class ActionNotFoundError(CapabilityError):
    def __init__(self, capability_id: str, action_id: str):
        super().__init__(f"Action not found: {action_id}", capability_id)
        self.action_id = action_id


class CapabilityNotConnectedError(CapabilityError):
    def __init__(self, capability_id: str, name: str):
        super().__init__(f"Connector {name} is not connected", capability_id)


class CapabilityExecutionError(CapabilityError):
    """Backend failure while executing a connector action."""

    def __init__(
        self,
        message: str,
        capability_id: str | None = None,
        retry_after_ms: int | None = None,
    ):
        super().__init__(message, capability_id)
        self.retry_after_ms = retry_after_ms


class ToolNotFoundError(AgentRuntimeError):
    def __init__(self, name: str):
        super().__init__(f"Tool not found: {name}")
        self.tool_name = name


# Language model


class LLMError(AgentRuntimeError):
    """Model call failure classified as server_down, rate_limited, provider_error or timeout."""

    def __init__(self, message: str, error_type: str = "provider_error", status_code: int | None = None):
        super().__init__(message)
        self.error_type = error_type
        self.status_code = status_code


# Scheduler


class StepTimeoutError(AgentRuntimeError):
    """A cycle phase exceeded the per-step timeout."""

    def __init__(self, phase: str, timeout: float):
        super().__init__(f"Step '{phase}' timeout after {timeout:g}s")
        self.phase = phase
        self.timeout = timeout


class AgentNotFoundError(AgentRuntimeError):
    def __init__(self, agent_id: str):
        super().__init__(f"Agent not found: {agent_id}")
        self.agent_id = agent_id


# Workflows


class WorkflowValidationError(AgentRuntimeError):
    """Workflow definition failed load-time validation."""


class WorkflowNotFoundError(AgentRuntimeError):
    def __init__(self, workflow_id: str):
        super().__init__(f"Workflow not found: {workflow_id}")
        self.workflow_id = workflow_id


# Healing


class InvalidRepairTransitionError(AgentRuntimeError):
    """Repair status may only move forward."""
