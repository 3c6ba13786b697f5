"""Capability registry: connectors, their backends, and in-process tools."""

from typing import Any, Iterable, Protocol

from ..errors import (
    ActionNotFoundError,
    CapabilityError,
    CapabilityExecutionError,
    CapabilityNotConnectedError,
    CapabilityNotFoundError,
    ToolNotFoundError,
)
from ..logging_config import get_logger
from ..models import Capability, CapabilityStatus, Tool
from .catalog import default_capabilities

logger = get_logger(__name__)


class IConnectorAdapter(Protocol):
    """Backend that actually performs a connector action."""

    async def execute(self, capability_id: str, action_id: str, params: dict) -> dict:
        """Run the action and return its JSON result."""
        ...


class ICapabilityRegistry(Protocol):
    """Lookup and execution of connector actions and tools."""

    async def execute(self, capability_id: str, action_id: str, params: dict) -> dict:
        """Execute on the real backend, failing fast on unknown or disconnected capabilities."""
        ...

    async def execute_with_fallback(
        self, capability_id: str, action_id: str, params: dict
    ) -> dict:
        """Execute, substituting a mock result only when demo mode allows it."""
        ...

    async def execute_tool(self, name: str, params: dict) -> Any:
        """Run a registered tool."""
        ...


class CapabilityRegistry:
    """
    Holds connector descriptors with their live status, backend adapters and tools.

    ``demo_mode`` controls ``execute_with_fallback``: when off, backend errors
    and disconnected connectors propagate to the caller; when on, the caller
    gets a mock payload marked ``"mock": True`` instead.
    """

    def __init__(
        self,
        capabilities: Iterable[Capability] | None = None,
        demo_mode: bool = False,
    ):
        source = default_capabilities() if capabilities is None else capabilities
        self._capabilities: dict[str, Capability] = {c.id: c for c in source}
        self._adapters: dict[str, IConnectorAdapter] = {}
        self._default_adapter: IConnectorAdapter | None = None
        self._tools: dict[str, Tool] = {}
        self.demo_mode = demo_mode

    # Connectors

    def register(self, capability: Capability, adapter: IConnectorAdapter | None = None) -> None:
        self._capabilities[capability.id] = capability
        if adapter is not None:
            self._adapters[capability.id] = adapter

    def set_adapter(self, capability_id: str, adapter: IConnectorAdapter) -> None:
        self._adapters[capability_id] = adapter

    def set_default_adapter(self, adapter: IConnectorAdapter | None) -> None:
        """Backend used for connectors without a dedicated adapter."""
        self._default_adapter = adapter

    def get(self, capability_id: str) -> Capability | None:
        return self._capabilities.get(capability_id)

    def list_capabilities(self) -> list[Capability]:
        return list(self._capabilities.values())

    def get_connected(self) -> list[Capability]:
        return [c for c in self._capabilities.values() if c.status == CapabilityStatus.CONNECTED]

    def get_by_category(self, category: str) -> list[Capability]:
        return [c for c in self._capabilities.values() if c.category == category]

    def set_status(self, capability_id: str, status: CapabilityStatus) -> None:
        capability = self._capabilities.get(capability_id)
        if capability is None:
            raise CapabilityNotFoundError(capability_id)
        if capability.status != status:
            logger.info("Connector %s status %s -> %s", capability_id, capability.status.value, status.value)
        capability.status = status

    def _resolve(self, capability_id: str, action_id: str) -> Capability:
        capability = self._capabilities.get(capability_id)
        if capability is None:
            raise CapabilityNotFoundError(capability_id)
        if capability.get_action(action_id) is None:
            raise ActionNotFoundError(capability_id, action_id)
        return capability

    async def execute(self, capability_id: str, action_id: str, params: dict) -> dict:
        """Execute on the real backend, failing fast on unknown or disconnected capabilities."""
        capability = self._resolve(capability_id, action_id)
        if capability.status != CapabilityStatus.CONNECTED:
            raise CapabilityNotConnectedError(capability_id, capability.name)

        adapter = self._adapters.get(capability_id, self._default_adapter)
        if adapter is None:
            raise CapabilityExecutionError(
                f"No backend registered for connector {capability.name}", capability_id
            )

        try:
            return await adapter.execute(capability_id, action_id, params)
        except CapabilityError:
            raise
        except Exception as e:
            raise CapabilityExecutionError(
                f"{capability.name} {action_id} failed: {e}", capability_id
            ) from e

    def mock_execute(self, capability_id: str, action_id: str, params: dict) -> dict:
        """Deterministic synthetic result, or ``{"success": False, "error": ...}``."""
        capability = self._capabilities.get(capability_id)
        if capability is None:
            return {"success": False, "error": f"Connector not found: {capability_id}"}
        action = capability.get_action(action_id)
        if action is None:
            return {"success": False, "error": f"Action not found: {action_id}"}

        return {
            "success": True,
            "mock": True,
            "connector": capability.name,
            "action": action.name,
            "params": dict(params),
            "result": f"Mock result for {capability.name}.{action.name}",
        }

    async def execute_with_fallback(
        self, capability_id: str, action_id: str, params: dict
    ) -> dict:
        """Execute, substituting a mock result only when demo mode allows it."""
        try:
            return await self.execute(capability_id, action_id, params)
        except (CapabilityNotConnectedError, CapabilityExecutionError) as e:
            if not self.demo_mode:
                raise
            logger.warning("Demo mode: mocking %s.%s after error: %s", capability_id, action_id, e)
            return self.mock_execute(capability_id, action_id, params)

    # Tools

    def register_tool(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def get_tool(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list_tools(self) -> list[Tool]:
        return list(self._tools.values())

    async def execute_tool(self, name: str, params: dict) -> Any:
        """Run a registered tool."""
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return await tool.handler(params)

    def reset(self) -> None:
        """Restore catalog statuses; adapters and tools stay registered."""
        for capability in self._capabilities.values():
            capability.status = CapabilityStatus.DISCONNECTED
