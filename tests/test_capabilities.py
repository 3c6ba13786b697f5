"""Tests for CapabilityRegistry and the builtin tools."""

from unittest.mock import AsyncMock, Mock

import pytest

from agent_runtime.capabilities import (
    CapabilityRegistry,
    Notifier,
    default_capabilities,
    register_builtin_tools,
)
from agent_runtime.errors import (
    ActionNotFoundError,
    CapabilityExecutionError,
    CapabilityNotConnectedError,
    CapabilityNotFoundError,
    ToolNotFoundError,
)
from agent_runtime.models import CapabilityStatus, Tool


def _adapter(result=None, error=None) -> Mock:
    adapter = Mock()
    adapter.execute = AsyncMock(return_value=result, side_effect=error)
    return adapter


class TestCatalog:
    def test_all_disconnected_and_fresh(self):
        first = default_capabilities()
        second = default_capabilities()

        assert all(c.status == CapabilityStatus.DISCONNECTED for c in first)
        first[0].status = CapabilityStatus.CONNECTED
        assert second[0].status == CapabilityStatus.DISCONNECTED
        assert {"gmail", "slack", "github"} <= {c.id for c in first}


class TestExecute:
    """Tests for CapabilityRegistry.execute()."""

    @pytest.mark.asyncio
    async def test_routes_to_adapter(self, registry):
        adapter = _adapter({"ts": "1"})
        registry.set_adapter("slack", adapter)

        result = await registry.execute("slack", "slack-send", {"text": "hi"})

        assert result == {"ts": "1"}
        adapter.execute.assert_awaited_once_with("slack", "slack-send", {"text": "hi"})

    @pytest.mark.asyncio
    async def test_default_adapter(self, registry):
        adapter = _adapter({"ok": True})
        registry.set_default_adapter(adapter)

        assert await registry.execute("github", "gh-issue", {}) == {"ok": True}
        adapter.execute.assert_awaited_once_with("github", "gh-issue", {})

    @pytest.mark.asyncio
    async def test_unknown_capability(self, registry):
        with pytest.raises(CapabilityNotFoundError):
            await registry.execute("nope", "x", {})

    @pytest.mark.asyncio
    async def test_unknown_action(self, registry):
        with pytest.raises(ActionNotFoundError):
            await registry.execute("slack", "nope", {})

    @pytest.mark.asyncio
    async def test_disconnected(self, registry):
        with pytest.raises(CapabilityNotConnectedError, match="Gmail is not connected"):
            await registry.execute("gmail", "gmail-send", {})

    @pytest.mark.asyncio
    async def test_no_backend(self, registry):
        with pytest.raises(CapabilityExecutionError, match="No backend"):
            await registry.execute("slack", "slack-send", {})

    @pytest.mark.asyncio
    async def test_adapter_errors_are_wrapped(self, registry):
        registry.set_adapter("slack", _adapter(error=RuntimeError("boom")))

        with pytest.raises(CapabilityExecutionError, match="boom") as exc_info:
            await registry.execute("slack", "slack-send", {})
        assert exc_info.value.capability_id == "slack"


class TestFallback:
    """Tests for execute_with_fallback() and mock_execute()."""

    @pytest.mark.asyncio
    async def test_errors_propagate_outside_demo_mode(self, registry):
        with pytest.raises(CapabilityNotConnectedError):
            await registry.execute_with_fallback("gmail", "gmail-send", {})

    @pytest.mark.asyncio
    async def test_demo_mode_mocks(self):
        registry = CapabilityRegistry(default_capabilities(), demo_mode=True)

        result = await registry.execute_with_fallback("gmail", "gmail-send", {"to": "a@b.c"})

        assert result["mock"] is True
        assert result["success"] is True
        assert result["connector"] == "Gmail"
        assert result["params"] == {"to": "a@b.c"}

    @pytest.mark.asyncio
    async def test_demo_mode_still_rejects_unknown(self):
        registry = CapabilityRegistry(default_capabilities(), demo_mode=True)
        with pytest.raises(CapabilityNotFoundError):
            await registry.execute_with_fallback("nope", "x", {})

    def test_mock_execute_unknown(self, registry):
        assert registry.mock_execute("nope", "x", {})["success"] is False
        assert registry.mock_execute("slack", "x", {})["error"] == "Action not found: x"


class TestStatus:
    def test_set_status_unknown(self, registry):
        with pytest.raises(CapabilityNotFoundError):
            registry.set_status("nope", CapabilityStatus.CONNECTED)

    def test_connected_and_reset(self, registry):
        assert {c.id for c in registry.get_connected()} == {"slack", "github"}
        registry.reset()
        assert registry.get_connected() == []

    def test_by_category(self, registry):
        assert "slack" in {c.id for c in registry.get_by_category("communication")}


class TestTools:
    """Tests for tool registration and execution."""

    @pytest.mark.asyncio
    async def test_register_and_execute(self, registry):
        handler = AsyncMock(return_value={"done": True})
        registry.register_tool(Tool(name="echo", description="Echo", handler=handler))

        assert await registry.execute_tool("echo", {"a": 1}) == {"done": True}
        handler.assert_awaited_once_with({"a": 1})
        assert [t.name for t in registry.list_tools()] == ["echo"]

    @pytest.mark.asyncio
    async def test_unknown_tool(self, registry):
        with pytest.raises(ToolNotFoundError, match="Tool not found: missing"):
            await registry.execute_tool("missing", {})


class TestBuiltinTools:
    """Tests for the builtin tool set."""

    @pytest.fixture
    def notifier(self, registry, memory, message_bus):
        notifier = Notifier()
        register_builtin_tools(registry, memory, message_bus, notifier)
        return notifier

    def test_all_registered(self, registry, notifier):
        assert {t.name for t in registry.list_tools()} == {
            "send_notification",
            "remember_fact",
            "search_memory",
            "publish_message",
        }

    @pytest.mark.asyncio
    async def test_send_notification(self, registry, notifier):
        result = await registry.execute_tool("send_notification", {"title": "Hi", "message": "there"})

        assert result["success"] is True
        assert notifier.notifications[0]["title"] == "Hi"
        assert notifier.notifications[0]["id"] == result["notification_id"]

    @pytest.mark.asyncio
    async def test_remember_and_search(self, registry, notifier):
        await registry.execute_tool(
            "remember_fact", {"agent_id": "agent-1", "content": "invoices go to finance"}
        )

        result = await registry.execute_tool("search_memory", {"agent_id": "agent-1", "query": "invoices"})

        assert [r["content"] for r in result["results"]] == ["invoices go to finance"]

    @pytest.mark.asyncio
    async def test_publish_message(self, registry, notifier, message_bus):
        message_bus.subscribe("listener", "coordination.handoff")

        result = await registry.execute_tool(
            "publish_message", {"agent_id": "agent-1", "content": "done", "priority": "high"}
        )

        unread = message_bus.get_unread("listener")
        assert [m.id for m in unread] == [result["message_id"]]
        assert unread[0].from_agent_id == "agent-1"
