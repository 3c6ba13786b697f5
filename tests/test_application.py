"""Tests for Application."""

import pytest

from agent_runtime.app import Application
from agent_runtime.config import Settings
from agent_runtime.llm import HttpChatClient, LLMProvider
from agent_runtime.models import AgentLifecycle, ApprovalKind, AutonomyMode, CapabilityStatus


def _app(**settings) -> Application:
    return Application(db_path=":memory:", settings=Settings(llm_backend="none", **settings))


class TestApplicationStart:
    """Tests for Application.start()."""

    @pytest.mark.asyncio
    async def test_start_initializes_components(self):
        """Test that start wires every component."""
        app = _app()
        await app.start()

        assert app.storage is not None
        assert app.message_bus is not None
        assert app.tracker is not None
        assert app.llm is None
        assert {t.name for t in app.registry.list_tools()} >= {"send_notification", "publish_message"}
        assert app.scheduler is not None
        assert app.workflow_engine is not None

        await app.stop()

    @pytest.mark.asyncio
    async def test_components_share_collaborators(self):
        """Test that components are handed the same instances."""
        app = _app()
        await app.start()

        assert app.tracker._message_bus is app.message_bus
        assert app.tracker._storage is app.storage
        assert app.message_bus._storage is app.storage
        assert app.scheduler._guards is app.guards
        assert app.scheduler._workflows is app.workflow_engine

        await app.stop()

    @pytest.mark.asyncio
    async def test_start_creates_database_tables(self):
        """Test that start creates database tables."""
        app = _app()
        await app.start()

        async with app.storage._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ) as cursor:
            tables = [row[0] for row in await cursor.fetchall()]

        assert "trace_events" in tables
        assert "bus_messages" in tables

        await app.stop()

    def test_properties_require_start(self):
        app = _app()
        with pytest.raises(RuntimeError, match="Application not started"):
            _ = app.scheduler

    @pytest.mark.asyncio
    async def test_two_applications_are_independent(self):
        first, second = _app(), _app()
        await first.start()
        await second.start()

        first.runtime_state.deploy("A", "t")

        assert second.runtime_state.list_agents() == []
        assert first.message_bus is not second.message_bus

        await first.stop()
        await second.stop()

    @pytest.mark.asyncio
    async def test_demo_mode_reaches_registry(self):
        app = _app(demo_mode=True)
        await app.start()
        assert app.registry.demo_mode is True
        await app.stop()


class TestCreateLLM:
    """Tests for model backend selection."""

    def test_none_backend(self):
        assert _app()._create_llm() is None

    def test_anthropic_without_key(self):
        app = Application(db_path=":memory:", settings=Settings(llm_backend="anthropic"))
        assert app._create_llm() is None

    def test_anthropic_with_key(self):
        app = Application(
            db_path=":memory:",
            settings=Settings(llm_backend="anthropic", anthropic_api_key="key"),
        )
        assert isinstance(app._create_llm(), LLMProvider)

    @pytest.mark.asyncio
    async def test_http_backend(self):
        app = Application(db_path=":memory:", settings=Settings(llm_backend="http"))
        await app.start()

        assert isinstance(app.llm, HttpChatClient)
        assert app._connector_adapter is not None

        await app.stop()


class TestApplicationOperations:
    """Tests for retire, reset and workflow-driven deployment."""

    @pytest.mark.asyncio
    async def test_retire_agent(self):
        app = _app()
        await app.start()
        agent_id = app.runtime_state.deploy("A", "t")
        app.message_bus.subscribe(agent_id, "domain.work")
        app.guards.governor.acquire("slack", "connector", agent_id)
        await app.scheduler.start(agent_id)

        await app.retire_agent(agent_id)

        assert app.runtime_state.get_agent(agent_id).lifecycle == AgentLifecycle.RETIRED
        assert app.scheduler.is_running(agent_id) is False
        assert app.guards.governor.get_locks() == []
        assert agent_id not in app.message_bus.get_subscribers("domain.work")
        snapshots = await app.storage.get_agent_snapshots()
        assert snapshots[0]["lifecycle"] == "retired"

        await app.stop()

    @pytest.mark.asyncio
    async def test_retire_with_purge_removes_agent(self):
        app = _app()
        await app.start()
        agent_id = app.runtime_state.deploy("A", "t")
        app.runtime_state.queue_approval(agent_id, ApprovalKind.EXECUTE_PLAN, "pending")
        await app.scheduler.run_cycle(agent_id)

        await app.retire_agent(agent_id, purge=True)

        assert app.runtime_state.get_agent(agent_id) is None
        assert app.runtime_state.get_approvals(agent_id) == []
        assert await app.storage.get_agent_snapshots() == []

        await app.stop()

    @pytest.mark.asyncio
    async def test_reset_clears_everything(self):
        app = _app()
        await app.start()
        app.runtime_state.deploy("A", "t")
        app.registry.set_status("slack", CapabilityStatus.CONNECTED)
        await app.message_bus.publish("a", "domain.work", "hi")

        await app.reset()

        assert app.runtime_state.list_agents() == []
        assert app.message_bus.messages == []
        assert app.registry.get_connected() == []
        assert await app.storage.get_bus_messages() == []

        await app.stop()

    @pytest.mark.asyncio
    async def test_deploy_from_workflow_starts_loop(self):
        app = _app()
        await app.start()

        await app.workflows.save(
            {
                "id": "spawn",
                "name": "Spawn",
                "nodes": [
                    {"id": "t", "type": "manual_trigger"},
                    {
                        "id": "a",
                        "type": "agent_autonomous",
                        "data": {"task": "Watch invoices", "autonomyMode": "suggest"},
                    },
                ],
                "connections": [{"id": "c", "sourceNodeId": "t", "targetNodeId": "a"}],
            }
        )
        events = await app.workflow_engine.run("spawn")

        agent_id = events[-1].data["agent_id"]
        agent = app.runtime_state.get_agent(agent_id)
        assert agent.name == "Workflow Agent"
        assert agent.autonomy_mode == AutonomyMode.SUGGEST
        assert app.scheduler.is_running(agent_id)

        await app.stop()
        assert app.scheduler.running_agents() == []
