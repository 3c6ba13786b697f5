"""End-to-end tests across a started Application."""

import json
import os
import tempfile

import pytest
import pytest_asyncio

from agent_runtime.app import Application
from agent_runtime.config import Settings
from agent_runtime.models import ApprovalKind, AutonomyMode, ExecutionEventType


@pytest_asyncio.fixture
async def app(mock_llm):
    """Create and start a test application on a file database."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    app = Application(
        db_path=db_path,
        settings=Settings(llm_backend="none", step_timeout_seconds=5),
        llm=mock_llm,
    )
    await app.start()

    yield app

    await app.stop()
    os.unlink(db_path)


@pytest.mark.asyncio
async def test_publish_without_subscribers(app: Application):
    """A message on a topic nobody follows is logged but queued for no one."""
    agent_id = app.runtime_state.deploy("Listener", "Listen", AutonomyMode.SUGGEST)
    app.message_bus.subscribe(agent_id, "domain.health")
    before = len(app.message_bus.messages)

    await app.message_bus.publish("someone", "domain.finance", "Quarter closed")

    assert len(app.message_bus.messages) == before + 1
    assert app.message_bus.get_unread(agent_id) == []
    events = await app.storage.get_trace_events(event_types=["bus_message_published"])
    assert events[0].data["topic"] == "domain.finance"


@pytest.mark.asyncio
async def test_remember_then_recall(app: Application):
    app.memory.remember("agent-1", "Weather is sunny", "preferences")
    app.memory.remember("agent-1", "Standup is at nine", "schedule")

    results = app.memory.recall("agent-1", "weather")

    assert results[0].content == "Weather is sunny"


@pytest.mark.asyncio
async def test_cycle_to_approval_to_notification(app: Application, mock_llm):
    """An ask_first agent proposes a notification, the user approves it, it is sent."""
    agent_id = app.runtime_state.deploy("Notifier", "Tell the user about blockers", AutonomyMode.ASK_FIRST)
    mock_llm.complete.side_effect = [
        "A blocker was reported; notify the user.",
        json.dumps(
            [
                {
                    "type": "tool",
                    "toolName": "send_notification",
                    "params": {"title": "Blocker", "message": "CI is red"},
                    "description": "Notify about CI",
                }
            ]
        ),
    ]

    assert await app.scheduler.run_cycle(agent_id) is True
    approvals = app.runtime_state.get_approvals(agent_id)
    assert [a.action for a in approvals] == [ApprovalKind.EXECUTE_PLAN]
    assert app.notifier.notifications == []

    await app.scheduler.execute_approval(approvals[0].id)

    assert [n["title"] for n in app.notifier.notifications] == ["Blocker"]
    snapshots = await app.storage.get_agent_snapshots()
    assert snapshots[0]["id"] == agent_id


@pytest.mark.asyncio
async def test_workflow_action_from_agent(app: Application, mock_llm):
    await app.workflows.save(
        {
            "id": "notify",
            "name": "Notify",
            "nodes": [
                {"id": "t", "type": "manual_trigger"},
                {"id": "n", "type": "send_notification", "data": {"title": "Hello {{who}}"}},
            ],
            "connections": [{"id": "c", "sourceNodeId": "t", "targetNodeId": "n"}],
        }
    )
    agent_id = app.runtime_state.deploy("Runner", "Run workflows", AutonomyMode.FULL_AUTO)
    mock_llm.complete.side_effect = [
        "Run the notify workflow.",
        json.dumps([{"type": "workflow", "workflowId": "notify", "params": {"who": "team"}}]),
    ]

    assert await app.scheduler.run_cycle(agent_id) is True

    assert app.notifier.notifications[0]["title"] == "Hello team"
    act = app.runtime_state.get_agent(agent_id).thinking_log[3]
    assert act.content == "Workflow(notify): 4 events, 0 error(s)"


@pytest.mark.asyncio
async def test_stored_workflow_survives_restart():
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    settings = Settings(llm_backend="none")

    first = Application(db_path=db_path, settings=settings)
    await first.start()
    await first.workflows.save(
        {"id": "wf", "name": "Kept", "nodes": [{"id": "t", "type": "manual_trigger"}]}
    )
    await first.stop()

    second = Application(db_path=db_path, settings=settings)
    await second.start()
    events = await second.workflow_engine.run("wf", {"x": 1})
    await second.stop()
    os.unlink(db_path)

    assert [e.type for e in events] == [ExecutionEventType.START, ExecutionEventType.COMPLETE]
    assert events[-1].data == {"x": 1}
