"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from agent_runtime.api import create_fastapi_app
from agent_runtime.app import Application
from agent_runtime.config import Settings


@pytest.fixture
def client():
    application = Application(db_path=":memory:", settings=Settings(llm_backend="none"))
    with TestClient(create_fastapi_app(application)) as test_client:
        yield test_client


def _deploy(client, **overrides) -> dict:
    body = {"name": "Ops Bot", "task": "Watch CI", **overrides}
    response = client.post("/api/agents", json=body)
    assert response.status_code == 200
    return response.json()


class TestAgentsAPI:
    """Tests for /api/agents."""

    def test_deploy_and_get(self, client):
        agent = _deploy(client, autonomy_mode="full_auto", topics=["domain.work"])

        assert agent["lifecycle"] == "deployed"
        assert agent["autonomy_mode"] == "full_auto"

        fetched = client.get(f"/api/agents/{agent['id']}").json()
        assert fetched["running"] is False
        topics = {t["topic"]: t["subscribers"] for t in client.get("/api/bus/topics").json()}
        assert topics["domain.work"] == [agent["id"]]

    def test_unknown_agent_404(self, client):
        response = client.get("/api/agents/ghost")
        assert response.status_code == 404
        assert response.json()["detail"] == "Agent not found: ghost"

    def test_bad_autonomy_mode_422(self, client):
        response = client.post("/api/agents", json={"name": "x", "task": "y", "autonomy_mode": "yolo"})
        assert response.status_code == 422

    def test_cycle_and_memories(self, client):
        agent = _deploy(client, autonomy_mode="full_auto")

        result = client.post(f"/api/agents/{agent['id']}/cycle").json()

        assert result["succeeded"] is True
        assert result["agent"]["lifecycle"] == "waiting"
        assert len(result["agent"]["thinking_log"]) == 5
        memories = client.get(f"/api/agents/{agent['id']}/memories").json()
        assert memories[0]["category"] == "workflows"

    def test_start_stop(self, client):
        agent = _deploy(client)

        assert client.post(f"/api/agents/{agent['id']}/start").json() == {"status": "started"}
        assert client.post(f"/api/agents/{agent['id']}/start").json() == {"status": "unchanged"}
        assert client.post(f"/api/agents/{agent['id']}/stop").json() == {"status": "stopped"}

    def test_goals_and_budget(self, client):
        agent = _deploy(client)

        goal_id = client.post(
            f"/api/agents/{agent['id']}/goals", json={"description": "Ship", "priority": 3}
        ).json()["goal_id"]
        client.post(f"/api/agents/{agent['id']}/goals/{goal_id}/complete")
        response = client.put(
            f"/api/agents/{agent['id']}/budget", json={"max_tokens": 1000, "max_cost_usd": 1.5}
        )

        assert response.json() == {"status": "ok"}
        goals = client.get(f"/api/agents/{agent['id']}").json()["goal_stack"]
        assert goals[0]["status"] == "completed"

    def test_ask_first_approval_flow(self, client):
        agent = _deploy(client)
        client.post(f"/api/agents/{agent['id']}/cycle")

        approvals = client.get(f"/api/agents/{agent['id']}/approvals").json()
        assert [a["action"] for a in approvals] == ["execute_plan"]

        approved = client.post(f"/api/agents/approvals/{approvals[0]['id']}/approve").json()
        assert approved["status"] == "executed"
        assert approved["result"].startswith("No-op:")
        assert client.get("/api/agents/approvals").json() == []

    def test_unknown_approval_404(self, client):
        assert client.post("/api/agents/approvals/nope/approve").status_code == 404
        assert client.post("/api/agents/approvals/nope/reject").status_code == 404

    def test_retire(self, client):
        agent = _deploy(client)

        assert client.delete(f"/api/agents/{agent['id']}").json() == {"status": "retired"}
        assert client.get(f"/api/agents/{agent['id']}").json()["lifecycle"] == "retired"
        assert client.post(f"/api/agents/{agent['id']}/start").json() == {"status": "unchanged"}

    def test_retire_with_purge(self, client):
        agent = _deploy(client)

        response = client.delete(f"/api/agents/{agent['id']}", params={"purge": "true"})

        assert response.json() == {"status": "removed"}
        assert client.get(f"/api/agents/{agent['id']}").status_code == 404
        assert client.get("/api/agents").json() == []


class TestBusAPI:
    """Tests for /api/bus."""

    def test_publish_and_acknowledge(self, client):
        client.post("/api/bus/subscriptions", json={"agent_id": "b", "topic": "domain.work"})

        message = client.post(
            "/api/bus/publish",
            json={"from_agent_id": "a", "topic": "domain.work", "content": "hi", "priority": "high"},
        ).json()

        unread = client.get("/api/bus/agents/b/unread").json()
        assert [m["id"] for m in unread] == [message["id"]]
        client.post(f"/api/bus/agents/b/acknowledge/{message['id']}")
        assert client.get("/api/bus/agents/b/unread").json() == []
        assert client.get("/api/bus/messages", params={"topic": "domain.work"}).json()[0]["acknowledged"] is True

    def test_direct_and_unsubscribe(self, client):
        client.post("/api/bus/subscriptions", json={"agent_id": "b", "topic": "domain.work"})
        client.delete("/api/bus/subscriptions/b/domain.work")

        client.post("/api/bus/direct", json={"from_agent_id": "a", "to_agent_id": "b", "content": "psst"})

        unread = client.get("/api/bus/agents/b/unread").json()
        assert [(m["topic"], m["content"]) for m in unread] == [("direct", "psst")]


class TestWorkflowsAPI:
    """Tests for /api/workflows."""

    DEFINITION = {
        "id": "wf-api",
        "name": "Greeting",
        "nodes": [
            {"id": "t", "type": "manual_trigger"},
            {"id": "g", "type": "template", "data": {"template": "Hi {{name}}"}},
        ],
        "connections": [{"id": "c", "sourceNodeId": "t", "targetNodeId": "g"}],
    }

    def test_save_run_and_delete(self, client):
        saved = client.post("/api/workflows", json=self.DEFINITION).json()
        assert saved["status"] == "draft"
        assert saved["connections"][0]["sourceNodeId"] == "t"

        events = client.post("/api/workflows/wf-api/run", json={"trigger_data": {"name": "Ada"}}).json()
        assert events[-1] == {**events[-1], "node_id": "g", "type": "complete", "data": "Hi Ada"}

        assert client.put("/api/workflows/wf-api/status", json={"status": "active"}).json()["status"] == "active"
        assert [w["id"] for w in client.get("/api/workflows").json()] == ["wf-api"]
        client.delete("/api/workflows/wf-api")
        assert client.get("/api/workflows/wf-api").status_code == 404

    def test_invalid_definition_400(self, client):
        response = client.post("/api/workflows", json={"id": "x", "name": "x", "nodes": [{"id": "n", "type": "nope"}]})
        assert response.status_code == 400

    def test_run_unknown_404(self, client):
        assert client.post("/api/workflows/missing/run").status_code == 404


class TestObservabilityAPI:
    """Tests for trace events, guards and costs."""

    def test_trace_events(self, client):
        client.post("/api/bus/publish", json={"from_agent_id": "a", "topic": "domain.work", "content": "hi"})

        events = client.get("/api/trace-events", params={"event_type": "bus_message_published"}).json()

        assert events[0]["actor"] == "a"
        assert client.get("/api/trace-events", params={"after": "yesterday"}).status_code == 400

    def test_guards_costs_and_catalog(self, client):
        agent = _deploy(client, autonomy_mode="full_auto")
        client.post(f"/api/agents/{agent['id']}/cycle")

        guards = client.get("/api/guards").json()
        assert guards["locks"] == []
        assert guards["conflicts"] == []

        costs = client.get("/api/costs", params={"agent_id": agent["id"]}).json()
        assert [h["source"] for h in costs["history"]] == ["llm:reason", "llm:plan"]

        assert len(client.get("/api/capabilities").json()) >= 10
        health = client.get(f"/api/agents/{agent['id']}/memory-health").json()
        assert health["recommendation"] == "healthy"
        repairs = client.get("/api/repairs").json()
        assert repairs == {"repairs": [], "success_rate": 0.0}

    def test_reset(self, client):
        _deploy(client)
        assert client.post("/api/control/reset").json() == {"status": "ok"}
        assert client.get("/api/agents").json() == []
