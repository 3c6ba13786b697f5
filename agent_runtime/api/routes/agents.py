"""Agent API routes: deployment, loop control, goals and approvals."""

from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from ...app import Application
from ...errors import AgentNotFoundError
from ...models import Agent, AutonomyMode, PendingApproval


class DeployRequest(BaseModel):
    name: str
    task: str
    autonomy_mode: AutonomyMode = AutonomyMode.ASK_FIRST
    capability_ids: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    start: bool = False


class StartRequest(BaseModel):
    interval_seconds: float | None = Field(default=None, gt=0)


class GoalRequest(BaseModel):
    description: str
    priority: int = 1


class BudgetRequest(BaseModel):
    max_tokens: int = Field(gt=0)
    max_cost_usd: float = Field(gt=0)


class StatusResponse(BaseModel):
    status: str


def _approval_dict(approval: PendingApproval) -> dict:
    return {
        "id": approval.id,
        "agent_id": approval.agent_id,
        "action": approval.action.value,
        "description": approval.description,
        "created_at": approval.created_at.isoformat(),
        "actions": [a.to_dict() for a in approval.actions],
    }


def create_agents_router(app: Application) -> APIRouter:
    """Create agents router."""
    router = APIRouter(prefix="/api/agents", tags=["agents"])

    def get_agent_or_404(agent_id: str) -> Agent:
        agent = app.runtime_state.get_agent(agent_id)
        if agent is None:
            raise HTTPException(status_code=404, detail=f"Agent not found: {agent_id}")
        return agent

    @router.post("")
    async def deploy_agent(request: DeployRequest) -> dict[str, Any]:
        """Deploy an agent, subscribe it to topics and optionally start its loop."""
        agent_id = app.runtime_state.deploy(
            request.name, request.task, request.autonomy_mode, request.capability_ids
        )
        for topic in request.topics:
            app.message_bus.subscribe(agent_id, topic)
        if request.start:
            await app.scheduler.start(agent_id)
        return get_agent_or_404(agent_id).to_dict()

    @router.get("")
    async def list_agents() -> list[dict[str, Any]]:
        return [
            {**agent.to_dict(), "running": app.scheduler.is_running(agent.id)}
            for agent in app.runtime_state.list_agents()
        ]

    @router.get("/approvals")
    async def list_all_approvals() -> list[dict[str, Any]]:
        return [_approval_dict(a) for a in app.runtime_state.get_approvals()]

    @router.post("/approvals/{approval_id}/approve")
    async def approve(approval_id: str) -> dict[str, Any]:
        """Execute an approved action batch."""
        try:
            result = await app.scheduler.execute_approval(approval_id)
        except AgentNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        if result is None:
            raise HTTPException(status_code=404, detail=f"Approval not found: {approval_id}")
        return {"status": "executed", "result": result}

    @router.post("/approvals/{approval_id}/reject", response_model=StatusResponse)
    async def reject(approval_id: str) -> dict:
        if not app.runtime_state.reject_action(approval_id):
            raise HTTPException(status_code=404, detail=f"Approval not found: {approval_id}")
        return {"status": "rejected"}

    @router.get("/{agent_id}")
    async def get_agent(agent_id: str) -> dict[str, Any]:
        agent = get_agent_or_404(agent_id)
        return {**agent.to_dict(), "running": app.scheduler.is_running(agent_id)}

    @router.delete("/{agent_id}", response_model=StatusResponse)
    async def retire_agent(agent_id: str, purge: bool = Query(False, description="Also remove the record")) -> dict:
        get_agent_or_404(agent_id)
        await app.retire_agent(agent_id, purge=purge)
        return {"status": "removed" if purge else "retired"}

    @router.post("/{agent_id}/start", response_model=StatusResponse)
    async def start_loop(agent_id: str, request: StartRequest | None = None) -> dict:
        get_agent_or_404(agent_id)
        interval = request.interval_seconds if request else None
        started = await app.scheduler.start(agent_id, interval)
        return {"status": "started" if started else "unchanged"}

    @router.post("/{agent_id}/stop", response_model=StatusResponse)
    async def stop_loop(agent_id: str) -> dict:
        get_agent_or_404(agent_id)
        stopped = await app.scheduler.stop(agent_id)
        return {"status": "stopped" if stopped else "unchanged"}

    @router.post("/{agent_id}/cycle")
    async def run_cycle(agent_id: str) -> dict[str, Any]:
        """Run a single cycle outside the loop."""
        get_agent_or_404(agent_id)
        succeeded = await app.scheduler.run_cycle(agent_id)
        return {"succeeded": succeeded, "agent": get_agent_or_404(agent_id).to_dict()}

    @router.post("/{agent_id}/goals")
    async def push_goal(agent_id: str, request: GoalRequest) -> dict[str, Any]:
        get_agent_or_404(agent_id)
        goal_id = app.runtime_state.push_goal(agent_id, request.description, request.priority)
        return {"goal_id": goal_id}

    @router.post("/{agent_id}/goals/{goal_id}/complete", response_model=StatusResponse)
    async def complete_goal(agent_id: str, goal_id: str) -> dict:
        get_agent_or_404(agent_id)
        app.runtime_state.complete_goal(agent_id, goal_id)
        return {"status": "ok"}

    @router.put("/{agent_id}/budget", response_model=StatusResponse)
    async def set_budget(agent_id: str, request: BudgetRequest) -> dict:
        get_agent_or_404(agent_id)
        app.guards.budget.set_budget(agent_id, request.max_tokens, request.max_cost_usd)
        return {"status": "ok"}

    @router.get("/{agent_id}/approvals")
    async def list_approvals(agent_id: str) -> list[dict[str, Any]]:
        get_agent_or_404(agent_id)
        return [_approval_dict(a) for a in app.runtime_state.get_approvals(agent_id)]

    @router.get("/{agent_id}/memories")
    async def list_memories(agent_id: str) -> list[dict[str, Any]]:
        get_agent_or_404(agent_id)
        return [m.to_dict() for m in app.memory.get_agent_memories(agent_id)]

    return router
