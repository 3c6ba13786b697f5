"""Observability API routes."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from ...app import Application
from ...memory import memory_health_report


class TraceEventResponse(BaseModel):
    """Response model for trace event."""

    id: str
    event_type: str
    actor: str
    data: dict[str, Any]
    timestamp: datetime


def create_observability_router(app: Application) -> APIRouter:
    """Create observability router."""
    router = APIRouter(prefix="/api", tags=["observability"])

    @router.get("/trace-events", response_model=list[TraceEventResponse])
    async def get_trace_events(
        after: str | None = Query(None, description="ISO timestamp filter"),
        limit: int = Query(100, ge=1, le=1000),
        event_type: str | None = Query(None, description="Filter by event type"),
        actor: str | None = Query(None, description="Filter by actor"),
    ) -> list[dict]:
        """Get trace events with optional filters."""
        after_dt = None
        if after:
            try:
                after_dt = datetime.fromisoformat(after)
            except ValueError:
                raise HTTPException(status_code=400, detail="Invalid after timestamp format")

        events = await app.storage.get_trace_events(
            after=after_dt,
            event_types=[event_type] if event_type else None,
            actor=actor,
            limit=limit,
        )
        return [
            {
                "id": e.id,
                "event_type": e.event_type,
                "actor": e.actor,
                "data": e.data,
                "timestamp": e.timestamp.isoformat(),
            }
            for e in events
        ]

    @router.get("/repairs")
    async def get_repairs(
        agent_id: str | None = Query(None, description="Filter by agent"),
        limit: int = Query(100, ge=1, le=1000),
    ) -> dict[str, Any]:
        """Persisted repair records (newest first) and the overall success rate."""
        return {
            "repairs": await app.storage.get_repairs(agent_id, limit),
            "success_rate": app.healer.repair_log.get_success_rate(),
        }

    @router.get("/guards")
    async def get_guards() -> dict[str, Any]:
        guards = app.guards
        return {
            "circuits": guards.circuit_breaker.snapshot(),
            "locks": [
                {
                    "resource": lock.resource,
                    "kind": lock.kind,
                    "agent_id": lock.agent_id,
                    "priority": lock.priority,
                    "holds": lock.holds,
                    "expires_at": lock.expires_at,
                }
                for lock in guards.governor.get_locks()
            ],
            "conflicts": [
                {
                    "id": conflict.id,
                    "resource": conflict.resource,
                    "holder_agent_id": conflict.holder_agent_id,
                    "contenders": list(conflict.contenders),
                    "resolved": conflict.resolved,
                }
                for conflict in guards.governor.get_conflicts()
            ],
        }

    @router.get("/costs")
    async def get_costs(agent_id: str | None = None, limit: int = Query(100, ge=1, le=1000)) -> dict[str, Any]:
        budget = app.guards.budget
        return {
            "total_cost_usd": budget.get_total_cost(agent_id),
            "history": [
                {
                    "agent_id": e.agent_id,
                    "tokens": e.tokens,
                    "cost_usd": e.cost_usd,
                    "source": e.source,
                    "timestamp": e.timestamp.isoformat(),
                }
                for e in budget.get_cost_history(agent_id, limit)
            ],
        }

    @router.get("/capabilities")
    async def list_capabilities() -> list[dict[str, Any]]:
        return [c.to_dict() for c in app.registry.list_capabilities()]

    @router.get("/notifications")
    async def list_notifications() -> list[dict[str, Any]]:
        return list(app.notifier.notifications)

    @router.get("/agents/{agent_id}/memory-health")
    async def memory_health(agent_id: str) -> dict[str, Any]:
        return memory_health_report(app.memory, agent_id)

    return router
