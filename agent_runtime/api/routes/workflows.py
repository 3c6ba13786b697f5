"""Workflow API routes."""

from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ...app import Application
from ...errors import WorkflowNotFoundError, WorkflowValidationError
from ...models import Workflow, WorkflowStatus


class StatusRequest(BaseModel):
    status: WorkflowStatus


class RunRequest(BaseModel):
    trigger_data: Any = None


class StatusResponse(BaseModel):
    status: str


def _workflow_dict(workflow: Workflow) -> dict:
    return workflow.model_dump(mode="json", by_alias=True)


def create_workflows_router(app: Application) -> APIRouter:
    """Create workflows router."""
    router = APIRouter(prefix="/api/workflows", tags=["workflows"])

    @router.post("")
    async def save_workflow(definition: dict[str, Any]) -> dict[str, Any]:
        """Validate and store a workflow definition."""
        try:
            workflow = await app.workflows.save(definition)
        except WorkflowValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _workflow_dict(workflow)

    @router.get("")
    async def list_workflows() -> list[dict[str, Any]]:
        return [_workflow_dict(w) for w in await app.workflows.list_all()]

    @router.get("/{workflow_id}")
    async def get_workflow(workflow_id: str) -> dict[str, Any]:
        workflow = await app.workflows.get(workflow_id)
        if workflow is None:
            raise HTTPException(status_code=404, detail=f"Workflow not found: {workflow_id}")
        return _workflow_dict(workflow)

    @router.put("/{workflow_id}/status")
    async def set_status(workflow_id: str, request: StatusRequest) -> dict[str, Any]:
        try:
            workflow = await app.workflows.set_status(workflow_id, request.status)
        except WorkflowNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return _workflow_dict(workflow)

    @router.delete("/{workflow_id}", response_model=StatusResponse)
    async def delete_workflow(workflow_id: str) -> dict:
        await app.workflows.delete(workflow_id)
        return {"status": "deleted"}

    @router.post("/{workflow_id}/run")
    async def run_workflow(workflow_id: str, request: RunRequest | None = None) -> list[dict[str, Any]]:
        """Run to completion and return the event stream."""
        trigger_data = request.trigger_data if request else None
        try:
            events = await app.workflow_engine.run(workflow_id, trigger_data)
        except WorkflowNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except WorkflowValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return [e.to_dict() for e in events]

    return router
