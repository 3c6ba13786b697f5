"""Workflow definitions: validation on load and persistence."""

from pydantic import ValidationError

from ..errors import WorkflowNotFoundError, WorkflowValidationError
from ..logging_config import get_logger
from ..models import Workflow, WorkflowStatus
from ..storage import IStorage

logger = get_logger(__name__)


def load_workflow(definition: dict) -> Workflow:
    """Validate a raw definition into a typed Workflow."""
    try:
        return Workflow.model_validate(definition)
    except ValidationError as e:
        raise WorkflowValidationError(str(e)) from e


class WorkflowRepository:
    """In-memory workflow cache, written through to Storage when available."""

    def __init__(self, storage: IStorage | None = None):
        self._storage = storage
        self._workflows: dict[str, Workflow] = {}

    async def save(self, workflow: Workflow | dict) -> Workflow:
        if isinstance(workflow, dict):
            workflow = load_workflow(workflow)
        self._workflows[workflow.id] = workflow
        if self._storage:
            await self._storage.save_workflow(workflow)
        return workflow

    async def get(self, workflow_id: str) -> Workflow | None:
        workflow = self._workflows.get(workflow_id)
        if workflow is None and self._storage:
            workflow = await self._storage.get_workflow(workflow_id)
            if workflow is not None:
                self._workflows[workflow_id] = workflow
        return workflow

    async def list_all(self) -> list[Workflow]:
        if self._storage:
            for workflow in await self._storage.list_workflows():
                self._workflows.setdefault(workflow.id, workflow)
        return list(self._workflows.values())

    async def set_status(self, workflow_id: str, status: WorkflowStatus) -> Workflow:
        workflow = await self.get(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)
        updated = workflow.model_copy(update={"status": WorkflowStatus(status)})
        return await self.save(updated)

    async def delete(self, workflow_id: str) -> None:
        self._workflows.pop(workflow_id, None)
        if self._storage:
            await self._storage.delete_workflow(workflow_id)

    def reset(self) -> None:
        self._workflows.clear()
