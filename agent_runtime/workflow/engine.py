"""Stage-by-stage workflow execution producing an event stream."""

import asyncio
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Protocol

from ..errors import WorkflowNotFoundError, WorkflowValidationError
from ..logging_config import get_logger
from ..models import (
    ExecutionEvent,
    ExecutionEventType,
    NodeResult,
    Workflow,
    WorkflowStatus,
)
from ..models.workflows import BRANCHING_TYPES
from .nodes import ExecutionContext, NodeExecutor
from .plan import build_execution_plan
from .repository import WorkflowRepository

logger = get_logger(__name__)


def _event(node_id: str, event_type: ExecutionEventType, data: Any = None) -> ExecutionEvent:
    return ExecutionEvent(node_id, event_type, data, datetime.now(timezone.utc))


class IWorkflowEngine(Protocol):
    def execute_workflow(
        self, workflow: Workflow, trigger_data: Any = None
    ) -> AsyncIterator[ExecutionEvent]:
        """Run a workflow, yielding start/complete/error events."""
        ...

    async def run(self, workflow_id: str, trigger_data: Any = None) -> list[ExecutionEvent]:
        """Run a stored workflow to completion."""
        ...


class WorkflowEngine:
    """
    Runs workflows stage by stage.

    Nodes in a stage run concurrently; every node of a stage reaches a
    terminal event before the next stage starts. Connections leaving an
    ``if_else`` or ``switch`` node carry data only when their source port
    matches the chosen branch, and a node whose incoming connections are all
    inactive is skipped without emitting events. A failed node still feeds
    its successors (with whatever output it produced), except a failed
    branching node, which selects no branch.
    """

    def __init__(self, executor: NodeExecutor, repository: WorkflowRepository | None = None):
        self._executor = executor
        self._repository = repository

    async def execute_workflow(
        self, workflow: Workflow, trigger_data: Any = None
    ) -> AsyncIterator[ExecutionEvent]:
        plan = build_execution_plan([n.id for n in workflow.nodes], workflow.connections)
        if plan.unscheduled:
            raise WorkflowValidationError(
                f"Workflow {workflow.id} has a cycle through: {', '.join(plan.unscheduled)}"
            )

        context = ExecutionContext()
        incoming: dict[str, list] = {}
        for conn in workflow.connections:
            incoming.setdefault(conn.target_node_id, []).append(conn)

        results: dict[str, NodeResult] = {}
        skipped: set[str] = set()

        for stage in plan.stages:
            runnable = []
            for node_id in stage:
                conns = incoming.get(node_id, [])
                active = [c for c in conns if self._is_active(c, workflow, results, skipped)]
                if conns and not active:
                    skipped.add(node_id)
                    logger.debug("Skipping node %s: no active input", node_id)
                    continue
                input_data = self._gather_input(active, workflow, context) if conns else trigger_data
                runnable.append((workflow.get_node(node_id), input_data))

            for node, _ in runnable:
                yield _event(node.id, ExecutionEventType.START)

            stage_results = await asyncio.gather(
                *[self._executor.execute_node(node, data, context) for node, data in runnable]
            )

            for (node, _), result in zip(runnable, stage_results):
                results[node.id] = result
                context.node_outputs[node.id] = result.output
                if result.success:
                    yield _event(node.id, ExecutionEventType.COMPLETE, result.output)
                else:
                    yield _event(node.id, ExecutionEventType.ERROR, result.error)

    async def run(self, workflow_id: str, trigger_data: Any = None) -> list[ExecutionEvent]:
        if self._repository is None:
            raise WorkflowNotFoundError(workflow_id)
        workflow = await self._repository.get(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)
        if workflow.status == WorkflowStatus.ARCHIVED:
            raise WorkflowValidationError(f"Workflow {workflow_id} is archived")

        events = [event async for event in self.execute_workflow(workflow, trigger_data)]
        failed = sum(1 for e in events if e.type == ExecutionEventType.ERROR)
        logger.info(
            "Workflow %s finished: %d events, %d error(s)", workflow_id, len(events), failed
        )
        return events

    @staticmethod
    def _is_active(conn, workflow: Workflow, results: dict[str, NodeResult], skipped: set[str]) -> bool:
        source_id = conn.source_node_id
        if source_id in skipped or source_id not in results:
            return False
        result = results[source_id]
        source = workflow.get_node(source_id)
        if source.type not in BRANCHING_TYPES:
            return True
        if not result.success or not isinstance(result.output, dict):
            return False
        return conn.source_port == result.output.get("branch")

    @staticmethod
    def _gather_input(active_conns: list, workflow: Workflow, context: ExecutionContext) -> Any:
        if len(active_conns) == 1:
            source_id = active_conns[0].source_node_id
            output = context.node_outputs.get(source_id)
            if workflow.get_node(source_id).type in BRANCHING_TYPES and isinstance(output, dict):
                return output.get("data")
            return output

        # Several inputs merge the raw outputs; a branch node contributes its
        # {"branch", "data"} wrapper here, unlike the single-input case.
        merged: dict = {}
        for conn in active_conns:
            output = context.node_outputs.get(conn.source_node_id)
            if isinstance(output, dict):
                merged.update(output)
        return merged
