"""Staged topological ordering of a workflow graph."""

from dataclasses import dataclass, field
from typing import Iterable

from ..models import WorkflowConnection


@dataclass(frozen=True)
class ExecutionPlan:
    stages: list[list[str]]
    # Nodes never reaching in-degree zero, i.e. on or behind a cycle.
    unscheduled: list[str] = field(default_factory=list)


def build_execution_plan(
    node_ids: Iterable[str], connections: Iterable[WorkflowConnection]
) -> ExecutionPlan:
    """
    Kahn's algorithm, one stage per wave.

    Stage 0 holds every node without incoming edges; each later stage holds
    the successors whose in-degree reached zero while processing the previous
    stage. Nodes inside a stage have no edges between them.
    """
    order = list(node_ids)
    in_degree = {node_id: 0 for node_id in order}
    adjacency: dict[str, list[str]] = {node_id: [] for node_id in order}

    for conn in connections:
        adjacency.setdefault(conn.source_node_id, []).append(conn.target_node_id)
        in_degree[conn.target_node_id] = in_degree.get(conn.target_node_id, 0) + 1

    stages: list[list[str]] = []
    queue = [node_id for node_id in order if in_degree[node_id] == 0]
    while queue:
        stages.append(queue)
        next_queue: list[str] = []
        for node_id in queue:
            for neighbor in adjacency.get(node_id, []):
                in_degree[neighbor] -= 1
                if in_degree[neighbor] == 0:
                    next_queue.append(neighbor)
        queue = next_queue

    scheduled = {node_id for stage in stages for node_id in stage}
    return ExecutionPlan(
        stages=stages,
        unscheduled=[node_id for node_id in order if node_id not in scheduled],
    )
