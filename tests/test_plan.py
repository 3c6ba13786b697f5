"""Tests for staged topological ordering."""

from agent_runtime.models import WorkflowConnection
from agent_runtime.workflow import build_execution_plan


def _conn(source: str, target: str) -> WorkflowConnection:
    return WorkflowConnection(id=f"{source}-{target}", source_node_id=source, target_node_id=target)


class TestBuildExecutionPlan:
    def test_linear_chain(self):
        plan = build_execution_plan(["a", "b", "c"], [_conn("a", "b"), _conn("b", "c")])
        assert plan.stages == [["a"], ["b"], ["c"]]
        assert plan.unscheduled == []

    def test_diamond_groups_parallel_nodes(self):
        plan = build_execution_plan(
            ["t", "l", "r", "m"],
            [_conn("t", "l"), _conn("t", "r"), _conn("l", "m"), _conn("r", "m")],
        )
        assert plan.stages == [["t"], ["l", "r"], ["m"]]

    def test_independent_roots_share_stage_zero(self):
        plan = build_execution_plan(["x", "y"], [])
        assert plan.stages == [["x", "y"]]

    def test_cycle_is_reported(self):
        plan = build_execution_plan(
            ["t", "a", "b"], [_conn("t", "a"), _conn("a", "b"), _conn("b", "a")]
        )
        assert plan.stages == [["t"]]
        assert plan.unscheduled == ["a", "b"]
