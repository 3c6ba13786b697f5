"""Workflow execution module."""

from .engine import IWorkflowEngine, WorkflowEngine
from .expressions import evaluate_condition, evaluate_expression, render_template
from .nodes import AgentDeployer, ExecutionContext, NodeExecutor
from .plan import ExecutionPlan, build_execution_plan
from .repository import WorkflowRepository, load_workflow
from .schema import validate_against_schema

__all__ = [
    "AgentDeployer",
    "ExecutionContext",
    "ExecutionPlan",
    "IWorkflowEngine",
    "NodeExecutor",
    "WorkflowEngine",
    "WorkflowRepository",
    "build_execution_plan",
    "evaluate_condition",
    "evaluate_expression",
    "load_workflow",
    "render_template",
    "validate_against_schema",
]
