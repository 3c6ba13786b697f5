"""Per-type execution of workflow nodes."""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import httpx

from ..capabilities import CapabilityRegistry
from ..llm import ILLMProvider, chat_or_none
from ..logging_config import get_logger
from ..models import NodeResult
from ..models.workflows import (
    TRIGGER_TYPES,
    AgentAutonomousData,
    AgentAutonomousNode,
    AgentClassifyNode,
    AgentExtractNode,
    AgentThinkNode,
    AggregateNode,
    ConnectorActionNode,
    DelayNode,
    FilterNode,
    HttpRequestNode,
    IfElseNode,
    LoopNode,
    MapFieldsNode,
    MergeNode,
    SendNotificationNode,
    SetVariableNode,
    SwitchNode,
    TemplateNode,
    ToolActionNode,
)
from .expressions import (
    evaluate_condition,
    evaluate_expression,
    render_template,
    to_display,
    to_number,
)
from .schema import validate_against_schema

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]
AgentDeployer = Callable[[AgentAutonomousData], Awaitable[str | None]]

RETRY_AFTER_CAP = 10.0  # seconds
RETRY_AFTER_DEFAULT = 5.0
BACKOFF_CAP = 8.0


@dataclass
class ExecutionContext:
    node_outputs: dict[str, Any] = field(default_factory=dict)
    variables: dict[str, Any] = field(default_factory=dict)


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _parse_json(text: str | None) -> Any:
    if text is None:
        return None
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return text


class NodeExecutor:
    """Dispatches a validated node to its handler. Handler errors become failed results."""

    def __init__(
        self,
        registry: CapabilityRegistry,
        llm: ILLMProvider | None = None,
        http_client: httpx.AsyncClient | None = None,
        agent_deployer: AgentDeployer | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._registry = registry
        self._llm = llm
        self._http = http_client
        self._deployer = agent_deployer
        self._sleep = sleep

    async def execute_node(self, node, input_data: Any, context: ExecutionContext) -> NodeResult:
        try:
            return await self._dispatch(node, input_data, context)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Node %s (%s) failed: %s", node.id, node.type, e)
            return NodeResult(False, None, str(e) or "Node execution failed")

    async def _dispatch(self, node, input_data: Any, context: ExecutionContext) -> NodeResult:
        if node.type in TRIGGER_TYPES:
            return NodeResult(True, input_data if input_data is not None else {})

        handler = getattr(self, f"_run_{node.type}")
        return await handler(node, input_data, context)

    # Actions

    async def _run_tool_action(self, node: ToolActionNode, input_data, context) -> NodeResult:
        params = {**node.data.input, **_as_dict(input_data)}
        result = await self._registry.execute_tool(node.data.tool_name, params)
        if isinstance(result, dict) and result.get("success") is False:
            return NodeResult(False, result, result.get("error") or "Tool failed")
        return NodeResult(True, result)

    async def _run_connector_action(self, node: ConnectorActionNode, input_data, context) -> NodeResult:
        params = {**node.data.params, **_as_dict(input_data)}
        result = await self._registry.execute_with_fallback(
            node.data.connector_id, node.data.action_id, params
        )
        if isinstance(result, dict) and result.get("success") is False:
            return NodeResult(False, result, result.get("error") or "Connector action failed")
        return NodeResult(True, result)

    async def _run_http_request(self, node: HttpRequestNode, input_data, context) -> NodeResult:
        data = _as_dict(input_data)
        request = node.data
        url = render_template(request.url, data)
        if isinstance(request.body, str):
            body = render_template(request.body, data)
        elif request.body is not None:
            body = json.dumps(request.body)
        else:
            body = None
        method = request.method.upper()
        client = self._http or httpx.AsyncClient()

        last_error = "HTTP request failed"
        try:
            for attempt in range(request.retries + 1):
                try:
                    response = await client.request(
                        method,
                        url,
                        headers=request.headers or None,
                        content=body if method != "GET" and body else None,
                        timeout=request.timeout,
                    )
                except httpx.HTTPError as e:
                    last_error = str(e) or e.__class__.__name__
                    if attempt < request.retries:
                        await self._sleep(min(2**attempt, BACKOFF_CAP))
                    continue

                if response.status_code == 429 and attempt < request.retries:
                    await self._sleep(self._retry_after(response.headers.get("Retry-After")))
                    continue

                output = _parse_json(response.text)
                if response.is_error:
                    return NodeResult(False, output, f"HTTP {response.status_code}")
                return NodeResult(True, output)
        finally:
            if self._http is None:
                await client.aclose()

        return NodeResult(False, None, last_error)

    @staticmethod
    def _retry_after(header: str | None) -> float:
        if not header:
            return RETRY_AFTER_DEFAULT
        try:
            return min(float(header), RETRY_AFTER_CAP)
        except ValueError:
            return RETRY_AFTER_DEFAULT

    async def _run_send_notification(self, node: SendNotificationNode, input_data, context) -> NodeResult:
        data = _as_dict(input_data)
        result = await self._registry.execute_tool(
            "send_notification",
            {
                "title": render_template(node.data.title, data),
                "message": render_template(node.data.message, data),
            },
        )
        return NodeResult(True, result)

    # Agent nodes

    async def _run_agent_think(self, node: AgentThinkNode, input_data, context) -> NodeResult:
        data_str = input_data if isinstance(input_data, str) else json.dumps(input_data if input_data is not None else {})
        result = await chat_or_none(
            self._llm,
            [{"role": "user", "content": f"{node.data.prompt}\n\nInput data:\n{data_str}"}],
            system=node.data.system_prompt,
            max_tokens=node.data.max_tokens,
        )
        return NodeResult(True, result or "")

    async def _run_agent_classify(self, node: AgentClassifyNode, input_data, context) -> NodeResult:
        categories = node.data.categories
        content = input_data.get(node.data.input_field) if isinstance(input_data, dict) else input_data
        result = await chat_or_none(
            self._llm,
            [
                {
                    "role": "user",
                    "content": (
                        "Classify the following into exactly one of these categories: "
                        f"{', '.join(categories)}\n\nInput: {content}\n\n"
                        "Respond with only the category name."
                    ),
                }
            ],
        )
        category = result.strip() if result and result.strip() else "unknown"
        return NodeResult(True, {"category": category, "input": content})

    async def _run_agent_extract(self, node: AgentExtractNode, input_data, context) -> NodeResult:
        schema = node.data.schema_
        schema_str = json.dumps(schema)
        instructions = f"Instructions: {node.data.instructions}\n" if node.data.instructions else ""
        input_str = json.dumps(input_data, default=str)

        result = await chat_or_none(
            self._llm,
            [
                {
                    "role": "user",
                    "content": (
                        f"Extract structured data from the following input according to this schema: {schema_str}\n"
                        f"{instructions}\nInput: {input_str}\n\nRespond with only valid JSON."
                    ),
                }
            ],
        )
        parsed = _parse_json(result)
        error = validate_against_schema(parsed, schema)
        if error is None:
            return NodeResult(True, parsed)

        retry_result = await chat_or_none(
            self._llm,
            [
                {
                    "role": "user",
                    "content": (
                        f"Your previous response had validation errors: {error}\n\n"
                        f"Please extract structured data from this input according to this schema: {schema_str}\n"
                        f"{instructions}\nInput: {input_str}\n\n"
                        "Respond with ONLY valid JSON matching the schema exactly."
                    ),
                }
            ],
        )
        retry_parsed = _parse_json(retry_result)
        retry_error = validate_against_schema(retry_parsed, schema)
        if retry_error is not None:
            return NodeResult(False, retry_parsed, f"Schema validation failed: {retry_error}")
        return NodeResult(True, retry_parsed)

    async def _run_agent_autonomous(self, node: AgentAutonomousNode, input_data, context) -> NodeResult:
        if self._deployer is None:
            return NodeResult(False, None, "Failed to deploy agent: no agent deployer configured")
        agent_id = await self._deployer(node.data)
        if not agent_id:
            return NodeResult(False, None, "Failed to deploy agent")
        return NodeResult(True, {"agent_id": agent_id, "task": node.data.task, "status": "deployed"})

    # Logic

    def _scope(self, input_data, context: ExecutionContext) -> dict:
        return {"data": input_data, **context.variables}

    async def _run_if_else(self, node: IfElseNode, input_data, context) -> NodeResult:
        matched = evaluate_condition(node.data.condition, self._scope(input_data, context))
        return NodeResult(True, {"branch": "true" if matched else "false", "data": input_data})

    async def _run_switch(self, node: SwitchNode, input_data, context) -> NodeResult:
        value = evaluate_expression(node.data.field, self._scope(input_data, context))
        shown = None if value is None else to_display(value)
        branch = "default"
        for index, case in enumerate(node.data.cases):
            if case == shown:
                branch = f"case_{index}"
                break
        return NodeResult(True, {"branch": branch, "data": input_data})

    async def _run_merge(self, node: MergeNode, input_data, context) -> NodeResult:
        return NodeResult(True, input_data)

    async def _run_loop(self, node: LoopNode, input_data, context) -> NodeResult:
        items = evaluate_expression(node.data.array_field, {"data": input_data})
        if not isinstance(items, list):
            return NodeResult(False, None, f"{node.data.array_field} is not an array")
        return NodeResult(True, {"items": items, "count": len(items)})

    async def _run_delay(self, node: DelayNode, input_data, context) -> NodeResult:
        await self._sleep(node.data.duration)
        return NodeResult(True, input_data)

    # Transforms

    async def _run_set_variable(self, node: SetVariableNode, input_data, context) -> NodeResult:
        value = evaluate_expression(node.data.value, self._scope(input_data, context))
        context.variables[node.data.name] = value
        return NodeResult(True, {**_as_dict(input_data), node.data.name: value})

    async def _run_map_fields(self, node: MapFieldsNode, input_data, context) -> NodeResult:
        source = _as_dict(input_data)
        return NodeResult(True, {new: source.get(old) for old, new in node.data.mapping.items()})

    async def _run_filter(self, node: FilterNode, input_data, context) -> NodeResult:
        items = evaluate_expression(node.data.array_field, {"data": input_data})
        if not isinstance(items, list):
            return NodeResult(False, None, f"{node.data.array_field} is not an array")
        kept = [
            item
            for item in items
            if evaluate_condition(node.data.condition, {"item": item, "data": input_data})
        ]
        return NodeResult(True, kept)

    async def _run_aggregate(self, node: AggregateNode, input_data, context) -> NodeResult:
        agg = node.data
        items = evaluate_expression(agg.array_field, {"data": input_data})
        if not isinstance(items, list):
            return NodeResult(False, None, f"{agg.array_field} is not an array")

        if agg.field:
            values = [to_number(_as_dict(item).get(agg.field)) for item in items]
        else:
            values = [to_number(item) for item in items]

        if agg.operation == "sum":
            result = sum(values)
        elif agg.operation == "avg":
            result = sum(values) / len(values) if values else 0
        elif agg.operation == "min":
            result = min(values) if values else 0
        elif agg.operation == "max":
            result = max(values) if values else 0
        else:
            result = len(items)
        return NodeResult(True, {"result": result, "operation": agg.operation, "count": len(items)})

    async def _run_template(self, node: TemplateNode, input_data, context) -> NodeResult:
        return NodeResult(True, render_template(node.data.template, _as_dict(input_data)))
