"""Workflow definitions: a tagged union of node types validated at load time."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class WorkflowStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"


class _NodeData(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    label: str = ""


class _Node(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str


# Triggers


class TriggerData(_NodeData):
    pass


class ManualTriggerNode(_Node):
    type: Literal["manual_trigger"]
    data: TriggerData = Field(default_factory=TriggerData)


class ScheduleTriggerNode(_Node):
    type: Literal["schedule_trigger"]
    data: TriggerData = Field(default_factory=TriggerData)


class WebhookTriggerNode(_Node):
    type: Literal["webhook_trigger"]
    data: TriggerData = Field(default_factory=TriggerData)


class EventTriggerNode(_Node):
    type: Literal["event_trigger"]
    data: TriggerData = Field(default_factory=TriggerData)


class ConnectorTriggerNode(_Node):
    type: Literal["connector_trigger"]
    data: TriggerData = Field(default_factory=TriggerData)


# Actions


class ToolActionData(_NodeData):
    tool_name: str = Field(alias="toolName")
    input: dict[str, Any] = Field(default_factory=dict)


class ToolActionNode(_Node):
    type: Literal["tool_action"]
    data: ToolActionData


class ConnectorActionData(_NodeData):
    connector_id: str = Field(alias="connectorId")
    action_id: str = Field(alias="actionId")
    params: dict[str, Any] = Field(default_factory=dict)


class ConnectorActionNode(_Node):
    type: Literal["connector_action"]
    data: ConnectorActionData


class HttpRequestData(_NodeData):
    url: str
    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | dict[str, Any] | list[Any] | None = None
    timeout: float = 30.0  # seconds
    retries: int = Field(default=0, ge=0)


class HttpRequestNode(_Node):
    type: Literal["http_request"]
    data: HttpRequestData


class SendNotificationData(_NodeData):
    title: str = ""
    message: str = ""


class SendNotificationNode(_Node):
    type: Literal["send_notification"]
    data: SendNotificationData = Field(default_factory=SendNotificationData)


# Agent nodes


class AgentThinkData(_NodeData):
    prompt: str
    system_prompt: str | None = Field(default=None, alias="systemPrompt")
    max_tokens: int = Field(default=1024, alias="maxTokens")


class AgentThinkNode(_Node):
    type: Literal["agent_think"]
    data: AgentThinkData


class AgentClassifyData(_NodeData):
    categories: list[str]
    input_field: str = Field(default="content", alias="inputField")

    @model_validator(mode="before")
    @classmethod
    def _split_categories(cls, values: Any) -> Any:
        if isinstance(values, dict) and isinstance(values.get("categories"), str):
            values = dict(values)
            values["categories"] = [
                c.strip() for c in values["categories"].split(",") if c.strip()
            ]
        return values


class AgentClassifyNode(_Node):
    type: Literal["agent_classify"]
    data: AgentClassifyData


class AgentExtractData(_NodeData):
    schema_: dict[str, Any] | None = Field(default=None, alias="schema")
    instructions: str = ""


class AgentExtractNode(_Node):
    type: Literal["agent_extract"]
    data: AgentExtractData


class AgentAutonomousData(_NodeData):
    agent_name: str | None = Field(default=None, alias="agentName")
    task: str
    autonomy_mode: str = Field(default="ask_first", alias="autonomyMode")
    capability_ids: list[str] = Field(default_factory=list, alias="capabilityIds")


class AgentAutonomousNode(_Node):
    type: Literal["agent_autonomous"]
    data: AgentAutonomousData


# Logic


class IfElseData(_NodeData):
    condition: str


class IfElseNode(_Node):
    type: Literal["if_else"]
    data: IfElseData


class SwitchData(_NodeData):
    field: str
    cases: list[str] = Field(default_factory=list)


class SwitchNode(_Node):
    type: Literal["switch"]
    data: SwitchData


class MergeNode(_Node):
    type: Literal["merge"]
    data: _NodeData = Field(default_factory=_NodeData)


class LoopData(_NodeData):
    array_field: str = Field(alias="arrayField")


class LoopNode(_Node):
    type: Literal["loop"]
    data: LoopData


class DelayData(_NodeData):
    duration: float = Field(default=5.0, ge=0)  # seconds


class DelayNode(_Node):
    type: Literal["delay"]
    data: DelayData = Field(default_factory=DelayData)


# Transforms


class SetVariableData(_NodeData):
    name: str
    value: str


class SetVariableNode(_Node):
    type: Literal["set_variable"]
    data: SetVariableData


class MapFieldsData(_NodeData):
    mapping: dict[str, str]


class MapFieldsNode(_Node):
    type: Literal["map_fields"]
    data: MapFieldsData


class FilterData(_NodeData):
    array_field: str = Field(alias="arrayField")
    condition: str


class FilterNode(_Node):
    type: Literal["filter"]
    data: FilterData


class AggregateData(_NodeData):
    array_field: str = Field(alias="arrayField")
    operation: Literal["sum", "count", "avg", "min", "max"] = "count"
    field: str | None = None


class AggregateNode(_Node):
    type: Literal["aggregate"]
    data: AggregateData


class TemplateData(_NodeData):
    template: str


class TemplateNode(_Node):
    type: Literal["template"]
    data: TemplateData


WorkflowNode = Annotated[
    Union[
        ManualTriggerNode,
        ScheduleTriggerNode,
        WebhookTriggerNode,
        EventTriggerNode,
        ConnectorTriggerNode,
        ToolActionNode,
        ConnectorActionNode,
        HttpRequestNode,
        SendNotificationNode,
        AgentThinkNode,
        AgentClassifyNode,
        AgentExtractNode,
        AgentAutonomousNode,
        IfElseNode,
        SwitchNode,
        MergeNode,
        LoopNode,
        DelayNode,
        SetVariableNode,
        MapFieldsNode,
        FilterNode,
        AggregateNode,
        TemplateNode,
    ],
    Field(discriminator="type"),
]

TRIGGER_TYPES = frozenset(
    {
        "manual_trigger",
        "schedule_trigger",
        "webhook_trigger",
        "event_trigger",
        "connector_trigger",
    }
)
BRANCHING_TYPES = frozenset({"if_else", "switch"})


class WorkflowConnection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    source_node_id: str = Field(alias="sourceNodeId")
    target_node_id: str = Field(alias="targetNodeId")
    source_port: str = Field(default="out", alias="sourcePortId")


class Workflow(BaseModel):
    """A validated workflow graph."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str = ""
    status: WorkflowStatus = WorkflowStatus.DRAFT
    nodes: list[WorkflowNode] = Field(default_factory=list)
    connections: list[WorkflowConnection] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_graph(self) -> "Workflow":
        ids = [node.id for node in self.nodes]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate node id in workflow")
        known = set(ids)
        for conn in self.connections:
            if conn.source_node_id not in known:
                raise ValueError(f"Connection {conn.id} references unknown source {conn.source_node_id}")
            if conn.target_node_id not in known:
                raise ValueError(f"Connection {conn.id} references unknown target {conn.target_node_id}")
        return self

    def get_node(self, node_id: str):
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


class ExecutionEventType(str, Enum):
    START = "start"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class ExecutionEvent:
    node_id: str
    type: ExecutionEventType
    data: Any
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "node_id": self.node_id,
            "type": self.type.value,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class NodeResult:
    success: bool
    output: Any = None
    error: str | None = None
