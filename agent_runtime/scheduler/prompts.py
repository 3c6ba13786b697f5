"""Prompt construction and plan parsing for the autonomous loop."""

import json

from ..models import (
    ActionType,
    Agent,
    BusMessage,
    Capability,
    PlannedAction,
    RepairRecord,
    Tool,
)

MEMORY_TOKEN_BUDGET = 2000
MAX_PROMPT_MESSAGES = 5
MAX_PROMPT_REPAIRS = 3

REASON_INSTRUCTIONS = (
    "Analyze the situation and determine what actions should be taken next. "
    "Be specific about which tools or connectors to use."
)

NO_ACTION = '[{"type":"none","params":{},"description":"No action needed"}]'


def build_system_prompt(
    agent: Agent,
    capabilities: list[Capability],
    memory_context: str,
    messages: list[BusMessage],
    repairs: list[RepairRecord],
) -> str:
    """Describe who the agent is and what it currently knows."""
    lines = [
        f"You are {agent.name}, an autonomous agent.",
        f"Your task: {agent.task}",
        f"Autonomy mode: {agent.autonomy_mode.value}",
    ]

    goals = agent.active_goals
    if goals:
        lines.append("")
        lines.append("Active goals:")
        for goal in sorted(goals, key=lambda g: -g.priority):
            lines.append(f"- (priority {goal.priority}) {goal.description}")

    lines.append("")
    if capabilities:
        lines.append("Assigned connectors:")
        for capability in capabilities:
            actions = ", ".join(a.id for a in capability.actions)
            lines.append(f"- {capability.name} ({capability.id}, {capability.status.value}): {actions}")
    else:
        lines.append("No connectors assigned.")

    if memory_context:
        lines.append("")
        lines.append("Relevant memories:")
        lines.append(memory_context)

    if messages:
        lines.append("")
        lines.append("Recent messages:")
        for message in messages[:MAX_PROMPT_MESSAGES]:
            lines.append(f"- [{message.topic}] {message.from_agent_id}: {message.content[:200]}")

    if repairs:
        lines.append("")
        lines.append("Recent repairs:")
        for repair in repairs[-MAX_PROMPT_REPAIRS:]:
            lines.append(
                f"- {repair.error_type.value} ({repair.status.value}): {repair.error_message[:200]}"
            )

    return "\n".join(lines)


def build_reason_prompt(observations: str) -> str:
    return f"Current observations:\n{observations}\n\n{REASON_INSTRUCTIONS}"


def build_plan_prompt(reasoning: str, capabilities: list[Capability], tools: list[Tool]) -> str:
    if capabilities:
        connector_context = "\n".join(
            f'Connector "{c.name}" (id: {c.id}, status: {c.status.value}): '
            f"actions=[{', '.join(f'{a.id}: {a.name}' for a in c.actions)}]"
            for c in capabilities
        )
    else:
        connector_context = "No connectors available."

    if tools:
        tool_context = "\n".join(f'Tool "{t.name}": {t.description}' for t in tools)
    else:
        tool_context = "No tools available."

    return (
        "Given the following reasoning about the current situation, "
        "output a JSON array of actions to take.\n\n"
        f"Reasoning:\n{reasoning}\n\n"
        f"Available connectors:\n{connector_context}\n\n"
        f"Available tools:\n{tool_context}\n\n"
        "Each action in the array must be a JSON object with these fields:\n"
        '- "type": one of "connector", "tool", "workflow", "message", "none"\n'
        '- "connectorId": (for connector type) the connector id\n'
        '- "actionId": (for connector type) the action id\n'
        '- "toolName": (for tool type) the tool name\n'
        '- "workflowId": (for workflow type) the workflow id\n'
        '- "params": object of parameters\n'
        '- "description": brief description of what this action does\n\n'
        f"If no action is needed, return: {NO_ACTION}\n\n"
        "Respond ONLY with the JSON array, no markdown fences or explanation."
    )


def _optional_str(item: dict, key: str) -> str | None:
    value = item.get(key)
    return value if isinstance(value, str) else None


def _to_action(item) -> PlannedAction:
    if not isinstance(item, dict):
        return PlannedAction(ActionType.NONE, str(item))

    raw_type = item.get("type")
    try:
        action_type = ActionType(raw_type) if isinstance(raw_type, str) else ActionType.NONE
    except ValueError:
        action_type = ActionType.NONE

    params = item.get("params")
    description = item.get("description")
    return PlannedAction(
        type=action_type,
        description=description if isinstance(description, str) else "No description",
        params=params if isinstance(params, dict) else {},
        connector_id=_optional_str(item, "connectorId"),
        action_id=_optional_str(item, "actionId"),
        tool_name=_optional_str(item, "toolName"),
        workflow_id=_optional_str(item, "workflowId"),
    )


def parse_plan(text: str | None, reasoning: str) -> list[PlannedAction]:
    """
    Turn model output into typed actions. Never raises.

    Anything that is not a non-empty JSON array becomes a single ``none``
    action describing the raw text (or the reasoning when there is no text).
    """
    if not text or not text.strip():
        return [PlannedAction(ActionType.NONE, reasoning)]

    try:
        parsed = json.loads(text)
    except ValueError:
        return [PlannedAction(ActionType.NONE, text)]

    if not isinstance(parsed, list) or not parsed:
        return [PlannedAction(ActionType.NONE, text)]
    return [_to_action(item) for item in parsed]
