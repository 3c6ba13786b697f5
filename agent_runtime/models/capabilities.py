"""Capability (connector) and tool descriptors."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable


class AuthType(str, Enum):
    OAUTH2 = "oauth2"
    API_KEY = "api_key"
    NONE = "none"


class CapabilityStatus(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


@dataclass(frozen=True)
class CapabilityAction:
    id: str
    name: str
    description: str = ""
    input_schema: dict = field(default_factory=dict)
    output_schema: dict = field(default_factory=dict)


@dataclass
class Capability:
    """An external connector and the actions it exposes."""

    id: str
    name: str
    category: str
    auth_type: AuthType
    actions: list[CapabilityAction]
    status: CapabilityStatus = CapabilityStatus.DISCONNECTED
    description: str = ""

    def get_action(self, action_id: str) -> CapabilityAction | None:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "auth_type": self.auth_type.value,
            "status": self.status.value,
            "description": self.description,
            "actions": [
                {"id": a.id, "name": a.name, "description": a.description}
                for a in self.actions
            ],
        }


ToolHandler = Callable[[dict], Awaitable[Any]]


@dataclass(frozen=True)
class Tool:
    """An in-process tool callable by agents and workflows."""

    name: str
    description: str
    handler: ToolHandler
    input_schema: dict = field(default_factory=dict)
