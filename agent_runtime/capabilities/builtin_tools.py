"""Tools every runtime ships with."""

import uuid
from datetime import datetime, timezone

from ..logging_config import get_logger
from ..memory import MemoryStore
from ..message_bus import MessageBus
from ..models import MessagePriority, Tool
from .registry import CapabilityRegistry

logger = get_logger(__name__)


class Notifier:
    """Collects user-facing notifications raised by agents and workflows."""

    def __init__(self):
        self.notifications: list[dict] = []

    async def notify(self, params: dict) -> dict:
        notification = {
            "id": str(uuid.uuid4()),
            "title": params.get("title") or "Notification",
            "message": params.get("message") or "",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        self.notifications.append(notification)
        logger.info("Notification: %s", notification["title"])
        return {"success": True, "notification_id": notification["id"]}


def register_builtin_tools(
    registry: CapabilityRegistry,
    memory: MemoryStore,
    bus: MessageBus,
    notifier: Notifier,
) -> None:
    """Register send_notification, remember_fact, search_memory and publish_message."""

    async def remember_fact(params: dict) -> dict:
        memory_id = memory.remember(
            params.get("agent_id", "workflow"),
            str(params.get("content", "")),
            params.get("category", "facts"),
            params.get("title"),
        )
        return {"success": True, "memory_id": memory_id}

    async def search_memory(params: dict) -> dict:
        entries = memory.recall(
            params.get("agent_id", "workflow"),
            str(params.get("query", "")),
            int(params.get("limit", 5)),
        )
        return {
            "success": True,
            "results": [{"id": e.id, "title": e.title, "content": e.content} for e in entries],
        }

    async def publish_message(params: dict) -> dict:
        message = await bus.publish(
            params.get("agent_id", "workflow"),
            params.get("topic", "coordination.handoff"),
            str(params.get("content", "")),
            MessagePriority(params.get("priority", "normal")),
        )
        return {"success": True, "message_id": message.id}

    registry.register_tool(
        Tool(
            name="send_notification",
            description="Show a notification to the user",
            handler=notifier.notify,
            input_schema={"title": {"type": "string"}, "message": {"type": "string"}},
        )
    )
    registry.register_tool(
        Tool(
            name="remember_fact",
            description="Store a note in agent memory",
            handler=remember_fact,
            input_schema={"content": {"type": "string"}, "category": {"type": "string"}},
        )
    )
    registry.register_tool(
        Tool(
            name="search_memory",
            description="Search agent memory by keywords",
            handler=search_memory,
            input_schema={"query": {"type": "string"}},
        )
    )
    registry.register_tool(
        Tool(
            name="publish_message",
            description="Publish a message on the bus",
            handler=publish_message,
            input_schema={"topic": {"type": "string"}, "content": {"type": "string"}},
        )
    )
