"""Message bus API routes."""

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from ...app import Application
from ...models import MessagePriority


class PublishRequest(BaseModel):
    from_agent_id: str
    topic: str
    content: str
    priority: MessagePriority = MessagePriority.NORMAL


class DirectMessageRequest(BaseModel):
    from_agent_id: str
    to_agent_id: str
    content: str
    priority: MessagePriority = MessagePriority.NORMAL


class SubscriptionRequest(BaseModel):
    agent_id: str
    topic: str


class StatusResponse(BaseModel):
    status: str


def create_messaging_router(app: Application) -> APIRouter:
    """Create message bus router."""
    router = APIRouter(prefix="/api/bus", tags=["bus"])

    @router.post("/publish")
    async def publish(request: PublishRequest) -> dict[str, Any]:
        message = await app.message_bus.publish(
            request.from_agent_id, request.topic, request.content, request.priority
        )
        return message.to_dict()

    @router.post("/direct")
    async def direct_message(request: DirectMessageRequest) -> dict[str, Any]:
        message = await app.message_bus.direct_message(
            request.from_agent_id, request.to_agent_id, request.content, request.priority
        )
        return message.to_dict()

    @router.post("/subscriptions", response_model=StatusResponse)
    async def subscribe(request: SubscriptionRequest) -> dict:
        app.message_bus.subscribe(request.agent_id, request.topic)
        return {"status": "subscribed"}

    @router.delete("/subscriptions/{agent_id}/{topic}", response_model=StatusResponse)
    async def unsubscribe(agent_id: str, topic: str) -> dict:
        app.message_bus.unsubscribe(agent_id, topic)
        return {"status": "unsubscribed"}

    @router.get("/topics")
    async def list_topics() -> list[dict[str, Any]]:
        return [
            {"topic": topic, "subscribers": app.message_bus.get_subscribers(topic)}
            for topic in app.message_bus.get_topics()
        ]

    @router.get("/messages")
    async def list_messages(topic: str | None = None) -> list[dict[str, Any]]:
        """Message log, optionally for one topic."""
        if topic:
            messages = app.message_bus.get_messages_by_topic(topic)
        else:
            messages = app.message_bus.messages
        return [m.to_dict() for m in messages]

    @router.get("/agents/{agent_id}/unread")
    async def get_unread(agent_id: str) -> list[dict[str, Any]]:
        return [m.to_dict() for m in app.message_bus.get_unread(agent_id)]

    @router.post("/agents/{agent_id}/acknowledge/{message_id}", response_model=StatusResponse)
    async def acknowledge(agent_id: str, message_id: str) -> dict:
        await app.message_bus.acknowledge(agent_id, message_id)
        return {"status": "ok"}

    return router
