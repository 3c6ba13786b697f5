"""Topic-based message bus with per-agent unread queues."""

import asyncio
import dataclasses
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, Protocol

from ..logging_config import get_logger
from ..models import DEFAULT_TOPICS, DIRECT_TOPIC, BusMessage, MessagePriority
from ..storage import IStorage

logger = get_logger(__name__)


MessageListener = Callable[[BusMessage], Awaitable[None]]


class IMessageBus(Protocol):
    """Pub/sub between agents. Subscribers are agent ids, not callbacks."""

    def subscribe(self, agent_id: str, topic: str) -> None:
        """Add an agent to a topic (idempotent)."""
        ...

    def unsubscribe(self, agent_id: str, topic: str) -> None:
        """Remove an agent from a topic (idempotent)."""
        ...

    async def publish(
        self,
        from_agent_id: str,
        topic: str,
        content: str,
        priority: MessagePriority = MessagePriority.NORMAL,
    ) -> BusMessage:
        """Log the message and enqueue it for every subscriber except the sender."""
        ...

    async def direct_message(
        self,
        from_agent_id: str,
        to_agent_id: str,
        content: str,
        priority: MessagePriority = MessagePriority.NORMAL,
    ) -> BusMessage:
        """Enqueue a message for a single agent."""
        ...

    async def acknowledge(self, agent_id: str, message_id: str) -> None:
        """Drop a message from an agent's unread queue."""
        ...

    def get_unread(self, agent_id: str) -> list[BusMessage]:
        """Unread messages for an agent in publish order."""
        ...


class MessageBus:
    """In-memory message bus.

    Every mutation runs without suspending, so concurrent agent loops on the
    same event loop always observe a consistent log and queue state.
    Persistence and listener notification happen after the state change.
    """

    def __init__(
        self,
        storage: IStorage | None = None,
        topics: Iterable[str] = DEFAULT_TOPICS,
    ):
        self._storage = storage
        self._subscriptions: dict[str, list[str]] = {topic: [] for topic in topics}
        self._queues: dict[str, list[BusMessage]] = {}
        self._messages: list[BusMessage] = []
        self._by_id: dict[str, BusMessage] = {}
        self._listeners: list[MessageListener] = []

    @property
    def messages(self) -> list[BusMessage]:
        """Global message log in publish order."""
        return list(self._messages)

    def add_listener(self, listener: MessageListener) -> None:
        """Register an observer called after every publish."""
        self._listeners.append(listener)

    def subscribe(self, agent_id: str, topic: str) -> None:
        """Add an agent to a topic (idempotent)."""
        subscribers = self._subscriptions.setdefault(topic, [])
        if agent_id not in subscribers:
            subscribers.append(agent_id)

    def unsubscribe(self, agent_id: str, topic: str) -> None:
        """Remove an agent from a topic (idempotent)."""
        subscribers = self._subscriptions.setdefault(topic, [])
        if agent_id in subscribers:
            subscribers.remove(agent_id)

    def unsubscribe_all(self, agent_id: str) -> None:
        """Remove an agent from every topic and drop its queue."""
        for subscribers in self._subscriptions.values():
            if agent_id in subscribers:
                subscribers.remove(agent_id)
        self._queues.pop(agent_id, None)

    async def publish(
        self,
        from_agent_id: str,
        topic: str,
        content: str,
        priority: MessagePriority = MessagePriority.NORMAL,
    ) -> BusMessage:
        """Log the message and enqueue it for every subscriber except the sender."""
        message = self._new_message(from_agent_id, topic, content, priority)
        self._subscriptions.setdefault(topic, [])

        self._record(message)
        for agent_id in self._subscriptions[topic]:
            if agent_id == from_agent_id:
                continue
            self._enqueue(agent_id, message)

        logger.debug(
            "Published %s on %s to %d subscriber(s)",
            message.id,
            topic,
            len([a for a in self._subscriptions[topic] if a != from_agent_id]),
        )
        await self._after_publish(message)
        return message

    async def direct_message(
        self,
        from_agent_id: str,
        to_agent_id: str,
        content: str,
        priority: MessagePriority = MessagePriority.NORMAL,
    ) -> BusMessage:
        """Enqueue a message for a single agent."""
        message = self._new_message(
            from_agent_id, DIRECT_TOPIC, content, priority, to_agent_id=to_agent_id
        )

        self._record(message)
        if to_agent_id != from_agent_id:
            self._enqueue(to_agent_id, message)

        await self._after_publish(message)
        return message

    async def acknowledge(self, agent_id: str, message_id: str) -> None:
        """Drop a message from an agent's unread queue (idempotent)."""
        queue = self._queues.get(agent_id, [])
        self._queues[agent_id] = [m for m in queue if m.id != message_id]

        original = self._by_id.get(message_id)
        if original is None or original.acknowledged:
            return
        original.acknowledged = True

        if self._storage:
            await self._storage.mark_bus_message_acknowledged(message_id)

    def get_unread(self, agent_id: str) -> list[BusMessage]:
        """Unread messages for an agent in publish order."""
        return list(self._queues.get(agent_id, []))

    def get_topics(self) -> list[str]:
        return list(self._subscriptions)

    def get_subscribers(self, topic: str) -> list[str]:
        return list(self._subscriptions.get(topic, []))

    def get_messages_by_topic(self, topic: str) -> list[BusMessage]:
        return [m for m in self._messages if m.topic == topic]

    def reset(self) -> None:
        """Forget all messages, queues and non-default topics."""
        self._subscriptions = {topic: [] for topic in DEFAULT_TOPICS}
        self._queues.clear()
        self._messages.clear()
        self._by_id.clear()

    def _new_message(
        self,
        from_agent_id: str,
        topic: str,
        content: str,
        priority: MessagePriority,
        to_agent_id: str | None = None,
    ) -> BusMessage:
        return BusMessage(
            id=str(uuid.uuid4()),
            from_agent_id=from_agent_id,
            to_agent_id=to_agent_id,
            topic=topic,
            content=content,
            priority=MessagePriority(priority),
            timestamp=datetime.now(timezone.utc),
        )

    def _record(self, message: BusMessage) -> None:
        self._messages.append(message)
        self._by_id[message.id] = message

    def _enqueue(self, agent_id: str, message: BusMessage) -> None:
        queue = self._queues.setdefault(agent_id, [])
        if any(m.id == message.id for m in queue):
            return
        queue.append(dataclasses.replace(message))

    async def _after_publish(self, message: BusMessage) -> None:
        if self._listeners:
            results = await asyncio.gather(
                *[listener(message) for listener in self._listeners],
                return_exceptions=True,
            )

            for i, result in enumerate(results):
                if isinstance(result, Exception):
                    logger.error("Error in bus listener %s: %s", i, result)

        if self._storage:
            await self._storage.save_bus_message(message)
