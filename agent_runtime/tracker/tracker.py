"""Tracker implementation for creating TraceEvents."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from ..message_bus import IMessageBus
from ..models import BusMessage, TraceEvent
from ..storage import IStorage


class ITracker(Protocol):
    """Creating TraceEvents. Two channels: message bus listener + direct calls."""

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        """Create TraceEvent and save to Storage."""
        ...


class Tracker:
    """Creates TraceEvents for bus traffic and for direct track() calls."""

    def __init__(self, message_bus: IMessageBus, storage: IStorage):
        self._message_bus = message_bus
        self._storage = storage

    async def start(self) -> None:
        """Listen to every message published on the bus."""
        self._message_bus.add_listener(self._handle_bus_message)

    async def _handle_bus_message(self, bus_message: BusMessage) -> None:
        await self.track(
            event_type="bus_message_published",
            actor=bus_message.from_agent_id,
            data={
                "message_id": bus_message.id,
                "topic": bus_message.topic,
                "to_agent_id": bus_message.to_agent_id,
                "priority": bus_message.priority.value,
                "content_summary": bus_message.content[:100],
            },
        )

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        """Create TraceEvent and save to Storage."""
        trace_event = TraceEvent(
            id=str(uuid.uuid4()),
            event_type=event_type,
            actor=actor,
            data=data,
            timestamp=datetime.now(timezone.utc),
        )
        await self._storage.save_trace_event(trace_event)
