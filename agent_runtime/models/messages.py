"""Message bus data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


DIRECT_TOPIC = "direct"

DEFAULT_TOPICS = (
    "system.alerts",
    "domain.finance",
    "domain.health",
    "domain.work",
    "coordination.handoff",
    "healing.report",
)


class MessagePriority(str, Enum):
    """Message priority, highest first."""

    CRITICAL = "critical"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    MessagePriority.CRITICAL: 3,
    MessagePriority.HIGH: 2,
    MessagePriority.NORMAL: 1,
    MessagePriority.LOW: 0,
}


@dataclass
class BusMessage:
    """A message on the bus. Only ``acknowledged`` changes after publish."""

    id: str
    from_agent_id: str
    topic: str
    content: str
    priority: MessagePriority
    timestamp: datetime
    to_agent_id: str | None = None
    acknowledged: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "from_agent_id": self.from_agent_id,
            "to_agent_id": self.to_agent_id,
            "topic": self.topic,
            "content": self.content,
            "priority": self.priority.value,
            "timestamp": self.timestamp.isoformat(),
            "acknowledged": self.acknowledged,
        }
