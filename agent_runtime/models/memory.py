"""Memory store data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

SHARED_POOL_ID = "__shared__"


class MemoryScope(str, Enum):
    PERSONAL = "personal"
    WORKSPACE = "workspace"


@dataclass
class MemoryEntry:
    """A stored note owned by one agent or by the shared pool."""

    id: str
    owner_agent_id: str
    title: str
    content: str
    category: str
    token_count: int
    created_at: datetime
    last_accessed_at: datetime
    pinned: bool = False
    access_count: int = 0
    scope: MemoryScope = MemoryScope.PERSONAL
    source_agent_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_agent_id": self.owner_agent_id,
            "title": self.title,
            "content": self.content,
            "category": self.category,
            "token_count": self.token_count,
            "created_at": self.created_at.isoformat(),
            "last_accessed_at": self.last_accessed_at.isoformat(),
            "pinned": self.pinned,
            "access_count": self.access_count,
            "scope": self.scope.value,
            "source_agent_id": self.source_agent_id,
        }
