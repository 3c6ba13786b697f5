"""Per-agent note store with keyword recall and a shared insight pool."""

import dataclasses
import math
import re
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Callable, Protocol

from ..logging_config import get_logger
from ..models import SHARED_POOL_ID, MemoryEntry, MemoryScope

logger = get_logger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9]+")


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters."""
    return math.ceil(len(text) / 4)


def _terms(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IMemoryStore(Protocol):
    """Agent notes, keyword recall and a budgeted context window."""

    def remember(
        self, agent_id: str, content: str, category: str, title: str | None = None
    ) -> str:
        """Store a note and return its id."""
        ...

    def recall(self, agent_id: str, query: str, limit: int = 10) -> list[MemoryEntry]:
        """Best matching personal and shared notes."""
        ...

    def get_context_window(self, agent_id: str, token_budget: int) -> str:
        """Render notes into prompt lines within a token budget."""
        ...


class MemoryStore:
    """In-memory note store keyed by owning agent."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self._clock = clock
        self._memories: dict[str, list[MemoryEntry]] = {}
        self._shared: list[MemoryEntry] = []

    @property
    def shared_insights(self) -> list[MemoryEntry]:
        return list(self._shared)

    def now(self) -> datetime:
        return self._clock()

    def remember(
        self, agent_id: str, content: str, category: str, title: str | None = None
    ) -> str:
        """Store a note and return its id."""
        now = self._clock()
        entry = MemoryEntry(
            id=str(uuid.uuid4()),
            owner_agent_id=agent_id,
            title=title or content[:50],
            content=content,
            category=category,
            token_count=estimate_tokens(content),
            created_at=now,
            last_accessed_at=now,
        )
        self._memories.setdefault(agent_id, []).append(entry)
        return entry.id

    def recall(self, agent_id: str, query: str, limit: int = 10) -> list[MemoryEntry]:
        """
        Score personal and shared notes against ``query``.

        Each note scores the sum, over query terms, of the term's frequency in
        the note divided by the note's length in terms. Only non-zero matches
        are returned, best first; equal scores keep insertion order.
        """
        query_terms = set(_terms(query))
        if not query_terms:
            return []

        candidates = self._memories.get(agent_id, []) + self._shared
        scored: list[tuple[float, MemoryEntry]] = []
        for entry in candidates:
            terms = _terms(f"{entry.title} {entry.content}")
            if not terms:
                continue
            counts = Counter(terms)
            score = sum(counts[t] for t in query_terms) / len(terms)
            if score > 0:
                scored.append((score, entry))

        # sorted() is stable, so ties keep candidate order
        scored.sort(key=lambda pair: pair[0], reverse=True)
        results = [entry for _, entry in scored[:limit]]

        now = self._clock()
        for entry in results:
            entry.access_count += 1
            entry.last_accessed_at = now
        return results

    def get_context_window(self, agent_id: str, token_budget: int) -> str:
        """Pinned notes first, then most accessed; lines that don't fit are skipped."""
        entries = self._memories.get(agent_id, [])
        pinned = [e for e in entries if e.pinned]
        rest = sorted(
            (e for e in entries if not e.pinned),
            key=lambda e: e.access_count,
            reverse=True,
        )

        lines = []
        remaining = token_budget
        for entry in pinned + rest:
            line = f"[{entry.category}] {entry.title}: {entry.content}"
            cost = estimate_tokens(line)
            if cost > remaining:
                continue
            lines.append(line)
            remaining -= cost
        return "\n".join(lines)

    def share_insight(self, agent_id: str, memory_id: str) -> str | None:
        """Copy a note into the shared pool. Returns the new id, or None if unknown."""
        entry = self._find(agent_id, memory_id)
        if entry is None:
            return None

        shared = dataclasses.replace(
            entry,
            id=str(uuid.uuid4()),
            owner_agent_id=SHARED_POOL_ID,
            scope=MemoryScope.WORKSPACE,
            source_agent_id=agent_id,
            access_count=0,
        )
        self._shared.append(shared)
        return shared.id

    def pin(self, agent_id: str, memory_id: str, pinned: bool = True) -> bool:
        entry = self._find(agent_id, memory_id)
        if entry is None:
            return False
        entry.pinned = pinned
        return True

    def get_agent_memories(self, agent_id: str) -> list[MemoryEntry]:
        return list(self._memories.get(agent_id, []))

    def delete_memory(self, agent_id: str, memory_id: str) -> None:
        entries = self._memories.get(agent_id)
        if entries is None:
            return
        self._memories[agent_id] = [e for e in entries if e.id != memory_id]

    def delete_many(self, agent_id: str, memory_ids: set[str]) -> int:
        entries = self._memories.get(agent_id, [])
        kept = [e for e in entries if e.id not in memory_ids]
        self._memories[agent_id] = kept
        return len(entries) - len(kept)

    def clear_agent_memories(self, agent_id: str) -> None:
        self._memories.pop(agent_id, None)

    def reset(self) -> None:
        self._memories.clear()
        self._shared.clear()

    def _find(self, agent_id: str, memory_id: str) -> MemoryEntry | None:
        for entry in self._memories.get(agent_id, []):
            if entry.id == memory_id:
                return entry
        return None
