"""Retention policy for agent memories: expiry, staleness and a size cap."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from ..logging_config import get_logger
from ..models import MemoryEntry
from .store import MemoryStore

logger = get_logger(__name__)

HIGH_VALUE_CATEGORIES = frozenset({"decisions", "workflows"})
RECENT_ACCESS_WINDOW = timedelta(days=7)


@dataclass(frozen=True)
class MemoryLifecycleConfig:
    default_ttl_days: int = 90
    stale_days: int = 30
    max_entries_per_agent: int = 500


def importance_score(entry: MemoryEntry, now: datetime) -> int:
    """Higher means more worth keeping."""
    score = 1
    if entry.pinned:
        score += 100
    if now - entry.last_accessed_at <= RECENT_ACCESS_WINDOW:
        score += entry.access_count * 10
    if entry.category in HIGH_VALUE_CATEGORIES:
        score += 20
    return score


def prune_agent_memories(
    store: MemoryStore,
    agent_id: str,
    config: MemoryLifecycleConfig = MemoryLifecycleConfig(),
) -> int:
    """
    Remove expired, then stale, then lowest-importance notes over the cap.

    Pinned notes are never removed. Returns the number of notes deleted.
    """
    now = store.now()
    entries = store.get_agent_memories(agent_id)
    ttl = timedelta(days=config.default_ttl_days)
    stale = timedelta(days=config.stale_days)

    doomed: set[str] = set()
    for entry in entries:
        if entry.pinned:
            continue
        if now - entry.created_at > ttl:
            doomed.add(entry.id)
        elif now - entry.last_accessed_at > stale:
            doomed.add(entry.id)

    survivors = [e for e in entries if e.id not in doomed]
    excess = len(survivors) - config.max_entries_per_agent
    if excess > 0:
        removable = [e for e in survivors if not e.pinned]
        removable.sort(key=lambda e: importance_score(e, now))
        doomed.update(e.id for e in removable[:excess])

    if not doomed:
        return 0

    removed = store.delete_many(agent_id, doomed)
    logger.info("Pruned %d memories for agent %s", removed, agent_id)
    return removed


def memory_health_report(
    store: MemoryStore,
    agent_id: str,
    config: MemoryLifecycleConfig = MemoryLifecycleConfig(),
) -> dict:
    now = store.now()
    entries = store.get_agent_memories(agent_id)
    ttl = timedelta(days=config.default_ttl_days)
    stale = timedelta(days=config.stale_days)

    expired = sum(1 for e in entries if not e.pinned and now - e.created_at > ttl)
    stale_count = sum(
        1
        for e in entries
        if not e.pinned and now - e.created_at <= ttl and now - e.last_accessed_at > stale
    )
    over_cap = len(entries) > config.max_entries_per_agent

    if expired or over_cap:
        recommendation = "pruning_needed"
    elif stale_count:
        recommendation = "review_recommended"
    else:
        recommendation = "healthy"

    return {
        "agent_id": agent_id,
        "total": len(entries),
        "pinned": sum(1 for e in entries if e.pinned),
        "expired": expired,
        "stale": stale_count,
        "total_tokens": sum(e.token_count for e in entries),
        "recommendation": recommendation,
    }
