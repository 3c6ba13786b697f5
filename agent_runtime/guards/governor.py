"""Mutual-exclusion locks over contested action targets."""

import dataclasses
import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from ..logging_config import get_logger
from ..models import ActionLock, ConflictPolicy, LockConflict, LockDecision

logger = get_logger(__name__)

DEFAULT_LOCK_TTL = 300.0  # seconds


class ActionGovernor:
    """At most one in-flight action per resource; the holder must release."""

    def __init__(
        self,
        policy: ConflictPolicy = ConflictPolicy.PRIORITY_BASED,
        default_ttl: float = DEFAULT_LOCK_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.policy = policy
        self._default_ttl = default_ttl
        self._clock = clock
        self._locks: dict[str, ActionLock] = {}
        self._conflicts: dict[str, LockConflict] = {}

    def acquire(
        self,
        resource: str,
        kind: str,
        agent_id: str,
        priority: int = 1,
        ttl: float | None = None,
    ) -> LockDecision:
        self.prune_expired()
        holder = self._locks.get(resource)

        if holder is None:
            self._grant(resource, kind, agent_id, priority, ttl)
            return LockDecision(True, "Lock acquired", holder_agent_id=agent_id)

        if holder.agent_id == agent_id:
            self._locks[resource] = dataclasses.replace(holder, holds=holder.holds + 1)
            return LockDecision(True, "Already held", holder_agent_id=agent_id)

        decision = self._contend(holder, agent_id, priority)
        if decision is None:
            logger.info(
                "Agent %s preempted lock on %s held by %s", agent_id, resource, holder.agent_id
            )
            self._grant(resource, kind, agent_id, priority, ttl)
            return LockDecision(
                True,
                f"Lock acquired (preempted {holder.agent_id})",
                holder_agent_id=agent_id,
            )
        return decision

    def check_resource(self, resource: str, agent_id: str, priority: int = 1) -> LockDecision:
        """Same answer as ``acquire`` would give, without changing any state."""
        holder = self._live_lock(resource)
        if holder is None:
            return LockDecision(True, "Resource available")
        if holder.agent_id == agent_id:
            return LockDecision(True, "Already held", holder_agent_id=agent_id)
        if self.policy == ConflictPolicy.PRIORITY_BASED and priority > holder.priority:
            return LockDecision(True, "Would preempt lower priority holder", holder_agent_id=holder.agent_id)
        return LockDecision(
            False,
            f"Resource locked by {holder.agent_id}",
            wait_ms=self._wait_ms(holder),
            holder_agent_id=holder.agent_id,
        )

    def release(self, resource: str, agent_id: str) -> bool:
        """Drop one hold; the lock is freed when its last hold is released."""
        holder = self._locks.get(resource)
        if holder is None or holder.agent_id != agent_id:
            return False
        if holder.holds > 1:
            self._locks[resource] = dataclasses.replace(holder, holds=holder.holds - 1)
        else:
            del self._locks[resource]
        return True

    def release_all(self, agent_id: str) -> int:
        owned = [r for r, lock in self._locks.items() if lock.agent_id == agent_id]
        for resource in owned:
            del self._locks[resource]
        return len(owned)

    def prune_expired(self) -> int:
        now = self._clock()
        expired = [r for r, lock in self._locks.items() if lock.expires_at <= now]
        for resource in expired:
            logger.info("Lock on %s expired", resource)
            del self._locks[resource]
        return len(expired)

    def get_locks(self) -> list[ActionLock]:
        return list(self._locks.values())

    def get_conflicts(self, include_resolved: bool = False) -> list[LockConflict]:
        return [c for c in self._conflicts.values() if include_resolved or not c.resolved]

    def resolve_conflict(self, conflict_id: str, winner_agent_id: str | None = None) -> bool:
        """Close an escalated conflict, optionally handing the lock to ``winner_agent_id``."""
        conflict = self._conflicts.get(conflict_id)
        if conflict is None or conflict.resolved:
            return False
        conflict.resolved = True
        if winner_agent_id and winner_agent_id != conflict.holder_agent_id:
            current = self._locks.get(conflict.resource)
            kind = current.kind if current else "action"
            priority = current.priority if current else 1
            self._grant(conflict.resource, kind, winner_agent_id, priority, None)
        return True

    def reset(self) -> None:
        self._locks.clear()
        self._conflicts.clear()

    def _contend(self, holder: ActionLock, agent_id: str, priority: int) -> LockDecision | None:
        """Denial for a contender, or None when it may take the lock."""
        wait_ms = self._wait_ms(holder)

        if self.policy == ConflictPolicy.PRIORITY_BASED:
            if priority > holder.priority:
                return None
            return LockDecision(
                False,
                f"Lower priority than holder {holder.agent_id}",
                wait_ms=wait_ms,
                holder_agent_id=holder.agent_id,
            )

        if self.policy == ConflictPolicy.ESCALATE_TO_USER:
            conflict = self._open_conflict(holder, agent_id)
            return LockDecision(
                False,
                "Escalated to user",
                wait_ms=wait_ms,
                conflict_id=conflict.id,
                holder_agent_id=holder.agent_id,
            )

        return LockDecision(
            False,
            "Resource locked by another agent",
            wait_ms=wait_ms,
            holder_agent_id=holder.agent_id,
        )

    def _open_conflict(self, holder: ActionLock, agent_id: str) -> LockConflict:
        for conflict in self._conflicts.values():
            if not conflict.resolved and conflict.resource == holder.resource:
                if agent_id not in conflict.contenders:
                    conflict.contenders.append(agent_id)
                return conflict

        conflict = LockConflict(
            id=str(uuid.uuid4()),
            resource=holder.resource,
            holder_agent_id=holder.agent_id,
            contenders=[holder.agent_id, agent_id],
            created_at=datetime.now(timezone.utc),
        )
        self._conflicts[conflict.id] = conflict
        logger.warning("Lock conflict on %s escalated to user", holder.resource)
        return conflict

    def _grant(self, resource: str, kind: str, agent_id: str, priority: int, ttl: float | None) -> None:
        now = self._clock()
        self._locks[resource] = ActionLock(
            resource=resource,
            kind=kind,
            agent_id=agent_id,
            priority=priority,
            acquired_at=now,
            expires_at=now + (ttl if ttl is not None else self._default_ttl),
        )

    def _live_lock(self, resource: str) -> ActionLock | None:
        lock = self._locks.get(resource)
        if lock is None or lock.expires_at <= self._clock():
            return None
        return lock

    def _wait_ms(self, holder: ActionLock) -> int:
        return max(1, int((holder.expires_at - self._clock()) * 1000))
