"""Append-only log of repair attempts with forward-only status changes."""

import dataclasses
from datetime import datetime, timezone

from ..errors import InvalidRepairTransitionError
from ..models import REPAIR_STATUS_ORDER, RepairRecord, RepairStatus


class RepairLog:
    def __init__(self):
        self._records: dict[str, RepairRecord] = {}

    def add(self, record: RepairRecord) -> None:
        self._records[record.id] = record

    def get(self, repair_id: str) -> RepairRecord | None:
        return self._records.get(repair_id)

    def update(
        self,
        repair_id: str,
        status: RepairStatus | None = None,
        repair_action: str | None = None,
        analysis: str | None = None,
        resolved_at: datetime | None = None,
    ) -> RepairRecord:
        """
        Apply changes to a record.

        Status only moves forward (detected, analyzing, repairing, then
        resolved or failed) and terminal records are frozen. Resolving
        stamps ``resolved_at`` when the caller did not supply one.
        """
        record = self._records.get(repair_id)
        if record is None:
            raise KeyError(repair_id)

        changes: dict = {}
        if status is not None and status != record.status:
            if record.status.is_terminal:
                raise InvalidRepairTransitionError(
                    f"Repair {repair_id} already {record.status.value}"
                )
            if REPAIR_STATUS_ORDER[status] < REPAIR_STATUS_ORDER[record.status]:
                raise InvalidRepairTransitionError(
                    f"Repair {repair_id} cannot go from {record.status.value} to {status.value}"
                )
            changes["status"] = status
            if status == RepairStatus.RESOLVED:
                changes["resolved_at"] = resolved_at or datetime.now(timezone.utc)
        if repair_action is not None:
            changes["repair_action"] = repair_action
        if analysis is not None:
            changes["analysis"] = analysis

        updated = dataclasses.replace(record, **changes)
        self._records[repair_id] = updated
        return updated

    def all(self) -> list[RepairRecord]:
        return list(self._records.values())

    def get_by_agent(self, agent_id: str) -> list[RepairRecord]:
        return [r for r in self._records.values() if r.agent_id == agent_id]

    def recent(self, agent_id: str, limit: int = 3) -> list[RepairRecord]:
        return self.get_by_agent(agent_id)[-limit:]

    def get_success_rate(self) -> float:
        """Resolved repairs over all repairs; 0.0 when there are none."""
        if not self._records:
            return 0.0
        resolved = sum(1 for r in self._records.values() if r.status == RepairStatus.RESOLVED)
        return resolved / len(self._records)

    def reset(self) -> None:
        self._records.clear()
