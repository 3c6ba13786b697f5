"""Self-healing data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ErrorType(str, Enum):
    NETWORK = "network"
    AUTH = "auth"
    VALIDATION = "validation"
    RATE_LIMIT = "rate-limit"
    SCHEMA_MISMATCH = "schema-mismatch"
    NOT_FOUND = "not-found"
    PERMISSION = "permission"
    SERVER_ERROR = "server-error"
    UNKNOWN = "unknown"


class RepairStatus(str, Enum):
    DETECTED = "detected"
    ANALYZING = "analyzing"
    REPAIRING = "repairing"
    RESOLVED = "resolved"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RepairStatus.RESOLVED, RepairStatus.FAILED)


REPAIR_STATUS_ORDER = {
    RepairStatus.DETECTED: 0,
    RepairStatus.ANALYZING: 1,
    RepairStatus.REPAIRING: 2,
    RepairStatus.RESOLVED: 3,
    RepairStatus.FAILED: 3,
}


@dataclass(frozen=True)
class RepairContext:
    """Details of the failing call that the repair strategies need."""

    capability_id: str | None = None
    action_id: str | None = None
    retry_after_ms: int | None = None


@dataclass(frozen=True)
class RepairOutcome:
    status: RepairStatus
    action: str
    needs_reshaping: bool = False


@dataclass
class RepairRecord:
    id: str
    agent_id: str
    error_type: ErrorType
    error_message: str
    analysis: str
    repair_action: str
    status: RepairStatus
    created_at: datetime
    resolved_at: datetime | None = None
    context: RepairContext = field(default_factory=RepairContext)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "error_type": self.error_type.value,
            "error_message": self.error_message,
            "analysis": self.analysis,
            "repair_action": self.repair_action,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "context": {
                "capability_id": self.context.capability_id,
                "action_id": self.context.action_id,
                "retry_after_ms": self.context.retry_after_ms,
            },
        }
