"""Tracing and observability data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TraceEvent:
    """A single observability event."""

    id: str
    event_type: str  # e.g. "cycle_phase_completed", "bus_message_published"
    actor: str  # agent id or component name
    data: dict
    timestamp: datetime
