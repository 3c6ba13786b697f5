"""SQLite storage for the observable runtime state."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..models import (
    Agent,
    BusMessage,
    MessagePriority,
    RepairRecord,
    TraceEvent,
    Workflow,
)


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


class IStorage(Protocol):
    """Persistent storage for observable runtime data (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # BusMessages
    async def save_bus_message(self, message: BusMessage) -> None:
        """Save a bus message."""
        ...

    async def mark_bus_message_acknowledged(self, message_id: str) -> None:
        """Flip the acknowledged flag of a stored message."""
        ...

    async def get_bus_messages(
        self, topic: str | None = None, limit: int = 100
    ) -> list[BusMessage]:
        """Get bus messages (newest first)."""
        ...

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        ...

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        ...

    # Repairs
    async def save_repair(self, record: RepairRecord) -> None:
        """Insert or update a repair record."""
        ...

    async def get_repairs(
        self, agent_id: str | None = None, limit: int = 100
    ) -> list[dict]:
        """Get repair records as dicts (newest first)."""
        ...

    # Agents
    async def save_agent_snapshot(self, agent: Agent) -> None:
        """Save the latest snapshot of an agent."""
        ...

    async def delete_agent_snapshot(self, agent_id: str) -> None:
        """Remove an agent snapshot."""
        ...

    async def get_agent_snapshots(self) -> list[dict]:
        """Get all agent snapshots."""
        ...

    # Workflows
    async def save_workflow(self, workflow: Workflow) -> None:
        """Insert or replace a workflow definition."""
        ...

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        """Load a workflow definition."""
        ...

    async def list_workflows(self) -> list[Workflow]:
        """Load all workflow definitions."""
        ...

    async def delete_workflow(self, workflow_id: str) -> None:
        """Delete a workflow definition."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    # BusMessages
    async def save_bus_message(self, message: BusMessage) -> None:
        """Save a bus message."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT OR REPLACE INTO bus_messages
            (id, from_agent_id, to_agent_id, topic, content, priority, acknowledged, timestamp)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                message.id or str(uuid.uuid4()),
                message.from_agent_id,
                message.to_agent_id,
                message.topic,
                message.content,
                message.priority.value,
                int(message.acknowledged),
                message.timestamp.isoformat(),
            ),
        )
        await conn.commit()

    async def mark_bus_message_acknowledged(self, message_id: str) -> None:
        """Flip the acknowledged flag of a stored message."""
        conn = self._require_conn()

        await conn.execute(
            "UPDATE bus_messages SET acknowledged = 1 WHERE id = ?",
            (message_id,),
        )
        await conn.commit()

    async def get_bus_messages(
        self, topic: str | None = None, limit: int = 100
    ) -> list[BusMessage]:
        """Get bus messages (newest first)."""
        conn = self._require_conn()

        if topic:
            cursor = await conn.execute(
                """
                SELECT id, from_agent_id, to_agent_id, topic, content, priority, acknowledged, timestamp
                FROM bus_messages
                WHERE topic = ?
                ORDER BY timestamp DESC
                LIMIT ?
                """,
                (topic, limit),
            )
        else:
            cursor = await conn.execute(
                """
                SELECT id, from_agent_id, to_agent_id, topic, content, priority, acknowledged, timestamp
                FROM bus_messages
                ORDER BY timestamp DESC
                LIMIT ?
                """,
                (limit,),
            )
        rows = await cursor.fetchall()

        return [
            BusMessage(
                id=row[0],
                from_agent_id=row[1],
                to_agent_id=row[2],
                topic=row[3],
                content=row[4],
                priority=MessagePriority(row[5]),
                acknowledged=bool(row[6]),
                timestamp=_ts(row[7]),
            )
            for row in rows
        ]

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT INTO trace_events (id, event_type, actor, data, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                event.id or str(uuid.uuid4()),
                event.event_type,
                event.actor,
                json.dumps(event.data, default=str),
                event.timestamp.isoformat(),
            ),
        )
        await conn.commit()

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        conn = self._require_conn()

        conditions = []
        params: list = []

        if after:
            if after.tzinfo is None:
                after = after.replace(tzinfo=timezone.utc)
            conditions.append("timestamp > ?")
            params.append(after.isoformat())
        if event_types:
            placeholders = ",".join("?" * len(event_types))
            conditions.append(f"event_type IN ({placeholders})")
            params.extend(event_types)
        if actor:
            conditions.append("actor = ?")
            params.append(actor)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT id, event_type, actor, data, timestamp
            FROM trace_events
            {where_clause}
            ORDER BY timestamp DESC
            LIMIT ?
        """
        params.append(limit)

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        return [
            TraceEvent(
                id=row[0],
                event_type=row[1],
                actor=row[2],
                data=json.loads(row[3]),
                timestamp=_ts(row[4]),
            )
            for row in rows
        ]

    # Repairs
    async def save_repair(self, record: RepairRecord) -> None:
        """Insert or update a repair record."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT OR REPLACE INTO repairs (id, agent_id, error_type, status, data, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.agent_id,
                record.error_type.value,
                record.status.value,
                json.dumps(record.to_dict()),
                record.created_at.isoformat(),
            ),
        )
        await conn.commit()

    async def get_repairs(
        self, agent_id: str | None = None, limit: int = 100
    ) -> list[dict]:
        """Get repair records as dicts (newest first)."""
        conn = self._require_conn()

        if agent_id:
            cursor = await conn.execute(
                """
                SELECT data FROM repairs
                WHERE agent_id = ?
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (agent_id, limit),
            )
        else:
            cursor = await conn.execute(
                "SELECT data FROM repairs ORDER BY created_at DESC LIMIT ?",
                (limit,),
            )
        rows = await cursor.fetchall()
        return [json.loads(row[0]) for row in rows]

    # Agents
    async def save_agent_snapshot(self, agent: Agent) -> None:
        """Save the latest snapshot of an agent."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT OR REPLACE INTO agent_snapshots (agent_id, lifecycle, data, updated_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            """,
            (agent.id, agent.lifecycle.value, json.dumps(agent.to_dict())),
        )
        await conn.commit()

    async def delete_agent_snapshot(self, agent_id: str) -> None:
        """Remove an agent snapshot."""
        conn = self._require_conn()

        await conn.execute("DELETE FROM agent_snapshots WHERE agent_id = ?", (agent_id,))
        await conn.commit()

    async def get_agent_snapshots(self) -> list[dict]:
        """Get all agent snapshots."""
        conn = self._require_conn()

        cursor = await conn.execute(
            "SELECT data FROM agent_snapshots ORDER BY agent_id"
        )
        rows = await cursor.fetchall()
        return [json.loads(row[0]) for row in rows]

    # Workflows
    async def save_workflow(self, workflow: Workflow) -> None:
        """Insert or replace a workflow definition."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT OR REPLACE INTO workflows (id, name, status, definition, updated_at)
            VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
            """,
            (
                workflow.id,
                workflow.name,
                workflow.status.value,
                workflow.model_dump_json(by_alias=True),
            ),
        )
        await conn.commit()

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        """Load a workflow definition."""
        conn = self._require_conn()

        cursor = await conn.execute(
            "SELECT definition FROM workflows WHERE id = ?",
            (workflow_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return Workflow.model_validate_json(row[0])

    async def list_workflows(self) -> list[Workflow]:
        """Load all workflow definitions."""
        conn = self._require_conn()

        cursor = await conn.execute("SELECT definition FROM workflows ORDER BY name")
        rows = await cursor.fetchall()
        return [Workflow.model_validate_json(row[0]) for row in rows]

    async def delete_workflow(self, workflow_id: str) -> None:
        """Delete a workflow definition."""
        conn = self._require_conn()

        await conn.execute("DELETE FROM workflows WHERE id = ?", (workflow_id,))
        await conn.commit()

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        conn = self._require_conn()

        tables = [
            "bus_messages",
            "trace_events",
            "repairs",
            "agent_snapshots",
            "workflows",
        ]

        for table in tables:
            await conn.execute(f"DELETE FROM {table}")

        await conn.commit()
