"""Tests for Tracker."""

from datetime import datetime, timezone

import pytest


class TestTrackerTrack:
    """Tests for Tracker.track() method."""

    @pytest.mark.asyncio
    async def test_track_creates_event(self, tracker, storage):
        """Test that track() creates a TraceEvent."""
        await tracker.track(
            event_type="test_event",
            actor="test_actor",
            data={"key": "value"},
        )

        events = await storage.get_trace_events()
        assert len(events) == 1
        assert events[0].event_type == "test_event"
        assert events[0].actor == "test_actor"
        assert events[0].data == {"key": "value"}

    @pytest.mark.asyncio
    async def test_track_generates_id_and_timestamp(self, tracker, storage):
        before = datetime.now(timezone.utc)
        await tracker.track(event_type="test_event", actor="test_actor", data={})
        after = datetime.now(timezone.utc)

        events = await storage.get_trace_events()
        assert events[0].id
        assert before <= events[0].timestamp <= after


class TestTrackerBusListener:
    """Tests for tracking bus traffic."""

    @pytest.mark.asyncio
    async def test_records_published_messages(self, tracker, message_bus, storage):
        await tracker.start()

        message = await message_bus.publish("agent-1", "domain.work", "x" * 150)

        events = await storage.get_trace_events(event_types=["bus_message_published"])
        assert len(events) == 1
        assert events[0].actor == "agent-1"
        assert events[0].data["message_id"] == message.id
        assert events[0].data["topic"] == "domain.work"
        assert events[0].data["priority"] == "normal"
        assert len(events[0].data["content_summary"]) == 100

    @pytest.mark.asyncio
    async def test_records_direct_messages(self, tracker, message_bus, storage):
        await tracker.start()

        await message_bus.direct_message("agent-1", "agent-2", "hi")

        events = await storage.get_trace_events()
        assert events[0].data["to_agent_id"] == "agent-2"
