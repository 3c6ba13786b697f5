"""Tests for memory retention policy."""

from agent_runtime.memory import (
    MemoryLifecycleConfig,
    importance_score,
    memory_health_report,
    prune_agent_memories,
)


class TestImportanceScore:
    def test_pinned_and_category_weight(self, memory):
        memory_id = memory.remember("agent-1", "keep", "decisions")
        memory.pin("agent-1", memory_id)
        entry = memory.get_agent_memories("agent-1")[0]

        assert importance_score(entry, memory.now()) == 1 + 100 + 20

    def test_recent_access_counts(self, memory, clock):
        memory.remember("agent-1", "status report", "notes")
        memory.recall("agent-1", "status")
        memory.recall("agent-1", "status")
        entry = memory.get_agent_memories("agent-1")[0]

        assert importance_score(entry, clock()) == 21
        clock.advance(days=8)
        assert importance_score(entry, clock()) == 1


class TestPrune:
    """Tests for prune_agent_memories()."""

    def test_removes_expired_and_stale_but_not_pinned(self, memory, clock):
        old = memory.remember("agent-1", "ancient", "notes")
        pinned = memory.remember("agent-1", "pinned ancient", "notes")
        memory.pin("agent-1", pinned)
        clock.advance(days=91)
        fresh = memory.remember("agent-1", "fresh", "notes")

        removed = prune_agent_memories(memory, "agent-1")

        remaining = {e.id for e in memory.get_agent_memories("agent-1")}
        assert removed == 1
        assert old not in remaining
        assert remaining == {pinned, fresh}

    def test_stale_notes_removed(self, memory, clock):
        memory.remember("agent-1", "untouched", "notes")
        clock.advance(days=31)

        assert prune_agent_memories(memory, "agent-1") == 1

    def test_cap_removes_least_important(self, memory):
        low = memory.remember("agent-1", "low", "notes")
        memory.remember("agent-1", "high", "decisions")
        memory.remember("agent-1", "also high", "workflows")

        removed = prune_agent_memories(
            memory, "agent-1", MemoryLifecycleConfig(max_entries_per_agent=2)
        )

        assert removed == 1
        assert low not in {e.id for e in memory.get_agent_memories("agent-1")}

    def test_nothing_to_do(self, memory):
        memory.remember("agent-1", "fine", "notes")
        assert prune_agent_memories(memory, "agent-1") == 0


class TestHealthReport:
    def test_healthy(self, memory):
        memory.remember("agent-1", "note", "notes")
        report = memory_health_report(memory, "agent-1")
        assert report["total"] == 1
        assert report["recommendation"] == "healthy"

    def test_stale_needs_review(self, memory, clock):
        memory.remember("agent-1", "note", "notes")
        clock.advance(days=40)
        report = memory_health_report(memory, "agent-1")
        assert report["stale"] == 1
        assert report["recommendation"] == "review_recommended"

    def test_expired_needs_pruning(self, memory, clock):
        memory.remember("agent-1", "note", "notes")
        clock.advance(days=100)
        report = memory_health_report(memory, "agent-1")
        assert report["expired"] == 1
        assert report["recommendation"] == "pruning_needed"
