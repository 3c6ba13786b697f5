"""Tests for error classification, the repair log and the healing engine."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from agent_runtime.errors import CapabilityExecutionError, InvalidRepairTransitionError
from agent_runtime.healing import RepairLog, SelfHealingEngine, classify_error, context_from_error
from agent_runtime.models import CapabilityStatus, ErrorType, RepairRecord, RepairStatus


class TestClassifyError:
    """Tests for classify_error()."""

    @pytest.mark.parametrize(
        "message, expected",
        [
            ("fetch failed: ECONNREFUSED", ErrorType.NETWORK),
            ("Request timeout", ErrorType.NETWORK),
            ("401 Unauthorized", ErrorType.AUTH),
            ("field 'to' is required", ErrorType.VALIDATION),
            ("429 Too Many Requests", ErrorType.RATE_LIMIT),
            ("unexpected field 'foo'", ErrorType.SCHEMA_MISMATCH),
            ("record does not exist", ErrorType.NOT_FOUND),
            ("permission denied", ErrorType.PERMISSION),
            ("Internal server error", ErrorType.SERVER_ERROR),
            ("something odd", ErrorType.UNKNOWN),
        ],
    )
    def test_patterns(self, message, expected):
        assert classify_error(message) == expected

    def test_first_match_wins(self):
        assert classify_error("network request was unauthorized") == ErrorType.NETWORK

    def test_exception_without_message_uses_class_name(self):
        assert classify_error(TimeoutError()) == ErrorType.NETWORK


class TestContextFromError:
    def test_reads_typed_attributes(self):
        context = context_from_error(CapabilityExecutionError("429", "slack", retry_after_ms=1500))
        assert context.capability_id == "slack"
        assert context.retry_after_ms == 1500

    def test_plain_values(self):
        assert context_from_error("boom").capability_id is None
        assert context_from_error(ValueError("x")).retry_after_ms is None


def _record(status: RepairStatus = RepairStatus.DETECTED, agent_id: str = "agent-1") -> RepairRecord:
    return RepairRecord(
        id=f"r-{agent_id}-{status.value}",
        agent_id=agent_id,
        error_type=ErrorType.UNKNOWN,
        error_message="x",
        analysis="x",
        repair_action="x",
        status=status,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class TestRepairLog:
    """Tests for forward-only status transitions."""

    def test_forward_transitions(self):
        log = RepairLog()
        record = _record()
        log.add(record)

        log.update(record.id, status=RepairStatus.ANALYZING)
        updated = log.update(record.id, status=RepairStatus.RESOLVED)

        assert updated.status == RepairStatus.RESOLVED
        assert updated.resolved_at is not None
        assert record.status == RepairStatus.DETECTED

    def test_backward_transition_rejected(self):
        log = RepairLog()
        record = _record(RepairStatus.REPAIRING)
        log.add(record)

        with pytest.raises(InvalidRepairTransitionError):
            log.update(record.id, status=RepairStatus.ANALYZING)

    def test_terminal_is_frozen(self):
        log = RepairLog()
        record = _record(RepairStatus.FAILED)
        log.add(record)

        with pytest.raises(InvalidRepairTransitionError):
            log.update(record.id, status=RepairStatus.RESOLVED)
        assert log.update(record.id, analysis="more detail").analysis == "more detail"

    def test_unknown_id(self):
        with pytest.raises(KeyError):
            RepairLog().update("missing", status=RepairStatus.FAILED)

    def test_success_rate_and_recent(self):
        log = RepairLog()
        assert log.get_success_rate() == 0.0
        log.add(_record(RepairStatus.RESOLVED))
        log.add(_record(RepairStatus.FAILED))
        log.add(_record(RepairStatus.DETECTED, agent_id="agent-2"))

        assert log.get_success_rate() == pytest.approx(1 / 3)
        assert len(log.recent("agent-1", limit=1)) == 1
        assert [r.agent_id for r in log.get_by_agent("agent-2")] == ["agent-2"]


class TestSelfHealingEngine:
    """Tests for SelfHealingEngine.heal()."""

    @pytest.mark.asyncio
    async def test_network_without_retry_resolves(self, healer, fake_sleep):
        record = await healer.heal("fetch failed", "agent-1")

        assert record.error_type == ErrorType.NETWORK
        assert record.status == RepairStatus.RESOLVED
        assert fake_sleep.delays == [1, 2, 4]
        assert healer.repair_log.get(record.id).status == RepairStatus.RESOLVED

    @pytest.mark.asyncio
    async def test_network_retry_succeeds_second_time(self, healer):
        retry = AsyncMock(side_effect=[RuntimeError("still down"), None])

        record = await healer.heal("network unreachable", "agent-1", retry=retry)

        assert record.status == RepairStatus.RESOLVED
        assert "2 attempt" in record.repair_action
        assert retry.await_count == 2

    @pytest.mark.asyncio
    async def test_network_retry_exhausted_fails(self, healer):
        retry = AsyncMock(side_effect=RuntimeError("still down"))

        record = await healer.heal("network unreachable", "agent-1", retry=retry)

        assert record.status == RepairStatus.FAILED
        assert "still down" in record.repair_action

    @pytest.mark.asyncio
    async def test_rate_limit_wait_is_capped(self, healer, fake_sleep):
        error = CapabilityExecutionError("429 Too Many Requests", "slack", retry_after_ms=1500)

        record = await healer.heal(error, "agent-1")

        assert record.status == RepairStatus.RESOLVED
        assert fake_sleep.delays == [1.5]

        await healer.heal("rate limit hit", "agent-1")
        assert fake_sleep.delays[-1] == 5.0

    @pytest.mark.asyncio
    async def test_validation_resolves_with_reshaping(self, healer):
        record = await healer.heal("field is required", "agent-1")
        assert record.status == RepairStatus.RESOLVED
        assert "transformation" in record.repair_action

    @pytest.mark.asyncio
    async def test_oauth_failure_marks_connector(self, healer, registry):
        error = CapabilityExecutionError("401 Unauthorized", "slack")

        record = await healer.heal(error, "agent-1")

        assert record.status == RepairStatus.FAILED
        assert "reconnect Slack" in record.repair_action
        assert registry.get("slack").status == CapabilityStatus.ERROR

    @pytest.mark.asyncio
    async def test_server_error_waits_then_resolves(self, healer, fake_sleep):
        record = await healer.heal("500 internal server error", "agent-1")
        assert record.status == RepairStatus.RESOLVED
        assert fake_sleep.delays == [2.0]

    @pytest.mark.asyncio
    async def test_unknown_needs_manual_intervention(self, healer):
        record = await healer.heal("something odd", "agent-1")
        assert record.status == RepairStatus.FAILED
        assert record.repair_action.startswith("Manual intervention required")

    @pytest.mark.asyncio
    async def test_llm_refines_analysis(self, registry, fake_sleep, mock_llm):
        mock_llm.complete.return_value = "  The token expired; reconnect.  "
        engine = SelfHealingEngine(registry, llm=mock_llm, sleep=fake_sleep, jitter=lambda: 0.0)

        record = await engine.heal("something odd", "agent-1", agent_context="Agent: A")

        assert record.analysis == "The token expired; reconnect."
        prompt = mock_llm.complete.call_args.args[0][0]["content"]
        assert "Agent context: Agent: A" in prompt

    @pytest.mark.asyncio
    async def test_llm_failure_keeps_default_analysis(self, registry, fake_sleep, mock_llm):
        mock_llm.complete.side_effect = RuntimeError("down")
        engine = SelfHealingEngine(registry, llm=mock_llm, sleep=fake_sleep, jitter=lambda: 0.0)

        record = await engine.heal("something odd", "agent-1")

        assert record.analysis.startswith("Error type: unknown")
