"""Self-healing: classify a failure, analyze it, and run a repair strategy."""

import asyncio
import random
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Protocol

from ..capabilities import CapabilityRegistry
from ..llm import ILLMProvider, chat_or_none
from ..logging_config import get_logger
from ..models import (
    AuthType,
    CapabilityStatus,
    ErrorType,
    RepairContext,
    RepairOutcome,
    RepairRecord,
    RepairStatus,
)
from .classifier import classify_error, error_text, repair_strategy
from .repair_log import RepairLog

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]
RetryOperation = Callable[[], Awaitable[Any]]

NETWORK_MAX_ATTEMPTS = 3
NETWORK_BACKOFF_CAP = 8.0  # seconds
MAX_JITTER = 0.5  # seconds
RATE_LIMIT_DEFAULT_MS = 60_000
RATE_LIMIT_WAIT_CAP_MS = 5_000
SERVER_ERROR_DELAY = 2.0  # seconds


def context_from_error(error: BaseException | str) -> RepairContext:
    """Pull capability id and retry hints off typed errors."""
    if isinstance(error, str):
        return RepairContext()
    return RepairContext(
        capability_id=getattr(error, "capability_id", None),
        action_id=getattr(error, "action_id", None),
        retry_after_ms=getattr(error, "retry_after_ms", None),
    )


class ISelfHealingEngine(Protocol):
    async def heal(
        self,
        error: BaseException | str,
        agent_id: str,
        agent_context: str = "",
        retry: RetryOperation | None = None,
    ) -> RepairRecord:
        """Run the full detect, analyze, repair pipeline and log the outcome."""
        ...


class SelfHealingEngine:
    """Repair strategies per error class, recorded in a RepairLog."""

    def __init__(
        self,
        registry: CapabilityRegistry,
        llm: ILLMProvider | None = None,
        repair_log: RepairLog | None = None,
        sleep: Sleep = asyncio.sleep,
        jitter: Callable[[], float] = lambda: random.uniform(0, MAX_JITTER),
    ):
        self._registry = registry
        self._llm = llm
        self.repair_log = repair_log or RepairLog()
        self._sleep = sleep
        self._jitter = jitter

    classify_error = staticmethod(classify_error)

    async def analyze_error(
        self,
        error: BaseException | str,
        agent_id: str,
        agent_context: str = "",
        context: RepairContext | None = None,
    ) -> RepairRecord:
        """Build a ``detected`` record. Model refinement is best effort."""
        message = error_text(error)
        error_type = classify_error(error)
        strategy = repair_strategy(error_type)
        analysis = f"Error type: {error_type.value}. Suggested strategy: {strategy}"

        refined = await chat_or_none(
            self._llm,
            [
                {
                    "role": "user",
                    "content": (
                        "An autonomous agent encountered an error. "
                        "Analyze it and suggest a specific repair action.\n\n"
                        f"Error type: {error_type.value}\n"
                        f"Error message: {message}\n"
                        f"Agent context: {agent_context}\n"
                        f"Default strategy: {strategy}\n\n"
                        "Respond with a concise analysis (2-3 sentences) and a specific repair action."
                    ),
                }
            ],
            max_tokens=256,
        )
        if refined and refined.strip():
            analysis = refined.strip()

        return RepairRecord(
            id=str(uuid.uuid4()),
            agent_id=agent_id,
            error_type=error_type,
            error_message=message,
            analysis=analysis,
            repair_action=strategy,
            status=RepairStatus.DETECTED,
            created_at=datetime.now(timezone.utc),
            context=context or context_from_error(error),
        )

    async def attempt_repair(
        self, record: RepairRecord, retry: RetryOperation | None = None
    ) -> RepairOutcome:
        """Run the strategy for the record's class. Never raises."""
        try:
            return await self._run_strategy(record, retry)
        except Exception as e:
            logger.error("Repair %s raised: %s", record.id, e, exc_info=True)
            return RepairOutcome(RepairStatus.FAILED, f"Repair attempt failed: {e}")

    async def heal(
        self,
        error: BaseException | str,
        agent_id: str,
        agent_context: str = "",
        retry: RetryOperation | None = None,
    ) -> RepairRecord:
        """Run the full detect, analyze, repair pipeline and log the outcome."""
        record = await self.analyze_error(error, agent_id, agent_context)
        self.repair_log.add(record)
        self.repair_log.update(record.id, status=RepairStatus.ANALYZING)
        record = self.repair_log.update(record.id, status=RepairStatus.REPAIRING)

        outcome = await self.attempt_repair(record, retry)
        record = self.repair_log.update(
            record.id, status=outcome.status, repair_action=outcome.action
        )
        logger.info(
            "Repair %s for agent %s: %s (%s)",
            record.id,
            agent_id,
            record.status.value,
            record.error_type.value,
        )
        return record

    async def _run_strategy(
        self, record: RepairRecord, retry: RetryOperation | None
    ) -> RepairOutcome:
        error_type = record.error_type

        if error_type == ErrorType.NETWORK:
            return await self._retry_with_backoff(retry)

        if error_type == ErrorType.RATE_LIMIT:
            wait_ms = min(record.context.retry_after_ms or RATE_LIMIT_DEFAULT_MS, RATE_LIMIT_WAIT_CAP_MS)
            await self._sleep(wait_ms / 1000)
            if retry is not None:
                await retry()
            return RepairOutcome(RepairStatus.RESOLVED, f"Waited {wait_ms}ms for rate limit cooldown")

        if error_type in (ErrorType.VALIDATION, ErrorType.SCHEMA_MISMATCH):
            return RepairOutcome(
                RepairStatus.RESOLVED,
                "Data needs transformation to match the expected schema",
                needs_reshaping=True,
            )

        if error_type == ErrorType.AUTH:
            return self._handle_auth(record)

        if error_type == ErrorType.SERVER_ERROR:
            await self._sleep(SERVER_ERROR_DELAY)
            if retry is not None:
                await retry()
            return RepairOutcome(RepairStatus.RESOLVED, "Retried after server error delay")

        return RepairOutcome(
            RepairStatus.FAILED,
            f"Manual intervention required: {repair_strategy(error_type)}",
        )

    async def _retry_with_backoff(self, retry: RetryOperation | None) -> RepairOutcome:
        last_error: Exception | None = None
        for attempt in range(NETWORK_MAX_ATTEMPTS):
            delay = min(2**attempt, NETWORK_BACKOFF_CAP) + self._jitter()
            await self._sleep(delay)
            if retry is None:
                continue
            try:
                await retry()
            except Exception as e:
                last_error = e
                logger.debug("Retry %d failed: %s", attempt + 1, e)
                continue
            return RepairOutcome(RepairStatus.RESOLVED, f"Retry succeeded after {attempt + 1} attempt(s)")

        if retry is None:
            return RepairOutcome(
                RepairStatus.RESOLVED,
                f"Network retry completed after {NETWORK_MAX_ATTEMPTS} attempts",
            )
        return RepairOutcome(
            RepairStatus.FAILED,
            f"Retries exhausted after {NETWORK_MAX_ATTEMPTS} attempts: {last_error}",
        )

    def _handle_auth(self, record: RepairRecord) -> RepairOutcome:
        capability_id = record.context.capability_id
        capability = self._registry.get(capability_id) if capability_id else None
        if capability is None:
            return RepairOutcome(RepairStatus.FAILED, "Authentication failed: re-authorize the integration")

        if capability.auth_type == AuthType.OAUTH2:
            self._registry.set_status(capability.id, CapabilityStatus.ERROR)
            return RepairOutcome(
                RepairStatus.FAILED,
                f"OAuth token expired: reconnect {capability.name}",
            )
        if capability.auth_type == AuthType.API_KEY:
            return RepairOutcome(
                RepairStatus.FAILED,
                f"API key invalid: verify the key configured for {capability.name}",
            )
        return RepairOutcome(RepairStatus.FAILED, f"Authentication failed for {capability.name}")
