"""Pytest configuration and fixtures."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


class FakeClock:
    """Settable clock for time-dependent components."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class MonotonicClock:
    """Settable float clock (seconds) for circuit breakers and locks."""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class RecordingSleep:
    """Drop-in for asyncio.sleep that records delays and returns at once."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from agent_runtime.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def message_bus(storage):
    """Create MessageBus persisting to storage."""
    from agent_runtime.message_bus import MessageBus

    return MessageBus(storage)


@pytest.fixture
def tracker(storage, message_bus):
    """Create Tracker with storage and message bus."""
    from agent_runtime.tracker import Tracker

    return Tracker(message_bus=message_bus, storage=storage)


@pytest.fixture
def mock_llm():
    """Create mock LLM provider."""
    llm = Mock()
    llm.complete = AsyncMock(return_value="Test response")
    return llm


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monotonic():
    return MonotonicClock()


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def memory(clock):
    from agent_runtime.memory import MemoryStore

    return MemoryStore(clock=clock)


@pytest.fixture
def registry():
    """Registry with the default catalog; Slack and GitHub connected."""
    from agent_runtime.capabilities import CapabilityRegistry, default_capabilities
    from agent_runtime.models import CapabilityStatus

    reg = CapabilityRegistry(default_capabilities())
    reg.set_status("slack", CapabilityStatus.CONNECTED)
    reg.set_status("github", CapabilityStatus.CONNECTED)
    return reg


@pytest.fixture
def guards(monotonic):
    from agent_runtime.guards import ActionGovernor, BudgetLedger, CircuitBreaker, Guards

    return Guards(
        CircuitBreaker(clock=monotonic),
        BudgetLedger(),
        ActionGovernor(clock=monotonic),
    )


@pytest.fixture
def runtime_state(clock):
    from agent_runtime.runtime_state import AgentRuntimeState

    return AgentRuntimeState(clock=clock)


@pytest.fixture
def healer(registry, fake_sleep):
    from agent_runtime.healing import SelfHealingEngine

    return SelfHealingEngine(registry, llm=None, sleep=fake_sleep, jitter=lambda: 0.0)


@pytest.fixture
def settings():
    from agent_runtime.config import Settings

    return Settings(
        cycle_interval_seconds=0.01,
        step_timeout_seconds=5,
        backoff_base_seconds=0.001,
        backoff_max_seconds=0.01,
        stop_grace_seconds=1,
        llm_backend="none",
    )
