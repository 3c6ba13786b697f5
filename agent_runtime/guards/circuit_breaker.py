"""Per-action-signature circuit breaker."""

import time
from dataclasses import dataclass
from typing import Callable

from ..logging_config import get_logger
from ..models import CircuitDecision, CircuitState

logger = get_logger(__name__)


@dataclass
class _Circuit:
    state: CircuitState = CircuitState.CLOSED
    failure_count: int = 0
    opened_at: float = 0.0
    half_open_tests: int = 0


class CircuitBreaker:
    """
    CLOSED lets calls through. OPEN denies until ``reset_timeout`` has passed,
    then moves to HALF_OPEN, which admits ``half_open_max_tests`` probes.
    A success in HALF_OPEN closes the circuit; a failure there, or
    ``failure_threshold`` consecutive failures while closed, opens it.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        half_open_max_tests: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._threshold = failure_threshold
        self._reset_timeout = reset_timeout
        self._half_open_max = half_open_max_tests
        self._clock = clock
        self._circuits: dict[str, _Circuit] = {}

    def get_state(self, signature: str) -> CircuitState:
        return self._circuits.get(signature, _Circuit()).state

    def check(self, signature: str, consume: bool = True) -> CircuitDecision:
        """Decide whether a call may go ahead. ``consume=False`` only peeks."""
        circuit = self._circuits.get(signature)
        if circuit is None or circuit.state == CircuitState.CLOSED:
            return CircuitDecision(True, "Circuit closed", CircuitState.CLOSED)

        if circuit.state == CircuitState.OPEN:
            elapsed = self._clock() - circuit.opened_at
            if elapsed < self._reset_timeout:
                retry_after = self._reset_timeout - elapsed
                return CircuitDecision(
                    False,
                    f"Circuit open, retry after {retry_after:.0f}s",
                    CircuitState.OPEN,
                )
            if not consume:
                return CircuitDecision(True, "Testing circuit", CircuitState.HALF_OPEN)
            circuit.state = CircuitState.HALF_OPEN
            circuit.half_open_tests = 1
            logger.info("Circuit %s half-open, probing", signature)
            return CircuitDecision(True, "Testing circuit", CircuitState.HALF_OPEN)

        if circuit.half_open_tests < self._half_open_max:
            if consume:
                circuit.half_open_tests += 1
            return CircuitDecision(True, "Half-open test request", CircuitState.HALF_OPEN)
        return CircuitDecision(False, "Circuit half-open, test in progress", CircuitState.HALF_OPEN)

    def release_probe(self, signature: str) -> None:
        """Return an unused half-open probe slot."""
        circuit = self._circuits.get(signature)
        if circuit is not None and circuit.state == CircuitState.HALF_OPEN and circuit.half_open_tests > 0:
            circuit.half_open_tests -= 1

    def record_success(self, signature: str) -> None:
        circuit = self._circuits.get(signature)
        if circuit is None:
            return
        if circuit.state != CircuitState.CLOSED:
            logger.info("Circuit %s closed", signature)
        circuit.state = CircuitState.CLOSED
        circuit.failure_count = 0
        circuit.half_open_tests = 0

    def record_failure(self, signature: str) -> None:
        circuit = self._circuits.setdefault(signature, _Circuit())
        circuit.failure_count += 1
        if circuit.state == CircuitState.HALF_OPEN or circuit.failure_count >= self._threshold:
            circuit.state = CircuitState.OPEN
            circuit.opened_at = self._clock()
            circuit.half_open_tests = 0
            logger.warning(
                "Circuit OPEN for %s after %d failures", signature, circuit.failure_count
            )

    def trip(self, signature: str) -> None:
        """Force a circuit open."""
        circuit = self._circuits.setdefault(signature, _Circuit())
        circuit.state = CircuitState.OPEN
        circuit.opened_at = self._clock()
        circuit.failure_count = max(circuit.failure_count, self._threshold)

    def reset(self, signature: str | None = None) -> None:
        if signature is None:
            self._circuits.clear()
        else:
            self._circuits.pop(signature, None)

    def snapshot(self) -> dict[str, dict]:
        return {
            sig: {"state": c.state.value, "failure_count": c.failure_count}
            for sig, c in self._circuits.items()
        }
