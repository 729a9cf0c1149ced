"""Circuit breaker implementation with explicit state management."""

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Union

from similar_products.clock import Clock, MonotonicClock
from similar_products.models.data_models import CircuitSnapshot, CircuitState, HalfOpenToken


@dataclass
class CircuitBreakerState:
    """Internal state for a single circuit."""
    outcomes: Deque[bool]
    state: CircuitState = CircuitState.CLOSED
    opened_at: float = 0.0
    half_open_issued: int = 0
    half_open_successes: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def failed_calls(self) -> int:
        return sum(1 for failed in self.outcomes if failed)

    @property
    def failure_rate(self) -> float:
        if not self.outcomes:
            return 0.0
        return 100.0 * self.failed_calls / len(self.outcomes)


class CircuitBreaker:
    """
    Registry of named circuits with CLOSED/OPEN/HALF_OPEN states.

    Each protected operation gets its own circuit, lock and sliding window:
    - CLOSED keeps the last ``window_size`` outcomes; once ``minimum_calls``
      are buffered, a failure rate at or above the threshold opens the circuit
    - OPEN rejects every call until ``cooldown_seconds`` have elapsed
    - HALF_OPEN hands out at most ``half_open_calls`` trial permits; that many
      successful trials close the circuit, any failed trial reopens it

    Outcomes reported without a trial token while the circuit is not CLOSED
    come from calls started earlier and are ignored.
    """

    def __init__(
        self,
        failure_rate_threshold: float = 50.0,
        window_size: int = 10,
        minimum_calls: int = 5,
        cooldown_seconds: float = 10.0,
        half_open_calls: int = 3,
        clock: Optional[Clock] = None,
        logger: Optional['StructuredLogger'] = None
    ):
        """
        Initialize circuit breaker.

        Args:
            failure_rate_threshold: Failure percentage that opens a circuit
            window_size: Number of recent outcomes kept per circuit
            minimum_calls: Outcomes needed before the failure rate is evaluated
            cooldown_seconds: Time to wait before allowing trial calls
            half_open_calls: Trial calls permitted while half-open
            clock: Clock interface for time management (defaults to MonotonicClock)
            logger: Optional structured logger for state transitions
        """
        self.failure_rate_threshold = failure_rate_threshold
        self.window_size = window_size
        self.minimum_calls = min(minimum_calls, window_size)
        self.cooldown_seconds = cooldown_seconds
        self.half_open_calls = half_open_calls
        self.clock = clock or MonotonicClock()
        self.logger = logger
        self._circuits: Dict[str, CircuitBreakerState] = {}
        self._registry_lock = threading.Lock()

    def _get_circuit(self, name: str) -> CircuitBreakerState:
        """Get or create circuit state for an operation."""
        with self._registry_lock:
            circuit = self._circuits.get(name)
            if circuit is None:
                circuit = CircuitBreakerState(outcomes=deque(maxlen=self.window_size))
                self._circuits[name] = circuit
            return circuit

    def should_allow(self, name: str) -> Union[bool, HalfOpenToken]:
        """
        Check if a call should be allowed for an operation.

        Returns:
            - True if circuit is CLOSED (allow call)
            - False if circuit is OPEN or out of trial permits (reject call)
            - HalfOpenToken if circuit is HALF_OPEN (allow trial call)
        """
        circuit = self._get_circuit(name)
        with circuit.lock:
            current_time = self.clock.now()

            if circuit.state == CircuitState.CLOSED:
                return True

            if circuit.state == CircuitState.OPEN:
                if current_time - circuit.opened_at < self.cooldown_seconds:
                    return False
                self._transition(name, circuit, CircuitState.HALF_OPEN)

            if circuit.half_open_issued >= self.half_open_calls:
                return False
            circuit.half_open_issued += 1
            return HalfOpenToken(name=name, timestamp=current_time)

    def record_success(self, name: str, token: Optional[HalfOpenToken] = None) -> None:
        """
        Record a successful call.

        Args:
            name: Operation name
            token: HalfOpenToken if this was a trial call
        """
        circuit = self._get_circuit(name)
        with circuit.lock:
            if circuit.state == CircuitState.CLOSED:
                circuit.outcomes.append(False)
                return

            if circuit.state == CircuitState.HALF_OPEN and token is not None:
                circuit.half_open_successes += 1
                if circuit.half_open_successes >= self.half_open_calls:
                    self._transition(name, circuit, CircuitState.CLOSED)

    def record_failure(
        self,
        name: str,
        retryable: bool = True,
        token: Optional[HalfOpenToken] = None
    ) -> None:
        """
        Record a failed call.

        Args:
            name: Operation name
            retryable: Whether the failure reflects upstream health; other failures are ignored
            token: HalfOpenToken if this was a trial call
        """
        if not retryable:
            if token is not None:
                self.release(name, token)
            return

        circuit = self._get_circuit(name)
        with circuit.lock:
            if circuit.state == CircuitState.CLOSED:
                circuit.outcomes.append(True)
                if (
                    len(circuit.outcomes) >= self.minimum_calls
                    and circuit.failure_rate >= self.failure_rate_threshold
                ):
                    self._transition(name, circuit, CircuitState.OPEN)
                return

            if circuit.state == CircuitState.HALF_OPEN and token is not None:
                self._transition(name, circuit, CircuitState.OPEN)

    def release(self, name: str, token: HalfOpenToken) -> None:
        """Return an unused trial permit, e.g. when the trial call was cancelled."""
        circuit = self._get_circuit(name)
        with circuit.lock:
            if circuit.state == CircuitState.HALF_OPEN and circuit.half_open_issued > 0:
                circuit.half_open_issued -= 1

    def _transition(self, name: str, circuit: CircuitBreakerState, new_state: CircuitState) -> None:
        """Move a circuit to a new state. Caller holds the circuit lock."""
        circuit.state = new_state
        circuit.half_open_issued = 0
        circuit.half_open_successes = 0
        if new_state == CircuitState.OPEN:
            circuit.opened_at = self.clock.now()
        if new_state in (CircuitState.OPEN, CircuitState.CLOSED):
            circuit.outcomes.clear()

        if self.logger:
            self.logger.circuit_breaker_state(operation=name, state=new_state.value)

    def state(self, name: str) -> CircuitState:
        """Get current circuit state for an operation."""
        circuit = self._get_circuit(name)
        with circuit.lock:
            return circuit.state

    def snapshot(self, name: str) -> CircuitSnapshot:
        """Point-in-time view of a circuit for health reporting."""
        circuit = self._get_circuit(name)
        with circuit.lock:
            return CircuitSnapshot(
                name=name,
                state=circuit.state,
                failure_rate=round(circuit.failure_rate, 2),
                buffered_calls=len(circuit.outcomes),
                failed_calls=circuit.failed_calls,
            )

    def names(self) -> List[str]:
        """Names of all circuits created so far."""
        with self._registry_lock:
            return sorted(self._circuits)

    def reset(self, name: str) -> None:
        """Reset the circuit for an operation (useful for testing)."""
        with self._registry_lock:
            if name in self._circuits:
                self._circuits[name] = CircuitBreakerState(outcomes=deque(maxlen=self.window_size))
