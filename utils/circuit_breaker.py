"""Circuit breaker for best-effort outbound deliveries"""
import time
import logging
from typing import Dict, Optional
from enum import Enum
from threading import Lock

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Stops calling a failing endpoint for `recovery_timeout` seconds.

    Deliveries are fire-and-forget, so the breaker does not wrap the call:
    the sender asks `allow_request()` before dispatching and reports the
    outcome later from the worker thread.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        name: str = "CircuitBreaker",
        clock=time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time: Optional[float] = None
        self._trial_started: Optional[float] = None
        self._lock = Lock()

        self.stats = {
            'allowed': 0,
            'rejected': 0,
            'succeeded': 0,
            'failed': 0,
        }

    def allow_request(self) -> bool:
        """Half-open admits a single trial until its outcome is recorded"""
        with self._lock:
            if self.state == CircuitState.OPEN:
                if not self._should_attempt_reset():
                    self.stats['rejected'] += 1
                    return False
                self._transition_to(CircuitState.HALF_OPEN)
            if self.state == CircuitState.HALF_OPEN:
                if self._trial_in_flight():
                    self.stats['rejected'] += 1
                    return False
                self._trial_started = self._clock()
            self.stats['allowed'] += 1
            return True

    def record_success(self):
        with self._lock:
            self.stats['succeeded'] += 1
            self.failure_count = 0
            self._trial_started = None
            if self.state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.CLOSED)

    def record_failure(self):
        with self._lock:
            self.stats['failed'] += 1
            self.failure_count += 1
            self.last_failure_time = self._clock()
            self._trial_started = None
            if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
                self._transition_to(CircuitState.OPEN)

    def _trial_in_flight(self) -> bool:
        # A trial that never reported back is given up after one recovery period
        return bool(self._trial_started is not None
                    and self._clock() - self._trial_started < self.recovery_timeout)

    def _should_attempt_reset(self) -> bool:
        return bool(self.last_failure_time is not None
                    and self._clock() - self.last_failure_time >= self.recovery_timeout)

    def _transition_to(self, new_state: CircuitState):
        old = self.state
        if old == new_state:
            return
        self.state = new_state
        logger.info(f"Circuit breaker {self.name}: {old.value} -> {new_state.value}")
        if new_state == CircuitState.CLOSED:
            self.failure_count = 0

    def get_state(self) -> str:
        return self.state.value

    def get_stats(self) -> Dict:
        with self._lock:
            return {
                'name': self.name,
                'state': self.state.value,
                'failure_count': self.failure_count,
                'stats': dict(self.stats),
            }

    def reset(self):
        with self._lock:
            self.state = CircuitState.CLOSED
            self.failure_count = 0
            self.last_failure_time = None
            self._trial_started = None
            logger.info(f"Circuit breaker {self.name} manually reset")
