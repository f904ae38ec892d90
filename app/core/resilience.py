"""
Retry and circuit breaker for outbound AI provider calls.

The two are composed by plain function wrapping:

    breaker.call(with_retry(fn, policy))

so the breaker admits the whole retry sequence once, and only that
sequence's final outcome lands in the breaker's failure sample.
"""
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# Retry
# =============================================================================


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry behavior.

    Attributes:
        retry_count: Retries after the initial attempt (3 means up to 4 calls)
        initial_delay: Seconds to wait before the first retry
        backoff_multiplier: Growth factor for later delays; 1.0 keeps them fixed
        max_delay: Upper bound for any single delay

    Example:
        >>> policy = RetryPolicy(retry_count=3, initial_delay=0.5)
        >>> policy.max_attempts
        4
    """

    retry_count: int = 3
    initial_delay: float = 0.5
    backoff_multiplier: float = 1.0
    max_delay: float = 10.0

    def __post_init__(self) -> None:
        if self.retry_count < 0:
            raise ValueError("retry_count must not be negative")

    @property
    def max_attempts(self) -> int:
        return self.retry_count + 1

    def delay_for(self, attempt: int) -> float:
        """Delay after the failed attempt with 0-based index `attempt`."""
        delay = self.initial_delay * (self.backoff_multiplier ** attempt)
        return min(delay, self.max_delay)


def with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
    name: str = "call",
) -> Callable[[], T]:
    """
    Wrap `fn` so that any exception is retried up to the policy's budget.

    The last exception is re-raised once attempts run out.
    """

    def retrying() -> T:
        for attempt in range(policy.max_attempts):
            try:
                return fn()
            except Exception as e:
                if attempt + 1 >= policy.max_attempts:
                    logger.warning(
                        f"{name} failed after {policy.max_attempts} attempts: "
                        f"{type(e).__name__}: {e}"
                    )
                    raise
                delay = policy.delay_for(attempt)
                logger.warning(
                    f"Retry {attempt + 1}/{policy.retry_count} for {name} after "
                    f"{type(e).__name__}: {e}. Waiting {delay:.2f}s..."
                )
                sleep(delay)
        raise AssertionError("unreachable: retry loop exited without result")

    return retrying


# =============================================================================
# Circuit Breaker
# =============================================================================


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised when the breaker rejects a call without running it."""

    def __init__(self, name: str, retry_in: float):
        super().__init__(f"Circuit '{name}' is open, retry in {retry_in:.1f}s")
        self.name = name
        self.retry_in = retry_in


@dataclass(frozen=True)
class _Permit:
    generation: int
    probe: bool


class CircuitBreaker:
    """
    Count-based circuit breaker.

    - CLOSED: calls run; the last `sliding_window_size` outcomes are kept.
      Once the sample is full and its failure rate reaches the threshold,
      the breaker opens.
    - OPEN: calls are rejected until `wait_duration` has elapsed, then the
      breaker moves to HALF_OPEN.
    - HALF_OPEN: one probe call runs. Success closes the breaker, failure
      opens it again. Other calls are rejected while the probe is out.

    Each transition starts a new generation; outcomes of calls admitted in an
    earlier generation are discarded.
    """

    def __init__(
        self,
        name: str,
        failure_rate_threshold: float = 50.0,
        wait_duration: float = 30.0,
        sliding_window_size: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ):
        if sliding_window_size < 1:
            raise ValueError("sliding_window_size must be at least 1")
        self.name = name
        self.failure_rate_threshold = failure_rate_threshold
        self.wait_duration = wait_duration
        self.sliding_window_size = sliding_window_size
        self._clock = clock

        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._outcomes: deque[bool] = deque(maxlen=sliding_window_size)
        self._open_until = 0.0
        self._generation = 0
        self._probe_in_flight = False
        self._rejected = 0

    # State ---------------------------------------------------------------

    def _refresh(self, now: float) -> None:
        if self._state is CircuitState.OPEN and now >= self._open_until:
            self._transition(CircuitState.HALF_OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        self._generation += 1
        self._outcomes.clear()
        self._probe_in_flight = False
        if new_state is CircuitState.OPEN:
            self._open_until = self._clock() + self.wait_duration
        logger.warning(
            f"Circuit '{self.name}' {old_state.value} -> {new_state.value}"
        )

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._refresh(self._clock())
            return self._state

    @property
    def failure_rate(self) -> float:
        """Percentage of failures in the current sample (0 when empty)."""
        with self._lock:
            return self._failure_rate()

    def _failure_rate(self) -> float:
        if not self._outcomes:
            return 0.0
        failures = sum(1 for ok in self._outcomes if not ok)
        return failures * 100.0 / len(self._outcomes)

    # Admission and recording ----------------------------------------------

    def _acquire(self) -> _Permit:
        with self._lock:
            now = self._clock()
            self._refresh(now)
            if self._state is CircuitState.CLOSED:
                return _Permit(self._generation, probe=False)
            if self._state is CircuitState.HALF_OPEN and not self._probe_in_flight:
                self._probe_in_flight = True
                return _Permit(self._generation, probe=True)
            self._rejected += 1
            retry_in = max(0.0, self._open_until - now)
        raise CircuitOpenError(self.name, retry_in)

    def _record(self, permit: _Permit, success: bool) -> None:
        with self._lock:
            if permit.generation != self._generation:
                return
            if permit.probe:
                self._transition(CircuitState.CLOSED if success else CircuitState.OPEN)
                return
            self._outcomes.append(success)
            if (
                len(self._outcomes) >= self.sliding_window_size
                and self._failure_rate() >= self.failure_rate_threshold
            ):
                self._transition(CircuitState.OPEN)

    def call(self, fn: Callable[[], T]) -> T:
        """Run `fn` if the breaker admits it, recording its outcome."""
        permit = self._acquire()
        try:
            result = fn()
        except Exception:
            self._record(permit, success=False)
            raise
        self._record(permit, success=True)
        return result

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            self._refresh(self._clock())
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_rate": round(self._failure_rate(), 2),
                "buffered_calls": len(self._outcomes),
                "rejected_calls": self._rejected,
            }


# =============================================================================
# Composition
# =============================================================================


class ResilientCaller:
    """
    Process-wide guard for calls to one external dependency.

    `execute` never raises for call failures: it returns None when retries
    are exhausted or the breaker is open, and callers fall back to a locally
    computed answer.
    """

    def __init__(
        self,
        breaker: CircuitBreaker,
        retry_policy: RetryPolicy,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.breaker = breaker
        self.retry_policy = retry_policy
        self._sleep = sleep

    @classmethod
    def from_settings(cls, name: str = "openai") -> "ResilientCaller":
        return cls(
            breaker=CircuitBreaker(
                name=name,
                failure_rate_threshold=settings.AI_CB_FAILURE_RATE_THRESHOLD,
                wait_duration=settings.AI_CB_WAIT_DURATION_SECONDS,
                sliding_window_size=settings.AI_CB_SLIDING_WINDOW_SIZE,
            ),
            retry_policy=RetryPolicy(
                retry_count=settings.AI_RETRY_COUNT,
                initial_delay=settings.AI_RETRY_INITIAL_DELAY_MS / 1000,
                backoff_multiplier=settings.AI_RETRY_BACKOFF_MULTIPLIER,
            ),
        )

    def execute(self, fn: Callable[[], T], name: str = "call") -> T | None:
        retrying = with_retry(fn, self.retry_policy, sleep=self._sleep, name=name)
        try:
            return self.breaker.call(retrying)
        except CircuitOpenError as e:
            logger.warning(f"{name} rejected: {e}")
            return None
        except Exception as e:
            logger.error(f"{name} gave up: {type(e).__name__}: {e}")
            return None
