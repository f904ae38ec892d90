"""
Fixed-window request counters for AI rate limiting.

Two interchangeable backends share the WindowCounter interface:

- RedisWindowCounter: shared across processes, INCR and EXPIREAT in one
  MULTI/EXEC per request, windows aligned to the wall clock and expired by
  Redis.
- LocalWindowCounter: in-process, one window per identity starting at its
  first request, idle identities swept out periodically.
"""
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import redis

WINDOW_SECONDS = 60

# Distributed windows outlive their boundary by this much before Redis drops them
TTL_GRACE_SECONDS = 5

# Local windows idle for longer than this many window lengths are evicted
IDLE_WINDOWS_BEFORE_EVICTION = 5


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int

    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_seconds),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.reset_seconds)
        return headers


class CounterBackendError(Exception):
    """The counter store could not be reached or answered with an error."""


class WindowCounter(Protocol):
    def consume(self, key: str, capacity: int) -> RateLimitResult:
        """Count one request for `key` and decide it against `capacity`."""
        ...


# =============================================================================
# Distributed counter
# =============================================================================


class RedisWindowCounter:
    """
    Fixed-window counter stored in Redis.

    Window id is epoch seconds // 60, so every process sharing the store sees
    the same window boundaries. Bursts straddling a boundary can reach twice
    the capacity; that is accepted in exchange for a single round trip.
    """

    def __init__(
        self,
        client: redis.Redis,
        clock: Callable[[], float] = time.time,
        key_prefix: str = "rate",
    ):
        self._client = client
        self._clock = clock
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, socket_timeout: float = 0.5) -> "RedisWindowCounter":
        client = redis.Redis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    def _redis_key(self, key: str, window_id: int) -> str:
        return f"{self._key_prefix}:{key}:{window_id}"

    def increment(self, key: str, window_id: int) -> int:
        """
        Atomically bump the counter for (key, window) and return the new count.

        INCR and EXPIREAT travel in one MULTI/EXEC round trip, so a window key
        never exists without its expiry and a failed call counts nothing. The
        expiry is absolute, so setting it again on every hit does not move it.
        """
        redis_key = self._redis_key(key, window_id)
        expires_at = (window_id + 1) * WINDOW_SECONDS + TTL_GRACE_SECONDS
        try:
            with self._client.pipeline(transaction=True) as pipe:
                pipe.incr(redis_key)
                pipe.expireat(redis_key, expires_at)
                count, _ = pipe.execute()
        except redis.RedisError as e:
            raise CounterBackendError(str(e)) from e
        return int(count)

    def consume(self, key: str, capacity: int) -> RateLimitResult:
        now = self._clock()
        window_id = int(now // WINDOW_SECONDS)
        count = self.increment(key, window_id)
        reset_seconds = max(0, (window_id + 1) * WINDOW_SECONDS - int(now))
        return RateLimitResult(
            allowed=count <= capacity,
            limit=capacity,
            remaining=max(0, capacity - count),
            reset_seconds=reset_seconds,
        )


# =============================================================================
# In-process fallback counter
# =============================================================================


class LocalWindow:
    """Window state for one identity. All mutation happens under its own lock."""

    def __init__(self, capacity: int, window_seconds: float, now: float):
        self.capacity = capacity
        self.window_seconds = window_seconds
        self.window_start = now
        self.count = 0
        self.last_access = now
        self._lock = threading.Lock()

    def try_consume(self, now: float) -> RateLimitResult:
        with self._lock:
            self.last_access = now
            if now - self.window_start >= self.window_seconds:
                self.window_start = now
                self.count = 0

            allowed = self.count < self.capacity
            if allowed:
                self.count += 1

            elapsed = now - self.window_start
            return RateLimitResult(
                allowed=allowed,
                limit=self.capacity,
                remaining=max(0, self.capacity - self.count),
                reset_seconds=max(0, int(self.window_seconds - elapsed)),
            )

    def is_idle(self, now: float) -> bool:
        return now - self.last_access > self.window_seconds * IDLE_WINDOWS_BEFORE_EVICTION


class LocalWindowCounter:
    """
    Per-identity windows kept in process memory.

    The map lock only guards lookups, replacement and eviction; counting
    takes the identity's own lock, so unrelated callers never wait on each
    other.
    """

    def __init__(
        self,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, LocalWindow] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def __contains__(self, key: str) -> bool:
        return key in self._windows

    def _window_for(self, key: str, capacity: int, now: float) -> LocalWindow:
        with self._lock:
            window = self._windows.get(key)
            if window is None or window.capacity != capacity:
                window = LocalWindow(capacity, self.window_seconds, now)
                self._windows[key] = window
            else:
                # Touch under the map lock so a concurrent sweep cannot drop it
                window.last_access = now
            return window

    def consume(self, key: str, capacity: int) -> RateLimitResult:
        now = self._clock()
        return self._window_for(key, capacity, now).try_consume(now)

    def evict_idle(self) -> int:
        """Drop identities idle beyond the eviction age. Returns how many went."""
        now = self._clock()
        with self._lock:
            idle = [key for key, window in self._windows.items() if window.is_idle(now)]
            for key in idle:
                del self._windows[key]
        return len(idle)
