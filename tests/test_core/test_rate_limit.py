"""
Tests for the AI rate limit gate: namespace bypass, tier quotas and
fallback from the distributed counter to the in-process one.
"""
from datetime import timedelta

import pytest
from starlette.requests import Request

from app.core.counters import CounterBackendError, LocalWindowCounter, RateLimitResult
from app.core.identity import Identity, Tier, TierQuotas
from app.core.rate_limit import RateLimitGate, UnauthenticatedRequestError
from app.core.security import create_access_token


def make_request(
    path: str = "/api/ai/suggest-category",
    client_host: str = "203.0.113.7",
    authorization: str | None = None,
) -> Request:
    headers = []
    if authorization:
        headers.append((b"authorization", authorization.encode()))
    return Request(
        {
            "type": "http",
            "method": "POST",
            "scheme": "http",
            "server": ("testserver", 80),
            "path": path,
            "root_path": "",
            "query_string": b"",
            "headers": headers,
            "client": (client_host, 50000),
        }
    )


def bearer(subject: str, roles: list[str] | None = None) -> str:
    token = create_access_token(subject, timedelta(minutes=5), roles=roles)
    return f"Bearer {token}"


class StubDistributed:
    """Distributed counter double that can be switched to failing."""

    def __init__(self):
        self.failing = False
        self.calls = 0
        self.counts: dict[str, int] = {}

    def consume(self, key: str, capacity: int) -> RateLimitResult:
        self.calls += 1
        if self.failing:
            raise CounterBackendError("connection refused")
        self.counts[key] = self.counts.get(key, 0) + 1
        count = self.counts[key]
        return RateLimitResult(
            allowed=count <= capacity,
            limit=capacity,
            remaining=max(0, capacity - count),
            reset_seconds=30,
        )


def make_gate(clock, distributed=None) -> RateLimitGate:
    return RateLimitGate(
        quotas=TierQuotas(),
        local=LocalWindowCounter(clock=clock),
        distributed=distributed,
        failure_cooldown=5.0,
        clock=clock,
    )


class TestNamespace:
    def test_paths_outside_ai_namespace_are_not_counted(self, clock):
        gate = make_gate(clock)

        for _ in range(50):
            assert gate.check_and_consume(make_request(path="/api/transactions")) is None

        assert len(gate.local) == 0

    def test_prefix_must_match_exactly(self, clock):
        gate = make_gate(clock)

        assert not gate.applies_to("/api/ai")
        assert not gate.applies_to("/api/aix/suggest")
        assert gate.applies_to("/api/ai/weekly-summary")


class TestTiers:
    def test_anonymous_eleventh_call_is_denied(self, clock):
        gate = make_gate(clock)

        results = [gate.check_and_consume(make_request()) for _ in range(11)]

        assert all(r.allowed for r in results[:10])
        assert not results[10].allowed
        assert results[10].limit == 10
        assert results[10].headers()["Retry-After"] == str(results[10].reset_seconds)

    def test_anonymous_callers_are_keyed_by_address(self, clock):
        gate = make_gate(clock)
        for _ in range(10):
            gate.check_and_consume(make_request(client_host="198.51.100.1"))

        assert gate.check_and_consume(make_request(client_host="198.51.100.2")).allowed

    def test_authenticated_caller_gets_standard_quota(self, clock):
        gate = make_gate(clock)
        request = make_request(authorization=bearer("42"))

        first = gate.check_and_consume(request)
        second = gate.check_and_consume(request)

        assert first.limit == 60
        assert first.remaining == 59
        assert second.remaining == 58

    def test_premium_caller_denied_on_call_201(self, clock):
        gate = make_gate(clock)
        request = make_request(authorization=bearer("7", roles=["premium"]))

        results = [gate.check_and_consume(request) for _ in range(201)]

        assert all(r.allowed for r in results[:200])
        assert not results[200].allowed
        assert results[200].limit == 200

    def test_non_bearer_authorization_counts_as_anonymous(self, clock):
        gate = make_gate(clock)

        result = gate.check_and_consume(make_request(authorization="Basic dXNlcjpwdw=="))

        assert result.limit == 10

    def test_quota_restores_after_window(self, clock):
        gate = make_gate(clock)
        for _ in range(11):
            gate.check_and_consume(make_request())

        clock.advance(60)

        assert gate.check_and_consume(make_request()).allowed


class TestUnauthenticated:
    def test_invalid_token_is_rejected_before_counting(self, clock):
        gate = make_gate(clock)

        with pytest.raises(UnauthenticatedRequestError) as exc_info:
            gate.check_and_consume(make_request(authorization="Bearer garbage"))

        assert exc_info.value.detail == "Could not validate credentials"
        assert len(gate.local) == 0

    def test_expired_token_does_not_spend_the_address_quota(self, clock):
        gate = make_gate(clock)
        token = create_access_token("42", timedelta(minutes=-1))

        for _ in range(20):
            with pytest.raises(UnauthenticatedRequestError):
                gate.check_and_consume(make_request(authorization=f"Bearer {token}"))

        assert gate.check_and_consume(make_request()).remaining == 9

    def test_anonymous_call_to_login_only_route_is_rejected(self, clock):
        gate = make_gate(clock)

        with pytest.raises(UnauthenticatedRequestError) as exc_info:
            gate.check_and_consume(make_request(path="/api/ai/weekly-summary"))

        assert exc_info.value.detail == "Not authenticated"
        assert len(gate.local) == 0

    def test_authenticated_call_to_login_only_route_is_counted(self, clock):
        gate = make_gate(clock)

        result = gate.check_and_consume(
            make_request(path="/api/ai/weekly-summary", authorization=bearer("42"))
        )

        assert result.limit == 60
        assert "user:42" in gate.local


class TestBackendSelection:
    def test_local_only_without_distributed_counter(self, clock):
        assert make_gate(clock).backend == "local"

    def test_distributed_counter_is_used_when_healthy(self, clock):
        distributed = StubDistributed()
        gate = make_gate(clock, distributed)

        result = gate.consume(Identity("user:42", Tier.STANDARD))

        assert gate.backend == "redis"
        assert distributed.calls == 1
        assert result.remaining == 59
        assert "user:42" not in gate.local

    def test_store_failure_falls_back_to_local(self, clock):
        distributed = StubDistributed()
        distributed.failing = True
        gate = make_gate(clock, distributed)

        result = gate.consume(Identity("user:42", Tier.STANDARD))

        assert result.allowed
        assert result.remaining == 59
        assert "user:42" in gate.local
        assert gate.backend == "local"

    def test_store_is_skipped_during_cooldown(self, clock):
        distributed = StubDistributed()
        distributed.failing = True
        gate = make_gate(clock, distributed)
        gate.consume(Identity("user:42", Tier.STANDARD))

        clock.advance(4)
        gate.consume(Identity("user:42", Tier.STANDARD))

        assert distributed.calls == 1

    def test_store_is_retried_after_cooldown(self, clock):
        distributed = StubDistributed()
        distributed.failing = True
        gate = make_gate(clock, distributed)
        gate.consume(Identity("user:42", Tier.STANDARD))

        distributed.failing = False
        clock.advance(5)
        result = gate.consume(Identity("user:42", Tier.STANDARD))

        assert distributed.calls == 2
        assert gate.backend == "redis"
        assert result.remaining == 59

    def test_fallback_enforces_quota(self, clock):
        distributed = StubDistributed()
        distributed.failing = True
        gate = make_gate(clock, distributed)

        results = [gate.consume(Identity("ip:1.2.3.4", Tier.FREE)) for _ in range(11)]

        assert not results[10].allowed

    def test_idle_local_windows_are_swept(self, clock):
        gate = make_gate(clock)
        gate.consume(Identity("ip:1.1.1.1", Tier.FREE))

        clock.advance(301)
        gate.consume(Identity("ip:2.2.2.2", Tier.FREE))

        assert "ip:1.1.1.1" not in gate.local
        assert "ip:2.2.2.2" in gate.local
