import asyncio

import pytest

from risklens.errors import QuotaError, RateLimitError
from risklens.models import AuthType, CallerIdentity, RateLimitCounter, SubscriptionRecord
from risklens.services.access_gate import (
    GateDecision,
    check_access,
    check_rate_limit,
    record_request,
)

ANON = CallerIdentity(identity="anon:198.51.100.4")
MEMBER = CallerIdentity(identity="user-1", auth_type=AuthType.JWT, email="member@example.com")


async def _admit(store, ledger, caller):
    gate = await check_access(store, ledger, caller)
    await record_request(store, gate.counter)
    return gate


def test_tenth_request_passes_and_eleventh_is_rejected(store, ledger):
    async def scenario():
        for _ in range(10):
            await _admit(store, ledger, ANON)
        await check_access(store, ledger, ANON)

    with pytest.raises(RateLimitError) as exc_info:
        asyncio.run(scenario())
    assert exc_info.value.message == "Rate limit exceeded"
    assert asyncio.run(store.get("rate_limit:anon:198.51.100.4")) == "10"


def test_rate_window_resets_on_expiry(store, ledger, clock):
    async def fill():
        for _ in range(10):
            await _admit(store, ledger, ANON)

    asyncio.run(fill())
    clock.advance(3600)

    counter = asyncio.run(check_rate_limit(store, ANON.identity))
    assert counter.count == 0


def test_identities_have_separate_counters(store, ledger):
    async def scenario():
        for _ in range(10):
            await _admit(store, ledger, ANON)
        return await check_access(store, ledger, CallerIdentity(identity="anon:203.0.113.9"))

    gate = asyncio.run(scenario())
    assert gate.decision is GateDecision.ALLOWED
    assert gate.counter.count == 0


def test_anonymous_callers_skip_quota(store, ledger):
    gate = asyncio.run(check_access(store, ledger, ANON))
    assert gate.quota is None


def test_authenticated_caller_over_monthly_limit(store, ledger):
    async def scenario():
        for _ in range(3):
            await ledger.increment_usage(MEMBER.identity)
        await check_access(store, ledger, MEMBER)

    with pytest.raises(QuotaError) as exc_info:
        asyncio.run(scenario())
    assert exc_info.value.status_code == 429
    assert exc_info.value.message == "Monthly analysis limit reached (3/3 on the free plan)"


def test_inactive_paid_subscription_blocked(store, ledger):
    async def scenario():
        await ledger.update_subscription(MEMBER.identity, SubscriptionRecord(tier="professional", status="unpaid"))
        await check_access(store, ledger, MEMBER)

    with pytest.raises(QuotaError) as exc_info:
        asyncio.run(scenario())
    assert exc_info.value.message.startswith("Subscription inactive")


def test_authenticated_caller_within_quota(store, ledger):
    gate = asyncio.run(check_access(store, ledger, MEMBER))
    assert gate.decision is GateDecision.ALLOWED
    assert gate.quota.remaining == 3


def test_record_request_failure_is_logged_not_raised(caplog):
    class ReadOnlyStore:
        async def put(self, key, value, ttl_seconds=None):
            raise ConnectionError("read-only replica")

    asyncio.run(record_request(ReadOnlyStore(), RateLimitCounter("anon:x", 2, 3600)))
    assert "Failed to update rate-limit counter" in caplog.text
