import asyncio
from datetime import datetime, timezone

import pytest

from risklens.errors import UpstreamError
from risklens.models import SubscriptionRecord, usage_key
from risklens.services.billing import (
    SubscriptionLedger,
    monthly_limit,
    period_bounds,
    period_key,
    usage_ttl_seconds,
)

PINNED_NOW = datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def pinned_ledger(store):
    return SubscriptionLedger(store, clock=lambda: PINNED_NOW)


def test_tier_limits():
    assert monthly_limit("free") == 3
    assert monthly_limit("starter") == 50
    assert monthly_limit("professional") == 250
    assert monthly_limit("business") == 1000
    assert monthly_limit("platinum") is None


def test_period_helpers():
    assert period_key(PINNED_NOW) == "2026-10"
    assert period_bounds(datetime(2024, 2, 10, tzinfo=timezone.utc)) == (
        "2024-02-01T00:00:00+00:00",
        "2024-02-29T23:59:59+00:00",
    )
    assert usage_ttl_seconds(datetime(2026, 12, 31, 23, 59, 59, tzinfo=timezone.utc)) == 31 * 24 * 3600


def test_missing_records_default_to_free_and_zero(pinned_ledger):
    subscription = asyncio.run(pinned_ledger.get_subscription("user-1"))
    usage = asyncio.run(pinned_ledger.get_usage("user-1"))

    assert subscription.tier == "free"
    assert subscription.status == "active"
    assert usage.count == 0
    assert usage.period_start == "2026-10-01T00:00:00+00:00"


def test_increment_usage_writes_monthly_record(pinned_ledger, store):
    asyncio.run(pinned_ledger.increment_usage("user-1"))
    updated = asyncio.run(pinned_ledger.increment_usage("user-1"))

    assert updated.count == 2
    assert updated.last_used == PINNED_NOW.isoformat()
    raw = asyncio.run(store.get(usage_key("user-1", "2026-10")))
    assert '"count":2' in raw
    assert '"periodStart"' in raw


def test_free_tier_blocked_after_three(pinned_ledger):
    for _ in range(3):
        assert asyncio.run(pinned_ledger.can_user_analyze("user-1")).allowed
        asyncio.run(pinned_ledger.increment_usage("user-1"))

    decision = asyncio.run(pinned_ledger.can_user_analyze("user-1"))
    assert not decision.allowed
    assert decision.reason == "Monthly limit reached"
    assert decision.remaining == 0


def test_paid_tier_requires_active_status(pinned_ledger):
    asyncio.run(pinned_ledger.update_subscription("user-2", SubscriptionRecord(tier="starter", status="past_due")))

    decision = asyncio.run(pinned_ledger.can_user_analyze("user-2"))
    assert not decision.allowed
    assert decision.reason == "Subscription inactive"
    assert decision.limit == 50


def test_free_tier_allowed_regardless_of_status(pinned_ledger):
    asyncio.run(pinned_ledger.update_subscription("user-3", SubscriptionRecord(tier="free", status="canceled")))
    assert asyncio.run(pinned_ledger.can_user_analyze("user-3")).allowed


def test_unknown_tier_rejected(pinned_ledger):
    asyncio.run(pinned_ledger.update_subscription("user-4", SubscriptionRecord(tier="platinum")))

    decision = asyncio.run(pinned_ledger.can_user_analyze("user-4"))
    assert not decision.allowed
    assert decision.reason == "Invalid subscription tier"
    assert decision.limit == 0


def test_subscription_written_by_billing_side_is_readable(pinned_ledger, store):
    asyncio.run(store.put(
        "subscription:user-5",
        '{"tier": "business", "status": "active", "customerId": "cus_1", "currentPeriodEnd": "2026-11-01"}'
    ))
    subscription = asyncio.run(pinned_ledger.get_subscription("user-5"))

    assert subscription.tier == "business"
    assert subscription.customer_id == "cus_1"


def test_corrupt_subscription_raises_upstream_error(pinned_ledger, store):
    asyncio.run(store.put("subscription:user-6", "not json"))

    with pytest.raises(UpstreamError):
        asyncio.run(pinned_ledger.get_subscription("user-6"))


def test_store_failure_raises_upstream_error():
    class BrokenStore:
        async def get(self, key):
            raise ConnectionError("store down")

    ledger = SubscriptionLedger(BrokenStore())
    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(ledger.can_user_analyze("user-7"))
    assert exc_info.value.status_code == 500
