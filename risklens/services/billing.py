"""
Subscription ledger backed by the key-value store.

This module reads and writes the billing state the quota gate depends on:
subscription records (written by the checkout/webhook side) and per-month usage
counters (incremented after each successful analysis).

Key Layout:
- subscription:{identity}          SubscriptionRecord JSON, no TTL
- usage:{identity}:{YYYY-MM}       UsageRecord JSON, expires at the end of the following month

Pricing Tiers:
- free: 3 analyses / month
- starter: 50 analyses / month
- professional: 250 analyses / month
- business: 1000 analyses / month

Usage:
    from risklens.services.billing import SubscriptionLedger

    ledger = SubscriptionLedger(store)
    decision = await ledger.can_user_analyze("user-123")
    if decision.allowed:
        ...
        await ledger.increment_usage("user-123")

Error handling:
- Missing records default to a free/active subscription and zero usage
- Store failures and corrupt records are raised as UpstreamError; there is no
  safe default for billing state
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from risklens.errors import UpstreamError
from risklens.kv_store import KeyValueStore
from risklens.models import (
    SubscriptionRecord,
    SubscriptionStatus,
    Tier,
    UsageRecord,
    subscription_key,
    usage_key,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Pricing
# ============================================================================

PRICING_TIERS: Dict[str, Dict[str, Any]] = {
    Tier.FREE.value: {
        "name": "Free",
        "monthly_limit": 3,
        "features": ["basic_analysis", "state_compliance", "clause_extraction"],
        "price": 0,
    },
    Tier.STARTER.value: {
        "name": "Starter",
        "monthly_limit": 50,
        "features": ["basic_analysis", "state_compliance", "clause_extraction", "ai_summary", "pdf_export"],
        "price": 2900,  # cents
    },
    Tier.PROFESSIONAL.value: {
        "name": "Professional",
        "monthly_limit": 250,
        "features": [
            "basic_analysis", "state_compliance", "clause_extraction", "ai_summary", "pdf_export",
            "api_access", "bulk_upload", "team_collaboration",
        ],
        "price": 9900,
    },
    Tier.BUSINESS.value: {
        "name": "Business",
        "monthly_limit": 1000,
        "features": [
            "basic_analysis", "state_compliance", "clause_extraction", "ai_summary", "pdf_export",
            "api_access", "bulk_upload", "team_collaboration", "white_label", "dedicated_support",
        ],
        "price": 29900,
    },
}


def monthly_limit(tier: str) -> Optional[int]:
    """Return the monthly analysis allowance for a tier, or None for unknown tiers."""
    plan = PRICING_TIERS.get(tier)
    return plan["monthly_limit"] if plan else None


def tier_features(tier: str) -> List[str]:
    plan = PRICING_TIERS.get(tier)
    return list(plan["features"]) if plan else []


# ============================================================================
# Billing periods
# ============================================================================

def period_key(now: datetime) -> str:
    """Calendar-month key, e.g. '2026-10'."""
    return f"{now.year}-{now.month:02d}"


def period_bounds(now: datetime) -> tuple:
    """Return (period_start, period_end) ISO strings for the calendar month containing now."""
    last_day = calendar.monthrange(now.year, now.month)[1]
    start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    end = datetime(now.year, now.month, last_day, 23, 59, 59, tzinfo=timezone.utc)
    return start.isoformat(), end.isoformat()


def usage_ttl_seconds(now: datetime) -> int:
    """Seconds from now until the end of the following month (usage history is kept one extra month)."""
    year, month = (now.year + 1, 1) if now.month == 12 else (now.year, now.month + 1)
    last_day = calendar.monthrange(year, month)[1]
    next_month_end = datetime(year, month, last_day, 23, 59, 59, tzinfo=timezone.utc)
    return max(int((next_month_end - now).total_seconds()), 1)


@dataclass(frozen=True)
class QuotaDecision:
    """
    Result of a quota check.

    Attributes:
        allowed: Whether another analysis may run in this period
        tier: Subscription tier the decision was made for
        status: Subscription status
        usage: Analyses already counted this period
        limit: Monthly allowance (0 for unknown tiers)
        reason: Why the analysis is blocked, None when allowed
    """
    allowed: bool
    tier: str
    status: str
    usage: int
    limit: int
    reason: Optional[str] = None

    @property
    def remaining(self) -> int:
        return max(self.limit - self.usage, 0)


# ============================================================================
# Ledger
# ============================================================================

class SubscriptionLedger:
    """
    Key-value backed view of subscriptions and monthly usage.

    Args:
        store: Shared key-value store
        clock: Callable returning the current aware datetime (tests pin it)
    """

    def __init__(self, store: KeyValueStore, clock=None):
        self.store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _read(self, key: str) -> Optional[str]:
        try:
            return await self.store.get(key)
        except Exception as e:
            logger.error(f"Billing ledger read failed for '{key}': {e}", exc_info=True)
            raise UpstreamError("Billing service unavailable") from e

    async def get_subscription(self, identity: str) -> SubscriptionRecord:
        """Return the stored subscription, or a free/active default."""
        raw = await self._read(subscription_key(identity))
        if not raw:
            return SubscriptionRecord()

        try:
            return SubscriptionRecord.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.error(f"Corrupt subscription record for {identity}: {e}")
            raise UpstreamError("Billing service returned an invalid subscription") from e

    async def update_subscription(self, identity: str, subscription: SubscriptionRecord) -> None:
        """Persist a subscription record (used by the billing/webhook side and tooling)."""
        await self.store.put(subscription_key(identity), subscription.model_dump_json(by_alias=True))
        logger.info(f"Subscription updated for {identity}: {subscription.tier} ({subscription.status})")

    async def get_usage(self, identity: str) -> UsageRecord:
        """Return usage for the current calendar month, zero when no record exists."""
        now = self._clock()
        raw = await self._read(usage_key(identity, period_key(now)))
        if not raw:
            period_start, period_end = period_bounds(now)
            return UsageRecord(count=0, period_start=period_start, period_end=period_end)

        try:
            return UsageRecord.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.error(f"Corrupt usage record for {identity}: {e}")
            raise UpstreamError("Billing service returned an invalid usage record") from e

    async def increment_usage(self, identity: str) -> UsageRecord:
        """
        Count one more analysis for the current month.

        Read-then-write, not atomic: concurrent increments may be lost.

        Returns:
            The updated UsageRecord
        """
        now = self._clock()
        current = await self.get_usage(identity)

        updated = current.model_copy(update={"count": current.count + 1, "last_used": now.isoformat()})

        await self.store.put(
            usage_key(identity, period_key(now)),
            updated.model_dump_json(by_alias=True),
            ttl_seconds=usage_ttl_seconds(now),
        )
        logger.debug(f"Usage for {identity} in {period_key(now)}: {updated.count}")
        return updated

    async def can_user_analyze(self, identity: str) -> QuotaDecision:
        """
        Decide whether the identity may run another analysis this month.

        A subscription that is not active blocks analysis unless it is on the
        free tier. An unknown tier is rejected outright.
        """
        subscription = await self.get_subscription(identity)
        usage = await self.get_usage(identity)
        limit = monthly_limit(subscription.tier)

        if limit is None:
            return QuotaDecision(
                allowed=False, tier=subscription.tier, status=subscription.status,
                usage=usage.count, limit=0, reason="Invalid subscription tier"
            )

        if subscription.status != SubscriptionStatus.ACTIVE.value and subscription.tier != Tier.FREE.value:
            return QuotaDecision(
                allowed=False, tier=subscription.tier, status=subscription.status,
                usage=usage.count, limit=limit, reason="Subscription inactive"
            )

        if usage.count >= limit:
            return QuotaDecision(
                allowed=False, tier=subscription.tier, status=subscription.status,
                usage=usage.count, limit=limit, reason="Monthly limit reached"
            )

        return QuotaDecision(
            allowed=True, tier=subscription.tier, status=subscription.status,
            usage=usage.count, limit=limit
        )
