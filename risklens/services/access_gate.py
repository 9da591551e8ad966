"""
Rate & quota gate for analysis requests.

Two independent mechanisms decide whether a fresh analysis may run:

- Rate limit: at most `rate_limit_max_requests` (10) analyses per identity per
  rolling `rate_limit_window_seconds` (3600) window. The counter lives under
  `rate_limit:{identity}`; it is read before the pipeline and written back
  (`count + 1`, TTL refreshed) after it. Expiry resets it, nothing clears it.
- Quota: tier-based monthly allowance from the subscription ledger, applied to
  authenticated callers. The gate only reads usage; incrementing is the
  ledger's job after a successful analysis.

State machine:
    CHECKING -> ALLOWED | RATE_LIMITED | QUOTA_EXCEEDED | SUBSCRIPTION_INACTIVE

No retries happen here; the caller waits for the window or period to roll over.
Concurrent requests from one identity can both pass before either writes back.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from risklens.config import get_settings
from risklens.errors import QuotaError, RateLimitError
from risklens.kv_store import KeyValueStore
from risklens.models import CallerIdentity, RateLimitCounter, rate_limit_key
from risklens.services.billing import QuotaDecision, SubscriptionLedger

logger = logging.getLogger(__name__)


class GateDecision(str, Enum):
    ALLOWED = "allowed"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    SUBSCRIPTION_INACTIVE = "subscription_inactive"


@dataclass(frozen=True)
class GateResult:
    """
    Outcome of the gate for a request that was allowed through.

    Attributes:
        decision: Always ALLOWED for returned results; rejections raise
        counter: Rate-limit counter as read before the pipeline
        quota: Quota decision for authenticated callers, None for anonymous ones
    """
    decision: GateDecision
    counter: RateLimitCounter
    quota: Optional[QuotaDecision] = None


def _parse_count(raw: Optional[str]) -> int:
    try:
        return int(raw) if raw else 0
    except ValueError:
        logger.warning(f"Ignoring non-numeric rate-limit counter value {raw!r}")
        return 0


async def read_rate_counter(store: KeyValueStore, identity: str) -> RateLimitCounter:
    settings = get_settings()
    raw = await store.get(rate_limit_key(identity))
    return RateLimitCounter(
        identity=identity,
        count=_parse_count(raw),
        window_seconds=settings.rate_limit_window_seconds,
    )


async def check_rate_limit(store: KeyValueStore, identity: str) -> RateLimitCounter:
    """
    Read the identity's counter and reject when the ceiling is reached.

    The 10th request in a window still passes (9 recorded); the 11th is rejected.

    Raises:
        RateLimitError: When count >= rate_limit_max_requests
    """
    settings = get_settings()
    counter = await read_rate_counter(store, identity)

    if counter.count >= settings.rate_limit_max_requests:
        logger.warning(f"Rate limit exceeded for {identity}: {counter.count} requests in window")
        raise RateLimitError("Rate limit exceeded")

    return counter


async def record_request(store: KeyValueStore, counter: RateLimitCounter) -> None:
    """
    Write back count + 1 for the identity, refreshing the window TTL.

    Best-effort: a failed write is logged, the request still succeeds.
    """
    try:
        await store.put(counter.key, str(counter.count + 1), ttl_seconds=counter.window_seconds)
    except Exception as e:
        logger.error(f"Failed to update rate-limit counter for {counter.identity}: {e}", exc_info=True)


def classify_quota(quota: QuotaDecision) -> GateDecision:
    if quota.allowed:
        return GateDecision.ALLOWED
    if quota.reason == "Monthly limit reached":
        return GateDecision.QUOTA_EXCEEDED
    return GateDecision.SUBSCRIPTION_INACTIVE


async def check_quota(ledger: SubscriptionLedger, identity: str) -> QuotaDecision:
    """
    Check the monthly allowance for an identity.

    Raises:
        QuotaError: When the allowance is spent or the subscription is inactive
        UpstreamError: When the ledger cannot be read
    """
    quota = await ledger.can_user_analyze(identity)
    decision = classify_quota(quota)

    if decision is GateDecision.QUOTA_EXCEEDED:
        logger.info(f"Monthly limit reached for {identity}: {quota.usage}/{quota.limit} ({quota.tier})")
        raise QuotaError(
            f"Monthly analysis limit reached ({quota.usage}/{quota.limit} on the {quota.tier} plan)"
        )
    if decision is GateDecision.SUBSCRIPTION_INACTIVE:
        logger.info(f"Analysis blocked for {identity}: {quota.reason} (tier={quota.tier}, status={quota.status})")
        raise QuotaError(f"{quota.reason}: analysis is unavailable until the subscription is active")

    return quota


async def check_access(
    store: KeyValueStore,
    ledger: SubscriptionLedger,
    caller: CallerIdentity
) -> GateResult:
    """
    Run the rate limit, then the quota check for authenticated callers.

    Returns:
        GateResult with decision ALLOWED

    Raises:
        RateLimitError: RATE_LIMITED
        QuotaError: QUOTA_EXCEEDED or SUBSCRIPTION_INACTIVE
    """
    counter = await check_rate_limit(store, caller.identity)

    quota = None
    if caller.authenticated:
        quota = await check_quota(ledger, caller.identity)

    return GateResult(decision=GateDecision.ALLOWED, counter=counter, quota=quota)
