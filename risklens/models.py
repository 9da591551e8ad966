"""
Records persisted in the key-value store.

This module defines the JSON documents the service reads and writes:
- SubscriptionRecord: Billing state for an identity (owned by the billing collaborator)
- UsageRecord: Analyses performed in one calendar month
- ApiKeyRecord: Owner and lifecycle of an issued API key
- RateLimitCounter: Requests seen in the current rate-limit window
- CallerIdentity: Who is calling (resolved per request, never stored)

Stored documents use camelCase keys so records written by other components
(checkout webhooks, key issuance) stay readable. Models accept both the alias
and the Python field name.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Tier(str, Enum):
    """Subscription plans controlling the monthly analysis allowance."""

    FREE = "free"
    STARTER = "starter"
    PROFESSIONAL = "professional"
    BUSINESS = "business"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle states as reported by the payment provider."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    UNPAID = "unpaid"


class SubscriptionRecord(BaseModel):
    """
    Billing state for one identity, stored under `subscription:{identity}`.

    The tier is kept as a plain string so an unknown plan written by the
    billing side can be detected and rejected by the quota gate instead of
    failing deserialization.

    Attributes:
        tier: Plan name ('free', 'starter', 'professional', 'business')
        status: Provider status ('active', 'past_due', 'canceled', ...)
        customer_id: Payment provider customer ID
        subscription_id: Payment provider subscription ID
        current_period_end: ISO-8601 end of the paid period
    """
    model_config = ConfigDict(populate_by_name=True)

    tier: str = Field(default=Tier.FREE.value, description="Subscription plan name")
    status: str = Field(default=SubscriptionStatus.ACTIVE.value, description="Subscription status")
    customer_id: Optional[str] = Field(None, alias="customerId")
    subscription_id: Optional[str] = Field(None, alias="subscriptionId")
    current_period_end: Optional[str] = Field(None, alias="currentPeriodEnd")


class UsageRecord(BaseModel):
    """
    Analyses counted for one identity in one calendar month.

    Stored under `usage:{identity}:{YYYY-MM}`.
    """
    model_config = ConfigDict(populate_by_name=True)

    count: int = Field(0, ge=0, description="Analyses performed in the period")
    period_start: str = Field(..., alias="periodStart")
    period_end: str = Field(..., alias="periodEnd")
    last_used: Optional[str] = Field(None, alias="lastUsed")


class ApiKeyRecord(BaseModel):
    """API key metadata stored under `api_key:{key}`."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str = Field(..., alias="userId")
    email: Optional[str] = None
    active: bool = True
    created_at: Optional[str] = Field(None, alias="createdAt")
    last_used: Optional[str] = Field(None, alias="lastUsed")
    expires_at: Optional[str] = Field(None, alias="expiresAt")


@dataclass(frozen=True)
class RateLimitCounter:
    """Requests recorded for an identity in the current rolling window."""

    identity: str
    count: int
    window_seconds: int

    @property
    def key(self) -> str:
        return rate_limit_key(self.identity)


class AuthType(str, Enum):
    ANONYMOUS = "anonymous"
    API_KEY = "api_key"
    JWT = "jwt"


@dataclass(frozen=True)
class CallerIdentity:
    """
    Resolved caller of a request.

    identity is the stable string used to key counters: `anon:{ip}` for
    anonymous callers, the owning user ID otherwise.
    """

    identity: str
    auth_type: AuthType = AuthType.ANONYMOUS
    email: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return self.auth_type != AuthType.ANONYMOUS


def rate_limit_key(identity: str) -> str:
    return f"rate_limit:{identity}"


def subscription_key(identity: str) -> str:
    return f"subscription:{identity}"


def usage_key(identity: str, period_key: str) -> str:
    return f"usage:{identity}:{period_key}"


def api_key_key(api_key: str) -> str:
    return f"api_key:{api_key}"
