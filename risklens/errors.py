"""
Exception taxonomy for the analysis pipeline.

Services raise these exceptions; the FastAPI exception handler in
risklens/main.py turns them into `{"error": message}` JSON responses using
the status code carried by each class.

Error handling notes:
- ValidationError and JurisdictionError are user-fixable and never logged as errors
- RateLimitError and QuotaError clear themselves when the window or billing period rolls over
- UpstreamError is only surfaced for billing-ledger failures; summarization failures fall back
- Anything else is treated as an unexpected failure and reported as an opaque 500
"""

from typing import Optional


class RiskLensError(Exception):
    """
    Base class for all errors that map to an HTTP outcome.

    Attributes:
        message: Human-readable message returned to the caller
        status_code: HTTP status code used by the exception handler
    """

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(RiskLensError):
    """Raised when the request body is missing or has no usable text."""

    status_code = 400


class AuthenticationError(RiskLensError):
    """
    Raised when a presented Bearer token cannot be verified.

    The identity resolver catches it and treats the caller as anonymous.
    """

    status_code = 401


class JurisdictionError(RiskLensError):
    """
    Raised when the contract's governing law is outside the approved states.

    The message enumerates the approved states and what was detected.
    """

    status_code = 403


class RateLimitError(RiskLensError):
    """Raised when an identity exceeds its per-window request ceiling."""

    status_code = 429


class QuotaError(RiskLensError):
    """
    Raised when the monthly allowance is spent or the subscription is inactive.

    Surfaced like a rate limit; the caller has to wait for the next billing period
    or fix the subscription.
    """

    status_code = 429


class UpstreamError(RiskLensError):
    """Raised when an external provider (billing ledger) fails with no safe fallback."""

    status_code = 500
