"""
Analysis orchestrator - sequences the contract analysis pipeline.

Pipeline (each step a hard gate unless noted):
1. Reject blank text (ValidationError)
2. Cache lookup; a hit is returned as stored, with no rate, quota or usage accounting
3. Rate limit (RateLimitError)
4. Quota for authenticated callers (QuotaError / UpstreamError)
5. Jurisdiction gate (JurisdictionError), before any extraction or remote call
6. Clause extraction and red flag detection (pure)
7. Summarization (never fails; falls back to an extractive summary)
8. Assemble the AnalysisResult with the current UTC timestamp
9. Rate-limit write-back, also for jurisdiction-rejected requests
10. Write-through cache (24h TTL)
11. Monthly usage increment for authenticated callers

Steps 9-11 are best-effort: failures are logged and the computed result is
still returned. Usage is only counted for fresh, successful analyses.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from risklens.config import get_settings
from risklens.errors import JurisdictionError, ValidationError
from risklens.kv_store import KeyValueStore
from risklens.models import CallerIdentity
from risklens.schemas import AnalysisResult, ClauseMap, JurisdictionSummary
from risklens.services.access_gate import check_access, record_request
from risklens.services.billing import SubscriptionLedger
from risklens.services.clause_extractor import extract_clauses
from risklens.services.jurisdiction_analyzer import analyze_jurisdiction
from risklens.services.red_flag_detector import detect_red_flags
from risklens.services.summarizer import generate_summary
from risklens.utils.hashing import compute_cache_key, normalize_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisRequest:
    """One analysis call: the submitted text and who submitted it."""
    text: Optional[str]
    caller: CallerIdentity


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2026-10-17T09:30:00.123Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def get_cached_result(store: KeyValueStore, cache_key: str) -> Optional[AnalysisResult]:
    """
    Return the cached result for a key, or None.

    Unreadable entries and store failures count as misses.
    """
    try:
        cached = await store.get(cache_key)
    except Exception as e:
        logger.error(f"Cache read failed for {cache_key}: {e}", exc_info=True)
        return None

    if not cached:
        return None

    try:
        return AnalysisResult.model_validate_json(cached)
    except PydanticValidationError as e:
        logger.warning(f"Ignoring unreadable cache entry {cache_key}: {e}")
        return None


async def cache_result(store: KeyValueStore, cache_key: str, result: AnalysisResult) -> None:
    settings = get_settings()
    try:
        await store.put(cache_key, result.to_json(), ttl_seconds=settings.cache_ttl_seconds)
    except Exception as e:
        logger.error(f"Failed to cache analysis {cache_key}: {e}", exc_info=True)


async def record_usage(ledger: SubscriptionLedger, caller: CallerIdentity) -> None:
    try:
        usage = await ledger.increment_usage(caller.identity)
        logger.info(f"Recorded analysis for {caller.identity}: {usage.count} this period")
    except Exception as e:
        logger.error(f"Failed to record usage for {caller.identity}: {e}", exc_info=True)


async def run_pipeline(
    text: str,
    store: KeyValueStore,
    summarizer_client: Optional[httpx.AsyncClient] = None
) -> AnalysisResult:
    """
    Validate jurisdiction, extract signals and summarize one contract.

    Raises:
        JurisdictionError: If the contract is outside the approved states
    """
    check = analyze_jurisdiction(text)
    if not check.is_valid:
        raise JurisdictionError(check.reason)

    clauses = extract_clauses(text)
    red_flags = detect_red_flags(text)
    summary = await generate_summary(text, store, client=summarizer_client)

    logger.info(f"Summary produced via {summary.source.value} path")

    return AnalysisResult(
        summary=summary.text,
        red_flags=red_flags,
        clauses=ClauseMap.model_validate(clauses),
        jurisdiction=JurisdictionSummary(
            detected_states=check.detected_states,
            approved_states=check.approved_states,
        ),
        timestamp=utc_timestamp(),
    )


async def analyze_contract(
    request: AnalysisRequest,
    store: KeyValueStore,
    ledger: SubscriptionLedger,
    summarizer_client: Optional[httpx.AsyncClient] = None
) -> AnalysisResult:
    """
    Analyze a contract for a caller, honoring cache, rate limit, quota and jurisdiction policy.

    Args:
        request: Submitted text and resolved caller
        store: Shared key-value store (cache and rate-limit counters)
        ledger: Subscription ledger for quota checks and usage accounting
        summarizer_client: Optional HTTP client override for the summarization API

    Returns:
        AnalysisResult, freshly computed or exactly as cached

    Raises:
        ValidationError: Blank or missing text
        RateLimitError: Too many analyses in the current window
        QuotaError: Monthly allowance spent or subscription inactive
        JurisdictionError: Governing law outside the approved states
        UpstreamError: Billing ledger unavailable
    """
    if not request.text or not normalize_text(request.text):
        raise ValidationError("No text provided")

    text = normalize_text(request.text)
    caller = request.caller
    cache_key = compute_cache_key(text)

    cached = await get_cached_result(store, cache_key)
    if cached is not None:
        logger.info(f"Cache hit for {cache_key} (caller {caller.identity})")
        return cached

    gate = await check_access(store, ledger, caller)
    logger.info(
        f"Starting analysis for {caller.identity} ({caller.auth_type.value}, {len(text)} chars, "
        f"{gate.counter.count} prior requests in window)"
    )

    try:
        result = await run_pipeline(text, store, summarizer_client)
    except JurisdictionError as e:
        logger.info(f"Analysis rejected for {caller.identity}: {e.message}")
        await record_request(store, gate.counter)
        raise

    await record_request(store, gate.counter)
    await cache_result(store, cache_key, result)

    if caller.authenticated:
        await record_usage(ledger, caller)

    logger.info(
        f"Analysis complete for {caller.identity}: {len(result.red_flags)} red flags, "
        f"approved states {result.jurisdiction.approved_states}"
    )
    return result
