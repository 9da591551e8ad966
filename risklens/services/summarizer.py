"""
Contract Summarization Service

This module produces a short summary of a contract by calling a remote
abstractive summarization model (facebook/bart-large-cnn by default) and falls
back to a local extractive summary whenever the remote call fails.

Summary Sources:
    - 'remote': The summarization API returned a usable summary_text
    - 'fallback': First three substantial sentences of the contract

Usage Example:
    from risklens.services.summarizer import generate_summary

    outcome = await generate_summary(contract_text, store)
    print(outcome.text)
    if outcome.source is SummarySource.FALLBACK:
        print("remote summarization unavailable")

Remote Request:
    POST {summarization_api_url}/{summarization_model}
    {"inputs": text[:1024], "parameters": {"max_length": 150, "min_length": 50, "do_sample": false}}
    -> [{"summary_text": "..."}]

Error Handling:
    generate_summary never raises. Transport errors, timeouts, non-2xx answers,
    malformed JSON and a missing summary_text all yield the fallback summary.
    Usage tracking after a remote success is best-effort and never surfaces.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import httpx

from risklens.config import get_settings
from risklens.kv_store import KeyValueStore
from risklens.services.http_client import get_summarization_client

# Module-level setup
logger = logging.getLogger(__name__)

# Remote API payload limit (characters)
MAX_INPUT_CHARS = 1024

SUMMARY_PARAMETERS = {
    "max_length": 150,
    "min_length": 50,
    "do_sample": False,
}

# Extractive fallback configuration
SENTENCE_SPLIT_RX = re.compile(r'[.!?]+')
MIN_SENTENCE_CHARS = 20
FALLBACK_SENTENCES = 3

# Daily character usage counters are kept for 30 days
API_USAGE_TTL_SECONDS = 30 * 24 * 3600


class SummarySource(str, Enum):
    REMOTE = "remote"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class SummaryOutcome:
    """
    Tagged summarization result.

    Attributes:
        text: Summary returned to the caller
        source: Which path produced it
        chars_sent: Characters sent to the remote API (0 for fallback)
        error: Why the remote path was abandoned, None on success
    """
    text: str
    source: SummarySource
    chars_sent: int = 0
    error: Optional[str] = None


class SummarizationFailed(Exception):
    """Remote summarization did not produce a usable summary."""


def fallback_summary(text: str) -> str:
    """
    Build an extractive summary from the first substantial sentences.

    Splits on sentence terminators, keeps pieces longer than 20 characters
    once trimmed, takes the first three, joins them with ". " and ensures a
    trailing period. Pieces are joined untrimmed, so the whitespace that
    followed each terminator in the contract is kept between sentences.

    Example:
        >>> fallback_summary("Short one. This sentence is clearly long enough! Tiny.")
        'This sentence is clearly long enough.'
    """
    sentences = SENTENCE_SPLIT_RX.split(text)
    substantial = [sentence for sentence in sentences if len(sentence.strip()) > MIN_SENTENCE_CHARS]
    summary = '. '.join(substantial[:FALLBACK_SENTENCES]).strip()
    return summary if summary.endswith('.') else summary + '.'


def _parse_summary_response(payload: Any) -> str:
    """
    Extract summary_text from the remote response payload.

    Raises:
        SummarizationFailed: If the payload is not [{"summary_text": "<non-empty>"}]
    """
    if not isinstance(payload, list) or not payload:
        raise SummarizationFailed(f"Expected a non-empty list, got {type(payload).__name__}")

    first = payload[0]
    if not isinstance(first, dict):
        raise SummarizationFailed(f"Expected an object in the response list, got {type(first).__name__}")

    summary_text = first.get("summary_text")
    if not isinstance(summary_text, str) or not summary_text.strip():
        raise SummarizationFailed("Response missing 'summary_text'")

    return summary_text


async def request_remote_summary(text: str, client: httpx.AsyncClient) -> str:
    """
    Call the summarization API once.

    Args:
        text: Input already truncated to MAX_INPUT_CHARS
        client: Client whose base_url points at the inference API

    Returns:
        The summary_text of the first result

    Raises:
        SummarizationFailed: On any transport, status or payload problem
    """
    settings = get_settings()

    try:
        response = await client.post(
            settings.summarization_model,
            json={"inputs": text, "parameters": SUMMARY_PARAMETERS},
        )
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPStatusError as e:
        raise SummarizationFailed(f"Summarization API error: {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise SummarizationFailed(f"Summarization API unreachable: {type(e).__name__}: {e}") from e
    except ValueError as e:
        raise SummarizationFailed(f"Summarization API returned invalid JSON: {e}") from e

    return _parse_summary_response(payload)


async def track_api_usage(store: KeyValueStore, chars_used: int) -> None:
    """
    Add characters sent to the summarization API to today's usage counter.

    Best-effort: failures are logged and swallowed.
    """
    try:
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        usage_key = f"api_usage:{today}"

        current = await store.get(usage_key)
        new_usage = (int(current) if current else 0) + chars_used

        await store.put(usage_key, str(new_usage), ttl_seconds=API_USAGE_TTL_SECONDS)
        logger.info(f"Daily summarization API usage: {new_usage} chars")
    except Exception as e:
        logger.error(f"Failed to track summarization API usage: {e}", exc_info=True)


async def generate_summary(
    contract_text: str,
    store: KeyValueStore,
    client: Optional[httpx.AsyncClient] = None
) -> SummaryOutcome:
    """
    Summarize a contract, falling back to extractive summarization on failure.

    Args:
        contract_text: Full contract text
        store: Key-value store used for API usage tracking
        client: Optional client override; defaults to the shared summarization client

    Returns:
        SummaryOutcome tagged with the path that produced the text
    """
    truncated = contract_text[:MAX_INPUT_CHARS]
    input_length = len(truncated)

    try:
        logger.info(f"Requesting remote summary ({input_length} chars)")
        summary_text = await request_remote_summary(truncated, client or get_summarization_client())
    except Exception as e:
        # SummarizationFailed, client construction errors and anything unexpected alike
        error_msg = str(e) or type(e).__name__
        logger.warning(f"Summary generation failed, using fallback: {error_msg}")
        return SummaryOutcome(
            text=fallback_summary(contract_text),
            source=SummarySource.FALLBACK,
            error=error_msg
        )

    logger.info(f"Remote summary generated ({input_length} chars used)")
    await track_api_usage(store, input_length)

    return SummaryOutcome(text=summary_text, source=SummarySource.REMOTE, chars_sent=input_length)
