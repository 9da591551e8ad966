"""
Shared HTTP client management for the summarization service.

This module provides a centralized, cached httpx.AsyncClient configured for the
remote summarization API (base URL, bearer token, transport timeout).

Usage:
    from risklens.services.http_client import get_summarization_client

    client = get_summarization_client()
    response = await client.post(model_path, json=payload)

Benefits:
- Single source of truth for summarization API configuration
- Lazy initialization to prevent import-time failures
- Connection pooling across requests
"""

import logging
import threading
from typing import Optional

import httpx

from risklens.config import get_settings

# Module-level setup
logger = logging.getLogger(__name__)

# Cache the client to avoid recreating it on every call
_client_cache: Optional[httpx.AsyncClient] = None

# Thread-safe initialization lock
_client_init_lock = threading.Lock()


def build_summarization_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """
    Create an AsyncClient for the summarization API from settings.

    Args:
        transport: Optional transport override (tests pass httpx.MockTransport)

    Returns:
        httpx.AsyncClient: Client with base_url, auth header and timeout applied
    """
    settings = get_settings()

    headers = {"Content-Type": "application/json"}
    if settings.summarization_api_token:
        headers["Authorization"] = f"Bearer {settings.summarization_api_token}"
    else:
        logger.warning(
            "SUMMARIZATION_API_TOKEN is not configured; remote summaries may be rejected "
            "and extractive fallback summaries will be used"
        )

    return httpx.AsyncClient(
        base_url=settings.summarization_api_url.rstrip("/") + "/",
        headers=headers,
        timeout=settings.summarization_timeout_seconds,
        transport=transport,
    )


def get_summarization_client() -> httpx.AsyncClient:
    """
    Get or create cached summarization client with thread-safe initialization.

    Uses double-checked locking so concurrent first calls create only one client.

    Returns:
        httpx.AsyncClient: Configured client instance
    """
    global _client_cache

    # First check (without lock) - fast path for already-initialized client
    if _client_cache is None:
        with _client_init_lock:
            # Second check (with lock) - another thread may have initialized it
            if _client_cache is None:
                _client_cache = build_summarization_client()
                logger.info("Summarization HTTP client initialized")

    return _client_cache


async def close_summarization_client() -> None:
    """Close the cached client; called on application shutdown."""
    global _client_cache

    if _client_cache is not None:
        await _client_cache.aclose()
        _client_cache = None
        logger.info("Summarization HTTP client closed")
