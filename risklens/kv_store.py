"""
Key-value store access for RiskLens.

The analysis pipeline keeps all shared state (result cache, rate-limit counters,
usage counters, subscription and API key records) in a single eventually-consistent
key-value store. This module defines the async interface every backend implements
and ships an in-process TTL implementation used by default and in tests.

Architecture:
- KeyValueStore: abstract async get/put-with-TTL interface
- InMemoryKeyValueStore: dict storage of {key: (expires_at, value)} with per-key expiry on read and periodic sweeps
- get_kv_store(): FastAPI dependency returning the process-wide store

Consistency notes:
- There are no transactions and no atomic increments
- Callers read, compute and write back; concurrent writers may lose updates
"""

import logging
import time
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Async string-to-string store with optional per-key expiry."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when absent or expired."""

    @abstractmethod
    async def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Store value under key; the entry disappears after ttl_seconds if given."""


class InMemoryKeyValueStore(KeyValueStore):
    """
    Minimal Time-To-Live store with dict storage of {key: (expires_at, value)}.

    A read checks only the key it touches. Expired entries of other keys are
    swept at most once per sweep_interval_seconds, so a request does not pay
    for the whole store. An injectable clock lets tests move time forward
    without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.time, sweep_interval_seconds: float = 60.0):
        self._storage: Dict[str, Tuple[Optional[float], str]] = {}
        self._clock = clock
        self._sweep_interval = sweep_interval_seconds
        self._next_sweep_at = clock() + sweep_interval_seconds

    async def get(self, key: str) -> Optional[str]:
        now = self._clock()
        self._maybe_sweep(now)

        entry = self._storage.get(key)
        if entry is None:
            return None

        expires_at, value = entry
        if expires_at is not None and now >= expires_at:
            del self._storage[key]
            return None

        return value

    async def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        now = self._clock()
        self._maybe_sweep(now)

        expires_at = now + ttl_seconds if ttl_seconds else None
        self._storage[key] = (expires_at, value)

    def __len__(self) -> int:
        self._purge_expired(self._clock())
        return len(self._storage)

    def _maybe_sweep(self, now: float) -> None:
        if now >= self._next_sweep_at:
            self._purge_expired(now)
            self._next_sweep_at = now + self._sweep_interval

    def _purge_expired(self, now: float) -> None:
        """Remove all expired entries from storage."""
        expired_keys = [
            key for key, (expires_at, _) in self._storage.items()
            if expires_at is not None and now >= expires_at
        ]
        for key in expired_keys:
            del self._storage[key]
        if expired_keys:
            logger.debug(f"Purged {len(expired_keys)} expired keys")


@lru_cache
def get_kv_store() -> KeyValueStore:
    """
    FastAPI dependency that provides the shared key-value store.

    The store is created once per process. Override this dependency
    (app.dependency_overrides) to plug in a different backend.

    Returns:
        KeyValueStore: Process-wide store instance
    """
    logger.info("Initializing in-memory key-value store")
    return InMemoryKeyValueStore()
